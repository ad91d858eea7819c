"""
Error classes for envops.

Provides a small taxonomy split along the two boundaries the tool talks to:
the local version-control program and the remote API. CLI commands map these
to exit codes in one place (see ``operations.mappers``).
"""
from __future__ import annotations

from typing import Optional, Sequence


class EnvOpsError(Exception):
    """Base class for all envops errors."""
    pass


class GitError(EnvOpsError):
    """Base class for version-control errors."""
    pass


class InvalidRepositoryError(GitError):
    """
    The resolved directory is not a repository.

    Raised before any process is spawned, so callers get an actionable
    diagnostic instead of git's own message.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class AlreadyRepositoryError(InvalidRepositoryError):
    """``init`` was asked to create a repository where one already exists."""
    pass


class ProcessFailedError(GitError):
    """
    An external command exited non-zero or could not be spawned.

    Attributes:
        command: The full command line that ran (program first)
        exit_code: Process exit status (127/126 when the program could not be spawned)
        output: Captured standard output, trailing whitespace trimmed
        error_output: Captured standard error, trailing whitespace trimmed
        cwd: Working directory the command ran in, or None
    """

    def __init__(self, command: Sequence[str], exit_code: int, output: str = "",
                 error_output: str = "", cwd: Optional[str] = None):
        self.command = list(command)
        self.exit_code = exit_code
        self.output = output
        self.error_output = error_output
        self.cwd = cwd

        message = f"Command failed with exit code {exit_code}: {' '.join(self.command)}"
        if cwd:
            message += f" (in {cwd})"
        detail = error_output or output
        if detail:
            message += f"\n{detail}"
        super().__init__(message)


class ApiError(EnvOpsError):
    """
    Base class for remote API errors.

    Raised for unexpected HTTP statuses and transport failures.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApiAuthError(ApiError):
    """
    Authentication or authorization error.

    Raised when:
    - HTTP 401 Unauthorized (missing or invalid token)
    - HTTP 403 Forbidden (insufficient access to the project)
    """
    pass


class ApiNotFound(ApiError):
    """
    Resource not found.

    Raised when:
    - HTTP 404 Not Found (project or environment does not exist)
    """
    pass


class ApiRateLimited(ApiError):
    """
    Rate limit exceeded.

    Raised when:
    - HTTP 429 Too Many Requests, after retries are exhausted
    """
    pass


class NoActivitiesFound(EnvOpsError):
    """An activity query returned nothing."""
    pass


__all__ = [
    "EnvOpsError",
    "GitError",
    "InvalidRepositoryError",
    "AlreadyRepositoryError",
    "ProcessFailedError",
    "ApiError",
    "ApiAuthError",
    "ApiNotFound",
    "ApiRateLimited",
    "NoActivitiesFound",
]
