"""
Git facade.

Translates named version-control operations into git command lines, checks
that they run against a real repository, and normalizes what comes back.

Usage:
    from envops.vcs import GitFacade

    git = GitFacade(repository_dir="./my-project")
    git.branch("feature", parent="develop")
    git.current_branch()          # "feature"
    git.config_get("user.email")  # None when unset

Return values:
    ``execute`` returns ``Text``/``Empty`` on success and ``None`` when a
    failure was swallowed; the named operations unwrap that into ``str``,
    ``bool`` or ``None``. With ``must_succeed=True`` a failure raises
    ``ProcessFailedError`` instead, except for the failures an operation
    declares as "nothing to report" (e.g. ``config --get`` exiting 1 with no
    message for an unset key), which stay ``None`` in both modes.
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Collection, Optional, Sequence, Union

from ..errors import AlreadyRepositoryError, InvalidRepositoryError, ProcessFailedError
from .outcome import Outcome, outcome_from_output, text_of
from .process import OutputObserver, ProcessRunner

__all__ = ["GitFacade", "NO_DIRECTORY", "GIT_DIR"]

logger = logging.getLogger(__name__)

GIT_DIR = ".git"

# Exit codes git uses for "nothing to report"; each is shared with real errors,
# so absence is decided by exit code and message together
EXIT_CONFIG_KEY_UNSET = 1
EXIT_NO_MATCHING_REF = 1
EXIT_FATAL = 128

DETACHED_HEAD_MARKERS = ("is not a symbolic ref",)
NO_UPSTREAM_MARKERS = ("no upstream configured", "does not point to a branch")

AbsencePredicate = Callable[[ProcessFailedError], bool]


def _fatal_with(markers: Sequence[str]) -> AbsencePredicate:
    def matches(error: ProcessFailedError) -> bool:
        return error.exit_code == EXIT_FATAL and any(m in error.error_output for m in markers)
    return matches


def _silent_exit(code: int) -> AbsencePredicate:
    def matches(error: ProcessFailedError) -> bool:
        return error.exit_code == code and not error.error_output
    return matches


_detached_head = _fatal_with(DETACHED_HEAD_MARKERS)
_no_upstream = _fatal_with(NO_UPSTREAM_MARKERS)
_config_key_unset = _silent_exit(EXIT_CONFIG_KEY_UNSET)
_no_matching_ref = _silent_exit(EXIT_NO_MATCHING_REF)


class _NoDirectory:
    """Sentinel: run without a working directory and without validation."""

    def __repr__(self) -> str:
        return "NO_DIRECTORY"


NO_DIRECTORY = _NoDirectory()

Directory = Union[str, "os.PathLike[str]", None, _NoDirectory]


class GitFacade:
    """
    Named git operations over a ``ProcessRunner``.

    Working directory resolution is: explicit ``directory`` argument, else the
    ``repository_dir`` given at construction, else (for ``NO_DIRECTORY``)
    none at all. The default directory cannot be changed after construction.
    """

    def __init__(self, repository_dir: Union[str, "os.PathLike[str]"] = ".", *,
                 runner: Optional[ProcessRunner] = None,
                 observer: Optional[OutputObserver] = None,
                 program: str = "git"):
        """
        Args:
            repository_dir: Directory used when a call does not name one
            runner: Process runner (a fresh ``ProcessRunner`` if None)
            observer: Receives git's output chunks as they are produced
            program: Version-control executable to invoke
        """
        self._repository_dir = os.fspath(repository_dir)
        self.runner = runner or ProcessRunner()
        self.observer = observer
        self.program = program

    @property
    def repository_dir(self) -> str:
        return self._repository_dir

    def execute(self, args: Sequence[str], directory: Directory = None,
                must_succeed: bool = False,
                absent_codes: Collection[int] = (),
                absent_when: Optional[AbsencePredicate] = None) -> Optional[Outcome]:
        """
        Execute a git command.

        Args:
            args: Command arguments (everything after the program name)
            directory: Repository to run in; None for the default,
                ``NO_DIRECTORY`` to skip both the directory change and validation
            must_succeed: Raise on failure instead of returning None
            absent_codes: Exit codes that mean "nothing to report"; these
                return None even when ``must_succeed`` is set
            absent_when: Finer-grained test on the failure (exit code and
                stderr) for "nothing to report"; same effect as ``absent_codes``

        Returns:
            ``Text`` if the command printed something, ``Empty`` if it printed
            nothing, None if it failed and the failure was not raised

        Raises:
            InvalidRepositoryError: If the directory is not a repository
                (not checked for ``init`` or ``NO_DIRECTORY``)
            ProcessFailedError: If ``must_succeed`` is set and the command fails
        """
        args = list(args)
        command = [self.program, *args]
        cwd: Optional[str] = None

        if directory is not NO_DIRECTORY:
            cwd = os.fspath(directory) if directory else self._repository_dir
            if (not args or args[0] != "init") and not self.is_repository(cwd):
                raise InvalidRepositoryError(f"Not a Git repository: {cwd}", path=cwd)

        try:
            result = self.runner.run(command, cwd=cwd, observer=self.observer)
        except ProcessFailedError as e:
            if e.exit_code in absent_codes or (absent_when is not None and absent_when(e)):
                logger.debug(f"{' '.join(command)}: nothing to report (exit code {e.exit_code})")
                return None
            if not must_succeed:
                logger.debug(f"Ignoring failed command {' '.join(command)}: exit code {e.exit_code}")
                return None
            raise

        return outcome_from_output(result.output)

    def is_repository(self, directory: Union[str, "os.PathLike[str]"]) -> bool:
        """Check whether a directory is a Git repository (no subprocess)."""
        return os.path.isdir(os.path.join(os.fspath(directory), GIT_DIR))

    def init(self, directory: Union[str, "os.PathLike[str]"], must_succeed: bool = False) -> bool:
        """
        Create a Git repository in a directory.

        The directory is created if it does not exist yet.

        Raises:
            AlreadyRepositoryError: If the directory is already a repository
            InvalidRepositoryError: If the path exists but is not a directory
        """
        directory = os.fspath(directory)
        if self.is_repository(directory):
            raise AlreadyRepositoryError(f"Already a repository: {directory}", path=directory)
        if os.path.exists(directory) and not os.path.isdir(directory):
            raise InvalidRepositoryError(f"Not a directory: {directory}", path=directory)
        os.makedirs(directory, exist_ok=True)

        return self.execute(["init"], directory, must_succeed) is not None

    def current_branch(self, directory: Directory = None,
                       must_succeed: bool = False) -> Optional[str]:
        """Get the current branch name, or None on a detached HEAD."""
        args = ["symbolic-ref", "--short", "HEAD"]

        return text_of(self.execute(args, directory, must_succeed, absent_when=_detached_head))

    def branch_exists(self, name: str, directory: Directory = None,
                      must_succeed: bool = False) -> bool:
        """Check whether a local branch exists."""
        args = ["show-ref", f"refs/heads/{name}"]

        return self.execute(args, directory, must_succeed,
                            absent_when=_no_matching_ref) is not None

    def branch(self, name: str, parent: Optional[str] = None, directory: Directory = None,
               must_succeed: bool = False) -> bool:
        """Create a new branch (from ``parent`` if given) and switch to it."""
        args = ["checkout", "-b", name]
        if parent:
            args.append(parent)

        return self.execute(args, directory, must_succeed) is not None

    def check_out(self, name: str, directory: Directory = None,
                  must_succeed: bool = False) -> bool:
        """Switch to an existing branch."""
        return self.execute(["checkout", name], directory, must_succeed) is not None

    def upstream(self, directory: Directory = None,
                 must_succeed: bool = False) -> Optional[str]:
        """Get the upstream of the current branch, or None if none is configured."""
        args = ["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"]

        return text_of(self.execute(args, directory, must_succeed, absent_when=_no_upstream))

    def clone_repo(self, url: str, destination: Optional[str] = None,
                   branch: Optional[str] = None, must_succeed: bool = False) -> bool:
        """
        Clone a repository.

        Runs from the current directory without repository validation, since
        the destination usually does not exist yet.
        """
        args = ["clone", url]
        if destination:
            args.append(os.fspath(destination))
        if branch:
            args.extend(["--branch", branch])

        return self.execute(args, NO_DIRECTORY, must_succeed) is not None

    def config_get(self, key: str, directory: Directory = None,
                   must_succeed: bool = False) -> Optional[str]:
        """Read a configuration item, or None if it is not set."""
        args = ["config", "--get", key]

        return text_of(self.execute(args, directory, must_succeed,
                                    absent_when=_config_key_unset))
