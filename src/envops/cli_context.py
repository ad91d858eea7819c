"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings, the API
client and the git facade, avoiding global state and enabling proper
dependency injection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .api.base import ActivityLoader
from .api.client import ApiClient
from .settings import Settings, create_settings_from_env
from .vcs.git import GitFacade
from .vcs.process import OutputObserver, ProcessRunner


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Manages application-level dependencies that are initialized once and
    shared across a CLI command execution.
    """
    settings: Settings
    _loader: Optional[ActivityLoader] = None
    _runner: Optional[ProcessRunner] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        """
        Create CLI context from environment variables.

        Returns:
            CLIContext with settings loaded from environment
        """
        return cls(settings=create_settings_from_env())

    @property
    def loader(self) -> ActivityLoader:
        """
        Get or create the activity loader (lazy initialization).

        Returns:
            ApiClient configured from settings, unless a loader was injected
        """
        if self._loader is None:
            self._loader = ApiClient(self.settings)
        return self._loader

    @property
    def runner(self) -> ProcessRunner:
        if self._runner is None:
            self._runner = ProcessRunner()
        return self._runner

    def git(self, repository_dir: Optional[str] = None,
            observer: Optional[OutputObserver] = None) -> GitFacade:
        """
        Build a git facade bound to ``repository_dir``.

        Args:
            repository_dir: Default directory (the configured one when None)
            observer: Receives git output as it is produced

        Returns:
            GitFacade sharing this context's process runner
        """
        return GitFacade(
            repository_dir or self.settings.repository_dir,
            runner=self.runner,
            observer=observer,
            program=self.settings.git_binary,
        )
