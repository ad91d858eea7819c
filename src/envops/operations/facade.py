"""
Operations Facade - Application service layer.

Provides a clean interface between the CLI and the git facade / API client,
centralizing command orchestration and policy decisions while keeping CLI
commands thin and testable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..api.base import ActivityLoader
from ..errors import NoActivitiesFound
from ..models import Activity, ActivityFilters, ActivityResource
from ..vcs.git import GitFacade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Centralizes policy decisions to avoid scattered configuration.
    """
    must_succeed: bool = False    # Raise on git failures instead of reporting False/None
    verbose: bool = False         # Show detailed output


class Operations:
    """
    Application service facade for CLI operations.

    One method per CLI verb. Git operations are delegated to ``GitFacade``
    with the configured failure policy; activity listing is delegated to an
    ``ActivityLoader``. Exceptions bubble up for central exit-code mapping.
    """

    def __init__(self, config: OpsConfig, git: GitFacade,
                 loader: Optional[ActivityLoader] = None):
        """
        Initialize Operations facade.

        Args:
            config: Configuration settings
            git: Git facade bound to the default repository directory
            loader: Activity loader (None for git-only use)
        """
        self.cfg = config
        self.git = git
        self.loader = loader

    def list_activities(self, resource: ActivityResource,
                        filters: ActivityFilters) -> List[Activity]:
        """
        List activities for a project or environment.

        Raises:
            ValueError: If no loader is configured
            NoActivitiesFound: If the query returned nothing
        """
        if self.loader is None:
            raise ValueError("Activity loader required for activity operations")

        activities = self.loader.load_activities(resource, filters)
        if not activities:
            raise NoActivitiesFound("No activities found")
        return activities

    def init(self, directory: str) -> bool:
        """Create a repository in ``directory``."""
        return self.git.init(directory, must_succeed=self.cfg.must_succeed)

    def clone(self, url: str, destination: Optional[str] = None,
              branch: Optional[str] = None) -> bool:
        """Clone ``url`` into ``destination``."""
        return self.git.clone_repo(url, destination, branch, must_succeed=self.cfg.must_succeed)

    def create_branch(self, name: str, parent: Optional[str] = None,
                      directory: Optional[str] = None) -> bool:
        """
        Create branch ``name`` from ``parent`` and switch to it.

        ``parent`` is any start point git accepts (branch, remote-tracking
        branch, tag or commit); git itself reports one that does not resolve.

        Raises:
            ValueError: If the branch already exists
        """
        if self.git.branch_exists(name, directory):
            raise ValueError(f"Branch already exists: {name}")

        logger.debug(f"Creating branch {name} from {parent or 'HEAD'}")
        return self.git.branch(name, parent, directory, must_succeed=self.cfg.must_succeed)

    def checkout(self, name: str, directory: Optional[str] = None) -> bool:
        """
        Switch to a branch.

        A name that only exists on a remote is created locally by git,
        tracking the remote branch.
        """
        return self.git.check_out(name, directory, must_succeed=self.cfg.must_succeed)

    def current_branch(self, directory: Optional[str] = None) -> Optional[str]:
        return self.git.current_branch(directory, must_succeed=self.cfg.must_succeed)

    def branch_exists(self, name: str, directory: Optional[str] = None) -> bool:
        return self.git.branch_exists(name, directory, must_succeed=self.cfg.must_succeed)

    def upstream(self, directory: Optional[str] = None) -> Optional[str]:
        return self.git.upstream(directory, must_succeed=self.cfg.must_succeed)

    def config_get(self, key: str, directory: Optional[str] = None) -> Optional[str]:
        return self.git.config_get(key, directory, must_succeed=self.cfg.must_succeed)
