"""
Activity loading interface.

This protocol defines the boundary between the operations layer and the
remote API, enabling clean dependency injection and testing with fakes.
"""
from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from ..models import Activity, ActivityFilters, ActivityResource

__all__ = ["ActivityLoader"]


@runtime_checkable
class ActivityLoader(Protocol):
    """Protocol for loading activities of a project or environment."""

    def load_activities(self, resource: ActivityResource,
                        filters: ActivityFilters) -> List[Activity]:
        """
        Load activities, newest first.

        Args:
            resource: Project (and optionally environment) to query
            filters: Type/state/result/date filters and the result limit

        Returns:
            At most ``filters.limit`` activities, newest first

        Raises:
            ApiError: For transport or HTTP failures
        """
        ...

    def close(self) -> None:
        """Release connections held by the loader."""
        ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
