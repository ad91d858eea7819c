"""
Fake activity loader for testing.

In-memory implementation of the ActivityLoader protocol. Applies the type,
state and limit filters so CLI and facade tests see realistic results.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from envops.api.base import ActivityLoader
from envops.models import Activity, ActivityFilters, ActivityResource

__all__ = ["FakeActivityLoader"]


class FakeActivityLoader(ActivityLoader):
    """
    Serves a fixed list of activities.

    This is a test double; not for production use.
    """

    def __init__(self, activities: Optional[Sequence[Activity]] = None) -> None:
        self.activities: List[Activity] = list(activities or [])
        self.calls: List[Tuple[ActivityResource, ActivityFilters]] = []
        self.closed = False

    def load_activities(self, resource: ActivityResource,
                        filters: ActivityFilters) -> List[Activity]:
        self.calls.append((resource, filters))
        states = set(filters.effective_states())

        selected = []
        for activity in self.activities:
            if resource.environment and resource.environment not in activity.environments:
                continue
            if filters.types and activity.type not in filters.types:
                continue
            if activity.type in filters.exclude_types:
                continue
            if states and activity.state not in states:
                continue
            if filters.result is not None and activity.result != filters.result:
                continue
            selected.append(activity)
        return selected[:filters.limit]

    def close(self) -> None:
        self.closed = True
