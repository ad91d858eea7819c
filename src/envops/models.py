"""
Data models for remote activities.

These Pydantic models validate activity documents returned by the API and
the filters a caller can apply when listing them.
"""
from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator

__all__ = [
    "ActivityState",
    "ActivityResult",
    "Activity",
    "ActivityFilters",
    "ActivityResource",
]

_TAG_RE = re.compile(r"<[^>]+>")


class ActivityState(str, Enum):
    """Lifecycle states of an activity."""
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class ActivityResult(str, Enum):
    """Outcome of a completed activity."""
    SUCCESS = "success"
    FAILURE = "failure"


class Activity(BaseModel):
    """A build, deploy or maintenance operation recorded by the API."""
    id: str = Field(..., description="Activity ID")
    type: str = Field(..., description="Activity type, e.g. environment.push")
    state: ActivityState = Field(..., description="Lifecycle state")
    result: Optional[ActivityResult] = Field(default=None, description="Outcome once complete")
    created_at: Optional[datetime] = Field(default=None, description="Creation time")
    completed_at: Optional[datetime] = Field(default=None, description="Completion time")
    completion_percent: int = Field(default=0, ge=0, le=100, description="Progress percentage")
    description: str = Field(default="", description="Description (may contain markup tags)")
    environments: List[str] = Field(default_factory=list, description="Affected environments")

    @field_validator("result", mode="before")
    @classmethod
    def empty_result_is_none(cls, v):
        """The API sends an empty string for activities that have no result yet."""
        return v or None

    @property
    def is_complete(self) -> bool:
        return self.state == ActivityState.COMPLETE

    def plain_description(self) -> str:
        """Description with markup tags removed."""
        return _TAG_RE.sub("", self.description).strip()


class ActivityFilters(BaseModel):
    """Filters for listing activities."""
    types: List[str] = Field(default_factory=list, description="Only these activity types")
    exclude_types: List[str] = Field(default_factory=list, description="Drop these activity types")
    states: List[ActivityState] = Field(default_factory=list, description="Only these states")
    result: Optional[ActivityResult] = Field(default=None, description="Only this result")
    start: Optional[datetime] = Field(default=None, description="Only activities created before this time")
    limit: int = Field(default=10, gt=0, description="Maximum number of activities")
    incomplete: bool = Field(default=False, description="Only in-progress or pending activities")

    def effective_states(self) -> List[ActivityState]:
        """States to query, with ``incomplete`` expanded."""
        if self.incomplete:
            return [ActivityState.IN_PROGRESS, ActivityState.PENDING]
        return list(self.states)


class ActivityResource(BaseModel):
    """A project, optionally narrowed to one environment."""
    project: str = Field(..., min_length=1, description="Project ID")
    environment: Optional[str] = Field(default=None, description="Environment ID (None for the whole project)")

    @property
    def environment_specific(self) -> bool:
        return self.environment is not None

    @property
    def api_path(self) -> str:
        """Activities collection path for this resource."""
        if self.environment is not None:
            return f"/projects/{quote(self.project, safe='')}/environments/{quote(self.environment, safe='')}/activities"
        return f"/projects/{quote(self.project, safe='')}/activities"
