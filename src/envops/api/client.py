"""
HTTP client for the projects API.

Loads activities for a project or one of its environments. Transient
failures (transport errors, 429 and 5xx responses) are retried with
exponential backoff up to the configured retry count.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

import httpx
from pydantic import ValidationError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .. import __version__
from ..errors import ApiAuthError, ApiError, ApiNotFound, ApiRateLimited
from ..models import Activity, ActivityFilters, ActivityResource
from ..settings import Settings

__all__ = ["ApiClient"]

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class _RetryableStatus(Exception):
    """Internal marker for responses worth retrying."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class ApiClient:
    """
    Client for the activities endpoints of the projects API.

    Pages through results by asking for activities created before the oldest
    one seen so far, until the limit is reached or the API runs dry. Excluded
    types are dropped client-side, which is why more than one page may be
    needed to fill the limit.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize API client.

        Args:
            settings: API URL, token, timeout and retry configuration
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.settings = settings
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=10)

        headers = {
            "User-Agent": f"envops/{__version__}",
            "Accept": "application/json",
        }
        if settings.api_token:
            headers["Authorization"] = f"Bearer {settings.api_token}"

        self.client = httpx.Client(
            base_url=settings.api_url,
            timeout=httpx.Timeout(settings.http_timeout_s),
            follow_redirects=True,
            headers=headers,
            transport=transport,
        )

    def load_activities(self, resource: ActivityResource,
                        filters: ActivityFilters) -> List[Activity]:
        """
        Load activities matching ``filters``, newest first.

        Raises:
            ApiAuthError: On 401/403
            ApiNotFound: On 404
            ApiRateLimited: On 429 once retries are exhausted
            ApiError: On other HTTP or transport failures, or malformed documents
        """
        params: Dict[str, Any] = {"count": filters.limit}
        if filters.types:
            params["type"] = list(filters.types)
        states = filters.effective_states()
        if states:
            params["state"] = [state.value for state in states]
        if filters.result is not None:
            params["result"] = filters.result.value

        excluded = set(filters.exclude_types)
        starts_at: Optional[datetime] = filters.start
        seen: Set[str] = set()
        collected: List[Activity] = []

        while len(collected) < filters.limit:
            page_params = dict(params)
            if starts_at is not None:
                page_params["starts_at"] = starts_at.isoformat()

            page = self._parse_page(self._get_json(resource.api_path, params=page_params))
            fresh = [activity for activity in page if activity.id not in seen]
            if not fresh:
                break

            for activity in fresh:
                seen.add(activity.id)
                if activity.type not in excluded:
                    collected.append(activity)

            oldest = fresh[-1].created_at
            if len(page) < filters.limit or oldest is None:
                break
            starts_at = oldest

        logger.debug(f"Loaded {len(collected)} activities from {resource.api_path}")
        return collected[:filters.limit]

    def _parse_page(self, payload: Any) -> List[Activity]:
        """Validate one page of activity documents."""
        if isinstance(payload, dict):
            payload = payload.get("items", [])
        if not isinstance(payload, list):
            raise ApiError(f"Unexpected activities payload: {type(payload).__name__}")

        try:
            return [Activity.model_validate(doc) for doc in payload]
        except ValidationError as e:
            raise ApiError(f"Invalid activity document: {e}") from e

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self._request("GET", path, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {path}: {e}", status_code=response.status_code) from e

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Make an HTTP request, retrying transient failures.

        Maps final HTTP errors onto the ``ApiError`` hierarchy.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.settings.http_retry + 1),
            wait=self.retry_wait,
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    response = self.client.request(method, path, **kwargs)
                    if response.status_code in RETRYABLE_STATUS:
                        raise _RetryableStatus(response)
        except _RetryableStatus as e:
            response = e.response
        except httpx.TransportError as e:
            raise ApiError(f"Network error requesting {path}: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise ApiAuthError(f"Authentication failed for {path} (HTTP {status})", status_code=status)
        if status == 404:
            raise ApiNotFound(f"Not found: {path}", status_code=status)
        if status == 429:
            raise ApiRateLimited(f"Rate limited requesting {path}", status_code=status)
        if status >= 400:
            raise ApiError(f"API error {status} for {path}: {response.text[:200]}", status_code=status)

        return response

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
