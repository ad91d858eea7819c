"""
Tests for the activities API client.

Uses httpx.MockTransport so requests never leave the process; the handler
functions play the part of the API.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import httpx
import pytest
from tenacity import wait_none

from envops.api.client import ApiClient
from envops.errors import ApiAuthError, ApiError, ApiNotFound, ApiRateLimited
from envops.models import ActivityFilters, ActivityResource, ActivityState

from ..helpers.activities import activity_doc


def make_client(settings, handler):
    client = ApiClient(settings, transport=httpx.MockTransport(handler))
    client.retry_wait = wait_none()
    return client


class TestLoadActivities:
    """Request shape and result decoding."""

    def setup_method(self):
        self.requests = []

    def test_project_request(self, settings):
        """Test path, query parameters and auth header for a project listing."""
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json=[activity_doc("a1", day=2), activity_doc("a2", day=1)])

        with make_client(settings, handler) as client:
            activities = client.load_activities(ActivityResource(project="proj1"),
                                                ActivityFilters(limit=5, types=["environment.push"]))

        request = self.requests[0]
        assert request.url.path == "/projects/proj1/activities"
        assert request.url.params["count"] == "5"
        assert request.url.params.get_list("type") == ["environment.push"]
        assert "starts_at" not in request.url.params
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.headers["User-Agent"].startswith("envops/")
        assert [a.id for a in activities] == ["a1", "a2"]

    def test_environment_request(self, settings):
        """Test an environment resource uses the nested path."""
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json=[])

        with make_client(settings, handler) as client:
            client.load_activities(ActivityResource(project="proj1", environment="feature/x"),
                                   ActivityFilters())

        assert self.requests[0].url.raw_path.startswith(b"/projects/proj1/environments/feature%2Fx/activities")

    def test_filters_sent_as_params(self, settings):
        """Test state, result and start filters are sent to the API."""
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json=[])

        filters = ActivityFilters(states=[ActivityState.COMPLETE], result="failure",
                                  start=datetime(2024, 3, 10, tzinfo=timezone.utc))
        with make_client(settings, handler) as client:
            client.load_activities(ActivityResource(project="proj1"), filters)

        params = self.requests[0].url.params
        assert params.get_list("state") == ["complete"]
        assert params["result"] == "failure"
        assert params["starts_at"] == "2024-03-10T00:00:00+00:00"

    def test_incomplete_expands_states(self, settings):
        """Test --incomplete queries in-progress and pending states."""
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json=[])

        with make_client(settings, handler) as client:
            client.load_activities(ActivityResource(project="proj1"), ActivityFilters(incomplete=True))

        assert self.requests[0].url.params.get_list("state") == ["in_progress", "pending"]

    def test_items_envelope_accepted(self, settings):
        """Test a payload wrapped in an object with an items list."""
        def handler(request):
            return httpx.Response(200, json={"items": [activity_doc("a1")]})

        with make_client(settings, handler) as client:
            activities = client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert [a.id for a in activities] == ["a1"]

    def test_empty_result_normalized(self, settings):
        """Test an in-progress activity's empty result decodes as None."""
        def handler(request):
            return httpx.Response(200, json=[activity_doc("a1", state="in_progress", result="")])

        with make_client(settings, handler) as client:
            activities = client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert activities[0].result is None
        assert activities[0].state == ActivityState.IN_PROGRESS

    def test_invalid_document(self, settings):
        """Test a malformed activity document raises ApiError."""
        def handler(request):
            return httpx.Response(200, json=[{"id": "a1"}])

        with make_client(settings, handler) as client:
            with pytest.raises(ApiError, match="Invalid activity document"):
                client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

    def test_invalid_json(self, settings):
        """Test a non-JSON body raises ApiError."""
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        with make_client(settings, handler) as client:
            with pytest.raises(ApiError, match="Invalid JSON"):
                client.load_activities(ActivityResource(project="proj1"), ActivityFilters())


class TestPagination:
    """Excluded types are filtered locally, so extra pages may be needed."""

    def setup_method(self):
        self.requests = []

    def test_pages_until_limit_filled(self, settings):
        """Test paging continues from the oldest activity seen."""
        def handler(request):
            self.requests.append(request)
            if "starts_at" not in request.url.params:
                return httpx.Response(200, json=[
                    activity_doc("a5", day=5),
                    activity_doc("a4", type="environment.backup", day=4),
                ])
            return httpx.Response(200, json=[
                activity_doc("a4", type="environment.backup", day=4),
                activity_doc("a3", day=3),
            ])

        filters = ActivityFilters(limit=2, exclude_types=["environment.backup"])
        with make_client(settings, handler) as client:
            activities = client.load_activities(ActivityResource(project="proj1"), filters)

        assert [a.id for a in activities] == ["a5", "a3"]
        assert len(self.requests) == 2
        assert self.requests[1].url.params["starts_at"] == "2024-03-04T12:00:00+00:00"

    def test_short_page_stops(self, settings):
        """Test a page smaller than the limit means there is nothing more."""
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json=[
                activity_doc("a2", day=2),
                activity_doc("a1", type="environment.backup", day=1),
            ])

        filters = ActivityFilters(limit=5, exclude_types=["environment.backup"])
        with make_client(settings, handler) as client:
            activities = client.load_activities(ActivityResource(project="proj1"), filters)

        assert [a.id for a in activities] == ["a2"]
        assert len(self.requests) == 1

    def test_repeated_page_stops(self, settings):
        """Test an API that keeps returning the same page does not loop forever."""
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json=[
                activity_doc("a2", type="environment.backup", day=2),
                activity_doc("a1", type="environment.backup", day=1),
            ])

        filters = ActivityFilters(limit=2, exclude_types=["environment.backup"])
        with make_client(settings, handler) as client:
            activities = client.load_activities(ActivityResource(project="proj1"), filters)

        assert activities == []
        assert len(self.requests) == 2


class TestErrorMapping:
    """HTTP statuses and transport failures map to ApiError subclasses."""

    @pytest.mark.parametrize("status,error_class", [
        (401, ApiAuthError),
        (403, ApiAuthError),
        (404, ApiNotFound),
        (429, ApiRateLimited),
        (500, ApiError),
        (400, ApiError),
    ])
    def test_status_mapping(self, settings, status, error_class):
        """Test each error status raises the matching exception."""
        def handler(request):
            return httpx.Response(status, text="nope")

        with make_client(settings, handler) as client:
            with pytest.raises(error_class) as exc_info:
                client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert exc_info.value.status_code == status

    def test_transport_error(self, settings):
        """Test a connection failure raises ApiError."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with make_client(settings, handler) as client:
            with pytest.raises(ApiError, match="Network error") as exc_info:
                client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert exc_info.value.status_code is None


class TestRetries:
    """Transient failures are retried up to http_retry times."""

    def setup_method(self):
        self.attempts = 0

    def test_recovers_after_server_error(self, settings):
        """Test a 503 followed by success returns the data."""
        def handler(request):
            self.attempts += 1
            if self.attempts == 1:
                return httpx.Response(503)
            return httpx.Response(200, json=[activity_doc("a1")])

        with make_client(dataclasses.replace(settings, http_retry=1), handler) as client:
            activities = client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert [a.id for a in activities] == ["a1"]
        assert self.attempts == 2

    def test_recovers_after_transport_error(self, settings):
        """Test a dropped connection is retried."""
        def handler(request):
            self.attempts += 1
            if self.attempts == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json=[])

        with make_client(dataclasses.replace(settings, http_retry=2), handler) as client:
            client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert self.attempts == 2

    def test_gives_up_after_retries(self, settings):
        """Test the last failing response is mapped once retries run out."""
        def handler(request):
            self.attempts += 1
            return httpx.Response(429)

        with make_client(dataclasses.replace(settings, http_retry=2), handler) as client:
            with pytest.raises(ApiRateLimited):
                client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert self.attempts == 3

    def test_no_retry_by_default(self, settings):
        """Test http_retry=0 makes a single attempt."""
        def handler(request):
            self.attempts += 1
            return httpx.Response(502)

        with make_client(settings, handler) as client:
            with pytest.raises(ApiError):
                client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert self.attempts == 1

    def test_client_errors_not_retried(self, settings):
        """Test a 404 is raised immediately."""
        def handler(request):
            self.attempts += 1
            return httpx.Response(404)

        with make_client(dataclasses.replace(settings, http_retry=3), handler) as client:
            with pytest.raises(ApiNotFound):
                client.load_activities(ActivityResource(project="proj1"), ActivityFilters())

        assert self.attempts == 1
