"""Tests for the backend HTTP client."""

import httpx
import pytest

from learnpath.core.exceptions import (
    AttemptLimitExceededError,
    BackendError,
    NetworkFailureError,
    NotAuthenticatedError,
    SyncConflictError,
)
from learnpath.core.http import BackendClient, raise_for_backend_error
from learnpath.core.results import Outcome


class TestRaiseForBackendError:
    """Error responses map onto the error taxonomy."""

    @pytest.mark.parametrize(
        ("status_code", "body", "expected"),
        [
            (401, {"message": "Invalid token"}, NotAuthenticatedError),
            (403, {}, NotAuthenticatedError),
            (409, {"message": "duplicate"}, SyncConflictError),
            (400, {"code": "already_completed"}, SyncConflictError),
            (400, {"code": "max_attempts_reached"}, AttemptLimitExceededError),
            (500, {"message": "boom"}, BackendError),
            (404, None, BackendError),
        ],
    )
    def test_mapping(self, status_code, body, expected) -> None:
        response = httpx.Response(status_code, json=body)
        with pytest.raises(expected):
            raise_for_backend_error(response)

    def test_success_passes(self) -> None:
        raise_for_backend_error(httpx.Response(201, json={}))


class TestBackendClient:
    """Tests for BackendClient.request."""

    @pytest.mark.asyncio
    async def test_missing_token_sends_nothing(self) -> None:
        """No credential means no request at all."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        async with BackendClient(
            "http://backend.test", None, transport=httpx.MockTransport(handler)
        ) as backend:
            assert backend.is_authenticated is False
            with pytest.raises(NotAuthenticatedError):
                await backend.request("GET", "/api/courses/c")

        assert calls == []

    @pytest.mark.asyncio
    async def test_token_provider_read_per_request(self) -> None:
        """A callable credential is read at request time."""
        tokens = iter(["first", "second"])
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["Authorization"])
            return httpx.Response(200, json={})

        async with BackendClient(
            "http://backend.test",
            lambda: next(tokens),
            transport=httpx.MockTransport(handler),
        ) as backend:
            await backend.request("GET", "/a")
            await backend.request("GET", "/b")

        assert seen == ["Bearer first", "Bearer second"]

    @pytest.mark.asyncio
    async def test_transport_error_retried_once(self) -> None:
        """One retry, then the request succeeds."""
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={"ok": True})

        async with BackendClient(
            "http://backend.test", "token", transport=httpx.MockTransport(handler)
        ) as backend:
            response = await backend.request("GET", "/api/courses/c")

        assert response.json() == {"ok": True}
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_error_status_not_retried(self) -> None:
        """HTTP error statuses are not retried."""
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(500)

        async with BackendClient(
            "http://backend.test", "token", transport=httpx.MockTransport(handler)
        ) as backend:
            with pytest.raises(BackendError):
                await backend.request("GET", "/x")

        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_retry_budget_exhausted(self) -> None:
        """Persistent transport errors become a network failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with BackendClient(
            "http://backend.test",
            "token",
            retries=0,
            transport=httpx.MockTransport(handler),
        ) as backend:
            with pytest.raises(NetworkFailureError):
                await backend.request("GET", "/x")


class TestOutcome:
    """Tests for the tagged result."""

    def test_ok(self) -> None:
        outcome = Outcome.ok(5)
        assert outcome.success is True
        assert outcome.code is None
        assert outcome.unwrap() == 5

    def test_fail(self) -> None:
        outcome = Outcome.fail(SyncConflictError())
        assert outcome.success is False
        assert outcome.code == "sync_conflict"
        with pytest.raises(SyncConflictError):
            outcome.unwrap()
