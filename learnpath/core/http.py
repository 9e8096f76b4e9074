"""HTTP access to the learning-platform backend.

Wraps ``httpx.AsyncClient`` with bearer authentication, the blanket retry
policy (one extra attempt on transport errors) and translation of error
responses into the progression error taxonomy.
"""

from collections.abc import Callable
from typing import Any

import httpx

from learnpath.core.exceptions import (
    AttemptLimitExceededError,
    BackendError,
    NetworkFailureError,
    NotAuthenticatedError,
    SyncConflictError,
)
from learnpath.core.logging import get_logger


logger = get_logger(__name__)

TokenProvider = Callable[[], str | None]

# Error codes the backend uses for submissions it refuses to record
CONFLICT_CODES = frozenset({"already_completed", "duplicate_submission"})
LIMIT_CODES = frozenset({"max_attempts_reached"})


def _error_payload(response: httpx.Response) -> tuple[str | None, str]:
    """Extract (code, message) from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return None, response.text[:200]
    if not isinstance(body, dict):
        return None, str(body)[:200]
    code = body.get("code") or body.get("error")
    message = body.get("message") or body.get("detail") or ""
    return (str(code) if code else None), str(message)


def raise_for_backend_error(response: httpx.Response) -> None:
    """Raise the matching ``ProgressionError`` for an error response."""
    if response.status_code < httpx.codes.BAD_REQUEST:
        return

    code, message = _error_payload(response)

    if response.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
        raise NotAuthenticatedError(message or "Credential rejected by backend")
    if response.status_code == httpx.codes.CONFLICT or code in CONFLICT_CODES:
        raise SyncConflictError(message or "Backend reported a conflicting record")
    if code in LIMIT_CODES:
        raise AttemptLimitExceededError(message or "Maximum attempts reached")

    raise BackendError(
        message or f"Backend error: {response.status_code}",
        status_code=response.status_code,
    )


class BackendClient:
    """Authenticated JSON client for the backend REST API."""

    def __init__(
        self,
        base_url: str,
        token: str | TokenProvider | None,
        timeout: float = 10.0,
        retries: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Backend root URL.
            token: Bearer credential, or a callable returning the current one.
            timeout: Per-request timeout in seconds.
            retries: Extra attempts after a transport error.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self._token = token
        self.retries = retries
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def token(self) -> str | None:
        if callable(self._token):
            return self._token()
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request and return a successful response.

        Raises:
            NotAuthenticatedError: No credential (no request is sent) or 401/403.
            NetworkFailureError: Transport error after the retry budget.
            SyncConflictError: Duplicate or already-completed record.
            AttemptLimitExceededError: Backend refused a further quiz attempt.
            BackendError: Any other error status.
        """
        token = self.token
        if not token:
            raise NotAuthenticatedError

        headers = {"Authorization": f"Bearer {token}"}
        last_error: httpx.TransportError | None = None

        for attempt in range(self.retries + 1):
            try:
                response = await self._client.request(
                    method, path, json=json, params=params, headers=headers
                )
            except httpx.TransportError as e:
                last_error = e
                logger.warning(
                    "backend_request_transport_error",
                    method=method,
                    path=path,
                    attempt=attempt + 1,
                    error=str(e),
                )
                continue

            if response.status_code >= httpx.codes.BAD_REQUEST:
                logger.info(
                    "backend_request_rejected",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                )
            raise_for_backend_error(response)
            return response

        logger.error(
            "backend_request_failed",
            method=method,
            path=path,
            attempts=self.retries + 1,
            error=str(last_error),
        )
        raise NetworkFailureError(f"Backend unreachable: {last_error}") from last_error

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
