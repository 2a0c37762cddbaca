"""
Request correlation

Tracks requests awaiting a response, keyed by JSON-RPC id. Each entry pairs
an asyncio future with its own timeout timer. An entry leaves the map through
exactly one path (response, timeout, bulk failure or discard), and whichever
path pops it first is the only one that completes the future.
"""

import asyncio
import time
from dataclasses import dataclass, field

from ..types import McpResponse
from ..utils.logging_config import get_logger
from .errors import ConnectionLostError, RequestTimeoutError

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass
class PendingRequest:
    """A dispatched request whose response has not been received yet."""

    request_id: int
    future: asyncio.Future
    timeout: float | None
    method: str = ""
    timer: asyncio.TimerHandle | None = None
    created_at: float = field(default_factory=time.monotonic)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class RequestCorrelator:
    """Matches inbound responses to outstanding requests by id."""

    def __init__(self, default_timeout: float | None = DEFAULT_REQUEST_TIMEOUT) -> None:
        self.default_timeout = default_timeout
        self._pending: dict[int, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    @property
    def pending_ids(self) -> list[int]:
        return list(self._pending)

    def register(
        self, request_id: int, timeout: float | None = None, method: str = ""
    ) -> asyncio.Future:
        """
        Register a request and arm its timeout.

        Must be called from within the running event loop.

        Args:
            request_id: JSON-RPC id of the request
            timeout: Seconds to wait for the response (defaults to default_timeout,
                None in both disables the timer)
            method: Request method, kept for diagnostics

        Returns:
            Future resolved with the McpResponse

        Raises:
            ValueError: If the id is already pending
        """
        if request_id in self._pending:
            raise ValueError(f"Request id {request_id} is already pending")

        if timeout is None:
            timeout = self.default_timeout

        loop = asyncio.get_running_loop()
        entry = PendingRequest(
            request_id=request_id,
            future=loop.create_future(),
            timeout=timeout,
            method=method,
        )
        if timeout is not None:
            entry.timer = loop.call_later(timeout, self.expire, request_id)

        self._pending[request_id] = entry
        return entry.future

    def resolve(self, response: McpResponse) -> bool:
        """
        Complete the request matching the response id.

        Returns:
            True if a pending request was resolved, False if the response was
            discarded (late, duplicate or unknown id)
        """
        request_id = response.get("id")
        entry = self._pending.pop(request_id, None)  # type: ignore[arg-type]
        if entry is None:
            logger.debug(f"Discarding response for unknown or expired request {request_id}")
            return False

        entry.cancel_timer()
        if not entry.future.done():
            entry.future.set_result(response)
        return True

    def expire(self, request_id: int) -> bool:
        """Fail a request whose deadline has passed. No-op if it already completed."""
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return False

        entry.timer = None
        elapsed = time.monotonic() - entry.created_at
        logger.warning(
            f"UPSTREAM_MCP ✗ Request {request_id} ({entry.method or 'unknown'}) "
            f"timed out after {elapsed:.2f}s"
        )
        if not entry.future.done():
            entry.future.set_exception(RequestTimeoutError(request_id, entry.timeout or 0.0))
        return True

    def fail_all(self, reason: str, returncode: int | None = None, stderr: str = "") -> int:
        """
        Fail every pending request with ConnectionLostError and clear the map.

        Returns:
            Number of requests that were failed
        """
        pending, self._pending = self._pending, {}
        for request_id, entry in pending.items():
            entry.cancel_timer()
            if not entry.future.done():
                entry.future.set_exception(
                    ConnectionLostError(
                        reason, request_id=request_id, returncode=returncode, stderr=stderr
                    )
                )

        if pending:
            logger.warning(f"Failed {len(pending)} pending request(s): {reason}")
        return len(pending)

    def discard(self, request_id: int) -> bool:
        """Drop an entry without completing it (the caller stopped waiting)."""
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return False
        entry.cancel_timer()
        return True
