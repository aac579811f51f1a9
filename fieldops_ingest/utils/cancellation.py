"""
Cooperative cancellation for long-running stages.
"""

import threading
import time

from fieldops_ingest.core.errors import OperationCancelledError


class CancellationToken:
    """
    Deadline and/or explicit cancel signal checked between units of work.

    Usage:
        token = CancellationToken(timeout=120)
        ...
        token.raise_if_cancelled("before row-store write")
    """

    def __init__(self, timeout: float | None = None):
        """
        Args:
            timeout: Seconds from now after which the token counts as cancelled
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def raise_if_cancelled(self, where: str = "") -> None:
        if not self.cancelled:
            return
        reason = "deadline exceeded" if self.expired and not self._event.is_set() else "cancelled"
        suffix = f" ({where})" if where else ""
        raise OperationCancelledError(f"Operation {reason}{suffix}")
