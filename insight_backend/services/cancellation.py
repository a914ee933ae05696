"""
Cancellation tokens for superseded insight requests.

A token belongs to exactly one in-flight request. The insight service keeps a
table of subject -> live token; a newer request for the same subject cancels
the old token before it proceeds. Cancellation is cooperative: the pipeline
checks the token between stages and races it against the network call. A
cancelled request never writes the cache and never hands its own result to a
caller.
"""

import asyncio
from typing import Optional


class RequestSuperseded(Exception):
    """Raised inside the pipeline when the request's token has been cancelled."""


class CancellationToken:
    """
    One-shot cancellation flag that can also be awaited.

    Args:
        label: Free-form description used in log messages.
    """

    def __init__(self, label: str = ""):
        self.label = label
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "superseded") -> None:
        """Signal cancellation. Later calls keep the first reason."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestSuperseded(self.reason or "cancelled")

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "live"
        return f"CancellationToken({self.label!r}, {state})"
