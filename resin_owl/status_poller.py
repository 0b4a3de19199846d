"""Timer-driven status polling.

``StatusPoller`` runs a single task that fetches one snapshot at a time and
hands each one to a callback before the next fetch starts. Because fetches
never overlap, a client's canonicalizer is only ever driven sequentially.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from .core.protocols import BackendClient
from .errors import BackendError

LOGGER = logging.getLogger(__name__)

StatusCallback = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


class StatusPoller:
    """Poll ``client.get_status`` on an interval and publish each snapshot."""

    def __init__(
        self,
        client: BackendClient,
        callback: StatusCallback,
        *,
        interval_seconds: float,
        initial_delay_seconds: float = 0.0,
    ) -> None:
        self._client = client
        self._callback = callback
        self._interval = max(interval_seconds, 0.1)
        self._initial_delay = max(initial_delay_seconds, 0.0)
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self.failures = 0
        self.last_error: Optional[BackendError] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling; calling it again while running does nothing."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        if self._task is None:
            return

        self._stop_event.set()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def poll_once(self) -> Optional[dict[str, Any]]:
        """Fetch and publish one snapshot; returns ``None`` on backend failure."""

        try:
            snapshot = await self._client.get_status()
        except BackendError as exc:
            self.failures += 1
            self.last_error = exc
            LOGGER.warning(
                "Status poll failed (%d consecutive): %s", self.failures, exc
            )
            return None

        if self.failures:
            LOGGER.info("Status poll recovered after %d failures", self.failures)
        self.failures = 0
        self.last_error = None

        result = self._callback(snapshot)
        if inspect.isawaitable(result):
            await result
        return snapshot

    async def _poll_loop(self) -> None:
        if self._initial_delay:
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._initial_delay
                )
                return
            except asyncio.TimeoutError:
                pass

        while not self._stop_event.is_set():
            await self.poll_once()

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                break
            except asyncio.TimeoutError:
                continue


__all__ = ["StatusCallback", "StatusPoller"]
