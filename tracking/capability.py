"""
Location sensing capability interface.

The platform's location service is injected into the tracker as an object
satisfying :class:`LocationSensingCapability`. Continuous updates are
delivered through a :class:`PositionSubscription`, an async iterator of
fixes and sensing errors that the tracker consumes one event at a time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from core.exceptions import SensingError
from tracking.models import PermissionState, RawPosition, SensingOptions

logger = logging.getLogger(__name__)

PositionEvent = RawPosition | SensingError
PermissionListener = Callable[[PermissionState], None]

_CLOSED = object()


class PositionSubscription:
    """Cancellable channel of position events from one watch."""

    def __init__(self, options: SensingOptions) -> None:
        self.options = options
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def push(self, event: PositionEvent) -> None:
        """Deliver a fix or an error. Ignored once cancelled."""
        if self._cancelled:
            logger.debug("Dropping event for cancelled subscription")
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        """End the stream from the producer side."""
        self._queue.put_nowait(_CLOSED)

    def cancel(self) -> None:
        """End the stream from the consumer side."""
        if self._cancelled:
            return
        self._cancelled = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> PositionSubscription:
        return self

    async def __anext__(self) -> PositionEvent:
        if self._cancelled and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _CLOSED or self._cancelled:
            raise StopAsyncIteration
        return event  # type: ignore[return-value]


@runtime_checkable
class LocationSensingCapability(Protocol):
    """What the engine needs from the platform's location service."""

    async def get_current_position(self, options: SensingOptions) -> RawPosition:
        """Return one fix or raise a SensingError."""
        ...

    def watch_position(self, options: SensingOptions) -> PositionSubscription:
        """Start continuous updates."""
        ...

    def clear_watch(self, subscription: PositionSubscription) -> None:
        """Stop a subscription returned by watch_position."""
        ...

    async def query_permission(self) -> PermissionState:
        ...

    def on_permission_change(
        self,
        listener: PermissionListener,
    ) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        ...

    def battery_percent(self) -> int | None:
        ...
