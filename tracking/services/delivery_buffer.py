"""
Batching and delivery of validated samples.

Samples are queued in arrival order and sent in batches once the queue
holds ``flush_batch_size`` samples or its oldest sample is older than
``flush_max_age_ms``. A flush detaches the whole queue before the network
send starts, so samples appended while a send is in flight go into a fresh
queue. A failed batch is put back in front of whatever is queued by then.

Delivery is at-least-once: a batch the backend partly stored before
failing is sent again in full.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Protocol

from core.exceptions import DeliveryFailureError
from date_utils import elapsed_ms, get_current_utc_time
from tracking.models import LocationSample, TrackerSettings

logger = logging.getLogger(__name__)


class BatchSender(Protocol):
    async def send_batch(
        self,
        ride_id: str,
        samples: Sequence[LocationSample],
    ) -> None:
        """Deliver one batch or raise DeliveryFailureError."""
        ...


class DeliveryBuffer:
    """Owns the pending-sample queue for one tracking session."""

    def __init__(
        self,
        ride_id: str,
        sender: BatchSender,
        settings: TrackerSettings | None = None,
        *,
        clock: Callable[[], datetime] = get_current_utc_time,
    ) -> None:
        settings = settings or TrackerSettings()
        self.ride_id = ride_id
        self._sender = sender
        self._clock = clock
        self.batch_size = settings.flush_batch_size
        self.max_age_ms = settings.flush_max_age_ms
        self._queue: list[LocationSample] = []
        self._in_flight: set[asyncio.Task[bool]] = set()
        self.delivered_count = 0
        self.failed_flushes = 0

    @property
    def pending(self) -> tuple[LocationSample, ...]:
        """Read-only view of the queue, oldest first."""
        return tuple(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def oldest_age_ms(self) -> float | None:
        if not self._queue:
            return None
        return elapsed_ms(self._queue[0].timestamp, self._clock())

    def should_flush(self) -> bool:
        if len(self._queue) >= self.batch_size:
            return True
        age = self.oldest_age_ms()
        return age is not None and age > self.max_age_ms

    def append(self, sample: LocationSample) -> asyncio.Task[bool] | None:
        """Queue a sample and start a flush if the policy says so."""
        self._queue.append(sample)
        return self.maybe_flush()

    def maybe_flush(self) -> asyncio.Task[bool] | None:
        """Start a background flush when the size or age trigger fires."""
        if not self.should_flush():
            return None
        task = asyncio.create_task(self._flush(), name=f"flush-ride-{self.ride_id}")
        self._in_flight.add(task)
        task.add_done_callback(self._flush_done)
        return task

    async def force_flush(self) -> bool:
        """Send whatever is queued regardless of size or age."""
        if not self._queue:
            return True
        return await self._flush()

    async def wait_in_flight(self) -> None:
        """Wait for background flushes started so far."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def _flush_done(self, task: asyncio.Task[bool]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Unexpected error flushing locations for ride %s",
                self.ride_id,
                exc_info=exc,
            )

    async def _flush(self) -> bool:
        if not self._queue:
            return True

        batch = self._queue
        self._queue = []

        try:
            await self._sender.send_batch(self.ride_id, batch)
        except DeliveryFailureError as e:
            self._queue[:0] = batch
            self.failed_flushes += 1
            logger.warning(
                "Error sending %d location updates for ride %s, requeued: %s",
                len(batch),
                self.ride_id,
                e,
            )
            return False
        except asyncio.CancelledError:
            self._queue[:0] = batch
            raise
        except Exception:
            self._queue[:0] = batch
            self.failed_flushes += 1
            logger.exception(
                "Unexpected error sending %d location updates for ride %s, requeued",
                len(batch),
                self.ride_id,
            )
            return False

        self.delivered_count += len(batch)
        logger.info(
            "Sent %d location updates to server for ride %s",
            len(batch),
            self.ride_id,
        )
        return True
