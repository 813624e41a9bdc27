"""Backend ingestion client for ride location batches."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import aiohttp

from config import API_BASE_URL, HTTP_TIMEOUT_SECONDS
from core.exceptions import DeliveryFailureError, ExternalServiceError
from core.http import get_session, request_json
from tracking.models import LocationSample

logger = logging.getLogger(__name__)


class RideLocationIngestClient:
    """POSTs ``{"locations": [...]}`` to ``/rides/{ride_id}/location``."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        *,
        session: Any | None = None,
        timeout_seconds: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def location_url(self, ride_id: str) -> str:
        return f"{self.base_url}/rides/{ride_id}/location"

    async def send_batch(
        self,
        ride_id: str,
        samples: Sequence[LocationSample],
    ) -> None:
        url = self.location_url(ride_id)
        payload = {"locations": [sample.to_payload() for sample in samples]}
        session = self._session or await get_session()

        try:
            await request_json(
                "POST",
                url,
                session=session,
                json=payload,
                service_name="Location ingestion",
                timeout=self._timeout,
            )
        except ExternalServiceError as e:
            raise DeliveryFailureError(e.message, e.details) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            msg = f"Location ingestion request failed: {e!s}"
            raise DeliveryFailureError(msg, {"url": url}) from e

        logger.debug("Posted %d locations to %s", len(samples), url)
