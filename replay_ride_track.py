"""Replay a recorded GPS track through the tracker.

Example:
    python replay_ride_track.py --ride-id 42 --track samples/track.json --interval 0.5
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections.abc import Sequence

from config import API_BASE_URL, LOG_LEVEL
from core.exceptions import TelemetryError
from core.http import cleanup_session
from tracking.models import LocationSample, LocationUpdate, TrackerNotice, TrackerSettings
from tracking.replay import ReplayLocationCapability, load_track
from tracking.services.ingestion import RideLocationIngestClient
from tracking.services.tracker import TrackerCallbacks, TrackerStateMachine
from tracking.state import TrackerState

logger = logging.getLogger(__name__)


class LoggingSender:
    """Batch sender for --dry-run: logs batches instead of posting them."""

    async def send_batch(self, ride_id: str, samples: Sequence[LocationSample]) -> None:
        logger.info(
            "Dry run: would post %d locations for ride %s: %s",
            len(samples),
            ride_id,
            json.dumps([s.to_payload() for s in samples]),
        )


def _print_update(update: LocationUpdate) -> None:
    stats = update.statistics
    print(
        f"{update.timestamp.isoformat()} "
        f"{update.latitude:.6f},{update.longitude:.6f} "
        f"acc={update.accuracy_meters:.0f}m ({update.accuracy_rating.value}) "
        f"dist={stats.total_distance_km:.3f}km signal={stats.signal_strength.value}",
    )


def _print_notice(notice: TrackerNotice) -> None:
    print(f"[{notice.level}] {notice.message}")


async def replay(args: argparse.Namespace) -> int:
    positions = load_track(args.track)
    capability = ReplayLocationCapability(
        positions,
        interval_seconds=args.interval,
        restamp=not args.keep_timestamps,
    )
    sender = LoggingSender() if args.dry_run else RideLocationIngestClient(args.base_url)
    tracker = TrackerStateMachine(
        capability,
        sender,
        callbacks=TrackerCallbacks(
            on_location_update=_print_update,
            on_notice=_print_notice,
        ),
        settings=TrackerSettings(flush_check_interval_seconds=args.interval * 5),
    )

    try:
        state = await tracker.start(args.ride_id)
        if state is not TrackerState.TRACKING:
            print(f"Tracking did not start: {tracker.error}")
            return 1
        await capability.finished.wait()
        # Let the last replayed fix reach the tracker.
        await asyncio.sleep(args.interval)
        stats = await tracker.stop()
    finally:
        await cleanup_session()

    if stats is not None:
        print(json.dumps(stats.model_dump(mode="json", by_alias=True), indent=2))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay a recorded GPS track")
    parser.add_argument("--ride-id", required=True, help="Ride to report locations for")
    parser.add_argument("--track", required=True, help="JSON file of recorded fixes")
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between replayed fixes",
    )
    parser.add_argument("--base-url", default=API_BASE_URL, help="Backend API base URL")
    parser.add_argument(
        "--keep-timestamps",
        action="store_true",
        help="Use the recorded timestamps instead of replay time",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log batches instead of posting them",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        return asyncio.run(replay(args))
    except TelemetryError as e:
        logger.error("Replay failed: %s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
