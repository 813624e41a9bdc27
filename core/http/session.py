"""HTTP session management for aiohttp.

One ClientSession is shared by every ingestion client in the process. It is
recreated when the event loop it was bound to has changed or closed, which
happens between test cases and between CLI runs in the same interpreter.
"""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from core.constants import (
    HTTP_CONNECTION_LIMIT,
    HTTP_TIMEOUT_CONNECT,
    HTTP_TIMEOUT_TOTAL,
)

logger = logging.getLogger(__name__)


class SessionState:
    """State container for aiohttp session to avoid global variables."""

    session: aiohttp.ClientSession | None = None
    loop: asyncio.AbstractEventLoop | None = None


def _bound_to_other_loop() -> bool:
    bound_loop = SessionState.loop
    if bound_loop is None:
        return False
    try:
        current_loop = asyncio.get_running_loop()
    except RuntimeError:
        return False
    return bound_loop is not current_loop or bound_loop.is_closed()


async def get_session() -> aiohttp.ClientSession:
    """Get or create the shared aiohttp ClientSession."""
    session = SessionState.session
    if session is not None and not session.closed and _bound_to_other_loop():
        logger.info("Detected event loop change. Creating new session.")
        if not SessionState.loop.is_closed():
            try:
                await session.close()
            except Exception as e:
                logger.warning("Error closing stale session: %s", e)
        SessionState.session = None
        SessionState.loop = None

    if SessionState.session is None or SessionState.session.closed:
        timeout = aiohttp.ClientTimeout(
            total=HTTP_TIMEOUT_TOTAL,
            connect=HTTP_TIMEOUT_CONNECT,
        )
        headers = {
            "User-Agent": "RideTelemetry/1.0",
            "Accept": "application/json",
        }
        connector = aiohttp.TCPConnector(limit=HTTP_CONNECTION_LIMIT)
        SessionState.session = aiohttp.ClientSession(
            timeout=timeout,
            headers=headers,
            connector=connector,
        )
        SessionState.loop = asyncio.get_running_loop()
        logger.debug("Created new aiohttp session")

    return SessionState.session


async def cleanup_session() -> None:
    """Close the shared session."""
    if SessionState.session and not SessionState.session.closed:
        try:
            await SessionState.session.close()
            logger.info("Closed aiohttp session")
        except Exception as e:
            logger.warning("Error closing session: %s", e)

    SessionState.session = None
    SessionState.loop = None
