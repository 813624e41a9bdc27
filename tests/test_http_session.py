import asyncio

import pytest

from core.http.session import SessionState, cleanup_session, get_session


@pytest.mark.asyncio
async def test_session_reuse_and_cleanup() -> None:
    session_a = await get_session()
    session_b = await get_session()

    assert session_a is session_b
    assert session_a.headers["User-Agent"] == "RideTelemetry/1.0"
    assert SessionState.loop is asyncio.get_running_loop()

    await cleanup_session()
    assert session_a.closed
    assert SessionState.loop is None

    session_c = await get_session()
    assert session_c is not session_a

    await cleanup_session()


@pytest.mark.asyncio
async def test_session_is_recreated_after_loop_change() -> None:
    session_a = await get_session()
    stale_loop = asyncio.new_event_loop()
    stale_loop.close()
    SessionState.loop = stale_loop

    session_b = await get_session()

    assert session_b is not session_a
    assert SessionState.loop is asyncio.get_running_loop()

    await session_a.close()
    await cleanup_session()


@pytest.mark.asyncio
async def test_cleanup_without_session_is_harmless() -> None:
    await cleanup_session()
    await cleanup_session()
