"""Tests for AutoRefreshTimer."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from room_monitor.auto_refresh import AutoRefreshTimer, format_countdown

pytestmark = pytest.mark.asyncio


async def _run_until(timer, predicate, limit=500):
    task = asyncio.create_task(timer.run_forever())
    try:
        for _ in range(limit):
            await asyncio.sleep(0.001)
            if predicate():
                break
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


async def test_triggers_when_countdown_reaches_zero():
    trigger = AsyncMock()
    timer = AutoRefreshTimer(trigger, interval=0.003, tick=0.001)

    await _run_until(timer, lambda: trigger.await_count >= 2)

    assert trigger.await_count >= 2
    assert timer.active is False


async def test_failing_trigger_keeps_timer_alive():
    trigger = AsyncMock(side_effect=RuntimeError("cycle blew up"))
    timer = AutoRefreshTimer(trigger, interval=0.002, tick=0.001)

    await _run_until(timer, lambda: trigger.await_count >= 2)

    assert trigger.await_count >= 2


async def test_reset_restores_full_interval():
    timer = AutoRefreshTimer(AsyncMock(), interval=600)
    timer.countdown = 3
    timer.reset()
    assert timer.countdown == 600


async def test_format_countdown():
    assert format_countdown(625) == "10:25"
    assert format_countdown(5) == "0:05"
    assert format_countdown(-1) == "0:00"
