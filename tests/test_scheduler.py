# tests/test_scheduler.py
"""Periodic job loops."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from porteria.services.scheduler import run_every, start_background_jobs, stop_background_jobs


class TestScheduler:
    @pytest.mark.asyncio
    async def test_loop_survives_failing_job(self):
        calls = []

        async def job():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")

        task = asyncio.create_task(run_every("flaky", 0.005, job))
        await asyncio.sleep(0.1)
        await stop_background_jobs([task])
        assert len(calls) >= 2
        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_jobs_run_expiry_and_live_status(self):
        ctx = MagicMock()
        ctx.settings.RESERVATION_EXPIRY_INTERVAL_SECONDS = 60
        ctx.settings.LIVE_STATUS_INTERVAL_SECONDS = 60
        ctx.reservations.expire_overdue.return_value = 0
        ctx.sync.push_live_status = AsyncMock(return_value=True)

        tasks = start_background_jobs(ctx)
        await asyncio.sleep(0.05)
        await stop_background_jobs(tasks)

        ctx.reservations.expire_overdue.assert_called_once()
        ctx.sync.push_live_status.assert_awaited_once_with(ctx.session_factory)
