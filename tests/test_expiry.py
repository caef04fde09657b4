"""
Tests for the expiry sweep and its scheduler.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from sharehub.core.config import Settings
from sharehub.tasks import expiry
from sharehub.tasks.expiry import ExpirySweepScheduler, sweep_expired_resources

from conftest import fetch_resource


def snapshot(row) -> dict:
    return {column: getattr(row, column) for column in (
        "name", "resource_url", "access_token", "expiration_time",
        "owner_id", "created_at", "deleted_at", "file_key",
    )}


async def create_link(client, headers, expiration: datetime) -> dict:
    response = await client.post(
        "/resources",
        json={"resourceUrl": "https://example.com/x", "expirationTime": expiration.isoformat()},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestSweep:
    async def test_flags_only_lapsed_resources(self, client, alice):
        now = datetime.now(timezone.utc)
        lapsed = await create_link(client, alice, now - timedelta(minutes=1))
        current = await create_link(client, alice, now + timedelta(days=1))
        before = snapshot(await fetch_resource(lapsed["id"]))

        await sweep_expired_resources()

        lapsed_row = await fetch_resource(lapsed["id"])
        assert lapsed_row.is_expired is True
        assert snapshot(lapsed_row) == before
        assert (await fetch_resource(current["id"])).is_expired is False

    async def test_is_idempotent(self, client, alice):
        lapsed = await create_link(client, alice, datetime.now(timezone.utc) - timedelta(minutes=1))

        await sweep_expired_resources()
        first = await fetch_resource(lapsed["id"])
        await sweep_expired_resources()
        second = await fetch_resource(lapsed["id"])

        assert first.is_expired is second.is_expired is True
        assert snapshot(first) == snapshot(second)

    async def test_skips_soft_deleted_resources(self, client, alice):
        lapsed = await create_link(client, alice, datetime.now(timezone.utc) - timedelta(minutes=1))
        await client.delete(f"/resources/{lapsed['id']}", headers=alice)

        await sweep_expired_resources()

        assert (await fetch_resource(lapsed["id"])).is_expired is False

    async def test_short_lived_link_scenario(self, client, alice):
        created = await create_link(client, alice, datetime.now(timezone.utc) + timedelta(seconds=1))
        access_path = f"/resources/access/{created['access_token']}"

        response = await client.get(access_path)
        assert response.status_code == 200
        assert response.json()["resource_url"] == "https://example.com/x"

        await sweep_expired_resources(now=datetime.now(timezone.utc) + timedelta(seconds=5))

        assert (await fetch_resource(created["id"])).is_expired is True
        assert (await client.get(access_path)).status_code == 404

    async def test_errors_are_logged_not_raised(self, caplog):
        def broken_session_factory():
            raise RuntimeError("database unavailable")

        with caplog.at_level(logging.ERROR, logger="sharehub.tasks.expiry"):
            result = await sweep_expired_resources(session_factory=broken_session_factory)

        assert result is None
        assert "Error marking expired resources" in caplog.text
        assert "database unavailable" in caplog.text


class TestScheduler:
    def test_aligns_to_interval_boundaries(self):
        scheduler = ExpirySweepScheduler(3600)

        assert scheduler.seconds_until_next_run(now=7200.0) == 3600.0
        assert scheduler.seconds_until_next_run(now=7210.0) == 3590.0

    def test_interval_defaults_per_environment(self):
        production = Settings(_env_file=None, JWT_SECRET_KEY="x", ENVIRONMENT="production")
        development = Settings(_env_file=None, JWT_SECRET_KEY="x", ENVIRONMENT="development")
        overridden = Settings(_env_file=None, JWT_SECRET_KEY="x", SWEEP_INTERVAL_SECONDS=15)

        assert production.EXPIRY_SWEEP_INTERVAL == 3600
        assert development.EXPIRY_SWEEP_INTERVAL == 60
        assert overridden.EXPIRY_SWEEP_INTERVAL == 15

    async def test_fires_until_stopped(self):
        calls = []

        async def job():
            calls.append(1)

        scheduler = ExpirySweepScheduler(0.02, job=job)
        scheduler.start()
        assert scheduler.running

        await asyncio.sleep(0.2)
        await scheduler.stop()

        assert not scheduler.running
        fired = len(calls)
        assert fired >= 2
        await asyncio.sleep(0.1)
        assert len(calls) == fired

    async def test_start_is_idempotent(self):
        async def job():
            pass

        scheduler = ExpirySweepScheduler(60, job=job)
        scheduler.start()
        task = scheduler._task
        scheduler.start()

        assert scheduler._task is task
        await scheduler.stop()

    async def test_slow_runs_may_overlap(self):
        active = 0
        peak = 0

        async def slow_job():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            try:
                await asyncio.sleep(0.2)
            finally:
                active -= 1

        scheduler = ExpirySweepScheduler(0.02, job=slow_job)
        scheduler.start()
        await asyncio.sleep(0.15)
        await scheduler.stop()

        assert peak >= 2
        assert active == 0

    async def test_early_wakeups_do_not_fire_twice(self, monkeypatch):
        # Wall clock running at half the speed of the event loop's clock
        origin = time.monotonic()

        def slow_wall_clock():
            return 1000.0 + (time.monotonic() - origin) / 2

        monkeypatch.setattr(expiry, "time", SimpleNamespace(time=slow_wall_clock))
        fired_at = []

        async def job():
            fired_at.append(slow_wall_clock())

        interval = 0.02
        scheduler = ExpirySweepScheduler(interval, job=job)
        scheduler.start()
        await asyncio.sleep(0.25)
        await scheduler.stop()

        assert len(fired_at) >= 2
        gaps = [later - earlier for earlier, later in zip(fired_at, fired_at[1:])]
        assert all(gap > interval / 2 for gap in gaps)
