"""
Unit Tests for Performance Monitoring
Tests for: concurrent fetch, failure handling, auto refresh cancellation
"""
import asyncio

import pytest

from sgcadmin.pages.performance import AutoRefresher, PerformanceMonitor, PerformancePage

ENDPOINTS = (
    "performance/system-health",
    "performance/database-stats",
    "performance/active-sessions",
    "performance/error-rates",
    "performance/metrics",
)


@pytest.fixture
def healthy(backend):
    backend.on("GET", "performance/system-health", data={"status": "healthy", "uptime": 3600})
    backend.on("GET", "performance/database-stats", data={"collections": 12})
    backend.on("GET", "performance/active-sessions", data=[{"user": "u1"}])
    backend.on("GET", "performance/error-rates", data={"rate": 0.5})
    backend.on("GET", "performance/metrics", data=[{"name": "cpu", "value": 12.5}])
    return backend


async def spin(times=5):
    for _ in range(times):
        await asyncio.sleep(0)


class TestPerformanceMonitor:
    async def test_fetch_all_hits_every_endpoint(self, healthy, admin, api):
        monitor = PerformanceMonitor(api)

        snapshot = await monitor.fetch_all()

        assert sorted(r.path for r in healthy.requests) == sorted(ENDPOINTS)
        assert healthy.calls("GET", "performance/error-rates")[0].params == {"hours": "24"}
        assert healthy.calls("GET", "performance/metrics")[0].params == {"hours": "24"}
        assert healthy.calls("GET", "performance/system-health")[0].params == {}
        assert snapshot.health_status == "healthy"
        assert snapshot.active_sessions == [{"user": "u1"}]
        assert monitor.loading is False

    async def test_failure_keeps_previous_snapshot(self, healthy, admin, api):
        monitor = PerformanceMonitor(api)
        first = await monitor.fetch_all()

        healthy.on("GET", "performance/database-stats", status=500)
        result = await monitor.fetch_all()

        assert result is None
        assert monitor.snapshot is first
        assert monitor.error_message == "Failed to fetch performance data"

    async def test_disposed_monitor_sends_nothing(self, healthy, admin, api):
        monitor = PerformanceMonitor(api)
        monitor.dispose()

        assert await monitor.fetch_all() is None
        assert healthy.requests == []


class TestAutoRefresher:
    async def test_runs_callback_on_interval(self):
        calls = []
        waits = []

        async def fake_sleep(seconds):
            waits.append(seconds)
            await asyncio.sleep(0)

        async def callback():
            calls.append(True)

        refresher = AutoRefresher(callback, sleep=fake_sleep)
        refresher.set_interval(10)
        await spin()
        refresher.stop()

        assert calls
        assert set(waits) == {10}

    async def test_turning_off_cancels_task(self):
        async def callback():
            pass

        refresher = AutoRefresher(callback)
        refresher.set_interval(30)
        task = refresher.task

        refresher.set_interval(0)
        await spin()

        assert task.cancelled()
        assert refresher.running is False
        assert refresher.interval == 0

    async def test_changing_interval_replaces_task(self):
        async def callback():
            pass

        refresher = AutoRefresher(callback)
        refresher.set_interval(10)
        old_task = refresher.task

        refresher.set_interval(60)
        await spin()

        assert old_task.cancelled()
        assert refresher.running is True
        assert refresher.interval == 60
        refresher.stop()

    async def test_invalid_interval_rejected(self):
        async def callback():
            pass

        refresher = AutoRefresher(callback)

        with pytest.raises(ValueError):
            refresher.set_interval(5)


class TestPerformancePage:
    async def test_close_stops_refresh_and_ignores_later_rounds(self, healthy, admin, api, config):
        page = PerformancePage(api, admin, config)
        await page.open()
        page.set_refresh_interval(10)
        task = page.refresher.task

        page.close()
        await spin()
        healthy.reset()

        assert task.cancelled()
        assert await page.refresh() is None
        assert healthy.requests == []

    async def test_unauthorized_round_marks_page(self, backend, admin, api, config):
        for endpoint in ENDPOINTS:
            backend.on("GET", endpoint, status=401, message="Token expired")
        page = PerformancePage(api, admin, config)

        await page.open()

        assert page.unauthorized is True
        assert page.banners.error_text == "Token expired"
        assert page.snapshot is None

    async def test_refresh_hook_runs_each_round_until_closed(self, healthy, admin, api, config):
        seen = []
        page = PerformancePage(api, admin, config, on_refresh=lambda current: seen.append(current.snapshot))

        await page.refresh()
        page.close()
        await page.refresh()

        assert len(seen) == 1
        assert seen[0].health_status == "healthy"
