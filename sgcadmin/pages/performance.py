"""
Performance monitoring: five backend health endpoints fetched together, with
optional periodic refresh (off / 10s / 30s / 60s).
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sgcadmin.api_client import ApiClient
from sgcadmin.banners import BannerState
from sgcadmin.config import REFRESH_INTERVALS, AdminConfig
from sgcadmin.exceptions import ErrorKind, SGCAdminError, banner_text
from sgcadmin.logging_config import get_logger
from sgcadmin.session import SessionContext


logger = get_logger(__name__)

WINDOW_HOURS = 24


@dataclass
class PerformanceSnapshot:
    system_health: Dict[str, Any] = field(default_factory=dict)
    database_stats: Dict[str, Any] = field(default_factory=dict)
    active_sessions: List[Any] = field(default_factory=list)
    error_rates: Dict[str, Any] = field(default_factory=dict)
    metrics: List[Any] = field(default_factory=list)
    fetched_at: Optional[datetime] = None

    @property
    def health_status(self) -> str:
        return str(self.system_health.get("status") or "unknown")


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


class PerformanceMonitor:
    """Fetches all five performance endpoints concurrently"""

    def __init__(self, api: ApiClient, hours: int = WINDOW_HOURS):
        self.api = api
        self.hours = hours
        self.snapshot: Optional[PerformanceSnapshot] = None
        self.error: Optional[ErrorKind] = None
        self.error_message: Optional[str] = None
        self.loading = False
        self._seq = 0
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        self._disposed = True

    async def fetch_all(self) -> Optional[PerformanceSnapshot]:
        """
        One round of requests. Any failure fails the round and keeps the
        previous snapshot; responses after ``dispose()`` are dropped.
        """
        if self._disposed:
            return None
        self._seq += 1
        seq = self._seq
        self.loading = True
        window = {"hours": self.hours}
        try:
            health, database, sessions, errors, metrics = await asyncio.gather(
                self.api.get("performance/system-health"),
                self.api.get("performance/database-stats"),
                self.api.get("performance/active-sessions"),
                self.api.get("performance/error-rates", params=window),
                self.api.get("performance/metrics", params=window),
            )
        except SGCAdminError as e:
            if self._disposed or seq != self._seq:
                return None
            self.loading = False
            self.error = e.kind
            self.error_message = banner_text(e, "Failed to fetch performance data")
            logger.warning(f"Performance refresh failed: {self.error_message}")
            return None

        if self._disposed or seq != self._seq:
            logger.debug("Discarding stale performance data")
            return None
        self.loading = False
        self.error = None
        self.error_message = None
        self.snapshot = PerformanceSnapshot(
            system_health=_as_dict(health.data),
            database_stats=_as_dict(database.data),
            active_sessions=_as_list(sessions.data),
            error_rates=_as_dict(errors.data),
            metrics=_as_list(metrics.data),
            fetched_at=datetime.now(timezone.utc),
        )
        return self.snapshot


class AutoRefresher:
    """
    Runs ``callback`` every ``interval`` seconds in a background task.

    Changing the interval or calling ``stop()`` cancels the running task
    before anything new is scheduled; interval 0 means off.
    """

    def __init__(self, callback: Callable[[], Awaitable[Any]],
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.callback = callback
        self._sleep = sleep
        self._interval = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def interval(self) -> int:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def set_interval(self, seconds: int) -> None:
        if seconds not in REFRESH_INTERVALS:
            raise ValueError(f"Refresh interval must be one of {REFRESH_INTERVALS}")
        self.stop()
        self._interval = seconds
        if seconds:
            self._task = asyncio.get_running_loop().create_task(self._run(seconds))
            logger.debug(f"Auto refresh every {seconds}s")

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._interval = 0

    async def _run(self, seconds: int) -> None:
        while True:
            await self._sleep(seconds)
            await self.callback()


class PerformancePage:
    def __init__(self, api: ApiClient, session: SessionContext, config: Optional[AdminConfig] = None,
                 on_refresh: Optional[Callable[["PerformancePage"], Any]] = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.api = api
        self.session = session
        self.config = config or AdminConfig()
        self.banners = BannerState(self.config.success_banner_seconds)
        self.monitor = PerformanceMonitor(api)
        self.refresher = AutoRefresher(self.refresh, sleep=sleep)
        self.unauthorized = False
        # Called after every round, successful or not
        self.on_refresh = on_refresh

    @property
    def snapshot(self) -> Optional[PerformanceSnapshot]:
        return self.monitor.snapshot

    async def open(self) -> None:
        await self.refresh()
        if self.config.refresh_interval:
            self.refresher.set_interval(self.config.refresh_interval)

    async def refresh(self) -> Optional[PerformanceSnapshot]:
        snapshot = await self.monitor.fetch_all()
        if self.monitor.error_message:
            self.unauthorized = self.monitor.error == ErrorKind.UNAUTHORIZED
            self.banners.error(self.monitor.error_message)
        if self.on_refresh is not None and not self.monitor.disposed:
            self.on_refresh(self)
        return snapshot

    def set_refresh_interval(self, seconds: int) -> None:
        self.refresher.set_interval(seconds)

    def close(self) -> None:
        self.refresher.stop()
        self.monitor.dispose()
