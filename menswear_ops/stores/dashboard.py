import asyncio
import logging
from typing import List, Optional

from ..models import DashboardKPIs, FunctionSummary, RecentActivityItem
from ..services import DashboardService
from .base import BaseStore

logger = logging.getLogger(__name__)


class DashboardStore(BaseStore):
    """KPIs, today's and upcoming functions and the activity feed, refreshed together"""

    def __init__(self, service: DashboardService, upcoming_days: int = 7, activity_limit: int = 10):
        super().__init__()
        self.service = service
        self.upcoming_days = upcoming_days
        self.activity_limit = activity_limit
        self.kpis: Optional[DashboardKPIs] = None
        self.todays_functions: List[FunctionSummary] = []
        self.upcoming_functions: List[FunctionSummary] = []
        self.recent_activity: List[RecentActivityItem] = []
        self._refresh_task: Optional[asyncio.Task] = None

    async def _load(self):
        return await asyncio.gather(
            self.service.get_kpis(),
            self.service.get_todays_functions(),
            self.service.get_upcoming_functions(self.upcoming_days),
            self.service.get_recent_activity(self.activity_limit),
        )

    async def refresh(self) -> None:
        """Fetch all four panels in parallel; a failure leaves the previous data in place"""
        token, results = await self._track("Failed to fetch dashboard data", self._load, reraise=False)
        if results is not None and self.is_current(token):
            self.kpis, self.todays_functions, self.upcoming_functions, self.recent_activity = results

    def start_auto_refresh(self, interval_seconds: float) -> asyncio.Task:
        """Refresh every ``interval_seconds`` until stop_auto_refresh() is called"""
        self.stop_auto_refresh()

        async def _loop():
            while True:
                await asyncio.sleep(interval_seconds)
                await self.refresh()

        self._refresh_task = asyncio.create_task(_loop())
        logger.debug(f"Dashboard auto refresh every {interval_seconds}s")
        return self._refresh_task

    def stop_auto_refresh(self) -> Optional[asyncio.Task]:
        """Cancel the refresh loop; returns the cancelled task, if any"""
        task, self._refresh_task = self._refresh_task, None
        if task is not None:
            task.cancel()
        return task

    async def close(self) -> None:
        """Stop auto refresh and wait for the loop to finish unwinding"""
        task = self.stop_auto_refresh()
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Dashboard auto refresh stopped")
