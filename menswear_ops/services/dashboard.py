"""
Dashboard Service

Headline KPIs, today's and upcoming functions and the recent activity feed.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from ..models import DashboardKPIs, FunctionSummary, OrderStatus, RecentActivityItem
from .base import BaseService

logger = logging.getLogger(__name__)

# Estimated average value of a completed order, in GBP
AVERAGE_ORDER_VALUE = 800
ACTIVE_CUSTOMER_WINDOW_DAYS = 365
FITTING_STATUSES = (OrderStatus.CONFIRMED.value, OrderStatus.IN_PROGRESS.value)


class DashboardService(BaseService):
    """Read-only aggregates for the dashboard"""

    async def _count(self, operation: str, query) -> int:
        response = await self._execute(operation, query)
        return response.count or 0

    async def get_kpis(self, today: Optional[date] = None) -> DashboardKPIs:
        """
        Compute the dashboard KPIs

        Revenue is an estimate: completed orders this month times the
        average order value.
        """
        today = today or date.today()
        start_of_month = today.replace(day=1)
        active_since = (datetime.combine(today, time.min, tzinfo=timezone.utc)
                        - timedelta(days=ACTIVE_CUSTOMER_WINDOW_DAYS))

        total_orders = await self._count(
            "count orders",
            self.supabase.table('orders').select('*', count='exact', head=True),
        )
        active_customers = await self._count(
            "count active customers",
            self.supabase.table('customers')
            .select('*, orders!inner(*)', count='exact', head=True)
            .gte('orders.created_at', active_since.isoformat()),
        )
        todays_functions = await self._count(
            "count today's functions",
            self.supabase.table('orders')
            .select('*', count='exact', head=True)
            .eq('wedding_date', today.isoformat()),
        )

        response = await self._execute(
            "fetch orders needing fittings",
            self.supabase.table('order_summary')
            .select('id, actual_members, total_members')
            .in_('status', list(FITTING_STATUSES)),
        )
        pending_fittings = sum(
            (row.get('total_members') or 0) - (row.get('actual_members') or 0)
            for row in self._rows(response)
            if (row.get('actual_members') or 0) < (row.get('total_members') or 0)
        )

        completed_this_month = await self._count(
            "count completed orders",
            self.supabase.table('orders')
            .select('*', count='exact', head=True)
            .eq('status', OrderStatus.COMPLETED.value)
            .gte('wedding_date', start_of_month.isoformat()),
        )

        return DashboardKPIs(
            total_orders=total_orders,
            active_customers=active_customers,
            todays_functions=todays_functions,
            pending_fittings=pending_fittings,
            revenue_this_month=completed_this_month * AVERAGE_ORDER_VALUE,
            completed_orders_this_month=completed_this_month,
        )

    async def get_todays_functions(self, today: Optional[date] = None) -> List[FunctionSummary]:
        today = today or date.today()
        query = (
            self.supabase.table('order_summary')
            .select('*')
            .eq('wedding_date', today.isoformat())
            .order('customer_name')
        )
        response = await self._execute("fetch today's functions", query)
        return [FunctionSummary.model_validate(row) for row in self._rows(response)]

    async def get_upcoming_functions(self, days: int = 7,
                                     today: Optional[date] = None) -> List[FunctionSummary]:
        """Functions from today through ``days`` days ahead, inclusive"""
        today = today or date.today()
        end_date = today + timedelta(days=days)
        query = (
            self.supabase.table('order_summary')
            .select('*')
            .gte('wedding_date', today.isoformat())
            .lte('wedding_date', end_date.isoformat())
            .order('wedding_date')
            .order('customer_name')
        )
        response = await self._execute("fetch upcoming functions", query)
        return [FunctionSummary.model_validate(row) for row in self._rows(response)]

    async def get_recent_activity(self, limit: int = 10) -> List[RecentActivityItem]:
        query = (
            self.supabase.table('activity_logs')
            .select('*')
            .order('created_at', desc=True)
            .limit(limit)
        )
        response = await self._execute("fetch recent activity", query)
        return [RecentActivityItem.model_validate(row) for row in self._rows(response)]
