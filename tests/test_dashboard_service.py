from datetime import date

import pytest

from menswear_ops.exceptions import ServiceError
from menswear_ops.services.dashboard import AVERAGE_ORDER_VALUE

TODAY = date(2026, 6, 15)


class TestDashboardService:
    """Unit tests for DashboardService"""

    @pytest.fixture
    def seeded(self, db):
        db.seed(
            "orders",
            {"order_number": "ORD-0001", "status": "completed", "wedding_date": "2026-06-10"},
            {"order_number": "ORD-0002", "status": "completed", "wedding_date": "2026-06-03"},
            {"order_number": "ORD-0003", "status": "completed", "wedding_date": "2026-05-30"},
            {"order_number": "ORD-0004", "status": "confirmed", "wedding_date": "2026-06-15"},
            {"order_number": "ORD-0005", "status": "draft", "wedding_date": "2026-06-20"},
        )
        db.seed(
            "order_summary",
            {"order_number": "ORD-0004", "status": "confirmed", "wedding_date": "2026-06-15",
             "customer_name": "Hart James", "total_members": 4, "actual_members": 1},
            {"order_number": "ORD-0006", "status": "in_progress", "wedding_date": "2026-06-18",
             "customer_name": "Adams Tom", "total_members": 3, "actual_members": 1},
            {"order_number": "ORD-0007", "status": "in_progress", "wedding_date": "2026-06-22",
             "customer_name": "Brown Oliver", "total_members": 2, "actual_members": 2},
            {"order_number": "ORD-0008", "status": "ready", "wedding_date": "2026-06-16",
             "customer_name": "Cole Ed", "total_members": 5, "actual_members": 0},
            {"order_number": "ORD-0005", "status": "draft", "wedding_date": "2026-06-20",
             "customer_name": "Dunn Max", "total_members": 6, "actual_members": 0},
        )

    @pytest.mark.asyncio
    async def test_kpis(self, dashboard_service, seeded):
        """Test counts, outstanding fittings and the revenue estimate"""
        kpis = await dashboard_service.get_kpis(today=TODAY)

        assert kpis.total_orders == 5
        assert kpis.todays_functions == 1
        # confirmed/in_progress only: (4 - 1) + (3 - 1)
        assert kpis.pending_fittings == 5
        assert kpis.completed_orders_this_month == 2
        assert kpis.revenue_this_month == 2 * AVERAGE_ORDER_VALUE

    @pytest.mark.asyncio
    async def test_active_customers_joins_recent_orders(self, dashboard_service, db):
        """Test active customers are counted through orders from the year before the given day"""
        await dashboard_service.get_kpis(today=TODAY)

        query = next(q for q in db.executed if q.table_name == "customers")
        assert "orders!inner" in query.columns
        assert query.count == "exact"
        assert query.head is True
        assert query.filters[0] == ("gte", "orders.created_at", "2025-06-15T00:00:00+00:00")

    @pytest.mark.asyncio
    async def test_kpis_empty_database(self, dashboard_service):
        kpis = await dashboard_service.get_kpis(today=TODAY)

        assert kpis.total_orders == 0
        assert kpis.pending_fittings == 0
        assert kpis.revenue_this_month == 0

    @pytest.mark.asyncio
    async def test_kpi_failure_raises(self, dashboard_service, db):
        db.fail("orders", "select", "connection reset")

        with pytest.raises(ServiceError) as exc_info:
            await dashboard_service.get_kpis(today=TODAY)

        assert exc_info.value.message == "Failed to count orders: connection reset"

    @pytest.mark.asyncio
    async def test_todays_functions(self, dashboard_service, seeded):
        functions = await dashboard_service.get_todays_functions(today=TODAY)

        assert [f.order_number for f in functions] == ["ORD-0004"]
        assert functions[0].members_outstanding == 3

    @pytest.mark.asyncio
    async def test_upcoming_window_is_inclusive(self, dashboard_service, seeded):
        """Test upcoming functions run from today through the last day of the window"""
        functions = await dashboard_service.get_upcoming_functions(days=7, today=TODAY)

        assert [f.order_number for f in functions] == ["ORD-0004", "ORD-0008", "ORD-0006", "ORD-0005", "ORD-0007"]

        functions = await dashboard_service.get_upcoming_functions(days=3, today=TODAY)
        assert [f.order_number for f in functions] == ["ORD-0004", "ORD-0008", "ORD-0006"]

    @pytest.mark.asyncio
    async def test_recent_activity_newest_first(self, dashboard_service, db):
        db.seed(
            "activity_logs",
            {"action": "create", "entity_type": "customer", "description": "Created customer: A",
             "created_at": "2026-06-01T09:00:00+00:00"},
            {"action": "update", "entity_type": "order", "description": "Updated order: ORD-0001",
             "created_at": "2026-06-02T09:00:00+00:00"},
            {"action": "login", "entity_type": "user", "description": "Logged in: Sam Taylor",
             "created_at": "2026-06-03T09:00:00+00:00"},
        )

        activity = await dashboard_service.get_recent_activity(limit=2)

        assert [a.description for a in activity] == ["Logged in: Sam Taylor", "Updated order: ORD-0001"]
