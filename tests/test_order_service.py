from datetime import date, timedelta

import pytest

from menswear_ops.exceptions import NotFoundError, ServiceError
from menswear_ops.models import DisplayStatus, OrderCreate, OrderMemberDetail, OrderStatus
from menswear_ops.services.orders import map_status_to_display_status

TODAY = date.today()
YESTERDAY = (TODAY - timedelta(days=1)).isoformat()
TOMORROW = (TODAY + timedelta(days=1)).isoformat()


class TestDisplayStatus:
    """Unit tests for map_status_to_display_status"""

    def test_draft_is_always_no_deposit(self):
        """Test draft maps to no_deposit whatever the date"""
        assert map_status_to_display_status("draft", YESTERDAY) == DisplayStatus.NO_DEPOSIT
        assert map_status_to_display_status("draft", TOMORROW) == DisplayStatus.NO_DEPOSIT
        assert map_status_to_display_status("draft", None) == DisplayStatus.NO_DEPOSIT

    @pytest.mark.parametrize("status", ["confirmed", "in_progress", "ready"])
    def test_in_flight_past_dated_is_past(self, status):
        """Test in-flight orders whose wedding has passed are past"""
        assert map_status_to_display_status(status, YESTERDAY) == DisplayStatus.PAST

    @pytest.mark.parametrize("status", ["confirmed", "in_progress", "ready"])
    def test_in_flight_today_or_later_is_active(self, status):
        """Test in-flight orders dated today or later are active"""
        assert map_status_to_display_status(status, TODAY) == DisplayStatus.ACTIVE
        assert map_status_to_display_status(status, TOMORROW) == DisplayStatus.ACTIVE

    def test_in_flight_without_date_is_active(self):
        """Test an undated confirmed order counts as active"""
        assert map_status_to_display_status(OrderStatus.CONFIRMED, None) == DisplayStatus.ACTIVE

    @pytest.mark.parametrize("status", ["completed", "cancelled"])
    def test_closed_orders_are_past(self, status):
        """Test completed and cancelled orders are past even if dated in the future"""
        assert map_status_to_display_status(status, TOMORROW) == DisplayStatus.PAST

    def test_explicit_today(self):
        """Test the reference date can be supplied"""
        assert map_status_to_display_status("confirmed", "2026-06-01", today=date(2026, 6, 2)) == DisplayStatus.PAST


class TestOrderService:
    """Unit tests for OrderService"""

    @pytest.fixture
    def summaries(self, db):
        return db.seed(
            "order_summary",
            {"order_number": "ORD-0001", "status": "draft", "wedding_date": TOMORROW,
             "customer_name": "Brown Oliver", "customer_id": "c-1", "total_members": 4, "actual_members": 1},
            {"order_number": "ORD-0002", "status": "confirmed", "wedding_date": YESTERDAY,
             "customer_name": "Hart James", "customer_id": "c-2", "total_members": 3, "actual_members": 3},
            {"order_number": "ORD-0003", "status": "confirmed", "wedding_date": TOMORROW,
             "customer_name": "Adams Tom", "customer_id": "c-3", "total_members": 5, "actual_members": 2},
            {"order_number": "ORD-0004", "status": "completed", "wedding_date": TOMORROW,
             "customer_name": "Cole Ed", "customer_id": "c-2", "total_members": 2, "actual_members": 2},
            {"order_number": "ORD-0005", "status": "ready", "wedding_date": None,
             "customer_name": "Dunn Max", "customer_id": "c-4", "total_members": 1, "actual_members": 0},
        )

    @pytest.mark.asyncio
    async def test_list_orders_by_date_then_customer(self, order_service, summaries):
        """Test list ordering is wedding date ascending then customer name"""
        response = await order_service.list()

        assert [o.order_number for o in response.items] == [
            "ORD-0002", "ORD-0003", "ORD-0001", "ORD-0004", "ORD-0005",
        ]

    @pytest.mark.asyncio
    async def test_list_sets_display_status(self, order_service, summaries):
        """Test every summary carries its computed display status"""
        response = await order_service.list()

        statuses = {o.order_number: o.display_status for o in response.items}
        assert statuses == {
            "ORD-0001": DisplayStatus.NO_DEPOSIT,
            "ORD-0002": DisplayStatus.PAST,
            "ORD-0003": DisplayStatus.ACTIVE,
            "ORD-0004": DisplayStatus.PAST,
            "ORD-0005": DisplayStatus.ACTIVE,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page,limit", [(1, 2), (2, 2), (3, 2), (1, 25)])
    async def test_total_is_independent_of_pagination(self, order_service, summaries, page, limit):
        """Test the reported total counts all matches, not just the page"""
        response = await order_service.list(page=page, limit=limit)

        assert response.total == 5
        assert len(response.items) == min(limit, 5 - (page - 1) * limit)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [
        ("active", {"ORD-0003", "ORD-0005"}),
        ("no_deposit", {"ORD-0001"}),
        ("past", {"ORD-0002", "ORD-0004"}),
        ("completed", {"ORD-0004"}),
    ])
    async def test_status_filter_matches_display_mapping(self, order_service, summaries, status, expected):
        """Test display-status filters select exactly the rows mapped to that status"""
        response = await order_service.list(filters={"status": status})

        assert {o.order_number for o in response.items} == expected
        assert response.total == len(expected)

    @pytest.mark.asyncio
    async def test_customer_and_date_filters(self, order_service, summaries):
        """Test customer and wedding date range filters"""
        response = await order_service.list(filters={
            "customer_id": "c-2",
            "wedding_date_from": TODAY.isoformat(),
        })

        assert [o.order_number for o in response.items] == ["ORD-0004"]

    @pytest.mark.asyncio
    async def test_create_uses_generated_order_number(self, order_service, db):
        """Test create asks the backend for an order number before inserting"""
        order = await order_service.create(OrderCreate(
            customer_id="c-1", wedding_date=TOMORROW, total_members=4,
        ))

        assert order.order_number == "ORD-0001"
        assert [name for name, _ in db.rpc_calls][:1] == ["generate_order_number"]
        assert db.tables["orders"][0]["order_number"] == "ORD-0001"
        assert order.status == OrderStatus.DRAFT

    @pytest.mark.asyncio
    async def test_create_fails_when_number_generation_fails(self, order_service, db):
        """Test no order is inserted if the order number RPC returns nothing"""
        db.rpc_handlers["generate_order_number"] = lambda params: None

        with pytest.raises(ServiceError):
            await order_service.create({"customer_id": "c-1"})

        assert db.tables.get("orders", []) == []

    @pytest.mark.asyncio
    async def test_update_completed_stamps_completed_at(self, order_service, db):
        """Test moving to completed records the completion time"""
        order = await order_service.create({"customer_id": "c-1"})

        updated = await order_service.update(order.id, {"status": "completed"})

        assert updated.status == OrderStatus.COMPLETED
        assert updated.completed_at is not None

    @pytest.mark.asyncio
    async def test_any_status_transition_is_allowed(self, order_service):
        """Test status can move backwards, e.g. completed to draft"""
        order = await order_service.create({"customer_id": "c-1", "status": "completed"})

        updated = await order_service.update(order.id, {"status": "draft"})

        assert updated.status == OrderStatus.DRAFT

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, order_service):
        """Test a missing order raises NotFoundError"""
        with pytest.raises(NotFoundError) as exc_info:
            await order_service.get_by_id("missing")

        assert exc_info.value.message == "Order not found"

    @pytest.mark.asyncio
    async def test_search_swallows_errors(self, order_service, db):
        """Test order search returns an empty list on backend failure"""
        db.fail("order_summary", "select")

        assert await order_service.search("ORD") == []

    @pytest.mark.asyncio
    async def test_member_lifecycle(self, order_service, db):
        """Test adding, listing, updating and deleting order members"""
        order = await order_service.create({"customer_id": "c-1", "total_members": 2})
        usher = await order_service.add_member({
            "order_id": order.id, "first_name": "Tom", "last_name": "Hart", "role": "usher", "sort_order": 2,
        })
        groom = await order_service.add_member({
            "order_id": order.id, "first_name": "James", "last_name": "Hart", "role": "groom", "sort_order": 1,
        })

        members = await order_service.get_order_members(order.id)
        assert [m.id for m in members] == [groom.id, usher.id]

        updated = await order_service.update_member(usher.id, {"fitting_completed": True})
        assert updated.fitting_completed is True

        await order_service.delete_member(usher.id)
        assert [m.id for m in await order_service.get_order_members(order.id)] == [groom.id]

    @pytest.mark.asyncio
    async def test_delete_missing_member(self, order_service):
        """Test deleting an unknown member raises NotFoundError"""
        with pytest.raises(NotFoundError) as exc_info:
            await order_service.delete_member("missing")

        assert exc_info.value.message == "Order member not found"


class TestOrderMemberDetail:
    """Progress flags derived from embedded child rows"""

    def test_flags_follow_child_rows(self):
        """Test stored flags are overridden by the embedded rows"""
        member = OrderMemberDetail.model_validate({
            "id": "m-1", "order_id": "o-1", "first_name": "James", "last_name": "Hart", "role": "groom",
            "measurements_taken": False, "outfit_assigned": True,
            "member_sizes": [{"id": "s-1", "member_id": "m-1", "size_type": "chest", "measurement": "40",
                              "measured_at": "2026-01-01T10:00:00+00:00"}],
            "member_garments": [],
        })

        assert member.measurements_taken is True
        assert member.outfit_assigned is False

    def test_zero_quantity_garment_is_not_an_outfit(self):
        """Test only garments with a positive quantity count as assigned"""
        member = OrderMemberDetail.model_validate({
            "id": "m-1", "order_id": "o-1", "first_name": "James", "last_name": "Hart", "role": "groom",
            "member_garments": [{"id": "g-1", "member_id": "m-1", "garment_id": "x", "quantity": 0}],
        })

        assert member.outfit_assigned is False

    def test_flags_kept_without_child_rows(self):
        """Test stored flags stand when the children were not fetched"""
        member = OrderMemberDetail.model_validate({
            "id": "m-1", "order_id": "o-1", "first_name": "James", "last_name": "Hart", "role": "groom",
            "measurements_taken": True,
        })

        assert member.measurements_taken is True
