"""
Order Service

Handles orders (wedding/function bookings) and their wedding-party members.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from ..exceptions import ServiceError
from ..models import (
    ActivityAction,
    DisplayStatus,
    Order,
    OrderCreate,
    OrderListResponse,
    OrderMember,
    OrderMemberCreate,
    OrderMemberUpdate,
    OrderSearchFilters,
    OrderStatus,
    OrderSummary,
    OrderUpdate,
    OrderWithMembers,
)
from .base import BaseService, coerce, or_ilike

logger = logging.getLogger(__name__)

TABLE = "orders"
SUMMARY_VIEW = "order_summary"
MEMBERS_TABLE = "order_members"
SEARCH_COLUMNS = ("order_number", "customer_name", "wedding_venue")

IN_FLIGHT_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.IN_PROGRESS, OrderStatus.READY)

ORDER_WITH_MEMBERS_COLUMNS = """
    *,
    customer:customers(*),
    order_members:order_members(
        *,
        member_garments:member_garments(
            *,
            garment:garments(*)
        ),
        member_sizes:member_sizes(*)
    )
"""


def map_status_to_display_status(status: Union[OrderStatus, str],
                                 wedding_date: Union[date, str, None],
                                 today: Optional[date] = None) -> DisplayStatus:
    """
    Derive the coarse status shown in order lists

    draft is always no_deposit; confirmed/in_progress/ready are active until
    the wedding date has passed; completed and cancelled are past.
    """
    today = today or date.today()
    status = OrderStatus(status)
    if isinstance(wedding_date, str):
        wedding_date = date.fromisoformat(wedding_date[:10])
    is_wedding_past = wedding_date is not None and wedding_date < today

    if status == OrderStatus.DRAFT:
        return DisplayStatus.NO_DEPOSIT
    if status in IN_FLIGHT_STATUSES:
        return DisplayStatus.PAST if is_wedding_past else DisplayStatus.ACTIVE
    return DisplayStatus.PAST


def _status_values(statuses) -> str:
    return ",".join(OrderStatus(s).value for s in statuses)


class OrderService(BaseService):
    """Service for managing orders and order members"""

    def _apply_status_filter(self, query: Any, status: str, today: date) -> Any:
        # Display statuses expand to the same rows map_status_to_display_status gives them
        if status == DisplayStatus.NO_DEPOSIT.value:
            return query.eq('status', OrderStatus.DRAFT.value)
        if status == DisplayStatus.ACTIVE.value:
            return (
                query.in_('status', [s.value for s in IN_FLIGHT_STATUSES])
                .or_(f"wedding_date.gte.{today.isoformat()},wedding_date.is.null")
            )
        if status == DisplayStatus.PAST.value:
            return query.or_(
                f"status.in.({_status_values([OrderStatus.COMPLETED, OrderStatus.CANCELLED])}),"
                f"and(status.in.({_status_values(IN_FLIGHT_STATUSES)}),wedding_date.lt.{today.isoformat()})"
            )
        return query.eq('status', status)

    async def list(self, page: int = 1, limit: int = 25,
                   filters: Union[OrderSearchFilters, Mapping[str, Any], None] = None) -> OrderListResponse:
        """
        Get one page of order summaries ordered by wedding date, then customer

        Each summary carries its display status, computed at fetch time.
        """
        filters = coerce(OrderSearchFilters, filters)
        today = date.today()

        query = (
            self.supabase.table(SUMMARY_VIEW)
            .select('*', count='exact')
            .order('wedding_date')
            .order('customer_name')
        )
        if filters.search and filters.search.strip():
            query = query.or_(or_ilike(SEARCH_COLUMNS, filters.search))
        if filters.status:
            query = self._apply_status_filter(query, filters.status, today)
        if filters.customer_id:
            query = query.eq('customer_id', filters.customer_id)
        if filters.function_type:
            query = query.eq('function_type', filters.function_type)
        if filters.wedding_date_from:
            query = query.gte('wedding_date', filters.wedding_date_from.isoformat())
        if filters.wedding_date_to:
            query = query.lte('wedding_date', filters.wedding_date_to.isoformat())

        query = self._paginate(query, page, limit)
        response = await self._execute("fetch orders", query)
        total = response.count or 0

        await self.log_activity(ActivityAction.VIEW, 'order_list', None, 'Viewed order list', {
            'filters': filters.model_dump(mode='json', exclude_none=True),
            'page': page,
            'limit': limit,
            'total': total,
        })

        orders = []
        for row in self._rows(response):
            summary = OrderSummary.model_validate(row)
            summary.display_status = map_status_to_display_status(summary.status, summary.wedding_date, today)
            orders.append(summary)

        return OrderListResponse(items=orders, total=total, page=page, limit=limit)

    async def get_by_id(self, order_id: str) -> Order:
        query = self.supabase.table(TABLE).select('*').eq('id', order_id)
        response = await self._execute("fetch order", query)
        order = Order.model_validate(self._first_row(response, "Order not found", "fetch order"))

        await self.log_activity(ActivityAction.VIEW, 'order', order_id,
                                f"Viewed order: {order.order_number}",
                                entity_name=order.order_number)
        return order

    async def get_order_with_members(self, order_id: str) -> OrderWithMembers:
        """Order with customer, members, member garments and member sizes"""
        query = self.supabase.table(TABLE).select(ORDER_WITH_MEMBERS_COLUMNS).eq('id', order_id)
        response = await self._execute("fetch order with members", query)
        order = OrderWithMembers.model_validate(
            self._first_row(response, "Order not found", "fetch order with members")
        )
        order.order_members.sort(key=lambda member: member.sort_order)
        return order

    async def _generate_order_number(self) -> str:
        response = await self._execute("generate order number", self.supabase.rpc('generate_order_number', {}))
        order_number = response.data
        if isinstance(order_number, list):
            order_number = order_number[0] if order_number else None
        if not order_number:
            raise ServiceError("Failed to generate order number: no number returned",
                               operation="generate order number")
        return str(order_number)

    async def create(self, data: Union[OrderCreate, Mapping[str, Any]]) -> Order:
        """Create an order under a freshly generated order number"""
        payload = self._create_payload(coerce(OrderCreate, data))
        payload['order_number'] = await self._generate_order_number()

        response = await self._execute("create order", self.supabase.table(TABLE).insert(payload))
        order = Order.model_validate(self._inserted_row(response, "create order"))

        await self.log_activity(ActivityAction.CREATE, 'order', order.id,
                                f"Created order: {order.order_number}",
                                {'order_data': payload}, entity_name=order.order_number)
        logger.info(f"✅ Created order {order.order_number} ({order.id})")
        return order

    async def update(self, order_id: str, data: Union[OrderUpdate, Mapping[str, Any]]) -> Order:
        """Partial update; any status may be set from any other status"""
        updates = coerce(OrderUpdate, data)
        if updates.status == OrderStatus.COMPLETED and 'completed_at' not in updates.model_fields_set:
            updates.completed_at = datetime.now(timezone.utc)
        payload = self._update_payload(updates)

        query = self.supabase.table(TABLE).update(payload).eq('id', order_id)
        response = await self._execute("update order", query)
        order = Order.model_validate(self._first_row(response, "Order not found", "update order"))

        await self.log_activity(ActivityAction.UPDATE, 'order', order_id,
                                f"Updated order: {order.order_number}",
                                {'updates': payload}, entity_name=order.order_number)
        return order

    async def delete(self, order_id: str) -> None:
        """Delete an order; the backend cascades to members, garments and sizes"""
        order = await self.get_by_id(order_id)

        await self._execute("delete order", self.supabase.table(TABLE).delete().eq('id', order_id))

        await self.log_activity(ActivityAction.DELETE, 'order', order_id,
                                f"Deleted order: {order.order_number}",
                                entity_name=order.order_number)
        logger.info(f"🗑️ Deleted order: {order.order_number}")

    async def search(self, query: str, limit: int = 10) -> List[OrderSummary]:
        """Typeahead search over order number, customer and venue"""
        if not query or not query.strip():
            return []
        try:
            request = (
                self.supabase.table(SUMMARY_VIEW)
                .select('*')
                .or_(or_ilike(SEARCH_COLUMNS, query))
                .order('wedding_date')
                .limit(limit)
            )
            response = await self._execute("search orders", request)
            today = date.today()
            results = []
            for row in self._rows(response):
                summary = OrderSummary.model_validate(row)
                summary.display_status = map_status_to_display_status(summary.status, summary.wedding_date, today)
                results.append(summary)
            return results
        except ServiceError as e:
            logger.warning(f"⚠️ Order search failed: {e}")
            return []

    # ===== ORDER MEMBERS =====

    async def add_member(self, data: Union[OrderMemberCreate, Mapping[str, Any]]) -> OrderMember:
        payload = self._create_payload(coerce(OrderMemberCreate, data))

        response = await self._execute("add order member", self.supabase.table(MEMBERS_TABLE).insert(payload))
        member = OrderMember.model_validate(self._inserted_row(response, "add order member"))

        await self.log_activity(ActivityAction.CREATE, 'order_member', member.id,
                                f"Added member: {member.full_name} to order",
                                {'member_data': payload}, entity_name=member.full_name)
        return member

    async def update_member(self, member_id: str,
                            data: Union[OrderMemberUpdate, Mapping[str, Any]]) -> OrderMember:
        payload = self._update_payload(coerce(OrderMemberUpdate, data))

        query = self.supabase.table(MEMBERS_TABLE).update(payload).eq('id', member_id)
        response = await self._execute("update order member", query)
        member = OrderMember.model_validate(
            self._first_row(response, "Order member not found", "update order member")
        )

        await self.log_activity(ActivityAction.UPDATE, 'order_member', member_id,
                                f"Updated member: {member.full_name}",
                                {'updates': payload}, entity_name=member.full_name)
        return member

    async def get_member(self, member_id: str) -> OrderMember:
        query = self.supabase.table(MEMBERS_TABLE).select('*').eq('id', member_id)
        response = await self._execute("fetch member", query)
        return OrderMember.model_validate(self._first_row(response, "Order member not found", "fetch member"))

    async def delete_member(self, member_id: str) -> None:
        member = await self.get_member(member_id)

        await self._execute("delete order member",
                            self.supabase.table(MEMBERS_TABLE).delete().eq('id', member_id))

        await self.log_activity(ActivityAction.DELETE, 'order_member', member_id,
                                f"Deleted member: {member.full_name}",
                                entity_name=member.full_name)

    async def get_order_members(self, order_id: str) -> List[OrderMember]:
        query = (
            self.supabase.table(MEMBERS_TABLE)
            .select('*')
            .eq('order_id', order_id)
            .order('sort_order')
        )
        response = await self._execute("fetch order members", query)
        return [OrderMember.model_validate(row) for row in self._rows(response)]
