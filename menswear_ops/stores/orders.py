from typing import Any, List, Optional

from ..models import Order, OrderMember, OrderSummary, OrderWithMembers
from ..services import OrderService
from .base import BaseStore, ListStore


class OrderListStore(ListStore[OrderSummary]):
    entity = "orders"
    default_limit = 25
    # Summary rows carry server-computed customer and member counts
    refetch_after_update = True


class OrderStore(BaseStore):
    """One order, optionally with its members, garments and sizes"""

    def __init__(self, service: OrderService, order_id: str, include_members: bool = False):
        super().__init__()
        self.service = service
        self.order_id = order_id
        self.include_members = include_members
        self.order: Optional[Order] = None
        self.order_with_members: Optional[OrderWithMembers] = None
        self.members: List[OrderMember] = []

    async def mount(self) -> None:
        if self.include_members:
            await self.fetch_with_members()
        else:
            await self.fetch()

    async def fetch(self) -> None:
        token, order = await self._track("Failed to fetch order", self.service.get_by_id,
                                         self.order_id, reraise=False)
        if order is not None and self.is_current(token):
            self.order = order

    async def fetch_with_members(self) -> None:
        token, order = await self._track("Failed to fetch order with members",
                                         self.service.get_order_with_members, self.order_id,
                                         reraise=False)
        if order is not None and self.is_current(token):
            self.order_with_members = order
            self.members = list(order.order_members)

    async def update(self, data: Any) -> Order:
        _, order = await self._track("Failed to update order", self.service.update, self.order_id, data)
        self.order = order
        if self.order_with_members is not None:
            # Embedded customer and members are not part of the update response
            self.order_with_members = self.order_with_members.model_copy(update=dict(order))
        return order

    async def delete(self) -> None:
        await self._track("Failed to delete order", self.service.delete, self.order_id)
        self.order = None
        self.order_with_members = None
        self.members = []

    def _sort_members(self) -> None:
        self.members.sort(key=lambda member: member.sort_order)

    async def add_member(self, data: Any) -> OrderMember:
        _, member = await self._track("Failed to add member", self.service.add_member, data)
        self.members.append(member)
        self._sort_members()
        return member

    async def update_member(self, member_id: str, data: Any) -> OrderMember:
        _, member = await self._track("Failed to update member", self.service.update_member, member_id, data)
        self.members = [member if m.id == member_id else m for m in self.members]
        self._sort_members()
        return member

    async def delete_member(self, member_id: str) -> None:
        await self._track("Failed to delete member", self.service.delete_member, member_id)
        self.members = [m for m in self.members if m.id != member_id]
