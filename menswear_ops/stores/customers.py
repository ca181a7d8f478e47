from typing import Any, List, Optional

from ..models import Customer
from ..services import CustomerService
from .base import BaseStore, ListStore


class CustomerListStore(ListStore[Customer]):
    entity = "customers"
    default_limit = 50

    async def search(self, query: str, limit: int = 10) -> List[Customer]:
        """Typeahead lookup; leaves list state alone"""
        return await self.service.search(query, limit)


class CustomerStore(BaseStore):
    """A single customer record"""

    def __init__(self, service: CustomerService, customer_id: str):
        super().__init__()
        self.service = service
        self.customer_id = customer_id
        self.customer: Optional[Customer] = None
        self.history: Optional[dict] = None

    async def fetch(self) -> None:
        token, customer = await self._track("Failed to fetch customer", self.service.get_by_id,
                                            self.customer_id, reraise=False)
        if customer is not None and self.is_current(token):
            self.customer = customer

    async def fetch_history(self) -> None:
        token, history = await self._track("Failed to fetch order history", self.service.get_order_history,
                                           self.customer_id, reraise=False)
        if history is not None and self.is_current(token):
            self.history = history
            self.customer = history['customer']

    async def update(self, data: Any) -> Customer:
        _, customer = await self._track("Failed to update customer", self.service.update, self.customer_id, data)
        self.customer = customer
        return customer

    async def delete(self) -> None:
        await self._track("Failed to delete customer", self.service.delete, self.customer_id)
        self.customer = None
        self.history = None
