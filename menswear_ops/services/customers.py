"""
Customer Service

Handles customer records: paginated listing with filters, CRUD, typeahead
search and order history.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from ..exceptions import ServiceError
from ..models import (
    ActivityAction,
    Customer,
    CustomerCreate,
    CustomerListResponse,
    CustomerSearchFilters,
    CustomerUpdate,
)
from .base import BaseService, coerce, ilike_pattern, or_ilike, quote_value

logger = logging.getLogger(__name__)

TABLE = "customers"
SEARCH_COLUMNS = ("first_name", "last_name", "email", "phone")
SUBSTRING_FILTERS = ("email", "phone", "city", "county", "postcode")

ORDER_HISTORY_COLUMNS = (
    "id, order_number, wedding_date, wedding_venue, status, total_members, created_at, "
    "customer:customers(first_name, last_name), order_members(count)"
)
MEMBER_HISTORY_COLUMNS = (
    "id, role, created_at, order:orders(id, order_number, wedding_date, wedding_venue, status, "
    "total_members, created_at, customer:customers(first_name, last_name))"
)


class CustomerService(BaseService):
    """Service for managing customers"""

    async def list(self, page: int = 1, limit: int = 50,
                   filters: Union[CustomerSearchFilters, Mapping[str, Any], None] = None) -> CustomerListResponse:
        """
        Get one page of customers, newest first

        Args:
            page: 1-based page number
            limit: Page size
            filters: Free-text search plus substring filters per field

        Returns:
            The page of customers and the exact count of matching rows
        """
        filters = coerce(CustomerSearchFilters, filters)

        query = (
            self.supabase.table(TABLE)
            .select('*', count='exact')
            .order('created_at', desc=True)
        )
        if filters.search and filters.search.strip():
            query = query.or_(or_ilike(SEARCH_COLUMNS, filters.search))
        for field in SUBSTRING_FILTERS:
            value = getattr(filters, field)
            if value and value.strip():
                query = query.ilike(field, ilike_pattern(value))

        query = self._paginate(query, page, limit)
        response = await self._execute("fetch customers", query)
        total = response.count or 0

        await self.log_activity(ActivityAction.VIEW, 'customer_list', None, 'Viewed customer list', {
            'filters': filters.model_dump(exclude_none=True),
            'page': page,
            'limit': limit,
            'total': total,
        })

        return CustomerListResponse(
            items=[Customer.model_validate(row) for row in self._rows(response)],
            total=total,
            page=page,
            limit=limit,
        )

    async def get_by_id(self, customer_id: str) -> Customer:
        query = self.supabase.table(TABLE).select('*').eq('id', customer_id)
        response = await self._execute("fetch customer", query)
        customer = Customer.model_validate(
            self._first_row(response, "Customer not found", "fetch customer")
        )

        await self.log_activity(ActivityAction.VIEW, 'customer', customer_id,
                                f"Viewed customer: {customer.full_name}",
                                entity_name=customer.full_name)
        return customer

    async def create(self, data: Union[CustomerCreate, Mapping[str, Any]]) -> Customer:
        payload = self._create_payload(coerce(CustomerCreate, data))
        logger.info(f"Creating customer: {payload['first_name']} {payload['last_name']}")

        response = await self._execute("create customer", self.supabase.table(TABLE).insert(payload))
        customer = Customer.model_validate(self._inserted_row(response, "create customer"))

        await self.log_activity(ActivityAction.CREATE, 'customer', customer.id,
                                f"Created customer: {customer.full_name}",
                                {'customer_data': payload}, entity_name=customer.full_name)
        logger.info(f"✅ Created customer with ID: {customer.id}")
        return customer

    async def update(self, customer_id: str, data: Union[CustomerUpdate, Mapping[str, Any]]) -> Customer:
        payload = self._update_payload(coerce(CustomerUpdate, data))

        query = self.supabase.table(TABLE).update(payload).eq('id', customer_id)
        response = await self._execute("update customer", query)
        customer = Customer.model_validate(
            self._first_row(response, "Customer not found", "update customer")
        )

        await self.log_activity(ActivityAction.UPDATE, 'customer', customer_id,
                                f"Updated customer: {customer.full_name}",
                                {'updates': payload}, entity_name=customer.full_name)
        return customer

    async def delete(self, customer_id: str) -> None:
        """Delete a customer; the backend cascades to their orders"""
        customer = await self.get_by_id(customer_id)

        await self._execute("delete customer", self.supabase.table(TABLE).delete().eq('id', customer_id))

        await self.log_activity(ActivityAction.DELETE, 'customer', customer_id,
                                f"Deleted customer: {customer.full_name}",
                                entity_name=customer.full_name)
        logger.info(f"🗑️ Deleted customer: {customer_id}")

    async def search(self, query: str, limit: int = 10) -> List[Customer]:
        """Typeahead search; returns an empty list instead of raising"""
        if not query or not query.strip():
            return []
        try:
            request = (
                self.supabase.table(TABLE)
                .select('*')
                .or_(or_ilike(SEARCH_COLUMNS, query))
                .order('created_at', desc=True)
                .limit(limit)
            )
            response = await self._execute("search customers", request)
            return [Customer.model_validate(row) for row in self._rows(response)]
        except ServiceError as e:
            logger.warning(f"⚠️ Customer search failed: {e}")
            return []

    async def get_customer_with_orders(self, customer_id: str) -> Dict[str, Any]:
        """Customer row with its orders and per-order member counts embedded"""
        query = (
            self.supabase.table(TABLE)
            .select('*, orders:orders(*, order_members:order_members(count))')
            .eq('id', customer_id)
        )
        response = await self._execute("fetch customer with orders", query)
        return self._first_row(response, "Customer not found", "fetch customer with orders")

    async def get_order_history(self, customer_id: str) -> Dict[str, Any]:
        """
        Orders the customer booked plus orders they appear in as a party member

        Party membership is matched by email, or by first and last name,
        since members are not linked to customer records.
        """
        customer = await self.get_by_id(customer_id)

        own_query = (
            self.supabase.table('orders')
            .select(ORDER_HISTORY_COLUMNS)
            .eq('customer_id', customer_id)
            .order('created_at', desc=True)
        )
        own_orders = self._rows(await self._execute("fetch customer own orders", own_query))

        matchers = [f"and(first_name.eq.{quote_value(customer.first_name)},"
                    f"last_name.eq.{quote_value(customer.last_name)})"]
        if customer.email:
            matchers.insert(0, f"email.eq.{quote_value(customer.email)}")

        member_orders: List[Dict[str, Any]] = []
        try:
            member_query = (
                self.supabase.table('order_members')
                .select(MEMBER_HISTORY_COLUMNS)
                .or_(",".join(matchers))
                .order('created_at', desc=True)
            )
            member_orders = self._rows(await self._execute("fetch customer member orders", member_query))
        except ServiceError as e:
            logger.warning(f"⚠️ Continuing without member orders for {customer_id}: {e}")

        return {
            'customer': customer,
            'own_orders': own_orders,
            'member_orders': member_orders,
        }
