"""
Order creation wizard

Customer & function details -> outfits -> sizes, then one submission that
creates the order and each member with their garments and measurements.
"""

import logging
from datetime import date
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..exceptions import MenswearOpsError, ServiceError, WizardError, WizardSubmissionError
from ..models import Customer, FunctionType, GarmentCategory, MemberRole, Order, OrderCreate, OrderStatus
from ..services import CustomerService, GarmentService, OrderService
from ..validation import ensure_valid, validate_customer_form, validate_function_details
from .base import MemberDraft, StepWizard, require_groom_sizes, require_member_details, require_outfit

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


class OrderWizardStep(IntEnum):
    CUSTOMER_AND_FUNCTION = 0
    OUTFIT_BUILDER = 1
    SIZES = 2


class OrderCreationWizard(StepWizard):
    """
    Guided creation of an order with its wedding party

    Submission writes one row at a time. If a write fails after the order
    was created the order is deleted again (the backend cascades to members,
    garments and sizes) unless rollback_on_failure is off.
    """

    steps = tuple(OrderWizardStep)

    def __init__(self, customers: CustomerService, orders: OrderService, garments: GarmentService,
                 categories: Sequence[GarmentCategory] = (), measured_by: Optional[str] = None,
                 rollback_on_failure: bool = True):
        super().__init__(categories)
        self.customers = customers
        self.orders = orders
        self.garments = garments
        self.measured_by = measured_by
        self.rollback_on_failure = rollback_on_failure

        self.customer: Optional[Customer] = None
        self.function: Dict[str, Any] = {
            'function_type': FunctionType.WEDDING,
            'total_members': 1,
        }
        self.members: List[MemberDraft] = []
        self.created_order: Optional[Order] = None

    # ===== STEP 1: CUSTOMER AND FUNCTION =====

    async def search_customers(self, query: str) -> List[Customer]:
        if not query or len(query.strip()) < MIN_SEARCH_LENGTH:
            return []
        return await self.customers.search(query.strip(), 10)

    def select_customer(self, customer: Customer) -> None:
        self.customer = customer

    async def create_customer(self, data: Mapping[str, Any]) -> Customer:
        """Validate and create a new customer, then select them"""
        ensure_valid(validate_customer_form(data))
        self.customer = await self.customers.create(data)
        return self.customer

    def set_function_details(self, **details: Any) -> None:
        self.function.update(details)

    # ===== STEP 2: OUTFITS =====

    def add_member(self, first_name: str, last_name: str, role: Union[MemberRole, str],
                   email: Optional[str] = None, phone: Optional[str] = None,
                   notes: Optional[str] = None) -> MemberDraft:
        draft = self.new_member(first_name, last_name, role, email, phone, notes)
        self.members.append(draft)
        return draft

    def remove_member(self, draft: MemberDraft) -> None:
        self.members.remove(draft)

    # ===== NAVIGATION =====

    def _validate_step(self, step: OrderWizardStep) -> None:
        if step == OrderWizardStep.CUSTOMER_AND_FUNCTION:
            if self.customer is None:
                raise WizardError("Customer Required", "Please select or create a customer")
            errors = validate_function_details(self.function)
            if errors:
                raise WizardError("Function Details Required", "; ".join(errors.values()))
        elif step == OrderWizardStep.OUTFIT_BUILDER:
            if not self.members:
                raise WizardError("Members Required", "Please add at least one member to the wedding party")
            for draft in self.members:
                require_member_details(draft)
                require_outfit(draft)
        elif step == OrderWizardStep.SIZES:
            for draft in self.members:
                require_groom_sizes(draft)

    # ===== SUBMISSION =====

    def _order_payload(self) -> OrderCreate:
        wedding_date = self.function.get('wedding_date')
        if isinstance(wedding_date, str):
            wedding_date = date.fromisoformat(wedding_date)
        return OrderCreate(
            customer_id=self.customer.id,
            wedding_date=wedding_date,
            wedding_venue=self.function.get('wedding_venue') or None,
            wedding_time=self.function.get('wedding_time') or None,
            function_type=self.function.get('function_type') or FunctionType.WEDDING,
            total_members=int(self.function.get('total_members') or 1),
            special_requirements=self.function.get('special_requirements') or None,
            status=OrderStatus.DRAFT,
        )

    async def submit(self) -> Order:
        if not self.is_last_step:
            raise WizardError("Incomplete Order", "Please complete every step before creating the order")
        for step in self.steps:
            self._validate_step(step)

        created: Dict[str, Any] = {'order': None, 'members': [], 'garments': [], 'sizes': []}
        try:
            order = await self.orders.create(self._order_payload())
            created['order'] = order

            for sort_order, draft in enumerate(self.members, start=1):
                member = await self.orders.add_member(draft.to_create(order.id, sort_order))
                created['members'].append(member)
                for assignment in draft.outfit.assignments_for(member.id):
                    created['garments'].append(await self.garments.assign_garment_to_member(assignment))
                for size in draft.size_entries(member.id, self.measured_by):
                    created['sizes'].append(await self.garments.add_member_size(size))
        except MenswearOpsError as e:
            rolled_back = await self._roll_back(created['order'])
            raise WizardSubmissionError(
                f"Failed to create order: {e.message}",
                cause=e, created=created, rolled_back=rolled_back,
            ) from e

        self.created_order = order
        logger.info(f"✅ Order {order.order_number} created with {len(created['members'])} members")
        return order

    async def _roll_back(self, order: Optional[Order]) -> bool:
        if order is None or not self.rollback_on_failure:
            return False
        try:
            await self.orders.delete(order.id)
        except ServiceError as e:
            logger.error(f"❌ Could not roll back order {order.order_number}: {e}")
            return False
        logger.warning(f"⚠️ Rolled back partially created order {order.order_number}")
        return True
