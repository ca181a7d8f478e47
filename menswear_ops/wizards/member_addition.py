"""
Member addition wizard

Adds one wedding-party member to an existing order: details -> outfit ->
sizes, then the member, their garments and their measurements are saved in
that order.
"""

import logging
from enum import IntEnum
from typing import Any, Dict, Optional, Sequence, Union

from ..exceptions import MenswearOpsError, ServiceError, WizardError, WizardSubmissionError
from ..models import GarmentCategory, MemberRole, OrderMember
from ..services import GarmentService, OrderService
from .base import MemberDraft, StepWizard, require_groom_sizes, require_member_details, require_outfit

logger = logging.getLogger(__name__)


class MemberWizardStep(IntEnum):
    MEMBER_DETAILS = 0
    OUTFIT = 1
    SIZES = 2


class MemberAdditionWizard(StepWizard):

    steps = tuple(MemberWizardStep)

    def __init__(self, orders: OrderService, garments: GarmentService, order_id: str,
                 categories: Sequence[GarmentCategory] = (), sort_order: int = 1,
                 measured_by: Optional[str] = None, rollback_on_failure: bool = True):
        super().__init__(categories)
        self.orders = orders
        self.garments = garments
        self.order_id = order_id
        self.sort_order = sort_order
        self.measured_by = measured_by
        self.rollback_on_failure = rollback_on_failure
        self.member: MemberDraft = self.new_member("", "", None)
        self.created_member: Optional[OrderMember] = None

    def set_details(self, first_name: str, last_name: str, role: Union[MemberRole, str, None],
                    email: Optional[str] = None, phone: Optional[str] = None,
                    notes: Optional[str] = None) -> MemberDraft:
        """Replace the member's details, keeping any outfit and sizes already entered"""
        draft = self.new_member(first_name, last_name, role, email, phone, notes)
        draft.outfit = self.member.outfit
        draft.sizes = self.member.sizes
        self.member = draft
        return draft

    def _validate_step(self, step: MemberWizardStep) -> None:
        if step == MemberWizardStep.MEMBER_DETAILS:
            require_member_details(self.member)
        elif step == MemberWizardStep.OUTFIT:
            require_outfit(self.member)
        elif step == MemberWizardStep.SIZES:
            require_groom_sizes(self.member)

    async def submit(self) -> OrderMember:
        if not self.is_last_step:
            raise WizardError("Incomplete Member", "Please complete every step before adding the member")
        for step in self.steps:
            self._validate_step(step)

        created: Dict[str, Any] = {'member': None, 'garments': [], 'sizes': []}
        try:
            member = await self.orders.add_member(self.member.to_create(self.order_id, self.sort_order))
            created['member'] = member
            for assignment in self.member.outfit.assignments_for(member.id):
                created['garments'].append(await self.garments.assign_garment_to_member(assignment))
            for size in self.member.size_entries(member.id, self.measured_by):
                created['sizes'].append(await self.garments.add_member_size(size))
        except MenswearOpsError as e:
            rolled_back = await self._roll_back(created['member'])
            raise WizardSubmissionError(
                f"Failed to add member: {e.message}",
                cause=e, created=created, rolled_back=rolled_back,
            ) from e

        self.created_member = member
        logger.info(f"✅ {member.full_name} has been added to the wedding party")
        return member

    async def _roll_back(self, member: Optional[OrderMember]) -> bool:
        if member is None or not self.rollback_on_failure:
            return False
        try:
            await self.orders.delete_member(member.id)
        except ServiceError as e:
            logger.error(f"❌ Could not roll back member {member.full_name}: {e}")
            return False
        logger.warning(f"⚠️ Rolled back partially added member {member.full_name}")
        return True
