"""
Shared pieces of the multi-step wizards: linear step navigation and the
in-progress member draft (details, outfit and measurements).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from ..exceptions import ValidationError, WizardError
from ..models import GarmentCategory, MemberRole, MemberSizeCreate, OrderMemberCreate, SizeType
from ..validation import REQUIRED_SIZE_TYPES, validate_member_form
from .outfit import OutfitSelection

logger = logging.getLogger(__name__)

DEFAULT_SIZE_UNITS = {
    SizeType.CHEST: "inches",
    SizeType.WAIST: "inches",
    SizeType.INSIDE_LEG: "inches",
    SizeType.TROUSER_WAIST: "inches",
    SizeType.JACKET_LENGTH: "inches",
    SizeType.SHIRT_COLLAR: "inches",
    SizeType.SHOE_SIZE: "UK",
    SizeType.HEIGHT: "feet/inches",
    SizeType.WEIGHT: "kg",
}


def parse_role(role: Union[MemberRole, str, None]) -> Optional[MemberRole]:
    """Role from user input; blank means not chosen yet"""
    if not role:
        return None
    try:
        return MemberRole(role)
    except ValueError:
        raise ValidationError({"role": "Please select a role"}) from None


def parse_size_type(size_type: Union[SizeType, str]) -> SizeType:
    try:
        return SizeType(size_type)
    except ValueError:
        raise ValidationError({"size_type": f"Unknown size type: {size_type}"}) from None


@dataclass
class SizeEntry:
    value: str
    unit: Optional[str] = None


@dataclass
class MemberDraft:
    """A wedding-party member not yet saved"""
    first_name: str
    last_name: str
    role: Optional[MemberRole]
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    outfit: OutfitSelection = field(default_factory=OutfitSelection)
    sizes: Dict[SizeType, SizeEntry] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def validation_errors(self) -> Dict[str, str]:
        return validate_member_form({
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role,
        })

    def set_size(self, size_type: Union[SizeType, str], value: Any, unit: Optional[str] = None) -> None:
        """Record a measurement; an empty or zero value clears it"""
        size_type = parse_size_type(size_type)
        text = "" if value is None else str(value).strip()
        if not text or text in ("0", "0.0"):
            self.sizes.pop(size_type, None)
            return
        self.sizes[size_type] = SizeEntry(text, unit or DEFAULT_SIZE_UNITS.get(size_type))

    def missing_required_sizes(self) -> List[str]:
        return [size_type for size_type in REQUIRED_SIZE_TYPES if SizeType(size_type) not in self.sizes]

    def to_create(self, order_id: str, sort_order: int) -> OrderMemberCreate:
        return OrderMemberCreate(
            order_id=order_id,
            first_name=self.first_name,
            last_name=self.last_name,
            role=self.role,
            email=self.email or None,
            phone=self.phone or None,
            notes=self.notes or None,
            sort_order=sort_order,
        )

    def size_entries(self, member_id: str, measured_by: Optional[str] = None) -> List[MemberSizeCreate]:
        return [
            MemberSizeCreate(member_id=member_id, size_type=size_type, measurement=entry.value,
                             measurement_unit=entry.unit, measured_by=measured_by)
            for size_type, entry in self.sizes.items()
        ]


def require_outfit(draft: MemberDraft) -> None:
    missing = draft.outfit.missing_required_categories()
    if missing:
        names = ", ".join(category.name for category in missing)
        raise WizardError(
            "Outfit Selection Required",
            f"Please select garments for all required categories for {draft.full_name} (missing: {names})",
        )


def require_member_details(draft: MemberDraft) -> None:
    errors = draft.validation_errors()
    if errors:
        raise WizardError("Member Details Required", "; ".join(errors.values()))


def require_groom_sizes(draft: MemberDraft) -> None:
    if draft.role != MemberRole.GROOM:
        return
    missing = draft.missing_required_sizes()
    if missing:
        labels = ", ".join(size_type.replace("_", " ") for size_type in missing)
        raise WizardError("Measurements Required", f"Please enter {labels} for {draft.full_name}")


class StepWizard:
    """Linear stepper: one step forward or back at a time"""

    steps: Sequence[Any] = ()

    def __init__(self, categories: Sequence[GarmentCategory] = ()):
        self.categories = list(categories)
        self._index = 0

    @property
    def step(self):
        return self.steps[self._index]

    @property
    def is_last_step(self) -> bool:
        return self._index == len(self.steps) - 1

    def _validate_step(self, step) -> None:
        """Raise WizardError when the user may not leave ``step`` yet"""

    def next_step(self):
        self._validate_step(self.step)
        self._index = min(self._index + 1, len(self.steps) - 1)
        logger.debug(f"Wizard moved to {self.step.name}")
        return self.step

    def previous_step(self):
        # Going back keeps everything entered on later steps
        self._index = max(self._index - 1, 0)
        return self.step

    def new_member(self, first_name: str, last_name: str, role: Union[MemberRole, str, None],
                   email: Optional[str] = None, phone: Optional[str] = None,
                   notes: Optional[str] = None) -> MemberDraft:
        return MemberDraft(
            first_name=(first_name or "").strip(),
            last_name=(last_name or "").strip(),
            role=parse_role(role),
            email=email,
            phone=phone,
            notes=notes,
            outfit=OutfitSelection(self.categories),
        )
