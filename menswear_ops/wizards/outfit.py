"""
Outfit selection for one wedding-party member.

Holds which garments are picked, how many, and whether each is hired or
bought. Setting a garment's quantity to 0 removes it from the selection.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..exceptions import ValidationError
from ..models import Garment, GarmentCategory, MemberGarment, MemberGarmentCreate, MemberGarmentUpdate

logger = logging.getLogger(__name__)

# Lowercase category names every member outfit must cover
REQUIRED_CATEGORIES = frozenset({"jacket", "trousers", "shirt"})


def is_required_category(category: GarmentCategory) -> bool:
    return category.name.strip().lower() in REQUIRED_CATEGORIES


@dataclass
class SelectedGarment:
    garment: Garment
    quantity: int = 1
    is_rental: bool = True
    notes: Optional[str] = None


class OutfitSelection:
    """Garments picked for one member, keyed by garment id"""

    def __init__(self, categories: Iterable[GarmentCategory] = ()):
        self.categories: List[GarmentCategory] = list(categories)
        self._selected: Dict[str, SelectedGarment] = {}

    @classmethod
    def from_assignments(cls, categories: Iterable[GarmentCategory],
                         assignments: Iterable[MemberGarment]) -> "OutfitSelection":
        """Start from a member's saved assignments (those with their garment embedded)"""
        selection = cls(categories)
        for assignment in assignments:
            if assignment.garment is not None and assignment.quantity > 0:
                selection.select(assignment.garment, assignment.quantity,
                                 assignment.is_rental, assignment.notes)
        return selection

    def select(self, garment: Garment, quantity: int = 1, is_rental: bool = True,
               notes: Optional[str] = None) -> None:
        if quantity < 0:
            raise ValidationError({"quantity": "Quantity cannot be negative"})
        if quantity == 0:
            self._selected.pop(garment.id, None)
            return
        self._selected[garment.id] = SelectedGarment(garment, quantity, is_rental, notes)

    def remove(self, garment_id: str) -> None:
        self._selected.pop(garment_id, None)

    def choose_for_category(self, category_id: str, garment: Optional[Garment],
                            is_rental: bool = True) -> None:
        """Make ``garment`` the only pick in its category; None clears the category"""
        for garment_id in [gid for gid, sg in self._selected.items() if sg.garment.category_id == category_id]:
            del self._selected[garment_id]
        if garment is not None:
            if garment.category_id != category_id:
                raise ValueError(f"Garment {garment.name} is not in category {category_id}")
            self.select(garment, 1, is_rental)

    @property
    def selected(self) -> List[SelectedGarment]:
        return list(self._selected.values())

    def __contains__(self, garment_id: str) -> bool:
        return garment_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def is_category_filled(self, category_id: str) -> bool:
        return any(sg.garment.category_id == category_id for sg in self._selected.values())

    def missing_required_categories(self) -> List[GarmentCategory]:
        return [
            category for category in self.categories
            if is_required_category(category) and not self.is_category_filled(category.id)
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_required_categories()

    @property
    def total_items(self) -> int:
        return sum(sg.quantity for sg in self._selected.values())

    @property
    def rental_items(self) -> int:
        return sum(sg.quantity for sg in self._selected.values() if sg.is_rental)

    @property
    def purchase_items(self) -> int:
        return sum(sg.quantity for sg in self._selected.values() if not sg.is_rental)

    def assignments_for(self, member_id: str) -> List[MemberGarmentCreate]:
        return [
            MemberGarmentCreate(member_id=member_id, garment_id=sg.garment.id, quantity=sg.quantity,
                                is_rental=sg.is_rental, notes=sg.notes)
            for sg in self._selected.values()
        ]

    async def save(self, store) -> None:
        """
        Bring a member's saved assignments in line with this selection

        Args:
            store: MemberGarmentStore for the member; its ``garments`` are
                taken as the saved state

        Removes assignments no longer selected, updates changed ones and
        adds new ones, one request at a time, then re-fetches.
        """
        current = list(store.garments)
        by_garment = {mg.garment_id: mg for mg in current}

        for assignment in current:
            if assignment.garment_id not in self._selected:
                await store.remove(assignment.id)

        for garment_id, sg in self._selected.items():
            existing = by_garment.get(garment_id)
            if existing is None:
                await store.assign(MemberGarmentCreate(
                    member_id=store.member_id, garment_id=garment_id, quantity=sg.quantity,
                    is_rental=sg.is_rental, notes=sg.notes,
                ))
            elif (existing.quantity, existing.is_rental, existing.notes) != (sg.quantity, sg.is_rental, sg.notes):
                await store.update(existing.id, MemberGarmentUpdate(
                    quantity=sg.quantity, is_rental=sg.is_rental, notes=sg.notes,
                ))

        logger.info(f"✅ Saved outfit for member {store.member_id} ({self.total_items} items)")
        await store.fetch()
