from typing import Any, Dict, List

from ..models import Garment, GarmentCategory, MemberGarment, MemberSize
from ..services import GarmentService, latest_sizes_by_type
from .base import BaseStore, ListStore


class GarmentListStore(ListStore[Garment]):
    entity = "garments"
    default_limit = 50

    def _merge(self, current: Garment, updated: Garment) -> Garment:
        # Updates come back without the embedded category
        if updated.category is None and current.category is not None:
            return updated.model_copy(update={'category': current.category})
        return updated


class GarmentCategoryStore(BaseStore):

    def __init__(self, service: GarmentService):
        super().__init__()
        self.service = service
        self.categories: List[GarmentCategory] = []

    async def fetch(self) -> None:
        token, categories = await self._track("Failed to fetch garment categories",
                                              self.service.list_categories, reraise=False)
        if categories is not None and self.is_current(token):
            self.categories = categories

    async def create(self, data: Any) -> GarmentCategory:
        _, category = await self._track("Failed to create garment category", self.service.create_category, data)
        self.categories = sorted([*self.categories, category], key=lambda c: c.sort_order)
        return category


class MemberGarmentStore(BaseStore):
    """Garments assigned to one order member"""

    def __init__(self, service: GarmentService, member_id: str):
        super().__init__()
        self.service = service
        self.member_id = member_id
        self.garments: List[MemberGarment] = []

    async def fetch(self) -> None:
        token, garments = await self._track("Failed to fetch member garments",
                                            self.service.get_member_garments, self.member_id,
                                            reraise=False)
        if garments is not None and self.is_current(token):
            self.garments = garments

    async def assign(self, data: Any) -> MemberGarment:
        _, assignment = await self._track("Failed to assign garment", self.service.assign_garment_to_member, data)
        self.garments.append(assignment)
        return assignment

    @staticmethod
    def _with_garment(current: MemberGarment, updated: MemberGarment) -> MemberGarment:
        if updated.garment is None and current.garment is not None:
            return updated.model_copy(update={'garment': current.garment})
        return updated

    async def update(self, assignment_id: str, data: Any) -> MemberGarment:
        _, assignment = await self._track("Failed to update garment assignment",
                                          self.service.update_garment_assignment, assignment_id, data)
        self.garments = [self._with_garment(mg, assignment) if mg.id == assignment_id else mg
                         for mg in self.garments]
        return assignment

    async def remove(self, assignment_id: str) -> None:
        await self._track("Failed to remove garment", self.service.remove_garment_from_member, assignment_id)
        self.garments = [mg for mg in self.garments if mg.id != assignment_id]


class MemberSizeStore(BaseStore):
    """Measurements for one order member, newest first, plus the latest per size type"""

    def __init__(self, service: GarmentService, member_id: str):
        super().__init__()
        self.service = service
        self.member_id = member_id
        self.sizes: List[MemberSize] = []
        self.latest_sizes: Dict[str, MemberSize] = {}

    async def fetch(self) -> None:
        token, sizes = await self._track("Failed to fetch member sizes", self.service.get_member_sizes,
                                         self.member_id, reraise=False)
        if sizes is not None and self.is_current(token):
            self._set_sizes(sizes)

    def _set_sizes(self, sizes: List[MemberSize]) -> None:
        self.sizes = sorted(sizes, key=lambda size: size.measured_at, reverse=True)
        self.latest_sizes = latest_sizes_by_type(self.sizes)

    async def add(self, data: Any) -> MemberSize:
        _, size = await self._track("Failed to add size", self.service.add_member_size, data)
        self._set_sizes([size, *self.sizes])
        return size

    async def update(self, size_id: str, data: Any) -> MemberSize:
        _, size = await self._track("Failed to update size", self.service.update_member_size, size_id, data)
        self._set_sizes([size if s.id == size_id else s for s in self.sizes])
        return size
