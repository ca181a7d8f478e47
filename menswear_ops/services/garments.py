"""
Garment Service

Garment catalog and categories, garment assignments to order members and
member measurements.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Union

from ..exceptions import ServiceError
from ..models import (
    ActivityAction,
    Garment,
    GarmentCategory,
    GarmentCategoryCreate,
    GarmentCreate,
    GarmentListResponse,
    GarmentSearchFilters,
    GarmentUpdate,
    MemberGarment,
    MemberGarmentCreate,
    MemberGarmentUpdate,
    MemberSize,
    MemberSizeCreate,
    MemberSizeUpdate,
)
from .base import BaseService, coerce, ilike_pattern, or_ilike

logger = logging.getLogger(__name__)

TABLE = "garments"
CATEGORIES_TABLE = "garment_categories"
ASSIGNMENTS_TABLE = "member_garments"
SIZES_TABLE = "member_sizes"

SEARCH_COLUMNS = ("name", "description", "brand", "sku")
GARMENT_WITH_CATEGORY = "*, category:garment_categories(*)"


def latest_sizes_by_type(sizes: Iterable[MemberSize]) -> Dict[str, MemberSize]:
    """Keep the most recently measured entry for each size type"""
    latest: Dict[str, MemberSize] = {}
    for size in sizes:
        key = size.size_type.value
        current = latest.get(key)
        if current is None or size.measured_at > current.measured_at:
            latest[key] = size
    return latest


class GarmentService(BaseService):
    """Service for the garment catalog, member outfits and member sizes"""

    # ===== CATEGORIES =====

    async def list_categories(self) -> List[GarmentCategory]:
        """Active categories in display order"""
        query = (
            self.supabase.table(CATEGORIES_TABLE)
            .select('*')
            .eq('active', True)
            .order('sort_order')
        )
        response = await self._execute("fetch garment categories", query)
        return [GarmentCategory.model_validate(row) for row in self._rows(response)]

    async def create_category(self, data: Union[GarmentCategoryCreate, Mapping[str, Any]]) -> GarmentCategory:
        payload = self._create_payload(coerce(GarmentCategoryCreate, data))

        response = await self._execute("create garment category",
                                       self.supabase.table(CATEGORIES_TABLE).insert(payload))
        category = GarmentCategory.model_validate(self._inserted_row(response, "create garment category"))

        await self.log_activity(ActivityAction.CREATE, 'garment_category', category.id,
                                f"Created garment category: {category.name}",
                                {'category_data': payload}, entity_name=category.name)
        return category

    # ===== GARMENTS =====

    async def list(self, page: int = 1, limit: int = 50,
                   filters: Union[GarmentSearchFilters, Mapping[str, Any], None] = None) -> GarmentListResponse:
        """
        Get one page of garments with their category, in catalog order

        Args:
            page: 1-based page number
            limit: Page size
            filters: Search text, category, active flag, colour and material

        Returns:
            The page of garments and the exact count of matching rows
        """
        filters = coerce(GarmentSearchFilters, filters)

        query = (
            self.supabase.table(TABLE)
            .select(GARMENT_WITH_CATEGORY, count='exact')
            .order('sort_order')
        )
        if filters.search and filters.search.strip():
            query = query.or_(or_ilike(SEARCH_COLUMNS, filters.search))
        if filters.category_id:
            query = query.eq('category_id', filters.category_id)
        if filters.active is not None:
            query = query.eq('active', filters.active)
        if filters.color and filters.color.strip():
            query = query.ilike('color', ilike_pattern(filters.color))
        if filters.material and filters.material.strip():
            query = query.ilike('material', ilike_pattern(filters.material))

        query = self._paginate(query, page, limit)
        response = await self._execute("fetch garments", query)
        total = response.count or 0

        await self.log_activity(ActivityAction.VIEW, 'garment_list', None, 'Viewed garment list', {
            'filters': filters.model_dump(exclude_none=True),
            'page': page,
            'limit': limit,
            'total': total,
        })

        return GarmentListResponse(
            items=[Garment.model_validate(row) for row in self._rows(response)],
            total=total,
            page=page,
            limit=limit,
        )

    async def get_by_id(self, garment_id: str) -> Garment:
        query = self.supabase.table(TABLE).select(GARMENT_WITH_CATEGORY).eq('id', garment_id)
        response = await self._execute("fetch garment", query)
        garment = Garment.model_validate(self._first_row(response, "Garment not found", "fetch garment"))

        await self.log_activity(ActivityAction.VIEW, 'garment', garment_id,
                                f"Viewed garment: {garment.name}", entity_name=garment.name)
        return garment

    async def get_by_category(self, category_id: str) -> List[Garment]:
        query = (
            self.supabase.table(TABLE)
            .select('*')
            .eq('category_id', category_id)
            .eq('active', True)
            .order('sort_order')
        )
        response = await self._execute("fetch garments by category", query)
        return [Garment.model_validate(row) for row in self._rows(response)]

    async def create(self, data: Union[GarmentCreate, Mapping[str, Any]]) -> Garment:
        payload = self._create_payload(coerce(GarmentCreate, data))

        response = await self._execute("create garment", self.supabase.table(TABLE).insert(payload))
        garment = Garment.model_validate(self._inserted_row(response, "create garment"))

        await self.log_activity(ActivityAction.CREATE, 'garment', garment.id,
                                f"Created garment: {garment.name}",
                                {'garment_data': payload}, entity_name=garment.name)
        logger.info(f"✅ Created garment {garment.name} ({garment.id})")
        return garment

    async def update(self, garment_id: str, data: Union[GarmentUpdate, Mapping[str, Any]]) -> Garment:
        payload = self._update_payload(coerce(GarmentUpdate, data))

        query = self.supabase.table(TABLE).update(payload).eq('id', garment_id)
        response = await self._execute("update garment", query)
        garment = Garment.model_validate(self._first_row(response, "Garment not found", "update garment"))

        await self.log_activity(ActivityAction.UPDATE, 'garment', garment_id,
                                f"Updated garment: {garment.name}",
                                {'updates': payload}, entity_name=garment.name)
        return garment

    async def delete(self, garment_id: str) -> None:
        garment = await self.get_by_id(garment_id)

        await self._execute("delete garment", self.supabase.table(TABLE).delete().eq('id', garment_id))

        await self.log_activity(ActivityAction.DELETE, 'garment', garment_id,
                                f"Deleted garment: {garment.name}", entity_name=garment.name)
        logger.info(f"🗑️ Deleted garment: {garment.name}")

    async def search(self, query: str, limit: int = 10) -> List[Garment]:
        """Typeahead search over active garments; returns an empty list instead of raising"""
        if not query or not query.strip():
            return []
        try:
            request = (
                self.supabase.table(TABLE)
                .select(GARMENT_WITH_CATEGORY)
                .or_(or_ilike(SEARCH_COLUMNS, query))
                .eq('active', True)
                .order('sort_order')
                .limit(limit)
            )
            response = await self._execute("search garments", request)
            return [Garment.model_validate(row) for row in self._rows(response)]
        except ServiceError as e:
            logger.warning(f"⚠️ Garment search failed: {e}")
            return []

    # ===== MEMBER GARMENT ASSIGNMENTS =====

    async def assign_garment_to_member(self, data: Union[MemberGarmentCreate, Mapping[str, Any]]) -> MemberGarment:
        payload = self._create_payload(coerce(MemberGarmentCreate, data))

        response = await self._execute("assign garment to member",
                                       self.supabase.table(ASSIGNMENTS_TABLE).insert(payload))
        assignment = MemberGarment.model_validate(self._inserted_row(response, "assign garment to member"))

        await self.log_activity(ActivityAction.CREATE, 'member_garment', assignment.id,
                                "Assigned garment to member", {'assignment_data': payload})
        return assignment

    async def update_garment_assignment(self, assignment_id: str,
                                        data: Union[MemberGarmentUpdate, Mapping[str, Any]]) -> MemberGarment:
        payload = self._update_payload(coerce(MemberGarmentUpdate, data))

        query = self.supabase.table(ASSIGNMENTS_TABLE).update(payload).eq('id', assignment_id)
        response = await self._execute("update garment assignment", query)
        assignment = MemberGarment.model_validate(
            self._first_row(response, "Garment assignment not found", "update garment assignment")
        )

        await self.log_activity(ActivityAction.UPDATE, 'member_garment', assignment_id,
                                "Updated garment assignment", {'updates': payload})
        return assignment

    async def remove_garment_from_member(self, assignment_id: str) -> None:
        await self._execute("remove garment from member",
                            self.supabase.table(ASSIGNMENTS_TABLE).delete().eq('id', assignment_id))

        await self.log_activity(ActivityAction.DELETE, 'member_garment', assignment_id,
                                "Removed garment from member")

    async def get_member_garments(self, member_id: str) -> List[MemberGarment]:
        query = (
            self.supabase.table(ASSIGNMENTS_TABLE)
            .select('*, garment:garments(*)')
            .eq('member_id', member_id)
        )
        response = await self._execute("fetch member garments", query)
        return [MemberGarment.model_validate(row) for row in self._rows(response)]

    # ===== MEMBER SIZES =====

    async def add_member_size(self, data: Union[MemberSizeCreate, Mapping[str, Any]]) -> MemberSize:
        payload = self._create_payload(coerce(MemberSizeCreate, data))

        response = await self._execute("add member size", self.supabase.table(SIZES_TABLE).insert(payload))
        size = MemberSize.model_validate(self._inserted_row(response, "add member size"))

        await self.log_activity(ActivityAction.CREATE, 'member_size', size.id,
                                f"Added size measurement: {size.size_type.value}",
                                {'size_data': payload})
        return size

    async def update_member_size(self, size_id: str,
                                 data: Union[MemberSizeUpdate, Mapping[str, Any]]) -> MemberSize:
        payload = self._update_payload(coerce(MemberSizeUpdate, data))

        query = self.supabase.table(SIZES_TABLE).update(payload).eq('id', size_id)
        response = await self._execute("update member size", query)
        size = MemberSize.model_validate(self._first_row(response, "Member size not found", "update member size"))

        await self.log_activity(ActivityAction.UPDATE, 'member_size', size_id,
                                f"Updated size measurement: {size.size_type.value}",
                                {'updates': payload})
        return size

    async def get_member_sizes(self, member_id: str) -> List[MemberSize]:
        """All measurements for a member, newest first"""
        query = (
            self.supabase.table(SIZES_TABLE)
            .select('*')
            .eq('member_id', member_id)
            .order('measured_at', desc=True)
        )
        response = await self._execute("fetch member sizes", query)
        return [MemberSize.model_validate(row) for row in self._rows(response)]

    async def get_latest_member_sizes(self, member_id: str) -> Dict[str, MemberSize]:
        return latest_sizes_by_type(await self.get_member_sizes(member_id))
