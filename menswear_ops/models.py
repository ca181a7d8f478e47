from datetime import date, datetime
from enum import Enum
from math import ceil
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class OrderStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DisplayStatus(str, Enum):
    ACTIVE = "active"
    NO_DEPOSIT = "no_deposit"
    PAST = "past"


class FunctionType(str, Enum):
    WEDDING = "wedding"
    CORPORATE = "corporate"
    FORMAL = "formal"
    BLACK_TIE = "black_tie"
    MILITARY = "military"
    OTHER = "other"


class MemberRole(str, Enum):
    GROOM = "groom"
    BEST_MAN = "best_man"
    GROOMSMAN = "groomsman"
    FATHER_OF_GROOM = "father_of_groom"
    FATHER_OF_BRIDE = "father_of_bride"
    USHER = "usher"
    PAGE_BOY = "page_boy"
    OTHER = "other"


class SizeType(str, Enum):
    CHEST = "chest"
    WAIST = "waist"
    INSIDE_LEG = "inside_leg"
    TROUSER_WAIST = "trouser_waist"
    JACKET_LENGTH = "jacket_length"
    SHIRT_COLLAR = "shirt_collar"
    SHOE_SIZE = "shoe_size"
    HEIGHT = "height"
    WEIGHT = "weight"


class ActivityAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    VIEW = "view"
    LOGIN = "login"
    LOGOUT = "logout"


class UserRole(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"


def _require_text(value: str, label: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{label} is required")
    return value.strip()


# ===== CUSTOMERS =====

class Customer(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None
    country: str = "United Kingdom"
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class CustomerCreate(BaseModel):
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None
    country: str = "United Kingdom"
    notes: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def _first_name_required(cls, value: str) -> str:
        return _require_text(value, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name_required(cls, value: str) -> str:
        return _require_text(value, "Last name")


class CustomerUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _names_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _require_text(value, "Name")


class CustomerSearchFilters(BaseModel):
    search: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None


# ===== GARMENTS =====

class GarmentCategory(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    sort_order: int = 0
    active: bool = True
    created_at: Optional[datetime] = None


class GarmentCategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None
    sort_order: int = 0
    active: bool = True

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        return _require_text(value, "Category name")


class Garment(BaseModel):
    id: str
    category_id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    brand: Optional[str] = None
    sku: Optional[str] = None
    rental_price: Optional[float] = None
    purchase_price: Optional[float] = None
    active: bool = True
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category: Optional[GarmentCategory] = None


class GarmentCreate(BaseModel):
    category_id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    brand: Optional[str] = None
    sku: Optional[str] = None
    rental_price: Optional[float] = Field(default=None, ge=0)
    purchase_price: Optional[float] = Field(default=None, ge=0)
    active: bool = True
    sort_order: int = 0

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        return _require_text(value, "Garment name")


class GarmentUpdate(BaseModel):
    category_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    brand: Optional[str] = None
    sku: Optional[str] = None
    rental_price: Optional[float] = Field(default=None, ge=0)
    purchase_price: Optional[float] = Field(default=None, ge=0)
    active: Optional[bool] = None
    sort_order: Optional[int] = None


class GarmentSearchFilters(BaseModel):
    search: Optional[str] = None
    category_id: Optional[str] = None
    active: Optional[bool] = None
    color: Optional[str] = None
    material: Optional[str] = None


class MemberGarment(BaseModel):
    id: str
    member_id: str
    garment_id: str
    quantity: int = Field(default=1, ge=0)
    is_rental: bool = True
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    garment: Optional[Garment] = None


class MemberGarmentCreate(BaseModel):
    member_id: str
    garment_id: str
    quantity: int = Field(default=1, ge=0)
    is_rental: bool = True
    notes: Optional[str] = None


class MemberGarmentUpdate(BaseModel):
    quantity: Optional[int] = Field(default=None, ge=0)
    is_rental: Optional[bool] = None
    notes: Optional[str] = None


class MemberSize(BaseModel):
    id: str
    member_id: str
    size_type: SizeType
    measurement: str
    measurement_unit: Optional[str] = None
    notes: Optional[str] = None
    measured_at: datetime
    measured_by: Optional[str] = None


class MemberSizeCreate(BaseModel):
    member_id: str
    size_type: SizeType
    measurement: str
    measurement_unit: Optional[str] = None
    notes: Optional[str] = None
    measured_at: Optional[datetime] = None
    measured_by: Optional[str] = None

    @field_validator("measurement", mode="before")
    @classmethod
    def _measurement_as_text(cls, value: Any) -> str:
        # Stored as text so "15.5", "9 UK" and "5'10" all fit
        if value is None:
            raise ValueError("Measurement is required")
        return _require_text(str(value), "Measurement")


class MemberSizeUpdate(BaseModel):
    measurement: Optional[str] = None
    measurement_unit: Optional[str] = None
    notes: Optional[str] = None
    measured_by: Optional[str] = None


# ===== ORDERS =====

class Order(BaseModel):
    id: str
    customer_id: str
    order_number: str
    wedding_date: Optional[date] = None
    wedding_venue: Optional[str] = None
    wedding_time: Optional[str] = None
    function_type: FunctionType = FunctionType.WEDDING
    status: OrderStatus = OrderStatus.DRAFT
    total_members: int = Field(default=1, ge=1)
    special_requirements: Optional[str] = None
    internal_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class OrderCreate(BaseModel):
    customer_id: str
    wedding_date: Optional[date] = None
    wedding_venue: Optional[str] = None
    wedding_time: Optional[str] = None
    function_type: FunctionType = FunctionType.WEDDING
    status: OrderStatus = OrderStatus.DRAFT
    total_members: int = Field(default=1, ge=1)
    special_requirements: Optional[str] = None
    internal_notes: Optional[str] = None


class OrderUpdate(BaseModel):
    wedding_date: Optional[date] = None
    wedding_venue: Optional[str] = None
    wedding_time: Optional[str] = None
    function_type: Optional[FunctionType] = None
    status: Optional[OrderStatus] = None
    total_members: Optional[int] = Field(default=None, ge=1)
    special_requirements: Optional[str] = None
    internal_notes: Optional[str] = None
    completed_at: Optional[datetime] = None


class OrderSummary(BaseModel):
    """Row of the ``order_summary`` view"""
    id: str
    order_number: str
    status: OrderStatus
    wedding_date: Optional[date] = None
    wedding_venue: Optional[str] = None
    function_type: FunctionType = FunctionType.WEDDING
    customer_id: Optional[str] = None
    customer_name: str = ""
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    total_members: int = 1
    actual_members: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    display_status: Optional[DisplayStatus] = None


class OrderSearchFilters(BaseModel):
    search: Optional[str] = None
    # Either a DisplayStatus value or a raw OrderStatus value
    status: Optional[str] = None
    customer_id: Optional[str] = None
    function_type: Optional[str] = None
    wedding_date_from: Optional[date] = None
    wedding_date_to: Optional[date] = None


class OrderMember(BaseModel):
    id: str
    order_id: str
    first_name: str
    last_name: str
    role: MemberRole
    email: Optional[str] = None
    phone: Optional[str] = None
    sort_order: int = 0
    measurements_taken: bool = False
    outfit_assigned: bool = False
    fitting_completed: bool = False
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class OrderMemberDetail(OrderMember):
    """Member row with its garments and sizes embedded.

    measurements_taken and outfit_assigned are recomputed from the embedded
    child rows whenever those rows were part of the response.
    """
    member_garments: List[MemberGarment] = Field(default_factory=list)
    member_sizes: List[MemberSize] = Field(default_factory=list)

    @model_validator(mode="after")
    def _derive_progress_flags(self) -> "OrderMemberDetail":
        if "member_sizes" in self.model_fields_set:
            self.measurements_taken = len(self.member_sizes) > 0
        if "member_garments" in self.model_fields_set:
            self.outfit_assigned = any(mg.quantity > 0 for mg in self.member_garments)
        return self


class OrderMemberCreate(BaseModel):
    order_id: str
    first_name: str
    last_name: str
    role: MemberRole
    email: Optional[str] = None
    phone: Optional[str] = None
    sort_order: int = 0
    notes: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def _first_name_required(cls, value: str) -> str:
        return _require_text(value, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name_required(cls, value: str) -> str:
        return _require_text(value, "Last name")


class OrderMemberUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[MemberRole] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    sort_order: Optional[int] = None
    fitting_completed: Optional[bool] = None
    notes: Optional[str] = None


class OrderWithMembers(Order):
    customer: Optional[Customer] = None
    order_members: List[OrderMemberDetail] = Field(default_factory=list)


# ===== ACTIVITY / DASHBOARD =====

class ActivityLog(BaseModel):
    id: str
    user_identifier: str
    user_name: Optional[str] = None
    action: ActivityAction
    entity_type: str
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    description: str
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class DashboardKPIs(BaseModel):
    total_orders: int = 0
    active_customers: int = 0
    todays_functions: int = 0
    pending_fittings: int = 0
    revenue_this_month: float = 0.0
    completed_orders_this_month: int = 0


class FunctionSummary(BaseModel):
    """A function (order) shown on the dashboard agenda"""
    id: str
    order_number: str
    customer_name: str = ""
    wedding_date: Optional[date] = None
    wedding_venue: Optional[str] = None
    status: OrderStatus
    actual_members: int = 0
    total_members: int = 1

    @property
    def members_outstanding(self) -> int:
        return max(0, self.total_members - self.actual_members)


class RecentActivityItem(BaseModel):
    id: str
    action: ActivityAction
    user_name: Optional[str] = None
    entity_type: str
    entity_name: Optional[str] = None
    description: str
    created_at: Optional[datetime] = None


# ===== AUTH / ADMIN =====

class AuthUser(BaseModel):
    """Logged-in staff member; serialised with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole = UserRole.STAFF
    last_login: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class PinAttempt(BaseModel):
    pin_hash: str
    attempts: int = 0
    lock_until: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None


# ===== LIST RESPONSES =====

T = TypeVar("T")


class ListResponse(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 50

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1


CustomerListResponse = ListResponse[Customer]
OrderListResponse = ListResponse[OrderSummary]
GarmentListResponse = ListResponse[Garment]
