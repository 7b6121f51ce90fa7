from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar
from shipment_service.domain import lifecycle
from shipment_service.domain.models import Shipment, ShipmentStatus, UserRole, utcnow

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"

T = TypeVar("T")

def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )

# ---- users -----------------------------------------------------------------

class RegisterRequest(CamelModel):
    name: str = Field(min_length=2, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=6, max_length=128)

class LoginRequest(CamelModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=1)

class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)

class PasswordChange(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)

class RoleUpdate(CamelModel):
    role: UserRole

class UserRead(CamelModel):
    id: int
    name: str
    email: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class AuthResult(CamelModel):
    user: UserRead
    token: str

class TokenResult(CamelModel):
    token: str

# ---- shipments -------------------------------------------------------------

class ShipmentCreate(CamelModel):
    sender_name: str = Field(min_length=2, max_length=100)
    receiver_name: str = Field(min_length=2, max_length=100)
    origin: str = Field(min_length=2, max_length=200)
    destination: str = Field(min_length=2, max_length=200)
    status: ShipmentStatus = ShipmentStatus.PENDING
    weight: Optional[float] = Field(default=None, gt=0, le=10000)
    description: Optional[str] = Field(default=None, max_length=1000)
    estimated_delivery: Optional[datetime] = None

    @field_validator("estimated_delivery")
    @classmethod
    def delivery_in_future(cls, value: Optional[datetime]) -> Optional[datetime]:
        value = _naive_utc(value)
        if value is not None and value <= utcnow():
            raise ValueError("Estimated delivery must be in the future")
        return value

class ShipmentUpdate(CamelModel):
    """Tracking number, owner and history are not part of the update surface."""
    sender_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    receiver_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    origin: Optional[str] = Field(default=None, min_length=2, max_length=200)
    destination: Optional[str] = Field(default=None, min_length=2, max_length=200)
    status: Optional[ShipmentStatus] = None
    weight: Optional[float] = Field(default=None, gt=0, le=10000)
    description: Optional[str] = Field(default=None, max_length=1000)
    estimated_delivery: Optional[datetime] = None

    @field_validator("estimated_delivery")
    @classmethod
    def normalize_delivery(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)

class StatusUpdate(CamelModel):
    status: ShipmentStatus
    notes: Optional[str] = Field(default=None, max_length=500)

class StatusHistoryRead(CamelModel):
    id: int
    status: str
    changed_at: datetime
    changed_by: Optional[int] = None
    notes: Optional[str] = None

class AttachmentRead(CamelModel):
    id: int
    filename: str
    original_name: str
    path: str
    mimetype: str
    size: int
    uploaded_at: datetime

class ShipmentRead(CamelModel):
    id: int
    tracking_number: str
    sender_name: str
    receiver_name: str
    origin: str
    destination: str
    status: str
    weight: Optional[float] = None
    description: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    attachments: list[AttachmentRead] = []
    status_history: list[StatusHistoryRead] = []
    created_by: int
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    # Derived at read time
    days_in_transit: int = 0
    is_overdue: bool = False

    @classmethod
    def from_shipment(cls, shipment: Shipment, now: Optional[datetime] = None) -> "ShipmentRead":
        now = now or utcnow()
        read = cls.model_validate(shipment)
        read.days_in_transit = lifecycle.days_in_transit(shipment, now)
        read.is_overdue = lifecycle.is_overdue(shipment, now)
        return read

class TrackingHistoryRead(CamelModel):
    status: str
    changed_at: datetime
    notes: Optional[str] = None

class TrackingRead(CamelModel):
    """Public view of a shipment: nothing that identifies the owner or editors."""
    tracking_number: str
    sender_name: str
    receiver_name: str
    origin: str
    destination: str
    status: str
    status_history: list[TrackingHistoryRead] = []
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    created_at: datetime
    days_in_transit: int = 0
    is_overdue: bool = False

    @classmethod
    def from_shipment(cls, shipment: Shipment, now: Optional[datetime] = None) -> "TrackingRead":
        now = now or utcnow()
        read = cls.model_validate(shipment)
        read.days_in_transit = lifecycle.days_in_transit(shipment, now)
        read.is_overdue = lifecycle.is_overdue(shipment, now)
        return read

class ShipmentStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_transit: int = 0
    delivered: int = 0
    cancelled: int = 0

# ---- envelope --------------------------------------------------------------

class FieldError(BaseModel):
    field: str
    message: str

class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )

class Envelope(CamelModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None
    errors: Optional[list[FieldError]] = None
    pagination: Optional[Pagination] = None

@dataclass
class Page(Generic[T]):
    """Service-level page of ORM rows, turned into data + pagination by the API."""
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def pagination(self) -> Pagination:
        return Pagination.build(self.page, self.limit, self.total)
