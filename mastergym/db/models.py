from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")


class BackendModel(BaseModel):
    # Backend JSON uses its own (partly Spanish) camelCase names
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ClientStatus(str, Enum):
    ACTIVE = "ACTIVO"
    INACTIVE = "INACTIVO"
    DELINQUENT = "MOROSO"


class PaymentCurrency(str, Enum):
    CRC = "CRC"
    USD = "USD"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    SINPE = "SINPE"
    CARD = "CARD"
    TRANSFER = "TRANSFER"
    OTHER = "OTHER"


class PaymentType(str, Enum):
    DAILY_MEMBERSHIP = "DAILY_MEMBERSHIP"
    MONTHLY_MEMBERSHIP = "MONTHLY_MEMBERSHIP"
    QUARTERLY_MEMBERSHIP = "QUARTERLY_MEMBERSHIP"
    SEMESTER_MEMBERSHIP = "SEMESTER_MEMBERSHIP"
    ANNUAL_MEMBERSHIP = "ANNUAL_MEMBERSHIP"
    REGISTRATION = "REGISTRATION"
    PENALTY = "PENALTY"
    OTHER = "OTHER"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class Page(BackendModel, Generic[T]):
    content: list[T]
    number: int = 0
    size: int = 0
    total_elements: int = Field(default=0, alias="totalElements")
    total_pages: int = Field(default=0, alias="totalPages")


class ClientResponse(BackendModel):
    id: int
    gym_id: int = Field(alias="gymId")
    first_name: str = Field(alias="nombre")
    last_name: Optional[str] = Field(default=None, alias="apellido")
    phone: Optional[str] = Field(default=None, alias="telefono")
    email: Optional[str] = None
    status: ClientStatus = Field(alias="estado")
    registered_at: datetime = Field(alias="fechaRegistro")
    membership_start: Optional[date] = Field(default=None, alias="fechaInicioMembresia")
    due_date: Optional[date] = Field(default=None, alias="fechaVencimiento")
    notes: Optional[str] = Field(default=None, alias="notas")


class ClientCreateRequest(BackendModel):
    first_name: str = Field(alias="nombre")
    last_name: Optional[str] = Field(default=None, alias="apellido")
    phone: Optional[str] = Field(default=None, alias="telefono")
    email: Optional[str] = None
    notes: Optional[str] = Field(default=None, alias="notas")


class ClientUpdateRequest(BackendModel):
    first_name: Optional[str] = Field(default=None, alias="nombre")
    last_name: Optional[str] = Field(default=None, alias="apellido")
    phone: Optional[str] = Field(default=None, alias="telefono")
    email: Optional[str] = None
    notes: Optional[str] = Field(default=None, alias="notas")
    status: Optional[ClientStatus] = Field(default=None, alias="estado")


class PaymentResponse(BackendModel):
    id: int
    gym_id: int = Field(alias="gymId")
    client_id: int = Field(alias="clientId")
    amount: Decimal
    currency: PaymentCurrency = PaymentCurrency.CRC
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    payment_type: PaymentType = Field(alias="paymentType")
    status: PaymentStatus = PaymentStatus.PAID
    reference: Optional[str] = None
    notes: Optional[str] = None
    payment_date: date = Field(alias="paymentDate")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class PaymentCreateRequest(BackendModel):
    client_id: int = Field(alias="clientId")
    # Backend expects a "1234.00" string
    amount: str
    currency: PaymentCurrency = PaymentCurrency.CRC
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    payment_type: PaymentType = Field(alias="paymentType")
    status: PaymentStatus = PaymentStatus.PAID
    reference: Optional[str] = None
    notes: Optional[str] = None
    payment_date: date = Field(alias="paymentDate")


class MeasurementFields(BackendModel):
    client_id: int = Field(alias="clientId")
    measured_on: date = Field(alias="fecha")
    weight_kg: float = Field(alias="peso")
    height_cm: float = Field(alias="altura")
    chest_cm: float = Field(alias="pechoCm")
    waist_cm: float = Field(alias="cinturaCm")
    hip_cm: float = Field(alias="caderaCm")
    left_arm_cm: float = Field(alias="brazoIzqCm")
    right_arm_cm: float = Field(alias="brazoDerCm")
    left_leg_cm: float = Field(alias="piernaIzqCm")
    right_leg_cm: float = Field(alias="piernaDerCm")
    body_fat_pct: Optional[float] = Field(default=None, alias="grasaCorporal")
    notes: Optional[str] = Field(default=None, alias="notas")


class MeasurementCreateRequest(MeasurementFields):
    pass


class MeasurementResponse(MeasurementFields):
    id: int
    gym_id: int = Field(alias="gymId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class LoginResponse(BackendModel):
    token: str
    token_type: str = Field(default="Bearer", alias="tokenType")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")


class BackupResponse(BackendModel):
    success: bool
    exit_code: int = Field(default=0, alias="exitCode")
    output: Optional[str] = None


class Snapshot(BaseModel):
    """Everything the panel lists, fetched in one pass."""

    clients: list[ClientResponse]
    payments: list[PaymentResponse]
    measurements: list[MeasurementResponse]
