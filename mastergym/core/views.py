from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel

from mastergym.core.mappings import UiPaymentMethod, payment_method_from_backend, term_from_payment
from mastergym.core.membership import DisplayStatus, MembershipTerm, days_until_due, derive_status
from mastergym.core.store import ClientExtras
from mastergym.db.models import ClientResponse, MeasurementResponse, PaymentResponse


class ClientView(BaseModel):
    id: int
    first_name: str
    last_name: str = ""
    email: str = ""
    phone: str = ""
    start_date: date
    due_date: Optional[date] = None
    status: DisplayStatus
    term: MembershipTerm = MembershipTerm.MONTHLY
    emergency_contact: Optional[str] = None
    notes: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PaymentView(BaseModel):
    id: int
    client_id: int
    amount: Decimal
    paid_on: date
    term: MembershipTerm
    method: UiPaymentMethod
    reference: Optional[str] = None


class BmiCategory(str, Enum):
    UNDERWEIGHT = "Bajo peso"
    NORMAL = "Normal"
    OVERWEIGHT = "Sobrepeso"
    OBESE = "Obesidad"


class MeasurementView(BaseModel):
    record: MeasurementResponse
    bmi: Optional[float] = None
    bmi_category: Optional[BmiCategory] = None

    @property
    def bmi_text(self) -> str:
        if self.bmi is None:
            return "-"
        return f"{self.bmi:.1f} ({self.bmi_category.value})"

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def client_id(self) -> int:
        return self.record.client_id


class ClientFilter(str, Enum):
    ALL = "todos"
    ACTIVE = "activos"
    EXPIRING = "por-vencer"
    EXPIRED = "vencidos"


class DashboardStats(BaseModel):
    total: int
    active: int
    expiring: int
    expired: int
    inactive: int
    month_revenue: Decimal


def latest_payment_by_client(payments: Iterable[PaymentResponse]) -> dict[int, PaymentResponse]:
    latest: dict[int, PaymentResponse] = {}
    for payment in payments:
        current = latest.get(payment.client_id)
        if current is None or payment.payment_date > current.payment_date:
            latest[payment.client_id] = payment
    return latest


def build_client_view(
    client: ClientResponse,
    *,
    latest_payment: PaymentResponse | None,
    extras: ClientExtras | None,
    now: datetime,
) -> ClientView:
    if latest_payment is not None:
        term = term_from_payment(latest_payment.payment_type, latest_payment.notes)
    else:
        term = MembershipTerm.MONTHLY

    return ClientView(
        id=client.id,
        first_name=client.first_name,
        last_name=client.last_name or "",
        email=client.email or "",
        phone=client.phone or "",
        start_date=client.membership_start or client.registered_at.date(),
        due_date=client.due_date,
        status=derive_status(client.status, client.due_date, now),
        term=term,
        emergency_contact=(extras.emergency_contact if extras else None) or None,
        notes=client.notes,
    )


def build_client_views(
    clients: Iterable[ClientResponse],
    payments: Iterable[PaymentResponse],
    extras: dict[str, ClientExtras],
    now: datetime | None = None,
) -> list[ClientView]:
    now = now or datetime.now()
    latest = latest_payment_by_client(payments)
    return [
        build_client_view(
            client,
            latest_payment=latest.get(client.id),
            extras=extras.get(str(client.id)),
            now=now,
        )
        for client in clients
    ]


def build_payment_view(payment: PaymentResponse) -> PaymentView:
    return PaymentView(
        id=payment.id,
        client_id=payment.client_id,
        amount=payment.amount,
        paid_on=payment.payment_date,
        term=term_from_payment(payment.payment_type, payment.notes),
        method=payment_method_from_backend(payment.payment_method),
        reference=payment.reference,
    )


def build_payment_views(payments: Iterable[PaymentResponse]) -> list[PaymentView]:
    return [build_payment_view(payment) for payment in payments]


def bmi(weight_kg: float, height_cm: float) -> Optional[float]:
    """None when the recorded height cannot give a BMI."""
    if height_cm <= 0:
        return None
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)


def bmi_category(value: float) -> BmiCategory:
    if value < 18.5:
        return BmiCategory.UNDERWEIGHT
    if value < 25:
        return BmiCategory.NORMAL
    if value < 30:
        return BmiCategory.OVERWEIGHT
    return BmiCategory.OBESE


def build_measurement_view(measurement: MeasurementResponse) -> MeasurementView:
    value = bmi(measurement.weight_kg, measurement.height_cm)
    if value is None:
        return MeasurementView(record=measurement)
    return MeasurementView(record=measurement, bmi=value, bmi_category=bmi_category(value))


def search_clients(clients: Iterable[ClientView], query: str) -> list[ClientView]:
    """Match by name, last name, email or status (case-insensitive) and by phone."""

    clients = list(clients)
    needle = query.strip().lower()
    if not needle:
        return clients
    return [
        client
        for client in clients
        if needle in client.first_name.lower()
        or needle in client.last_name.lower()
        or needle in client.email.lower()
        or query.strip() in client.phone
        or needle in client.status.value
    ]


def filter_clients(clients: Iterable[ClientView], client_filter: ClientFilter) -> list[ClientView]:
    if client_filter is ClientFilter.ACTIVE:
        return [c for c in clients if c.status is DisplayStatus.ACTIVE]
    if client_filter is ClientFilter.EXPIRING:
        return [c for c in clients if c.status is DisplayStatus.EXPIRING_SOON]
    if client_filter is ClientFilter.EXPIRED:
        return [c for c in clients if c.status is DisplayStatus.EXPIRED]
    return list(clients)


def count_by_status(clients: Iterable[ClientView]) -> dict[DisplayStatus, int]:
    counts = {status: 0 for status in DisplayStatus}
    for client in clients:
        counts[client.status] += 1
    return counts


def month_revenue(payments: Iterable[PaymentView], today: date) -> Decimal:
    return sum(
        (p.amount for p in payments if p.paid_on.year == today.year and p.paid_on.month == today.month),
        Decimal(0),
    )


def dashboard_stats(
    clients: Iterable[ClientView],
    payments: Iterable[PaymentView],
    today: date | None = None,
) -> DashboardStats:
    clients = list(clients)
    today = today or date.today()
    counts = count_by_status(clients)
    return DashboardStats(
        total=len(clients),
        # expiring members still hold a valid membership
        active=counts[DisplayStatus.ACTIVE] + counts[DisplayStatus.EXPIRING_SOON],
        expiring=counts[DisplayStatus.EXPIRING_SOON],
        expired=counts[DisplayStatus.EXPIRED],
        inactive=counts[DisplayStatus.INACTIVE],
        month_revenue=month_revenue(payments, today),
    )


def clients_needing_attention(clients: Iterable[ClientView], now: datetime) -> list[tuple[ClientView, int]]:
    """
    Expiring and expired clients with days left (negative once lapsed).

    Expired clients come first, then soonest due date. Grouping follows
    ``client.status``, so a delinquent client stays expired even with a
    future due date.
    """

    flagged = [
        (client, days_until_due(client.due_date, now))
        for client in clients
        if client.due_date is not None
        and client.status in (DisplayStatus.EXPIRING_SOON, DisplayStatus.EXPIRED)
    ]
    return sorted(flagged, key=lambda item: (item[0].status is not DisplayStatus.EXPIRED, item[1]))


def payments_for_client(payments: Iterable[PaymentView], client_id: int) -> list[PaymentView]:
    """Client payments, newest first."""

    own = [p for p in payments if p.client_id == client_id]
    return sorted(own, key=lambda p: p.paid_on, reverse=True)


def measurements_for_client(
    measurements: Iterable[MeasurementView],
    client_id: int,
) -> list[MeasurementView]:
    """Client measurements, newest first."""

    own = [m for m in measurements if m.client_id == client_id]
    return sorted(own, key=lambda m: m.record.measured_on, reverse=True)


def format_colones(amount: Decimal) -> str:
    whole = int(amount.quantize(Decimal(1)))
    return "₡" + f"{whole:,}".replace(",", " ")
