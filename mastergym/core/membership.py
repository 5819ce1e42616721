"""
Membership rules: display status derivation and due-date arithmetic.

Everything here is pure and recomputed on every listing pass; none of these
values are ever written back to the backend.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from enum import Enum

from mastergym.db.models import ClientStatus

EXPIRING_SOON_DAYS = 7

_SECONDS_PER_DAY = 24 * 60 * 60


class DisplayStatus(str, Enum):
    ACTIVE = "activo"
    EXPIRING_SOON = "por-vencer"
    EXPIRED = "vencido"
    INACTIVE = "inactivo"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    DisplayStatus.ACTIVE: "Activo",
    DisplayStatus.EXPIRING_SOON: "Por vencer",
    DisplayStatus.EXPIRED: "Vencido",
    DisplayStatus.INACTIVE: "Inactivo",
}


class MembershipTerm(str, Enum):
    DAILY = "diario"
    MONTHLY = "mensual"
    QUARTERLY = "trimestral"
    SEMIANNUAL = "semestral"
    ANNUAL = "anual"

    @property
    def months(self) -> int:
        """Month increment of the term; 0 for the daily pass."""
        return _TERM_MONTHS[self]


_TERM_MONTHS = {
    MembershipTerm.DAILY: 0,
    MembershipTerm.MONTHLY: 1,
    MembershipTerm.QUARTERLY: 3,
    MembershipTerm.SEMIANNUAL: 6,
    MembershipTerm.ANNUAL: 12,
}


def _as_datetime(value: date | datetime, name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise TypeError(f"{name} must be a date or datetime, got {type(value).__name__}")


def _as_date(value: date | datetime, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"{name} must be a date or datetime, got {type(value).__name__}")


def days_until_due(due_date: date, now: date | datetime) -> int:
    """
    Whole days left until the due date, rounded up.

    The due date is taken at the start of its day, so a partially elapsed
    day still counts as one.
    """

    delta = _as_datetime(due_date, "due_date") - _as_datetime(now, "now")
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def derive_status(
    lifecycle: ClientStatus,
    due_date: date | None,
    now: date | datetime,
) -> DisplayStatus:
    """
    Compute the display status of a client.

    Delinquent clients show as expired whatever their due date says. A client
    without a due date has no membership and shows as inactive. A due date
    that is not after ``now`` is already expired.
    """

    if not isinstance(lifecycle, ClientStatus):
        raise TypeError(f"lifecycle must be a ClientStatus, got {lifecycle!r}")
    now_at = _as_datetime(now, "now")

    if lifecycle is ClientStatus.INACTIVE:
        return DisplayStatus.INACTIVE
    if lifecycle is ClientStatus.DELINQUENT:
        return DisplayStatus.EXPIRED
    if due_date is None:
        return DisplayStatus.INACTIVE

    due_at = _as_datetime(due_date, "due_date")
    if due_at <= now_at:
        return DisplayStatus.EXPIRED
    if days_until_due(due_date, now_at) <= EXPIRING_SOON_DAYS:
        return DisplayStatus.EXPIRING_SOON
    return DisplayStatus.ACTIVE


def add_months(start: date, months: int) -> date:
    """
    Move ``start`` forward by calendar months.

    A day of month that does not exist in the target month rolls over into
    the next one: Jan 31 + 1 month is Mar 3 (Mar 2 in leap years).
    """

    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1) + timedelta(days=start.day - 1)


def add_term(start: date | datetime, term: MembershipTerm) -> date:
    start_day = _as_date(start, "start")
    if term is MembershipTerm.DAILY:
        return start_day + timedelta(days=1)
    return add_months(start_day, term.months)


def initial_due_date(start: date | datetime, term: MembershipTerm) -> date:
    return add_term(start, term)


def renew_due_date(
    current_due: date | None,
    term: MembershipTerm,
    today: date | datetime,
) -> date:
    """
    New due date after renewing for ``term``.

    Renewing early extends from the current due date; renewing a lapsed
    membership counts from today.
    """

    today_day = _as_date(today, "today")
    if current_due is None:
        base = today_day
    else:
        base = max(_as_date(current_due, "current_due"), today_day)
    return add_term(base, term)
