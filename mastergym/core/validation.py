from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation


_PHONE_REGEX = re.compile(r"^\+?\d{7,15}$")
_EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_NON_DIGITS = re.compile(r"\D")

COUNTRY_CODE = "506"
LOCAL_PHONE_DIGITS = 8

SKIP_MARKERS = {"-", "—", "no", "ninguno", "ninguna"}

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y")


def normalize_phone(raw: str) -> str | None:
    """
    Basic phone normalization and validation.

    Accepts digits and an optional leading '+'. Returns normalized phone
    (digits with optional '+') or None if the value looks invalid.
    """

    value = raw.strip().replace(" ", "").replace("-", "")
    if not _PHONE_REGEX.match(value):
        return None
    return value


def whatsapp_phone(raw: str | None) -> str | None:
    """
    Digits-only phone usable in a wa.me link.

    Leading zeros are dropped and 8-digit local numbers get the 506 country
    code. Anything shorter than a local number is rejected.
    """

    if not raw:
        return None
    digits = _NON_DIGITS.sub("", raw).lstrip("0")
    if not digits:
        return None
    if len(digits) == LOCAL_PHONE_DIGITS:
        digits = COUNTRY_CODE + digits
    if len(digits) < LOCAL_PHONE_DIGITS:
        return None
    return digits


def normalize_email(raw: str) -> str | None:
    value = raw.strip().lower()
    if not _EMAIL_REGEX.match(value):
        return None
    return value


def optional_text(raw: str | None) -> str | None:
    """Free-text form answer; a dash (or "no") means the field is skipped."""

    if raw is None:
        return None
    value = raw.strip()
    if not value or value.lower() in SKIP_MARKERS:
        return None
    return value


def parse_date(raw: str) -> date | None:
    value = raw.strip().lower()
    if value in ("hoy", "today"):
        return date.today()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def parse_amount(raw: str) -> Decimal | None:
    """Positive money amount; accepts "15000", "15 000", "15000,50"."""

    value = raw.strip().replace(" ", "").replace("₡", "").replace(",", ".")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount.quantize(Decimal("0.01"))


def parse_positive_float(raw: str) -> float | None:
    value = raw.strip().replace(",", ".")
    try:
        number = float(value)
    except ValueError:
        return None
    if number != number or number <= 0 or number == float("inf"):
        return None
    return number


def parse_id(raw: str | None) -> int | None:
    if raw is None:
        return None
    value = raw.strip().lstrip("#")
    if not value.isdigit():
        return None
    return int(value)
