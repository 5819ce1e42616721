"""
Conversions between backend enums and the values shown in the panel.

Each function handles every member of its input explicitly and falls back
to a fixed default for anything else (including ``None``).
"""

from __future__ import annotations

import re
from enum import Enum

from mastergym.core.membership import MembershipTerm
from mastergym.db.models import PaymentMethod, PaymentType


class UiPaymentMethod(str, Enum):
    CASH = "efectivo"
    CARD = "tarjeta"
    SINPE = "sinpe"


_TERM_IN_NOTES_RE = re.compile(r"tipoPago:\s*(diario|mensual|trimestral|semestral|anual)", re.IGNORECASE)


def payment_method_to_backend(method: UiPaymentMethod | None) -> PaymentMethod:
    if method is UiPaymentMethod.CASH:
        return PaymentMethod.CASH
    if method is UiPaymentMethod.CARD:
        return PaymentMethod.CARD
    if method is UiPaymentMethod.SINPE:
        return PaymentMethod.SINPE
    return PaymentMethod.SINPE


def payment_method_from_backend(method: PaymentMethod | None) -> UiPaymentMethod:
    if method is PaymentMethod.CARD:
        return UiPaymentMethod.CARD
    if method is PaymentMethod.SINPE:
        return UiPaymentMethod.SINPE
    if method is PaymentMethod.CASH:
        return UiPaymentMethod.CASH
    if method is PaymentMethod.TRANSFER:
        return UiPaymentMethod.CASH
    if method is PaymentMethod.OTHER:
        return UiPaymentMethod.CASH
    return UiPaymentMethod.CASH


def term_to_payment_type(term: MembershipTerm | None) -> PaymentType:
    if term is MembershipTerm.DAILY:
        return PaymentType.DAILY_MEMBERSHIP
    if term is MembershipTerm.MONTHLY:
        return PaymentType.MONTHLY_MEMBERSHIP
    if term is MembershipTerm.QUARTERLY:
        return PaymentType.QUARTERLY_MEMBERSHIP
    if term is MembershipTerm.SEMIANNUAL:
        return PaymentType.SEMESTER_MEMBERSHIP
    if term is MembershipTerm.ANNUAL:
        return PaymentType.ANNUAL_MEMBERSHIP
    return PaymentType.MONTHLY_MEMBERSHIP


def term_from_payment_type(payment_type: PaymentType | None) -> MembershipTerm | None:
    """
    Term encoded by a membership payment type; ``None`` for non-membership
    payments (and for monthly ones, which older records also used as a
    catch-all).
    """

    if payment_type is PaymentType.DAILY_MEMBERSHIP:
        return MembershipTerm.DAILY
    if payment_type is PaymentType.QUARTERLY_MEMBERSHIP:
        return MembershipTerm.QUARTERLY
    if payment_type is PaymentType.SEMESTER_MEMBERSHIP:
        return MembershipTerm.SEMIANNUAL
    if payment_type is PaymentType.ANNUAL_MEMBERSHIP:
        return MembershipTerm.ANNUAL
    if payment_type is PaymentType.MONTHLY_MEMBERSHIP:
        return None
    if payment_type in (PaymentType.REGISTRATION, PaymentType.PENALTY, PaymentType.OTHER):
        return None
    return None


def term_from_notes(notes: str | None) -> MembershipTerm | None:
    if not notes:
        return None
    match = _TERM_IN_NOTES_RE.search(notes)
    if match is None:
        return None
    return MembershipTerm(match.group(1).lower())


def term_from_payment(payment_type: PaymentType | None, notes: str | None) -> MembershipTerm:
    """
    Resolve the membership term of a payment.

    An explicit non-monthly payment type wins; otherwise the ``tipoPago: <term>``
    marker written into the notes is used, and monthly is the default.
    """

    return term_from_payment_type(payment_type) or term_from_notes(notes) or MembershipTerm.MONTHLY


def term_notes(term: MembershipTerm) -> str:
    return f"tipoPago: {term.value}"
