"""
Tests for backend <-> panel enum conversions.
"""
import pytest

from mastergym.core.mappings import (
    UiPaymentMethod,
    payment_method_from_backend,
    payment_method_to_backend,
    term_from_notes,
    term_from_payment,
    term_from_payment_type,
    term_notes,
    term_to_payment_type,
)
from mastergym.core.membership import MembershipTerm
from mastergym.db.models import PaymentMethod, PaymentType


class TestPaymentMethod:

    @pytest.mark.parametrize(
        "ui,backend",
        [
            (UiPaymentMethod.CASH, PaymentMethod.CASH),
            (UiPaymentMethod.CARD, PaymentMethod.CARD),
            (UiPaymentMethod.SINPE, PaymentMethod.SINPE),
        ],
    )
    def test_to_backend(self, ui, backend):
        assert payment_method_to_backend(ui) is backend

    def test_to_backend_default(self):
        assert payment_method_to_backend(None) is PaymentMethod.SINPE

    @pytest.mark.parametrize(
        "backend,ui",
        [
            (PaymentMethod.CASH, UiPaymentMethod.CASH),
            (PaymentMethod.CARD, UiPaymentMethod.CARD),
            (PaymentMethod.SINPE, UiPaymentMethod.SINPE),
            (PaymentMethod.TRANSFER, UiPaymentMethod.CASH),
            (PaymentMethod.OTHER, UiPaymentMethod.CASH),
            (None, UiPaymentMethod.CASH),
        ],
    )
    def test_from_backend(self, backend, ui):
        assert payment_method_from_backend(backend) is ui

    def test_every_backend_method_maps(self):
        for method in PaymentMethod:
            assert isinstance(payment_method_from_backend(method), UiPaymentMethod)


class TestTerms:

    def test_every_term_has_a_membership_payment_type(self):
        types = {term_to_payment_type(term) for term in MembershipTerm}
        assert len(types) == len(MembershipTerm)
        assert all(t.name.endswith("_MEMBERSHIP") for t in types)

    def test_to_payment_type_default(self):
        assert term_to_payment_type(None) is PaymentType.MONTHLY_MEMBERSHIP

    def test_semiannual_uses_semester_type(self):
        assert term_to_payment_type(MembershipTerm.SEMIANNUAL) is PaymentType.SEMESTER_MEMBERSHIP
        assert term_from_payment_type(PaymentType.SEMESTER_MEMBERSHIP) is MembershipTerm.SEMIANNUAL

    @pytest.mark.parametrize(
        "payment_type",
        [PaymentType.MONTHLY_MEMBERSHIP, PaymentType.REGISTRATION, PaymentType.PENALTY, PaymentType.OTHER, None],
    )
    def test_from_payment_type_without_explicit_term(self, payment_type):
        assert term_from_payment_type(payment_type) is None

    def test_notes_marker(self):
        assert term_from_notes("tipoPago: trimestral") is MembershipTerm.QUARTERLY
        assert term_from_notes("Pago en ventanilla. TIPOPAGO:Anual") is MembershipTerm.ANNUAL
        assert term_from_notes("sin marcador") is None
        assert term_from_notes(None) is None

    def test_notes_round_trip(self):
        for term in MembershipTerm:
            assert term_from_notes(term_notes(term)) is term

    def test_explicit_type_wins_over_notes(self):
        assert term_from_payment(PaymentType.ANNUAL_MEMBERSHIP, "tipoPago: diario") is MembershipTerm.ANNUAL

    def test_monthly_type_falls_back_to_notes(self):
        assert term_from_payment(PaymentType.MONTHLY_MEMBERSHIP, "tipoPago: semestral") is MembershipTerm.SEMIANNUAL

    def test_defaults_to_monthly(self):
        assert term_from_payment(PaymentType.OTHER, None) is MembershipTerm.MONTHLY
