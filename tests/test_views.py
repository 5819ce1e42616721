"""
Tests for client/payment/measurement views and dashboard statistics.
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from mastergym.core.mappings import UiPaymentMethod
from mastergym.core.membership import DisplayStatus, MembershipTerm
from mastergym.core.store import ClientExtras
from mastergym.core.views import (
    BmiCategory,
    ClientFilter,
    bmi,
    bmi_category,
    build_client_views,
    build_payment_view,
    clients_needing_attention,
    count_by_status,
    dashboard_stats,
    filter_clients,
    format_colones,
    latest_payment_by_client,
    measurements_for_client,
    month_revenue,
    payments_for_client,
    search_clients,
)
from mastergym.db.models import ClientResponse, PaymentResponse
from conftest import NOW, client_json, make_client, make_measurement, make_payment, payment_json


class TestBuildClientViews:

    def test_status_term_and_extras_are_merged(self):
        clients = [ClientResponse.model_validate(client_json())]
        payments = [
            PaymentResponse.model_validate(payment_json(id=1, paymentDate="2024-01-20", notes="tipoPago: diario")),
            PaymentResponse.model_validate(
                payment_json(id=2, paymentDate="2024-02-20", paymentType="QUARTERLY_MEMBERSHIP", notes=None)
            ),
        ]
        extras = {"1": ClientExtras(emergency_contact="Luis 8777-0000")}

        [view] = build_client_views(clients, payments, extras, NOW)

        assert view.full_name == "Ana Rodríguez"
        assert view.status is DisplayStatus.EXPIRING_SOON
        assert view.term is MembershipTerm.QUARTERLY
        assert view.emergency_contact == "Luis 8777-0000"
        assert view.start_date == date(2024, 2, 20)

    def test_defaults_without_payments_or_membership_start(self):
        raw = client_json(fechaInicioMembresia=None, fechaVencimiento=None, apellido=None, telefono=None)
        [view] = build_client_views([ClientResponse.model_validate(raw)], [], {}, NOW)

        assert view.term is MembershipTerm.MONTHLY
        assert view.start_date == date(2024, 1, 10)
        assert view.status is DisplayStatus.INACTIVE
        assert view.last_name == ""
        assert view.phone == ""
        assert view.emergency_contact is None

    def test_latest_payment_by_client(self):
        payments = [
            PaymentResponse.model_validate(payment_json(id=1, paymentDate="2024-02-01")),
            PaymentResponse.model_validate(payment_json(id=2, paymentDate="2024-03-01")),
            PaymentResponse.model_validate(payment_json(id=3, clientId=2, paymentDate="2024-01-01")),
        ]
        latest = latest_payment_by_client(payments)
        assert latest[1].id == 2
        assert latest[2].id == 3


def test_build_payment_view_maps_method_and_term():
    payment = PaymentResponse.model_validate(payment_json(paymentMethod="TRANSFER", notes="tipoPago: anual"))
    view = build_payment_view(payment)
    assert view.method is UiPaymentMethod.CASH
    assert view.term is MembershipTerm.ANNUAL
    assert view.amount == Decimal("15000.00")


class TestSearchAndFilter:

    @pytest.fixture
    def clients(self):
        return [
            make_client(id=1, first_name="Ana", last_name="Rodríguez", phone="88881234", status=DisplayStatus.ACTIVE),
            make_client(id=2, first_name="Carlos", last_name="Mora", email="carlos@mail.com", phone="70001111",
                        status=DisplayStatus.EXPIRED),
            make_client(id=3, first_name="Lucía", last_name="Santana", email="", phone="", status=DisplayStatus.EXPIRING_SOON),
        ]

    def test_search_by_name_is_case_insensitive(self, clients):
        assert [c.id for c in search_clients(clients, "ana")] == [1, 3]
        assert [c.id for c in search_clients(clients, "MORA")] == [2]

    def test_search_by_phone_and_email(self, clients):
        assert [c.id for c in search_clients(clients, "7000")] == [2]
        assert [c.id for c in search_clients(clients, "mail.com")] == [2]

    def test_search_by_status(self, clients):
        assert [c.id for c in search_clients(clients, "vencido")] == [2]
        assert [c.id for c in search_clients(clients, "por-vencer")] == [3]

    def test_blank_search_returns_everyone(self, clients):
        assert len(search_clients(clients, "  ")) == 3

    def test_filters(self, clients):
        assert [c.id for c in filter_clients(clients, ClientFilter.ACTIVE)] == [1]
        assert [c.id for c in filter_clients(clients, ClientFilter.EXPIRING)] == [3]
        assert [c.id for c in filter_clients(clients, ClientFilter.EXPIRED)] == [2]
        assert len(filter_clients(clients, ClientFilter.ALL)) == 3

    def test_count_by_status_covers_every_status(self, clients):
        counts = count_by_status(clients)
        assert set(counts) == set(DisplayStatus)
        assert counts[DisplayStatus.INACTIVE] == 0


class TestStats:

    def test_month_revenue_only_counts_current_month(self):
        payments = [
            make_payment(id=1, amount=Decimal("15000"), paid_on=date(2024, 3, 1)),
            make_payment(id=2, amount=Decimal("5000.50"), paid_on=date(2024, 3, 12)),
            make_payment(id=3, amount=Decimal("15000"), paid_on=date(2024, 2, 28)),
            make_payment(id=4, amount=Decimal("15000"), paid_on=date(2023, 3, 5)),
        ]
        assert month_revenue(payments, date(2024, 3, 13)) == Decimal("20000.50")

    def test_dashboard_counts_expiring_as_active(self):
        clients = [
            make_client(id=1, status=DisplayStatus.ACTIVE),
            make_client(id=2, status=DisplayStatus.EXPIRING_SOON),
            make_client(id=3, status=DisplayStatus.EXPIRED),
            make_client(id=4, status=DisplayStatus.INACTIVE),
        ]
        stats = dashboard_stats(clients, [make_payment()], date(2024, 3, 13))

        assert stats.total == 4
        assert stats.active == 2
        assert stats.expiring == 1
        assert stats.expired == 1
        assert stats.inactive == 1
        assert stats.month_revenue == Decimal("15000.00")

    def test_clients_needing_attention_sorted_by_days_left(self):
        clients = [
            make_client(id=1, status=DisplayStatus.EXPIRING_SOON, due_date=date(2024, 3, 18)),
            make_client(id=2, status=DisplayStatus.EXPIRED, due_date=date(2024, 3, 1)),
            make_client(id=3, status=DisplayStatus.ACTIVE, due_date=date(2024, 5, 1)),
            # delinquent clients without a due date are left out
            make_client(id=4, status=DisplayStatus.EXPIRED, due_date=None),
        ]
        result = clients_needing_attention(clients, NOW)
        assert [(c.id, days) for c, days in result] == [(2, -12), (1, 5)]

    def test_clients_needing_attention_puts_expired_first(self):
        clients = [
            make_client(id=1, status=DisplayStatus.EXPIRING_SOON, due_date=date(2024, 3, 15)),
            # delinquent with the due date still ahead
            make_client(id=2, status=DisplayStatus.EXPIRED, due_date=date(2024, 4, 20)),
        ]
        result = clients_needing_attention(clients, NOW)
        assert [(c.id, days) for c, days in result] == [(2, 38), (1, 2)]


class TestMeasurements:

    def test_bmi_rounds_to_one_decimal(self):
        assert bmi(70, 175) == 22.9
        assert bmi(95, 170) == 32.9

    def test_bmi_without_height_is_none(self):
        assert bmi(70, 0) is None
        assert bmi(70, -1) is None

    def test_zero_height_measurement_view(self):
        view = make_measurement(altura=0.0)
        assert view.bmi is None
        assert view.bmi_category is None
        assert view.bmi_text == "-"

    @pytest.mark.parametrize(
        "value,category",
        [
            (18.4, BmiCategory.UNDERWEIGHT),
            (18.5, BmiCategory.NORMAL),
            (24.9, BmiCategory.NORMAL),
            (25.0, BmiCategory.OVERWEIGHT),
            (29.9, BmiCategory.OVERWEIGHT),
            (30.0, BmiCategory.OBESE),
        ],
    )
    def test_bmi_category_thresholds(self, value, category):
        assert bmi_category(value) is category

    def test_measurement_view(self):
        view = make_measurement()
        assert view.bmi == 22.9
        assert view.bmi_category is BmiCategory.NORMAL
        assert view.bmi_text == "22.9 (Normal)"
        assert view.id == 5
        assert view.client_id == 1

    def test_per_client_lists_newest_first(self):
        measurements = [
            make_measurement(id=1, fecha="2024-01-05"),
            make_measurement(id=2, fecha="2024-03-05"),
            make_measurement(id=3, clientId=2),
        ]
        assert [m.id for m in measurements_for_client(measurements, 1)] == [2, 1]

        payments = [make_payment(id=1, paid_on=date(2024, 1, 1)), make_payment(id=2, paid_on=date(2024, 2, 1))]
        assert [p.id for p in payments_for_client(payments, 1)] == [2, 1]


def test_format_colones():
    assert format_colones(Decimal("15000")) == "₡15 000"
    assert format_colones(Decimal("1234567.60")) == "₡1 234 568"
    assert format_colones(Decimal("0")) == "₡0"
