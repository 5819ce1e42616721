"""
Shared fixtures for MasterGym bot tests.

Bot handler modules read settings at import time, so a test token is put in
the environment before anything imports them.
"""
import os
from datetime import date, datetime
from decimal import Decimal

import pytest

os.environ.setdefault("BOT_TOKEN", "123456:TEST-TOKEN")
os.environ.setdefault("ENVIRONMENT", "local")

from mastergym.core import Settings, get_settings
from mastergym.core.mappings import UiPaymentMethod
from mastergym.core.membership import DisplayStatus, MembershipTerm
from mastergym.core.views import ClientView, PaymentView, build_measurement_view
from mastergym.db.models import MeasurementResponse

# Wednesday noon, far from month boundaries
NOW = datetime(2024, 3, 13, 12, 0)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        bot_token="123456:TEST-TOKEN",
        api_base_url="http://backend.test",
        api_username="admin",
        api_password="secret",
    )


@pytest.fixture
def now() -> datetime:
    return NOW


def make_client(**overrides) -> ClientView:
    values = {
        "id": 1,
        "first_name": "Ana",
        "last_name": "Rodríguez",
        "email": "ana@example.com",
        "phone": "8888-1234",
        "start_date": date(2024, 2, 20),
        "due_date": date(2024, 3, 20),
        "status": DisplayStatus.EXPIRING_SOON,
        "term": MembershipTerm.MONTHLY,
    }
    values.update(overrides)
    return ClientView(**values)


def make_payment(**overrides) -> PaymentView:
    values = {
        "id": 10,
        "client_id": 1,
        "amount": Decimal("15000.00"),
        "paid_on": date(2024, 3, 1),
        "term": MembershipTerm.MONTHLY,
        "method": UiPaymentMethod.SINPE,
    }
    values.update(overrides)
    return PaymentView(**values)


def measurement_json(**overrides) -> dict:
    values = {
        "id": 5,
        "gymId": 1,
        "clientId": 1,
        "fecha": "2024-03-05",
        "peso": 70.0,
        "altura": 175.0,
        "pechoCm": 95.0,
        "cinturaCm": 80.0,
        "caderaCm": 98.0,
        "brazoIzqCm": 32.0,
        "brazoDerCm": 32.5,
        "piernaIzqCm": 55.0,
        "piernaDerCm": 55.5,
    }
    values.update(overrides)
    return values


def make_measurement(**overrides):
    return build_measurement_view(MeasurementResponse.model_validate(measurement_json(**overrides)))


def client_json(**overrides) -> dict:
    values = {
        "id": 1,
        "gymId": 1,
        "nombre": "Ana",
        "apellido": "Rodríguez",
        "telefono": "88881234",
        "email": "ana@example.com",
        "estado": "ACTIVO",
        "fechaRegistro": "2024-01-10T09:30:00",
        "fechaInicioMembresia": "2024-02-20",
        "fechaVencimiento": "2024-03-20",
        "notas": None,
    }
    values.update(overrides)
    return values


def payment_json(**overrides) -> dict:
    values = {
        "id": 10,
        "gymId": 1,
        "clientId": 1,
        "amount": "15000.00",
        "currency": "CRC",
        "paymentMethod": "SINPE",
        "paymentType": "MONTHLY_MEMBERSHIP",
        "status": "PAID",
        "reference": None,
        "notes": "tipoPago: mensual",
        "paymentDate": "2024-03-01",
    }
    values.update(overrides)
    return values


def page_json(content: list) -> dict:
    return {
        "content": content,
        "number": 0,
        "size": 200,
        "totalElements": len(content),
        "totalPages": 1,
    }
