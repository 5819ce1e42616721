from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime

import httpx

from mastergym.core.store import KeyValueStore
from mastergym.core.views import (
    ClientView,
    MeasurementView,
    PaymentView,
    build_client_views,
    build_measurement_view,
    build_payment_views,
)
from mastergym.db.backend import AuthenticationError, BackendError, MasterGymClient

NOT_ALLOWED_TEXT = "⛔ No tienes acceso a este panel. Pide al administrador que agregue tu usuario."


@dataclass
class Panel:
    """One listing pass over the backend data, with statuses derived at ``now``."""

    now: datetime
    clients: list[ClientView]
    payments: list[PaymentView]
    measurements: list[MeasurementView]

    def client(self, client_id: int) -> ClientView | None:
        for client in self.clients:
            if client.id == client_id:
                return client
        return None

    def client_names(self) -> dict[int, str]:
        return {client.id: client.full_name for client in self.clients}


async def load_panel(backend: MasterGymClient, store: KeyValueStore) -> Panel:
    now = datetime.now()
    snapshot = await backend.load_snapshot()
    return Panel(
        now=now,
        clients=build_client_views(snapshot.clients, snapshot.payments, store.all_client_extras(), now),
        payments=build_payment_views(snapshot.payments),
        measurements=[build_measurement_view(m) for m in snapshot.measurements],
    )


BACKEND_ERRORS = (BackendError, httpx.HTTPError)


def describe_error(exc: Exception) -> str:
    """Short user-facing reason for a failed backend call."""

    if isinstance(exc, AuthenticationError):
        return "El servidor rechazó las credenciales. Revisa API_USERNAME / API_PASSWORD."
    if isinstance(exc, BackendError):
        return html.escape(exc.user_message)
    return "No se pudo conectar con el servidor. Intenta de nuevo en unos minutos."
