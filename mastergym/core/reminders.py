from __future__ import annotations

from datetime import datetime
from urllib.parse import quote

from mastergym.core.membership import DisplayStatus, days_until_due
from mastergym.core.validation import whatsapp_phone
from mastergym.core.views import ClientView


def reminder_message(client: ClientView, now: datetime) -> str:
    name = client.full_name
    due = client.due_date.strftime("%d/%m/%Y") if client.due_date else None

    if client.status is DisplayStatus.EXPIRED:
        if due:
            return f"Hola {name}, tu membresia vencio el {due}. Si deseas renovarla, escribinos."
        return f"Hola {name}, tu membresia esta vencida. Si deseas renovarla, escribinos."

    if client.status is DisplayStatus.EXPIRING_SOON:
        if due:
            return f"Hola {name}, tu membresia vence el {due}. Si deseas renovarla, escribinos."
        return f"Hola {name}, tu membresia esta por vencer. Si deseas renovarla, escribinos."

    if client.status is DisplayStatus.ACTIVE:
        if client.due_date is not None:
            days_left = max(0, days_until_due(client.due_date, now))
            days_label = "dia" if days_left == 1 else "dias"
            return (
                f"Hola {name}, te quedan {days_left} {days_label} de membresia. "
                f"Vence el {due}. Si quieres renovarla con tiempo, escribinos."
            )
        return (
            f"Hola {name}, tu membresia esta activa. "
            "Si quieres actualizar la fecha de vencimiento, escribinos."
        )

    if due:
        return (
            f"Hola {name}, tu membresia no esta activa y su ultima fecha fue {due}. "
            "Si deseas reactivarla, escribinos."
        )
    return (
        f"Hola {name}, no tenemos una membresia activa registrada. "
        "Si deseas activarla, escribinos."
    )


def whatsapp_link(client: ClientView, now: datetime) -> str | None:
    """wa.me link with the reminder prefilled, or None without a usable phone."""

    phone = whatsapp_phone(client.phone)
    if phone is None:
        return None
    return f"https://wa.me/{phone}?text={quote(reminder_message(client, now), safe='')}"
