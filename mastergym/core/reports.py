from __future__ import annotations

import csv
import io
import re
import unicodedata
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from mastergym.core.views import ClientView, MeasurementView, PaymentView, format_colones

_BANNER = "=" * 46
_RULE = "=" * 80


def _fmt_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def _slug(value: str) -> str:
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^A-Za-z0-9]+", "-", ascii_value).strip("-") or "cliente"


def report_filename(client: ClientView, today: date) -> str:
    return f"reporte-{_slug(client.first_name)}-{_slug(client.last_name)}-{today.isoformat()}.txt"


def build_client_report(
    client: ClientView,
    payments: Iterable[PaymentView],
    measurements: Iterable[MeasurementView],
    generated_at: datetime,
) -> str:
    """
    Plain-text individual report for one client.

    Payments and measurements are listed newest first.
    """

    payments = sorted(payments, key=lambda p: p.paid_on, reverse=True)
    measurements = sorted(measurements, key=lambda m: m.record.measured_on, reverse=True)
    total_paid = sum((p.amount for p in payments), Decimal(0))

    lines = [
        _BANNER,
        "REPORTE INDIVIDUAL - MASTERGYM",
        _BANNER,
        "",
        "DATOS PERSONALES",
        f"Nombre: {client.full_name}",
        f"Correo: {client.email}",
        f"Teléfono: {client.phone}",
        f"Estado: {client.status.value.upper()}",
        "",
        "MEMBRESÍA",
        f"Tipo: {client.term.value}",
        f"Fecha inicio: {_fmt_date(client.start_date)}",
        f"Fecha vencimiento: {_fmt_date(client.due_date) if client.due_date else 'Sin membresia'}",
        "",
    ]

    if client.emergency_contact:
        lines += ["CONTACTO DE EMERGENCIA", client.emergency_contact, ""]

    lines += [f"HISTORIAL DE PAGOS ({len(payments)})", _RULE]
    for payment in payments:
        lines.append(
            f"{_fmt_date(payment.paid_on):<15} | {format_colones(payment.amount):<15} | "
            f"{payment.method.value:<15} | {payment.term.value}"
        )
    lines += ["", f"Total pagado: {format_colones(total_paid)}", ""]

    lines += [f"HISTORIAL DE MEDICIONES ({len(measurements)})", _RULE]
    for item in measurements:
        record = item.record
        bmi_value = "-" if item.bmi is None else f"{item.bmi:.1f}"
        lines.append(
            f"{_fmt_date(record.measured_on):<15} | Peso: {record.weight_kg:g}kg | "
            f"Altura: {record.height_cm:g}cm | IMC: {bmi_value}"
        )

    if client.notes:
        lines += ["", "OBSERVACIONES", client.notes]

    lines += [
        "",
        _BANNER,
        f"Reporte generado el {generated_at.strftime('%d/%m/%Y %H:%M')}",
        _BANNER,
        "",
    ]
    return "\n".join(lines)


def _to_csv(header: list[str], rows: Iterable[list[object]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)
    # BOM so spreadsheet apps pick up UTF-8 accents
    return buffer.getvalue().encode("utf-8-sig")


def clients_csv(clients: Iterable[ClientView]) -> bytes:
    return _to_csv(
        ["ID", "Nombre", "Apellido", "Teléfono", "Correo", "Estado", "Membresía", "Inicio", "Vencimiento"],
        (
            [
                c.id,
                c.first_name,
                c.last_name,
                c.phone,
                c.email,
                c.status.value,
                c.term.value,
                c.start_date.isoformat(),
                c.due_date.isoformat() if c.due_date else "",
            ]
            for c in clients
        ),
    )


def payments_csv(payments: Iterable[PaymentView], client_names: dict[int, str]) -> bytes:
    return _to_csv(
        ["ID", "Cliente", "Monto", "Fecha", "Tipo", "Método", "Referencia"],
        (
            [
                p.id,
                client_names.get(p.client_id, str(p.client_id)),
                f"{p.amount:.2f}",
                p.paid_on.isoformat(),
                p.term.value,
                p.method.value,
                p.reference or "",
            ]
            for p in payments
        ),
    )


def measurements_csv(measurements: Iterable[MeasurementView], client_names: dict[int, str]) -> bytes:
    return _to_csv(
        [
            "ID", "Cliente", "Fecha", "Peso", "Altura", "IMC", "Pecho", "Cintura", "Cadera",
            "Brazo izq", "Brazo der", "Pierna izq", "Pierna der", "Grasa corporal", "Notas",
        ],
        (
            [
                m.id,
                client_names.get(m.client_id, str(m.client_id)),
                m.record.measured_on.isoformat(),
                m.record.weight_kg,
                m.record.height_cm,
                "" if m.bmi is None else m.bmi,
                m.record.chest_cm,
                m.record.waist_cm,
                m.record.hip_cm,
                m.record.left_arm_cm,
                m.record.right_arm_cm,
                m.record.left_leg_cm,
                m.record.right_leg_cm,
                "" if m.record.body_fat_pct is None else m.record.body_fat_pct,
                m.record.notes or "",
            ]
            for m in measurements
        ),
    )
