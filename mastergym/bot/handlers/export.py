from __future__ import annotations

from datetime import datetime

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import BufferedInputFile, CallbackQuery, Message, User

from mastergym.bot.keyboards import MessageTemplates
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, Panel, describe_error, load_panel
from mastergym.core.logging import configure_logging
from mastergym.core.reports import clients_csv, measurements_csv, payments_csv
from mastergym.core.store import KeyValueStore
from mastergym.db.backend import MasterGymClient

router = Router(name="export")
logger = configure_logging()

EXPORT_KINDS = {
    "clients": "clientes",
    "payments": "pagos",
    "measurements": "mediciones",
}


def build_export(panel: Panel, kind: str) -> tuple[bytes, int]:
    """CSV bytes and row count for one export kind."""

    if kind == "clients":
        return clients_csv(panel.clients), len(panel.clients)
    if kind == "payments":
        return payments_csv(panel.payments, panel.client_names()), len(panel.payments)
    if kind == "measurements":
        return measurements_csv(panel.measurements, panel.client_names()), len(panel.measurements)
    raise ValueError(f"Unknown export kind: {kind}")


async def send_export(message: Message, kind: str, backend: MasterGymClient, store: KeyValueStore) -> None:
    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Error exporting %s: %s", kind, exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    content, count = build_export(panel, kind)
    label = EXPORT_KINDS[kind]
    if count == 0:
        await message.answer(f"No hay {label} para exportar.")
        return

    file = BufferedInputFile(
        file=content,
        filename=f"{label}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv",
    )
    await message.answer_document(document=file, caption=f"Exportación de {label}: {count} registros")


@router.message(Command("export_clients"))
async def cmd_export_clients(
    message: Message,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Export all clients to CSV file.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await send_export(message, "clients", backend, store)


@router.message(Command("export_payments"))
async def cmd_export_payments(
    message: Message,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Export all payments to CSV file.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await send_export(message, "payments", backend, store)


@router.message(Command("export_measurements"))
async def cmd_export_measurements(
    message: Message,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await send_export(message, "measurements", backend, store)


@router.callback_query(F.data.startswith("export:"))
async def callback_export(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    kind = query.data.split(":", 1)[1]
    if kind not in EXPORT_KINDS:
        await query.answer("Exportación desconocida", show_alert=True)
        return

    await query.answer("Generando CSV...")
    await send_export(query.message, kind, backend, store)
