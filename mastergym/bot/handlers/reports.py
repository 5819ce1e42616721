from __future__ import annotations

from datetime import datetime
from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import BufferedInputFile, CallbackQuery, Message, User

from mastergym.bot.keyboards import Keyboards, MessageTemplates
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, Panel, describe_error, load_panel
from mastergym.core.logging import configure_logging
from mastergym.core.membership import DisplayStatus
from mastergym.core.reports import build_client_report, report_filename
from mastergym.core.store import KeyValueStore
from mastergym.core.validation import parse_id
from mastergym.core.views import (
    clients_needing_attention,
    dashboard_stats,
    format_colones,
    measurements_for_client,
    payments_for_client,
)
from mastergym.db.backend import MasterGymClient

router = Router(name="reports")
logger = configure_logging()

ATTENTION_LISTED = 15


def render_summary(panel: Panel, last_backup: datetime | None = None) -> str:
    stats = dashboard_stats(panel.clients, panel.payments, panel.now.date())

    lines = [
        "<b>📊 Resumen MasterGym</b>",
        "",
        "<b>👥 Clientes</b>",
        MessageTemplates.stat("Total", f"<b>{stats.total}</b>"),
        MessageTemplates.stat("Activos", f"<b>{stats.active}</b>"),
        MessageTemplates.stat("Por vencer (7 días)", f"<b>{stats.expiring}</b>"),
        MessageTemplates.stat("Vencidos", f"<b>{stats.expired}</b>"),
        MessageTemplates.stat("Inactivos", f"<b>{stats.inactive}</b>"),
        "",
        "<b>💰 Ingresos</b>",
        MessageTemplates.stat("Este mes", f"<b>{format_colones(stats.month_revenue)}</b>"),
    ]

    attention = clients_needing_attention(panel.clients, panel.now)
    if attention:
        lines += ["", "<b>⏰ Requieren atención</b>"]
        for client, days in attention[:ATTENTION_LISTED]:
            if client.status is not DisplayStatus.EXPIRED:
                when = f"vence en {days} día{'s' if days != 1 else ''}"
            elif days < 0:
                when = f"vencido hace {-days} día{'s' if days != -1 else ''}"
            elif days == 0:
                when = "vencido hoy"
            else:
                when = "vencido, pago pendiente"
            lines.append(
                MessageTemplates.item(f"<code>#{client.id}</code> {escape(client.full_name)}: {when}")
            )
        if len(attention) > ATTENTION_LISTED:
            lines.append(f"  ... y {len(attention) - ATTENTION_LISTED} más")

    if last_backup is not None:
        lines += ["", f"☁️ Último respaldo: {last_backup.strftime('%d/%m/%Y %H:%M')}"]

    return "\n".join(lines)


async def _answer_summary(message: Message, backend: MasterGymClient, store: KeyValueStore) -> None:
    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to build summary: %s", exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    await message.answer(
        render_summary(panel, store.get_last_backup()),
        reply_markup=Keyboards.back_button("menu_main"),
    )


@router.message(Command("summary"))
async def cmd_summary(
    message: Message,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Show gym statistics: clients by status and this month's revenue.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await _answer_summary(message, backend, store)


@router.callback_query(F.data == "summary")
async def callback_summary(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _answer_summary(query.message, backend, store)


async def _send_report(message: Message, client_id: int, backend: MasterGymClient, store: KeyValueStore) -> None:
    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to build report for client %s: %s", client_id, exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    client = panel.client(client_id)
    if client is None:
        await message.answer(f"No existe un cliente con id {client_id}.")
        return

    text = build_client_report(
        client,
        payments_for_client(panel.payments, client.id),
        measurements_for_client(panel.measurements, client.id),
        panel.now,
    )
    document = BufferedInputFile(
        file=text.encode("utf-8"),
        filename=report_filename(client, panel.now.date()),
    )
    await message.answer_document(
        document=document,
        caption=f"📄 Reporte de {escape(client.full_name)}",
    )


@router.message(Command("report"))
async def cmd_report(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Individual client report as a .txt document: /report 12
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    client_id = parse_id(command.args)
    if client_id is None:
        await message.answer("Usa: /report &lt;id cliente&gt;")
        return

    await _send_report(message, client_id, backend, store)


@router.callback_query(F.data.startswith("report:"))
async def callback_report(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _send_report(query.message, int(query.data.split(":", 1)[1]), backend, store)
