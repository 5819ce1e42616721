from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message, User

from mastergym.bot.keyboards import Keyboards, MessageTemplates
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, Panel, describe_error, load_panel
from mastergym.core.logging import configure_logging
from mastergym.core.membership import DisplayStatus, days_until_due
from mastergym.core.store import KeyValueStore
from mastergym.core.validation import parse_id
from mastergym.core.views import (
    ClientFilter,
    ClientView,
    count_by_status,
    filter_clients,
    format_colones,
    measurements_for_client,
    payments_for_client,
    search_clients,
)
from mastergym.db.backend import MasterGymClient

router = Router(name="clients")
logger = configure_logging()

MAX_LISTED = 40


class SearchStates(StatesGroup):
    waiting_for_query = State()


def client_line(client: ClientView) -> str:
    due = client.due_date.strftime("%d/%m/%Y") if client.due_date else "sin membresía"
    return (
        f"<code>#{client.id}</code> {escape(client.full_name)} — "
        f"{MessageTemplates.status(client.status)} ({due})"
    )


def render_client_list(title: str, clients: list[ClientView]) -> str:
    if not clients:
        return f"<b>{title}</b>\n\nNo hay clientes que mostrar."

    lines = [f"<b>{title}</b> ({len(clients)})", ""]
    lines += [client_line(client) for client in clients[:MAX_LISTED]]
    if len(clients) > MAX_LISTED:
        lines.append(f"\n... y {len(clients) - MAX_LISTED} más")
    lines.append("\nFicha completa: /client &lt;id&gt;")
    return "\n".join(lines)


def render_filtered(panel: Panel, client_filter: ClientFilter) -> str:
    counts = count_by_status(panel.clients)
    header = (
        f"Todos ({len(panel.clients)}) | "
        f"Activos ({counts[DisplayStatus.ACTIVE]}) | "
        f"Por vencer ({counts[DisplayStatus.EXPIRING_SOON]}) | "
        f"Vencidos ({counts[DisplayStatus.EXPIRED]})"
    )
    body = render_client_list(
        f"👥 Clientes: {client_filter.value}",
        filter_clients(panel.clients, client_filter),
    )
    return f"{header}\n\n{body}"


def render_client_card(client: ClientView, panel: Panel) -> str:
    payments = payments_for_client(panel.payments, client.id)
    measurements = measurements_for_client(panel.measurements, client.id)

    lines = [
        f"<b>👤 {escape(client.full_name)}</b> <code>#{client.id}</code>",
        MessageTemplates.status(client.status),
        "",
        f"📞 {escape(client.phone) or '—'}",
        f"✉️ {escape(client.email) or '—'}",
    ]
    if client.emergency_contact:
        lines.append(f"🆘 Emergencia: {escape(client.emergency_contact)}")

    lines += [
        "",
        "<b>Membresía</b>",
        MessageTemplates.stat("Tipo", MessageTemplates.term(client.term)),
        MessageTemplates.stat("Inicio", MessageTemplates.format_date(client.start_date)),
        MessageTemplates.stat("Vencimiento", MessageTemplates.format_date(client.due_date)),
    ]
    if client.due_date is not None and client.status in (DisplayStatus.ACTIVE, DisplayStatus.EXPIRING_SOON):
        lines.append(MessageTemplates.stat("Días restantes", str(days_until_due(client.due_date, panel.now))))

    lines += ["", f"<b>Pagos</b> ({len(payments)})"]
    for payment in payments[:5]:
        lines.append(
            MessageTemplates.item(
                f"{payment.paid_on.strftime('%d/%m/%Y')} • {format_colones(payment.amount)} • "
                f"{payment.method.value} • {payment.term.value}"
            )
        )

    if measurements:
        latest = measurements[0]
        lines += [
            "",
            f"<b>Última medición</b> ({latest.record.measured_on.strftime('%d/%m/%Y')})",
            MessageTemplates.stat("Peso", f"{latest.record.weight_kg:g}", "kg"),
            MessageTemplates.stat("IMC", latest.bmi_text),
        ]

    if client.notes:
        lines += ["", f"📝 {escape(client.notes)}"]

    return "\n".join(lines)


@router.message(Command("clients"))
async def cmd_clients(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    List clients, optionally filtered: /clients activos
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    try:
        client_filter = ClientFilter((command.args or "todos").strip().lower())
    except ValueError:
        await message.answer("Filtro desconocido. Usa: todos, activos, por-vencer o vencidos.")
        return

    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load clients: %s", exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    await message.answer(render_filtered(panel, client_filter), reply_markup=Keyboards.clients_menu())


@router.callback_query(F.data.startswith("clients:"))
async def callback_list_clients(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    client_filter = ClientFilter(query.data.split(":", 1)[1])
    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load clients: %s", exc)
        await query.answer(describe_error(exc), show_alert=True)
        return

    await query.message.edit_text(render_filtered(panel, client_filter), reply_markup=Keyboards.clients_menu())
    await query.answer()


async def _answer_search(message: Message, query_text: str, backend: MasterGymClient, store: KeyValueStore) -> None:
    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to search clients: %s", exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    found = search_clients(panel.clients, query_text)
    text = render_client_list(f"🔍 Resultados para «{escape(query_text)}»", found)
    await message.answer(text, reply_markup=Keyboards.clients_menu())


@router.message(Command("search"))
async def cmd_search_client(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Search client by name, phone, email or status.
    Usage: /search Rodríguez or /search 8888
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    if not command.args:
        await message.answer("Usa: /search &lt;nombre, teléfono, correo o estado&gt;")
        return

    await _answer_search(message, command.args.strip(), backend, store)


@router.callback_query(F.data == "search_client")
async def callback_search_client(query: CallbackQuery, state: FSMContext, operator: User | None = None) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await state.set_state(SearchStates.waiting_for_query)
    await query.message.edit_text(
        "🔍 Envía el nombre, teléfono, correo o estado a buscar.\n\nPara cancelar escribe /cancel.",
    )
    await query.answer()


@router.message(SearchStates.waiting_for_query, F.text)
async def search_query_entered(
    message: Message,
    state: FSMContext,
    backend: MasterGymClient,
    store: KeyValueStore,
) -> None:
    await state.clear()
    await _answer_search(message, message.text.strip(), backend, store)


async def send_client_card(
    message: Message,
    client_id: int,
    backend: MasterGymClient,
    store: KeyValueStore,
) -> None:
    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load client %s: %s", client_id, exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    client = panel.client(client_id)
    if client is None:
        await message.answer(f"No existe un cliente con id {client_id}.")
        return

    await message.answer(render_client_card(client, panel), reply_markup=Keyboards.client_actions(client.id))


@router.message(Command("client"))
async def cmd_client(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Show a client's card: /client 12
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    client_id = parse_id(command.args)
    if client_id is None:
        await message.answer("Usa: /client &lt;id&gt;")
        return

    await send_client_card(message, client_id, backend, store)
