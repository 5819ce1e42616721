from __future__ import annotations

from datetime import date
from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message, User

from mastergym.bot.keyboards import Keyboards, MessageTemplates
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, describe_error, load_panel
from mastergym.core.logging import configure_logging
from mastergym.core.mappings import (
    UiPaymentMethod,
    payment_method_to_backend,
    term_notes,
    term_to_payment_type,
)
from mastergym.core.membership import MembershipTerm, renew_due_date
from mastergym.core.reminders import reminder_message, whatsapp_link
from mastergym.core.store import KeyValueStore
from mastergym.core.validation import parse_amount, parse_id
from mastergym.core.views import format_colones
from mastergym.db.backend import MasterGymClient
from mastergym.db.models import PaymentCreateRequest

router = Router(name="renewals")
logger = configure_logging()


class RenewStates(StatesGroup):
    waiting_for_term = State()
    waiting_for_method = State()
    waiting_for_amount = State()


async def _start_renewal(message: Message, state: FSMContext, client_id: int, backend: MasterGymClient) -> None:
    try:
        client = await backend.get_client(client_id)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load client %s for renewal: %s", client_id, exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    full_name = f"{client.first_name} {client.last_name or ''}".strip()
    await state.set_state(RenewStates.waiting_for_term)
    await state.update_data(
        client_id=client.id,
        client_name=full_name,
        due_date=client.due_date.isoformat() if client.due_date else None,
    )
    await message.answer(
        f"🔄 <b>Renovar membresía</b>\n"
        f"Cliente: <b>{escape(full_name)}</b>\n"
        f"Vence: {MessageTemplates.format_date(client.due_date)}\n\n"
        "Elige el tipo de membresía:",
        reply_markup=Keyboards.terms("renew_term"),
    )


@router.message(Command("renew"))
async def cmd_renew(
    message: Message,
    command: CommandObject,
    state: FSMContext,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    """
    Renew a membership: /renew 12

    Asks for term, payment method and amount, then records the payment.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    client_id = parse_id(command.args)
    if client_id is None:
        await message.answer("Usa: /renew &lt;id&gt;")
        return

    await _start_renewal(message, state, client_id, backend)


@router.callback_query(F.data.startswith("renew:"))
async def callback_renew(
    query: CallbackQuery,
    state: FSMContext,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _start_renewal(query.message, state, int(query.data.split(":", 1)[1]), backend)


@router.callback_query(RenewStates.waiting_for_term, F.data.startswith("renew_term:"))
async def renew_select_term(query: CallbackQuery, state: FSMContext) -> None:
    term = MembershipTerm(query.data.split(":", 1)[1])
    data = await state.get_data()
    current_due = date.fromisoformat(data["due_date"]) if data.get("due_date") else None
    new_due = renew_due_date(current_due, term, date.today())

    await state.update_data(term=term.value)
    await state.set_state(RenewStates.waiting_for_method)
    await query.message.edit_text(
        f"Membresía <b>{MessageTemplates.term(term)}</b>\n"
        f"Nuevo vencimiento: {MessageTemplates.format_date(new_due)}\n\n"
        "¿Cómo paga el cliente?",
        reply_markup=Keyboards.payment_methods("renew_method"),
    )
    await query.answer()


@router.callback_query(RenewStates.waiting_for_method, F.data.startswith("renew_method:"))
async def renew_select_method(query: CallbackQuery, state: FSMContext) -> None:
    method = UiPaymentMethod(query.data.split(":", 1)[1])
    await state.update_data(method=method.value)
    await state.set_state(RenewStates.waiting_for_amount)
    await query.message.edit_text(
        "Envía el <b>monto</b> en colones (por ejemplo: 15000).\n\nPara cancelar escribe /cancel."
    )
    await query.answer()


@router.message(RenewStates.waiting_for_amount, F.text.len() > 0)
async def renew_amount(message: Message, state: FSMContext, backend: MasterGymClient) -> None:
    amount = parse_amount(message.text)
    if amount is None:
        await message.answer("Monto inválido. Envía un número mayor a cero, por ejemplo 15000.")
        return

    data = await state.get_data()
    await state.clear()

    term = MembershipTerm(data["term"])
    method = UiPaymentMethod(data["method"])
    today = date.today()
    current_due = date.fromisoformat(data["due_date"]) if data.get("due_date") else None
    new_due = renew_due_date(current_due, term, today)

    request = PaymentCreateRequest(
        client_id=data["client_id"],
        amount=f"{amount:.2f}",
        payment_method=payment_method_to_backend(method),
        payment_type=term_to_payment_type(term),
        notes=term_notes(term),
        payment_date=today,
    )
    try:
        payment = await backend.create_payment(request)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to record renewal for client %s: %s", data["client_id"], exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    logger.info("Renewal payment %s recorded for client %s", payment.id, data["client_id"])
    await message.answer(
        MessageTemplates.success(
            f"Membresía renovada para <b>{escape(data['client_name'])}</b>\n\n"
            + MessageTemplates.stat("Tipo", MessageTemplates.term(term))
            + "\n"
            + MessageTemplates.stat("Monto", format_colones(amount))
            + "\n"
            + MessageTemplates.stat("Vencimiento anterior", MessageTemplates.format_date(current_due))
            + "\n"
            + MessageTemplates.stat("Nuevo vencimiento", MessageTemplates.format_date(new_due))
        ),
        reply_markup=Keyboards.client_actions(data["client_id"]),
    )


async def _send_reminder(
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

    text = reminder_message(client, panel.now)
    link = whatsapp_link(client, panel.now)

    try:
        await backend.send_reminder(client.id)
    except BACKEND_ERRORS as exc:
        logger.warning("Server reminder for client %s failed: %s", client.id, exc)

    body = f"💬 <b>Recordatorio para {escape(client.full_name)}</b>\n\n<i>{escape(text)}</i>"
    if link is None:
        await message.answer(
            body + "\n\n" + MessageTemplates.warning("El cliente no tiene un teléfono válido para WhatsApp."),
            reply_markup=Keyboards.client_actions(client.id),
        )
        return

    await message.answer(body, reply_markup=Keyboards.link_button("📲 Abrir WhatsApp", link))


@router.message(Command("remind"))
async def cmd_remind(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Build a WhatsApp reminder for a client: /remind 12
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    client_id = parse_id(command.args)
    if client_id is None:
        await message.answer("Usa: /remind &lt;id&gt;")
        return

    await _send_reminder(message, client_id, backend, store)


@router.callback_query(F.data.startswith("remind:"))
async def callback_remind(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _send_reminder(query.message, int(query.data.split(":", 1)[1]), backend, store)
