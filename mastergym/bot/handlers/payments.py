from __future__ import annotations

from datetime import date
from decimal import Decimal
from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message, User

from mastergym.bot.keyboards import Keyboards, MessageTemplates
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, Panel, describe_error, load_panel
from mastergym.core.logging import configure_logging
from mastergym.core.mappings import (
    UiPaymentMethod,
    payment_method_to_backend,
    term_notes,
    term_to_payment_type,
)
from mastergym.core.membership import MembershipTerm
from mastergym.core.store import KeyValueStore
from mastergym.core.validation import optional_text, parse_amount, parse_date, parse_id
from mastergym.core.views import format_colones, month_revenue
from mastergym.db.backend import MasterGymClient
from mastergym.db.models import PaymentCreateRequest

router = Router(name="payments")
logger = configure_logging()

MAX_LISTED = 30
FUTURE_DATE_TEXT = "La fecha de pago no puede ser futura. Selecciona hoy o una fecha anterior."


class RecordPaymentStates(StatesGroup):
    waiting_for_client = State()
    waiting_for_term = State()
    waiting_for_method = State()
    waiting_for_amount = State()
    waiting_for_date = State()
    waiting_for_reference = State()


def render_payments(panel: Panel) -> str:
    names = panel.client_names()
    payments = sorted(panel.payments, key=lambda p: p.paid_on, reverse=True)
    if not payments:
        return "<b>💰 Pagos</b>\n\nTodavía no hay pagos registrados."

    total = sum((p.amount for p in payments), Decimal(0))
    lines = [
        f"<b>💰 Pagos</b> ({len(payments)})",
        MessageTemplates.stat("Total recaudado", format_colones(total)),
        MessageTemplates.stat("Ingresos del mes", format_colones(month_revenue(payments, panel.now.date()))),
        "",
    ]
    for payment in payments[:MAX_LISTED]:
        name = escape(names.get(payment.client_id, f"Cliente #{payment.client_id}"))
        reference = f" • ref {escape(payment.reference)}" if payment.reference else ""
        lines.append(
            f"<code>#{payment.id}</code> {payment.paid_on.strftime('%d/%m/%Y')} • {name} • "
            f"{format_colones(payment.amount)} • {MessageTemplates.term(payment.term)} • "
            f"{payment.method.value}{reference}"
        )
    if len(payments) > MAX_LISTED:
        lines.append(f"\n... y {len(payments) - MAX_LISTED} más (usa /export_payments)")
    return "\n".join(lines)


@router.message(Command("payments"))
async def cmd_payments(
    message: Message,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Payment history, newest first.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load payments: %s", exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    await message.answer(render_payments(panel), reply_markup=Keyboards.payments_menu())


@router.callback_query(F.data == "list_payments")
async def callback_list_payments(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load payments: %s", exc)
        await query.answer(describe_error(exc), show_alert=True)
        return

    await query.message.edit_text(render_payments(panel), reply_markup=Keyboards.payments_menu())
    await query.answer()


async def _start_payment(message: Message, state: FSMContext) -> None:
    await state.set_state(RecordPaymentStates.waiting_for_client)
    await message.answer(
        "➕ <b>Registrar pago</b>\n\n"
        "Envía el <b>id del cliente</b> (lo ves en /clients o /search).\n\n"
        "Para cancelar escribe /cancel."
    )


@router.message(Command("payment"))
async def cmd_record_payment(message: Message, state: FSMContext, operator: User | None = None) -> None:
    """
    Start record payment dialog.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await _start_payment(message, state)


@router.callback_query(F.data == "add_payment")
async def callback_record_payment(query: CallbackQuery, state: FSMContext, operator: User | None = None) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _start_payment(query.message, state)


@router.message(RecordPaymentStates.waiting_for_client, F.text.len() > 0)
async def payment_select_client(message: Message, state: FSMContext, backend: MasterGymClient) -> None:
    client_id = parse_id(message.text)
    if client_id is None:
        await message.answer("Envía solo el número de id del cliente.")
        return

    try:
        client = await backend.get_client(client_id)
    except BACKEND_ERRORS as exc:
        logger.warning("Client %s lookup failed: %s", client_id, exc)
        await message.answer(MessageTemplates.error(describe_error(exc)) + "\nEnvía otro id o /cancel.")
        return

    full_name = f"{client.first_name} {client.last_name or ''}".strip()
    await state.update_data(client_id=client.id, client_name=full_name)
    await state.set_state(RecordPaymentStates.waiting_for_term)
    await message.answer(
        f"Cliente: <b>{escape(full_name)}</b>\n\nElige el tipo de pago:",
        reply_markup=Keyboards.terms("pay_term"),
    )


@router.callback_query(RecordPaymentStates.waiting_for_term, F.data.startswith("pay_term:"))
async def payment_select_term(query: CallbackQuery, state: FSMContext) -> None:
    term = MembershipTerm(query.data.split(":", 1)[1])
    await state.update_data(term=term.value)
    await state.set_state(RecordPaymentStates.waiting_for_method)
    await query.message.edit_text(
        f"Tipo: <b>{MessageTemplates.term(term)}</b>\n\nElige el método de pago:",
        reply_markup=Keyboards.payment_methods("pay_method"),
    )
    await query.answer()


@router.callback_query(RecordPaymentStates.waiting_for_method, F.data.startswith("pay_method:"))
async def payment_select_method(query: CallbackQuery, state: FSMContext) -> None:
    method = UiPaymentMethod(query.data.split(":", 1)[1])
    await state.update_data(method=method.value)
    await state.set_state(RecordPaymentStates.waiting_for_amount)
    await query.message.edit_text("Envía el <b>monto</b> en colones (por ejemplo: 15000).")
    await query.answer()


@router.message(RecordPaymentStates.waiting_for_amount, F.text.len() > 0)
async def payment_amount(message: Message, state: FSMContext) -> None:
    amount = parse_amount(message.text)
    if amount is None:
        await message.answer("Monto inválido. Envía un número mayor a cero, por ejemplo 15000.")
        return

    await state.update_data(amount=f"{amount:.2f}")
    await state.set_state(RecordPaymentStates.waiting_for_date)
    await message.answer(
        "Envía la <b>fecha del pago</b> (DD/MM/AAAA) o <code>hoy</code>."
    )


@router.message(RecordPaymentStates.waiting_for_date, F.text.len() > 0)
async def payment_date(message: Message, state: FSMContext) -> None:
    paid_on = parse_date(message.text)
    if paid_on is None:
        await message.answer("Fecha inválida. Usa DD/MM/AAAA, por ejemplo 05/03/2024, o escribe hoy.")
        return
    if paid_on > date.today():
        await message.answer(FUTURE_DATE_TEXT)
        return

    await state.update_data(paid_on=paid_on.isoformat())
    await state.set_state(RecordPaymentStates.waiting_for_reference)
    await message.answer(
        "Envía la <b>referencia</b> (comprobante SINPE, voucher...) o <code>-</code> si no hay."
    )


@router.message(RecordPaymentStates.waiting_for_reference, F.text.len() > 0)
async def payment_reference(message: Message, state: FSMContext, backend: MasterGymClient) -> None:
    data = await state.get_data()
    await state.clear()

    term = MembershipTerm(data["term"])
    method = UiPaymentMethod(data["method"])
    request = PaymentCreateRequest(
        client_id=data["client_id"],
        amount=data["amount"],
        payment_method=payment_method_to_backend(method),
        payment_type=term_to_payment_type(term),
        reference=optional_text(message.text),
        notes=term_notes(term),
        payment_date=date.fromisoformat(data["paid_on"]),
    )

    try:
        payment = await backend.create_payment(request)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to record payment for client %s: %s", data["client_id"], exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    logger.info("Payment %s recorded for client %s", payment.id, payment.client_id)
    await message.answer(
        MessageTemplates.success(
            f"Pago <code>#{payment.id}</code> registrado para <b>{escape(data['client_name'])}</b>\n\n"
            + MessageTemplates.stat("Monto", format_colones(payment.amount))
            + "\n"
            + MessageTemplates.stat("Tipo", MessageTemplates.term(term))
            + "\n"
            + MessageTemplates.stat("Fecha", MessageTemplates.format_date(payment.payment_date))
        ),
        reply_markup=Keyboards.payments_menu(),
    )


@router.message(Command("delete_payment"))
async def cmd_delete_payment(message: Message, command: CommandObject, operator: User | None = None) -> None:
    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    payment_id = parse_id(command.args)
    if payment_id is None:
        await message.answer("Usa: /delete_payment &lt;id&gt;")
        return

    await message.answer(
        MessageTemplates.warning(f"¿Eliminar el pago <code>#{payment_id}</code>?"),
        reply_markup=Keyboards.confirm_button(f"delete_payment:{payment_id}", "Eliminar"),
    )


@router.callback_query(F.data.startswith("confirm:delete_payment:"))
async def callback_confirm_delete_payment(
    query: CallbackQuery,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    payment_id = int(query.data.rsplit(":", 1)[1])
    try:
        await backend.delete_payment(payment_id)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to delete payment %s: %s", payment_id, exc)
        await query.answer(describe_error(exc), show_alert=True)
        return

    logger.info("Payment %s deleted by %s", payment_id, operator.id)
    await query.message.edit_text(
        MessageTemplates.success(f"Pago <code>#{payment_id}</code> eliminado."),
        reply_markup=Keyboards.payments_menu(),
    )
    await query.answer()
