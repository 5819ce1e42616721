from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message, User

from mastergym.bot.keyboards import Keyboards, MessageTemplates
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, describe_error
from mastergym.core.logging import configure_logging
from mastergym.core.store import ClientExtras, KeyValueStore
from mastergym.core.validation import normalize_email, normalize_phone, optional_text, parse_id
from mastergym.db.backend import MasterGymClient
from mastergym.db.models import ClientCreateRequest, ClientUpdateRequest

router = Router(name="client_form")
logger = configure_logging()

KEEP = "="
FOOTER = "\n\nPara cancelar escribe /cancel."


class ClientFormStates(StatesGroup):
    waiting_for_first_name = State()
    waiting_for_last_name = State()
    waiting_for_phone = State()
    waiting_for_email = State()
    waiting_for_emergency_contact = State()
    waiting_for_notes = State()


def _prompt(text: str, current: str | None, editing: bool, optional: bool = True) -> str:
    hints = []
    if optional:
        hints.append("<code>-</code> para dejarlo vacío")
    if editing:
        hints.append(f"<code>{KEEP}</code> para mantener «{escape(current or '—')}»")
    hint = f"\n({', '.join(hints)})" if hints else ""
    return f"{text}{hint}{FOOTER}"


async def _start_form(message: Message, state: FSMContext, current: dict | None = None) -> None:
    editing = current is not None
    await state.set_state(ClientFormStates.waiting_for_first_name)
    await state.update_data(current=current or {}, editing=editing, form={})

    title = "✏️ Editando cliente" if editing else "➕ Nuevo cliente"
    await message.answer(
        f"<b>{title}</b>\n\n"
        + _prompt("Envía el <b>nombre</b>.", (current or {}).get("first_name"), editing, optional=False)
    )


async def _value(message: Message, state: FSMContext, field: str) -> tuple[bool, str | None]:
    """
    Resolve the entered text for ``field``; returns (keep_current, value).
    """

    data = await state.get_data()
    text = (message.text or "").strip()
    if data.get("editing") and text == KEEP:
        return True, data["current"].get(field)
    return False, text


async def _store(state: FSMContext, field: str, value: str | None) -> None:
    data = await state.get_data()
    form = dict(data.get("form", {}))
    form[field] = value
    await state.update_data(form=form)


async def _ask_next(message: Message, state: FSMContext, next_state: State, text: str, field: str) -> None:
    data = await state.get_data()
    await state.set_state(next_state)
    await message.answer(_prompt(text, data["current"].get(field), data.get("editing", False)))


@router.message(Command("add_client"))
async def cmd_add_client(message: Message, state: FSMContext, operator: User | None = None) -> None:
    """
    Start add-client dialog: ask for client name.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await _start_form(message, state)


@router.callback_query(F.data == "add_client")
async def callback_add_client(query: CallbackQuery, state: FSMContext, operator: User | None = None) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _start_form(query.message, state)


async def _start_edit(
    message: Message,
    state: FSMContext,
    client_id: int,
    backend: MasterGymClient,
    store: KeyValueStore,
) -> None:
    try:
        client = await backend.get_client(client_id)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load client %s for editing: %s", client_id, exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    current = {
        "id": client.id,
        "first_name": client.first_name,
        "last_name": client.last_name,
        "phone": client.phone,
        "email": client.email,
        "emergency_contact": store.get_client_extras(client.id).emergency_contact,
        "notes": client.notes,
    }
    await _start_form(message, state, current)


@router.message(Command("edit_client"))
async def cmd_edit_client(
    message: Message,
    command: CommandObject,
    state: FSMContext,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    client_id = parse_id(command.args)
    if client_id is None:
        await message.answer("Usa: /edit_client &lt;id&gt;")
        return

    await _start_edit(message, state, client_id, backend, store)


@router.callback_query(F.data.startswith("edit_client:"))
async def callback_edit_client(
    query: CallbackQuery,
    state: FSMContext,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _start_edit(query.message, state, int(query.data.split(":", 1)[1]), backend, store)


@router.message(ClientFormStates.waiting_for_first_name, F.text.len() > 0)
async def form_first_name(message: Message, state: FSMContext) -> None:
    _, first_name = await _value(message, state, "first_name")
    if not first_name or first_name == "-":
        await message.answer("El nombre es obligatorio. Envíalo de nuevo.")
        return

    await _store(state, "first_name", first_name)
    await _ask_next(message, state, ClientFormStates.waiting_for_last_name, "Envía el <b>apellido</b>.", "last_name")


@router.message(ClientFormStates.waiting_for_last_name, F.text.len() > 0)
async def form_last_name(message: Message, state: FSMContext) -> None:
    keep, value = await _value(message, state, "last_name")
    await _store(state, "last_name", value if keep else optional_text(value))
    await _ask_next(
        message,
        state,
        ClientFormStates.waiting_for_phone,
        "Envía el <b>teléfono</b>.\nFormato: 8888-8888 o +506 8888 8888.",
        "phone",
    )


@router.message(ClientFormStates.waiting_for_phone, F.text.len() > 0)
async def form_phone(message: Message, state: FSMContext) -> None:
    keep, value = await _value(message, state, "phone")
    if not keep:
        value = optional_text(value)
        if value is not None:
            value = normalize_phone(value)
            if value is None:
                await message.answer("El teléfono no parece válido. Intenta de nuevo, por ejemplo 8888-8888.")
                return

    await _store(state, "phone", value)
    await _ask_next(message, state, ClientFormStates.waiting_for_email, "Envía el <b>correo</b>.", "email")


@router.message(ClientFormStates.waiting_for_email, F.text.len() > 0)
async def form_email(message: Message, state: FSMContext) -> None:
    keep, value = await _value(message, state, "email")
    if not keep:
        value = optional_text(value)
        if value is not None:
            value = normalize_email(value)
            if value is None:
                await message.answer("El correo no parece válido. Intenta de nuevo.")
                return

    await _store(state, "email", value)
    await _ask_next(
        message,
        state,
        ClientFormStates.waiting_for_emergency_contact,
        "Envía el <b>contacto de emergencia</b> (nombre y teléfono).",
        "emergency_contact",
    )


@router.message(ClientFormStates.waiting_for_emergency_contact, F.text.len() > 0)
async def form_emergency_contact(message: Message, state: FSMContext) -> None:
    keep, value = await _value(message, state, "emergency_contact")
    await _store(state, "emergency_contact", value if keep else optional_text(value))
    await _ask_next(
        message,
        state,
        ClientFormStates.waiting_for_notes,
        "Envía las <b>observaciones</b> (lesiones, objetivos, etc.).",
        "notes",
    )


@router.message(ClientFormStates.waiting_for_notes, F.text.len() > 0)
async def form_notes(
    message: Message,
    state: FSMContext,
    backend: MasterGymClient,
    store: KeyValueStore,
) -> None:
    keep, value = await _value(message, state, "notes")
    await _store(state, "notes", value if keep else optional_text(value))

    data = await state.get_data()
    form = data.get("form", {})
    client_id = data["current"].get("id")
    await state.clear()

    try:
        if client_id is None:
            client = await backend.create_client(
                ClientCreateRequest(
                    first_name=form["first_name"],
                    last_name=form.get("last_name"),
                    phone=form.get("phone"),
                    email=form.get("email"),
                    notes=form.get("notes"),
                )
            )
        else:
            client = await backend.update_client(
                client_id,
                ClientUpdateRequest(
                    first_name=form["first_name"],
                    last_name=form.get("last_name"),
                    phone=form.get("phone"),
                    email=form.get("email"),
                    notes=form.get("notes"),
                ),
            )
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to save client: %s", exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    store.set_client_extras(client.id, ClientExtras(emergency_contact=form.get("emergency_contact")))
    logger.info("Client %s saved by %s", client.id, message.from_user.id if message.from_user else "?")

    full_name = f"{client.first_name} {client.last_name or ''}".strip()
    verb = "creado" if client_id is None else "actualizado"
    await message.answer(
        MessageTemplates.success(f"Cliente {verb}: <b>{escape(full_name)}</b> <code>#{client.id}</code>"),
        reply_markup=Keyboards.client_actions(client.id),
    )


async def _ask_delete(message: Message, client_id: int, backend: MasterGymClient) -> None:
    try:
        client = await backend.get_client(client_id)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load client %s: %s", client_id, exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    full_name = f"{client.first_name} {client.last_name or ''}".strip()
    await message.answer(
        MessageTemplates.warning(
            f"¿Eliminar a <b>{escape(full_name)}</b> <code>#{client.id}</code>?\n"
            "Esta acción no se puede deshacer."
        ),
        reply_markup=Keyboards.confirm_button(f"delete_client:{client.id}", "Eliminar"),
    )


@router.message(Command("delete_client"))
async def cmd_delete_client(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    client_id = parse_id(command.args)
    if client_id is None:
        await message.answer("Usa: /delete_client &lt;id&gt;")
        return

    await _ask_delete(message, client_id, backend)


@router.callback_query(F.data.startswith("delete_client:"))
async def callback_delete_client(
    query: CallbackQuery,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _ask_delete(query.message, int(query.data.split(":", 1)[1]), backend)


@router.callback_query(F.data.startswith("confirm:delete_client:"))
async def callback_confirm_delete_client(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    client_id = int(query.data.rsplit(":", 1)[1])
    try:
        await backend.delete_client(client_id)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to delete client %s: %s", client_id, exc)
        await query.answer(describe_error(exc), show_alert=True)
        return

    store.delete_client_extras(client_id)
    logger.info("Client %s deleted by %s", client_id, operator.id)
    await query.message.edit_text(
        MessageTemplates.success(f"Cliente <code>#{client_id}</code> eliminado."),
        reply_markup=Keyboards.clients_menu(),
    )
    await query.answer()
