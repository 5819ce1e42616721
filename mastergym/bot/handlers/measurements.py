from __future__ import annotations

from datetime import date
from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import BufferedInputFile, CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message, User

from mastergym.bot.keyboards import Keyboards, MessageTemplates
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, Panel, describe_error, load_panel
from mastergym.core.logging import configure_logging
from mastergym.core.store import KeyValueStore
from mastergym.core.validation import optional_text, parse_date, parse_id, parse_positive_float
from mastergym.core.views import MeasurementView, build_measurement_view, measurements_for_client
from mastergym.db.backend import MasterGymClient
from mastergym.db.models import MeasurementCreateRequest

router = Router(name="measurements")
logger = configure_logging()

MAX_LISTED = 30

# (field, prompt, unit, required)
MEASUREMENT_STEPS = [
    ("weight_kg", "Peso", "kg", True),
    ("height_cm", "Altura", "cm", True),
    ("chest_cm", "Pecho", "cm", True),
    ("waist_cm", "Cintura", "cm", True),
    ("hip_cm", "Cadera", "cm", True),
    ("left_arm_cm", "Brazo izquierdo", "cm", True),
    ("right_arm_cm", "Brazo derecho", "cm", True),
    ("left_leg_cm", "Pierna izquierda", "cm", True),
    ("right_leg_cm", "Pierna derecha", "cm", True),
    ("body_fat_pct", "Grasa corporal", "%", False),
]


class MeasurementStates(StatesGroup):
    waiting_for_client = State()
    waiting_for_date = State()
    waiting_for_value = State()
    waiting_for_notes = State()


def measurement_line(measurement: MeasurementView, names: dict[int, str]) -> str:
    record = measurement.record
    name = escape(names.get(record.client_id, f"Cliente #{record.client_id}"))
    return (
        f"<code>#{record.id}</code> {record.measured_on.strftime('%d/%m/%Y')} • {name} • "
        f"{record.weight_kg:g} kg • IMC {measurement.bmi_text}"
    )


def render_measurements(panel: Panel, client_id: int | None = None) -> str:
    names = panel.client_names()
    if client_id is None:
        measurements = sorted(panel.measurements, key=lambda m: m.record.measured_on, reverse=True)
        title = "📏 Mediciones"
    else:
        measurements = measurements_for_client(panel.measurements, client_id)
        title = f"📏 Mediciones de {escape(names.get(client_id, f'cliente #{client_id}'))}"

    if not measurements:
        return f"<b>{title}</b>\n\nNo hay mediciones registradas."

    lines = [f"<b>{title}</b> ({len(measurements)})", ""]
    lines += [measurement_line(m, names) for m in measurements[:MAX_LISTED]]
    if len(measurements) > MAX_LISTED:
        lines.append(f"\n... y {len(measurements) - MAX_LISTED} más (usa /export_measurements)")
    lines.append("\nDetalle: /measurement &lt;id&gt;")
    return "\n".join(lines)


def render_measurement(measurement: MeasurementView, client_name: str) -> str:
    record = measurement.record
    lines = [
        f"<b>📏 Medición</b> <code>#{record.id}</code>",
        f"Cliente: <b>{escape(client_name)}</b>",
        f"Fecha: {MessageTemplates.format_date(record.measured_on)}",
        "",
        MessageTemplates.stat("IMC", measurement.bmi_text),
        "",
    ]
    for field, label, unit, _ in MEASUREMENT_STEPS:
        value = getattr(record, field)
        if value is not None:
            lines.append(MessageTemplates.stat(label, f"{value:g}", unit))
    if record.notes:
        lines += ["", f"📝 {escape(record.notes)}"]
    return "\n".join(lines)


def _measurement_keyboard(measurement_id: int, client_id: int) -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(text="📄 PDF", callback_data=f"measurement_pdf:{measurement_id}")],
        [InlineKeyboardButton(text="📄 PDF de todas", callback_data=f"measurements_pdf:{client_id}")],
        [InlineKeyboardButton(text="⬅️ Mediciones", callback_data="menu_measurements")],
    ]
    return InlineKeyboardMarkup(inline_keyboard=buttons)


async def _answer_list(
    message: Message,
    backend: MasterGymClient,
    store: KeyValueStore,
    client_id: int | None = None,
) -> None:
    try:
        panel = await load_panel(backend, store)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load measurements: %s", exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    await message.answer(render_measurements(panel, client_id), reply_markup=Keyboards.measurements_menu())


@router.message(Command("measurements"))
async def cmd_measurements(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    """
    Recorded measurements, optionally for one client: /measurements 12
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    client_id = parse_id(command.args) if command.args else None
    if command.args and client_id is None:
        await message.answer("Usa: /measurements [id cliente]")
        return

    await _answer_list(message, backend, store, client_id)


@router.callback_query(F.data == "list_measurements")
async def callback_list_measurements(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _answer_list(query.message, backend, store)


@router.callback_query(F.data.startswith("client_measurements:"))
async def callback_client_measurements(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _answer_list(query.message, backend, store, int(query.data.split(":", 1)[1]))


@router.message(Command("measurement"))
async def cmd_measurement(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    """
    Measurement detail with BMI: /measurement 5
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    measurement_id = parse_id(command.args)
    if measurement_id is None:
        await message.answer("Usa: /measurement &lt;id&gt;")
        return

    try:
        record = await backend.get_measurement(measurement_id)
        client = await backend.get_client(record.client_id)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to load measurement %s: %s", measurement_id, exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    client_name = f"{client.first_name} {client.last_name or ''}".strip()
    await message.answer(
        render_measurement(build_measurement_view(record), client_name),
        reply_markup=_measurement_keyboard(record.id, record.client_id),
    )


async def _send_pdf(
    message: Message,
    backend: MasterGymClient,
    *,
    measurement_id: int | None = None,
    client_id: int | None = None,
) -> None:
    try:
        if measurement_id is not None:
            content, filename = await backend.download_measurement_pdf(measurement_id)
        else:
            content, filename = await backend.download_client_measurements_pdf(client_id)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to download measurement PDF: %s", exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    await message.answer_document(BufferedInputFile(content, filename=filename))


@router.message(Command("measurement_pdf"))
async def cmd_measurement_pdf(
    message: Message,
    command: CommandObject,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    measurement_id = parse_id(command.args)
    if measurement_id is None:
        await message.answer("Usa: /measurement_pdf &lt;id&gt;")
        return

    await _send_pdf(message, backend, measurement_id=measurement_id)


@router.message(Command("measurements_pdf"))
async def cmd_measurements_pdf(
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
        await message.answer("Usa: /measurements_pdf &lt;id cliente&gt;")
        return

    await _send_pdf(message, backend, client_id=client_id)


@router.callback_query(F.data.startswith("measurement_pdf:"))
async def callback_measurement_pdf(query: CallbackQuery, backend: MasterGymClient, operator: User | None = None) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer("Generando PDF...")
    await _send_pdf(query.message, backend, measurement_id=int(query.data.split(":", 1)[1]))


@router.callback_query(F.data.startswith("measurements_pdf:"))
async def callback_measurements_pdf(query: CallbackQuery, backend: MasterGymClient, operator: User | None = None) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer("Generando PDF...")
    await _send_pdf(query.message, backend, client_id=int(query.data.split(":", 1)[1]))


# ---- new measurement dialog ----


async def _start_measurement(message: Message, state: FSMContext) -> None:
    await state.set_state(MeasurementStates.waiting_for_client)
    await message.answer(
        "➕ <b>Nueva medición</b>\n\n"
        "Envía el <b>id del cliente</b>.\n\n"
        "Para cancelar escribe /cancel."
    )


@router.message(Command("measure"))
async def cmd_measure(message: Message, state: FSMContext, operator: User | None = None) -> None:
    """
    Start new measurement dialog.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await _start_measurement(message, state)


@router.callback_query(F.data == "add_measurement")
async def callback_measure(query: CallbackQuery, state: FSMContext, operator: User | None = None) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer()
    await _start_measurement(query.message, state)


def _step_prompt(step: int) -> str:
    _, label, unit, required = MEASUREMENT_STEPS[step]
    hint = "" if required else " (o <code>-</code> para omitir)"
    return f"{step + 1}/{len(MEASUREMENT_STEPS)} Envía <b>{label}</b> en {unit}{hint}."


@router.message(MeasurementStates.waiting_for_client, F.text.len() > 0)
async def measurement_client(message: Message, state: FSMContext, backend: MasterGymClient) -> None:
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
    await state.update_data(client_id=client.id, client_name=full_name, values={})
    await state.set_state(MeasurementStates.waiting_for_date)
    await message.answer(
        f"Cliente: <b>{escape(full_name)}</b>\n\n"
        "Envía la <b>fecha</b> de la medición (DD/MM/AAAA) o <code>hoy</code>."
    )


@router.message(MeasurementStates.waiting_for_date, F.text.len() > 0)
async def measurement_date(message: Message, state: FSMContext) -> None:
    measured_on = parse_date(message.text)
    if measured_on is None:
        await message.answer("Fecha inválida. Usa DD/MM/AAAA o escribe hoy.")
        return
    if measured_on > date.today():
        await message.answer("La fecha de la medición no puede ser futura.")
        return

    await state.update_data(measured_on=measured_on.isoformat(), step=0)
    await state.set_state(MeasurementStates.waiting_for_value)
    await message.answer(_step_prompt(0))


@router.message(MeasurementStates.waiting_for_value, F.text.len() > 0)
async def measurement_value(message: Message, state: FSMContext) -> None:
    data = await state.get_data()
    step = data.get("step", 0)
    field, _, _, required = MEASUREMENT_STEPS[step]

    if not required and optional_text(message.text) is None:
        value = None
    else:
        value = parse_positive_float(message.text)
        if value is None:
            await message.answer("Valor inválido. Envía un número mayor a cero, por ejemplo 72.5.")
            return

    values = dict(data.get("values", {}))
    values[field] = value
    step += 1
    await state.update_data(values=values, step=step)

    if step < len(MEASUREMENT_STEPS):
        await message.answer(_step_prompt(step))
        return

    await state.set_state(MeasurementStates.waiting_for_notes)
    await message.answer("Envía las <b>notas</b> de la medición o <code>-</code> si no hay.")


@router.message(MeasurementStates.waiting_for_notes, F.text.len() > 0)
async def measurement_notes(message: Message, state: FSMContext, backend: MasterGymClient) -> None:
    data = await state.get_data()
    await state.clear()

    request = MeasurementCreateRequest(
        client_id=data["client_id"],
        measured_on=date.fromisoformat(data["measured_on"]),
        notes=optional_text(message.text),
        **data["values"],
    )
    try:
        record = await backend.create_measurement(request)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to save measurement for client %s: %s", data["client_id"], exc)
        await message.answer(MessageTemplates.error(describe_error(exc)))
        return

    logger.info("Measurement %s recorded for client %s", record.id, record.client_id)
    await message.answer(
        MessageTemplates.success("Medición guardada.\n\n")
        + render_measurement(build_measurement_view(record), data["client_name"]),
        reply_markup=_measurement_keyboard(record.id, record.client_id),
    )


@router.message(Command("delete_measurement"))
async def cmd_delete_measurement(message: Message, command: CommandObject, operator: User | None = None) -> None:
    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    measurement_id = parse_id(command.args)
    if measurement_id is None:
        await message.answer("Usa: /delete_measurement &lt;id&gt;")
        return

    await message.answer(
        MessageTemplates.warning(f"¿Eliminar la medición <code>#{measurement_id}</code>?"),
        reply_markup=Keyboards.confirm_button(f"delete_measurement:{measurement_id}", "Eliminar"),
    )


@router.callback_query(F.data.startswith("confirm:delete_measurement:"))
async def callback_confirm_delete_measurement(
    query: CallbackQuery,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    measurement_id = int(query.data.rsplit(":", 1)[1])
    try:
        await backend.delete_measurement(measurement_id)
    except BACKEND_ERRORS as exc:
        logger.exception("Failed to delete measurement %s: %s", measurement_id, exc)
        await query.answer(describe_error(exc), show_alert=True)
        return

    logger.info("Measurement %s deleted by %s", measurement_id, operator.id)
    await query.message.edit_text(
        MessageTemplates.success(f"Medición <code>#{measurement_id}</code> eliminada."),
        reply_markup=Keyboards.measurements_menu(),
    )
    await query.answer()
