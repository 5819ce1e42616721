from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message, User

from mastergym.bot.keyboards import Keyboards
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, describe_error
from mastergym.core import get_settings
from mastergym.core.logging import configure_logging
from mastergym.db.backend import MasterGymClient

router = Router(name="start")
logger = configure_logging()

HELP_TEXT = """
<b>📋 Comandos disponibles</b>

<b>👥 Clientes</b>
/clients [activos|por-vencer|vencidos] — lista de clientes
/search &lt;texto&gt; — buscar por nombre, teléfono, correo o estado
/client &lt;id&gt; — ficha del cliente
/add_client — nuevo cliente
/edit_client &lt;id&gt; — editar cliente
/delete_client &lt;id&gt; — eliminar cliente

<b>🔄 Membresías</b>
/renew &lt;id&gt; — renovar membresía (registra el pago)
/remind &lt;id&gt; — recordatorio por WhatsApp

<b>💰 Pagos</b>
/payment — registrar pago
/payments — historial de pagos
/delete_payment &lt;id&gt; — eliminar pago

<b>📏 Mediciones</b>
/measure — nueva medición
/measurements [id cliente] — mediciones registradas
/measurement &lt;id&gt; — detalle con IMC
/measurement_pdf &lt;id&gt; — PDF de una medición
/measurements_pdf &lt;id cliente&gt; — PDF de todas las mediciones del cliente
/delete_measurement &lt;id&gt; — eliminar medición

<b>📊 Reportes</b>
/summary — resumen del gimnasio
/report &lt;id cliente&gt; — reporte individual (.txt)
/export_clients, /export_payments, /export_measurements — CSV

<b>☁️ Respaldo</b>
/backup — respaldo en la nube

/menu — menú principal
/cancel — cancelar la operación actual
""".strip()


@router.message(CommandStart())
async def cmd_start(
    message: Message,
    backend: MasterGymClient,
    operator: User | None = None,
) -> None:
    """
    /start for gym staff.

    Checks that the backend session works and shows the main menu.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    settings = get_settings()
    lines = [
        f"👋 ¡Hola, {escape(operator.first_name)}!",
        "Este es el panel de <b>MasterGym</b>: clientes, pagos y mediciones.",
        "",
    ]

    try:
        await backend.list_clients(size=1)
    except BACKEND_ERRORS as exc:
        logger.exception("Backend check failed during /start: %s", exc)
        lines.append("⚠️ No se pudo conectar con el servidor: " + describe_error(exc))
        if settings.is_debug:
            lines.append(f"<code>API_BASE_URL={settings.api_base_url}</code>")
        await message.answer("\n".join(lines))
        return

    lines.append("Servidor conectado ✅")
    lines.append("Elige una opción o usa /help para ver los comandos.")
    if settings.is_debug:
        lines.append("")
        lines.append(f"Modo: <b>DEBUG</b> | user_id={operator.id}")

    await message.answer("\n".join(lines), reply_markup=Keyboards.main_menu())


@router.message(Command("menu"))
async def cmd_menu(message: Message, operator: User | None = None) -> None:
    """
    Show main menu.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await message.answer(
        "🏋️ <b>MasterGym</b>\n\nElige qué quieres hacer:",
        reply_markup=Keyboards.main_menu(),
    )


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext) -> None:
    """
    Cancel any active dialog.
    """

    current_state = await state.get_state()
    if current_state is None:
        await message.answer("No hay ninguna operación activa.")
        return

    await state.clear()
    await message.answer("Operación cancelada.", reply_markup=Keyboards.main_menu())


@router.callback_query(F.data == "flow_cancel")
async def callback_cancel(query: CallbackQuery, state: FSMContext) -> None:
    await state.clear()
    await query.message.edit_text("Operación cancelada.", reply_markup=Keyboards.main_menu())
    await query.answer()
