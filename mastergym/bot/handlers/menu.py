from __future__ import annotations

from aiogram import F, Router
from aiogram.types import CallbackQuery, User

from mastergym.bot.handlers.start import HELP_TEXT
from mastergym.bot.keyboards import Keyboards, MessageTemplates

router = Router(name="menu")


async def _show(query: CallbackQuery, text: str, markup) -> None:
    await query.message.edit_text(text=text, reply_markup=markup)
    await query.answer()


@router.callback_query(F.data == "menu_main")
async def show_main_menu(query: CallbackQuery, operator: User | None = None) -> None:
    """Show main menu."""
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await _show(query, "🏋️ <b>MasterGym</b>\n\nElige qué quieres hacer:", Keyboards.main_menu())


@router.callback_query(F.data == "menu_clients")
async def show_clients_menu(query: CallbackQuery) -> None:
    """Show clients submenu."""
    text = f"{MessageTemplates.header('Gestión de clientes', '👥')}\nPerfiles, estado y contacto de clientes."
    await _show(query, text, Keyboards.clients_menu())


@router.callback_query(F.data == "menu_payments")
async def show_payments_menu(query: CallbackQuery) -> None:
    """Show payments submenu."""
    text = f"{MessageTemplates.header('Pagos', '💰')}\nRegistra pagos y revisa el historial de transacciones."
    await _show(query, text, Keyboards.payments_menu())


@router.callback_query(F.data == "menu_measurements")
async def show_measurements_menu(query: CallbackQuery) -> None:
    """Show measurements submenu."""
    text = f"{MessageTemplates.header('Mediciones', '📏')}\nGuarda y consulta mediciones físicas de los clientes."
    await _show(query, text, Keyboards.measurements_menu())


@router.callback_query(F.data == "menu_export")
async def show_export_menu(query: CallbackQuery) -> None:
    """Show export submenu."""
    text = f"{MessageTemplates.header('Exportar datos', '📥')}\nElige qué descargar en CSV:"
    await _show(query, text, Keyboards.export_menu())


@router.callback_query(F.data == "menu_help")
async def show_help_menu(query: CallbackQuery) -> None:
    """Show help."""
    await _show(query, HELP_TEXT, Keyboards.back_button("menu_main"))
