from __future__ import annotations

from datetime import datetime
from html import escape

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message, User

from mastergym.bot.keyboards import Keyboards, MessageTemplates
from mastergym.bot.panel import BACKEND_ERRORS, NOT_ALLOWED_TEXT, describe_error
from mastergym.core import get_settings
from mastergym.core.logging import configure_logging
from mastergym.core.store import KeyValueStore
from mastergym.db.backend import MasterGymClient

router = Router(name="backup")
logger = configure_logging()


def _last_backup_line(store: KeyValueStore) -> str:
    last_backup = store.get_last_backup()
    if last_backup is None:
        return "Todavía no se ha hecho ningún respaldo desde este panel."
    return f"Último respaldo: {last_backup.strftime('%d/%m/%Y %H:%M')}"


def _confirm_text(store: KeyValueStore) -> str:
    return (
        "☁️ <b>Respaldo en la nube</b>\n\n"
        "¿Deseas iniciar el respaldo en la nube ahora?\n\n"
        + _last_backup_line(store)
    )


@router.message(Command("backup"))
async def cmd_backup(message: Message, store: KeyValueStore, operator: User | None = None) -> None:
    """
    Ask for confirmation before running the cloud backup.
    """

    if operator is None:
        await message.answer(NOT_ALLOWED_TEXT)
        return

    await message.answer(_confirm_text(store), reply_markup=Keyboards.confirm_button("backup", "Respaldar"))


@router.callback_query(F.data == "backup")
async def callback_backup(query: CallbackQuery, store: KeyValueStore, operator: User | None = None) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.message.edit_text(
        _confirm_text(store),
        reply_markup=Keyboards.confirm_button("backup", "Respaldar"),
    )
    await query.answer()


@router.callback_query(F.data == "confirm:backup")
async def callback_confirm_backup(
    query: CallbackQuery,
    backend: MasterGymClient,
    store: KeyValueStore,
    operator: User | None = None,
) -> None:
    if operator is None:
        await query.answer("Sin acceso", show_alert=True)
        return

    await query.answer("Respaldando...")
    await query.message.edit_text("☁️ Respaldando...")

    try:
        result = await backend.run_backup(get_settings().backup_token)
    except BACKEND_ERRORS as exc:
        logger.exception("Backup request failed: %s", exc)
        await query.message.edit_text(
            MessageTemplates.error(describe_error(exc)),
            reply_markup=Keyboards.main_menu(),
        )
        return

    if not result.success:
        logger.error("Backup finished with exit code %s", result.exit_code)
        output = (result.output or "").strip() or "No se pudo ejecutar el respaldo."
        await query.message.edit_text(
            MessageTemplates.error(f"Error de respaldo\n<code>{escape(output[-1500:])}</code>"),
            reply_markup=Keyboards.main_menu(),
        )
        return

    store.set_last_backup(datetime.now())
    logger.info("Backup completed by %s", operator.id)
    await query.message.edit_text(
        MessageTemplates.success("La copia en la nube se actualizó correctamente.\n\n" + _last_backup_line(store)),
        reply_markup=Keyboards.main_menu(),
    )
