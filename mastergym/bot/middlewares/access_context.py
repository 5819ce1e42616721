from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject, User

from mastergym.core import get_settings
from mastergym.core.logging import configure_logging


logger = configure_logging()


class AccessContextMiddleware(BaseMiddleware):
    """
    Middleware that attaches the current operator to handler data.

    ``operator`` is the Telegram user when they are listed in
    ADMIN_TELEGRAM_IDS (or when no admins are configured), otherwise None.
    Works for both Message and CallbackQuery events.
    """

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        from_user: User | None = None
        if isinstance(event, (Message, CallbackQuery)):
            from_user = event.from_user

        if from_user:
            settings = get_settings()
            if settings.is_admin(from_user.id):
                data["operator"] = from_user
            else:
                logger.warning("Rejected update from non-admin user %s", from_user.id)
                data["operator"] = None

        return await handler(event, data)
