from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage

from mastergym.bot.handlers import setup_routers
from mastergym.bot.middlewares import AccessContextMiddleware
from mastergym.bot.scheduler import MembershipDigestScheduler
from mastergym.core import get_settings
from mastergym.core.logging import configure_logging
from mastergym.core.store import KeyValueStore
from mastergym.db import get_backend_client


async def _run_bot() -> None:
    settings = get_settings()
    logger = configure_logging()

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    backend = get_backend_client()
    store = KeyValueStore(settings.state_file)

    # backend and store reach handlers as keyword arguments
    dp = Dispatcher(storage=MemoryStorage(), backend=backend, store=store)
    dp.message.middleware(AccessContextMiddleware())
    dp.callback_query.middleware(AccessContextMiddleware())
    dp.include_router(setup_routers())

    logger.info("Starting bot in %s environment against %s", settings.environment, settings.api_base_url)

    scheduler = MembershipDigestScheduler(bot, backend, store)
    await scheduler.start()

    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await scheduler.stop()
        await backend.close()
        await bot.session.close()


def main() -> None:
    asyncio.run(_run_bot())


if __name__ == "__main__":
    main()
