from aiogram import Router

from . import (
    backup,
    client_form,
    clients,
    export,
    measurements,
    menu,
    payments,
    renewals,
    reports,
    start,
)


def setup_routers() -> Router:
    """
    Aggregate and return root router for the bot.
    """

    router = Router(name="root")
    router.include_router(start.router)
    router.include_router(menu.router)
    router.include_router(clients.router)
    router.include_router(client_form.router)
    router.include_router(renewals.router)
    router.include_router(payments.router)
    router.include_router(measurements.router)
    router.include_router(reports.router)
    router.include_router(export.router)
    router.include_router(backup.router)
    return router
