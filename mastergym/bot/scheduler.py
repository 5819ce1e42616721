from __future__ import annotations

import logging
from datetime import datetime
from html import escape

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from aiogram import Bot

from mastergym.bot.panel import BACKEND_ERRORS, load_panel
from mastergym.core import get_settings
from mastergym.core.membership import DisplayStatus
from mastergym.core.store import KeyValueStore
from mastergym.core.views import ClientView, clients_needing_attention
from mastergym.db.backend import MasterGymClient

logger = logging.getLogger(__name__)

DIGEST_LISTED = 30


def _lapsed(days: int) -> str:
    if days < 0:
        return f"hace {-days} d"
    if days == 0:
        return "hoy"
    # delinquent with the due date still ahead
    return "pago pendiente"


def build_digest(attention: list[tuple[ClientView, int]], now: datetime) -> str | None:
    """
    Daily admin message listing expiring and expired memberships.

    Returns None when nobody needs attention.
    """

    if not attention:
        return None

    expiring = [(c, d) for c, d in attention if c.status is DisplayStatus.EXPIRING_SOON]
    expired = [(c, d) for c, d in attention if c.status is DisplayStatus.EXPIRED]

    lines = [f"⏰ <b>Membresías al {now.strftime('%d/%m/%Y')}</b>", ""]
    if expiring:
        lines.append(f"<b>🟡 Por vencer</b> ({len(expiring)})")
        for client, days in expiring[:DIGEST_LISTED]:
            lines.append(
                f"  • <code>#{client.id}</code> {escape(client.full_name)}: "
                f"{client.due_date.strftime('%d/%m/%Y')} ({days} d)"
            )
        lines.append("")
    if expired:
        lines.append(f"<b>🔴 Vencidos</b> ({len(expired)})")
        for client, days in expired[:DIGEST_LISTED]:
            lines.append(
                f"  • <code>#{client.id}</code> {escape(client.full_name)}: "
                f"{client.due_date.strftime('%d/%m/%Y')} ({_lapsed(days)})"
            )
        lines.append("")

    lines.append("💬 Usa /remind &lt;id&gt; para enviar un recordatorio o /renew &lt;id&gt; para renovar.")
    return "\n".join(lines)


class MembershipDigestScheduler:
    """
    APScheduler manager for the daily membership digest.
    Sends configured admins the list of expiring and expired members.
    """

    def __init__(self, bot: Bot, backend: MasterGymClient, store: KeyValueStore) -> None:
        self.bot = bot
        self.backend = backend
        self.store = store
        self.scheduler: AsyncIOScheduler | None = None

    async def start(self) -> None:
        """
        Initialize and start the scheduler.
        Runs once a day at DIGEST_HOUR.
        """
        settings = get_settings()
        if not settings.admin_telegram_ids:
            logger.info("No ADMIN_TELEGRAM_IDS configured, membership digest disabled")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.send_digest,
            CronTrigger(hour=settings.digest_hour, minute=0),
            id="membership_digest",
            name="Daily Membership Digest",
        )
        self.scheduler.start()
        logger.info("Membership digest scheduler started (hour=%s)", settings.digest_hour)

    async def stop(self) -> None:
        """
        Stop the scheduler gracefully.
        """
        if self.scheduler:
            self.scheduler.shutdown()
            logger.info("Membership digest scheduler stopped")

    async def send_digest(self) -> None:
        settings = get_settings()

        try:
            panel = await load_panel(self.backend, self.store)
        except BACKEND_ERRORS as exc:
            logger.exception("Could not load clients for digest: %s", exc)
            return

        text = build_digest(clients_needing_attention(panel.clients, panel.now), panel.now)
        if text is None:
            logger.debug("No memberships need attention today")
            return

        for admin_id in settings.admin_telegram_ids:
            try:
                await self.bot.send_message(chat_id=admin_id, text=text)
            except Exception as exc:
                logger.error("Failed to send digest to %s: %s", admin_id, exc)

        logger.info("Membership digest sent to %s admins", len(settings.admin_telegram_ids))
