from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from mastergym.core.mappings import UiPaymentMethod
from mastergym.core.membership import DisplayStatus, MembershipTerm


STATUS_EMOJI = {
    DisplayStatus.ACTIVE: "🟢",
    DisplayStatus.EXPIRING_SOON: "🟡",
    DisplayStatus.EXPIRED: "🔴",
    DisplayStatus.INACTIVE: "⚪",
}

_TERM_LABELS = {
    MembershipTerm.DAILY: "Diario",
    MembershipTerm.MONTHLY: "Mensual",
    MembershipTerm.QUARTERLY: "Trimestral",
    MembershipTerm.SEMIANNUAL: "Semestral",
    MembershipTerm.ANNUAL: "Anual",
}

_METHOD_LABELS = {
    UiPaymentMethod.CASH: "💵 Efectivo",
    UiPaymentMethod.CARD: "💳 Tarjeta",
    UiPaymentMethod.SINPE: "📱 SINPE",
}


class Keyboards:
    """
    Centralized keyboard/button builder for consistent UI.
    """

    @staticmethod
    def main_menu() -> InlineKeyboardMarkup:
        """Main menu buttons."""
        buttons = [
            [
                InlineKeyboardButton(text="👥 Clientes", callback_data="menu_clients"),
                InlineKeyboardButton(text="💰 Pagos", callback_data="menu_payments"),
            ],
            [
                InlineKeyboardButton(text="📏 Mediciones", callback_data="menu_measurements"),
                InlineKeyboardButton(text="📊 Resumen", callback_data="summary"),
            ],
            [
                InlineKeyboardButton(text="📥 Exportar", callback_data="menu_export"),
                InlineKeyboardButton(text="☁️ Respaldar", callback_data="backup"),
            ],
            [InlineKeyboardButton(text="❓ Ayuda", callback_data="menu_help")],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def clients_menu() -> InlineKeyboardMarkup:
        """Clients submenu."""
        buttons = [
            [InlineKeyboardButton(text="➕ Nuevo cliente", callback_data="add_client")],
            [
                InlineKeyboardButton(text="📋 Todos", callback_data="clients:todos"),
                InlineKeyboardButton(text="🟢 Activos", callback_data="clients:activos"),
            ],
            [
                InlineKeyboardButton(text="🟡 Por vencer", callback_data="clients:por-vencer"),
                InlineKeyboardButton(text="🔴 Vencidos", callback_data="clients:vencidos"),
            ],
            [InlineKeyboardButton(text="🔍 Buscar cliente", callback_data="search_client")],
            [InlineKeyboardButton(text="⬅️ Atrás", callback_data="menu_main")],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def payments_menu() -> InlineKeyboardMarkup:
        """Payments submenu."""
        buttons = [
            [InlineKeyboardButton(text="➕ Registrar pago", callback_data="add_payment")],
            [InlineKeyboardButton(text="📋 Historial de pagos", callback_data="list_payments")],
            [InlineKeyboardButton(text="⬅️ Atrás", callback_data="menu_main")],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def measurements_menu() -> InlineKeyboardMarkup:
        """Measurements submenu."""
        buttons = [
            [InlineKeyboardButton(text="➕ Nueva medición", callback_data="add_measurement")],
            [InlineKeyboardButton(text="📋 Últimas mediciones", callback_data="list_measurements")],
            [InlineKeyboardButton(text="⬅️ Atrás", callback_data="menu_main")],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def export_menu() -> InlineKeyboardMarkup:
        """Export submenu."""
        buttons = [
            [InlineKeyboardButton(text="📄 Clientes (CSV)", callback_data="export:clients")],
            [InlineKeyboardButton(text="📄 Pagos (CSV)", callback_data="export:payments")],
            [InlineKeyboardButton(text="📄 Mediciones (CSV)", callback_data="export:measurements")],
            [InlineKeyboardButton(text="⬅️ Atrás", callback_data="menu_main")],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def client_actions(client_id: int) -> InlineKeyboardMarkup:
        """Actions shown under a client's detail card."""
        buttons = [
            [
                InlineKeyboardButton(text="🔄 Renovar", callback_data=f"renew:{client_id}"),
                InlineKeyboardButton(text="💬 Recordatorio", callback_data=f"remind:{client_id}"),
            ],
            [
                InlineKeyboardButton(text="📄 Reporte", callback_data=f"report:{client_id}"),
                InlineKeyboardButton(text="📏 Mediciones", callback_data=f"client_measurements:{client_id}"),
            ],
            [
                InlineKeyboardButton(text="✏️ Editar", callback_data=f"edit_client:{client_id}"),
                InlineKeyboardButton(text="🗑 Eliminar", callback_data=f"delete_client:{client_id}"),
            ],
            [InlineKeyboardButton(text="⬅️ Clientes", callback_data="menu_clients")],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def terms(prefix: str) -> InlineKeyboardMarkup:
        """One button per membership term, callback ``<prefix>:<term>``."""
        rows = [
            [InlineKeyboardButton(text=_TERM_LABELS[term], callback_data=f"{prefix}:{term.value}")]
            for term in MembershipTerm
        ]
        rows.append([InlineKeyboardButton(text="❌ Cancelar", callback_data="flow_cancel")])
        return InlineKeyboardMarkup(inline_keyboard=rows)

    @staticmethod
    def payment_methods(prefix: str) -> InlineKeyboardMarkup:
        """One button per payment method, callback ``<prefix>:<method>``."""
        row = [
            InlineKeyboardButton(text=_METHOD_LABELS[method], callback_data=f"{prefix}:{method.value}")
            for method in UiPaymentMethod
        ]
        return InlineKeyboardMarkup(
            inline_keyboard=[row, [InlineKeyboardButton(text="❌ Cancelar", callback_data="flow_cancel")]]
        )

    @staticmethod
    def confirm_button(action: str, action_text: str = "Confirmar") -> InlineKeyboardMarkup:
        """Confirmation buttons; ``action`` is echoed back as ``confirm:<action>``."""
        buttons = [
            [
                InlineKeyboardButton(text=f"✅ {action_text}", callback_data=f"confirm:{action}"),
                InlineKeyboardButton(text="❌ Cancelar", callback_data="flow_cancel"),
            ],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def link_button(text: str, url: str, back: str = "menu_clients") -> InlineKeyboardMarkup:
        buttons = [
            [InlineKeyboardButton(text=text, url=url)],
            [InlineKeyboardButton(text="⬅️ Atrás", callback_data=back)],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)

    @staticmethod
    def back_button(callback_data: str = "menu_main") -> InlineKeyboardMarkup:
        """Simple back button."""
        buttons = [
            [InlineKeyboardButton(text="⬅️ Atrás", callback_data=callback_data)],
        ]
        return InlineKeyboardMarkup(inline_keyboard=buttons)


class MessageTemplates:
    """
    Standardized message templates for consistent formatting.
    """

    @staticmethod
    def header(title: str, emoji: str = "📋") -> str:
        """Format a header."""
        return f"\n<b>{emoji} {title}</b>\n"

    @staticmethod
    def item(text: str, indent: int = 1) -> str:
        """Format an item in a list."""
        return "  " * indent + f"• {text}"

    @staticmethod
    def error(message: str) -> str:
        """Format an error message."""
        return f"❌ <b>Error:</b> {message}"

    @staticmethod
    def success(message: str) -> str:
        """Format a success message."""
        return f"✅ <b>Listo.</b> {message}"

    @staticmethod
    def warning(message: str) -> str:
        """Format a warning message."""
        return f"⚠️ <b>Atención:</b> {message}"

    @staticmethod
    def stat(label: str, value: str, unit: str = "") -> str:
        """Format a statistic item."""
        return f"  <b>{label}:</b> {value}{' ' + unit if unit else ''}"

    @staticmethod
    def format_date(date_obj) -> str:
        """Format date consistently."""
        if date_obj is None:
            return "—"
        return f"<code>{date_obj.strftime('%d/%m/%Y')}</code>"

    @staticmethod
    def status(status: DisplayStatus) -> str:
        return f"{STATUS_EMOJI[status]} {status.label}"

    @staticmethod
    def term(term: MembershipTerm) -> str:
        return _TERM_LABELS[term]
