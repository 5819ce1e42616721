"""
Middlewares for the Telegram bot.

Currently includes:
- AccessContextMiddleware: resolves whether the sender may operate the panel.
"""

from .access_context import AccessContextMiddleware

__all__ = ["AccessContextMiddleware"]
