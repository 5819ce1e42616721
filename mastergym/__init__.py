"""
Application package for the MasterGym admin Telegram bot.

This package contains:
- Telegram bot implementation (`mastergym.bot`)
- Shared configuration, membership rules and reports (`mastergym.core`)
- MasterGym REST backend integration (`mastergym.db`)
"""
