"""
Strategy package for the forex RSI alert bot.
Contains the alert rules applied to each indicator snapshot.
"""

from .rsi_alert_rules import RSIAlertStrategy, AlertMessage, AlertKind

__version__ = "1.0.0"
__all__ = ['RSIAlertStrategy', 'AlertMessage', 'AlertKind']
