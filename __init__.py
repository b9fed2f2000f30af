"""
Forex RSI Alert Bot
Hourly RSI, EMA and Ichimoku alerts for major currency pairs, delivered via Telegram.

Requires a Twelve Data API key and a Telegram bot.
"""

__version__ = "1.0.0"
__author__ = "Forex RSI Alert Bot"
