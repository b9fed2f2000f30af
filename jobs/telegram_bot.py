"""
Telegram Notifier for RSI Alerts
Delivers alert text to one chat, subject to a daily message budget.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import telegram
from telegram.error import TelegramError

from utils.helpers import DEFAULT_MAX_DAILY_ALERTS


class NotificationError(Exception):
    """Raised when Telegram rejects or cannot receive a message."""


class AlertBudget:
    """Caps the number of messages sent between resets."""

    def __init__(self, max_count: int = DEFAULT_MAX_DAILY_ALERTS):
        if max_count <= 0:
            raise ValueError(f"max_count must be positive, got {max_count}")

        self.max_count = max_count
        self.sent_count = 0
        self.last_reset: Optional[datetime] = None

        self.logger = logging.getLogger(__name__)

    def try_consume(self) -> bool:
        """Check whether another message may be sent. Does not change state."""
        return self.sent_count < self.max_count

    def record_sent(self):
        """Count one delivered message."""
        self.sent_count += 1

    def reset(self, when: Optional[datetime] = None):
        """Start a new budget period."""
        self.logger.info(f"Resetting alert budget ({self.sent_count}/{self.max_count} used)")
        self.sent_count = 0
        self.last_reset = when or datetime.now()

    @property
    def remaining(self) -> int:
        return max(self.max_count - self.sent_count, 0)


class TelegramNotifier:
    """
    Sends Markdown messages to the configured Telegram chat.

    Messages over budget are dropped silently. Delivery failures raise
    NotificationError and are not counted against the budget.
    """

    def __init__(self, bot_token: str, chat_id: str, budget: AlertBudget,
                 bot: Optional[telegram.Bot] = None, parse_mode: str = 'Markdown'):
        """
        Initialize notifier.

        Args:
            bot_token: Telegram bot token
            chat_id: Destination chat identifier
            budget: Shared daily alert budget
            bot: Optional pre-built bot (tests inject a mock here)
            parse_mode: Telegram rendering mode
        """
        self.chat_id = chat_id
        self.budget = budget
        self.parse_mode = parse_mode
        self.bot = bot if bot is not None else telegram.Bot(token=bot_token)

        # Check, send and record happen as one step so overlapping passes
        # cannot overshoot the ceiling.
        self._send_lock = asyncio.Lock()

        self.suppressed_count = 0
        self.failure_count = 0

        self.logger = logging.getLogger(__name__)

    async def send(self, text: str) -> bool:
        """
        Send message to configured chat.

        Args:
            text: Message text (Markdown)

        Returns:
            bool: True if delivered, False if dropped by the budget

        Raises:
            NotificationError: If Telegram could not be reached or refused the message
        """
        async with self._send_lock:
            if not self.budget.try_consume():
                self.suppressed_count += 1
                self.logger.warning(
                    f"Daily alert limit reached ({self.budget.max_count}), message dropped"
                )
                return False

            try:
                await self.bot.send_message(
                    chat_id=self.chat_id,
                    text=text,
                    parse_mode=self.parse_mode
                )
            except TelegramError as e:
                self.failure_count += 1
                self.logger.error(f"Failed to send Telegram message: {str(e)}")
                raise NotificationError(str(e)) from e

            self.budget.record_sent()
            return True

    def get_status(self) -> Dict[str, Any]:
        """Budget and delivery counters."""
        return {
            'sent': self.budget.sent_count,
            'max': self.budget.max_count,
            'suppressed': self.suppressed_count,
            'failures': self.failure_count,
        }
