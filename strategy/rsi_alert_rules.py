"""
RSI Alert Rules
Turns an indicator snapshot into at most one Telegram alert per check.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import logging

from utils.helpers import format_display_time
from utils.twelvedata_client import EMA_PERIOD, IndicatorSnapshot


RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
RSI_ZONES: Tuple[int, ...] = (10, 20, 30, 80, 90, 100)


class AlertKind(str, Enum):
    """Kinds of message the rules can emit."""
    RSI_ALERT = 'rsi_alert'
    FULL_REPORT = 'full_report'
    ZONE = 'zone'


@dataclass(frozen=True)
class AlertMessage:
    """A formatted alert ready to be sent."""
    kind: AlertKind
    symbol: str
    rsi: float
    text: str
    zone: Optional[int] = None


def format_startup_message(moment: datetime, timezone_name: Optional[str] = None) -> str:
    """Process-start notification."""
    return (
        f"🚀 RSI Alert Bot Started Successfully!\n\n"
        f"🕒 Time: {format_display_time(moment, timezone_name)}"
    )


class RSIAlertStrategy:
    """
    Threshold rules over hourly RSI, EMA and Ichimoku readings.

    Both evaluation methods are pure: the same snapshot and timestamp always
    give the same message.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize strategy.

        Args:
            config: Configuration dictionary (only the display timezone is read)
        """
        config = config or {}
        self.display_timezone = config.get('schedule', {}).get('display_timezone')

        self.oversold = RSI_OVERSOLD
        self.overbought = RSI_OVERBOUGHT
        self.zones = RSI_ZONES

        self.logger = logging.getLogger(__name__)

    def evaluate_full(self, snapshot: IndicatorSnapshot,
                      now: datetime) -> Optional[AlertMessage]:
        """
        Full check: RSI alert when outside 30..70, otherwise the full report.

        Returns None when any indicator is missing.
        """
        if not snapshot.is_complete:
            self.logger.debug(f"{snapshot.symbol}: incomplete indicators, no full-check message")
            return None

        timestamp = format_display_time(now, self.display_timezone)

        if snapshot.rsi < self.oversold or snapshot.rsi > self.overbought:
            self.logger.debug(
                f"{snapshot.symbol}: RSI {snapshot.rsi:.2f} outside "
                f"{self.oversold:g}-{self.overbought:g}, RSI alert"
            )
            text = (
                f"⚠️ *RSI Alert* for *{snapshot.symbol}*\n"
                f"RSI: *{snapshot.rsi:.2f}*\n"
                f"🕒 {timestamp}"
            )
            return AlertMessage(AlertKind.RSI_ALERT, snapshot.symbol, snapshot.rsi, text)

        text = (
            f"📊 *Indicators for {snapshot.symbol}*\n"
            f"*RSI:* {snapshot.rsi:.2f}\n"
            f"*EMA ({EMA_PERIOD}):* {snapshot.ema:.5f}\n"
            f"*Tenkan-sen:* {snapshot.tenkan_sen}\n"
            f"*Kijun-sen:* {snapshot.kijun_sen}\n"
            f"*Senkou Span B:* {snapshot.senkou_span_b}\n"
            f"🕒 {timestamp}"
        )
        return AlertMessage(AlertKind.FULL_REPORT, snapshot.symbol, snapshot.rsi, text)

    def evaluate_zones(self, snapshot: IndicatorSnapshot,
                       now: datetime) -> Optional[AlertMessage]:
        """
        Zone check: alert when floor(RSI) is exactly one of the RSI zones.

        Only RSI is needed; returns None when it is missing or no zone matches.
        """
        if snapshot.rsi is None:
            self.logger.debug(f"{snapshot.symbol}: RSI unavailable, no zone check")
            return None

        level = math.floor(snapshot.rsi)

        for zone in self.zones:
            if level == zone:
                self.logger.debug(f"{snapshot.symbol}: RSI {snapshot.rsi:.2f} in zone {zone}")
                text = (
                    f"🔔 *RSI Zone Triggered* for *{snapshot.symbol}*\n"
                    f"RSI: *{snapshot.rsi:.2f}* near *{zone}*\n"
                    f"🕒 {format_display_time(now, self.display_timezone)}"
                )
                return AlertMessage(AlertKind.ZONE, snapshot.symbol, snapshot.rsi, text, zone=zone)

        return None
