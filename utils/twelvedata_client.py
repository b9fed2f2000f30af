"""
Twelve Data Client for Hourly Indicator Values
Fetches RSI, EMA and Ichimoku readings one symbol at a time.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp


TWELVEDATA_BASE_URL = "https://api.twelvedata.com"

INTERVAL = "1h"
RSI_PERIOD = 1
EMA_PERIOD = 26
ICHIMOKU_TENKAN = 2
ICHIMOKU_KIJUN = 2
ICHIMOKU_SENKOU_B = 52


def parse_finite(value: Any) -> Optional[float]:
    """Parse a provider value into a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class IchimokuValues:
    """The three Ichimoku lines used for reporting."""
    tenkan_sen: float
    kijun_sen: float
    senkou_span_b: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator readings for one symbol at fetch time. None means unavailable."""
    symbol: str
    rsi: Optional[float] = None
    ema: Optional[float] = None
    tenkan_sen: Optional[float] = None
    kijun_sen: Optional[float] = None
    senkou_span_b: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        return None not in (
            self.rsi, self.ema, self.tenkan_sen, self.kijun_sen, self.senkou_span_b
        )

    @classmethod
    def from_readings(cls, symbol: str, rsi: Optional[float],
                      ema: Optional[float] = None,
                      ichimoku: Optional[IchimokuValues] = None) -> "IndicatorSnapshot":
        return cls(
            symbol=symbol,
            rsi=rsi,
            ema=ema,
            tenkan_sen=ichimoku.tenkan_sen if ichimoku else None,
            kijun_sen=ichimoku.kijun_sen if ichimoku else None,
            senkou_span_b=ichimoku.senkou_span_b if ichimoku else None,
        )


class TwelveDataClient:
    """
    Read-only Twelve Data client.

    Every failure (transport error, non-200 status, missing series,
    non-numeric field) is reported as an absent value, never raised.
    """

    def __init__(self, api_key: str, base_url: str = TWELVEDATA_BASE_URL,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize client.

        Args:
            api_key: Twelve Data API key
            base_url: Provider root URL
            session: Optional pre-built session (owned by the caller)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self._session = session
        self._owns_session = session is None

        self.request_count = 0
        self.failure_count = 0

        self.logger = logging.getLogger(__name__)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _fetch_latest(self, indicator: str, symbol: str,
                            params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the first element of the indicator's time series, or None."""
        query = {'symbol': symbol, 'interval': INTERVAL, **params, 'apikey': self.api_key}
        url = f"{self.base_url}/{indicator}"

        self.request_count += 1

        try:
            session = await self._get_session()
            async with session.get(url, params=query) as response:
                if response.status != 200:
                    self.failure_count += 1
                    self.logger.warning(
                        f"{indicator.upper()} request for {symbol} returned HTTP {response.status}"
                    )
                    return None
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.failure_count += 1
            self.logger.warning(f"{indicator.upper()} request for {symbol} failed: {e}")
            return None

        values = payload.get('values') if isinstance(payload, dict) else None
        if not isinstance(values, list) or not values or not isinstance(values[0], dict):
            message = payload.get('message') if isinstance(payload, dict) else None
            self.logger.debug(f"No {indicator} series for {symbol}: {message or 'empty response'}")
            return None

        return values[0]

    async def fetch_rsi(self, symbol: str) -> Optional[float]:
        """Latest hourly RSI for symbol."""
        latest = await self._fetch_latest('rsi', symbol, {
            'time_period': RSI_PERIOD,
            'series_type': 'close',
        })
        return parse_finite(latest.get('rsi')) if latest else None

    async def fetch_ema(self, symbol: str) -> Optional[float]:
        """Latest hourly EMA(26) for symbol."""
        latest = await self._fetch_latest('ema', symbol, {
            'time_period': EMA_PERIOD,
            'series_type': 'close',
        })
        return parse_finite(latest.get('ema')) if latest else None

    async def fetch_ichimoku(self, symbol: str) -> Optional[IchimokuValues]:
        """Latest hourly Ichimoku lines; None unless all three parse."""
        latest = await self._fetch_latest('ichimoku', symbol, {
            'tenkan': ICHIMOKU_TENKAN,
            'kijun': ICHIMOKU_KIJUN,
            'senkou_b': ICHIMOKU_SENKOU_B,
        })
        if not latest:
            return None

        tenkan = parse_finite(latest.get('tenkan_sen'))
        kijun = parse_finite(latest.get('kijun_sen'))
        senkou_b = parse_finite(latest.get('senkou_span_b'))

        if tenkan is None or kijun is None or senkou_b is None:
            self.logger.debug(f"Incomplete Ichimoku values for {symbol}: {latest}")
            return None

        return IchimokuValues(tenkan_sen=tenkan, kijun_sen=kijun, senkou_span_b=senkou_b)

    async def fetch_snapshot(self, symbol: str) -> IndicatorSnapshot:
        """Fetch RSI, Ichimoku and EMA sequentially for one symbol."""
        rsi = await self.fetch_rsi(symbol)
        ichimoku = await self.fetch_ichimoku(symbol)
        ema = await self.fetch_ema(symbol)
        return IndicatorSnapshot.from_readings(symbol, rsi=rsi, ema=ema, ichimoku=ichimoku)

    async def fetch_rsi_snapshot(self, symbol: str) -> IndicatorSnapshot:
        """Snapshot carrying only RSI, for the zone check."""
        return IndicatorSnapshot(symbol=symbol, rsi=await self.fetch_rsi(symbol))

    def health_check(self) -> Dict[str, Any]:
        """Request counters for health logging."""
        return {
            'requests': self.request_count,
            'failures': self.failure_count,
            'session_open': self._session is not None and not self._session.closed,
        }
