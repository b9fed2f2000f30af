import pytest
import pytz
from datetime import datetime
from unittest.mock import Mock, MagicMock, AsyncMock
from typing import Any, Dict

from utils.twelvedata_client import IndicatorSnapshot
from jobs.telegram_bot import AlertBudget, TelegramNotifier


# Monday 19 October 2026, 15:05 IST
FIXED_NOW = datetime(2026, 10, 19, 9, 35, 0, tzinfo=pytz.utc)


@pytest.fixture
def mock_config():
    """Mock configuration for testing."""
    return {
        'data_source': {
            'base_url': 'https://api.twelvedata.test'
        },
        'schedule': {
            'timezone': 'Asia/Kolkata',
            'display_timezone': 'Asia/Kolkata',
            'health_check_minutes': 30
        },
        'logging': {
            'level': 'DEBUG'
        }
    }


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def complete_snapshot():
    """Factory for snapshots with every indicator present."""
    def _make(rsi: float, symbol: str = 'EURUSD', **overrides) -> IndicatorSnapshot:
        values = {
            'symbol': symbol,
            'rsi': rsi,
            'ema': 1.2345,
            'tenkan_sen': 1.1,
            'kijun_sen': 1.2,
            'senkou_span_b': 1.3,
        }
        values.update(overrides)
        return IndicatorSnapshot(**values)
    return _make


@pytest.fixture
def mock_telegram_bot():
    """Telegram bot whose send_message always succeeds."""
    bot = Mock()
    bot.send_message = AsyncMock(return_value=Mock(message_id=1))
    return bot


@pytest.fixture
def budget():
    return AlertBudget(max_count=800)


@pytest.fixture
def notifier(mock_telegram_bot, budget):
    return TelegramNotifier(
        bot_token='test_token',
        chat_id='test_chat_id',
        budget=budget,
        bot=mock_telegram_bot
    )


def make_response(status: int = 200, payload: Any = None, json_error: Exception = None):
    """Mock aiohttp response."""
    response = Mock()
    response.status = status
    if json_error is not None:
        response.json = AsyncMock(side_effect=json_error)
    else:
        response.json = AsyncMock(return_value=payload)
    return response


class FakeSession:
    """Stands in for aiohttp.ClientSession, routing by endpoint name."""

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.calls = []
        self.closed = False

    def get(self, url, params=None):
        self.calls.append((url, params))
        endpoint = url.rsplit('/', 1)[-1]
        result = self.routes[endpoint]
        if isinstance(result, Exception):
            raise result
        context = MagicMock()
        context.__aenter__.return_value = result
        context.__aexit__.return_value = False
        return context

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    """Factory for FakeSession instances."""
    return FakeSession


@pytest.fixture
def response():
    """Factory for mock responses."""
    return make_response


@pytest.fixture
def mock_client():
    """Indicator client with per-symbol canned snapshots."""
    client = Mock()
    client.snapshots = {}

    async def _snapshot(symbol):
        return client.snapshots.get(symbol, IndicatorSnapshot(symbol=symbol))

    async def _rsi_snapshot(symbol):
        full = client.snapshots.get(symbol, IndicatorSnapshot(symbol=symbol))
        return IndicatorSnapshot(symbol=symbol, rsi=full.rsi)

    client.fetch_snapshot = AsyncMock(side_effect=_snapshot)
    client.fetch_rsi_snapshot = AsyncMock(side_effect=_rsi_snapshot)
    client.close = AsyncMock()
    client.health_check = Mock(return_value={'requests': 0, 'failures': 0})
    return client
