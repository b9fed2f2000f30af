import pytest
import logging
import pytz
from datetime import datetime

from utils.helpers import (
    load_config, load_symbols, clean_symbol_list, get_env_variable,
    parse_alert_ceiling, setup_logging, format_display_time, get_timezone,
    FOREX_PAIRS, DEFAULT_MAX_DAILY_ALERTS
)


class TestConfigLoading:

    def test_load_config(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text('schedule:\n  timezone: "Europe/London"\n')

        assert load_config(str(config_file)) == {'schedule': {'timezone': 'Europe/London'}}

    def test_missing_config_is_empty(self, tmp_path):
        assert load_config(str(tmp_path / 'missing.yaml')) == {}

    def test_invalid_config_is_empty(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text('schedule: [unclosed\n')

        assert load_config(str(config_file)) == {}

    def test_empty_config_is_empty(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text('')

        assert load_config(str(config_file)) == {}

    def test_shipped_config_loads(self):
        from pathlib import Path
        config = load_config(str(Path(__file__).parent.parent / 'config' / 'config.yaml'))

        assert config['schedule']['timezone'] == 'Asia/Kolkata'


class TestSymbols:

    def test_load_symbols(self, tmp_path):
        symbols_file = tmp_path / 'symbols.json'
        symbols_file.write_text('{"universe": {"forex": ["eurusd", " GBPJPY ", "EURUSD", 7]}}')

        assert load_symbols(str(symbols_file)) == ['EURUSD', 'GBPJPY']

    def test_missing_file_uses_builtin_pairs(self, tmp_path):
        assert load_symbols(str(tmp_path / 'missing.json')) == FOREX_PAIRS

    def test_empty_list_uses_builtin_pairs(self, tmp_path):
        symbols_file = tmp_path / 'symbols.json'
        symbols_file.write_text('{"universe": {"forex": []}}')

        assert load_symbols(str(symbols_file)) == FOREX_PAIRS

    def test_invalid_json_uses_builtin_pairs(self, tmp_path):
        symbols_file = tmp_path / 'symbols.json'
        symbols_file.write_text('{not json')

        assert load_symbols(str(symbols_file)) == FOREX_PAIRS

    def test_builtin_pairs(self):
        assert len(FOREX_PAIRS) == 28
        assert clean_symbol_list(FOREX_PAIRS) == FOREX_PAIRS


class TestEnvironment:

    def test_get_env_variable(self, monkeypatch):
        monkeypatch.setenv('TELEGRAM_CHAT_ID', '12345')
        assert get_env_variable('TELEGRAM_CHAT_ID') == '12345'

    def test_default(self, monkeypatch):
        monkeypatch.delenv('SOME_UNSET_VARIABLE', raising=False)
        assert get_env_variable('SOME_UNSET_VARIABLE', 'fallback') == 'fallback'

    def test_required_missing(self, monkeypatch):
        monkeypatch.delenv('TELEGRAM_BOT_TOKEN', raising=False)
        with pytest.raises(ValueError, match='TELEGRAM_BOT_TOKEN'):
            get_env_variable('TELEGRAM_BOT_TOKEN', required=True)

    def test_required_blank(self, monkeypatch):
        monkeypatch.setenv('TELEGRAM_BOT_TOKEN', '   ')
        with pytest.raises(ValueError):
            get_env_variable('TELEGRAM_BOT_TOKEN', required=True)

    @pytest.mark.parametrize('raw, expected', [
        (None, DEFAULT_MAX_DAILY_ALERTS),
        ('', DEFAULT_MAX_DAILY_ALERTS),
        ('abc', DEFAULT_MAX_DAILY_ALERTS),
        ('0', DEFAULT_MAX_DAILY_ALERTS),
        ('-3', DEFAULT_MAX_DAILY_ALERTS),
        ('150', 150),
        (' 42 ', 42),
        ('25 per day', 25),
        ('12.9', 12),
    ])
    def test_parse_alert_ceiling(self, raw, expected):
        assert parse_alert_ceiling(raw) == expected


class TestFormatting:

    def test_format_display_time(self):
        moment = datetime(2026, 10, 19, 9, 35, 0, tzinfo=pytz.utc)

        assert format_display_time(moment, 'Asia/Kolkata') == '19/10/2026, 03:05:00 pm'

    def test_naive_time_is_utc(self):
        assert format_display_time(datetime(2026, 10, 19, 0, 0, 5)) == '19/10/2026, 05:30:05 am'

    def test_other_timezone(self):
        moment = datetime(2026, 10, 19, 9, 35, 0, tzinfo=pytz.utc)

        assert format_display_time(moment, 'Europe/London') == '19/10/2026, 10:35:00 am'

    def test_default_timezone(self):
        assert get_timezone().zone == 'Asia/Kolkata'


class TestLogging:

    def test_setup_logging_creates_log_dir(self, tmp_path):
        log_file = tmp_path / 'log' / 'main.log'

        logger = setup_logging({'logging': {'level': 'DEBUG', 'file': str(log_file)}})

        assert isinstance(logger, logging.Logger)
        assert log_file.parent.is_dir()
