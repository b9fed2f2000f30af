"""
Helper functions for the forex RSI alert bot.
Contains utilities for configuration, environment access, logging and time formatting.
"""

import os
import re
import json
import yaml
from datetime import datetime
from typing import Dict, Any, List, Optional
import pytz
import logging
from pathlib import Path
from dotenv import load_dotenv

# Auto-load .env file when this module is imported
load_dotenv()


DEFAULT_MAX_DAILY_ALERTS = 800
DEFAULT_TIMEZONE = 'Asia/Kolkata'

FOREX_PAIRS = [
    "AUDCAD", "AUDCHF", "AUDJPY", "AUDNZD", "AUDUSD",
    "CADCHF", "CADJPY", "CHFJPY", "EURAUD", "EURCAD",
    "EURCHF", "EURGBP", "EURJPY", "EURNZD", "EURUSD",
    "GBPAUD", "GBPCAD", "GBPCHF", "GBPJPY", "GBPNZD",
    "GBPUSD", "NZDCAD", "NZDCHF", "NZDJPY", "NZDUSD",
    "USDCAD", "USDCHF", "USDJPY",
]


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file

    Returns:
        Dict: Configuration dictionary (empty if the file is missing or invalid)
    """
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
        return config if isinstance(config, dict) else {}
    except FileNotFoundError:
        logging.error(f"Config file not found: {config_path}")
        return {}
    except yaml.YAMLError as e:
        logging.error(f"Error parsing YAML config: {e}")
        return {}


def load_symbols(symbols_path: str = "config/symbols.json") -> List[str]:
    """
    Load tracked currency pairs from JSON file.

    Args:
        symbols_path: Path to symbols file

    Returns:
        List[str]: Upper-cased pairs, or the built-in forex list if none configured
    """
    try:
        with open(symbols_path, 'r', encoding='utf-8') as f:
            symbols = json.load(f)
    except FileNotFoundError:
        logging.warning(f"Symbols file not found: {symbols_path}, using built-in pairs")
        return list(FOREX_PAIRS)
    except json.JSONDecodeError as e:
        logging.error(f"Error parsing JSON symbols file: {e}")
        return list(FOREX_PAIRS)

    pairs = symbols.get('universe', {}).get('forex', []) if isinstance(symbols, dict) else []
    cleaned = clean_symbol_list(pairs)

    if not cleaned:
        logging.warning(f"No forex pairs in {symbols_path}, using built-in pairs")
        return list(FOREX_PAIRS)

    return cleaned


def clean_symbol_list(symbols: List[Any]) -> List[str]:
    """Upper-case, strip and de-duplicate symbols, keeping their order."""
    seen = set()
    cleaned = []
    for symbol in symbols:
        if not isinstance(symbol, str):
            continue
        symbol = symbol.strip().upper()
        if symbol and symbol not in seen:
            seen.add(symbol)
            cleaned.append(symbol)
    return cleaned


def get_env_variable(key: str, default: Any = None, required: bool = False) -> Any:
    """
    Get environment variable with optional default and validation.

    Args:
        key: Environment variable name
        default: Default value if not found
        required: Whether the variable is required

    Returns:
        Any: Environment variable value

    Raises:
        ValueError: If required variable is missing or empty
    """
    value = os.getenv(key, default)

    if required and (value is None or str(value).strip() == ''):
        raise ValueError(f"Required environment variable '{key}' not found")

    return value


def parse_alert_ceiling(raw: Optional[str], default: int = DEFAULT_MAX_DAILY_ALERTS) -> int:
    """
    Parse the daily alert ceiling.

    Leading integer text is accepted ("150 alerts" -> 150). Unset, non-numeric
    and non-positive values fall back to the default.
    """
    if raw is None:
        return default

    match = re.match(r'\s*([+-]?\d+)', str(raw))
    if not match:
        return default

    value = int(match.group(1))
    return value if value > 0 else default


def setup_logging(config: Dict[str, Any]) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        config: Configuration dictionary

    Returns:
        logging.Logger: Configured logger
    """
    log_config = config.get('logging', {})

    log_file = log_config.get('file', 'log/main.log')
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO),
        format=log_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler()
        ]
    )

    logger = logging.getLogger('forex_rsi_alert')
    return logger


def get_timezone(name: Optional[str] = None) -> pytz.BaseTzInfo:
    """Get timezone object, defaulting to India Standard Time."""
    return pytz.timezone(name or DEFAULT_TIMEZONE)


def now_in_timezone(name: Optional[str] = None) -> datetime:
    """Current wall-clock time in the named timezone."""
    return datetime.now(get_timezone(name))


def format_display_time(moment: datetime, timezone_name: Optional[str] = None) -> str:
    """
    Render a timestamp for humans, e.g. '17/10/2026, 03:05:12 pm'.

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)

    local = moment.astimezone(get_timezone(timezone_name))
    return local.strftime('%d/%m/%Y, %I:%M:%S ') + local.strftime('%p').lower()
