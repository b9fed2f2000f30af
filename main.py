"""
Main entry point for the Forex RSI Alert Bot.
Checks the environment and runs the scheduled monitor.
"""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from datetime import datetime
from dotenv import load_dotenv

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Load environment variables from .env file
load_dotenv()

from utils.helpers import load_config, get_env_variable, setup_logging
from jobs.realtime_monitor import ForexRSIMonitor


REQUIRED_VARS = [
    'TWELVEDATA_API_KEY',
    'TELEGRAM_BOT_TOKEN',
    'TELEGRAM_CHAT_ID',
]


def check_environment() -> bool:
    """Check if environment is properly configured."""
    missing_vars = []
    for var in REQUIRED_VARS:
        try:
            get_env_variable(var, required=True)
        except ValueError:
            missing_vars.append(var)

    if missing_vars:
        print("❌ Missing required environment variables:")
        for var in missing_vars:
            print(f"   - {var}")
        print("\nPlease check your .env file or environment configuration.")
        return False

    return True


def run_monitor(args) -> int:
    """Run the forex RSI monitor until interrupted."""
    if not check_environment():
        return 1

    config = load_config(args.config)
    if args.log_level:
        config.setdefault('logging', {})['level'] = args.log_level
    setup_logging(config)

    try:
        monitor = ForexRSIMonitor(config_path=args.config, config=config)
        asyncio.run(monitor.start())
    except KeyboardInterrupt:
        print("\n📴 Shutting down Forex RSI Monitor...")
        return 0
    except Exception as e:
        logging.error(f"Monitor failed: {str(e)}")
        return 1

    return 0


def main() -> int:
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(description='Forex RSI Alert Bot')
    parser.add_argument('--config', default='config/config.yaml',
                        help='Configuration file path')
    parser.add_argument('--log-level', default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Log level (overrides the config file)')

    args = parser.parse_args()

    print("=" * 60)
    print("🚀 FOREX RSI ALERT BOT")
    print("=" * 60)
    print(f"📅 Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"⚙️  Config: {args.config}")
    print("📡 Data Source: Twelve Data")
    print("=" * 60)

    return run_monitor(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
