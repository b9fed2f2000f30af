"""
Forex RSI Monitor
Drives the scheduled checks: fetch indicators, evaluate rules, send alerts.
"""

import asyncio
import logging
import signal
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import pytz
import schedule

from utils.helpers import (
    load_config, load_symbols, get_env_variable, parse_alert_ceiling,
    now_in_timezone, get_timezone
)
from utils.twelvedata_client import TwelveDataClient, TWELVEDATA_BASE_URL
from strategy.rsi_alert_rules import RSIAlertStrategy, format_startup_message
from jobs.telegram_bot import AlertBudget, TelegramNotifier, NotificationError


FULL_CHECK_JOB = 'full_check'
ZONE_CHECK_JOB = 'zone_check'
RESET_JOB = 'budget_reset'

ZONE_CHECK_EVERY_HOURS = 6
SCHEDULE_TAG = 'forex-rsi'
MAX_CATCH_UP_MINUTES = 24 * 60
JOB_ORDER = (RESET_JOB, FULL_CHECK_JOB, ZONE_CHECK_JOB)


def is_business_day(moment: datetime) -> bool:
    """Monday to Friday."""
    return moment.weekday() < 5


def due_jobs(moment: datetime) -> List[str]:
    """
    Jobs whose cron rule matches this minute.

    Hourly full check at minute 0, zone check every six hours and the
    budget reset at midnight, all on business days only. The reset comes
    first so a midnight pass starts with a fresh budget.
    """
    if not is_business_day(moment) or moment.minute != 0:
        return []

    jobs = []
    if moment.hour == 0:
        jobs.append(RESET_JOB)
    jobs.append(FULL_CHECK_JOB)
    if moment.hour % ZONE_CHECK_EVERY_HOURS == 0:
        jobs.append(ZONE_CHECK_JOB)
    return jobs


class ForexRSIMonitor:
    """
    Main monitoring application.
    Runs one pass at startup, then hourly and six-hourly passes over the
    tracked pairs, and resets the alert budget every business-day midnight.
    """

    def __init__(self, config_path: str = "config/config.yaml",
                 config: Optional[Dict[str, Any]] = None,
                 client: Optional[TwelveDataClient] = None,
                 notifier: Optional[TelegramNotifier] = None,
                 symbols: Optional[List[str]] = None):
        """
        Initialize monitor.

        Args:
            config_path: Path to configuration file
            config: Already-loaded configuration (skips reading config_path)
            client: Indicator client (built from environment if omitted)
            notifier: Telegram notifier (built from environment if omitted)
            symbols: Tracked pairs (read from the symbols file if omitted)

        Raises:
            ValueError: If a required credential is missing
        """
        self.config = config if config is not None else load_config(config_path)
        self.logger = logging.getLogger(__name__)

        schedule_config = self.config.get('schedule', {})
        self.timezone = schedule_config.get('timezone')
        self.health_check_minutes = int(schedule_config.get('health_check_minutes', 30))

        self._initialize_components(client, notifier, symbols)

        # Runtime state
        self.is_running = False
        self.pass_count = 0
        self.delivery_failures = 0
        self.last_pass_time: Optional[datetime] = None
        self._pass_tasks: Set[asyncio.Task] = set()
        self._last_tick: Optional[datetime] = None

    def _initialize_components(self, client: Optional[TwelveDataClient],
                               notifier: Optional[TelegramNotifier],
                               symbols: Optional[List[str]]):
        """Initialize all system components."""
        try:
            if client is None:
                data_config = self.config.get('data_source', {})
                client = TwelveDataClient(
                    api_key=get_env_variable('TWELVEDATA_API_KEY', required=True),
                    base_url=data_config.get('base_url', TWELVEDATA_BASE_URL)
                )
            self.client = client

            if notifier is None:
                budget = AlertBudget(parse_alert_ceiling(get_env_variable('MAX_DAILY_ALERTS')))
                notifier = TelegramNotifier(
                    bot_token=get_env_variable('TELEGRAM_BOT_TOKEN', required=True),
                    chat_id=get_env_variable('TELEGRAM_CHAT_ID', required=True),
                    budget=budget
                )
            self.notifier = notifier

            self.strategy = RSIAlertStrategy(self.config)

            if symbols is None:
                symbols = load_symbols(self.config.get('symbols_file', 'config/symbols.json'))
            self.symbols = list(symbols)

            self.logger.info(
                f"Monitoring {len(self.symbols)} pairs, "
                f"daily alert limit {self.notifier.budget.max_count}"
            )

        except Exception as e:
            self.logger.error(f"Failed to initialize components: {str(e)}")
            raise

    async def start(self):
        """Send the startup notice, run one full pass, then follow the schedule."""
        self.logger.info("Starting Forex RSI Monitor")
        self.is_running = True

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        try:
            await self.notifier.send(
                format_startup_message(self._now(), self.strategy.display_timezone)
            )
        except NotificationError as e:
            self.logger.error(f"Startup notification failed: {str(e)}")

        await self.run_full_check_pass()

        self._setup_schedules()

        try:
            await self._main_loop()
        finally:
            await self._shutdown()

    def _setup_schedules(self):
        """Setup scheduled tasks."""
        schedule.every().minute.at(":00").do(self._schedule_tick).tag(SCHEDULE_TAG)
        schedule.every(self.health_check_minutes).minutes.do(
            self._schedule_health_check
        ).tag(SCHEDULE_TAG)

        self.logger.info("Scheduled tasks configured")

    async def _main_loop(self):
        """Run pending scheduled jobs until stopped."""
        self.logger.info("Starting main monitoring loop")

        while self.is_running:
            schedule.run_pending()
            await asyncio.sleep(1)

    def _now(self) -> datetime:
        return now_in_timezone(self.timezone)

    def _schedule_tick(self):
        """Minute tick: dispatch whichever jobs are due now."""
        try:
            self.tick(self._now())
        except Exception as e:
            self.logger.error(f"Scheduled tick error: {str(e)}")

    def tick(self, now: datetime) -> List[str]:
        """
        Dispatch jobs for every minute since the previous tick.

        A late tick (stalled loop or host) still runs the jobs of the
        minutes it skipped, each job at most once.
        """
        current = now.replace(second=0, microsecond=0)
        previous = self._last_tick

        if previous is not None and current <= previous:
            return []
        self._last_tick = current

        if previous is None or current - previous <= timedelta(minutes=1):
            return self.dispatch(current)

        skipped = int((current - previous).total_seconds() // 60) - 1

        # Step in UTC so DST transitions in the schedule timezone are handled.
        tz = get_timezone(self.timezone)
        current_utc = current.astimezone(pytz.utc)

        jobs = set()
        for offset in range(min(skipped, MAX_CATCH_UP_MINUTES), 0, -1):
            jobs.update(due_jobs((current_utc - timedelta(minutes=offset)).astimezone(tz)))
        missed = sorted(jobs, key=JOB_ORDER.index)
        jobs.update(due_jobs(current))

        if missed:
            self.logger.warning(
                f"Scheduler tick late by {skipped} minute(s), catching up: {', '.join(missed)}"
            )
        else:
            self.logger.debug(f"Scheduler tick late by {skipped} minute(s), nothing missed")

        return self._run_jobs(sorted(jobs, key=JOB_ORDER.index), current)

    def _schedule_health_check(self):
        """Scheduled health check."""
        try:
            self._log_health_status()
        except Exception as e:
            self.logger.error(f"Health check error: {str(e)}")

    def dispatch(self, moment: datetime) -> List[str]:
        """Run the jobs due at this minute."""
        return self._run_jobs(due_jobs(moment), moment)

    def _run_jobs(self, jobs: List[str], moment: datetime) -> List[str]:
        """Run the reset inline and start passes as background tasks."""
        for job in jobs:
            if job == RESET_JOB:
                self.reset_budget(moment)
            elif job == FULL_CHECK_JOB:
                self._spawn(self.run_full_check_pass())
            elif job == ZONE_CHECK_JOB:
                self._spawn(self.run_zone_check_pass())

        return jobs

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        """Start a pass without waiting for it. Passes may overlap."""
        task = asyncio.ensure_future(coro)
        self._pass_tasks.add(task)
        task.add_done_callback(self._pass_tasks.discard)
        return task

    def reset_budget(self, moment: Optional[datetime] = None):
        self.notifier.budget.reset(moment or self._now())

    async def run_full_check_pass(self) -> int:
        """Full indicator check for every pair. Returns messages delivered."""
        return await self._run_pass(FULL_CHECK_JOB, self.check_and_alert)

    async def run_zone_check_pass(self) -> int:
        """RSI zone check for every pair. Returns messages delivered."""
        return await self._run_pass(ZONE_CHECK_JOB, self.check_zones)

    async def _run_pass(self, name: str,
                        step: Callable[[str], Awaitable[bool]]) -> int:
        """
        Apply step to each pair in order, one at a time.

        A failing pair is logged and skipped; it never stops the pass.
        """
        started = self._now()
        delivered = 0
        failed = 0

        for symbol in self.symbols:
            try:
                if await step(symbol):
                    delivered += 1
            except NotificationError as e:
                failed += 1
                self.logger.error(f"{name}: delivery failed for {symbol}: {str(e)}")
            except Exception as e:
                failed += 1
                self.logger.error(f"{name}: error processing {symbol}: {str(e)}")

        self.pass_count += 1
        self.delivery_failures += failed
        self.last_pass_time = self._now()

        elapsed = (self.last_pass_time - started).total_seconds()
        self.logger.info(
            f"{name} pass finished in {elapsed:.1f}s: "
            f"{delivered} sent, {failed} failed, {len(self.symbols)} pairs"
        )
        return delivered

    async def check_and_alert(self, symbol: str) -> bool:
        """Fetch all indicators for symbol and send the full-check message."""
        snapshot = await self.client.fetch_snapshot(symbol)
        alert = self.strategy.evaluate_full(snapshot, self._now())

        if alert is None:
            self.logger.debug(f"Skipping {symbol}: indicator data unavailable")
            return False

        self.logger.info(f"{alert.kind.value} for {symbol} (RSI {alert.rsi:.2f})")
        return await self.notifier.send(alert.text)

    async def check_zones(self, symbol: str) -> bool:
        """Fetch RSI for symbol and send a zone alert if it sits on a zone."""
        snapshot = await self.client.fetch_rsi_snapshot(symbol)
        alert = self.strategy.evaluate_zones(snapshot, self._now())

        if alert is None:
            return False

        self.logger.info(f"RSI zone {alert.zone} for {symbol} (RSI {alert.rsi:.2f})")
        return await self.notifier.send(alert.text)

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of runtime counters."""
        return {
            'timestamp': self._now().isoformat(),
            'pairs': len(self.symbols),
            'passes': self.pass_count,
            'passes_running': len(self._pass_tasks),
            'delivery_failures': self.delivery_failures,
            'last_pass': self.last_pass_time.isoformat() if self.last_pass_time else None,
            'notifier': self.notifier.get_status(),
            'client': self.client.health_check(),
        }

    def _log_health_status(self):
        """Log system health status."""
        self.logger.info(f"Health Status: {self.get_status()}")

    def stop(self):
        """Ask the main loop to exit."""
        self.is_running = False

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        self.logger.info(f"Received signal {signum}, shutting down...")
        self.stop()

    async def _shutdown(self):
        """Graceful shutdown of all components."""
        self.logger.info("Shutting down Forex RSI Monitor")
        self.is_running = False

        schedule.clear(SCHEDULE_TAG)

        for task in list(self._pass_tasks):
            task.cancel()
        if self._pass_tasks:
            await asyncio.gather(*self._pass_tasks, return_exceptions=True)

        await self.client.close()

        self.logger.info("Shutdown completed")
