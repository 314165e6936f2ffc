"""
Database connection monitor: supervised reconnection with capped backoff.

Background worker that probes the store every ``DB_MONITOR_POLL_SECONDS``.
When a probe fails it retries with exponential backoff, up to
``DB_RECONNECT_MAX_ATTEMPTS`` times. Recovering returns the monitor to
CONNECTED; running out of attempts moves it to the terminal FAILED state and
stops the worker. The health endpoint reports the state so callers can tell a
transient disconnect (RECONNECTING) from a dead store (FAILED).
"""

import asyncio
import contextlib
import enum
import logging
import os
from typing import Awaitable, Callable, Optional

from sqlalchemy import text

from matching.database import db

logger = logging.getLogger(__name__)

# How often a healthy connection is probed (seconds)
POLL_INTERVAL_SECONDS = float(os.getenv("DB_MONITOR_POLL_SECONDS", "30"))

# Reconnect backoff: base delay doubles per attempt, capped at MAX_DELAY
RECONNECT_BASE_DELAY_SECONDS = float(os.getenv("DB_RECONNECT_BASE_DELAY", "5"))
RECONNECT_MAX_DELAY_SECONDS = float(os.getenv("DB_RECONNECT_MAX_DELAY", "60"))
RECONNECT_MAX_ATTEMPTS = int(os.getenv("DB_RECONNECT_MAX_ATTEMPTS", "5"))


class ConnectionState(str, enum.Enum):
    """Database connection state as seen by the monitor."""

    UNKNOWN = "unknown"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


async def _ping_database() -> None:
    """Run a trivial query; raises if the store is unreachable."""
    async with db.engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


def backoff_delay(attempt: int, base: float, maximum: float) -> float:
    """Delay before reconnect ``attempt`` (1-based): base * 2^(attempt-1), capped."""
    return min(base * (2 ** (attempt - 1)), maximum)


class DatabaseConnectionMonitor:
    """Background service that watches the database connection."""

    def __init__(
        self,
        probe: Optional[Callable[[], Awaitable[None]]] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        base_delay: float = RECONNECT_BASE_DELAY_SECONDS,
        max_delay: float = RECONNECT_MAX_DELAY_SECONDS,
        max_attempts: int = RECONNECT_MAX_ATTEMPTS,
    ):
        self._probe = probe or _ping_database
        self.poll_interval = poll_interval
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts

        self.state = ConnectionState.UNKNOWN
        self.reconnect_attempts = 0
        self.last_error: Optional[str] = None

        self._worker_task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    def start(self) -> None:
        """Start the background monitor."""
        if self._worker_task is None or self._worker_task.done():
            self._stop_event.clear()
            self._worker_task = asyncio.create_task(self._poll_loop())
            logger.info("Database connection monitor started")

    async def stop(self) -> None:
        """Stop the background monitor and wait for the worker to finish."""
        self._stop_event.set()
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker_task
            logger.info("Database connection monitor stopped")

    def status(self) -> dict:
        """Snapshot of the connection state for health reporting."""
        return {
            "state": self.state.value,
            "reconnect_attempts": self.reconnect_attempts,
            "max_attempts": self.max_attempts,
            "last_error": self.last_error,
        }

    async def check(self) -> bool:
        """Probe the store once; records the error and returns False on failure."""
        try:
            await self._probe()
        except Exception as e:
            self.last_error = str(e)
            return False
        return True

    async def _wait(self, seconds: float) -> bool:
        """Sleep for ``seconds`` or until stopped. Returns True if stopped."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _poll_loop(self) -> None:
        """Main loop: probe, reconnect on failure, sleep. Ends on stop or FAILED."""
        while not self._stop_event.is_set():
            if await self.check():
                if self.state != ConnectionState.CONNECTED:
                    logger.info("Database connection established")
                self.state = ConnectionState.CONNECTED
                self.reconnect_attempts = 0
            elif not await self.reconnect():
                break

            if await self._wait(self.poll_interval):
                break

    async def reconnect(self) -> bool:
        """
        Retry the connection with exponential backoff.

        Returns:
            True once a probe succeeds; False after ``max_attempts`` failures
            (state FAILED) or if the monitor is stopped meanwhile
        """
        self.state = ConnectionState.RECONNECTING
        logger.warning(f"Database connection lost: {self.last_error}")

        for attempt in range(1, self.max_attempts + 1):
            self.reconnect_attempts = attempt
            delay = backoff_delay(attempt, self.base_delay, self.max_delay)
            logger.warning(
                f"Reconnecting to database in {delay:.1f}s "
                f"(attempt {attempt}/{self.max_attempts})"
            )
            if await self._wait(delay):
                return False

            if await self.check():
                logger.info(f"Database connection restored after {attempt} attempt(s)")
                self.state = ConnectionState.CONNECTED
                self.reconnect_attempts = 0
                self.last_error = None
                return True

        self.state = ConnectionState.FAILED
        logger.critical(
            f"Database unreachable after {self.max_attempts} reconnect attempts; "
            f"giving up: {self.last_error}"
        )
        return False


# Global monitor instance
_connection_monitor = DatabaseConnectionMonitor()


def get_connection_monitor() -> DatabaseConnectionMonitor:
    """Get the global database connection monitor instance."""
    return _connection_monitor
