"""
Structured logging module using structlog.

Log records from structlog and from the standard library (paho, pyserial)
share one handler on stdout, rendered as JSON lines or, for development,
as colored console output.

Configuration via environment variables, read by p1telegram.config:
  - P1_LOGLEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
  - P1_LOG_FORMAT: JSON or TEXT (default: JSON)
  - P1_STATS_LOG_INTERVAL: seconds between statistics records, 0 disables (default: 300)

        This program is free software: you can redistribute it and/or modify
        it under the terms of the GNU General Public License as published by
        the Free Software Foundation, either version 3 of the License, or
        (at your option) any later version.

        This program is distributed in the hope that it will be useful,
        but WITHOUT ANY WARRANTY; without even the implied warranty of
        MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
        GNU General Public License for more details.

        You should have received a copy of the GNU General Public License
        along with this program.  If not, see <http://www.gnu.org/licenses/>.
"""

import logging
import sys
import threading

import structlog
from structlog.typing import Processor

from p1telegram import config

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

STATISTICS = (
    "telegrams_received",
    "telegrams_parsed",
    "parse_errors",
    "checksum_errors",
    "mqtt_messages_sent",
    "mqtt_errors",
    "serial_errors",
)

def setup_logging() -> structlog.stdlib.BoundLogger:
    """Route structlog through stdlib logging and install the stdout handler."""
    level = config.loglevel.upper()
    if level not in LOG_LEVELS:
        level = "INFO"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Processor
    if config.LOG_FORMAT.upper() == "JSON":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=pre_chain
        + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    logging.getLogger("paho.mqtt").setLevel(logging.WARNING)

    return structlog.get_logger()

class StatisticsLogger:
    """
    Event counters, logged as one "statistics" record every *interval* seconds
    and once more on stop().
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, interval: int = 300):
        self._logger = logger
        self._interval = interval
        self._stats: dict[str, int] = dict.fromkeys(STATISTICS, 0)
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._interval <= 0:
            self._logger.info("statistics_logging_disabled")
            return

        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name="p1-stats", daemon=True)
        self._thread.start()
        self._logger.info("statistics_logging_started", interval_seconds=self._interval)

    def stop(self) -> None:
        self._stopped.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._logger.info("statistics", **self.snapshot())

    def increment(self, stat_name: str, count: int = 1) -> None:
        """Increment a counter; names outside STATISTICS are ignored."""
        with self._lock:
            if stat_name in self._stats:
                self._stats[stat_name] += count

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return self._stats.copy()

    def _run(self) -> None:
        # wait() returns early, with True, once stop() is called
        while not self._stopped.wait(self._interval):
            self._logger.info("statistics", **self.snapshot())

_logger: structlog.stdlib.BoundLogger | None = None
_stats_logger: StatisticsLogger | None = None

def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return the process logger, configuring logging on first use."""
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger.bind(logger=name) if name else _logger

def get_stats_logger() -> StatisticsLogger:
    """Return the process wide StatisticsLogger."""
    global _stats_logger
    if _stats_logger is None:
        _stats_logger = StatisticsLogger(get_logger(), config.STATS_LOG_INTERVAL)
    return _stats_logger
