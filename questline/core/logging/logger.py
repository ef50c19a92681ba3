"""
Questline Logging Subsystem (2025)

Purpose
-------
Provide an async-safe logging subsystem that is the single source of truth
for engine observability:

- Structured JSON logs for aggregation and analysis.
- LogContext-based propagation of user/operation context via ContextVars.
- Correlation IDs so one login or quest submission can be traced end to end.
- Async-safe logging via a QueueHandler + QueueListener architecture.
- Bounded log queue with graceful degradation on overload.
- Console handler (JSON in production, colored text in development) plus a
  small daily-rotating JSON file as a local backup.

Responsibilities
----------------
- Initialize and configure the global logging stack.
- Enrich all log records with contextual fields:
  - user_id, trigger
  - correlation_id
  - component, operation
- Provide helper APIs:
  - get_logger()
  - LogContext (sync + async context manager)
  - set_log_context() / clear_log_context()
  - get_logging_health()

Design Decisions
----------------
- JSONFormatter is the canonical representation.
- Extra fields passed via `logger.info("msg", extra={...})` are merged into JSON.
- ContextFilter reads a ContextVar so concurrent asyncio tasks never see each
  other's user context.

Dependencies
------------
- questline.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from questline.core.config.config import Config


# ============================================================================
# Operation Context (ContextVars)
# ============================================================================

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


# ============================================================================
# Config / Environment
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Configuration for the logging subsystem."""

    CONSOLE_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-36s | %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    DAILY_BASENAME: str = "questline_daily.json.log"
    DAILY_BACKUP_COUNT: int = 1

    QUEUE_MAX_SIZE: int = 10_000

    @property
    def environment(self) -> str:
        return str(Config.ENVIRONMENT).lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def logs_dir(self) -> Path:
        return Path(Config.LOGS_DIR).resolve()

    @property
    def log_level(self) -> int:
        return getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        if Config.LOG_JSON is None:
            return self.is_production
        return bool(Config.LOG_JSON)

    @property
    def use_colors(self) -> bool:
        if self.use_json:
            return False
        return Config.LOG_COLORS and sys.stdout.isatty()


LOGGER_CONFIG = LoggerConfig()


# ============================================================================
# Logging Metrics / Health
# ============================================================================


@dataclass(slots=True)
class LoggingMetrics:
    records_enqueued: int = 0
    records_dropped: int = 0
    listener_errors: int = 0


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


_logging_metrics = LoggingMetrics()
_log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_queue_listener: Optional[QueueListener] = None


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()

        record.user_id = context.get("user_id", "N/A")
        record.trigger = context.get("trigger", "N/A")
        record.correlation_id = context.get("correlation_id", "N/A")
        record.component = context.get("component") or record.name.split(".", 1)[0]
        if not hasattr(record, "operation"):
            record.operation = context.get("operation", "N/A")

        return True


class ColoredFormatter(logging.Formatter):
    COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[94m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[91m\033[1m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        original = record.levelname
        prefix = self.COLORS.get(original)
        if prefix:
            record.levelname = f"{prefix}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    STANDARD_ATTRS = frozenset(
        {
            "name", "msg", "args", "levelname", "levelno", "pathname",
            "filename", "module", "exc_info", "exc_text", "stack_info",
            "lineno", "funcName", "created", "msecs", "relativeCreated",
            "thread", "threadName", "processName", "process", "taskName",
            "message", "asctime",
        }
    )

    CONTEXT_ATTRS = frozenset(
        {"user_id", "trigger", "correlation_id", "component", "operation"}
    )

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in self.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "N/A"):
                log_data[attr] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {
            key: val
            for key, val in record.__dict__.items()
            if key not in self.STANDARD_ATTRS
            and key not in self.CONTEXT_ATTRS
            and not key.startswith("_")
        }
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, ensure_ascii=False, default=str)


# ============================================================================
# Queue Handler & Listener
# ============================================================================


class QuestlineQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _logging_metrics.records_enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _logging_metrics.records_dropped += 1
            sys.stderr.write("Questline logging queue full; dropping log record.\n")


class QuestlineQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _logging_metrics.listener_errors += 1
        sys.stderr.write("Questline logging handler error while processing record.\n")


# ============================================================================
# Global Setup
# ============================================================================


def _build_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGER_CONFIG.log_level)

    if LOGGER_CONFIG.use_json:
        handler.setFormatter(JSONFormatter())
    elif LOGGER_CONFIG.use_colors:
        handler.setFormatter(
            ColoredFormatter(fmt=LOGGER_CONFIG.CONSOLE_FORMAT, datefmt=LOGGER_CONFIG.DATE_FORMAT)
        )
    else:
        handler.setFormatter(
            logging.Formatter(fmt=LOGGER_CONFIG.CONSOLE_FORMAT, datefmt=LOGGER_CONFIG.DATE_FORMAT)
        )
    return handler


def _build_daily_file_handler() -> logging.Handler:
    LOGGER_CONFIG.logs_dir.mkdir(parents=True, exist_ok=True)

    handler = TimedRotatingFileHandler(
        filename=str(LOGGER_CONFIG.logs_dir / LOGGER_CONFIG.DAILY_BASENAME),
        when="midnight",
        interval=1,
        backupCount=LOGGER_CONFIG.DAILY_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(LOGGER_CONFIG.log_level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> None:
    global _queue_listener, _logging_metrics, _log_queue

    root = logging.getLogger()
    if getattr(root, "_questline_logging_initialized", False):
        return

    _logging_metrics = LoggingMetrics()

    root.setLevel(LOGGER_CONFIG.log_level)
    root.handlers.clear()
    root.filters.clear()

    _log_queue = queue.Queue(LOGGER_CONFIG.QUEUE_MAX_SIZE)
    _queue_listener = QuestlineQueueListener(
        _log_queue,
        _build_console_handler(),
        _build_daily_file_handler(),
        respect_handler_level=True,
    )
    _queue_listener.start()

    queue_handler = QuestlineQueueHandler(_log_queue)
    queue_handler.setLevel(LOGGER_CONFIG.log_level)
    # Context must be captured on the producing task, before the record is queued.
    queue_handler.addFilter(ContextFilter())
    root.addHandler(queue_handler)

    for noisy in ("asyncio", "redis", "testcontainers", "urllib3", "docker"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, "_questline_logging_initialized", True)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": LOGGER_CONFIG.environment,
            "log_level": logging.getLevelName(LOGGER_CONFIG.log_level),
            "json": LOGGER_CONFIG.use_json,
            "logs_dir": str(LOGGER_CONFIG.logs_dir),
        },
    )


def shutdown_logging() -> None:
    global _queue_listener, _log_queue

    root = logging.getLogger()
    if not getattr(root, "_questline_logging_initialized", False):
        return

    logging.getLogger(__name__).info("Shutting down logging subsystem.")

    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None

    for handler in list(root.handlers):
        handler.flush()
        handler.close()
        root.removeHandler(handler)

    setattr(root, "_questline_logging_initialized", False)
    _log_queue = None


def get_logging_health() -> LoggingHealth:
    initialized = bool(getattr(logging.getLogger(), "_questline_logging_initialized", False))
    queue_size = _log_queue.qsize() if _log_queue is not None else 0
    max_size = _log_queue.maxsize if _log_queue is not None else 0

    return LoggingHealth(
        initialized=initialized,
        queue_size=queue_size,
        queue_max_size=max_size,
        records_enqueued=_logging_metrics.records_enqueued,
        records_dropped=_logging_metrics.records_dropped,
        listener_errors=_logging_metrics.listener_errors,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def _new_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


class LogContext:
    """
    Bind user/operation context to every log line emitted inside the block.

    >>> async with LogContext(user_id="u-42", trigger="quest_submit"):
    ...     await progression.on_quest_submit("u-42", "budget-basics", attempt)
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        trigger: Optional[str] = None,
        component: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context: Dict[str, Any] = {
            "user_id": str(user_id) if user_id is not None else "N/A",
            "trigger": trigger or "N/A",
            "component": component,
            "operation": operation or "N/A",
            "correlation_id": correlation_id or _new_correlation_id(),
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    user_id: Optional[str] = None,
    trigger: Optional[str] = None,
    component: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra: Any,
) -> None:
    current = dict(_log_context.get())

    if user_id is not None:
        current["user_id"] = str(user_id)
    if trigger is not None:
        current["trigger"] = trigger
    if component is not None:
        current["component"] = component
    if operation is not None:
        current["operation"] = operation
    if correlation_id:
        current["correlation_id"] = correlation_id

    current.update(extra)
    _log_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})


# Initialize logging automatically
setup_logging()
