# app/infra/logging_config.py
import logging
import sys
import json
from datetime import datetime, timezone

# Extras attached by LogContext, in display order
CONTEXT_FIELDS = ("user_id", "chat_id", "step", "request_id")
_MASKED_FIELDS = {"user_id", "chat_id"}


def mask_id(value: str) -> str:
    """Mask a user/chat identifier for console output: ``1234567890`` → ``1234****90``"""
    value = str(value)
    if len(value) <= 6:
        return value
    return value[:4] + "****" + value[-2:]


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for production log shipping"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored human-readable format for development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        context_parts = []
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                continue
            value = getattr(record, name)
            if name in _MASKED_FIELDS:
                value = mask_id(value)
            context_parts.append(f"{name.split('_')[0]}={value}")
        context = f" [{' '.join(context_parts)}]" if context_parts else ""

        line = (
            f"{color}[{timestamp}] {record.levelname:8}{reset} "
            f"{record.name}{context} - {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", use_json: bool = False) -> None:
    """
    Configure application logging

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: If True, use JSON format (for production)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(JSONFormatter() if use_json else ConsoleFormatter())
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.info("Logging configured: level=%s, json=%s", level, use_json)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """Logger wrapper that attaches user/chat/step/request extras to every record"""

    def __init__(
            self,
            logger: logging.Logger,
            user_id: str | None = None,
            chat_id: str | None = None,
            step: str | None = None,
            request_id: str | None = None,
    ):
        self.logger = logger
        self.context = {
            k: v for k, v in {
                "user_id": user_id,
                "chat_id": chat_id,
                "step": step,
                "request_id": request_id,
            }.items() if v is not None
        }

    def bind(self, **context) -> "LogContext":
        """Copy with extra context fields (e.g. the step after a transition)"""
        merged = {**self.context, **{k: v for k, v in context.items() if v is not None}}
        return LogContext(self.logger, **merged)

    def _log(self, level: int, msg: str, *args, **kwargs):
        extra = kwargs.pop("extra", {})
        extra.update(self.context)
        self.logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, *args, **kwargs)
