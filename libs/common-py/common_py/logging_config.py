import logging
import sys
import json
import os
import inspect
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from contextvars import ContextVar


# Define a ContextVar for correlation_id
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Header names whose values never reach a log line
SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "name": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        # Add correlation_id if present in the context
        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_record["correlation_id"] = correlation_id

        if hasattr(record, "extra_kwargs"):
            log_record.update(record.extra_kwargs)
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(log_record, default=str)


class ContextLogger:
    """Thin wrapper around stdlib logger that supports structured kwargs.

    Allows calls like `logger.info("msg", page=2, error=str(e))` by
    appending key=value pairs to the message and avoiding TypeError from
    stdlib Logger._log rejecting unknown kwargs.
    """

    def __init__(self, base: logging.Logger):
        self._base = base

    @property
    def name(self) -> str:
        return self._base.name

    def setLevel(self, level: int) -> None:
        self._base.setLevel(level)

    def isEnabledFor(self, level: int) -> bool:
        return self._base.isEnabledFor(level)

    # Internal helper to format message and split supported kwargs
    def _prepare(self, msg: str, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        std_kwargs: Dict[str, Any] = {}
        for key in ("exc_info", "stack_info", "stacklevel", "extra"):
            if key in kwargs:
                std_kwargs[key] = kwargs.pop(key)

        if kwargs:
            extra_parts = [f"{key}={value}" for key, value in kwargs.items()]
            msg = f"{msg} - {' - '.join(extra_parts)}"
            std_kwargs["extra"] = {"extra_kwargs": kwargs}  # Still pass for JSON format
        return {"msg": msg, "std": std_kwargs}

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        prepared = self._prepare(msg, kwargs)
        self._base.debug(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        prepared = self._prepare(msg, kwargs)
        self._base.info(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        prepared = self._prepare(msg, kwargs)
        self._base.warning(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        prepared = self._prepare(msg, kwargs)
        self._base.error(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        # Ensure exc_info=True unless explicitly provided
        kwargs.setdefault("exc_info", True)
        prepared = self._prepare(msg, kwargs)
        self._base.exception(prepared["msg"], *args, **prepared["std"])  # type: ignore[arg-type]


def _standardize_logger_name(name: str) -> str:
    """Ensure logger name follows `service:file` when possible.

    If the provided name already contains a colon, it is returned unchanged.
    Otherwise, attempt to infer service and file from the caller's path.
    Falls back to the original name if inference fails.
    """
    if ":" in name:
        return name

    frame = inspect.currentframe()
    if frame is None:
        return name
    caller = frame.f_back
    # Walk back until we leave this module
    while caller and caller.f_code.co_filename == __file__:
        caller = caller.f_back
    if not caller:
        return name

    p = Path(caller.f_code.co_filename).resolve()
    parts = p.parts
    file_part = p.stem if p.name != "__init__.py" else p.parent.name
    for anchor in ("services", "libs"):
        if anchor in parts:
            i = parts.index(anchor)
            if i + 2 < len(parts):
                return f"{parts[i + 1]}:{file_part}"
    return name


def configure_logging(
    service_name: str,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> ContextLogger:
    """Configure logging and return a ContextLogger that accepts kwargs.

    Level and format default to the LOG_LEVEL / LOG_FORMAT environment
    variables ("json" selects JsonFormatter).

    Usage:
        logger = configure_logging("catalog-query:pagination")
        logger.info("Fetched page", page=2)
        logger.error("Failure", error=str(e))
    """
    service_name = _standardize_logger_name(service_name)
    log_level = log_level or os.getenv("LOG_LEVEL", "INFO")
    log_format = log_format or os.getenv("LOG_FORMAT")
    if log_format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            log_format or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    base = logging.getLogger(service_name)
    # Remove any existing handlers to prevent duplicate logs in case of re-configuration
    for handler in base.handlers[:]:
        base.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    base.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    base.addHandler(handler)
    base.propagate = False  # Prevent logs from being duplicated by the root logger

    return ContextLogger(base)


def redact_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Copy of `headers` with credential-bearing values masked.

    The auth scheme (e.g. "Bearer", "OAuth") is kept so log lines still show
    which authentication a request carried.
    """
    redacted: Dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            scheme = value.split(" ", 1)[0] if " " in value else ""
            redacted[key] = f"{scheme} ***".strip()
        else:
            redacted[key] = value
    return redacted


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Sets the correlation ID for the current context."""
    correlation_id_var.set(correlation_id)
