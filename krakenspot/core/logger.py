"""
Structured Logging System - structlog setup shared by the REST client.

Provides structured (console or JSON) logging with context injection,
span correlation through contextvars, and performance measurement.

Sensitive values (API keys, secrets, signatures, one-time passwords) are
masked before any renderer sees them.
"""

from __future__ import annotations

import logging
import re
import sys
import time
from pathlib import Path
from typing import Any, Dict

import structlog


# ---------------------------------------------------------------------------
# Sensitive Data Filter
# ---------------------------------------------------------------------------

_SENSITIVE_KEYS = {"api_key", "api_secret", "secret", "password", "token", "api-sign", "signature", "otp"}

# Signature and secret material is base64; redact it if it leaks into free text.
_API_SIGN_HEADER_RE = re.compile(r"(API-Sign['\"]?\s*[:=]\s*['\"]?)([A-Za-z0-9+/=]{16,})", re.IGNORECASE)
_OTP_FORM_RE = re.compile(r"(\botp=)([^&\s]+)")


def _scrub_string(s: str) -> str:
    s = _API_SIGN_HEADER_RE.sub(r"\1<redacted>", s)
    s = _OTP_FORM_RE.sub(r"\1<redacted>", s)
    return s


def _scrub_value(v: Any) -> Any:
    if isinstance(v, str):
        return _scrub_string(v)
    if isinstance(v, dict):
        return {k: _scrub_value(val) for k, val in v.items()}
    if isinstance(v, (list, tuple)):
        t = [_scrub_value(x) for x in v]
        return tuple(t) if isinstance(v, tuple) else t
    return v


def _mask_sensitive(_, __, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask sensitive data in log output (API keys, signatures, OTPs, etc.)."""
    for key in list(event_dict.keys()):
        if any(s in key.lower() for s in _SENSITIVE_KEYS):
            value = str(event_dict[key])
            if len(value) > 8:
                event_dict[key] = value[:4] + "****" + value[-4:]
            else:
                event_dict[key] = "****"
        else:
            event_dict[key] = _scrub_value(event_dict[key])
    return event_dict


# ---------------------------------------------------------------------------
# Performance Timer
# ---------------------------------------------------------------------------

class PerformanceTimer:
    """Context manager for measuring and logging operation duration."""

    def __init__(self, logger: Any, operation: str, **kwargs):
        self.logger = logger
        self.operation = operation
        self.kwargs = kwargs
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self.start_time) * 1000
        if exc_type:
            self.logger.warning(
                f"{self.operation} failed",
                duration_ms=round(self.elapsed_ms, 2),
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.kwargs
            )
        else:
            level = "warning" if self.elapsed_ms > 5000 else "debug"
            getattr(self.logger, level)(
                f"{self.operation} completed",
                duration_ms=round(self.elapsed_ms, 2),
                **self.kwargs
            )
        return False


# ---------------------------------------------------------------------------
# Logger Setup
# ---------------------------------------------------------------------------

def setup_logging(
    log_level: str = "INFO",
    log_dir: str | None = "logs",
    json_output: bool = False
) -> None:
    """
    Configure the structured logging system.

    Sets up:
    - Console output with colors (or JSON for production)
    - File output with rotation (skipped when log_dir is None)
    - Error-level separate file
    - Structured context injection
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []
    if log_dir:
        from logging.handlers import RotatingFileHandler

        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        main_handler = RotatingFileHandler(
            log_path / "krakenspot.log", encoding="utf-8",
            maxBytes=20 * 1024 * 1024, backupCount=5,
        )
        main_handler.setLevel(level)
        handlers.append(main_handler)

        error_handler = RotatingFileHandler(
            log_path / "errors.log", encoding="utf-8",
            maxBytes=10 * 1024 * 1024, backupCount=3,
        )
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    # Close and remove existing handlers to avoid duplicates and FD leaks
    for h in root_logger.handlers[:]:
        h.close()
        root_logger.removeHandler(h)
    for h in handlers:
        root_logger.addHandler(h)

    # httpx logs full request lines at INFO; keep warnings/errors only.
    for noisy in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _mask_sensitive,
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            pad_event=40,
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    for handler in root_logger.handlers:
        handler.setFormatter(formatter)


def get_logger(name: str = "krakenspot") -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance with the given name."""
    return structlog.get_logger(name)


def log_performance(logger: Any, operation: str, **kwargs) -> PerformanceTimer:
    """Create a performance timing context manager."""
    return PerformanceTimer(logger, operation, **kwargs)
