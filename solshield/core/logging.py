"""Logging setup for the analyzer CLI.

Two output styles share one stderr handler:
  - one JSON object per line when running in CI (staging/production)
  - short colored lines for local runs

Records emitted while a contract is being analyzed carry its name; see
``contract_context``.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator


# Record attributes copied into JSON output when a caller sets them via ``extra=``
_EXTRA_FIELDS = ("contract", "rule_id", "artifact")

_MACHINE_ENVS = frozenset({"staging", "production"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JSONFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (key, getattr(record, key)) for key in _EXTRA_FIELDS if hasattr(record, key)
        )

        exc_type, exc_value, _ = record.exc_info or (None, None, None)
        if exc_value is not None:
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Colored single-line output for terminals."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",       # dim
        logging.INFO: "\033[96m",       # cyan
        logging.WARNING: "\033[93m",    # yellow
        logging.ERROR: "\033[91m",      # red
        logging.CRITICAL: "\033[95m",   # magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        stamp = _utc_now().strftime("%H:%M:%S")
        level = f"{color}{record.levelname:<8}{self.RESET}"

        message = record.getMessage()
        contract = getattr(record, "contract", None)
        if contract:
            message = f"[{contract}] {message}"

        text = f"{stamp} {level} {record.name}: {message}"
        if record.exc_info and record.exc_info[1] is not None:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def setup_logging(env: str = "development", log_level: str = "WARNING") -> None:
    """Install a single stderr handler on the root logger.

    stdout is left for reports and findings.

    Args:
        env: development, staging or production; the latter two log JSON
        log_level: level name; unknown names fall back to WARNING
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if env in _MACHINE_ENVS else DevFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # solcx reports every compiler install at INFO
    logging.getLogger("solcx").setLevel(logging.WARNING)


class ContractLogFilter(logging.Filter):
    """Stamp records with the name of the contract being analyzed."""

    def __init__(self, contract: str = "") -> None:
        super().__init__()
        self.contract = contract

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "contract", None):
            record.contract = self.contract  # type: ignore[attr-defined]
        return True


@contextmanager
def contract_context(contract: str) -> Iterator[None]:
    """Tag every record emitted while analyzing ``contract``."""
    log_filter = ContractLogFilter(contract)
    handlers = list(logging.getLogger().handlers)
    for handler in handlers:
        handler.addFilter(log_filter)
    try:
        yield
    finally:
        for handler in handlers:
            handler.removeFilter(log_filter)
