"""
Logging setup for the storefront service.

Modules grab a logger with ``get_logger(__name__)``; ``setup_logging()`` is
called once at startup and installs a console handler that masks payment
provider credentials before anything reaches the output.
"""
import logging
import re
from typing import Pattern

from storefront.utils.settings import LOG_LEVEL

_FORMAT = "%(asctime)s | %(name)-32s | %(levelname)-8s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class SecretMaskingFilter(logging.Filter):
    """Replaces Stripe keys and webhook secrets with a placeholder."""

    PATTERNS: list[tuple[Pattern, str]] = [
        (re.compile(r"\b(sk|rk)_(live|test)_[A-Za-z0-9]+"), "[REDACTED_API_KEY]"),
        (re.compile(r"\bwhsec_[A-Za-z0-9]+"), "[REDACTED_WEBHOOK_SECRET]"),
        (re.compile(r"(v1=)[a-f0-9]{64}"), r"\1[REDACTED_SIGNATURE]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            msg = str(record.msg)
            for pattern, replacement in self.PATTERNS:
                msg = pattern.sub(replacement, msg)
            record.msg = msg

        if record.args and isinstance(record.args, tuple):
            masked = []
            for arg in record.args:
                if isinstance(arg, str):
                    for pattern, replacement in self.PATTERNS:
                        arg = pattern.sub(replacement, arg)
                masked.append(arg)
            record.args = tuple(masked)

        return True


def setup_logging(level: str | None = None) -> None:
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    handler.setLevel(log_level)
    handler.addFilter(SecretMaskingFilter())

    root = logging.getLogger()
    root.setLevel(log_level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    logging.getLogger(__name__).info(f"Logging initialized: level={logging.getLevelName(log_level)}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
