"""
Aura Frog Diagnostic Logging

Wires the stdlib logging tree for hook and CLI processes. Diagnostics go
to stderr and, optionally, to .claude/logs/aura-frog.log; stdout stays
reserved for user-facing notices.

Backend error bodies can echo request headers, so every handler carries
a redaction filter that strips API keys and tokens before anything is
written.
"""
from __future__ import annotations

import logging
import re
import sys
from pathlib import Path
from typing import List, Optional, Pattern, Tuple

from aurafrog.config.models import AuraFrogConfig

LOG_FILENAME = "aura-frog.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def _sanitize_for_log(text: str) -> str:
    """Escape control characters that would break line-oriented logs."""
    return (
        text
        .replace("\x00", "\\x00")
        .replace("\r", "\\r")
        .replace("\x1b", "\\x1b")
    )


class LogRedactor:
    """Redacts credentials from diagnostic messages."""

    REDACTION_PATTERNS: List[Tuple[str, Pattern, str]] = [
        ("api_key", re.compile(
            r'(?i)(api[_-]?key|apikey|secret[_-]?key)[\s:=]+[\'\"]?([A-Za-z0-9_.-]{16,})[\'\"]?'
        ), r'\1=***REDACTED***'),

        ("bearer", re.compile(
            r'(?i)(bearer)\s+([A-Za-z0-9_.-]{20,})'
        ), r'\1 ***REDACTED***'),

        ("jwt", re.compile(
            r'(eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*)'
        ), '***JWT_REDACTED***'),

        ("supabase_key", re.compile(
            r'(sb_(?:secret|publishable)_[A-Za-z0-9_-]{16,})'
        ), '***SUPABASE_KEY_REDACTED***'),

        ("connection_string", re.compile(
            r'(?i)(postgres(?:ql)?|mysql|redis)://([^:]+):([^@]+)@'
        ), r'\1://\2:***REDACTED***@'),
    ]

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def redact_string(self, text: str) -> str:
        if not self.enabled or not text:
            return text
        result = text
        for _name, pattern, replacement in self.REDACTION_PATTERNS:
            result = pattern.sub(replacement, result)
        return result


class RedactingFilter(logging.Filter):
    """Logging filter that renders and redacts each record's message."""

    def __init__(self, redactor: Optional[LogRedactor] = None):
        super().__init__()
        self.redactor = redactor or LogRedactor()

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        record.msg = _sanitize_for_log(self.redactor.redact_string(message))
        record.args = None
        return True


def configure_logging(
    config: Optional[AuraFrogConfig] = None,
    *,
    log_to_file: bool = True,
    force: bool = False,
) -> logging.Logger:
    """Attach redacting stderr/file handlers to the aurafrog logger tree.

    Safe to call more than once; handlers are installed a single time
    per process unless force is set.
    """
    global _configured
    root = logging.getLogger("aurafrog")
    if _configured and not force:
        return root

    for handler in list(root.handlers):
        root.removeHandler(handler)

    debug = bool(config and config.debug)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.propagate = False
    redacting = RedactingFilter()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    stderr_handler.setFormatter(logging.Formatter("Learning: %(message)s"))
    stderr_handler.addFilter(redacting)
    root.addHandler(stderr_handler)

    if config is not None and log_to_file:
        log_path = Path(config.logs_dir) / LOG_FILENAME
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setLevel(logging.DEBUG if debug else logging.INFO)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            file_handler.addFilter(redacting)
            root.addHandler(file_handler)

    _configured = True
    return root


def reset_logging() -> None:
    """Remove installed handlers (for testing)."""
    global _configured
    root = logging.getLogger("aurafrog")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    _configured = False
