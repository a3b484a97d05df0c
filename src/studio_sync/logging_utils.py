"""Logging helpers: Rich console setup and API-key redaction."""

import logging

from rich.console import Console
from rich.logging import RichHandler

REDACTED = "***REDACTED***"


def redact_key(key: str | None) -> str:
    """Redact an API key for display (shows first 4 and last 4 chars)."""
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return key[:4] + "*" * (len(key) - 8) + key[-4:]


class KeyRedactionFilter(logging.Filter):
    """Logging filter that replaces the remote API key with ``***REDACTED***``."""

    def __init__(self, key: str) -> None:
        super().__init__()
        self._key = key

    def _scrub(self, value: object) -> object:
        text = str(value)
        if self._key in text:
            return text.replace(self._key, REDACTED)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._key:
            return True
        record.msg = self._scrub(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self._scrub(a) for a in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: self._scrub(v) for k, v in record.args.items()}
        return True


def setup_logging(
    verbose: bool = False,
    console: Console | None = None,
    redact: str | None = None,
) -> None:
    """Configure root logging with a RichHandler.

    Args:
        verbose: DEBUG level when True, WARNING otherwise
        console: Console to render on (defaults to a new stderr console)
        redact: Secret to mask in every emitted record
    """
    handler = RichHandler(console=console or Console(stderr=True), rich_tracebacks=True)
    if redact:
        handler.addFilter(KeyRedactionFilter(redact))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
