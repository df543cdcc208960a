"""Error hierarchy and the global error-handler hook.

Instrumentation must never break the host program, so failures raised by
pluggable collaborators (samplers, id generators, processors, exporters) are
routed to a handler instead of propagating.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger("tracewell.errors")

ErrorHandler = Callable[[BaseException], None]


class TracewellError(Exception):
    """Base exception for all tracewell errors."""

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ContextGuardError(TracewellError):
    """Raised when a context guard is released twice or from the wrong thread."""


class ExportError(TracewellError):
    """Raised by exporters when a batch cannot be delivered."""


def _log_error(error: BaseException) -> None:
    logger.warning("tracewell error: %s", error, exc_info=error)


_handler: ErrorHandler = _log_error
_handler_lock = threading.Lock()


def set_error_handler(handler: ErrorHandler | None) -> None:
    """Install a callback for collaborator failures. ``None`` restores logging."""
    global _handler  # noqa: PLW0603
    with _handler_lock:
        _handler = handler if handler is not None else _log_error


def handle_error(error: BaseException) -> None:
    """Report a non-fatal error. Never raises."""
    handler = _handler
    try:
        handler(error)
    except Exception:  # noqa: BLE001
        logger.debug("error handler failed while reporting %r", error, exc_info=True)
