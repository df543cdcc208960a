"""Ambient context: which span is active for the current thread or task.

The current :class:`Context` lives in a :class:`~contextvars.ContextVar`, so
each OS thread and each asyncio task sees its own value and no locking is
needed. Contexts are immutable; activating one swaps the variable and hands
back a :class:`ContextGuard` holding the previous value.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from types import MappingProxyType, TracebackType
from typing import Any, ClassVar, TypeVar

from tracewell._errors import ContextGuardError
from tracewell._span import INVALID_SPAN, Span

T = TypeVar("T")

_EMPTY_VALUES: Mapping[object, Any] = MappingProxyType({})


class Context:
    """Immutable snapshot of ambient state, including the active span."""

    __slots__ = ("_span", "_values")

    _EMPTY: ClassVar[Context]

    def __init__(
        self,
        span: Span | None = None,
        values: Mapping[object, Any] | None = None,
    ) -> None:
        self._span = span
        self._values = MappingProxyType(dict(values)) if values else _EMPTY_VALUES

    @classmethod
    def empty(cls) -> Context:
        """The context a fresh thread starts with: no span, no values."""
        return cls._EMPTY

    @classmethod
    def current(cls) -> Context:
        """Return the context active for the calling thread or task."""
        return _current_context.get()

    @classmethod
    def current_with_span(cls, span: Span) -> Context:
        """Derive a context from the current one with ``span`` active."""
        return _current_context.get().with_span(span)

    @property
    def span(self) -> Span:
        """The active span, or the invalid span when none is set."""
        return self._span if self._span is not None else INVALID_SPAN

    @property
    def has_active_span(self) -> bool:
        return self._span is not None and self._span.span_context.is_valid

    def with_span(self, span: Span) -> Context:
        return Context(span, self._values)

    def with_value(self, key: object, value: Any) -> Context:
        values = dict(self._values)
        values[key] = value
        return Context(self._span, values)

    def get_value(self, key: object, default: Any = None) -> Any:
        return self._values.get(key, default)

    def attach(self) -> ContextGuard:
        """Make this context current until the returned guard is released."""
        prior = _current_context.get()
        _current_context.set(self)
        return ContextGuard(prior)

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``fn`` with this context attached, restoring afterwards."""
        with self.attach():
            return fn(*args, **kwargs)

    def __repr__(self) -> str:
        return f"Context(span={self._span!r}, values={dict(self._values)!r})"


Context._EMPTY = Context()

_current_context: ContextVar[Context] = ContextVar(
    "tracewell_current_context", default=Context._EMPTY
)


class ContextGuard:
    """Single-use token that restores the context captured at attach time.

    Release restores *the captured value*, not "whatever was below the top",
    so a guard released out of nesting order still puts back exactly what it
    saw. Releasing twice, or from another thread, raises
    :class:`ContextGuardError` and leaves the current context untouched.
    """

    __slots__ = ("_prior", "_thread_id", "_released")

    def __init__(self, prior: Context) -> None:
        self._prior = prior
        self._thread_id = threading.get_ident()
        self._released = False

    @property
    def prior(self) -> Context:
        return self._prior

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            raise ContextGuardError("context guard released twice")
        if threading.get_ident() != self._thread_id:
            raise ContextGuardError(
                "context guard released from a different thread",
                {"attached_on": self._thread_id, "released_on": threading.get_ident()},
            )
        self._released = True
        _current_context.set(self._prior)

    def __enter__(self) -> ContextGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.release()
