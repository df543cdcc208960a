"""@trace decorator for wrapping functions in spans."""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from typing import Any, TypeVar, overload

from tracewell._context import Context
from tracewell._futures import with_context
from tracewell._types import SpanKind

F = TypeVar("F", bound=Callable[..., Any])


@overload
def trace(func: F) -> F: ...


@overload
def trace(
    *,
    name: str | None = None,
    kind: SpanKind = SpanKind.INTERNAL,
) -> Callable[[F], F]: ...


def trace(
    func: F | None = None,
    *,
    name: str | None = None,
    kind: SpanKind = SpanKind.INTERNAL,
) -> F | Callable[[F], F]:
    """Decorator that runs each call of a function inside an active span.

    Works on plain and ``async`` functions. For coroutines the span is
    re-activated on every resumption, so concurrent calls never see each
    other's spans::

        @trace
        def handle_request(): ...

        @trace(name="fetch", kind=SpanKind.CLIENT)
        async def fetch(url): ...
    """

    def decorator(fn: F) -> F:
        span_name = name or fn.__qualname__
        scope = fn.__module__

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                from tracewell._sdk import get_tracer

                tracer = get_tracer(scope)
                span = tracer.span_builder(span_name).with_kind(kind).start(tracer)
                try:
                    return await with_context(
                        fn(*args, **kwargs), Context.current_with_span(span)
                    )
                except Exception as exc:
                    span.record_exception(exc)
                    raise
                finally:
                    span.end()

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            from tracewell._sdk import get_tracer

            with get_tracer(scope).start_as_current_span(span_name, kind=kind):
                return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    if func is not None:
        return decorator(func)
    return decorator
