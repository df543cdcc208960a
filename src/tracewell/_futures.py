"""Bind a context to a deferred computation, one resumption step at a time.

Holding a guard across an ``await`` is wrong: the scope stays open while the
coroutine is suspended, so unrelated code scheduled in between sees the wrong
span, and if the coroutine resumes on another thread the guard is released
where it was never attached. :func:`with_context` instead attaches the
computation's context right before each step and releases it before control
is handed back to the scheduler. The computation starts in the bound context;
whatever it activates itself is carried over to its next step::

    async def handler() -> None:
        span = tracer.start("handle")
        try:
            await with_context(fetch_rows(), Context.current_with_span(span))
        finally:
            span.end()
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Generator
from typing import Any, Generic, TypeVar, overload

from tracewell._context import Context

T = TypeVar("T")
Y = TypeVar("Y")
S = TypeVar("S")
R = TypeVar("R")


class ContextAwaitable(Generic[T]):
    """Awaitable that drives ``awaitable`` with ``context`` attached per step."""

    __slots__ = ("_awaitable", "_context")

    def __init__(self, awaitable: Awaitable[T], context: Context) -> None:
        self._awaitable = awaitable
        self._context = context

    @property
    def context(self) -> Context:
        return self._context

    def __await__(self) -> Generator[Any, Any, T]:
        iterator = self._awaitable.__await__()
        # Spans the computation activates itself stay active across its awaits.
        current = self._context
        send_value: Any = None
        error: BaseException | None = None
        while True:
            guard = current.attach()
            try:
                if error is not None:
                    signal = iterator.throw(error)
                else:
                    signal = iterator.send(send_value)
            except StopIteration as stop:
                return stop.value  # type: ignore[no-any-return]
            finally:
                current = Context.current()
                guard.release()
                error = None

            try:
                send_value = yield signal
            except GeneratorExit:
                with current.attach():
                    iterator.close()  # type: ignore[attr-defined]
                raise
            except BaseException as exc:  # noqa: BLE001
                send_value, error = None, exc


class ContextGenerator(Generic[Y, S, T]):
    """Generator wrapper that runs each ``next``/``send``/``throw`` attached."""

    __slots__ = ("_generator", "_context", "_current")

    def __init__(self, generator: Generator[Y, S, T], context: Context) -> None:
        self._generator = generator
        self._context = context
        self._current = context

    @property
    def context(self) -> Context:
        return self._context

    def __iter__(self) -> ContextGenerator[Y, S, T]:
        return self

    def __next__(self) -> Y:
        return self.send(None)  # type: ignore[arg-type]

    def send(self, value: S) -> Y:
        return self._step(self._generator.send, value)

    def throw(self, error: BaseException) -> Y:
        return self._step(self._generator.throw, error)

    def close(self) -> None:
        self._step(self._generator.close)

    def _step(self, fn: Callable[..., R], *args: Any) -> R:
        guard = self._current.attach()
        try:
            return fn(*args)
        finally:
            self._current = Context.current()
            guard.release()


@overload
def with_context(
    computation: Generator[Y, S, T], context: Context | None = None
) -> ContextGenerator[Y, S, T]: ...


@overload
def with_context(
    computation: Awaitable[T], context: Context | None = None
) -> ContextAwaitable[T]: ...


def with_context(computation: Any, context: Context | None = None) -> Any:
    """Wrap a coroutine, awaitable or generator so it always runs in ``context``.

    ``context`` defaults to the context current at the time of the call.
    """
    if context is None:
        context = Context.current()
    if inspect.isgenerator(computation):
        return ContextGenerator(computation, context)
    if inspect.isawaitable(computation):
        return ContextAwaitable(computation, context)
    raise TypeError(
        f"with_context() expects a coroutine, awaitable or generator, "
        f"got {type(computation).__name__}"
    )
