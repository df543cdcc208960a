#!/usr/bin/env python3
"""Hot-path overhead benchmark.

Measures the per-call cost of:
  1. attaching a context and releasing its guard
  2. building, activating and ending a recording span
  3. driving one coroutine step through ``with_context``

Usage:
    python benchmarks/bench_overhead.py
"""

from __future__ import annotations

import time

from tracewell import (
    Context,
    InMemoryExporter,
    SimpleSpanProcessor,
    TracerProvider,
    with_context,
)


def _timed(fn, iterations: int) -> float:  # noqa: ANN001
    for _ in range(min(iterations, 5000)):
        fn()
    start = time.perf_counter_ns()
    for _ in range(iterations):
        fn()
    return (time.perf_counter_ns() - start) / iterations


def bench_attach_release(iterations: int = 500_000) -> float:
    """Benchmark: Context.attach() + guard release."""
    ctx = Context.current().with_value("bench", 1)

    def step() -> None:
        ctx.attach().release()

    return _timed(step, iterations)


def bench_span_lifecycle(iterations: int = 200_000) -> float:
    """Benchmark: start -> activate -> set_attribute -> end, exporting in memory."""
    exporter = InMemoryExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    tracer = provider.get_tracer("bench")

    def step() -> None:
        with tracer.start_as_current_span("bench") as s:
            s.set_attribute("iteration", 1)

    try:
        return _timed(step, iterations)
    finally:
        exporter.clear()


def bench_with_context_step(iterations: int = 200_000) -> float:
    """Benchmark: one resumption of a coroutine wrapped in with_context."""
    ctx = Context.current().with_value("bench", 1)

    async def noop() -> None:
        return None

    def step() -> None:
        try:
            with_context(noop(), ctx).__await__().send(None)
        except StopIteration:
            pass

    return _timed(step, iterations)


def main() -> None:
    print("=" * 60)
    print("tracewell Hot-Path Overhead Benchmark")
    print("=" * 60)

    results: list[tuple[str, float, str]] = []

    ns = bench_attach_release()
    status = "PASS" if ns < 1000 else "WARN" if ns < 5000 else "FAIL"
    results.append(("Context attach + release", ns, f"{status} (target < 1μs)"))

    ns = bench_span_lifecycle()
    status = "PASS" if ns < 10000 else "WARN" if ns < 20000 else "FAIL"
    results.append(("Span lifecycle (in-memory export)", ns, f"{status} (target < 10μs)"))

    ns = bench_with_context_step()
    status = "PASS" if ns < 5000 else "WARN" if ns < 10000 else "FAIL"
    results.append(("with_context coroutine step", ns, f"{status} (target < 5μs)"))

    print()
    for name, ns_val, note in results:
        if ns_val >= 1000:
            display = f"{ns_val / 1000:.2f}μs"
        else:
            display = f"{ns_val:.0f}ns"
        print(f"  {name:40s}  {display:>10s}   {note}")

    print()
    all_pass = all("PASS" in r[2] or "WARN" in r[2] for r in results)
    if all_pass:
        print("All benchmarks within acceptable range.")
    else:
        print("WARNING: Some benchmarks exceeded target. Review above.")


if __name__ == "__main__":
    main()
