"""Concurrent asyncio requests, each keeping its own active span.

Run with a collector listening on localhost:4317, or swap in
``InMemoryExporter`` to print the spans locally.
"""

import asyncio

import tracewell
from tracewell import Context, InMemoryExporter, SpanKind, with_context

exporter = InMemoryExporter()
tracewell.init(service_name="async-demo", exporter=exporter)
tracer = tracewell.get_tracer(__name__)


@tracewell.trace(kind=SpanKind.CLIENT)
async def fetch(url: str) -> str:
    await asyncio.sleep(0.01)
    return f"<body of {url}>"


async def handle(request_id: int) -> None:
    span = tracer.span_builder(f"request-{request_id}").with_kind(SpanKind.SERVER).start(tracer)
    try:
        # fetch() sees this request's span on every resumption
        await with_context(fetch(f"https://example.com/{request_id}"), Context.current_with_span(span))
    finally:
        span.end()


async def main() -> None:
    await asyncio.gather(*(handle(i) for i in range(3)))


asyncio.run(main())
tracewell.shutdown()

for sd in exporter.get_finished_spans():
    parent = sd.parent_span_id.hex if sd.parent_span_id else "-"
    print(f"{sd.trace_id.hex}  {sd.span_id.hex}  parent={parent:16s}  {sd.name}")
