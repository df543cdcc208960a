"""tracewell quick start: minimal example to get tracing working."""

import tracewell

# 1. Initialize the SDK
tracewell.init(
    endpoint="localhost:4317",
    service_name="my-service",
    environment="development",
)

# 2. Trace an operation
with tracewell.span("handle-order") as s:
    s.set_attribute("order.id", "A-1001")
    s.set_attribute("items", 4)

    # Nested spans pick up the active span as parent
    with tracewell.span("validate") as child:
        child.set_attribute("step", "schema")

    with tracewell.span("charge-card") as child:
        child.add_event("payment.authorized", {"amount_cents": 4200})

# 3. Shutdown (flushes remaining spans)
tracewell.shutdown()

print("Done! Spans were sent to the OTLP collector at localhost:4317")
