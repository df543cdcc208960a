"""Tests for _id_generator module."""

from tracewell._id_generator import IdGenerator, RandomIdGenerator


def test_ids_are_valid_and_unique() -> None:
    gen = RandomIdGenerator()
    trace_ids = {gen.new_trace_id() for _ in range(1000)}
    span_ids = {gen.new_span_id() for _ in range(1000)}
    assert len(trace_ids) == 1000
    assert len(span_ids) == 1000
    assert all(t.is_valid for t in trace_ids)
    assert all(s.is_valid for s in span_ids)


def test_hex_lengths() -> None:
    gen = RandomIdGenerator()
    assert len(gen.new_trace_id().hex) == 32
    assert len(gen.new_span_id().hex) == 16


def test_satisfies_protocol() -> None:
    assert isinstance(RandomIdGenerator(), IdGenerator)
