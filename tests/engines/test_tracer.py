"""Tests for the engine tracer (PROGRESS_ENGINE_TRACE records)."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from progress_engines.tracer import (
    TRACE_TYPE,
    _canonicalize,
    compute_input_fingerprint,
    traced_engine,
)
from progress_kernel.exceptions import UnsortedReportsError


@dataclass(frozen=True)
class _Sample:
    name: str
    amount: Decimal


class TestFingerprint:

    def test_deterministic(self):
        args = {"a": _Sample("x", Decimal("1.5")), "b": [1, 2]}
        assert compute_input_fingerprint(("a", "b"), args) == compute_input_fingerprint(
            ("a", "b"), dict(args),
        )

    def test_sensitive_to_values(self):
        first = compute_input_fingerprint(("a",), {"a": _Sample("x", Decimal("1"))})
        second = compute_input_fingerprint(("a",), {"a": _Sample("x", Decimal("2"))})
        assert first != second

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("a",), {}) == compute_input_fingerprint(
            ("a",), {"a": None},
        )

    def test_dict_order_irrelevant(self):
        assert _canonicalize({"b": 1, "a": 2}) == _canonicalize({"a": 2, "b": 1})

    def test_dates_and_dataclasses(self):
        assert _canonicalize(date(2024, 3, 1)) == "2024-03-01"
        assert _canonicalize(_Sample("x", Decimal("1"))) == "_Sample{name:x,amount:1}"


class TestTracedEngine:

    def test_emits_trace_on_success(self, caplog):
        @traced_engine("demo", "1.0", fingerprint_fields=("value",))
        def double(value):
            return value * 2

        with caplog.at_level(logging.INFO, logger="progress_kernel"):
            assert double(4) == 8

        traces = [r for r in caplog.records if r.getMessage() == TRACE_TYPE]
        assert len(traces) == 1
        assert traces[0].engine_name == "demo"
        assert traces[0].outcome == "ok"
        assert traces[0].input_fingerprint == compute_input_fingerprint(
            ("value",), {"value": 4},
        )

    def test_emits_trace_on_error(self, caplog):
        @traced_engine("demo", "1.0")
        def broken():
            raise UnsortedReportsError("T1", date(2024, 3, 2), date(2024, 3, 1))

        with caplog.at_level(logging.INFO, logger="progress_kernel"):
            with pytest.raises(UnsortedReportsError):
                broken()

        trace = [r for r in caplog.records if r.getMessage() == TRACE_TYPE][0]
        assert trace.outcome == "error"
        assert trace.error_code == "UNSORTED_REPORTS"
