from __future__ import annotations

import pytest

from kiln.errors import (
    AggregateError,
    AttributedError,
    ConfigurationError,
    DecodeError,
    DerivationError,
    InterpolationError,
    KilnError,
    ValidationError,
    aggregate,
)

pytestmark = pytest.mark.unit


def test_kiln_error_carries_hint() -> None:
    err = KilnError("boom", hint="do this")

    assert str(err) == "boom"
    assert err.message == "boom"
    assert err.hint == "do this"


def test_field_defaults_to_none() -> None:
    assert DecodeError("bad").field is None
    assert ValidationError("bad").field is None
    assert ValidationError("bad", field="zone").field == "zone"


def test_subclass_hierarchy() -> None:
    """Every kiln error is catchable as KilnError; decode failures as DecodeError."""
    assert issubclass(InterpolationError, DecodeError)
    assert issubclass(DecodeError, ConfigurationError)
    assert issubclass(ValidationError, ConfigurationError)
    assert issubclass(AggregateError, ConfigurationError)
    assert issubclass(DerivationError, KilnError)
    assert not issubclass(DerivationError, ConfigurationError)


class TestAggregate:
    """Folding per-component error lists into one report."""

    def test_returns_none_when_nothing_failed(self) -> None:
        assert aggregate([]) is None
        assert aggregate([("run", []), ("ami", [])]) is None

    def test_preserves_component_then_error_order(self) -> None:
        one, two, three = (
            ValidationError("one"),
            ValidationError("two"),
            DecodeError("three"),
        )

        agg = aggregate([("run", [one, two]), ("ami", []), ("access", [three])])

        assert agg is not None
        assert len(agg) == 3
        assert agg.errors == (one, two, three)
        assert agg.messages == ["run: one", "run: two", "access: three"]

    def test_str_lists_every_entry(self) -> None:
        agg = aggregate([("run", [ValidationError("one")]), ("ami", [ValidationError("two")])])

        assert agg is not None
        assert str(agg) == "2 errors occurred:\n\n* run: one\n* ami: two"

    def test_single_error_uses_singular_noun(self) -> None:
        agg = aggregate([("run", [ValidationError("one")])])

        assert agg is not None
        assert agg.message == "1 error occurred"

    def test_entries_without_component_render_bare(self) -> None:
        assert str(AttributedError("", ValidationError("plain"))) == "plain"
        assert str(AttributedError("lxc", ValidationError("x"))) == "lxc: x"
