"""Tests for core models."""

import pytest

from relscout.core.models.base import Cardinality, ColumnRef, Result


class TestResult:
    """Tests for Result."""

    def test_ok_unwraps(self):
        result = Result.ok(42)
        assert result.success
        assert result.unwrap() == 42

    def test_fail_raises_on_unwrap(self):
        result: Result[int] = Result.fail("boom")
        assert not result.success
        assert result.error == "boom"
        with pytest.raises(ValueError, match="boom"):
            result.unwrap()


class TestCardinality:
    """Tests for Cardinality parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("N:1", Cardinality.MANY_TO_ONE),
            ("n:1", Cardinality.MANY_TO_ONE),
            (" 1:1 ", Cardinality.ONE_TO_ONE),
            ("1:n", Cardinality.ONE_TO_MANY),
            ("n:m", Cardinality.MANY_TO_MANY),
        ],
    )
    def test_parse_is_case_insensitive(self, raw, expected):
        assert Cardinality.parse(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "many-to-one", "1:2"])
    def test_parse_invalid_returns_none(self, raw):
        assert Cardinality.parse(raw) is None


class TestColumnRef:
    """Tests for ColumnRef."""

    def test_str(self):
        assert str(ColumnRef(table_name="orders", column_name="user_id")) == "orders.user_id"

    def test_equal_refs_hash_equal(self):
        refs = {
            ColumnRef(table_name="orders", column_name="user_id"),
            ColumnRef(table_name="orders", column_name="user_id"),
        }
        assert len(refs) == 1
