"""Tests for streamcanvas.stream.accumulator: replace-vs-append policy."""

from __future__ import annotations

from streamcanvas.stream.accumulator import accumulate, is_wholesale_replacement


class TestIsWholesaleReplacement:
    def test_large_fragment_replaces(self):
        assert is_wholesale_replacement("a" * 100, "b" * 250)

    def test_small_fragment_appends(self):
        assert not is_wholesale_replacement("a" * 100, "b" * 20)

    def test_needs_both_conditions(self):
        # Long but not much longer than what is there
        assert not is_wholesale_replacement("a" * 200, "b" * 250)
        # Much longer but under the minimum size
        assert not is_wholesale_replacement("a", "b" * 100)

    def test_first_large_fragment_replaces_empty(self):
        assert is_wholesale_replacement("", "b" * 101)

    def test_thresholds_configurable(self):
        assert is_wholesale_replacement("a" * 10, "b" * 30, min_chars=20, ratio=2.0)
        assert not is_wholesale_replacement("a" * 20, "b" * 30, min_chars=20, ratio=2.0)


class TestAccumulate:
    def test_append(self):
        assert accumulate("Hello", " world") == ("Hello world", False)

    def test_replace(self):
        full = "Full response " * 20
        text, replaced = accumulate("Full resp", full)
        assert text == full
        assert replaced is True

    def test_empty_fragment(self):
        assert accumulate("abc", "") == ("abc", False)
