"""Tests for magsplit.layout — column detection, line grouping, fallback."""

import logging

import pytest
from conftest import make_column, make_fragment

from magsplit.config import SplitConfig
from magsplit.layout import (
    fill_page_text,
    group_lines,
    is_two_column,
    linearize,
    looks_reasonable,
)
from magsplit.models import Page


def _two_column_page(n: int = 12):
    left = make_column(50, 800, [f"links {i}" for i in range(n)])
    right = make_column(350, 800, [f"rechts {i}" for i in range(n)])
    return left + right


class TestIsTwoColumn:
    def test_two_populated_columns(self):
        assert is_two_column(_two_column_page(12))

    def test_exactly_minimum_population(self):
        assert is_two_column(_two_column_page(10))

    def test_below_minimum_population(self):
        assert not is_two_column(_two_column_page(9))

    def test_narrow_spread_is_single_column(self):
        left = make_column(50, 800, ["a"] * 12)
        right = make_column(200, 800, ["b"] * 12)
        assert not is_two_column(left + right)

    def test_fragments_in_margin_not_counted(self):
        # 12 on the left, 12 inside the dead zone around the midpoint, 1 far right
        frags = make_column(0, 800, ["l"] * 12)
        frags += make_column(205, 800, ["m"] * 12)
        frags.append(make_fragment(400, 800, "r"))
        assert not is_two_column(frags)

    def test_custom_thresholds(self):
        cfg = SplitConfig(min_column_fragments=3, min_column_width=50)
        left = make_column(0, 800, ["a"] * 3)
        right = make_column(100, 800, ["b"] * 3)
        assert is_two_column(left + right, cfg)

    def test_empty(self):
        assert not is_two_column([])


class TestGroupLines:
    def test_top_of_page_first(self):
        frags = [make_fragment(10, 100, "unten"), make_fragment(10, 700, "oben")]
        lines = group_lines(frags)
        assert [[f.text for f in ln] for ln in lines] == [["oben"], ["unten"]]

    def test_close_y_shares_line_sorted_by_x(self):
        frags = [
            make_fragment(200, 500.0, "Welt"),
            make_fragment(10, 501.5, "Hallo"),
        ]
        lines = group_lines(frags, line_tolerance=3.0)
        assert len(lines) == 1
        assert [f.text for f in lines[0]] == ["Hallo", "Welt"]

    def test_tolerance_is_strict(self):
        frags = [make_fragment(10, 500.0, "a"), make_fragment(20, 497.0, "b")]
        assert len(group_lines(frags, line_tolerance=3.0)) == 2

    def test_anchor_is_first_fragment_of_line(self):
        # 500 -> 498 joins (diff 2), 496 is 4 away from the anchor: new line
        frags = [
            make_fragment(10, 500.0, "a"),
            make_fragment(20, 498.0, "b"),
            make_fragment(30, 496.0, "c"),
        ]
        lines = group_lines(frags, line_tolerance=3.0)
        assert [[f.text for f in ln] for ln in lines] == [["a", "b"], ["c"]]


class TestLooksReasonable:
    def test_rejects_mostly_single_characters(self):
        text = "\n".join(["a"] * 8 + ["eine normale zeile", "noch eine zeile"])
        assert not looks_reasonable(text)

    def test_accepts_normal_paragraph(self):
        text = (
            "Die Sonne stand tief über dem Tal.\n"
            "Es war still.\n"
            "Ja.\n"
            "Dann kamen die Kühe von der Alp herunter.\n"
            "Niemand sprach ein Wort.\n"
            "Am Abend regnete es."
        )
        assert looks_reasonable(text)

    def test_ratio_only_applies_above_line_minimum(self):
        assert looks_reasonable("a\nb\nc\nd\ne")

    def test_rejects_empty(self):
        assert not looks_reasonable("")
        assert not looks_reasonable(" \n\t ")

    def test_rejects_long_digit_only(self):
        assert not looks_reasonable("12 34 56 78 90 12 34 56 78 90 11")

    def test_accepts_short_digit_only(self):
        assert looks_reasonable("14 15")


class TestLinearize:
    def test_empty_returns_empty_string(self):
        assert linearize([]) == ""

    def test_single_column_reading_order(self):
        frags = [
            make_fragment(120, 700, "Welt"),
            make_fragment(10, 700, "Hallo"),
            make_fragment(10, 680, "zweite"),
            make_fragment(80, 680, "Zeile"),
        ]
        assert linearize(frags) == "Hallo Welt\nzweite Zeile"

    def test_single_column_order_independent_of_input_order(self):
        frags = [make_fragment(10, 800 - i * 15, f"zeile{i}") for i in range(6)]
        expected = "\n".join(f"zeile{i}" for i in range(6))
        assert linearize(list(reversed(frags))) == expected

    def test_two_column_left_then_right(self):
        text = linearize(_two_column_page(12))
        left, right = text.split("\n\n")
        assert left.splitlines() == [f"links {i}" for i in range(12)]
        assert right.splitlines() == [f"rechts {i}" for i in range(12)]

    def test_fallback_when_degenerate(self):
        frags = [make_fragment(10, 800 - i * 15, "x") for i in range(10)]
        assert linearize(frags, "Roher Text der Seite") == "Roher Text der Seite"

    def test_fallback_when_no_fragments(self):
        assert linearize([], "Roher Text") == "Roher Text"

    def test_empty_when_fallback_also_degenerate(self):
        frags = [make_fragment(10, 800 - i * 15, "x") for i in range(10)]
        assert linearize(frags, "1234567890 1234567890 12") == ""

    def test_malformed_fragments_skipped(self):
        class Bad:
            x = "nicht-zahl"
            y = 3
            text = "kaputt"

        frags = [
            make_fragment(10, 700, "Gut"),
            make_fragment(10, 680, None),
            Bad(),
            object(),
            make_fragment(float("nan"), 600, "nan"),
        ]
        assert linearize(frags) == "Gut"

    def test_whitespace_in_fragment_collapsed(self):
        assert linearize([make_fragment(1, 1, "  zwei\n Wörter ")]) == "zwei Wörter"

    def test_logs_fallback(self, caplog):
        frags = [make_fragment(10, 800 - i * 15, "x") for i in range(10)]
        with caplog.at_level(logging.DEBUG, logger="magsplit.layout"):
            linearize(frags, "Roher Text")
        assert "using raw text" in caplog.text

    @pytest.mark.parametrize("n", [0, 1, 5])
    def test_never_raises(self, n):
        frags = [make_fragment(0, 0, "") for _ in range(n)]
        assert linearize(frags) == ""


class TestFillPageText:
    def test_fragments_only_page_linearized(self):
        page = Page(number=3, fragments=make_column(10, 800, ["Hallo", "Welt"]))
        (filled,) = fill_page_text([page])
        assert filled.text == "Hallo\nWelt"
        assert filled.number == 3
        assert page.text == ""

    def test_page_with_text_untouched(self):
        page = Page(number=1, text="Fertig", fragments=[make_fragment(1, 1, "x")])
        assert fill_page_text([page])[0] is page

    def test_page_without_fragments_untouched(self):
        page = Page(number=2, text=None)
        assert fill_page_text([page])[0] is page
