"""Tests for block range parsing and model values."""

import pytest

from core.errors import InputValidationError
from models.blocks import BlockRange, BlockRef, Cursor
from models.requests import ForkMode, ForkStep


class TestBlockRangeParse:
    """Tests for BlockRange.parse."""

    @pytest.mark.parametrize("raw,start,end", [
        ("100-105", 100, 105),
        ("0-1", 0, 1),
        ("150 000 000 - 150 010 000", 150000000, 150010000),
        (" 7 - 8 ", 7, 8),
    ])
    def test_bounded(self, raw, start, end):
        block_range = BlockRange.parse(raw)
        assert block_range.start == start
        assert block_range.end == end
        assert not block_range.is_open_ended

    def test_open_ended(self):
        block_range = BlockRange.parse("100-")
        assert block_range.start == 100
        assert block_range.end == 0
        assert block_range.is_open_ended

    @pytest.mark.parametrize("raw", ["105-100", "100-100"])
    def test_inverted_bounds(self, raw):
        with pytest.raises(InputValidationError, match="comes after"):
            BlockRange.parse(raw)

    @pytest.mark.parametrize("raw", [
        "abc-100", "10-xyz", "-100", "1.5-3", "0x10-0x20",
        "\u00b2-5", "1-\u00b9", "\u0661\u0660-\u0662\u0660",
    ])
    def test_non_numeric(self, raw):
        with pytest.raises(InputValidationError, match="not a valid uint64"):
            BlockRange.parse(raw)

    @pytest.mark.parametrize("raw", ["100", "1-2-3", ""])
    def test_wrong_shape(self, raw):
        with pytest.raises(InputValidationError, match="should be of the form"):
            BlockRange.parse(raw)

    def test_uint64_overflow(self):
        with pytest.raises(InputValidationError):
            BlockRange.parse(f"{2 ** 64}-")

    def test_string_forms(self):
        block_range = BlockRange(100, 105)
        assert str(block_range) == "100 - 105"
        assert block_range.compact() == "100-105"
        assert block_range.last_block == 104


class TestRefsAndCursor:
    """Tests for BlockRef and Cursor."""

    def test_empty_ref(self):
        assert BlockRef.EMPTY.is_empty
        assert str(BlockRef.EMPTY) == "<empty>"

    def test_ref_string(self):
        assert str(BlockRef(num=12, id="0000000cabc")) == "#12 (0000000cabc)"

    def test_empty_cursor(self):
        assert Cursor.EMPTY.is_empty
        assert not Cursor(token="c1", block=BlockRef(1, "a")).is_empty


class TestForkMode:
    def test_irreversible_steps(self):
        assert ForkMode.IRREVERSIBLE.fork_steps == (ForkStep.IRREVERSIBLE,)

    def test_live_steps(self):
        assert ForkMode.LIVE.fork_steps == (ForkStep.NEW, ForkStep.UNDO)
