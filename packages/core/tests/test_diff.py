"""Tests for hunk parsing and new-file line numbering."""

import pytest

from patchwise_core.diff import (
    Hunk,
    assign_full_line_numbers,
    assign_line_numbers,
    format_hunk_header,
    parse_hunk_header,
    parse_hunks,
)
from patchwise_core.errors import MalformedDiffError
from patchwise_core.models import LineRange

SCENARIO_DIFF = "@@ -1,2 +1,2 @@\n-foo\n+bar\n baz"


class TestAssignLineNumbers:
    def test_scenario_replaces_marker_with_number(self):
        assert assign_line_numbers(SCENARIO_DIFF) == "@@ -1,2 +1,2 @@\n1: bar\n2: baz"

    def test_header_kept_verbatim_with_section_heading(self):
        diff = "@@ -10,2 +10,2 @@ def handler(event):\n context\n+added"
        out = assign_line_numbers(diff)
        assert out.splitlines()[0] == "@@ -10,2 +10,2 @@ def handler(event):"
        assert out.splitlines()[1:] == ["10: context", "11: added"]

    def test_each_header_resets_counter(self):
        diff = "@@ -1,2 +1,3 @@\n a\n+b\n c\n@@ -40,2 +41,2 @@\n x\n-y\n+z"
        assert assign_line_numbers(diff).splitlines() == [
            "@@ -1,2 +1,3 @@",
            "1: a",
            "2: b",
            "3: c",
            "@@ -40,2 +41,2 @@",
            "41: x",
            "42: z",
        ]

    def test_removed_lines_are_dropped(self):
        diff = "@@ -1,3 +1,1 @@\n-one\n-two\n three"
        assert assign_line_numbers(diff) == "@@ -1,3 +1,1 @@\n1: three"

    def test_preserves_order_and_increments_by_one(self):
        body = [" keep 1", "+add 1", "-gone", " keep 2", "+add 2", "+add 3"]
        out = assign_line_numbers("@@ -5,4 +7,6 @@\n" + "\n".join(body)).splitlines()[1:]
        numbers = [int(line.split(":", 1)[0]) for line in out]
        assert numbers == list(range(7, 7 + len(out)))
        assert [line.split(": ", 1)[1] for line in out] == ["keep 1", "add 1", "keep 2", "add 2", "add 3"]

    def test_header_without_lengths(self):
        assert assign_line_numbers("@@ -3 +3 @@\n-a\n+b") == "@@ -3 +3 @@\n3: b"

    def test_no_newline_marker_is_not_numbered(self):
        diff = "@@ -1,1 +1,1 @@\n-old\n\\ No newline at end of file\n+new\n\\ No newline at end of file"
        assert assign_line_numbers(diff) == "@@ -1,1 +1,1 @@\n1: new"

    def test_blank_context_line_without_marker(self):
        assert assign_line_numbers("@@ -1,3 +1,3 @@\n a\n\n b") == "@@ -1,3 +1,3 @@\n1: a\n2: \n3: b"

    def test_trailing_newline_adds_no_line(self):
        assert assign_line_numbers(SCENARIO_DIFF + "\n") == assign_line_numbers(SCENARIO_DIFF)

    def test_empty_diff(self):
        assert assign_line_numbers("") == ""

    def test_git_file_headers_skipped(self):
        diff = "diff --git a/x.py b/x.py\nindex 1..2 100644\n--- a/x.py\n+++ b/x.py\n" + SCENARIO_DIFF
        assert assign_line_numbers(diff) == "@@ -1,2 +1,2 @@\n1: bar\n2: baz"

    def test_content_before_header_raises(self):
        with pytest.raises(MalformedDiffError, match="before the first chunk header"):
            assign_line_numbers("+orphan line\n@@ -1,1 +1,1 @@\n x")

    def test_malformed_header_raises(self):
        with pytest.raises(MalformedDiffError, match="Malformed chunk header"):
            assign_line_numbers("@@ bad header @@\n+line one")

    def test_is_deterministic(self):
        assert assign_line_numbers(SCENARIO_DIFF) == assign_line_numbers(SCENARIO_DIFF)


class TestHunkHeaders:
    def test_parse_full_header(self):
        assert parse_hunk_header("@@ -12,5 +14,6 @@ def f():") == (12, 5, 14, 6)

    def test_omitted_lengths_default_to_one(self):
        assert parse_hunk_header("@@ -7 +8 @@") == (7, 1, 8, 1)

    def test_parse_rejects_garbage(self):
        with pytest.raises(MalformedDiffError):
            parse_hunk_header("@@ -a,b +c,d @@")

    def test_format_header(self):
        assert format_hunk_header(3, 6, 4, 7) == "@@ -3,6 +4,7 @@"


class TestParseHunks:
    def test_splits_hunks_and_bodies(self):
        hunks = parse_hunks("@@ -1,2 +1,3 @@\n a\n+b\n c\n@@ -40,1 +41,1 @@\n-y\n+z\n")
        assert len(hunks) == 2
        assert hunks[0].lines == [" a", "+b", " c"]
        assert (hunks[1].old_start, hunks[1].new_start) == (40, 41)
        assert hunks[1].lines == ["-y", "+z"]

    def test_content_before_header_raises(self):
        with pytest.raises(MalformedDiffError):
            parse_hunks(" context\n@@ -1,1 +1,1 @@\n x")

    def test_empty_patch_has_no_hunks(self):
        assert parse_hunks("") == []


class TestChangedOldRange:
    def test_ignores_surrounding_context(self):
        hunk = Hunk("", 10, 5, 10, 5, [" a", " b", "-c", "+C", " d"])
        assert hunk.changed_old_range() == LineRange(12, 12)

    def test_spans_first_to_last_change(self):
        hunk = Hunk("", 1, 6, 1, 5, [" a", "-b", " c", " d", "-e", " f"])
        assert hunk.changed_old_range() == LineRange(2, 5)

    def test_insertion_anchored_on_line_above(self):
        hunk = Hunk("", 4, 2, 4, 3, [" a", "+new", " b"])
        assert hunk.changed_old_range() == LineRange(4, 4)

    def test_insertion_only_hunk(self):
        # "-7,0": the insertion goes after old line 7.
        hunk = Hunk("", 7, 0, 8, 2, ["+x", "+y"])
        assert hunk.old_first == 8
        assert hunk.changed_old_range() == LineRange(7, 7)

    def test_insertion_at_top_of_file_clamps_to_line_one(self):
        hunk = Hunk("", 0, 0, 1, 1, ["+first"])
        assert hunk.changed_old_range() == LineRange(1, 1)

    def test_context_only_hunk_has_no_range(self):
        assert Hunk("", 1, 2, 1, 2, [" a", " b"]).changed_old_range() is None


class TestAssignFullLineNumbers:
    def test_numbers_every_line_from_one(self):
        assert assign_full_line_numbers("a\nb\n\nc") == "1: a\n2: b\n3: \n4: c"

    def test_trailing_newline(self):
        assert assign_full_line_numbers("x = 1\n") == "1: x = 1"

    def test_empty_contents(self):
        assert assign_full_line_numbers("") == ""
