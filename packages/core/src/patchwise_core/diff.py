"""Unified-diff helpers: hunk parsing and new-file line numbering.

Every function here is pure. The numbering helpers are what the model sees, so
they must agree with the line numbers GitHub uses for review comments: context
and added lines advance the new-file counter, removed lines do not.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from patchwise_core.errors import MalformedDiffError
from patchwise_core.models import LineRange

# "@@ -oldStart[,oldLen] +newStart[,newLen] @@ optional section heading".
# Git omits a length when it equals 1.
HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

# Lines git prints above the first hunk of a file. GitHub's per-file patches
# start directly at the first @@ header, but `git diff` output does not.
_FILE_HEADER_PREFIXES = (
    "diff --git ",
    "index ",
    "--- ",
    "+++ ",
    "new file mode",
    "deleted file mode",
    "old mode",
    "new mode",
    "similarity index",
    "rename from",
    "rename to",
)


@dataclass
class Hunk:
    """A contiguous block of diff lines below one chunk header."""

    header: str
    old_start: int
    old_length: int
    new_start: int
    new_length: int
    lines: list[str] = field(default_factory=list)

    @property
    def old_first(self) -> int:
        # An insertion-only hunk ("-12,0") names the line *after which* it inserts.
        return self.old_start if self.old_length else self.old_start + 1

    @property
    def old_last(self) -> int:
        return self.old_first + self.old_length - 1

    def changed_old_range(self) -> LineRange | None:
        """Return the old-file range spanned by the hunk's changed lines.

        Leading and trailing context lines are ignored. A removed line maps to
        its own old line; an added line is anchored on the old line right above
        the insertion point. Returns None for a hunk with no changes.
        """
        cursor = self.old_first
        changed: list[int] = []
        for line in self.lines:
            if line.startswith("\\"):
                continue
            if line.startswith("-"):
                changed.append(cursor)
                cursor += 1
            elif line.startswith("+"):
                changed.append(max(cursor - 1, 1))
            else:
                cursor += 1
        if not changed:
            return None
        return LineRange(min(changed), max(changed))


def _split_lines(text: str) -> list[str]:
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def _strip_marker(line: str) -> str:
    return line[1:] if line[:1] in ("+", " ") else line


def parse_hunk_header(line: str) -> tuple[int, int, int, int]:
    """Return (old_start, old_length, new_start, new_length) for a chunk header."""
    match = HUNK_HEADER_RE.match(line)
    if match is None:
        raise MalformedDiffError("Malformed chunk header", line)
    old_start, old_length, new_start, new_length = match.groups()
    return (
        int(old_start),
        int(old_length) if old_length is not None else 1,
        int(new_start),
        int(new_length) if new_length is not None else 1,
    )


def format_hunk_header(old_start: int, old_length: int, new_start: int, new_length: int) -> str:
    return f"@@ -{old_start},{old_length} +{new_start},{new_length} @@"


def parse_hunks(diff_text: str) -> list[Hunk]:
    """Split a unified diff into hunks.

    Raises MalformedDiffError on a bad chunk header or on content that appears
    before the first header.
    """
    hunks: list[Hunk] = []
    for line in _split_lines(diff_text):
        if line.startswith("@@"):
            old_start, old_length, new_start, new_length = parse_hunk_header(line)
            hunks.append(Hunk(line, old_start, old_length, new_start, new_length))
        elif not hunks:
            if line.startswith(_FILE_HEADER_PREFIXES):
                continue
            raise MalformedDiffError("Content line before the first chunk header", line)
        else:
            hunks[-1].lines.append(line)
    return hunks


def assign_line_numbers(diff_text: str) -> str:
    """Prefix every post-image line of a diff with its new-file line number.

    Chunk headers pass through verbatim and reset the counter to the header's
    new-file start. Removed lines are dropped. The diff marker of context and
    added lines is replaced by the number:

        @@ -1,2 +1,2 @@        @@ -1,2 +1,2 @@
        -foo            ->     1: bar
        +bar                   2: baz
         baz
    """
    numbered: list[str] = []
    new_line: int | None = None

    for line in _split_lines(diff_text):
        if line.startswith("@@"):
            new_line = parse_hunk_header(line)[2]
            numbered.append(line)
        elif new_line is None:
            if line.startswith(_FILE_HEADER_PREFIXES):
                continue
            raise MalformedDiffError("Content line before the first chunk header", line)
        elif line.startswith("-") or line.startswith("\\"):
            # Removed line, or "\ No newline at end of file": not in the new file.
            continue
        else:
            numbered.append(f"{new_line}: {_strip_marker(line)}")
            new_line += 1

    return "\n".join(numbered)


def assign_full_line_numbers(contents: str) -> str:
    """Number every line of a whole file, 1..N."""
    return "\n".join(f"{number}: {line}" for number, line in enumerate(_split_lines(contents), 1))


def get_diff_positions(patch_text: str) -> dict[int, int]:
    """
    Maps new-file line numbers to their cumulative GitHub diff positions.

    GitHub's review comment API requires positions that are cumulative across
    the entire patch, not reset per hunk. The first @@ header is NOT counted:
    position 1 is the first content line immediately below it. Every later
    @@ header takes a position of its own.

    Lines are classified by their first character only, so an added "++i;"
    (sent as "+++i;") or a removed "-- comment" (sent as "--- comment") is a
    content line like any other.
    """
    positions: dict[int, int] = {}
    diff_position = 0
    file_line: int | None = None
    seen_header = False

    for line in patch_text.splitlines():
        if line.startswith("@@"):
            if seen_header:
                diff_position += 1
            seen_header = True
            match = HUNK_HEADER_RE.match(line)
            file_line = int(match.group(3)) if match else None
            continue

        diff_position += 1

        if line.startswith("+"):
            if file_line is not None:
                positions[file_line] = diff_position
                file_line += 1
        elif line.startswith(("-", "\\")):
            pass  # Does not advance the new-file line counter
        elif file_line is not None:
            file_line += 1

    return positions


def get_patch_line_content(patch_text: str, target_line: int) -> str:
    """Return the source content of a specific new-file line number from a patch."""
    file_line: int | None = None
    for line in patch_text.splitlines():
        if line.startswith("@@"):
            match = HUNK_HEADER_RE.match(line)
            file_line = int(match.group(3)) if match else None
            continue
        if line.startswith(("-", "\\")):
            continue
        if file_line is not None:
            if file_line == target_line:
                return _strip_marker(line)
            file_line += 1
    return ""
