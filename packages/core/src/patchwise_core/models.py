"""Data shapes passed between the diff, parser, prompt and reviewer layers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PatchFile:
    """One changed file of a pull request.

    old_contents is None when the file is new or the provider did not supply a
    "before" version; that forces the raw-patch strategy.
    """

    filename: str
    patch: str
    old_contents: str | None = None
    status: str = "modified"


@dataclass(frozen=True)
class LineRange:
    """A 1-indexed inclusive range of source lines."""

    start: int
    end: int

    def __post_init__(self):
        if self.start < 1:
            raise ValueError(f"LineRange start must be >= 1, got {self.start}")
        if self.end < self.start:
            raise ValueError(f"LineRange end ({self.end}) is before start ({self.start})")


@dataclass(frozen=True)
class EnclosingContext:
    """The syntax node chosen as the context for a changed line range."""

    start_line: int
    end_line: int
    kind: str = ""

    @property
    def size(self) -> int:
        return self.end_line - self.start_line

    def contains(self, line_range: LineRange) -> bool:
        return self.start_line <= line_range.start and line_range.end <= self.end_line


@dataclass
class Suggestion:
    """One <suggestion> entry of an XML-formatted review."""

    describe: str
    type: str
    comment: str
    code: str
    filename: str

    def __str__(self) -> str:
        parts = [self.comment]
        if self.describe:
            parts.insert(0, f"Context: {self.describe}")
        if self.code:
            parts.append(self.code)
        return "\n\n".join(parts)


@dataclass
class FixRecord:
    """A single inline fix returned by the model for a suggestion."""

    comment: str
    code: str
    line_start: int
    line_end: int
