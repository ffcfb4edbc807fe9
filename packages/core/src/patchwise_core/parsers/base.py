"""Language parser contract shared by every adapter.

Adapters implement a single method, parse(), which maps the language's native
tree into SyntaxNode once. The enclosing-context search and the dry run are
defined here so every language uses the same traversal:

    find_enclosing_context() → parse() → _largest_enclosing()
    lookup_context()         → find_enclosing_context(), ParseError captured
    dry_run()                → parse(), ParseError reported as a diagnostic
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from patchwise_core.errors import ParseError
from patchwise_core.models import EnclosingContext, LineRange


@dataclass
class SyntaxNode:
    """Language-neutral view of a parsed node.

    start_line/end_line are None for nodes without a source location (the
    root of most trees); the traversal still descends into their children.
    """

    kind: str
    start_line: int | None
    end_line: int | None
    children: list[SyntaxNode] = field(default_factory=list)

    @property
    def has_location(self) -> bool:
        return self.start_line is not None and self.end_line is not None


@dataclass
class DryRunResult:
    valid: bool
    diagnostic: str = ""


@dataclass
class ContextResult:
    """Outcome of a context lookup: a node, no node, or a parse failure."""

    context: EnclosingContext | None = None
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _largest_enclosing(root: SyntaxNode, line_start: int, line_end: int) -> EnclosingContext | None:
    """Return the largest located node containing [line_start, line_end].

    Pre-order depth-first traversal. Among nodes of equal size the one visited
    last wins, so for a parent and child sharing the same range the child is
    returned. This tie-break depends on traversal order and is kept as-is.
    """
    best: EnclosingContext | None = None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.has_location and node.start_line <= line_start and line_end <= node.end_line:
            size = node.end_line - node.start_line
            if best is None or size >= best.size:
                best = EnclosingContext(node.start_line, node.end_line, node.kind)
        # Reversed so children are popped in source order.
        stack.extend(reversed(node.children))
    return best


class BaseParser(ABC):
    LANGUAGE: str = ""

    @abstractmethod
    def parse(self, text: str) -> SyntaxNode:
        """Parse text into a SyntaxNode tree, raising ParseError if it is invalid."""

    def find_enclosing_context(self, text: str, line_start: int, line_end: int) -> EnclosingContext | None:
        """Return the largest node whose range fully contains the given lines.

        Raises ParseError when text is not valid source for this language.
        """
        root = self.parse(text)
        return _largest_enclosing(root, line_start, line_end)

    def lookup_context(self, text: str, line_range: LineRange) -> ContextResult:
        try:
            context = self.find_enclosing_context(text, line_range.start, line_range.end)
        except ParseError as e:
            return ContextResult(error=e)
        return ContextResult(context=context)

    def lookup_contexts(self, text: str, line_ranges: list[LineRange]) -> list[ContextResult]:
        """Like lookup_context for many ranges of one file, parsing text only once."""
        try:
            root = self.parse(text)
        except ParseError as e:
            return [ContextResult(error=e) for _ in line_ranges]
        return [ContextResult(context=_largest_enclosing(root, r.start, r.end)) for r in line_ranges]

    def dry_run(self, text: str) -> DryRunResult:
        try:
            self.parse(text)
        except ParseError as e:
            return DryRunResult(valid=False, diagnostic=e.message)
        return DryRunResult(valid=True)
