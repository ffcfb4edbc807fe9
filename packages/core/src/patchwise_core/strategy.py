"""Per-file patch rendering strategies.

Two strategies turn a PatchFile into the text block the model sees:

- raw patch: the GitHub patch with new-file line numbers, nothing else.
- smarter context: every hunk whose changed lines sit inside a syntax node of
  the previous file version is widened to cover that whole node, using the old
  contents as extra context lines. Hunks that end up touching are merged.

The smarter strategy needs the "before" contents and a parser for the
language, and the old contents must parse. When any of that is missing it
degrades to the raw patch without raising. MalformedDiffError is not
recovered: a patch that cannot be numbered is unusable under either strategy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from patchwise_core.diff import Hunk, assign_line_numbers, format_hunk_header, parse_hunks
from patchwise_core.models import EnclosingContext, PatchFile
from patchwise_core.parsers import BaseParser, get_parser

logger = logging.getLogger(__name__)


@dataclass
class _HunkGroup:
    start: int
    end: int
    expanded: bool
    hunks: list[Hunk] = field(default_factory=list)


def _render(file: PatchFile, diff_text: str) -> str:
    return f"## {file.filename}\n\n{assign_line_numbers(diff_text)}"


def raw_patch_strategy(file: PatchFile) -> str:
    return _render(file, file.patch)


def build_suggestion_prompt(file: PatchFile) -> str:
    """Render a file with the raw-patch strategy regardless of old contents.

    This is the cheapest rendering; the reviewer falls back to it when the
    richer conversation does not fit the model's context window.
    """
    return raw_patch_strategy(file)


def _group_hunks(hunks: list[Hunk], contexts: list[EnclosingContext | None], line_count: int) -> list[_HunkGroup]:
    groups: list[_HunkGroup] = []
    for hunk, context in zip(hunks, contexts):
        if context is None:
            group = _HunkGroup(hunk.old_first, hunk.old_last, False, [hunk])
        else:
            start = max(1, min(context.start_line, hunk.old_first))
            end = min(line_count, max(context.end_line, hunk.old_last))
            group = _HunkGroup(start, end, True, [hunk])
        # A widened window may reach back over earlier hunks; fold them in.
        while groups and (groups[-1].expanded or group.expanded) and group.start <= groups[-1].end + 1:
            previous = groups.pop()
            group = _HunkGroup(
                min(previous.start, group.start),
                max(previous.end, group.end),
                True,
                previous.hunks + group.hunks,
            )
        groups.append(group)
    return groups


def _render_group(group: _HunkGroup, old_lines: list[str]) -> list[str]:
    if not group.expanded:
        hunk = group.hunks[0]
        return [hunk.header, *hunk.lines]

    body: list[str] = []
    cursor = group.start
    for hunk in group.hunks:
        body.extend(" " + old_lines[number - 1] for number in range(cursor, hunk.old_first))
        body.extend(hunk.lines)
        cursor = max(cursor, hunk.old_last + 1)
    body.extend(" " + old_lines[number - 1] for number in range(cursor, group.end + 1))

    first = group.hunks[0]
    first_new = first.new_start if first.new_length else first.new_start + 1
    new_start = first_new - (first.old_first - group.start)
    old_length = sum(1 for line in body if not line.startswith(("+", "\\")))
    new_length = sum(1 for line in body if not line.startswith(("-", "\\")))
    return [format_hunk_header(group.start, old_length, new_start, new_length), *body]


def smarter_context_patch_strategy(file: PatchFile, parser: BaseParser | None = None) -> str:
    """Render a file with each hunk widened to its enclosing syntax node."""
    if file.old_contents is None:
        return raw_patch_strategy(file)

    parser = parser or get_parser(file.filename)
    if parser is None:
        logger.debug("No parser registered for %s; using raw patch.", file.filename)
        return raw_patch_strategy(file)

    hunks = parse_hunks(file.patch)
    old_lines = file.old_contents.split("\n")
    if any(hunk.old_last > len(old_lines) for hunk in hunks):
        logger.debug("Patch for %s does not match its previous contents; using raw patch.", file.filename)
        return raw_patch_strategy(file)

    changed_ranges = [hunk.changed_old_range() for hunk in hunks]
    results = iter(parser.lookup_contexts(file.old_contents, [r for r in changed_ranges if r is not None]))
    contexts: list[EnclosingContext | None] = []
    for changed in changed_ranges:
        if changed is None:
            contexts.append(None)
            continue
        result = next(results)
        if not result.ok:
            logger.debug("Falling back to raw patch for %s: %s", file.filename, result.error)
            return raw_patch_strategy(file)
        contexts.append(result.context)

    if not any(contexts):
        return raw_patch_strategy(file)

    lines: list[str] = []
    for group in _group_hunks(hunks, contexts, len(old_lines)):
        lines.extend(_render_group(group, old_lines))
    return _render(file, "\n".join(lines))


def build_patch_prompt(file: PatchFile) -> str:
    """Pick the richest strategy the file supports and render it."""
    if file.old_contents is None:
        return raw_patch_strategy(file)
    return smarter_context_patch_strategy(file)
