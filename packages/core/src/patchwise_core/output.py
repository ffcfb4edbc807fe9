"""Parse model responses into Suggestion and FixRecord objects.

Model output is never trusted to be well-formed: XML reviews routinely carry
raw '<', '&' and Markdown fences inside <code>, and JSON is often wrapped in a
```json fence. Parsing is therefore lenient and drops entries it cannot use
instead of raising.
"""

from __future__ import annotations

import json
import logging
import re

from patchwise_core.models import FixRecord, Suggestion

logger = logging.getLogger(__name__)

_SUGGESTION_RE = re.compile(r"<suggestion>(.*?)</suggestion>", re.DOTALL)
_FIELDS = ("describe", "type", "comment", "code", "filename")


def _tag(block: str, name: str, strip: bool = True) -> str:
    match = re.search(rf"<{name}>(.*?)</{name}>", block, re.DOTALL)
    if match is None:
        return ""
    return match.group(1).strip() if strip else match.group(1)


def _dedent_code(code: str) -> str:
    # The model indents the fenced block to line up with the XML around it.
    lines = code.splitlines()
    indents = [len(line) - len(line.lstrip()) for line in lines if line.strip()]
    if not indents:
        return code.strip()
    margin = min(indents)
    return "\n".join(line[margin:] for line in lines).strip()


def parse_xml_review(raw: str) -> list[Suggestion]:
    """Extract every usable <suggestion> from an XML-formatted review."""
    suggestions: list[Suggestion] = []
    for block in _SUGGESTION_RE.findall(raw or ""):
        values = {name: _tag(block, name) for name in _FIELDS}
        if not values["comment"] or not values["filename"]:
            logger.debug("Dropping suggestion without comment or filename: %s", block[:200])
            continue
        values["code"] = _dedent_code(_tag(block, "code", strip=False))
        suggestions.append(Suggestion(**values))
    return suggestions


def _to_line(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_fix_records(raw: str) -> list[FixRecord]:
    """Parse the inline-fix JSON list, dropping records that cannot be placed."""
    try:
        # Strip only the outer ```json ... ``` fence, NOT backticks inside string values.
        cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip())
        cleaned = re.sub(r"\s*```$", "", cleaned.strip())
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Failed to parse inline fix response as JSON: %s", (raw or "")[:200])
        return []

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        return []

    records: list[FixRecord] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        line_start = _to_line(item.get("lineStart"))
        line_end = _to_line(item.get("lineEnd"))
        code = item.get("code")
        if line_start is None or line_end is None or line_start < 1 or line_end < line_start:
            logger.debug("Dropping fix with unusable line range: %r", item)
            continue
        if not isinstance(code, str):
            continue
        records.append(FixRecord(str(item.get("comment", "")), code, line_start, line_end))
    return records
