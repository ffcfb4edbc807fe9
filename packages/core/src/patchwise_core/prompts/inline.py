"""Prompt for turning one review suggestion into concrete line-level fixes."""

from __future__ import annotations

from patchwise_core.diff import assign_full_line_numbers
from patchwise_core.models import Suggestion

INLINE_FIX_PROMPT = """\
You are CodeFixer, a language model that fixes code according to a review suggestion. Return precise \
fixes for the provided file, each with a clear explanation.

**Guidelines:**
- Read the suggestion and the numbered file carefully. Line numbers are shown as "<number>: <code>".
- Return one fix per distinct issue the suggestion raises.
- In `comment`, explain what was wrong, how the fix resolves it, and any edge case the author should know.
- In `code`, give the exact replacement code for the lines you change, without line numbers. Escape it \
correctly as a JSON string.
- Use `lineStart` and `lineEnd` (inclusive) to name the lines of the file your `code` replaces.
- Keep the fix in the same programming language as the file.

**Example input:**
```
The new call does not use the existing cache.

1: def example_func():
2:     new_code_line()
```

**Example output:**
[
  {
    "comment": "The call recomputes a value that is already cached. Looking it up first avoids the \
repeated work.",
    "code": "    if key not in cache:\\n        cache[key] = new_code_line()",
    "lineStart": 2,
    "lineEnd": 2
  }
]

Respond with **only** a valid JSON list. If no change is needed, return: []"""

INLINE_FIX_FUNCTION = {
    "name": "fix",
    "description": "Fixes the provided code snippet as per the suggestion",
    "parameters": {
        "type": "object",
        "properties": {
            "comment": {
                "type": "string",
                "description": "Explanation of why this fix is appropriate",
            },
            "code": {
                "type": "string",
                "description": "Modified code snippet that resolves the suggestion",
            },
            "lineStart": {
                "type": "number",
                "description": "Starting line number for the code fix",
            },
            "lineEnd": {
                "type": "number",
                "description": "Ending line number for the code fix",
            },
        },
        "required": ["comment", "code", "lineStart", "lineEnd"],
    },
}

INLINE_USER_MESSAGE_TEMPLATE = """{SUGGESTION}

{FILE}"""

# Body of the review comment posted for an applied fix.
PR_SUGGESTION_TEMPLATE = """{COMMENT}

{CODE}
"""


def get_inline_fix_prompt(file_contents: str, suggestion: Suggestion | str) -> list[dict]:
    user_message = INLINE_USER_MESSAGE_TEMPLATE.format(
        SUGGESTION=str(suggestion),
        FILE=assign_full_line_numbers(file_contents),
    )
    return [
        {"role": "system", "content": INLINE_FIX_PROMPT},
        {"role": "user", "content": user_message},
    ]
