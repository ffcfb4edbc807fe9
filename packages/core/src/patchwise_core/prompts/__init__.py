from patchwise_core.prompts.inline import (
    INLINE_FIX_FUNCTION,
    INLINE_FIX_PROMPT,
    PR_SUGGESTION_TEMPLATE,
    get_inline_fix_prompt,
)
from patchwise_core.prompts.review import (
    REVIEW_DIFF_PROMPT,
    XML_PR_REVIEW_PROMPT,
    construct_prompt,
    get_review_prompt,
    get_xml_review_prompt,
)

__all__ = [
    "INLINE_FIX_FUNCTION",
    "INLINE_FIX_PROMPT",
    "PR_SUGGESTION_TEMPLATE",
    "REVIEW_DIFF_PROMPT",
    "XML_PR_REVIEW_PROMPT",
    "construct_prompt",
    "get_inline_fix_prompt",
    "get_review_prompt",
    "get_xml_review_prompt",
]
