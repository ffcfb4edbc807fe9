"""Exception types raised by the prompt assembly pipeline.

ParseError is recovered inside the context strategy selector and never reaches
the end caller. MalformedDiffError and UnknownModelError are surfaced so the
caller can tell an unusable input apart from a review with no suggestions.
"""

from __future__ import annotations


class PatchwiseError(Exception):
    """Base class for every error raised by patchwise_core."""


class ParseError(PatchwiseError):
    """Source text is not syntactically valid for the parser's language."""

    def __init__(self, language: str, message: str):
        self.language = language
        self.message = message
        super().__init__(f"Could not parse {language} source: {message}")


class MalformedDiffError(PatchwiseError):
    """A patch cannot be mapped to new-file line numbers."""

    def __init__(self, message: str, line: str | None = None):
        self.line = line
        if line is not None:
            message = f"{message}: {line!r}"
        super().__init__(message)


class UnknownModelError(PatchwiseError):
    """A model identifier has no entry in the token limit table."""

    def __init__(self, model: str, known: list[str] | None = None):
        self.model = model
        message = f"Unknown model: {model!r}."
        if known:
            message += " Known models: " + ", ".join(sorted(known)) + "."
        super().__init__(message)
