"""Parser registry keyed by file extension.

Languages without a registered parser always get the raw-patch strategy.
"""

from __future__ import annotations

from pathlib import Path

from patchwise_core.parsers.base import BaseParser, ContextResult, DryRunResult, SyntaxNode
from patchwise_core.parsers.python import PythonParser

__all__ = [
    "BaseParser",
    "ContextResult",
    "DryRunResult",
    "PythonParser",
    "SyntaxNode",
    "get_parser",
    "register_parser",
]

_PARSERS: dict[str, BaseParser] = {}


def register_parser(extensions: list[str], parser: BaseParser) -> None:
    for ext in extensions:
        _PARSERS[ext.lower()] = parser


def get_parser(filename: str) -> BaseParser | None:
    return _PARSERS.get(Path(filename).suffix.lower())


register_parser([".py", ".pyi"], PythonParser())
