from __future__ import annotations

import ast
import warnings

from patchwise_core.errors import ParseError
from patchwise_core.parsers.base import BaseParser, SyntaxNode


def _to_syntax_node(node: ast.AST) -> SyntaxNode:
    root = SyntaxNode(type(node).__name__, getattr(node, "lineno", None), getattr(node, "end_lineno", None))
    root.children = _located_children(node)
    return root


def _located_children(node: ast.AST) -> list[SyntaxNode]:
    # Location-less nodes (arguments, comprehension, Load, operators...) are
    # flattened: their located descendants become children of `node`.
    children: list[SyntaxNode] = []
    for child in ast.iter_child_nodes(node):
        if getattr(child, "lineno", None) is not None and getattr(child, "end_lineno", None) is not None:
            children.append(_to_syntax_node(child))
        else:
            children.extend(_located_children(child))
    return children


class PythonParser(BaseParser):
    LANGUAGE = "python"

    def parse(self, text: str) -> SyntaxNode:
        try:
            with warnings.catch_warnings():
                # Invalid escape sequences in reviewed code warn on some versions.
                warnings.simplefilter("ignore")
                tree = ast.parse(text)
            return _to_syntax_node(tree)
        except SyntaxError as e:
            location = f" (line {e.lineno})" if e.lineno else ""
            raise ParseError(self.LANGUAGE, f"{e.msg}{location}") from e
        except ValueError as e:
            # ast.parse raises ValueError for source containing null bytes.
            raise ParseError(self.LANGUAGE, str(e)) from e
        except RecursionError as e:
            raise ParseError(self.LANGUAGE, "source is nested too deeply") from e
