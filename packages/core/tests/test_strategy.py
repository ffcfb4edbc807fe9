"""Tests for raw and enclosing-context patch rendering."""

import pytest

from patchwise_core.errors import MalformedDiffError
from patchwise_core.models import PatchFile
from patchwise_core.strategy import (
    build_patch_prompt,
    build_suggestion_prompt,
    raw_patch_strategy,
    smarter_context_patch_strategy,
)

OLD_CALC = """\
import os


def compute(a, b):
    total = a + b
    total *= 2
    return total


VALUE = 1
"""

CALC_PATCH = """\
@@ -5,3 +5,3 @@
     total = a + b
-    total *= 2
+    total *= 3
     return total"""

OLD_SIX_LINES = """\
def f():
    a = 1
    b = 2
    c = 3
    d = 4
    return a
"""

TWO_HUNK_PATCH = """\
@@ -2,1 +2,1 @@
-    a = 1
+    a = 10
@@ -5,1 +5,1 @@
-    d = 4
+    d = 40"""


def _file(patch, old_contents=None, filename="calc.py"):
    return PatchFile(filename=filename, patch=patch, old_contents=old_contents)


class TestRawPatchStrategy:
    def test_scenario(self):
        file = _file("@@ -1,2 +1,2 @@\n-foo\n+bar\n baz", filename="a.py")
        assert raw_patch_strategy(file) == "## a.py\n\n@@ -1,2 +1,2 @@\n1: bar\n2: baz"

    def test_ignores_old_contents(self):
        with_old = _file(CALC_PATCH, OLD_CALC)
        without_old = _file(CALC_PATCH)
        assert raw_patch_strategy(with_old) == raw_patch_strategy(without_old)

    def test_suggestion_prompt_is_always_raw(self):
        file = _file(CALC_PATCH, OLD_CALC)
        assert build_suggestion_prompt(file) == raw_patch_strategy(file)

    def test_malformed_patch_propagates(self):
        with pytest.raises(MalformedDiffError):
            raw_patch_strategy(_file("not a diff\n@@ -1 +1 @@\n x"))


class TestSmarterContextStrategy:
    def test_expands_hunk_to_enclosing_function(self):
        rendered = smarter_context_patch_strategy(_file(CALC_PATCH, OLD_CALC))
        assert rendered == (
            "## calc.py\n\n"
            "@@ -4,4 +4,4 @@\n"
            "4: def compute(a, b):\n"
            "5:     total = a + b\n"
            "6:     total *= 3\n"
            "7:     return total"
        )

    def test_without_old_contents_never_parses(self, mocker):
        parser = mocker.MagicMock()
        file = _file(CALC_PATCH)
        assert smarter_context_patch_strategy(file, parser) == raw_patch_strategy(file)
        parser.parse.assert_not_called()
        parser.lookup_context.assert_not_called()
        parser.lookup_contexts.assert_not_called()

    def test_unparseable_old_contents_falls_back_to_raw(self):
        file = _file("@@ -1,1 +1,1 @@\n-def broken(:\n+def fixed():", "def broken(:\n")
        assert smarter_context_patch_strategy(file) == raw_patch_strategy(file)

    def test_language_without_parser_falls_back_to_raw(self):
        file = _file("@@ -1,1 +1,1 @@\n-let a = 1;\n+let a = 2;", "let a = 1;\n", filename="web/app.js")
        assert smarter_context_patch_strategy(file) == raw_patch_strategy(file)

    def test_patch_beyond_old_contents_falls_back_to_raw(self):
        file = _file("@@ -40,2 +40,2 @@\n x = 1\n-y = 2\n+y = 3", "x = 1\n")
        assert smarter_context_patch_strategy(file) == raw_patch_strategy(file)

    def test_no_enclosing_node_falls_back_to_raw(self):
        old = "import os\n\n\nVALUE = 1\n"
        file = _file("@@ -2,1 +2,1 @@\n-\n+", old)
        assert smarter_context_patch_strategy(file) == raw_patch_strategy(file)

    def test_hunks_in_same_function_are_merged(self):
        rendered = smarter_context_patch_strategy(_file(TWO_HUNK_PATCH, OLD_SIX_LINES, filename="f.py"))
        assert rendered == (
            "## f.py\n\n"
            "@@ -1,6 +1,6 @@\n"
            "1: def f():\n"
            "2:     a = 10\n"
            "3:     b = 2\n"
            "4:     c = 3\n"
            "5:     d = 40\n"
            "6:     return a"
        )
        assert rendered.count("@@ -") == 1

    def test_old_contents_are_parsed_once_per_file(self, mocker):
        from patchwise_core.parsers import PythonParser

        parser = PythonParser()
        parse = mocker.spy(parser, "parse")
        file = _file(TWO_HUNK_PATCH, OLD_SIX_LINES, filename="f.py")
        assert smarter_context_patch_strategy(file, parser) == smarter_context_patch_strategy(file)
        parse.assert_called_once_with(OLD_SIX_LINES)

    def test_uses_the_given_parser(self, mocker):
        from patchwise_core.parsers import ContextResult

        parser = mocker.MagicMock()
        parser.lookup_contexts.return_value = [ContextResult(context=None)]
        file = _file(CALC_PATCH, OLD_CALC, filename="calc.unknown")
        assert smarter_context_patch_strategy(file, parser) == raw_patch_strategy(file)
        parser.lookup_contexts.assert_called_once()

    def test_is_idempotent(self):
        file = _file(CALC_PATCH, OLD_CALC)
        assert smarter_context_patch_strategy(file) == smarter_context_patch_strategy(file)

    def test_malformed_patch_propagates(self):
        with pytest.raises(MalformedDiffError):
            smarter_context_patch_strategy(_file("+orphan\n@@ -1 +1 @@\n x", OLD_CALC))


class TestBuildPatchPrompt:
    def test_scenario_without_old_contents(self):
        file = PatchFile(filename="a.py", patch="@@ -1,2 +1,2 @@\n-foo\n+bar\n baz", old_contents=None)
        assert build_patch_prompt(file) == "## a.py\n\n@@ -1,2 +1,2 @@\n1: bar\n2: baz"

    def test_is_idempotent(self):
        file = _file(TWO_HUNK_PATCH, OLD_SIX_LINES, filename="f.py")
        assert build_patch_prompt(file) == build_patch_prompt(file)

    def test_new_file_gets_raw_patch(self, mocker):
        smarter = mocker.patch("patchwise_core.strategy.smarter_context_patch_strategy")
        file = _file("@@ -0,0 +1,2 @@\n+a = 1\n+b = 2")
        assert build_patch_prompt(file) == "## calc.py\n\n@@ -0,0 +1,2 @@\n1: a = 1\n2: b = 2"
        smarter.assert_not_called()

    def test_modified_file_gets_enclosing_context(self):
        file = _file(CALC_PATCH, OLD_CALC)
        assert build_patch_prompt(file).startswith("## calc.py\n\n@@ -4,4 +4,4 @@\n4: def compute(a, b):")
