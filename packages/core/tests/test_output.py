from patchwise_core.models import FixRecord
from patchwise_core.output import parse_fix_records, parse_xml_review

XML_REVIEW = """\
Here is my review.
<review>
  <suggestion>
    <describe>Loads the user profile</describe>
    <type>bug</type>
    <comment>The lookup can return None & the caller dereferences it.</comment>
    <code>
    ```python
    if profile is None:
        return default
    ```
    </code>
    <filename>app/profile.py</filename>
  </suggestion>
  <suggestion>
    <describe>Missing filename</describe>
    <type>style</type>
    <comment>Dropped.</comment>
    <code></code>
  </suggestion>
</review>
"""


class TestParseXmlReview:
    def test_parses_complete_suggestion(self):
        suggestions = parse_xml_review(XML_REVIEW)
        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.filename == "app/profile.py"
        assert suggestion.type == "bug"
        assert "None & the caller" in suggestion.comment
        assert suggestion.code == "```python\nif profile is None:\n    return default\n```"

    def test_empty_review(self):
        assert parse_xml_review("<review></review>") == []

    def test_none_and_plain_text(self):
        assert parse_xml_review(None) == []
        assert parse_xml_review("Looks good to me.") == []

    def test_suggestion_without_code_is_kept(self):
        raw = "<suggestion><comment>Rename it.</comment><filename>a.py</filename></suggestion>"
        suggestion = parse_xml_review(raw)[0]
        assert suggestion.code == ""
        assert str(suggestion) == "Rename it."


class TestParseFixRecords:
    def test_plain_json_list(self):
        raw = '[{"comment": "c", "code": "x = 1", "lineStart": 3, "lineEnd": 4}]'
        assert parse_fix_records(raw) == [FixRecord("c", "x = 1", 3, 4)]

    def test_fenced_json(self):
        raw = '```json\n[{"comment": "c", "code": "y = `a`", "lineStart": 1, "lineEnd": 1}]\n```'
        assert parse_fix_records(raw) == [FixRecord("c", "y = `a`", 1, 1)]

    def test_single_object(self):
        raw = '{"comment": "c", "code": "z", "lineStart": "2", "lineEnd": 2.0}'
        assert parse_fix_records(raw) == [FixRecord("c", "z", 2, 2)]

    def test_invalid_json_returns_empty(self):
        assert parse_fix_records("not json") == []
        assert parse_fix_records("") == []

    def test_drops_unplaceable_records(self):
        raw = """[
            {"comment": "zero", "code": "a", "lineStart": 0, "lineEnd": 1},
            {"comment": "reversed", "code": "b", "lineStart": 5, "lineEnd": 2},
            {"comment": "bool", "code": "c", "lineStart": true, "lineEnd": 1},
            {"comment": "no code", "lineStart": 1, "lineEnd": 1},
            {"comment": "fraction", "code": "d", "lineStart": 1.5, "lineEnd": 2},
            "not an object",
            {"comment": "ok", "code": "e", "lineStart": 7, "lineEnd": 9}
        ]"""
        assert parse_fix_records(raw) == [FixRecord("ok", "e", 7, 9)]

    def test_non_list_payload(self):
        assert parse_fix_records("42") == []
