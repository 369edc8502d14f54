"""Tests for shared LLM response parsing utilities."""

from memora.common.llm_utils import coerce_str_list, parse_llm_json


class TestParseLlmJson:
    def test_valid_json(self):
        assert parse_llm_json('{"key": "value"}') == {"key": "value"}

    def test_json_with_markdown_fences(self):
        raw = '```json\n{"expandedQuery": "birthday", "concepts": ["party"]}\n```'
        assert parse_llm_json(raw) == {"expandedQuery": "birthday", "concepts": ["party"]}

    def test_json_embedded_in_text(self):
        raw = 'Here is the result: {"key": "value"} and some trailing text.'
        assert parse_llm_json(raw) == {"key": "value"}

    def test_no_json_returns_empty_dict(self):
        assert parse_llm_json("This is not JSON at all") == {}

    def test_empty_returns_empty_dict(self):
        assert parse_llm_json("") == {}
        assert parse_llm_json(None) == {}

    def test_non_object_returns_empty_dict(self):
        assert parse_llm_json('["a", "b"]') == {}
        assert parse_llm_json("42") == {}

    def test_invalid_json_with_braces_returns_empty(self):
        assert parse_llm_json('{"broken: json') == {}


class TestCoerceStrList:
    def test_keeps_non_empty_strings(self):
        assert coerce_str_list(["a", " b ", "", 3, None]) == ["a", "b"]

    def test_non_list(self):
        assert coerce_str_list("a") == []
        assert coerce_str_list(None) == []
