"""Tests for shared LLM response parsing utilities."""

import pytest
from radar.common.errors import LLMResponseError
from radar.common.llm_utils import parse_llm_json, require_json_field


class TestParseLlmJson:
    def test_valid_json(self):
        assert parse_llm_json('{"key": "value"}') == {"key": "value"}

    def test_json_with_markdown_fences(self):
        raw = '```json\n{"search_query": "project = OPS"}\n```'
        assert parse_llm_json(raw) == {"search_query": "project = OPS"}

    def test_json_embedded_in_text(self):
        raw = 'Here is the result: {"similarity": 0.8} and some trailing text.'
        assert parse_llm_json(raw) == {"similarity": 0.8}

    def test_no_json_returns_empty_dict(self):
        assert parse_llm_json("This is not JSON at all") == {}

    def test_empty_string_returns_empty_dict(self):
        assert parse_llm_json("") == {}

    def test_top_level_array_returns_empty_dict(self):
        assert parse_llm_json("[1, 2]") == {}

    def test_invalid_json_with_braces_returns_empty(self):
        assert parse_llm_json('{"broken: json') == {}


class TestRequireJsonField:
    def test_returns_value(self):
        assert require_json_field('{"similarity": 0.4}', "similarity") == 0.4

    def test_missing_key_raises(self):
        with pytest.raises(LLMResponseError, match="similarity"):
            require_json_field('{"other": 1}', "similarity")
