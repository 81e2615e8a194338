"""Tests for cleaning and parsing JSON returned by the chat model."""

import json

import pytest

from autoapply.errors import MalformedCollaboratorResponse
from autoapply.json_cleanup import clean_json, parse_json_array, parse_json_object


class TestCleanJson:
    def test_clean_json_unchanged(self):
        raw = '{"name": "Ana", "skills": ["Go", "SQL"]}'
        assert clean_json(raw) == raw

    def test_strips_code_fences(self):
        raw = '```json\n{"a": 1}\n```'
        assert clean_json(raw) == '{"a": 1}'

    def test_drops_chatter_around_object(self):
        raw = 'Here is the result:\n{"a": {"b": 2}}\nHope this helps!'
        assert clean_json(raw) == '{"a": {"b": 2}}'

    def test_closes_truncated_object(self):
        raw = '{"a": [1, 2, {"b": 3'
        fixed = clean_json(raw)
        assert json.loads(fixed) == {"a": [1, 2, {"b": 3}]}

    def test_closes_unterminated_string(self):
        fixed = clean_json('{"summary": "Senior dev')
        assert json.loads(fixed) == {"summary": "Senior dev"}

    def test_braces_inside_strings_are_ignored(self):
        raw = '{"text": "use {curly} and [square]"} trailing'
        assert clean_json(raw) == '{"text": "use {curly} and [square]"}'

    def test_idempotent(self):
        once = clean_json('```\n{"a": [1, 2\n')
        assert clean_json(once) == once

    def test_array_opener(self):
        assert clean_json('scores: [{"job_id": "x", "score": 5}] done', "[") == \
            '[{"job_id": "x", "score": 5}]'


class TestParse:
    def test_parse_object(self):
        assert parse_json_object('```json\n{"ok": true}\n```') == {"ok": True}

    def test_parse_object_rejects_garbage(self):
        with pytest.raises(MalformedCollaboratorResponse):
            parse_json_object("I could not read that resume.")

    def test_parse_array(self):
        assert parse_json_array('[{"job_id": "a", "score": 90}]') == [{"job_id": "a", "score": 90}]

    def test_parse_array_unwraps_single_list_object(self):
        assert parse_json_array('{"scores": [{"job_id": "a"}]}') == [{"job_id": "a"}]

    def test_parse_array_rejects_ambiguous_object(self):
        with pytest.raises(MalformedCollaboratorResponse):
            parse_json_array('{"a": [1], "b": [2]}')
