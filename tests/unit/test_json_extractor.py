"""Unit tests for the JSON recovery cascade."""
import pytest

from agents.curriculum_agent.stages.json_extractor import ExtractionFailure, extract_json, extract_list


@pytest.mark.unit
class TestExtractJson:
    @pytest.mark.parametrize(
        "text",
        [
            '{"a":1}',
            'prefix ```json\n{"a":1}\n``` suffix',
            'noise {"a":1} noise',
        ],
    )
    def test_cascade_recovers_object(self, text):
        assert extract_json(text) == {"a": 1}

    def test_no_json_is_failure_value(self):
        result = extract_json("no json here")
        assert isinstance(result, ExtractionFailure)
        assert not result

    def test_untagged_fence(self):
        assert extract_json('Here you go:\n```\n{"modules": []}\n```') == {"modules": []}

    def test_greedy_span_reaches_last_brace(self):
        text = 'Result: {"outer": {"inner": [1, 2]}} thanks'
        assert extract_json(text) == {"outer": {"inner": [1, 2]}}

    def test_top_level_array_is_not_an_object(self):
        assert isinstance(extract_json("[1, 2, 3]"), ExtractionFailure)

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_input(self, text):
        assert isinstance(extract_json(text), ExtractionFailure)

    def test_second_fence_used_when_first_is_invalid(self):
        text = '```json\n{not valid}\n```\nretry:\n```json\n{"ok": true}\n```'
        assert extract_json(text) == {"ok": True}


@pytest.mark.unit
class TestExtractList:
    def test_returns_list_under_key(self):
        assert extract_list('{"sources": [{"url": "x"}]}', "sources") == [{"url": "x"}]

    def test_missing_or_wrong_type_is_empty(self):
        assert extract_list('{"sources": "nope"}', "sources") == []
        assert extract_list('{"other": []}', "sources") == []
        assert extract_list("I could not find anything.", "sources") == []
