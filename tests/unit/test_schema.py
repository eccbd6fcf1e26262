"""Unit tests for decoding vision analysis responses."""

import json

import pytest

from conftest import make_analysis
from promo_producer.analysis.schema import decode_scene_analysis, extract_json_object
from promo_producer.core.exceptions import AnalysisDecodeError

pytestmark = pytest.mark.unit


def payload(**overrides):
    data = make_analysis().model_dump(exclude={"analysis_model"})
    data.update(overrides)
    return data


class TestExtractJson:

    def test_object_inside_prose(self):
        text = 'Here is my analysis:\n```json\n{"a": 1}\n```\nLet me know.'
        assert extract_json_object(text) == {"a": 1}

    def test_skips_unbalanced_braces(self):
        assert extract_json_object('Scores {approx} follow {"a": {"b": 2}}') == {"a": {"b": 2}}

    @pytest.mark.parametrize("text", ["", "no json here", "[1, 2, 3]"])
    def test_no_object(self, text):
        with pytest.raises(AnalysisDecodeError):
            extract_json_object(text)


class TestDecodeSceneAnalysis:

    def test_valid_response(self):
        analysis = decode_scene_analysis(f"Analysis:\n{json.dumps(payload())}")
        assert analysis.content_match_score == 90
        assert analysis.recommendations.text_position.vertical == "lower-third"

    def test_missing_field_is_rejected(self):
        data = payload()
        del data["technical_score"]

        with pytest.raises(AnalysisDecodeError) as exc_info:
            decode_scene_analysis(json.dumps(data))

        assert "technical_score" in exc_info.value.details["fields"]

    def test_out_of_range_score_is_rejected(self):
        with pytest.raises(AnalysisDecodeError):
            decode_scene_analysis(json.dumps(payload(composition_score=140)))

    def test_bad_color_is_rejected(self):
        data = payload()
        data["recommendations"]["text_color"] = "white"
        with pytest.raises(AnalysisDecodeError):
            decode_scene_analysis(json.dumps(data))

    def test_unknown_framing_is_rejected(self):
        with pytest.raises(AnalysisDecodeError):
            decode_scene_analysis(json.dumps(payload(framing="dutch_angle")))

    def test_extra_fields_ignored(self):
        analysis = decode_scene_analysis(json.dumps(payload(notes="looks great")))
        assert analysis.mood == "calm"
