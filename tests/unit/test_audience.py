"""Unit tests for the audience and brand-safety gate."""

import pytest

from promo_producer.core.exceptions import ValidationRejection
from promo_producer.project.models import AssetReference, Provenance
from promo_producer.workflow.audience import AudienceGate, find_term

pytestmark = pytest.mark.unit


def stock(tags, url="https://cdn.example.com/clip.mp4", title=""):
    return AssetReference(url=url, provenance=Provenance.STOCK, source="pexels-video", tags=tags, title=title)


class TestFindTerm:

    def test_whole_words_only(self):
        assert find_term("women walking", ["men"]) is None
        assert find_term("two men walking", ["men"]) == "men"

    def test_plural_forms(self):
        assert find_term("three cigarettes", ["cigarette"]) == "cigarette"


class TestAudienceClassification:

    def test_single_gender(self):
        assert AudienceGate("women 50-65").audience_gender == "female"
        assert AudienceGate("men who lift").audience_gender == "male"

    def test_mixed_or_neutral(self):
        assert AudienceGate("adults interested in wellness").audience_gender is None
        assert AudienceGate("women and men").audience_gender is None
        assert AudienceGate("").audience_gender is None

    def test_mature_markers(self):
        assert AudienceGate("women over 50").is_mature_audience
        assert not AudienceGate("college students").is_mature_audience


class TestGenderRule:

    def test_opposite_gender_rejected_for_single_gender_audience(self):
        decision = AudienceGate("women 50-65").evaluate(stock(["man", "office", "laptop"]))
        assert not decision.accepted
        assert decision.rule == "gender_exclusive"
        assert decision.matched_term == "man"

    def test_same_asset_accepted_for_neutral_audience(self):
        decision = AudienceGate("adults interested in wellness").evaluate(stock(["man", "office", "laptop"]))
        assert decision.accepted

    def test_neutral_subject_overrides_gender_term(self):
        decision = AudienceGate("women 50-65").evaluate(stock(["man", "herbal", "tea"]))
        assert decision.accepted


class TestOtherRules:

    def test_youth_rejected_for_mature_audience(self):
        decision = AudienceGate("women over 50").evaluate(stock(["teenager", "woman", "park"]))
        assert decision.rule == "mature_audience"

    def test_mature_rule_runs_before_gender(self):
        decision = AudienceGate("women over 50").evaluate(stock(["boys", "soccer"]))
        assert decision.rule == "mature_audience"

    def test_global_negative_keyword(self):
        decision = AudienceGate().evaluate(stock(["friends", "beer", "bar"]))
        assert decision.rule == "negative_content"

    def test_brand_safety_keyword(self):
        decision = AudienceGate(brand_safety_keywords=["Acme"]).evaluate(stock(["acme", "bottle"]))
        assert decision.rule == "negative_content"
        assert decision.matched_term == "acme"

    def test_context_negative(self):
        gate = AudienceGate()
        candidate = stock(["party", "celebration", "friends"])
        assert gate.evaluate(candidate, context="problem feeling stressed at work").rule == "context_negative"
        assert gate.evaluate(candidate, context="cta celebrate your results").accepted

    def test_already_used(self):
        url = "https://cdn.example.com/used.mp4"
        decision = AudienceGate().evaluate(stock(["tea"], url=url), used_urls={url})
        assert decision.rule == "already_used"

    def test_candidate_not_modified(self):
        candidate = stock(["man", "office"])
        AudienceGate("women 50-65").evaluate(candidate)
        assert candidate.tags == ["man", "office"]


class TestCheck:

    def test_raises_with_decision(self):
        with pytest.raises(ValidationRejection) as exc_info:
            AudienceGate("women 50-65").check(stock(["man", "office"]))
        assert exc_info.value.rule == "gender_exclusive"
        assert exc_info.value.decision.matched_term == "man"

    def test_accepted_candidate_passes(self):
        AudienceGate("women 50-65").check(stock(["woman", "garden"]))
