"""
Content/Audience Validation Gate
================================

Accept/reject decision for a candidate asset given the project's target
audience, brand-safety keywords, scene context and already-used URLs.

Rules run in order and the first rejection wins:
1. mature_audience   - youth content for a mature audience
2. gender_exclusive  - opposite-gender content for a single-gender audience
3. negative_content  - globally unsafe or brand-unsafe terms
   context_negative  - terms that clash with the scene's subject
4. already_used      - the URL is already used in this project
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Iterable, List, Tuple

from ..core.exceptions import ValidationRejection
from ..project.models import AssetReference, Scene

logger = logging.getLogger(__name__)


# =============================================================================
# Vocabularies
# =============================================================================


MATURE_AUDIENCE_MARKERS = ("40", "50", "60", "mature", "middle", "menopause", "senior", "elderly")

YOUTH_TERMS = (
    "child", "children", "kid", "kids", "teen", "teens", "teenager", "teenagers",
    "baby", "babies", "infant", "toddler", "boy", "boys", "girl", "girls", "youth",
)

FEMALE_TERMS = ("woman", "women", "female", "females", "lady", "ladies", "girl", "girls", "mother", "wife")
MALE_TERMS = (
    "man", "men", "male", "males", "gentleman", "gentlemen", "boy", "boys",
    "businessman", "guy", "guys", "father", "husband",
)
BOTH_GENDER_MARKERS = ("everyone", "all genders", "unisex", "couples", "families", "people", "adults")

NEUTRAL_TERMS = (
    "nature", "landscape", "abstract", "texture", "flower", "flowers", "plant", "plants",
    "food", "product", "bottle", "object", "herb", "herbs", "tea", "candle", "spa", "botanical",
)

NEGATIVE_KEYWORDS = (
    "smoking", "cigarette", "alcohol", "beer", "wine", "violence", "weapon", "gun",
    "blood", "injury", "accident", "crash", "death", "funeral", "drugs", "needle",
    "syringe", "inappropriate", "suggestive", "provocative",
)

# (context triggers, forbidden terms)
CONTEXT_NEGATIVES = (
    (("weight", "scale", "diet"), ("smoking", "cigarette")),
    (("frustration", "frustrated", "struggle", "struggling", "stress", "stressed"),
     ("smoking", "drinking", "party", "celebration")),
)


def _term_pattern(term: str) -> "re.Pattern":
    return re.compile(r"\b" + re.escape(term.lower()) + r"(?:s|es)?\b")


def find_term(text: str, terms: Iterable[str]) -> Optional[str]:
    """First term found in text as a whole word (plural forms allowed)."""
    for term in terms:
        term = term.strip()
        if term and _term_pattern(term).search(text):
            return term
    return None


def scene_context(scene: Scene) -> str:
    """Free text describing what a scene is about."""
    return " ".join([scene.type.value, scene.narration, scene.visual_direction]).lower()


@dataclass
class GateDecision:
    """Outcome of evaluating one candidate."""

    accepted: bool
    rule: Optional[str] = None
    reason: str = ""
    matched_term: Optional[str] = None
    asset_url: Optional[str] = None

    @classmethod
    def accept(cls, asset_url: Optional[str] = None) -> "GateDecision":
        return cls(accepted=True, asset_url=asset_url)

    def to_dict(self):
        return {
            "accepted": self.accepted,
            "rule": self.rule,
            "reason": self.reason,
            "matched_term": self.matched_term,
            "asset_url": self.asset_url,
        }


class AudienceGate:
    """
    Audience and brand-safety gate for stock and generated candidates.

    Usage:
        gate = AudienceGate("women 45-65 going through menopause", ["competitor"])
        decision = gate.evaluate(asset, context=scene_context(scene), used_urls=ctx.used_urls)
    """

    def __init__(
        self,
        audience: Optional[str] = None,
        brand_safety_keywords: Optional[List[str]] = None,
        extra_negative_keywords: Optional[List[str]] = None,
    ):
        self.audience = (audience or "").lower()
        self.brand_safety_keywords = [k.lower() for k in brand_safety_keywords or [] if k.strip()]
        self.negative_keywords = NEGATIVE_KEYWORDS + tuple(k.lower() for k in extra_negative_keywords or [])

    # -------------------------------------------------------------------------
    # Audience classification
    # -------------------------------------------------------------------------

    @property
    def is_mature_audience(self) -> bool:
        return any(marker in self.audience for marker in MATURE_AUDIENCE_MARKERS)

    def _audience_genders(self) -> Tuple[bool, bool]:
        female = find_term(self.audience, FEMALE_TERMS) is not None
        male = find_term(self.audience, MALE_TERMS) is not None
        return female, male

    @property
    def is_single_gender(self) -> bool:
        return self.audience_gender is not None

    @property
    def audience_gender(self) -> Optional[str]:
        """'female', 'male' or None for mixed/unspecified audiences."""
        if find_term(self.audience, BOTH_GENDER_MARKERS):
            return None
        female, male = self._audience_genders()
        if female and not male:
            return "female"
        if male and not female:
            return "male"
        return None

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(
        self,
        candidate: AssetReference,
        context: Optional[str] = None,
        used_urls: Iterable[str] = (),
    ) -> GateDecision:
        """
        Evaluate a candidate. The candidate is never modified.

        Args:
            candidate: Asset with metadata (tags, title, description, uploader)
            context: Scene context text (type, narration, visual direction)
            used_urls: URLs already used in this project

        Returns:
            GateDecision
        """
        text = candidate.metadata_text()
        url = candidate.url

        decision = (
            self._check_mature(text)
            or self._check_gender(text)
            or self._check_negative(text)
            or self._check_context(text, (context or "").lower())
            or self._check_used(url, used_urls)
        )
        if decision is None:
            return GateDecision.accept(url)

        decision.asset_url = url
        logger.info(f"Gate rejected {candidate.source or 'candidate'} ({decision.rule}): {decision.reason}")
        return decision

    def check(
        self,
        candidate: AssetReference,
        context: Optional[str] = None,
        used_urls: Iterable[str] = (),
    ) -> None:
        """
        Evaluate a candidate that must be accepted, such as an uploaded asset.

        Raises:
            ValidationRejection: If the candidate is rejected
        """
        decision = self.evaluate(candidate, context=context, used_urls=used_urls)
        if not decision.accepted:
            raise ValidationRejection(
                decision.reason,
                rule=decision.rule,
                asset_url=decision.asset_url,
                decision=decision,
            )

    def _check_mature(self, text: str) -> Optional[GateDecision]:
        if not self.is_mature_audience:
            return None
        term = find_term(text, YOUTH_TERMS)
        if term:
            return GateDecision(
                accepted=False,
                rule="mature_audience",
                reason=f"Youth content '{term}' for a mature audience",
                matched_term=term,
            )
        return None

    def _check_gender(self, text: str) -> Optional[GateDecision]:
        gender = self.audience_gender
        if gender is None:
            return None

        own_terms, other_terms = (FEMALE_TERMS, MALE_TERMS) if gender == "female" else (MALE_TERMS, FEMALE_TERMS)
        term = find_term(text, other_terms)
        if term is None:
            return None
        if find_term(text, own_terms) or find_term(text, NEUTRAL_TERMS):
            return None
        return GateDecision(
            accepted=False,
            rule="gender_exclusive",
            reason=f"Content '{term}' does not match a {gender} audience",
            matched_term=term,
        )

    def _check_negative(self, text: str) -> Optional[GateDecision]:
        term = find_term(text, self.negative_keywords)
        if term:
            return GateDecision(
                accepted=False,
                rule="negative_content",
                reason=f"Unsafe content '{term}'",
                matched_term=term,
            )
        term = find_term(text, self.brand_safety_keywords)
        if term:
            return GateDecision(
                accepted=False,
                rule="negative_content",
                reason=f"Brand-safety keyword '{term}'",
                matched_term=term,
            )
        return None

    def _check_context(self, text: str, context: str) -> Optional[GateDecision]:
        if not context:
            return None
        for triggers, forbidden in CONTEXT_NEGATIVES:
            trigger = find_term(context, triggers)
            if not trigger:
                continue
            term = find_term(text, forbidden)
            if term:
                return GateDecision(
                    accepted=False,
                    rule="context_negative",
                    reason=f"'{term}' clashes with a scene about {trigger}",
                    matched_term=term,
                )
        return None

    def _check_used(self, url: str, used_urls: Iterable[str]) -> Optional[GateDecision]:
        if url and url in set(used_urls):
            return GateDecision(
                accepted=False,
                rule="already_used",
                reason="Asset already used in this project",
            )
        return None
