"""
Prompt Builders
===============

Text sent to generation and search providers: image prompts, stock video
queries, music prompts and regeneration prompt fixes.
"""

import logging
from typing import Optional, List, Iterable

from ..project.models import QualityIssue, Scene, SceneType
from .audience import find_term

logger = logging.getLogger(__name__)


DEFAULT_NEGATIVE_PROMPT = (
    "text, watermark, logo, garbled letters, fake UI, distorted hands, "
    "distorted faces, blurry, low quality, cartoon"
)

MUSIC_PROMPTS = {
    "professional": "Uplifting inspiring corporate background music, positive hopeful energy, "
                    "gentle piano and warm strings, encouraging and optimistic tone",
    "friendly": "Warm uplifting acoustic background music, hopeful fingerpicked guitar, "
                "welcoming and positive, joyful gentle feeling",
    "energetic": "Upbeat motivational background music, inspiring positive sound, "
                 "building hopeful energy, optimistic and dynamic, confident",
    "calm": "Peaceful uplifting ambient music, soft hopeful piano, serene and positive, "
            "calming but optimistic",
    "documentary": "Inspiring documentary background music, hopeful emotional strings, "
                   "uplifting storytelling feel, positive journey",
    "wellness": "Uplifting wellness music, hopeful piano with warm ambient pads, "
                "nurturing and positive, healing optimistic atmosphere",
}


# =============================================================================
# Images
# =============================================================================


def build_image_prompt(scene: Scene, style_modifiers: Iterable[str] = ()) -> str:
    """Visual direction plus house style modifiers."""
    base = scene.visual_direction.strip() or scene.narration.strip() or scene.type.value
    modifiers = [m for m in style_modifiers if m]
    if not modifiers:
        return base
    return f"{base.rstrip('.')}. {', '.join(modifiers)}"


# =============================================================================
# Stock Video
# =============================================================================


NARRATION_KEYWORDS = (
    (("menopause",), "wellness relaxation health"),
    (("sleep",), "peaceful sleep relaxation bedroom"),
    (("energy",), "active healthy lifestyle energetic"),
    (("natural", "herbal"), "herbs botanical plants nature"),
    (("stress",), "calm meditation relaxation peaceful"),
)

SCENE_TYPE_QUERIES = {
    SceneType.HOOK: "concerned thinking wellness health",
    SceneType.BENEFIT: "happy smiling healthy lifestyle",
    SceneType.TESTIMONIAL: "satisfied happy smiling portrait",
    SceneType.STORY: "transformation journey wellness",
    SceneType.CTA: "confident smiling action positive",
}


def demographic_prefix(audience: Optional[str]) -> str:
    """Age and gender words that steer stock search toward the audience."""
    audience = (audience or "").lower()
    prefix = ""

    if any(m in audience for m in ("40", "50", "60", "mature", "middle", "menopause")):
        prefix = "mature middle-aged adult "
    elif any(m in audience for m in ("senior", "elderly")):
        prefix = "senior elderly older adult "
    elif any(m in audience for m in ("young", "20", "millennial")):
        prefix = "young adult "
    elif find_term(audience, ("women", "men")):
        prefix = "adult "

    if find_term(audience, ("women", "woman", "female")):
        prefix += "woman female "
    elif find_term(audience, ("men", "man", "male")):
        prefix += "man male "

    return prefix


def build_video_search_query(scene: Scene, audience: Optional[str] = None) -> str:
    """
    Stock video query for a scene.

    An explicit search query wins; otherwise keywords come from the
    narration, then from the scene type. The audience prefix is always added.
    """
    prefix = demographic_prefix(audience)
    if scene.search_query:
        return f"{prefix}{scene.search_query}".strip()

    narration = scene.narration.lower()
    for triggers, keywords in NARRATION_KEYWORDS:
        if any(t in narration for t in triggers):
            return f"{prefix}{keywords}".strip()

    keywords = SCENE_TYPE_QUERIES.get(scene.type, "wellness lifestyle")
    return f"{prefix}{keywords}".strip()


# =============================================================================
# Music
# =============================================================================


def build_music_prompt(style: Optional[str]) -> str:
    return MUSIC_PROMPTS.get(style or "professional", MUSIC_PROMPTS["professional"])


# =============================================================================
# Regeneration
# =============================================================================


CATEGORY_FIXES = {
    "ai_artifacts": "photorealistic, no text overlays, no UI elements, clean image",
    "content_match": "focus on the main subject clearly visible",
    "technical": "high resolution, sharp focus, professional quality",
    "composition": "balanced composition, clear subject, uncluttered background",
}

BRAND_FIXES = (
    ("lighting", "warm golden natural lighting, soft shadows"),
    ("color", "earth tones, warm browns and greens, natural palette"),
    ("clinical", "cozy home environment, natural textures, organic materials"),
    ("corporate", "cozy home environment, natural textures, organic materials"),
)

AVOID_LIST = "garbled text, fake UI, distorted features, cold clinical lighting, blue/gray tones"


def improve_prompt(prompt: str, issues: Iterable[QualityIssue], attempt: int = 1) -> str:
    """
    Rewrite a prompt to address detected issues.

    Args:
        prompt: Prompt used for the rejected asset
        issues: Issues from the quality score
        attempt: 1-based regeneration attempt; later attempts simplify more

    Returns:
        Improved prompt ending in an avoid list
    """
    fixes: List[str] = []

    for issue in issues:
        if issue.category == "brand_compliance":
            description = issue.description.lower()
            fixes.extend(fix for term, fix in BRAND_FIXES if term in description)
        elif issue.category in CATEGORY_FIXES:
            fixes.append(CATEGORY_FIXES[issue.category])

    if attempt >= 2:
        fixes.append("simple composition, single clear subject")
    if attempt >= 3:
        fixes.append("minimalist, clean, professional photography style")

    improved = prompt.rstrip(". ")
    unique = list(dict.fromkeys(fixes))
    if unique:
        improved = f"{improved}. {', '.join(unique)}"

    return f"{improved}. Avoid: {AVOID_LIST}"
