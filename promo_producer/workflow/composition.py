"""
Composition Instructions
========================

Per-scene directives for the renderer: where text goes and how it looks,
whether and where the product overlay is shown, the logo rectangle and the
camera motion for still backgrounds.
"""

import logging
from typing import Optional, List, Iterable

from ..analysis.schema import SceneAnalysis
from ..core.config import PlacementConfig
from ..project.models import (
    CompositionInstructions,
    LogoSettings,
    PlacementRect,
    Scene,
    SceneType,
    TextPlacement,
)
from .placement import PlacementCalculator, PlacementRequest

logger = logging.getLogger(__name__)


TEXT_Y = {"top": 12, "center": 50, "lower-third": 82}
TEXT_X = {"left": 15, "center": 50, "right": 85}
OVERLAY_XY = {"left": 10, "top": 10, "center": 50, "right": 90, "bottom": 90}

# Tried in order when the recommended text zone is busy
SAFE_ZONE_PRIORITY = ("lower-third", "top", "center")

FONT_SIZES = {
    "title": 72,
    "headline": 56,
    "subheadline": 42,
    "body": 36,
    "caption": 28,
}

LINE_SPACING = 8
MAX_TEXT_Y = 95

KEN_BURNS = {
    SceneType.HOOK: "zoom-in",
    SceneType.PROBLEM: "zoom-in",
    SceneType.BENEFIT: "pan-right",
    SceneType.FEATURE: "pan-right",
    SceneType.STORY: "pan-left",
    SceneType.TESTIMONIAL: "zoom-in-slow",
    SceneType.PRODUCT: "zoom-out",
    SceneType.CTA: "zoom-out",
}
DEFAULT_KEN_BURNS = "zoom-in-slow"


def font_size(style: str) -> int:
    return FONT_SIZES.get(style, FONT_SIZES["body"])


def camera_motion(scene: Scene) -> str:
    """Ken Burns motion for still images; video backgrounds stay static."""
    if scene.background.active == "video":
        return "static"
    return KEN_BURNS.get(scene.type, DEFAULT_KEN_BURNS)


class CompositionPlanner:
    """
    Builds CompositionInstructions for scenes.

    Usage:
        planner = CompositionPlanner(config.placement, project.logo)
        scene.composition = planner.build(scene, scene.analysis)
    """

    def __init__(
        self,
        config: Optional[PlacementConfig] = None,
        logo: Optional[LogoSettings] = None,
    ):
        self.config = config or PlacementConfig()
        self.logo = logo or LogoSettings()
        self.calculator = PlacementCalculator(self.config)

    # -------------------------------------------------------------------------
    # Text
    # -------------------------------------------------------------------------

    @staticmethod
    def _text_zone(analysis: SceneAnalysis) -> str:
        wanted = analysis.recommendations.text_position.vertical
        safe = analysis.frame.safe_text_zones
        if not safe or wanted in safe:
            return wanted
        for zone in SAFE_ZONE_PRIORITY:
            if zone in safe:
                return zone
        return "lower-third"

    def _text_placements(self, scene: Scene, analysis: SceneAnalysis) -> List[TextPlacement]:
        hints = analysis.recommendations
        base_y = TEXT_Y[self._text_zone(analysis)]
        x = TEXT_X[hints.text_position.horizontal]

        return [
            TextPlacement(
                text=overlay.text,
                style=overlay.style,
                x_percent=x,
                y_percent=min(base_y + i * LINE_SPACING, MAX_TEXT_Y),
                font_size=font_size(overlay.style),
                color=hints.text_color,
                shadow=hints.needs_text_shadow,
                background=hints.needs_text_background,
            )
            for i, overlay in enumerate(scene.text_overlays)
        ]

    # -------------------------------------------------------------------------
    # Overlays
    # -------------------------------------------------------------------------

    def _product_rect(
        self,
        scene: Scene,
        calculator: PlacementCalculator,
        x_percent: float,
        y_percent: float,
        occupied: Iterable[PlacementRect],
    ) -> PlacementRect:
        request = PlacementRequest(
            size=scene.product_overlay.size,
            anchor="custom",
            aspect_ratio=scene.product_overlay.aspect_ratio or 1.0,
            custom_x_percent=x_percent,
            custom_y_percent=y_percent,
            label="product",
        )
        return calculator.calculate(request, occupied)

    def _logo_rect(
        self,
        scene: Scene,
        calculator: PlacementCalculator,
        occupied: List[PlacementRect],
    ) -> Optional[PlacementRect]:
        if not (self.logo.enabled and self.logo.url and scene.show_logo):
            return None
        request = PlacementRequest(
            size=self.logo.size,
            anchor=self.logo.anchor,
            aspect_ratio=self.logo.aspect_ratio or 1.0,
            label="logo",
        )
        return calculator.calculate(request, occupied)

    def _calculator_for(self, canvas: Optional[PlacementConfig]) -> PlacementCalculator:
        return PlacementCalculator(canvas) if canvas is not None else self.calculator

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def build(
        self,
        scene: Scene,
        analysis: Optional[SceneAnalysis] = None,
        canvas: Optional[PlacementConfig] = None,
        occupied: Iterable[PlacementRect] = (),
    ) -> CompositionInstructions:
        """
        Instructions for one scene from its analysis.

        Args:
            scene: Scene with text overlays and product overlay settings
            analysis: Validated analysis; None falls back to fixed stacking
            canvas: Canvas settings overriding the planner's own
            occupied: Regions already taken on the canvas

        Returns:
            CompositionInstructions
        """
        if analysis is None:
            return self.fallback(scene, canvas=canvas, occupied=occupied)

        calculator = self._calculator_for(canvas)
        taken = list(occupied)
        hints = analysis.recommendations

        instructions = CompositionInstructions(
            text_placements=self._text_placements(scene, analysis),
            camera_motion=camera_motion(scene),
            from_analysis=True,
        )

        wants_product = scene.product_overlay.enabled and bool(scene.product_overlay.url)
        if wants_product and hints.product_overlay_safe:
            rect = self._product_rect(
                scene,
                calculator,
                OVERLAY_XY[hints.product_overlay_position.x],
                OVERLAY_XY[hints.product_overlay_position.y],
                taken,
            )
            instructions.product_overlay_enabled = True
            instructions.product_overlay_rect = rect
            taken.append(rect)
        elif wants_product:
            logger.info(f"Scene {scene.id}: product overlay disabled, frame has no safe region")

        instructions.logo_rect = self._logo_rect(scene, calculator, taken)
        return instructions

    def fallback(
        self,
        scene: Scene,
        canvas: Optional[PlacementConfig] = None,
        occupied: Iterable[PlacementRect] = (),
    ) -> CompositionInstructions:
        """Instructions without analysis: text stacked from the lower third."""
        calculator = self._calculator_for(canvas)
        taken = list(occupied)

        instructions = CompositionInstructions(
            text_placements=[
                TextPlacement(
                    text=overlay.text,
                    style=overlay.style,
                    x_percent=50,
                    y_percent=TEXT_Y["lower-third"] + i * LINE_SPACING,
                    font_size=font_size(overlay.style),
                )
                for i, overlay in enumerate(scene.text_overlays)
            ],
            camera_motion=camera_motion(scene),
            from_analysis=False,
        )

        if scene.product_overlay.enabled and scene.product_overlay.url:
            rect = self._product_rect(scene, calculator, OVERLAY_XY["right"], OVERLAY_XY["bottom"], taken)
            instructions.product_overlay_enabled = True
            instructions.product_overlay_rect = rect
            taken.append(rect)

        instructions.logo_rect = self._logo_rect(scene, calculator, taken)
        return instructions
