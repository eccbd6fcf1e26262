"""
Placement Geometry Calculator
=============================

Pixel rectangles for logo and product overlays on the render canvas.

Sizes are a fraction of canvas width; height follows the asset's aspect
ratio. A rect that overlaps an occupied region moves to the diagonally
opposite corner. All results are clamped inside the safe margin.
"""

import logging
from dataclasses import dataclass
from typing import Optional, List, Iterable, Union

from ..core.config import PlacementConfig
from ..core.exceptions import ValidationError
from ..project.models import PlacementRect

logger = logging.getLogger(__name__)


SIZE_FRACTIONS = {
    "small": 0.08,
    "medium": 0.12,
    "large": 0.18,
    "xlarge": 0.25,
}

ANCHORS = (
    "top-left", "top-center", "top-right",
    "center-left", "center", "center-right",
    "bottom-left", "bottom-center", "bottom-right",
    "lower-third-left", "lower-third-right",
    "custom",
)

OPPOSITE_CORNER = {
    "top-left": "bottom-right",
    "bottom-right": "top-left",
    "top-right": "bottom-left",
    "bottom-left": "top-right",
}


def parse_aspect_ratio(value: Union[str, float, int, None], default: float = 1.0) -> float:
    """
    Parse an aspect ratio given as "16:9", "1.5" or a number.

    Raises:
        ValidationError: If the value is not a positive ratio
    """
    if value is None or value == "":
        return default
    try:
        if isinstance(value, str) and ":" in value:
            w, h = value.split(":", 1)
            ratio = float(w) / float(h)
        else:
            ratio = float(value)
    except (ValueError, ZeroDivisionError):
        raise ValidationError(f"Invalid aspect ratio: {value}", field="aspect_ratio", value=value)
    if ratio <= 0:
        raise ValidationError(f"Aspect ratio must be positive: {value}", field="aspect_ratio", value=value)
    return ratio


def rects_overlap(a: PlacementRect, b: PlacementRect) -> bool:
    """Whether two rects intersect. Touching edges count as overlap."""
    return not (
        a.right < b.x
        or b.right < a.x
        or a.bottom < b.y
        or b.bottom < a.y
    )


@dataclass
class PlacementRequest:
    """What to place and where it should go."""

    size: str = "medium"
    anchor: str = "bottom-right"
    aspect_ratio: float = 1.0
    custom_x_percent: Optional[float] = None  # centre point when anchor == "custom"
    custom_y_percent: Optional[float] = None
    max_width_percent: Optional[float] = None
    max_height_percent: Optional[float] = None
    label: str = ""

    def __post_init__(self):
        if self.size not in SIZE_FRACTIONS:
            raise ValidationError(
                f"Invalid size tag: {self.size}",
                field="size",
                value=self.size,
                constraint=", ".join(SIZE_FRACTIONS),
            )
        if self.anchor not in ANCHORS:
            raise ValidationError(
                f"Invalid anchor: {self.anchor}",
                field="anchor",
                value=self.anchor,
                constraint=", ".join(ANCHORS),
            )
        self.aspect_ratio = parse_aspect_ratio(self.aspect_ratio)


class PlacementCalculator:
    """
    Computes overlay rectangles.

    Usage:
        calc = PlacementCalculator(config.placement)
        logo = calc.calculate(PlacementRequest(size="medium", aspect_ratio=2.0))
    """

    def __init__(self, config: Optional[PlacementConfig] = None):
        self.config = config or PlacementConfig()

    @property
    def canvas_width(self) -> int:
        return self.config.canvas_width

    @property
    def canvas_height(self) -> int:
        return self.config.canvas_height

    @property
    def margin(self) -> int:
        return self.config.safe_margin

    def size_for(self, request: PlacementRequest) -> tuple:
        """(width, height) in pixels before positioning."""
        ratio = request.aspect_ratio
        width = self.canvas_width * SIZE_FRACTIONS[request.size]
        height = width / ratio

        max_w_pct = request.max_width_percent or self.config.max_width_percent
        max_h_pct = request.max_height_percent or self.config.max_height_percent

        if max_w_pct:
            max_w = self.canvas_width * max_w_pct / 100
            if width > max_w:
                width = max_w
                height = width / ratio

        if max_h_pct:
            max_h = self.canvas_height * max_h_pct / 100
            if height > max_h:
                height = max_h
                width = height * ratio

        # Never larger than the area inside the safe margins
        inner_w = self.canvas_width - 2 * self.margin
        inner_h = self.canvas_height - 2 * self.margin
        if width > inner_w:
            width = inner_w
            height = width / ratio
        if height > inner_h:
            height = inner_h
            width = height * ratio

        return min(round(width), inner_w), min(round(height), inner_h)

    def _position(self, anchor: str, width: int, height: int, request: PlacementRequest) -> tuple:
        m = self.margin
        fw = self.canvas_width
        fh = self.canvas_height

        if anchor == "custom":
            cx = request.custom_x_percent if request.custom_x_percent is not None else 50.0
            cy = request.custom_y_percent if request.custom_y_percent is not None else 50.0
            return fw * cx / 100 - width / 2, fh * cy / 100 - height / 2

        positions = {
            "top-left": (m, m),
            "top-center": ((fw - width) / 2, m),
            "top-right": (fw - width - m, m),
            "center-left": (m, (fh - height) / 2),
            "center": ((fw - width) / 2, (fh - height) / 2),
            "center-right": (fw - width - m, (fh - height) / 2),
            "bottom-left": (m, fh - height - m),
            "bottom-center": ((fw - width) / 2, fh - height - m),
            "bottom-right": (fw - width - m, fh - height - m),
            "lower-third-left": (m * 2, fh * 0.75 - height / 2),
            "lower-third-right": (fw - width - m * 2, fh * 0.75 - height / 2),
        }
        return positions[anchor]

    def _clamp(self, x: float, y: float, width: int, height: int) -> tuple:
        m = self.margin
        x = max(m, min(x, self.canvas_width - m - width))
        y = max(m, min(y, self.canvas_height - m - height))
        return round(x), round(y)

    def _rect(self, anchor: str, width: int, height: int, request: PlacementRequest) -> PlacementRect:
        x, y = self._position(anchor, width, height, request)
        x, y = self._clamp(x, y, width, height)
        return PlacementRect(x=x, y=y, width=width, height=height, anchor=anchor)

    def calculate(
        self,
        request: PlacementRequest,
        occupied: Iterable[PlacementRect] = (),
    ) -> PlacementRect:
        """
        Place one overlay.

        Args:
            request: Size, anchor and aspect ratio
            occupied: Regions already taken (product overlays, earlier logos)

        Returns:
            PlacementRect in integer pixels
        """
        width, height = self.size_for(request)
        rect = self._rect(request.anchor, width, height, request)

        for region in occupied:
            if rects_overlap(rect, region):
                flipped = OPPOSITE_CORNER.get(request.anchor, "top-left")
                logger.debug(f"{request.label or 'overlay'} at {request.anchor} overlaps an occupied region; moving to {flipped}")
                rect = self._rect(flipped, width, height, request)
                break

        return rect

    def calculate_multiple(
        self,
        requests: List[PlacementRequest],
        occupied: Iterable[PlacementRect] = (),
    ) -> List[PlacementRect]:
        """Place overlays in order; each placed rect is occupied for the next."""
        taken = list(occupied)
        results = []
        for request in requests:
            rect = self.calculate(request, taken)
            results.append(rect)
            taken.append(rect)
        return results
