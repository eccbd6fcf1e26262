"""Unit tests for overlay placement geometry."""

import pytest

from promo_producer.core.config import PlacementConfig
from promo_producer.core.exceptions import ValidationError
from promo_producer.project.models import PlacementRect
from promo_producer.workflow.placement import (
    PlacementCalculator,
    PlacementRequest,
    parse_aspect_ratio,
    rects_overlap,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def calc():
    return PlacementCalculator(PlacementConfig(canvas_width=1920, canvas_height=1080, safe_margin=40))


class TestSizing:

    def test_width_fraction_and_aspect(self, calc):
        width, height = calc.size_for(PlacementRequest(size="xlarge", aspect_ratio=2.0))
        assert (width, height) == (480, 240)

    def test_max_height_cap_preserves_aspect(self, calc):
        request = PlacementRequest(size="xlarge", aspect_ratio=1.0, max_height_percent=20)
        width, height = calc.size_for(request)
        assert height == 216
        assert width == 216

    def test_tall_overlay_capped_to_safe_area(self, calc):
        width, height = calc.size_for(PlacementRequest(size="large", aspect_ratio=0.3))
        assert height == 1080 - 2 * 40
        assert width == 300

    @pytest.mark.parametrize("anchor", ["bottom-right", "top-left", "center", "lower-third-left", "custom"])
    def test_tall_overlay_stays_inside_margins(self, calc, anchor):
        rect = calc.calculate(PlacementRequest(size="large", anchor=anchor, aspect_ratio=0.3))
        assert 40 <= rect.x and rect.right <= 1920 - 40
        assert 40 <= rect.y and rect.bottom <= 1080 - 40

    def test_string_aspect_ratio(self):
        assert parse_aspect_ratio("16:9") == pytest.approx(16 / 9)
        assert parse_aspect_ratio(None) == 1.0

    def test_invalid_aspect_ratio(self):
        with pytest.raises(ValidationError):
            parse_aspect_ratio("wide")

    def test_invalid_size_tag(self):
        with pytest.raises(ValidationError):
            PlacementRequest(size="huge")


class TestPositioning:

    def test_bottom_right_respects_margin(self, calc):
        rect = calc.calculate(PlacementRequest(size="xlarge", anchor="bottom-right"))
        assert rect.right == 1920 - 40
        assert rect.bottom == 1080 - 40

    def test_custom_anchor_centers_on_percentages(self, calc):
        rect = calc.calculate(PlacementRequest(
            size="small", anchor="custom", custom_x_percent=50, custom_y_percent=50,
        ))
        assert rect.x + rect.width / 2 == pytest.approx(960, abs=1)
        assert rect.y + rect.height / 2 == pytest.approx(540, abs=1)

    def test_custom_anchor_clamped_inside_margin(self, calc):
        rect = calc.calculate(PlacementRequest(
            size="large", anchor="custom", custom_x_percent=100, custom_y_percent=100,
        ))
        assert rect.right <= 1920 - 40
        assert rect.bottom <= 1080 - 40


class TestOverlapAvoidance:

    def test_second_bottom_right_overlay_moves_to_top_left(self, calc):
        requests = [
            PlacementRequest(size="xlarge", anchor="bottom-right"),
            PlacementRequest(size="xlarge", anchor="bottom-right"),
        ]
        first, second = calc.calculate_multiple(requests)

        assert first.anchor == "bottom-right"
        assert second.anchor == "top-left"
        assert (second.x, second.y) == (40, 40)
        assert not rects_overlap(first, second)

    def test_non_corner_anchor_falls_back_to_top_left(self, calc):
        occupied = [PlacementRect(x=800, y=400, width=400, height=400)]
        rect = calc.calculate(PlacementRequest(size="small", anchor="center"), occupied)
        assert rect.anchor == "top-left"

    def test_touching_edges_count_as_overlap(self):
        a = PlacementRect(x=0, y=0, width=100, height=100)
        b = PlacementRect(x=100, y=0, width=50, height=50)
        assert rects_overlap(a, b)

    def test_separated_rects_do_not_overlap(self):
        a = PlacementRect(x=0, y=0, width=100, height=100)
        b = PlacementRect(x=101, y=0, width=50, height=50)
        assert not rects_overlap(a, b)
