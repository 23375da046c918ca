from __future__ import annotations

import pytest

from core.services.stamp_placer import StampPlacer


def test_large_image_is_scaled_to_fit_the_box():
    placement = StampPlacer().place(600, 800, 1000, 500)

    assert placement.scale == pytest.approx(0.26)
    assert placement.draw_width == pytest.approx(260)
    assert placement.draw_height == pytest.approx(130)
    assert placement.x == pytest.approx(304)
    assert placement.y == pytest.approx(634)


def test_tall_image_is_limited_by_height():
    placement = StampPlacer().place(612, 792, 400, 800)

    assert placement.scale == pytest.approx(0.2)
    assert placement.draw_width == pytest.approx(80)
    assert placement.draw_height == pytest.approx(160)
    assert placement.x == pytest.approx(612 - 80 - 36)
    assert placement.y == pytest.approx(792 - 160 - 36)


def test_small_image_is_never_upscaled():
    placement = StampPlacer().place(600, 800, 100, 50)

    assert placement.scale == 1
    assert (placement.draw_width, placement.draw_height) == (100, 50)
    assert (placement.x, placement.y) == (464, 714)


def test_custom_box_and_margin():
    placement = StampPlacer(max_width=100, max_height=100, margin=0).place(200, 200, 400, 200)

    assert placement.scale == pytest.approx(0.25)
    assert (placement.x, placement.y) == pytest.approx((100, 150))


@pytest.mark.parametrize(("width", "height"), [(0, 10), (10, 0), (-1, 5)])
def test_invalid_image_size(width, height):
    with pytest.raises(ValueError):
        StampPlacer().place(600, 800, width, height)
