import numpy as np
import pytest

import config
from footprint_mesh import (SampledPoint, compose_view, mesh_summary, mesh_threshold,
                            render_mesh, scan_footprint)


def test_threshold_formula_and_clamp():
    assert mesh_threshold(0) == 40
    assert mesh_threshold(65) == 170
    assert mesh_threshold(100) == 240
    assert mesh_threshold(500) == 240
    assert mesh_threshold(-10) == 40


@pytest.mark.parametrize("w, h", [(0, 300), (200, 0), (-10, 300), (200, -1), (None, 300)])
def test_non_positive_display_is_noop(footprint_bgr, w, h):
    assert list(scan_footprint(footprint_bgr, w, h, 65, 130)) == []


def test_scan_is_lazy(footprint_bgr):
    gen = scan_footprint(footprint_bgr, 200, 300, 65, 130)
    first = next(gen)
    assert isinstance(first, SampledPoint)


def test_black_image_fills_the_grid():
    img = np.zeros((300, 200, 3), np.uint8)
    points = list(scan_footprint(img, 200, 300, 65, 130))
    # 50 × 75 low-res buffer, stride 3 → 17 × 25 samples
    assert len(points) == 17 * 25
    assert all(p.intensity == 1.0 for p in points)
    assert points[0] == SampledPoint(0.0, 0.0, 1.0)
    assert points[1].x == pytest.approx(3 / config.MESH_SCALE_FACTOR)
    assert points[17].y == pytest.approx(3 / config.MESH_SCALE_FACTOR)


def test_white_image_has_no_points():
    img = np.full((300, 200, 3), 255, np.uint8)
    assert list(scan_footprint(img, 200, 300, 100, 130)) == []


def test_points_stay_inside_display(footprint_bgr):
    points = list(scan_footprint(footprint_bgr, 200, 300, 65, 130))
    assert points
    for p in points:
        assert 0 <= p.x < 200 and 0 <= p.y < 300
        assert 0 < p.intensity <= 1


def test_scan_is_deterministic(footprint_bgr):
    a = list(scan_footprint(footprint_bgr, 200, 300, 65, 130))
    b = list(scan_footprint(footprint_bgr, 200, 300, 65, 130))
    assert a == b


@pytest.mark.parametrize("contrast", [50, 130, 250])
def test_sensitivity_is_monotonic(footprint_bgr, contrast):
    low = list(scan_footprint(footprint_bgr, 200, 300, 0, contrast))
    high = list(scan_footprint(footprint_bgr, 200, 300, 100, contrast))
    assert len(low) <= len(high)


def test_tiers_and_radius():
    assert SampledPoint(0, 0, 0.61).tier == "high"
    assert SampledPoint(0, 0, 0.6).tier == "medium"
    assert SampledPoint(0, 0, 0.31).tier == "medium"
    assert SampledPoint(0, 0, 0.3).tier == "low"
    assert SampledPoint(0, 0, 0.0).radius == pytest.approx(1.0)
    assert SampledPoint(0, 0, 1.0).radius == pytest.approx(3.5)


def test_render_mesh_draws_dots():
    points = [SampledPoint(20, 20, 0.9), SampledPoint(60, 20, 0.5), SampledPoint(100, 20, 0.1)]
    layer = render_mesh(points, 200, 100)
    assert layer.shape == (100, 200, 4)
    assert layer[20, 20, 3] > 200          # alpha 0.9
    assert tuple(layer[20, 20, :3]) == (239, 68, 68)
    assert layer[20, 60, 3] > 150
    assert layer[50, 150, 3] == 0


def test_render_mesh_empty():
    layer = render_mesh([], 50, 40)
    assert layer.shape == (40, 50, 4)
    assert not layer.any()
    assert render_mesh([], 0, 40).size == 0


def test_compose_view_modes():
    base = np.full((40, 50, 3), 100, np.uint8)
    empty = np.zeros((40, 50, 4), np.uint8)
    assert np.array_equal(compose_view(base, empty, "image"), base)
    assert np.array_equal(compose_view(base, empty, "both"), base)
    assert not compose_view(base, empty, "mesh").any()
    assert np.array_equal(compose_view(base, None, "both"), base)

    solid = np.zeros((40, 50, 4), np.uint8)
    solid[..., :3] = (239, 68, 68)
    solid[..., 3] = 255
    both = compose_view(base, solid, "both")
    # screen never darkens
    assert (both >= base).all()
    assert np.array_equal(compose_view(base, solid, "mesh")[0, 0], [239, 68, 68])


def test_mesh_summary(footprint_bgr):
    points = list(scan_footprint(footprint_bgr, 200, 300, 65, 130))
    s = mesh_summary(points)
    assert s["total"] == len(points)
    assert s["high"] + s["medium"] + s["low"] == s["total"]
    assert mesh_summary([]) == {"high": 0, "medium": 0, "low": 0, "total": 0}
