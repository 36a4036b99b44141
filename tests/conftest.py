import cv2
import numpy as np
import pytest


@pytest.fixture
def footprint_bgr():
    """White page with a dark, foot-like ellipse and a lighter arch gap."""
    img = np.full((600, 400, 3), 255, dtype=np.uint8)
    cv2.ellipse(img, (200, 300), (90, 240), 0, 0, 360, (30, 30, 30), -1)
    cv2.ellipse(img, (260, 320), (40, 90), 0, 0, 360, (160, 160, 160), -1)
    return img


@pytest.fixture
def footprint_png(footprint_bgr):
    ok, buf = cv2.imencode(".png", footprint_bgr)
    assert ok
    return buf.tobytes()
