"""
calibration.py
Measurement bands (forefoot / arch / heel) and the drag state machine that
moves and resizes them.

Positions and widths are percentages of the displayed image. Invariants kept
after every interaction:
  5 ≤ width ≤ 100 − x,   0 ≤ x,   0 ≤ y ≤ 100
"""

import logging
from dataclasses import dataclass, replace

import cv2
import numpy as np

import config

logger = logging.getLogger(__name__)

BAND_KEYS = ("forefoot", "arch", "heel")
ACTIONS   = ("move", "resize-left", "resize-right")

_EDIT_EPS = 1e-6


@dataclass
class MeasurementBand:
    x:     float
    y:     float
    width: float

    @property
    def right(self) -> float:
        return self.x + self.width


def default_bands() -> dict:
    return {k: MeasurementBand(**config.DEFAULT_BANDS[k]) for k in BAND_KEYS}


def _clamp(value, lo, hi):
    # upper bound wins when the range is empty
    return min(max(value, lo), hi)


@dataclass(frozen=True)
class DragSession:
    band:     str
    action:   str
    start_x:  float
    start_y:  float
    snapshot: MeasurementBand


class BandDragger:
    """
    Idle ──pointer_down──▶ Dragging(band, action, origin, snapshot)
      ▲                        │ pointer_move (delta from origin)
      └──────pointer_up────────┘
    """

    def __init__(self, bands: dict):
        self.bands   = bands
        self.session = None
        self.frozen  = False

    @property
    def state(self) -> str:
        return "dragging" if self.session else "idle"

    def pointer_down(self, band: str, action: str, x: float, y: float) -> bool:
        if self.frozen:
            logger.debug("Bands frozen, ignoring %s on %s", action, band)
            return False
        if band not in self.bands:
            raise KeyError(f"Unknown band {band!r}")
        if action not in ACTIONS:
            raise ValueError(f"Unknown action {action!r}")
        self.session = DragSession(band, action, x, y, replace(self.bands[band]))
        return True

    def pointer_move(self, x: float, y: float, display_w: float, display_h: float) -> bool:
        s = self.session
        if s is None or not display_w or not display_h:
            return False

        dx = (x - s.start_x) / display_w * 100
        dy = (y - s.start_y) / display_h * 100
        band = self.bands[s.band]
        snap = s.snapshot

        if s.action == "move":
            band.x = _clamp(snap.x + dx, 0, 100 - band.width)
            band.y = _clamp(snap.y + dy, 0, 100)
        elif s.action == "resize-right":
            band.width = _clamp(snap.width + dx, config.BAND_MIN_WIDTH, 100 - band.x)
        else:
            new_x = snap.x + dx
            new_w = snap.width - dx
            if new_w >= config.BAND_MIN_WIDTH and new_x >= 0:
                band.x, band.width = new_x, new_w
        return True

    def pointer_up(self):
        self.session = None


def replay_edit(dragger: BandDragger, band: str, action: str, dx_pct: float,
                dy_pct: float, display_w: float, display_h: float) -> bool:
    """
    Express a slider edit (in percent) as one pointer-down / move / up
    gesture in display pixels.
    """
    if not dragger.pointer_down(band, action, 0.0, 0.0):
        return False
    try:
        return dragger.pointer_move(dx_pct * display_w / 100, dy_pct * display_h / 100,
                                    display_w, display_h)
    finally:
        dragger.pointer_up()


def slider_values(band: MeasurementBand):
    """((left, right), y, x) of a band, clamped to the 0–100 slider range."""
    def pct(v):
        return round(float(_clamp(v, 0.0, 100.0)), 6)
    return (pct(band.x), pct(band.right)), pct(band.y), pct(band.x)


def apply_slider_values(dragger: BandDragger, band: str, left: float, right: float,
                        y: float, display_w: float, display_h: float, offset: float = None):
    """
    Replay whichever of the band's sliders moved since the last run.
    Edges become resize gestures; the vertical position and the horizontal
    offset (new left edge, width kept) become a single move.
    """
    b0 = replace(dragger.bands[band])
    if abs(left - b0.x) > _EDIT_EPS:
        replay_edit(dragger, band, "resize-left", left - b0.x, 0, display_w, display_h)
    if abs(right - b0.right) > _EDIT_EPS:
        replay_edit(dragger, band, "resize-right", right - b0.right, 0, display_w, display_h)

    dx = offset - b0.x if offset is not None and abs(offset - b0.x) > _EDIT_EPS else 0.0
    dy = y - b0.y if abs(y - b0.y) > _EDIT_EPS else 0.0
    if dx or dy:
        replay_edit(dragger, band, "move", dx, dy, display_w, display_h)


# ══════════════════════════════════════════════════════════════
#  Visualisation
# ══════════════════════════════════════════════════════════════

def draw_bands(view_rgb: np.ndarray, bands: dict, read_only: bool = False) -> np.ndarray:
    """Labelled band rectangles, vertically centred on each band's y."""
    vis = view_rgb.copy()
    h, w = vis.shape[:2]
    half = config.BAND_HEIGHT_PX // 2

    overlay = vis.copy()
    boxes = []
    for key in BAND_KEYS:
        b = bands[key]
        x0 = int(round(b.x / 100 * w))
        x1 = int(round(b.right / 100 * w))
        yc = int(round(b.y / 100 * h))
        boxes.append((key, x0, x1, yc))
        cv2.rectangle(overlay, (x0, yc - half), (x1, yc + half), config.BAND_COLORS[key], -1)

    # 10 % fill, full-strength outline
    vis = cv2.addWeighted(overlay, 0.10, vis, 0.90, 0)

    for key, x0, x1, yc in boxes:
        color = config.BAND_COLORS[key]
        cv2.rectangle(vis, (x0, yc - half), (x1, yc + half), color, 2)
        if not read_only:
            for ex in (x0 + 6, x1 - 6):
                cv2.line(vis, (ex, yc - 8), (ex, yc + 8), color, 3)

        label = key.upper()
        (tw, th), _ = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, 0.4, 1)
        cx = (x0 + x1) // 2
        cv2.rectangle(vis, (cx - tw // 2 - 6, yc - th // 2 - 5),
                      (cx + tw // 2 + 6, yc + th // 2 + 5), (2, 6, 23), -1)
        cv2.putText(vis, label, (cx - tw // 2, yc + th // 2),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.4, color, 1, cv2.LINE_AA)
    return vis
