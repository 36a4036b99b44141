"""
footprint_mesh.py
"Lidar" point-cloud overlay for the footprint preview.
  1. Downscale the image to 0.25× the display size
  2. contrast(C) → grayscale → brightness(1.1)
  3. Scan every 3rd pixel; dark pixels (red < 40 + 2·S) become points
  4. Points are tiered by intensity and drawn as weighted coloured dots
The overlay is cosmetic only; nothing here feeds the foot classification.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass

import cv2
import numpy as np

import config
from raster import OpenCVRaster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampledPoint:
    x:         float    # display-space coordinates
    y:         float
    intensity: float    # 0 … 1, darker pixel → higher

    @property
    def tier(self) -> str:
        if self.intensity > config.MESH_TIERS["high"][0]:
            return "high"
        if self.intensity > config.MESH_TIERS["medium"][0]:
            return "medium"
        return "low"

    @property
    def radius(self) -> float:
        return (1 + self.intensity * 2.5) * config.MESH_SCALE_FACTOR * 4


def _clamp(value, lo, hi):
    return max(lo, min(hi, value))


def mesh_threshold(sensitivity: float) -> float:
    """Luminance cut-off for a contact point, kept inside the channel range."""
    sensitivity = _clamp(sensitivity, *config.SENSITIVITY_RANGE)
    threshold = config.THRESHOLD_BASE + sensitivity * config.THRESHOLD_PER_SENS
    return min(threshold, config.CHANNEL_MAX)


def scan_footprint(image: np.ndarray, width, height, sensitivity, contrast, raster=None):
    """
    Lazily yield SampledPoints for an image shown at width × height.
    Yields nothing when the display size is not positive.
    """
    if not width or not height or width <= 0 or height <= 0:
        return

    raster   = raster or OpenCVRaster()
    scale    = config.MESH_SCALE_FACTOR
    stride   = config.MESH_STRIDE
    contrast = _clamp(contrast, *config.CONTRAST_RANGE)

    small_w = max(1, math.floor(width * scale))
    small_h = max(1, math.floor(height * scale))
    small   = raster.downscale(image, small_w, small_h)
    small   = raster.apply_filter(small, contrast, brightness=config.MESH_BRIGHTNESS)

    red       = small[:, :, 2] if small.ndim == 3 else small
    grid      = red[::stride, ::stride]
    threshold = mesh_threshold(sensitivity)
    logger.debug("Scanning %dx%d buffer, threshold %.0f", small_w, small_h, threshold)

    # np.nonzero walks C order → row-major scan
    rows, cols = np.nonzero(grid < threshold)
    for gy, gx in zip(rows, cols):
        value = float(grid[gy, gx])
        yield SampledPoint(
            x=float(gx * stride / scale),
            y=float(gy * stride / scale),
            intensity=1 - value / threshold,
        )


# ══════════════════════════════════════════════════════════════
#  Rendering
# ══════════════════════════════════════════════════════════════

_SHIFT = 4  # cv2 fixed-point bits → sub-pixel dot centres


def render_mesh(points, width: int, height: int) -> np.ndarray:
    """Draw points onto a transparent RGBA layer (uint8, H × W × 4)."""
    if width <= 0 or height <= 0:
        return np.zeros((max(height, 0), max(width, 0), 4), np.uint8)
    rgb   = np.zeros((height, width, 3), np.float32)
    alpha = np.zeros((height, width), np.float32)

    by_tier = {"low": [], "medium": [], "high": []}
    for p in points:
        by_tier[p.tier].append(p)

    k = 1 << _SHIFT
    # low first so the strongest contacts end up on top
    for tier in ("low", "medium", "high"):
        if not by_tier[tier]:
            continue
        _, color, tier_alpha = config.MESH_TIERS[tier]
        mask = np.zeros((height, width), np.uint8)
        for p in by_tier[tier]:
            centre = (int(round(p.x * k)), int(round(p.y * k)))
            cv2.circle(mask, centre, int(round(p.radius * k)), 255, -1,
                       lineType=cv2.LINE_AA, shift=_SHIFT)

        a = (mask.astype(np.float32) / 255.0) * tier_alpha
        new_alpha = a + alpha * (1 - a)
        safe = np.where(new_alpha > 0, new_alpha, 1.0)
        rgb = (np.array(color, np.float32) * a[..., None]
               + rgb * (alpha * (1 - a))[..., None]) / safe[..., None]
        alpha = new_alpha

    layer = np.dstack([rgb, alpha * 255.0])
    return np.clip(np.round(layer), 0, 255).astype(np.uint8)


def compose_view(display_rgb: np.ndarray, mesh_rgba: np.ndarray = None,
                 mode: str = "both") -> np.ndarray:
    """
    both  – screen-blend the mesh over the preview
    image – preview only
    mesh  – mesh over black
    """
    if mode == "image" or mesh_rgba is None:
        return display_rgb.copy()

    a     = mesh_rgba[..., 3:4].astype(np.float32) / 255.0
    color = mesh_rgba[..., :3].astype(np.float32)

    if mode == "mesh":
        out = color * a
    else:
        base   = display_rgb.astype(np.float32)
        screen = 255.0 - (255.0 - base) * (255.0 - color) / 255.0
        out    = base * (1 - a) + screen * a
    return np.clip(np.round(out), 0, 255).astype(np.uint8)


def mesh_summary(points) -> dict:
    counts = Counter(p.tier for p in points)
    return {
        "high":   counts.get("high", 0),
        "medium": counts.get("medium", 0),
        "low":    counts.get("low", 0),
        "total":  sum(counts.values()),
    }
