"""
config.py – central settings for StrideLab
Sampler constants, index thresholds, UI defaults and the Gemini endpoint.
"""

import os

# ══════════════════════════════════════════════════════════════
#  Logging
# ══════════════════════════════════════════════════════════════
LOG_LEVEL = os.getenv("STRIDELAB_LOG_LEVEL", "INFO").upper()

# ══════════════════════════════════════════════════════════════
#  Gemini advisory service
# ══════════════════════════════════════════════════════════════
GEMINI_API_KEY  = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL    = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
ADVISOR_TIMEOUT = float(os.getenv("ADVISOR_TIMEOUT", "30"))

SHOPPING_SEARCH_URL = "https://www.google.com/search?tbm=shop&q={query}"

# ══════════════════════════════════════════════════════════════
#  Point-cloud sampler
# ══════════════════════════════════════════════════════════════
MESH_SCALE_FACTOR   = 0.25    # working buffer = 0.25 × display size
MESH_STRIDE         = 3       # px, in low-res space
MESH_BRIGHTNESS     = 1.1
THRESHOLD_BASE      = 40
THRESHOLD_PER_SENS  = 2.0
CHANNEL_MAX         = 255

SENSITIVITY_RANGE = (0, 100)
CONTRAST_RANGE    = (50, 250)

# tier → (lower intensity bound, RGB, alpha)
MESH_TIERS = {
    "high":   (0.6, (239, 68, 68),  0.9),
    "medium": (0.3, (234, 179, 8),  0.7),
    "low":    (0.0, (34, 211, 238), 0.7),
}

# ══════════════════════════════════════════════════════════════
#  Index thresholds (Chippaux–Smirak / Staheli)
# ══════════════════════════════════════════════════════════════
FLAT_CSI_MIN = 0.55
FLAT_SI_MIN  = 0.75
HIGH_CSI_MAX = 0.25
HIGH_SI_MAX  = 0.40

# ══════════════════════════════════════════════════════════════
#  Measurement bands (percent of displayed image)
# ══════════════════════════════════════════════════════════════
BAND_MIN_WIDTH = 5.0
BAND_HEIGHT_PX = 40
DEFAULT_BANDS = {
    "forefoot": {"x": 20.0, "y": 25.0, "width": 60.0},
    "arch":     {"x": 35.0, "y": 50.0, "width": 30.0},
    "heel":     {"x": 30.0, "y": 80.0, "width": 40.0},
}
# RGB, drawn on the composed preview
BAND_COLORS = {
    "forefoot": (34, 211, 238),
    "arch":     (251, 191, 36),
    "heel":     (192, 132, 252),
}

# ══════════════════════════════════════════════════════════════
#  UI defaults
# ══════════════════════════════════════════════════════════════
DEFAULT_SENSITIVITY = 65
DEFAULT_CONTRAST    = 130
DEFAULT_SHOE_SIZE   = 42
SHOE_SIZE_RANGE     = (30, 52)
DISPLAY_MODES       = ("both", "image", "mesh")

PREVIEW_WIDTH  = 720
PREVIEW_HEIGHT = 820

SCAN_TICK_SECONDS = 0.025
SCAN_STEP_PERCENT = 2
