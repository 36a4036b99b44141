"""
session.py
Application state kept in st.session_state, grouped by concern:
image · bands · display settings · analysis · advisory · overlay guard.
Plain Python so the step transitions can be tested without Streamlit.
"""

import logging
from dataclasses import dataclass

import config
from advisor import shopping_url
from calibration import BandDragger, default_bands
from errors import InputError
from foot_index import analyse_bands
from raster import load_source_image

logger = logging.getLogger(__name__)

STEP_UPLOAD    = 1
STEP_CALIBRATE = 2
STEP_REPORT    = 3


@dataclass
class DisplaySettings:
    sensitivity:   int = config.DEFAULT_SENSITIVITY
    contrast:      int = config.DEFAULT_CONTRAST
    high_contrast: bool = False
    mode:          str = "both"
    shoe_size:     int = config.DEFAULT_SHOE_SIZE

    def set_sensitivity(self, value):
        self.sensitivity = int(min(max(value, config.SENSITIVITY_RANGE[0]),
                                   config.SENSITIVITY_RANGE[1]))

    def set_contrast(self, value):
        self.contrast = int(min(max(value, config.CONTRAST_RANGE[0]),
                                config.CONTRAST_RANGE[1]))

    def set_mode(self, mode):
        if mode not in config.DISPLAY_MODES:
            raise ValueError(f"Unknown display mode {mode!r}")
        self.mode = mode

    def set_shoe_size(self, size):
        self.shoe_size = int(min(max(size, config.SHOE_SIZE_RANGE[0]),
                                 config.SHOE_SIZE_RANGE[1]))


class AppState:

    def __init__(self, raster=None):
        self.raster   = raster
        self.display  = DisplaySettings()
        self._overlay_seq = 0
        self._clear()

    def _clear(self):
        self.step          = STEP_UPLOAD
        self.image         = None
        self.bands         = default_bands()
        self.dragger       = BandDragger(self.bands)
        self.result        = None
        self.advisory      = None
        self.selected_shoe = None
        self.advisory_pending = False

    # ── image ────────────────────────────────────────────────────
    def load_image(self, data: bytes):
        """Decode an upload; DecodeError leaves the current state as it was."""
        image = load_source_image(data, self.raster)
        self._clear()
        self.image = image
        self.step  = STEP_CALIBRATE
        self.display.high_contrast = True
        return image

    def reset(self):
        logger.info("Session reset")
        self._clear()
        self.display.high_contrast = False

    @property
    def image_id(self):
        return self.image.image_id if self.image else None

    # ── bands ────────────────────────────────────────────────────
    @property
    def bands_frozen(self) -> bool:
        return self.dragger.frozen

    # ── analysis ─────────────────────────────────────────────────
    def start_analysis(self):
        """
        Freeze the bands and classify. On InputError nothing changes and the
        error propagates to the caller.
        """
        if self.image is None:
            raise InputError("No image loaded")
        result = analyse_bands(self.bands)
        self.dragger.pointer_up()
        self.dragger.frozen = True
        self.result        = result
        self.advisory      = None
        self.selected_shoe = None
        self.advisory_pending = True
        self.step          = STEP_REPORT
        self.display.high_contrast = False
        return result

    def recalibrate(self):
        """Back to calibration with the current bands unfrozen."""
        self.dragger.frozen = False
        self.result        = None
        self.advisory      = None
        self.selected_shoe = None
        self.step          = STEP_CALIBRATE
        self.advisory_pending = False

    # ── advisory ─────────────────────────────────────────────────
    def set_advisory(self, content):
        self.advisory = content
        self.advisory_pending = False
        if content and content.shoes:
            self.selected_shoe = content.shoes[0]

    def select_shoe(self, name):
        if self.advisory is None or name not in self.advisory.shoes:
            raise ValueError(f"{name!r} is not one of the suggested shoes")
        self.selected_shoe = name

    def shopping_link(self):
        if not self.selected_shoe:
            return None
        return shopping_url(self.selected_shoe, self.display.shoe_size)

    # ── overlay guard ────────────────────────────────────────────
    def overlay_ticket(self, image_id):
        self._overlay_seq += 1
        return (image_id, self._overlay_seq)

    def accept_overlay(self, ticket) -> bool:
        """True only if the ticket belongs to the newest request for the current image."""
        image_id, seq = ticket
        ok = image_id == self.image_id and seq == self._overlay_seq
        if not ok:
            logger.info("Discarding stale overlay for %s", (image_id or "")[:12])
        return ok
