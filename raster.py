"""
raster.py
Pixel-buffer capability used by the point-cloud sampler and the preview:
  - decode      : uploaded bytes  → BGR uint8 buffer
  - downscale   : buffer          → smaller buffer (area interpolation)
  - apply_filter: buffer          → contrast → grayscale → brightness
Buffers are plain NumPy arrays (H × W × 3, BGR) so the sampler can be
exercised with synthetic images and no rendering surface.
"""

import hashlib
import logging
from dataclasses import dataclass

import cv2
import numpy as np

from errors import DecodeError, InputError

logger = logging.getLogger(__name__)

# ITU-R BT.709 weights, same as the CSS grayscale() filter (B, G, R order)
_LUMA_BGR = np.array([0.0722, 0.7152, 0.2126], dtype=np.float32)


class RasterBackend:
    """Interface the sampler is written against."""

    def decode(self, data: bytes) -> np.ndarray:
        raise NotImplementedError

    def downscale(self, buffer: np.ndarray, width: int, height: int) -> np.ndarray:
        raise NotImplementedError

    def apply_filter(self, buffer: np.ndarray, contrast: float,
                     brightness: float = 1.0) -> np.ndarray:
        raise NotImplementedError


class OpenCVRaster(RasterBackend):

    def decode(self, data: bytes) -> np.ndarray:
        if not data:
            raise DecodeError("Empty upload — no image data received.")
        arr = np.frombuffer(data, np.uint8)
        image_bgr = cv2.imdecode(arr, cv2.IMREAD_COLOR)
        if image_bgr is None or image_bgr.size == 0:
            raise DecodeError("Unreadable image — upload a JPG, PNG or WEBP file.")
        return image_bgr

    def downscale(self, buffer, width, height):
        if width <= 0 or height <= 0:
            raise InputError(f"Invalid target size {width}×{height}")
        return cv2.resize(buffer, (int(width), int(height)),
                          interpolation=cv2.INTER_AREA)

    def apply_filter(self, buffer, contrast, brightness=1.0):
        """
        contrast(C %) → grayscale(100 %) → brightness(b), each stage clipped
        to the 0–255 channel range like a canvas filter chain.
        Returns a 3-channel buffer whose channels are identical.
        """
        img = buffer.astype(np.float32)
        if img.ndim == 2:
            img = np.repeat(img[:, :, None], 3, axis=2)
        img = img[:, :, :3]

        img  = np.clip((img - 127.5) * (contrast / 100.0) + 127.5, 0, 255)
        gray = np.clip(img @ _LUMA_BGR, 0, 255)
        gray = np.clip(gray * brightness, 0, 255)

        gray_u8 = np.round(gray).astype(np.uint8)
        return cv2.merge([gray_u8, gray_u8, gray_u8])


# ══════════════════════════════════════════════════════════════
#  Source image
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceImage:
    data:     bytes
    pixels:   np.ndarray
    width:    int
    height:   int
    image_id: str


def load_source_image(data: bytes, raster: RasterBackend = None) -> SourceImage:
    """Decode an upload. Raises DecodeError for unreadable files."""
    raster = raster or OpenCVRaster()
    pixels = raster.decode(data)
    h, w = pixels.shape[:2]
    image_id = hashlib.sha256(data).hexdigest()
    logger.info("Decoded image %s… (%d×%d)", image_id[:12], w, h)
    return SourceImage(data=data, pixels=pixels, width=w, height=h, image_id=image_id)


def fit_dimensions(container_w, container_h, natural_w, natural_h):
    """
    Letter-box the image inside the preview container.
    Returns (w, h) in whole pixels, (0, 0) when either size is unknown.
    """
    if not container_w or not container_h or not natural_w or not natural_h:
        return 0, 0
    container_ratio = container_w / container_h
    image_ratio     = natural_w / natural_h
    if image_ratio > container_ratio:
        return int(container_w), int(round(container_w / image_ratio))
    return int(round(container_h * image_ratio)), int(container_h)


def preview_buffer(image: SourceImage, width: int, height: int, contrast: float,
                   high_contrast: bool = False, raster: RasterBackend = None) -> np.ndarray:
    """Display-size grayscale preview; high-res mode adds 30 % contrast."""
    raster = raster or OpenCVRaster()
    small = raster.downscale(image.pixels, width, height)
    if high_contrast:
        return raster.apply_filter(small, contrast + 30, brightness=1.1)
    return raster.apply_filter(small, contrast, brightness=1.05)
