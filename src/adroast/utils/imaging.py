"""Image processing utilities for adroast.

Shared image encoding and conversion functions used by the capture and
analyzer modules.
"""

from __future__ import annotations

import base64
import logging

import cv2
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


def numpy_to_base64_jpeg(image: np.ndarray, quality: int = 80) -> str:
    """Convert a numpy image array (BGR, OpenCV format) to base64 JPEG."""
    success, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not success:
        raise ValueError("Failed to encode image to JPEG")
    return base64.b64encode(buffer.tobytes()).decode("utf-8")


def to_data_url(b64_jpeg: str) -> str:
    return f"data:image/jpeg;base64,{b64_jpeg}"


def pil_to_numpy(image: Image.Image) -> np.ndarray:
    """Convert a PIL Image (RGB) to a numpy array (BGR)."""
    rgb_array = np.array(image.convert("RGB"))
    return cv2.cvtColor(rgb_array, cv2.COLOR_RGB2BGR)


def resize_for_mllm(image: np.ndarray, max_dimension: int = 1024) -> np.ndarray:
    """Downscale an image so its longest side fits the vision model budget.

    Preserves aspect ratio. Small images are returned untouched; a
    low-detail request gains nothing from upscaling.
    """
    h, w = image.shape[:2]
    largest = max(h, w)

    if largest > max_dimension:
        scale = max_dimension / largest
        new_w = int(w * scale)
        new_h = int(h * scale)
        return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)

    return image
