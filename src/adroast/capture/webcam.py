"""Webcam frame source using OpenCV.

Captures frames from a local camera pointed at the TV.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import cv2
import numpy as np

from adroast.capture.base import CaptureError, FrameSource
from adroast.domain.models import CapturedFrame

logger = logging.getLogger(__name__)


class WebcamCapture(FrameSource):
    """Captures frames from a webcam using OpenCV.

    Runs OpenCV's blocking calls in a thread pool executor to avoid
    blocking the async event loop.
    """

    def __init__(
        self,
        device_index: int = 0,
        resolution: tuple[int, int] | None = None,
    ) -> None:
        super().__init__()
        self._device_index = device_index
        self._resolution = resolution
        self._cap: cv2.VideoCapture | None = None

    async def open(self) -> None:
        """Open the webcam device."""
        loop = asyncio.get_running_loop()
        self._cap = await loop.run_in_executor(
            None, cv2.VideoCapture, self._device_index
        )
        if not self._cap.isOpened():
            self._cap = None
            raise CaptureError(
                f"Failed to open webcam device {self._device_index}"
            )
        if self._resolution:
            w, h = self._resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        self._is_open = True
        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(
            "Opened webcam device %d (%dx%d)",
            self._device_index, actual_w, actual_h,
        )

    async def close(self) -> None:
        """Release the webcam device."""
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
            logger.info("Released webcam device %d", self._device_index)
        self._cap = None
        self._is_open = False

    async def capture(self) -> CapturedFrame | None:
        """Grab the current frame, or None while the camera warms up."""
        if not self._is_open or self._cap is None:
            return None
        loop = asyncio.get_running_loop()
        image = await loop.run_in_executor(None, self._read_sync)
        if image is None:
            logger.debug("Webcam %d has no frame yet", self._device_index)
            return None
        return CapturedFrame(
            image=image,
            timestamp=datetime.now(),
            frame_number=self._next_frame_number(),
            source_device=f"webcam:{self._device_index}",
        )

    def _read_sync(self) -> np.ndarray | None:
        """Synchronous frame read (runs in thread pool)."""
        ret, frame = self._cap.read()
        if not ret or frame is None or frame.size == 0:
            return None
        return frame
