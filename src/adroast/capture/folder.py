"""Frame source that replays still images from a directory.

Useful for running the loop without a camera: point it at a folder of
screenshots from an ad break and it hands them out one per capture,
looping when it reaches the end.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path

import numpy as np
from PIL import Image

from adroast.capture.base import CaptureError, FrameSource
from adroast.domain.models import CapturedFrame
from adroast.utils.imaging import pil_to_numpy

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp", ".webp"}


class ImageFolderSource(FrameSource):
    """Hands out the images of a folder in sorted filename order."""

    def __init__(self, folder: Path | str, loop: bool = True) -> None:
        super().__init__()
        self._folder = Path(folder)
        self._loop = loop
        self._paths: list[Path] = []
        self._position = 0

    async def open(self) -> None:
        if not self._folder.is_dir():
            raise CaptureError(f"Image folder {self._folder} does not exist")
        self._paths = sorted(
            p for p in self._folder.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES
        )
        if not self._paths:
            raise CaptureError(f"No images found in {self._folder}")
        self._position = 0
        self._is_open = True
        logger.info("Opened image folder %s (%d images)", self._folder, len(self._paths))

    async def close(self) -> None:
        self._paths = []
        self._is_open = False

    async def capture(self) -> CapturedFrame | None:
        if not self._is_open:
            return None
        if self._position >= len(self._paths):
            if not self._loop:
                return None
            self._position = 0
        path = self._paths[self._position]
        self._position += 1
        loop = asyncio.get_running_loop()
        try:
            image = await loop.run_in_executor(None, self._read_sync, path)
        except OSError as e:
            logger.warning("Skipping unreadable image %s: %s", path, e)
            return None
        return CapturedFrame(
            image=image,
            timestamp=datetime.now(),
            frame_number=self._next_frame_number(),
            source_device=f"folder:{path.name}",
        )

    @staticmethod
    def _read_sync(path: Path) -> np.ndarray:
        """Synchronous decode (runs in thread pool)."""
        with Image.open(path) as img:
            return pil_to_numpy(img)
