"""Abstract base class for frame sources.

All capture implementations must conform to this interface, enabling
the live loop to swap between a webcam, a folder of stills, or a test
double without changing the rest of the pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from adroast.domain.models import CapturedFrame

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """Abstract interface for taking snapshots of a live visual feed.

    ``capture()`` returning ``None`` is a normal outcome: the device is
    open but has no frame to hand out yet. Only failing to open the
    device is an error.

    Example usage::

        async with WebcamCapture(device_index=0) as source:
            frame = await source.capture()
            if frame is not None:
                process(frame)
    """

    def __init__(self) -> None:
        self._frame_counter: int = 0
        self._is_open: bool = False

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and able to hand out frames."""
        return self._is_open

    @abstractmethod
    async def open(self) -> None:
        """Open and initialize the source.

        Raises:
            CaptureError: If the device cannot be opened.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the source. Safe to call multiple times."""
        ...

    @abstractmethod
    async def capture(self) -> CapturedFrame | None:
        """Take a snapshot of the feed, or ``None`` if no frame is ready."""
        ...

    def _next_frame_number(self) -> int:
        self._frame_counter += 1
        return self._frame_counter

    async def __aenter__(self) -> FrameSource:
        """Async context manager entry -- opens the source."""
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Async context manager exit -- closes the source."""
        await self.close()


class CaptureError(Exception):
    """Raised when a frame source cannot be opened."""
