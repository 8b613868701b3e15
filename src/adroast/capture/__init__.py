"""Frame capture module for adroast.

Provides snapshots of the live feed on demand. The abstract base class
allows alternative sources (webcam, a folder of stills, test doubles).

Public API:
    FrameSource -- Abstract base class
    WebcamCapture -- OpenCV webcam implementation
    ImageFolderSource -- Replays still images from a directory
"""

from adroast.capture.base import CaptureError, FrameSource

__all__ = ["FrameSource", "CaptureError", "WebcamCapture", "ImageFolderSource"]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "WebcamCapture":
        from adroast.capture.webcam import WebcamCapture
        return WebcamCapture
    if name == "ImageFolderSource":
        from adroast.capture.folder import ImageFolderSource
        return ImageFolderSource
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
