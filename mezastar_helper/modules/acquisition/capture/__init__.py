from .camera_source import CameraSubscription, OpenCVCameraSource
from .image_source import AiofilesFileLoader, PillowImageDecoder
from .sources import (
    CameraSource,
    FileLoader,
    FrameMiss,
    ImageDecoder,
    ImageError,
    NotFound,
    ReadError,
    SourceError,
    Subscription,
)

__all__ = [
    "CameraSource",
    "CameraSubscription",
    "FileLoader",
    "FrameMiss",
    "ImageDecoder",
    "ImageError",
    "NotFound",
    "OpenCVCameraSource",
    "AiofilesFileLoader",
    "PillowImageDecoder",
    "ReadError",
    "SourceError",
    "Subscription",
]
