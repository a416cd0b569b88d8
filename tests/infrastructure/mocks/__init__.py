from .capture_mocks import (
    FakeCameraSource,
    FakeFileLoader,
    FakeImageDecoder,
    FakeSubscription,
)

__all__ = [
    "FakeCameraSource",
    "FakeFileLoader",
    "FakeImageDecoder",
    "FakeSubscription",
]
