"""Integration-style unit tests for ConfirmationFlow with fake sources."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from mezastar_helper.core.errors import CaptureError, StoreError
from mezastar_helper.modules.acquisition import StillImageScanner
from mezastar_helper.modules.acquisition.capture import FrameMiss
from mezastar_helper.modules.confirmation import FlowStep, build_confirmation_flow
from tests.infrastructure.mocks import FakeCameraSource, FakeFileLoader, FakeImageDecoder

CARD_URL = "https://mezastar.example/card?s=TOKEN123"


@pytest.fixture
def camera():
    return FakeCameraSource()


@pytest.fixture
def callbacks():
    return {"saved": [], "closed": 0}


def _flow(store, callbacks, **sources):
    def on_close():
        callbacks["closed"] += 1

    return build_confirmation_flow(
        store,
        on_saved=callbacks["saved"].append,
        on_close=on_close,
        **sources,
    )


# =============================================================================
# Manual entry
# =============================================================================


@pytest.mark.asyncio
async def test_manual_entry_saves_and_closes(store, callbacks):
    flow = _flow(store, callbacks)
    states = []
    flow.subscribe(states.append)

    await flow.choose_manual()
    await flow.set_trainer_id(" abc ")
    await flow.set_alias(" Name ")
    await flow.submit()

    stored = await store.list()
    assert [(i.trainer_id, i.alias) for i in stored] == [("abc", "Name")]
    assert callbacks["saved"] == stored
    assert callbacks["closed"] == 1
    assert flow.state.step == FlowStep.METHOD_SELECT
    assert any(state.busy for state in states)
    assert not flow.state.busy


@pytest.mark.asyncio
async def test_duplicate_shows_inline_error(store, callbacks):
    await store.add("abc", "Existing")
    flow = _flow(store, callbacks)

    await flow.choose_manual()
    await flow.set_trainer_id("abc")
    await flow.set_alias("Again")
    await flow.submit()

    assert flow.state.step == FlowStep.MANUAL_ENTRY
    assert flow.state.error == "This trainer ID already exists"
    assert not flow.state.busy
    assert callbacks["saved"] == []
    assert len(await store.list()) == 1


@pytest.mark.asyncio
async def test_blank_submit_never_reaches_store(callbacks):
    fake_store = MagicMock()
    fake_store.add = AsyncMock()
    flow = _flow(fake_store, callbacks)

    await flow.choose_manual()
    await flow.set_trainer_id("abc")
    await flow.submit()

    assert flow.state.error == "Both trainer ID and alias are required"
    fake_store.add.assert_not_called()


@pytest.mark.asyncio
async def test_storage_failure_shows_add_failed(callbacks):
    fake_store = MagicMock()
    fake_store.add = AsyncMock(side_effect=StoreError("disk full"))
    flow = _flow(fake_store, callbacks)

    await flow.choose_manual()
    await flow.set_trainer_id("abc")
    await flow.set_alias("Name")
    await flow.submit()

    assert flow.state.error == "Failed to add trainer ID"
    assert not flow.state.busy
    assert (flow.state.trainer_id, flow.state.alias) == ("abc", "Name")


# =============================================================================
# Live scan
# =============================================================================


@pytest.mark.asyncio
async def test_live_scan_prefills_token_without_saving(store, camera, callbacks):
    flow = _flow(store, callbacks, camera=camera)

    await flow.choose_live_scan()
    await flow.start_scan()
    assert flow.state.scanning

    camera.emit_result(CARD_URL)

    assert flow.state.step == FlowStep.MANUAL_ENTRY
    assert flow.state.trainer_id == "TOKEN123"
    assert not flow.state.scanning
    assert camera.active_subscriptions == []
    assert await store.list() == []

    await flow.set_alias("Scanned")
    await flow.submit()
    assert [i.trainer_id for i in await store.list()] == ["TOKEN123"]


@pytest.mark.asyncio
async def test_live_scan_invalid_payload(store, camera, callbacks):
    flow = _flow(store, callbacks, camera=camera)

    await flow.choose_live_scan()
    await flow.start_scan()
    camera.emit_result("https://host/?x=1")

    assert flow.state.step == FlowStep.LIVE_SCAN
    assert flow.state.error == "Invalid QR code format"
    assert not flow.state.scanning


@pytest.mark.asyncio
async def test_live_scan_miss_updates_status(store, camera, callbacks):
    flow = _flow(store, callbacks, camera=camera)

    await flow.choose_live_scan()
    await flow.start_scan()
    camera.emit_error(FrameMiss("No QR code in view"))

    assert flow.state.scanning
    assert flow.state.scan_status == "No QR code in view"
    assert flow.state.error is None


@pytest.mark.asyncio
async def test_camera_setup_failure_returns_to_idle(store, callbacks):
    camera = FakeCameraSource(fail_with=CaptureError("Failed to open camera 0"))
    flow = _flow(store, callbacks, camera=camera)

    await flow.choose_live_scan()
    await flow.start_scan()

    assert flow.state.step == FlowStep.LIVE_SCAN
    assert flow.state.error == "Failed to open camera 0"
    assert not flow.state.scanning
    assert flow.executor.session.state.scanning is False


@pytest.mark.asyncio
async def test_device_error_at_setup_is_shown_and_retry_works(store, callbacks):
    camera = FakeCameraSource(fail_with=OSError("v4l2: device busy"))
    flow = _flow(store, callbacks, camera=camera)

    await flow.choose_live_scan()
    await flow.start_scan()

    assert flow.state.error == "v4l2: device busy"
    assert not flow.state.scanning

    camera.fail_with = None
    await flow.start_scan()

    assert flow.state.error is None
    assert flow.state.scanning
    assert len(camera.active_subscriptions) == 1


@pytest.mark.asyncio
async def test_back_releases_camera_and_ignores_late_result(store, camera, callbacks):
    flow = _flow(store, callbacks, camera=camera)

    await flow.choose_live_scan()
    await flow.start_scan()
    await flow.back()

    assert camera.subscriptions[0].stop_calls == 1

    camera.emit_result(CARD_URL)
    assert flow.state.step == FlowStep.METHOD_SELECT
    assert flow.state.trainer_id == ""


@pytest.mark.asyncio
async def test_stop_scan_twice_releases_once(store, camera, callbacks):
    flow = _flow(store, callbacks, camera=camera)

    await flow.choose_live_scan()
    await flow.start_scan()
    await flow.stop_scan()
    await flow.stop_scan()

    assert camera.subscriptions[0].stop_calls == 1
    assert not flow.state.scanning


@pytest.mark.asyncio
async def test_close_releases_camera(store, camera, callbacks):
    flow = _flow(store, callbacks, camera=camera)

    await flow.choose_live_scan()
    await flow.start_scan()
    await flow.close()

    assert camera.active_subscriptions == []


# =============================================================================
# Upload
# =============================================================================


@pytest.mark.asyncio
async def test_upload_prefills_token(store, callbacks):
    scanner = StillImageScanner(FakeFileLoader(), FakeImageDecoder(text=CARD_URL))
    flow = _flow(store, callbacks, scanner=scanner)
    progress = []
    flow.subscribe(lambda state: progress.append(state.progress))

    await flow.choose_upload()
    await flow.select_file("card.png")
    await flow.drain()

    assert flow.state.step == FlowStep.MANUAL_ENTRY
    assert flow.state.trainer_id == "TOKEN123"
    assert flow.state.progress is None
    assert "Scanning for QR code..." in progress
    assert await store.list() == []


@pytest.mark.asyncio
async def test_upload_without_code_reports_detect_failure(store, callbacks):
    scanner = StillImageScanner(FakeFileLoader(), FakeImageDecoder(text=None))
    flow = _flow(store, callbacks, scanner=scanner)

    await flow.choose_upload()
    await flow.select_file("blank.png")

    assert flow.state.step == FlowStep.UPLOAD_SCAN
    assert flow.state.error == "No QR code found in the uploaded image"
    assert not flow.state.busy
    assert flow.state.progress is None


@pytest.mark.asyncio
async def test_newer_upload_wins_over_older(store, callbacks):
    loader = FakeFileLoader()
    loader.gate = asyncio.Event()
    decoder = FakeImageDecoder(text=CARD_URL)
    flow = _flow(store, callbacks, scanner=StillImageScanner(loader, decoder))

    await flow.choose_upload()
    first = asyncio.create_task(flow.select_file("first.png"))
    await asyncio.sleep(0)

    decoder.text = "https://mezastar.example/card?s=SECOND"
    second = asyncio.create_task(flow.select_file("second.png"))
    await asyncio.sleep(0)
    loader.gate.set()
    await asyncio.gather(first, second)

    assert flow.state.step == FlowStep.MANUAL_ENTRY
    assert flow.state.trainer_id == "SECOND"


@pytest.mark.asyncio
async def test_back_during_upload_discards_result(store, callbacks):
    loader = FakeFileLoader()
    loader.gate = asyncio.Event()
    flow = _flow(store, callbacks, scanner=StillImageScanner(loader, FakeImageDecoder(text=CARD_URL)))

    await flow.choose_upload()
    pending = asyncio.create_task(flow.select_file("card.png"))
    await asyncio.sleep(0)
    await flow.back()
    loader.gate.set()
    await pending

    assert flow.state.step == FlowStep.METHOD_SELECT
    assert flow.state.trainer_id == ""
    assert not flow.state.busy
