"""Unit tests for the support pokemon registry and the trainer detail view."""

from __future__ import annotations

import cv2
import pytest

from mezastar_helper.core.errors import IdentityNotFound, RegistryLoadError
from mezastar_helper.modules.acquisition.capture.qr import detect_qr_text
from mezastar_helper.modules.supports import SupportEntry, SupportRegistry, open_detail, registry_scope

VALID_DOCUMENT = {
    "0a1b2c": {"pokemon": "Pikachu", "type": "Electric", "move": "Thunderbolt"},
    "FFEE01": {"pokemon": "Lapras", "type": "Water", "move": "Hydro Pump"},
}


# =============================================================================
# Loading
# =============================================================================


@pytest.mark.asyncio
async def test_load_valid_document(registry_file):
    registry = SupportRegistry()

    count = await registry.load(registry_file(VALID_DOCUMENT))

    assert count == 2
    assert [entry.code for entry in registry] == ["0a1b2c", "FFEE01"]
    assert registry.get("0a1b2c") == SupportEntry("0a1b2c", "Pikachu", "Electric", "Thunderbolt")


@pytest.mark.asyncio
async def test_entry_missing_move_aborts_whole_load(registry_file):
    document = dict(VALID_DOCUMENT)
    document["1234"] = {"pokemon": "Eevee", "type": "Normal"}
    registry = SupportRegistry()

    with pytest.raises(RegistryLoadError) as excinfo:
        await registry.load(registry_file(document))

    assert str(excinfo.value) == "Failed to load support pokemon registry"
    assert len(registry) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "document",
    [
        {"not-hex": {"pokemon": "Eevee", "type": "Normal", "move": "Tackle"}},
        {"": {"pokemon": "Eevee", "type": "Normal", "move": "Tackle"}},
        {"abcd": {"pokemon": "Eevee", "type": "Normal", "move": 7}},
        {"abcd": ["Eevee", "Normal", "Tackle"]},
        [{"pokemon": "Eevee", "type": "Normal", "move": "Tackle"}],
        "{not json",
    ],
)
async def test_invalid_documents_are_rejected(registry_file, document):
    registry = SupportRegistry()
    with pytest.raises(RegistryLoadError):
        await registry.load(registry_file(document))
    assert registry.entries == {}


@pytest.mark.asyncio
async def test_failed_reload_discards_previous_entries(registry_file, tmp_path):
    registry = SupportRegistry()
    await registry.load(registry_file(VALID_DOCUMENT))

    with pytest.raises(RegistryLoadError):
        await registry.load(tmp_path / "missing.json")

    assert len(registry) == 0


@pytest.mark.asyncio
async def test_scope_clears_registry_on_exit(registry_file):
    async with registry_scope(registry_file(VALID_DOCUMENT)) as registry:
        assert len(registry) == 2

    assert len(registry) == 0


# =============================================================================
# Detail view
# =============================================================================


@pytest.mark.asyncio
async def test_detail_for_unknown_trainer(store, registry_file):
    with pytest.raises(IdentityNotFound):
        async with open_detail(store, "nobody", registry_file(VALID_DOCUMENT)):
            pass


@pytest.mark.asyncio
async def test_detail_lists_supports(store, registry_file):
    identity = await store.add("TOKEN123", "Ash")

    async with open_detail(store, "TOKEN123", registry_file(VALID_DOCUMENT)) as detail:
        assert detail.identity == identity
        assert [entry.pokemon for entry in detail.supports] == ["Pikachu", "Lapras"]

    assert detail.supports == []


@pytest.mark.asyncio
async def test_detail_surfaces_registry_failure(store, registry_file):
    await store.add("TOKEN123", "Ash")

    with pytest.raises(RegistryLoadError):
        async with open_detail(store, "TOKEN123", registry_file({"zz": {}})):
            pass


@pytest.mark.asyncio
async def test_detail_writes_trainer_and_support_codes(store, registry_file, tmp_path):
    await store.add("TOKEN123", "Ash")

    async with open_detail(store, "TOKEN123", registry_file(VALID_DOCUMENT)) as detail:
        trainer_png = await detail.write_trainer_code(tmp_path / "trainer.png")
        support_pngs = await detail.write_support_codes(tmp_path / "supports")

    assert detect_qr_text(cv2.imread(str(trainer_png), cv2.IMREAD_GRAYSCALE)) == "TOKEN123"
    assert [path.name for path in support_pngs] == ["0a1b2c.png", "FFEE01.png"]
    assert detect_qr_text(cv2.imread(str(support_pngs[1]), cv2.IMREAD_GRAYSCALE)) == "FFEE01"
