"""Per-trainer detail view: identity, its QR code and the support registry."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Union

from ...core.errors import IdentityNotFound
from ...core.logging_utils import get_module_logger, redact_token
from ...storage.identity_store import IdentityStore, TrainerIdentity
from .display import write_code_image
from .registry import SupportEntry, SupportRegistry, registry_scope

logger = get_module_logger("TrainerDetail")

EMPTY_REGISTRY_MESSAGE = "No support pokemon added yet"


@dataclass
class TrainerDetail:
    identity: TrainerIdentity
    registry: SupportRegistry

    @property
    def supports(self) -> list[SupportEntry]:
        return list(self.registry)

    async def write_trainer_code(self, path: Union[str, Path]) -> Path:
        return await write_code_image(self.identity.trainer_id, path)

    async def write_support_codes(self, directory: Union[str, Path]) -> list[Path]:
        """One ``<code>.png`` per support entry, in registry order."""
        directory = Path(directory)
        return [await write_code_image(entry.code, directory / f"{entry.code}.png") for entry in self.registry]


@asynccontextmanager
async def open_detail(
    store: IdentityStore,
    trainer_id: str,
    registry_path: Union[str, Path],
) -> AsyncIterator[TrainerDetail]:
    """Look up ``trainer_id`` and load the registry for the view's lifetime.

    Raises:
        IdentityNotFound: no stored identity has this token.
        RegistryLoadError: the registry document was rejected.
    """
    identity = await store.lookup(trainer_id)
    if identity is None:
        logger.warning("Detail requested for unknown trainer %s", redact_token(trainer_id))
        raise IdentityNotFound(trainer_id)

    async with registry_scope(registry_path) as registry:
        yield TrainerDetail(identity=identity, registry=registry)


__all__ = ["EMPTY_REGISTRY_MESSAGE", "TrainerDetail", "open_detail"]
