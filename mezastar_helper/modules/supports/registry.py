"""Support pokemon metadata registry.

The registry document is a JSON object keyed by the hex payload of each
support pokemon's QR code::

    {"0a1b2c": {"pokemon": "Pikachu", "type": "Electric", "move": "Thunderbolt"}}

Loading is all-or-nothing: one malformed record rejects the whole document
and the registry keeps no entries.
"""

import json
import string
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Mapping, Union

import aiofiles

from ...core.errors import RegistryLoadError
from ...core.logging_utils import get_module_logger

logger = get_module_logger("SupportRegistry")

_HEX_DIGITS = frozenset(string.hexdigits)
_FIELDS = ("pokemon", "type", "move")


@dataclass(frozen=True)
class SupportEntry:
    code: str
    pokemon: str
    type: str
    move: str

    @classmethod
    def from_mapping(cls, code: Any, data: Any) -> "SupportEntry":
        if not isinstance(code, str) or not code or not set(code) <= _HEX_DIGITS:
            raise ValueError(f"code {code!r} is not hex encoded")
        if not isinstance(data, Mapping):
            raise ValueError(f"entry {code} is not an object")
        values = {}
        for field in _FIELDS:
            value = data.get(field)
            if not isinstance(value, str):
                raise ValueError(f"entry {code} has no string '{field}'")
            values[field] = value
        return cls(code=code, **values)


def parse_registry(document: Any) -> Dict[str, SupportEntry]:
    if not isinstance(document, Mapping):
        raise ValueError("registry document must be a JSON object")
    return {code: SupportEntry.from_mapping(code, data) for code, data in document.items()}


class SupportRegistry:
    """Entries keyed by code, in document order."""

    def __init__(self) -> None:
        self._entries: Dict[str, SupportEntry] = {}

    @property
    def entries(self) -> Dict[str, SupportEntry]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.values())

    def get(self, code: str):
        return self._entries.get(code)

    async def load(self, path: Union[str, Path]) -> int:
        """Replace the entries with the contents of ``path``.

        Raises:
            RegistryLoadError: the file is unreadable, not JSON, or any record
                fails validation. The registry is left empty.
        """
        self._entries = {}
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                text = await f.read()
            entries = parse_registry(json.loads(text))
        except (OSError, ValueError) as exc:
            logger.error("Failed to parse support pokemon registry %s: %s", path, exc)
            raise RegistryLoadError() from exc

        self._entries = entries
        logger.info("Loaded %d support entries from %s", len(entries), path)
        return len(entries)

    def clear(self) -> None:
        self._entries = {}


@asynccontextmanager
async def registry_scope(path: Union[str, Path]) -> AsyncIterator[SupportRegistry]:
    """Registry populated for the lifetime of one detail view."""
    registry = SupportRegistry()
    await registry.load(path)
    try:
        yield registry
    finally:
        registry.clear()


__all__ = ["SupportEntry", "SupportRegistry", "parse_registry", "registry_scope"]
