"""Typed-alias confirmation gate in front of ``IdentityStore.delete``."""

from dataclasses import dataclass, replace
from typing import Callable, Optional

from ...core.errors import ConfirmationMismatch, StoreError
from ...core.logging_utils import get_module_logger
from ...storage.identity_store import IdentityStore, TrainerIdentity

logger = get_module_logger("DeletionGuard")

DELETE_FAILED_MESSAGE = "Failed to delete trainer ID"


@dataclass(frozen=True)
class GuardState:
    target: Optional[TrainerIdentity] = None
    confirm_text: str = ""
    error: Optional[str] = None
    busy: bool = False

    @property
    def is_open(self) -> bool:
        return self.target is not None

    @property
    def matches(self) -> bool:
        # Stored alias is compared as-is; only the operator's input is trimmed.
        return self.target is not None and self.confirm_text.strip() == self.target.alias

    @property
    def can_delete(self) -> bool:
        return self.matches and not self.busy

    @property
    def description(self) -> str:
        return self.target.short_token if self.target else ""


class DeletionGuard:
    def __init__(
        self,
        store: IdentityStore,
        on_deleted: Optional[Callable[[TrainerIdentity], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._store = store
        self._on_deleted = on_deleted
        self._on_close = on_close
        self._state = GuardState()
        self._subscribers: list[Callable[[GuardState], None]] = []

    @property
    def state(self) -> GuardState:
        return self._state

    def subscribe(self, callback: Callable[[GuardState], None]) -> Callable[[], None]:
        self._subscribers.append(callback)
        callback(self._state)
        return lambda: self._subscribers.remove(callback)

    def _set_state(self, state: GuardState) -> None:
        self._state = state
        for sub in list(self._subscribers):
            try:
                sub(state)
            except Exception as e:
                logger.warning("Subscriber error: %s", e)

    def open(self, identity: TrainerIdentity) -> None:
        logger.debug("Delete requested for id=%d (%r)", identity.id, identity.alias)
        self._set_state(GuardState(target=identity))

    def set_confirm_text(self, text: str) -> None:
        if not self._state.is_open:
            return
        self._set_state(replace(self._state, confirm_text=text, error=None))

    async def confirm(self) -> bool:
        """Delete the target if the typed alias matches.

        Returns True when the record was removed and the gate closed.
        """
        state = self._state
        if state.target is None or state.busy:
            return False
        if not state.matches:
            self._set_state(replace(state, error=ConfirmationMismatch(state.target.alias).message))
            return False

        target = state.target
        self._set_state(replace(state, busy=True, error=None))
        try:
            await self._store.delete(target.id)
        except StoreError as exc:
            logger.error("Failed to delete trainer id=%d: %s", target.id, exc)
            self._set_state(replace(self._state, busy=False, error=DELETE_FAILED_MESSAGE))
            return False

        logger.info("Deleted trainer %r after confirmation", target.alias)
        if self._on_deleted:
            self._on_deleted(target)
        self._reset()
        return True

    def close(self) -> None:
        if self._state.busy:
            return
        self._reset()

    def _reset(self) -> None:
        self._set_state(GuardState())
        if self._on_close:
            self._on_close()


__all__ = ["DeletionGuard", "GuardState", "DELETE_FAILED_MESSAGE"]
