import asyncio
from pathlib import Path
from typing import Any, Callable, Optional, Union

from ...core.asyncio_utils import create_logged_task
from ...core.logging_utils import get_module_logger
from .core.actions import (
    Action,
    ChooseMethod, GoBack, Dismiss,
    EditTrainerId, EditAlias, SubmitRequested,
    StartScan, StopScan, FileSelected,
)
from .core.effects import Effect
from .core.state import FlowState, FlowStep
from .core.update import update
from .infra.effect_executor import EffectExecutor

logger = get_module_logger("ConfirmationFlow")


class ConfirmationFlow:
    """Runs the reducer, executes its effects and notifies subscribers.

    ``dispatch`` awaits the effects an action produces. ``post`` is for
    callbacks that cannot await (camera events); its effects run as a
    background task.
    """

    def __init__(self, executor: EffectExecutor):
        self._executor = executor
        self._state = FlowState()
        self._subscribers: list[Callable[[FlowState], None]] = []
        self._pending: set[asyncio.Task] = set()
        self._executor.bind(self.post)

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def executor(self) -> EffectExecutor:
        return self._executor

    def subscribe(self, callback: Callable[[FlowState], None]) -> Callable[[], None]:
        self._subscribers.append(callback)
        callback(self._state)
        return lambda: self._subscribers.remove(callback)

    def _notify(self) -> None:
        for sub in list(self._subscribers):
            try:
                sub(self._state)
            except Exception as e:
                logger.warning("Subscriber error: %s", e)

    # ================================================================
    # DISPATCH
    # ================================================================

    def _apply(self, action: Action) -> list[Effect]:
        previous = self._state
        self._state, effects = update(previous, action)
        if self._state is not previous:
            if self._state.step != previous.step:
                logger.debug("%s -> %s on %s", previous.step.name, self._state.step.name, type(action).__name__)
            self._notify()
        return effects

    async def _run_effects(self, effects: list[Effect]) -> None:
        for effect in effects:
            await self._executor(effect, self.dispatch)

    async def dispatch(self, action: Action) -> None:
        await self._run_effects(self._apply(action))

    def post(self, action: Action) -> None:
        effects = self._apply(action)
        if effects:
            create_logged_task(
                self._run_effects(effects),
                logger=logger,
                context=f"confirmation:{type(action).__name__}",
                pending=self._pending,
            )

    async def drain(self) -> None:
        """Wait for effects started by ``post`` to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ================================================================
    # OPERATOR COMMANDS
    # ================================================================

    async def choose_manual(self) -> None:
        await self.dispatch(ChooseMethod(FlowStep.MANUAL_ENTRY))

    async def choose_live_scan(self) -> None:
        await self.dispatch(ChooseMethod(FlowStep.LIVE_SCAN))

    async def choose_upload(self) -> None:
        await self.dispatch(ChooseMethod(FlowStep.UPLOAD_SCAN))

    async def back(self) -> None:
        await self.dispatch(GoBack())

    async def set_trainer_id(self, value: str) -> None:
        await self.dispatch(EditTrainerId(value))

    async def set_alias(self, value: str) -> None:
        await self.dispatch(EditAlias(value))

    async def submit(self) -> None:
        await self.dispatch(SubmitRequested())

    async def start_scan(self) -> None:
        await self.dispatch(StartScan())

    async def stop_scan(self) -> None:
        await self.dispatch(StopScan())

    async def select_file(self, file: Union[str, Path, Any]) -> None:
        await self.dispatch(FileSelected(file))

    async def dismiss(self) -> None:
        await self.dispatch(Dismiss())

    async def close(self) -> None:
        """Tear down: reset the flow and release any device."""
        await self.dismiss()
        self._executor.close()
        for task in list(self._pending):
            task.cancel()
        await self.drain()
        self._subscribers.clear()


def build_confirmation_flow(
    store,
    *,
    camera=None,
    scanner=None,
    on_saved: Optional[Callable] = None,
    on_close: Optional[Callable[[], None]] = None,
) -> ConfirmationFlow:
    executor = EffectExecutor(store, camera=camera, scanner=scanner, on_saved=on_saved, on_close=on_close)
    return ConfirmationFlow(executor)


__all__ = ["ConfirmationFlow", "build_confirmation_flow"]
