"""Confirmation flow between acquisition and the identity store.

Modeled as a pure reducer (``core.update``) over immutable ``FlowState``
values, with side effects executed by ``infra.effect_executor``.
"""

from .controller import ConfirmationFlow, build_confirmation_flow
from .core.state import FlowState, FlowStep
from .core.update import update
from .infra.effect_executor import EffectExecutor

__all__ = [
    "ConfirmationFlow",
    "EffectExecutor",
    "FlowState",
    "FlowStep",
    "build_confirmation_flow",
    "update",
]
