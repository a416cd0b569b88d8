"""Component-tagged loggers under the ``mezastar_helper`` namespace."""

from __future__ import annotations

import logging

NAMESPACE = "mezastar_helper"
TOKEN_LOG_CHARS = 8


class StructuredLogger(logging.LoggerAdapter):
    """Prefixes every message with ``[Component]``.

    Records still go through the namespaced stdlib logger, so levels and
    handlers set by :func:`configure_logging` apply unchanged.
    """

    def __init__(self, logger: logging.Logger, component: str):
        super().__init__(logger, {"component": component})

    @property
    def component(self) -> str:
        return self.extra["component"]

    def process(self, msg, kwargs):
        kwargs.setdefault("extra", self.extra)
        return f"[{self.component}] {msg}", kwargs


def get_module_logger(component: str) -> StructuredLogger:
    """``get_module_logger("IdentityStore")`` logs as ``mezastar_helper.IdentityStore``."""
    return StructuredLogger(logging.getLogger(f"{NAMESPACE}.{component}"), component)


def redact_token(token: str, keep: int = TOKEN_LOG_CHARS) -> str:
    """Trainer tokens are credentials; logs only ever see a prefix."""
    if len(token) <= keep:
        return token
    return f"{token[:keep]}..."


__all__ = ["NAMESPACE", "StructuredLogger", "get_module_logger", "redact_token"]
