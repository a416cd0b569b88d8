from .detail import EMPTY_REGISTRY_MESSAGE, TrainerDetail, open_detail
from .display import RenderError, render_code, write_code_image
from .registry import SupportEntry, SupportRegistry, parse_registry, registry_scope

__all__ = [
    "EMPTY_REGISTRY_MESSAGE",
    "RenderError",
    "SupportEntry",
    "SupportRegistry",
    "TrainerDetail",
    "open_detail",
    "parse_registry",
    "registry_scope",
    "render_code",
    "write_code_image",
]
