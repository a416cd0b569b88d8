from .guard import DELETE_FAILED_MESSAGE, DeletionGuard, GuardState

__all__ = ["DeletionGuard", "GuardState", "DELETE_FAILED_MESSAGE"]
