from .identity_store import MEMORY_DB, IdentityStore, TrainerIdentity

__all__ = ["IdentityStore", "TrainerIdentity", "MEMORY_DB"]
