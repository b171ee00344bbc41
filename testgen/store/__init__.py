"""Store package"""
from .bounded import BoundedStore
from .generation_cache import GenerationCache
from .session_store import SessionStore

__all__ = ["BoundedStore", "GenerationCache", "SessionStore"]
