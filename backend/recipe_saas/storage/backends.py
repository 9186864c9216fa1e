import logging

from recipe_saas.config import Settings, create_supabase_client
from recipe_saas.storage.base import Store
from recipe_saas.storage.memory import MemoryStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> Store:
    """Build the store selected by STORAGE_BACKEND."""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        logger.warning("Using in-memory storage. Data is lost on restart.")
        return MemoryStore()
    if backend == "supabase":
        from recipe_saas.storage.supabase_store import SupabaseStore

        return SupabaseStore(create_supabase_client(settings))
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend!r}")
