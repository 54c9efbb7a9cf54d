from certdocs.config.settings import Settings
from certdocs.storage.base import BaseStorageClient
from certdocs.storage.memory_adapter import MemoryStorageClient
from certdocs.storage.supabase_adapter import SupabaseStorageClient


class StorageClientFactory:
    """Creates the configured object storage adapter."""

    BACKENDS: tuple[str, ...] = ("supabase", "memory")

    @classmethod
    def create(cls, settings: Settings) -> BaseStorageClient:
        backend = settings.storage_backend.lower()
        if backend == "memory":
            return MemoryStorageClient()
        if backend == "supabase":
            return SupabaseStorageClient(
                base_url=settings.supabase_url,
                service_role_key=settings.supabase_service_role_key,
                timeout_seconds=settings.storage_timeout_seconds,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
