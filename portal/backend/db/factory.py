import logging

from .store import AttendanceStore, ConfigurationMissingError
from .memory_store import MemoryStore
from .redis_client import RedisClient
from .db_client import AsyncPostgresClient

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("memory", "redis", "postgres")


def check_store_config(config) -> str:
    """
    Validates the persistence settings and returns the backend name.
    Raises ConfigurationMissingError instead of falling back to another backend.
    """
    backend = (getattr(config, "STORAGE_BACKEND", None) or "").strip().lower()
    if backend not in SUPPORTED_BACKENDS:
        raise ConfigurationMissingError(
            f"STORAGE_BACKEND must be one of {', '.join(SUPPORTED_BACKENDS)}; got '{backend or '<unset>'}'."
        )
    if backend == "redis" and not getattr(config, "APPLICATION_REDIS_URL", None):
        raise ConfigurationMissingError("STORAGE_BACKEND is 'redis' but APPLICATION_REDIS_URL is not set.")
    if backend == "postgres" and not getattr(config, "DATABASE_URL", None):
        raise ConfigurationMissingError("STORAGE_BACKEND is 'postgres' but DATABASE_URL is not set.")
    return backend


async def build_store(config) -> AttendanceStore:
    """Creates the backend named by the configuration object it is given."""
    backend = check_store_config(config)
    if backend == "redis":
        store = RedisClient.from_url(config.APPLICATION_REDIS_URL)
    elif backend == "postgres":
        store = await AsyncPostgresClient.connect(config.DATABASE_URL)
    else:
        store = MemoryStore()
    logger.info(f"Storage backend '{backend}' ready.")
    return store
