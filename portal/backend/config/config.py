import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Holds settings read directly from environment variables.

    The instance is handed explicitly to the storage factory; nothing below the
    application factory reads the environment on its own.
    """
    # Persistence backend: memory, redis or postgres
    STORAGE_BACKEND: str = os.environ.get("STORAGE_BACKEND", "memory").strip().lower()
    DATABASE_URL: str = os.environ.get("DATABASE_URL")
    APPLICATION_REDIS_URL: str = os.environ.get("APPLICATION_REDIS_URL")

    # Rate limiting
    RATE_LIMITER_STORAGE_URL: str = os.environ.get("RATE_LIMITER_STORAGE_URL", "memory://")
    RATE_LIMIT_ENABLED: bool = _as_bool(os.environ.get("RATE_LIMIT_ENABLED", "true"))

    # plaintext or pbkdf2_sha256
    CREDENTIAL_SCHEME: str = os.environ.get("CREDENTIAL_SCHEME", "plaintext").strip().lower()

    # Placeholder roster generation
    ROSTER_INSTITUTION: str = os.environ.get("ROSTER_INSTITUTION", "LASU")
    ROSTER_YEAR: int = int(os.environ.get("ROSTER_YEAR", 2023))
    ROSTER_SIZE: int = int(os.environ.get("ROSTER_SIZE", 50))

    LOG_DIR: str = os.environ.get("LOG_DIR", "logs")


# Single importable instance of the settings
settings = Config()
