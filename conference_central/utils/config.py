"""Runtime settings read from environment variables and an optional .env file."""
import os
from pathlib import Path
from threading import Lock

from dotenv import dotenv_values


_ENV_LOADED = False
_ENV_LOCK = Lock()

_PREFIX = "CONFERENCE_"


def _load_env() -> None:
    """Load CONFERENCE_* settings from .env file if present."""
    global _ENV_LOADED

    if _ENV_LOADED:
        return

    with _ENV_LOCK:
        if _ENV_LOADED:
            return

        env_path = Path(".env")
        if env_path.exists():
            for key, value in dotenv_values(env_path).items():
                # Process environment always wins over the file
                if key.startswith(_PREFIX) and value is not None and key not in os.environ:
                    os.environ[key] = value

        _ENV_LOADED = True


def get_str(name: str, default: str) -> str:
    """Return a string setting."""
    _load_env()
    return os.getenv(name, default)


def get_int(name: str, default: int) -> int:
    """
    Return an integer setting.

    Raises:
        ValueError: If the variable is set but not an integer
    """
    raw = get_str(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw}")


def get_float(name: str, default: float) -> float:
    """
    Return a float setting.

    Raises:
        ValueError: If the variable is set but not a number
    """
    raw = get_str(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw}")


def get_datastore_file() -> str:
    """Path of the JSON file backing the entity store."""
    return get_str("CONFERENCE_DATASTORE_FILE", "data/datastore.json")


def get_transaction_retries() -> int:
    """Number of commit attempts before a transaction gives up."""
    retries = get_int("CONFERENCE_TRANSACTION_RETRIES", 5)
    if retries < 1:
        raise ValueError(f"CONFERENCE_TRANSACTION_RETRIES must be >= 1, got: {retries}")
    return retries


def get_lock_timeout() -> float:
    """Seconds to wait for the datastore file lock."""
    return get_float("CONFERENCE_LOCK_TIMEOUT", 5.0)
