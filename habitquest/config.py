"""Configuration management"""
import os
from pathlib import Path
from dotenv import load_dotenv
import pytz

load_dotenv()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Storage
# - 'memory' (default): in-process store, lost on exit
# - 'file': one JSON document per key under DATA_PATH
# - 'redis': Redis server at REDIS_URL
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory").lower()
DATA_PATH: Path = Path(os.getenv("DATA_PATH", "./data"))
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
STORAGE_KEY_PREFIX: str = os.getenv("STORAGE_KEY_PREFIX", "habitquest")

# Calendar
DEFAULT_TIMEZONE: str = os.getenv("DEFAULT_TIMEZONE", "UTC")

# Quests older than this many days past their period are pruned
QUEST_RETENTION_DAYS: int = int(os.getenv("QUEST_RETENTION_DAYS", "7"))

SUPPORTED_BACKENDS = ("memory", "file", "redis")


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    if STORAGE_BACKEND not in SUPPORTED_BACKENDS:
        raise ValueError(
            f"STORAGE_BACKEND must be one of {', '.join(SUPPORTED_BACKENDS)}, got '{STORAGE_BACKEND}'"
        )
    if DEFAULT_TIMEZONE not in pytz.all_timezones:
        raise ValueError(f"DEFAULT_TIMEZONE '{DEFAULT_TIMEZONE}' is not a valid IANA timezone")
    if QUEST_RETENTION_DAYS < 0:
        raise ValueError("QUEST_RETENTION_DAYS must not be negative")
    if STORAGE_BACKEND == "redis" and not REDIS_URL:
        raise ValueError("REDIS_URL is required for the redis backend")
