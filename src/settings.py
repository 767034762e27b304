"""Static configuration for branchbot.

Bot options, logging and storage settings live in a single JSON file for quick
edits without touching Python. Every bot option can also be overridden with a
BOT_* environment variable (read from .env as well).
"""

import json
import os

from dotenv import load_dotenv

from core.config import Settings

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json; a missing file means all defaults."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        loaded = json.load(handle)
    if not isinstance(loaded, dict):
        raise ValueError(f"Config root must be an object: {CONFIG_PATH}")
    return loaded


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite memory database.
_storage = _CONFIG.get("storage", {})
DB_PATH = _storage.get("db_path") or os.path.join(PROJECT_ROOT, "branchbot.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)
MEMORY_ENABLED = bool(_storage.get("memory", True))

# Bot options feed the Settings provider as the config-file layer.
BOT_OPTIONS = _CONFIG.get("bot", {})

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})


def build_settings() -> Settings:
    """Create the Settings provider: run-time > BOT_* env > config.json > default."""

    load_dotenv()
    return Settings(file_values=BOT_OPTIONS, environ=os.environ)
