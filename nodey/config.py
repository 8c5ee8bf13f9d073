"""Centralized config loading — read once at import time."""

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

# Load .env from project root (parent of nodey/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

_config = yaml.safe_load(CONFIG_PATH.read_text())


def get_config() -> dict:
    """Return the loaded config dictionary."""
    return _config


def missing_credentials() -> list[str]:
    """Return the names of required environment variables that are unset or blank."""
    required = get_config().get("required_env", [])
    return [name for name in required if not os.environ.get(name, "").strip()]
