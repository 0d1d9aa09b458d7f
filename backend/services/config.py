"""Environment-driven settings. Values are read on each call so tests can patch os.environ."""

import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_STORE = "memory"
DEFAULT_BUCKET = "watch-progress"
DEFAULT_SAVE_DEBOUNCE_SECONDS = 1.0
DEFAULT_JUMP_THRESHOLD_SECONDS = 1.5
VALID_STORES = ("memory", "gcs")


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("[config] %s=%r is not a number; using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("[config] %s=%r is negative; using %s", name, raw, default)
        return default
    return value


def get_store_backend() -> str:
    """Progress store backend from PROGRESS_STORE ("memory" or "gcs")."""
    backend = os.environ.get("PROGRESS_STORE", "").strip().lower() or DEFAULT_STORE
    if backend not in VALID_STORES:
        logger.warning("[config] Unknown PROGRESS_STORE=%r; falling back to %s", backend, DEFAULT_STORE)
        return DEFAULT_STORE
    return backend


def get_bucket_name() -> str:
    """Bucket name from env or default."""
    return os.environ.get("GCS_BUCKET", "").strip() or DEFAULT_BUCKET


def get_save_debounce_seconds() -> float:
    return _float_env("SAVE_DEBOUNCE_SECONDS", DEFAULT_SAVE_DEBOUNCE_SECONDS)


def get_jump_threshold_seconds() -> float:
    return _float_env("JUMP_THRESHOLD_SECONDS", DEFAULT_JUMP_THRESHOLD_SECONDS)
