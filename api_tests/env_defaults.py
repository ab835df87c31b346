"""Environment loading for the API tests.

Two files at the repository root feed the process environment:
- `.env` holds the engineer's local settings (BASE_URL, PASSWORD, ...) and
  is loaded into `os.environ` without overriding variables already set.
- `.env.defaults` holds checked-in defaults consulted only when a key is
  absent from the environment.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict

from dotenv import dotenv_values, load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]


@lru_cache(maxsize=1)
def load_env_file() -> bool:
    """Load `.env` once per process. Returns True if a file was found."""
    env_file = REPO_ROOT / ".env"
    if not env_file.exists():
        return False
    return load_dotenv(env_file, override=False)


@lru_cache(maxsize=1)
def _load_env_defaults() -> Dict[str, str]:
    env_defaults = REPO_ROOT / ".env.defaults"
    if not env_defaults.exists():
        return {}
    # dotenv_values yields None for keys without a value
    return {k: v for k, v in dotenv_values(env_defaults).items() if v is not None}


def get_env_default(key: str) -> str | None:
    return _load_env_defaults().get(key)
