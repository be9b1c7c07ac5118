from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not an integer, using %d", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    default_page_size: int = 20
    max_page_size: int = 1000
    sort_key: str = 'sort'
    cursor_first_key: str = 'first'
    cursor_last_key: str = 'last'
    schema_cache_key: str = ''

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> 'Settings':
        """Read ENTITYQL_* variables, loading a .env file first when present."""
        load_dotenv(dotenv_path)
        settings = cls(
            default_page_size=_env_int('ENTITYQL_DEFAULT_PAGE_SIZE', cls.default_page_size),
            max_page_size=_env_int('ENTITYQL_MAX_PAGE_SIZE', cls.max_page_size),
            sort_key=os.getenv('ENTITYQL_SORT_KEY', cls.sort_key),
            cursor_first_key=os.getenv('ENTITYQL_CURSOR_FIRST_KEY', cls.cursor_first_key),
            cursor_last_key=os.getenv('ENTITYQL_CURSOR_LAST_KEY', cls.cursor_last_key),
            schema_cache_key=os.getenv('ENTITYQL_SCHEMA_CACHE_KEY', cls.schema_cache_key),
        )
        if settings.default_page_size > settings.max_page_size:
            raise ValueError("ENTITYQL_DEFAULT_PAGE_SIZE must not exceed ENTITYQL_MAX_PAGE_SIZE")
        return settings
