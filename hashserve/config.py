"""Runtime configuration read from the environment and ``.env``."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_KEY = "development"


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError("{0} must be an integer, got {1!r}".format(name, value))


@dataclass
class Settings:
    api_key: str = DEFAULT_API_KEY
    uploads_dir: str = "./uploads"
    uploads_dir_v2: str = "./uploadsv2"
    db_file: str = "./data/data.db"
    max_upload_size: int = 100 << 20
    max_form_size: int = 1 << 20
    max_remote_size: int = 100 << 20
    remote_fetch_timeout: int = 30
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """Load ``.env`` (without overriding variables already set) and build
        settings from the environment.
        """
        load_dotenv(dotenv_path or find_dotenv(usecwd=True))

        api_key = os.getenv("API_KEY")
        if not api_key:
            logger.warning("API_KEY not found in environment, using default value")
            api_key = DEFAULT_API_KEY

        return cls(
            api_key=api_key,
            uploads_dir=os.getenv("UPLOADS_DIR", cls.uploads_dir),
            uploads_dir_v2=os.getenv("UPLOADS_DIR_V2", cls.uploads_dir_v2),
            db_file=os.getenv("DB_FILE", cls.db_file),
            max_upload_size=_int_env("MAX_UPLOAD_SIZE", cls.max_upload_size),
            max_form_size=_int_env("MAX_FORM_SIZE", cls.max_form_size),
            max_remote_size=_int_env("MAX_REMOTE_SIZE", cls.max_remote_size),
            remote_fetch_timeout=_int_env("REMOTE_FETCH_TIMEOUT", cls.remote_fetch_timeout),
            host=os.getenv("HOST", cls.host),
            port=_int_env("PORT", cls.port),
        )
