"""Environment-driven configuration."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DB_PATH_ENV = "POCKETLEDGER_DB_PATH"
OWNER_ENV = "POCKETLEDGER_OWNER"
LOG_LEVEL_ENV = "POCKETLEDGER_LOG_LEVEL"

DEFAULT_OWNER = "local"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_database_path() -> str:
    return str(Path.home() / ".pocketledger" / "pocketledger.db")


@dataclass(frozen=True)
class Settings:
    """Runtime settings of the application."""

    database_path: str
    owner_id: str = DEFAULT_OWNER
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        return cls(
            database_path=environ.get(DB_PATH_ENV) or default_database_path(),
            owner_id=environ.get(OWNER_ENV) or DEFAULT_OWNER,
            log_level=(environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper(),
        )

    @property
    def numeric_log_level(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level '{self.log_level}'")
        return level


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure the root logger once for command-line use."""
    numeric = Settings(database_path="", log_level=level).numeric_log_level
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
