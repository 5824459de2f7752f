"""Application settings, read from the environment once at start-up and passed around explicitly."""

import os
from dataclasses import dataclass
from typing import Self

STORAGE_BACKENDS = ("memory", "sql")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    storage: str = "memory"
    database_url: str = "sqlite:///./chess_games.db"
    sql_echo: bool = False
    join_retries: int = 1
    move_retries: int = 3
    storage_retries: int = 3
    log_level: str = "INFO"
    log_format: str = "simple"

    def __post_init__(self) -> None:
        if self.storage not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend {self.storage!r}. Pick one from {', '.join(STORAGE_BACKENDS)}"
            )

    @classmethod
    def from_env(cls) -> Self:
        """Build settings from CHESS_* environment variables (unset variables keep their defaults)."""
        defaults = cls()
        return cls(
            storage=os.getenv("CHESS_STORAGE", defaults.storage).lower(),
            database_url=os.getenv("CHESS_DATABASE_URL", defaults.database_url),
            sql_echo=_env_bool(os.getenv("CHESS_SQL_ECHO", str(defaults.sql_echo))),
            join_retries=int(os.getenv("CHESS_JOIN_RETRIES", defaults.join_retries)),
            move_retries=int(os.getenv("CHESS_MOVE_RETRIES", defaults.move_retries)),
            storage_retries=int(
                os.getenv("CHESS_STORAGE_RETRIES", defaults.storage_retries)
            ),
            log_level=os.getenv("CHESS_LOG_LEVEL", defaults.log_level),
            log_format=os.getenv("CHESS_LOG_FORMAT", defaults.log_format),
        )
