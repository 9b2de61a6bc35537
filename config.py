import logging
import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        marker_accounts: frozenset[str],
        marker: str,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.marker_accounts = marker_accounts
        self.marker = marker
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("BUDGET_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _parse_accounts(raw: str) -> frozenset[str]:
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


def _parse_log_level(raw: str) -> str:
    level = raw.strip().upper()
    # getLevelName maps known names to their numeric level.
    if isinstance(logging.getLevelName(level), int):
        return level
    return "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "budget.db"
    database_url = os.getenv("BUDGET_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("BUDGET_TIMEZONE", "America/Toronto")
    marker_accounts = _parse_accounts(os.getenv("BUDGET_MARKER_ACCOUNTS", "RBC,CIBC"))
    marker = os.getenv("BUDGET_MARKER", "**")
    log_level = _parse_log_level(os.getenv("BUDGET_LOG_LEVEL", "INFO"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        marker_accounts=marker_accounts,
        marker=marker,
        log_level=log_level,
    )
