"""Runtime settings loaded from the environment.

Reads a `.env` file at the repository root (if present) and exposes a
Settings dataclass built from environment variables:
- SYNC_ENVIRONMENT: "sandbox" (default) or "production"
- REFERENCE_DB_PATH: SQLite reference cache
- ACCOUNT_ITEM_MAP_PATH: JSON account number -> catalog item mapping
- LEGACY_ACCOUNT_MAP_PATH / CANONICAL_ACCOUNT_MAP_PATH: subcode normalization tables
- EXCLUDED_CATALOG_ITEMS: comma-separated placeholder items that must never be purchased
- SYNC_WRITE_DELAY_MS: throttle between successive ERP/sheet writes
- SYNC_ERROR_DISPLAY_LIMIT: number of detailed errors printed in the summary
- WORKBOOK_DIR: directory of CSV tables used as the spreadsheet
- TRANSPORT_TYPE / LEDGER_PATH: ERP transport selection
- LOG_LEVEL / LOG_JSON: logging output
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from models.refs import Scope

REPO_ROOT = Path(__file__).resolve().parents[1]

env_path = REPO_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_EXCLUDED_CATALOG_ITEMS = ["Teaching Materials_Sales"]


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str, default: Optional[Path] = None) -> Optional[Path]:
    value = os.getenv(name)
    if value:
        return Path(value)
    return default


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if value is None:
        return list(default)
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """Settings for a reconciliation run."""
    environment: str = "sandbox"
    reference_db_path: Path = REPO_ROOT / "reference_cache.db"
    account_item_map_path: Optional[Path] = None
    legacy_account_map_path: Optional[Path] = None
    canonical_account_map_path: Optional[Path] = None
    excluded_catalog_items: List[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_CATALOG_ITEMS)
    )
    write_delay_ms: int = 100
    error_display_limit: int = 10
    workbook_dir: Path = REPO_ROOT / "workbook"
    transport_type: str = "local_ledger"
    ledger_path: Path = REPO_ROOT / "ledger.json"
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def scope(self) -> Scope:
        return Scope.from_environment(self.environment)

    @property
    def write_delay_seconds(self) -> float:
        return max(self.write_delay_ms, 0) / 1000.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ValueError: If SYNC_ENVIRONMENT or a numeric setting is invalid
        """
        environment = os.getenv("SYNC_ENVIRONMENT", "sandbox").strip().lower()
        if environment not in ("sandbox", "production"):
            raise ValueError(
                f"SYNC_ENVIRONMENT must be 'sandbox' or 'production', got '{environment}'"
            )

        defaults = cls()
        return cls(
            environment=environment,
            reference_db_path=_env_path("REFERENCE_DB_PATH", defaults.reference_db_path),
            account_item_map_path=_env_path("ACCOUNT_ITEM_MAP_PATH"),
            legacy_account_map_path=_env_path("LEGACY_ACCOUNT_MAP_PATH"),
            canonical_account_map_path=_env_path("CANONICAL_ACCOUNT_MAP_PATH"),
            excluded_catalog_items=_env_list(
                "EXCLUDED_CATALOG_ITEMS", DEFAULT_EXCLUDED_CATALOG_ITEMS
            ),
            write_delay_ms=int(os.getenv("SYNC_WRITE_DELAY_MS", "100")),
            error_display_limit=int(os.getenv("SYNC_ERROR_DISPLAY_LIMIT", "10")),
            workbook_dir=_env_path("WORKBOOK_DIR", defaults.workbook_dir),
            transport_type=os.getenv("TRANSPORT_TYPE", "local_ledger"),
            ledger_path=_env_path("LEDGER_PATH", defaults.ledger_path),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("LOG_JSON"),
        )
