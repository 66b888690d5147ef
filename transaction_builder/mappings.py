"""Static account mapping tables.

Both tables are JSON lists of {"account_number": ..., "name": ...} records,
loaded once at batch start and injected into the components that need them:

- AccountItemMap: account number -> catalog item name/number. Lines coded to
  a mapped account are posted as catalog item lines instead of expense lines.
- LegacyAccountMap: legacy account number -> account name (legacy chart) and
  account name -> canonical account number (current chart). Used to rewrite
  legacy subcodes before resolution.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from core.errors import SetupFailure


def _read_json_records(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read a mapping file as a list of records.

    Raises:
        SetupFailure: If the file is missing or malformed
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SetupFailure(f"Cannot read mapping file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SetupFailure(f"Mapping file {path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        return [{"account_number": k, "name": v} for k, v in data.items()]
    if not isinstance(data, list):
        raise SetupFailure(f"Mapping file {path} must contain a list of records")
    return [r for r in data if isinstance(r, dict)]


class AccountItemMap:
    """Account number -> catalog item mapping."""

    def __init__(self, mapping: Optional[Dict[str, str]] = None):
        self._mapping = {str(k).strip(): str(v).strip() for k, v in (mapping or {}).items()}

    @classmethod
    def load(cls, path: Optional[Union[str, Path]]) -> "AccountItemMap":
        """Load from a JSON file; no path means an empty table."""
        if path is None:
            return cls()
        mapping: Dict[str, str] = {}
        for record in _read_json_records(path):
            number = record.get("account_number")
            name = record.get("name")
            if number is not None and name:
                mapping[str(number).strip()] = str(name).strip()
        return cls(mapping)

    def get(self, account_number: Optional[str]) -> Optional[str]:
        if not account_number:
            return None
        return self._mapping.get(str(account_number).strip())

    def __contains__(self, account_number: str) -> bool:
        return self.get(account_number) is not None

    def __len__(self) -> int:
        return len(self._mapping)


@dataclass(frozen=True)
class SubcodeNormalization:
    original: str
    normalized: str
    account_name: Optional[str] = None
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.error is None and self.normalized != self.original


class LegacyAccountMap:
    """Rewrites legacy subcodes to canonical account numbers."""

    def __init__(
        self,
        legacy_names: Optional[Dict[str, str]] = None,
        canonical_numbers: Optional[Dict[str, str]] = None,
    ):
        self.legacy_names = legacy_names or {}
        self.canonical_numbers = canonical_numbers or {}

    @classmethod
    def load(
        cls,
        legacy_path: Optional[Union[str, Path]],
        canonical_path: Optional[Union[str, Path]],
    ) -> "LegacyAccountMap":
        """Load both charts. Both paths are required together."""
        if legacy_path is None and canonical_path is None:
            return cls()
        if legacy_path is None or canonical_path is None:
            raise SetupFailure("Both legacy and canonical account map paths are required")

        legacy_names: Dict[str, str] = {}
        for record in _read_json_records(legacy_path):
            if record.get("account_number") is not None and record.get("name"):
                legacy_names[str(record["account_number"]).strip()] = str(record["name"]).strip()

        # First record wins when a name appears more than once
        canonical_numbers: Dict[str, str] = {}
        for record in _read_json_records(canonical_path):
            if record.get("account_number") is not None and record.get("name"):
                name = str(record["name"]).strip()
                if name not in canonical_numbers:
                    canonical_numbers[name] = str(record["account_number"]).strip()

        return cls(legacy_names, canonical_numbers)

    @property
    def is_empty(self) -> bool:
        return not self.legacy_names

    def normalize(self, subcode: Optional[str]) -> SubcodeNormalization:
        original = (subcode or "").strip()
        if not original:
            return SubcodeNormalization(original, original, error="Empty subcode")

        account_name = self.legacy_names.get(original)
        if account_name is None:
            return SubcodeNormalization(original, original, error="Subcode not found in legacy chart")

        number = self.canonical_numbers.get(account_name)
        if number is None:
            return SubcodeNormalization(
                original, original, account_name=account_name,
                error="Account name not found in canonical chart",
            )
        return SubcodeNormalization(original, number, account_name=account_name)

    def normalize_or_keep(self, subcode: Optional[str]) -> Optional[str]:
        """Canonical number when the legacy code is known, else the input unchanged."""
        if subcode is None or self.is_empty:
            return subcode
        result = self.normalize(subcode)
        return result.normalized if result.error is None else subcode
