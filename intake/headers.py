"""Header lookup for human-maintained sheets.

Column headers drift ("Qty" vs "Quantity", "Payee/Vendor" vs "Vendor"), so
every column is located through an ordered list of candidate names, matched
case-insensitively after trimming.
"""

from datetime import date, datetime
import re
from typing import List, Optional, Sequence

from core.errors import SetupFailure


def normalize_header(header: Optional[str]) -> str:
    return (header or "").strip().casefold()


def find_column(headers: Sequence[str], candidates: Sequence[str]) -> Optional[int]:
    """Index of the first candidate present in headers, or None."""
    normalized = [normalize_header(h) for h in headers]
    for candidate in candidates:
        wanted = normalize_header(candidate)
        if wanted in normalized:
            return normalized.index(wanted)
    return None


def require_column(
    headers: Sequence[str],
    candidates: Sequence[str],
    table: str,
    label: str,
) -> int:
    """Like find_column() but a missing column is a setup failure."""
    index = find_column(headers, candidates)
    if index is None:
        raise SetupFailure(
            f"{label} column not found in {table} sheet. Expected one of: {', '.join(candidates)}. "
            f"Available columns: {', '.join(h.strip() for h in headers)}"
        )
    return index


def cell(row: Sequence[str], index: Optional[int]) -> str:
    """Trimmed cell value; missing cells read as empty."""
    if index is None or index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def get_first_available(
    row: Sequence[str],
    headers: Sequence[str],
    candidates: Sequence[str],
) -> Optional[str]:
    """First non-empty value among the candidate columns, in candidate order."""
    normalized = [normalize_header(h) for h in headers]
    for candidate in candidates:
        wanted = normalize_header(candidate)
        for i, header in enumerate(normalized):
            if header == wanted:
                value = cell(row, i)
                if value:
                    return value
    return None


def pad_row(row: Sequence[str], width: int) -> List[str]:
    values = ["" if v is None else str(v) for v in row]
    if len(values) < width:
        values.extend([""] * (width - len(values)))
    return values


# =============================================================================
# Dates
# =============================================================================

# "2026-01-19T07:45:33-08:00 Asia/Kuala_Lumpur" -> drop the zone name
_ZONE_NAME = re.compile(r"\s+[A-Z][a-z]+/[A-Za-z_]+$")
_ISO_DATETIME = re.compile(r"^(\d{4}-\d{2}-\d{2})T\d{2}:\d{2}(:\d{2})?")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%d/%m/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%d %b %Y",
    "%b %d, %Y",
)


def parse_sheet_date(value) -> Optional[date]:
    """Parse a date cell from various string formats; None when unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    s = _ZONE_NAME.sub("", str(value).strip())
    if s == "":
        return None

    match = _ISO_DATETIME.match(s)
    if match:
        s = match.group(1)

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None
