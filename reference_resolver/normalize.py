"""Query Normalization Utilities.

Helpers that turn a human-entered cell into alternative lookup keys:
1. Strip parenthetical suffixes         "Amazon.com (US)"          → "Amazon.com"
2. Budget code prefix                   "JB-C030-26"               → "JB-C030"
3. Leading account number               "88000 Teaching Resources" → "88000"
4. Tokens for the last-resort fallback  "Acme Office-Supplies"     → ["Supplies", "Office", "Acme"]
5. Currency synonyms                    "Pound Sterling"           → ["Pound", "Poundsterling", ...]
"""

import re
from typing import List, Optional


_PARENTHETICAL = re.compile(r"\s*\([^)]*\)\s*")
_BUDGET_SUFFIX = re.compile(r"[-_]\d+$")
_LEADING_NUMBER = re.compile(r"^\s*(\d+)")
_TOKEN_SPLIT = re.compile(r"[\s\-_]+")
_WHITESPACE = re.compile(r"\s+")

# Tokens of this length or shorter are too generic for containment matching
MIN_TOKEN_LENGTH = 3


# Keyword -> name search terms, tried when code/name lookup fails
CURRENCY_SYNONYMS = [
    (("GBP", "POUND", "STERLING"), ["Pound", "Poundsterling", "Pound Sterling", "British", "Great Britain"]),
    (("USD", "DOLLAR"), ["Dollar", "US Dollar"]),
    (("EUR", "EURO"), ["Euro"]),
    (("MYR", "RINGGIT"), ["Ringgit", "Malaysian"]),
    (("SGD", "SINGAPORE"), ["Singapore"]),
]


def clean_query(value: Optional[str]) -> str:
    """Trim and collapse internal whitespace."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def strip_parenthetical(query: str) -> str:
    """Remove parenthetical parts of a name.

    Examples:
        >>> strip_parenthetical("Amazon.com (US)")
        'Amazon.com'
        >>> strip_parenthetical("Acme (Asia) Trading")
        'Acme Trading'
    """
    return clean_query(_PARENTHETICAL.sub(" ", query or ""))


def budget_code_prefix(code: str) -> str:
    """Strip a trailing -<digits> or _<digits> sub-period suffix.

    Examples:
        >>> budget_code_prefix("JB-C030-26")
        'JB-C030'
        >>> budget_code_prefix("OPS_2024")
        'OPS'
    """
    prefix = _BUDGET_SUFFIX.sub("", (code or "").strip())
    return prefix.rstrip("-_")


def leading_account_number(query: str) -> Optional[str]:
    """Return the leading run of digits of a subcode, if any."""
    match = _LEADING_NUMBER.match(query or "")
    return match.group(1) if match else None


def tokenize_query(query: str) -> List[str]:
    """Split on whitespace/hyphen/underscore, drop short tokens, longest first.

    Ties keep their original order.
    """
    tokens = [t for t in _TOKEN_SPLIT.split(query or "") if len(t) >= MIN_TOKEN_LENGTH]
    return sorted(tokens, key=len, reverse=True)


def currency_search_terms(query: str) -> List[str]:
    """Map a currency code or common name to name search terms."""
    upper = (query or "").strip().upper()
    if not upper:
        return []
    terms: List[str] = []
    for keywords, names in CURRENCY_SYNONYMS:
        if any(keyword in upper for keyword in keywords):
            for name in names:
                if name not in terms:
                    terms.append(name)
    return terms
