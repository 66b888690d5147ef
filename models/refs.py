"""Reference entity models.

Cached copies of ERP master records (vendors, accounts, departments, ...).
They are read-only inside the reconciler; an external sync refreshes them.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Scope(str, Enum):
    """Sandbox/production partition. Entities never cross-match between scopes."""
    SANDBOX = "sandbox"
    PRODUCTION = "production"

    @property
    def is_sandbox(self) -> bool:
        return self is Scope.SANDBOX

    @classmethod
    def from_environment(cls, environment: str) -> "Scope":
        if (environment or "").strip().lower() == "production":
            return cls.PRODUCTION
        return cls.SANDBOX

    @classmethod
    def from_flag(cls, is_sandbox: bool) -> "Scope":
        return cls.SANDBOX if is_sandbox else cls.PRODUCTION


class ReferenceKind(str, Enum):
    """Kinds of cached master records."""
    VENDOR = "vendor"
    EMPLOYEE = "employee"
    ACCOUNT = "account"
    DEPARTMENT = "department"
    LOCATION = "location"
    CURRENCY = "currency"
    ITEM = "item"
    EXPENSE_CATEGORY = "expense_category"


class ReferenceEntity(BaseModel):
    """A cached ERP master record.

    Attributes:
        kind: Which master table this record belongs to
        external_id: ERP internal ID used in payloads
        display_name: Name shown in the ERP (vendor name, department name, ...)
        code: Secondary identifier (account number, currency code, item number)
        is_sandbox_scope: True for sandbox records
        is_inactive: Inactive records are skipped where the kind requires it
        item_type: Catalog item type (e.g. "NonInventoryPurchaseItem")
        allowed_currencies: Vendor currency list (ids or names); empty means any
    """
    model_config = ConfigDict(frozen=True)

    kind: ReferenceKind
    external_id: str = Field(..., description="ERP internal ID")
    display_name: str = Field(default="", description="Display name")
    code: Optional[str] = Field(default=None, description="Account number, currency code or item number")
    is_sandbox_scope: bool = Field(default=True)
    is_inactive: bool = Field(default=False)
    item_type: Optional[str] = Field(default=None, description="Catalog item type")
    allowed_currencies: List[str] = Field(default_factory=list, description="Vendor currencies (ids or names)")

    @property
    def scope(self) -> Scope:
        return Scope.from_flag(self.is_sandbox_scope)

    @property
    def label(self) -> str:
        if self.code and self.code != self.display_name:
            return f"{self.display_name} ({self.code})"
        return self.display_name

    def accepts_currency(self, currency: "ReferenceEntity") -> bool:
        """True if the allowed-currency list is empty or contains the currency."""
        if not self.allowed_currencies:
            return True
        wanted = {currency.external_id, currency.display_name.lower()}
        if currency.code:
            wanted.add(currency.code.lower())
        for allowed in self.allowed_currencies:
            value = str(allowed).strip()
            if value in wanted or value.lower() in wanted:
                return True
        return False
