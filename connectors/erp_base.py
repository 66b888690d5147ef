"""Abstract Transaction Transport Interface.

Every ERP transport implements this interface. No SOAP/REST record shapes
appear here; those live with the transport that speaks them.

Transports:
1. Create transactions from validated drafts
2. Look up existing transactions by number or memo (idempotent re-sync)
3. Update lines of an existing transaction

Conventions:
- Lookups return ExistingTransaction with typed lines
- Record-shape decoding happens once, inside the transport
- Rejections come back as failed TransportResults; unreachable or corrupt
  backends raise TransportFailure
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from models.refs import Scope
from models.transactions import ExistingLine, ExistingTransaction, TransactionDraft, TransactionKind


# =============================================================================
# Results
# =============================================================================

class TransportResult(BaseModel):
    """Outcome of a create or update call."""
    success: bool
    external_id: Optional[str] = Field(default=None, description="ERP internal ID")
    transaction_number: Optional[str] = Field(default=None, description="ERP document number (tranId)")
    error: Optional[str] = Field(default=None, description="Error text, verbatim from the ERP")
    raw_response: Any = None


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class ERPConfig:
    """Configuration for a transaction transport.

    Generic configuration that can be extended by specific transports.
    """
    connector_type: str                     # "local_ledger", ...
    environment: str = "sandbox"            # "production", "sandbox"

    # Transport-specific settings, e.g. ledger_path
    custom_settings: Dict[str, Any] = field(default_factory=dict)

    @property
    def scope(self) -> Scope:
        return Scope.from_environment(self.environment)


# =============================================================================
# Abstract Transport Interface
# =============================================================================

class TransactionTransport(ABC):
    """Abstract base class for ERP transaction transports.

    The batch driver, tracker and auditor depend only on this interface.
    A transport is bound to one scope (sandbox or production).

    Implementations:
    - connectors/local_ledger.py
    """

    def __init__(self, config: ERPConfig):
        """Initialize transport with configuration."""
        self.config = config

    @property
    def scope(self) -> Scope:
        return self.config.scope

    @abstractmethod
    def create(self, draft: TransactionDraft) -> TransportResult:
        """Create a transaction from a validated draft.

        Returns:
            TransportResult with external_id and transaction_number on success
        """
        pass

    @abstractmethod
    def find_by_number(
        self,
        kind: TransactionKind,
        transaction_number: str,
    ) -> Optional[ExistingTransaction]:
        """Look up a transaction by its document number."""
        pass

    @abstractmethod
    def find_by_memo(self, kind: TransactionKind, memo: str) -> bool:
        """True if a transaction of this kind has exactly this memo."""
        pass

    @abstractmethod
    def update(
        self,
        kind: TransactionKind,
        external_id: str,
        lines: Sequence[ExistingLine],
    ) -> TransportResult:
        """Replace the lines of an existing transaction."""
        pass


# =============================================================================
# Transport Factory
# =============================================================================

_connector_registry: Dict[str, type] = {}


def register_connector(connector_type: str):
    """Decorator to register a transport implementation."""
    def decorator(cls):
        _connector_registry[connector_type] = cls
        return cls
    return decorator


def create_connector(config: ERPConfig) -> TransactionTransport:
    """Create a transport instance from configuration.

    Args:
        config: ERPConfig with connector_type specified

    Returns:
        Configured transport instance

    Raises:
        ValueError: If connector_type is not registered
    """
    connector_type = config.connector_type.lower()

    if connector_type not in _connector_registry:
        available = list(_connector_registry.keys())
        raise ValueError(
            f"Unknown connector type: {connector_type}. "
            f"Available: {available}"
        )

    connector_class = _connector_registry[connector_type]
    return connector_class(config)


def list_available_connectors() -> List[str]:
    """List all registered transport types."""
    return list(_connector_registry.keys())
