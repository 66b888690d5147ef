"""ERP Connectors - pluggable transaction transports and the workbook adapter.

This package contains the abstract transport interface and its concrete
implementations, plus the tabular store the batch drivers read from.

Batch drivers use only TransactionTransport and TabularStore. ERP record
shapes stay inside connectors/netsuite_records.py.

To add a new transport:
1. Create a new module
2. Implement TransactionTransport
3. Register using the @register_connector decorator
"""

from connectors.erp_base import (
    ERPConfig,
    TransactionTransport,
    TransportResult,
    create_connector,
    list_available_connectors,
    register_connector,
)
from connectors.local_ledger import LocalLedgerTransport
from connectors.netsuite_records import decode_transaction, encode_draft
from connectors.tabular import CsvWorkbook, Table, TabularStore

__all__ = [
    # Transport interface
    "ERPConfig",
    "TransactionTransport",
    "TransportResult",
    "LocalLedgerTransport",

    # Record shapes
    "decode_transaction",
    "encode_draft",

    # Workbook
    "Table",
    "TabularStore",
    "CsvWorkbook",

    # Factory
    "create_connector",
    "register_connector",
    "list_available_connectors",
]
