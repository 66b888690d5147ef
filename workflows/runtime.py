"""Wiring of runtime collaborators from Settings.

Every batch driver gets its transport, reference source, resolver, builder
and workbook from here so the scripts stay thin.
"""

from pathlib import Path
from typing import Optional

from connectors import CsvWorkbook, ERPConfig, TransactionTransport, create_connector
from core.config import Settings
from intake.layouts import SheetLayout
from line_matcher.catalog import CatalogItemCache
from reference_resolver.db import SQLiteReferenceCache
from reference_resolver.resolver import ReferenceResolver
from reference_resolver.sources import ReferenceDataSource
from transaction_builder.builder import TransactionBuilder
from transaction_builder.mappings import AccountItemMap, LegacyAccountMap


def erp_config(settings: Settings) -> ERPConfig:
    return ERPConfig(
        connector_type=settings.transport_type,
        environment=settings.environment,
        custom_settings={"ledger_path": str(settings.ledger_path)},
    )


def build_transport(settings: Settings) -> TransactionTransport:
    return create_connector(erp_config(settings))


def build_reference_source(settings: Settings) -> ReferenceDataSource:
    return SQLiteReferenceCache(settings.reference_db_path)


def build_resolver(settings: Settings, source: Optional[ReferenceDataSource] = None) -> ReferenceResolver:
    return ReferenceResolver(source or build_reference_source(settings), settings.scope)


def build_catalog(settings: Settings, source: Optional[ReferenceDataSource] = None) -> CatalogItemCache:
    return CatalogItemCache(source or build_reference_source(settings), settings.scope)


def build_builder(settings: Settings, resolver: ReferenceResolver) -> TransactionBuilder:
    return TransactionBuilder(
        resolver,
        AccountItemMap.load(settings.account_item_map_path),
        excluded_items=settings.excluded_catalog_items,
    )


def load_legacy_accounts(settings: Settings) -> LegacyAccountMap:
    return LegacyAccountMap.load(
        settings.legacy_account_map_path,
        settings.canonical_account_map_path,
    )


def workbook_for(
    settings: Settings,
    layout: SheetLayout,
    directory: Optional[Path] = None,
) -> CsvWorkbook:
    """The workbook of one layout: WORKBOOK_DIR/<workbook_name> unless overridden."""
    return CsvWorkbook(directory or Path(settings.workbook_dir) / layout.workbook_name)
