"""Tests for the reference resolver cascade, normalization helpers and the SQLite cache."""

import json

import pytest

from conftest import make_entity
from core.errors import ResolutionFailure, SetupFailure
from models.refs import ReferenceKind, Scope
from reference_resolver.db import (
    SQLiteReferenceCache,
    init_reference_db,
    list_entities,
    load_entities_from_json,
    upsert_entities,
)
from reference_resolver.models import MatchStrategy, ResolverConfig
from reference_resolver.normalize import (
    budget_code_prefix,
    currency_search_terms,
    leading_account_number,
    strip_parenthetical,
    tokenize_query,
)
from reference_resolver.resolver import ReferenceResolver
from reference_resolver.sources import BaseReferenceSource, InMemoryReferenceSource


class TestNormalize:
    """Query normalization helpers."""

    def test_strip_parenthetical(self):
        assert strip_parenthetical("Amazon.com (US)") == "Amazon.com"
        assert strip_parenthetical("Acme (Asia) Trading") == "Acme Trading"

    def test_budget_code_prefix(self):
        assert budget_code_prefix("JB-C030-26") == "JB-C030"
        assert budget_code_prefix("OPS_2024") == "OPS"
        assert budget_code_prefix("OPS") == "OPS"

    def test_leading_account_number(self):
        assert leading_account_number("88000 Teaching Resources") == "88000"
        assert leading_account_number("Teaching Resources") is None

    def test_tokenize_longest_first(self):
        assert tokenize_query("Acme Office-Supplies") == ["Supplies", "Office", "Acme"]
        assert tokenize_query("A to B") == []

    def test_currency_terms(self):
        assert "Pound" in currency_search_terms("GBP")
        assert currency_search_terms("") == []


class TestCascade:
    """Ordered matching, first hit wins."""

    def test_exact_beats_containment(self):
        source = InMemoryReferenceSource([
            make_entity(ReferenceKind.VENDOR, "1", "Office Supplies Ltd"),
            make_entity(ReferenceKind.VENDOR, "2", "Office"),
        ])
        resolution = ReferenceResolver(source).resolve("Office", ReferenceKind.VENDOR)
        assert resolution.entity.external_id == "2"
        assert resolution.strategy == MatchStrategy.EXACT

    def test_case_insensitive(self, resolver):
        resolution = resolver.resolve("amazon.COM", ReferenceKind.VENDOR)
        assert resolution.entity.external_id == "101"
        assert resolution.strategy == MatchStrategy.CASE_INSENSITIVE

    def test_candidate_name_inside_query(self, resolver):
        resolution = resolver.resolve("Amazon.com (US)", ReferenceKind.VENDOR)
        assert resolution.entity.external_id == "101"
        assert resolution.strategy == MatchStrategy.REVERSE_CONTAINS

    def test_query_inside_candidate_name(self, resolver):
        resolution = resolver.resolve("Yamaha Music", ReferenceKind.VENDOR)
        assert resolution.entity.external_id == "102"
        assert resolution.strategy == MatchStrategy.CONTAINS

    def test_budget_code_prefix_for_departments(self, resolver):
        resolution = resolver.resolve("JB-C030-26", ReferenceKind.DEPARTMENT)
        assert resolution.entity.external_id == "7"
        assert resolution.strategy == MatchStrategy.BUDGET_PREFIX

    def test_account_by_leading_number(self, resolver):
        resolution = resolver.resolve("88000 Teaching Resources", ReferenceKind.ACCOUNT)
        assert resolution.entity.external_id == "501"

    def test_account_number_beats_name_containment(self):
        source = InMemoryReferenceSource([
            make_entity(ReferenceKind.ACCOUNT, "1", "Resources", code="10000"),
            make_entity(ReferenceKind.ACCOUNT, "2", "Teaching Resources", code="88000"),
        ])
        resolution = ReferenceResolver(source).resolve("88000 Teaching Resources", ReferenceKind.ACCOUNT)
        assert resolution.entity.external_id == "2"
        assert resolution.strategy == MatchStrategy.ACCOUNT_NUMBER

    def test_currency_by_code(self, resolver):
        assert resolver.resolve("usd", ReferenceKind.CURRENCY).entity.external_id == "1"

    def test_currency_synonym(self, resolver):
        resolution = resolver.resolve("Pound Sterling", ReferenceKind.CURRENCY)
        assert resolution.entity.external_id == "3"

    def test_numeric_location_matches_external_id(self, resolver):
        assert resolver.resolve("11", ReferenceKind.LOCATION).entity.display_name == "Kuala Lumpur"

    def test_token_fallback(self, resolver):
        resolution = resolver.resolve("Music Dept Supplies", ReferenceKind.ACCOUNT)
        assert resolution.entity.external_id == "502"
        assert resolution.strategy == MatchStrategy.TOKEN

    def test_token_fallback_can_be_disabled(self, reference_source):
        resolver = ReferenceResolver(reference_source, config=ResolverConfig(token_fallback=False))
        assert not resolver.resolve("Music Dept Supplies", ReferenceKind.ACCOUNT).found

    def test_not_found(self, resolver):
        resolution = resolver.resolve("Nonexistent Vendor Corp", ReferenceKind.VENDOR)
        assert not resolution.found
        assert resolution.strategy == MatchStrategy.NO_MATCH
        with pytest.raises(ResolutionFailure):
            resolution.require()

    def test_empty_query(self, resolver):
        resolution = resolver.resolve("   ", ReferenceKind.VENDOR)
        assert not resolution.found
        assert resolution.query == ""

    def test_inactive_items_never_match(self, resolver):
        assert not resolver.resolve("Old Textbook", ReferenceKind.ITEM).found

    def test_resolve_exact_skips_containment(self, resolver):
        assert resolver.resolve_exact("SM-001", ReferenceKind.ITEM).found
        assert not resolver.resolve_exact("Sheet", ReferenceKind.ITEM).found


class TestDeterminism:

    def test_same_query_same_entity(self, resolver):
        first = resolver.resolve("Amazon.com (US)", ReferenceKind.VENDOR)
        second = resolver.resolve("Amazon.com (US)", ReferenceKind.VENDOR)
        assert first == second

    def test_first_candidate_in_source_order_wins(self):
        source = InMemoryReferenceSource([
            make_entity(ReferenceKind.VENDOR, "1", "Acme Trading"),
            make_entity(ReferenceKind.VENDOR, "2", "Acme Trading Asia"),
        ])
        assert ReferenceResolver(source).resolve("acme", ReferenceKind.VENDOR).entity.external_id == "1"

    def test_scopes_never_cross_match(self, reference_source):
        production = ReferenceResolver(reference_source, Scope.PRODUCTION)
        assert production.resolve("Amazon.com", ReferenceKind.VENDOR).entity.external_id == "901"
        assert not production.resolve("Yamaha Music", ReferenceKind.VENDOR).found

    def test_explain_lists_steps_when_not_found(self, resolver):
        text = resolver.explain(resolver.resolve("Nobody", ReferenceKind.VENDOR))
        assert "NOT FOUND" in text
        assert "exact" in text


class TestSQLiteCache:
    """The SQLite reference cache."""

    def test_upsert_and_list_by_scope(self, tmp_path):
        db_path = tmp_path / "cache.db"
        init_reference_db(db_path)
        upsert_entities([
            make_entity(ReferenceKind.VENDOR, "1", "Amazon.com"),
            make_entity(ReferenceKind.VENDOR, "2", "Amazon.com", sandbox=False),
            make_entity(ReferenceKind.ITEM, "3", "Retired", is_inactive=True),
        ], db_path=db_path)

        sandbox = list_entities(ReferenceKind.VENDOR, Scope.SANDBOX, db_path=db_path)
        assert [e.external_id for e in sandbox] == ["1"]
        assert list_entities(ReferenceKind.ITEM, Scope.SANDBOX, active_only=True, db_path=db_path) == []

    def test_upsert_updates_in_place(self, tmp_path):
        db_path = tmp_path / "cache.db"
        init_reference_db(db_path)
        upsert_entities([
            make_entity(ReferenceKind.VENDOR, "1", "First"),
            make_entity(ReferenceKind.VENDOR, "2", "Second"),
        ], db_path=db_path)
        upsert_entities([make_entity(ReferenceKind.VENDOR, "1", "First Renamed")], db_path=db_path)

        names = [e.display_name for e in list_entities(ReferenceKind.VENDOR, Scope.SANDBOX, db_path=db_path)]
        assert names == ["First Renamed", "Second"]

    def test_load_json_export(self, tmp_path):
        db_path = tmp_path / "cache.db"
        init_reference_db(db_path)
        export = tmp_path / "accounts.json"
        export.write_text(json.dumps([
            {"internalId": "501", "name": "Teaching Resources", "acctNumber": "88000"},
            {"internalId": "502", "name": "Music Supplies", "acctNumber": "60100", "isInactive": True},
        ]))

        count = load_entities_from_json(export, ReferenceKind.ACCOUNT, Scope.SANDBOX, db_path=db_path)
        assert count == 2

        cache = SQLiteReferenceCache(db_path)
        resolution = ReferenceResolver(cache).resolve("88000", ReferenceKind.ACCOUNT)
        assert resolution.entity.display_name == "Teaching Resources"

    def test_load_rejects_non_list(self, tmp_path):
        export = tmp_path / "bad.json"
        export.write_text("{}")
        with pytest.raises(SetupFailure):
            load_entities_from_json(export, ReferenceKind.VENDOR, Scope.SANDBOX, db_path=tmp_path / "x.db")

    def test_missing_cache_is_setup_failure(self, tmp_path):
        with pytest.raises(SetupFailure):
            SQLiteReferenceCache(tmp_path / "missing.db")


class TestSourceBase:
    """find() is shared; list_entities() must be supplied by each source."""

    def test_base_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            BaseReferenceSource()

    def test_source_without_listing_is_rejected(self):
        class NoListing(BaseReferenceSource):
            pass

        with pytest.raises(TypeError):
            NoListing()

    def test_find_uses_listing_order(self):
        source = InMemoryReferenceSource([
            make_entity(ReferenceKind.VENDOR, "101", "Amazon.com"),
            make_entity(ReferenceKind.VENDOR, "102", "Amazon Music"),
        ])
        found = source.find(ReferenceKind.VENDOR, Scope.SANDBOX, lambda e: "amazon" in e.display_name.lower())
        assert found.external_id == "101"
