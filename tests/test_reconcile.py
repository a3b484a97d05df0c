"""Pure merge function tests (no I/O)."""

import json

import pytest
from pydantic import ValidationError

from studio_sync.schemas import (
    ARTICLE_SCHEMA,
    CLIENT_SCHEMA,
    SERVICE_SCHEMA,
    SETTINGS_FIELDS,
    EntityType,
)
from studio_sync.seed import default_site_data
from studio_sync.sync.reconcile import (
    apply_settings,
    merge_remote,
    merge_settings_value,
    parse_snapshot,
    reconcile_collection,
    settings_from_document,
    settings_to_document,
)


def ids(records):
    return [r["id"] for r in records]


class TestReconcileCollection:
    def test_seed_merge_orders_seed_first(self):
        remote = [{"id": "art-z"}, {"id": "art-3", "title": "remote"}, {"id": "art-a"}]

        result = reconcile_collection(ARTICLE_SCHEMA, [], remote, frozenset())

        assert ids(result) == ["art-1", "art-2", "art-3", "art-z", "art-a"]

    def test_seed_merge_drops_hidden_from_both_sources(self):
        remote = [{"id": "art-z"}, {"id": "art-q"}]

        result = reconcile_collection(ARTICLE_SCHEMA, [], remote, frozenset({"art-1", "art-q"}))

        assert ids(result) == ["art-2", "art-3", "art-z"]

    def test_seed_merge_empty_remote_still_has_seed(self):
        result = reconcile_collection(ARTICLE_SCHEMA, [{"id": "art-local"}], [], frozenset())

        assert ids(result) == ["art-1", "art-2", "art-3"]

    def test_failed_fetch_keeps_current_minus_hidden(self):
        current = [{"id": "s1"}, {"id": "s2"}]

        result = reconcile_collection(SERVICE_SCHEMA, current, None, frozenset({"s2"}))

        assert ids(result) == ["s1"]

    def test_replace_unless_empty(self):
        current = [{"id": "c-1"}]

        assert ids(reconcile_collection(CLIENT_SCHEMA, current, [], frozenset())) == ["c-1"]
        assert ids(
            reconcile_collection(CLIENT_SCHEMA, current, [{"id": "c-2"}], frozenset())
        ) == ["c-2"]

    def test_duplicate_remote_ids_collapse(self):
        remote = [{"id": "c-2", "name": "first"}, {"id": "c-2", "name": "second"}]

        result = reconcile_collection(CLIENT_SCHEMA, [], remote, frozenset())

        assert result == [{"id": "c-2", "name": "first"}]


class TestSettingsMerge:
    def test_shallow_merge_keeps_unspecified_keys(self):
        field = SETTINGS_FIELDS["profile"]

        merged = merge_settings_value(field, {"name": "a", "bio": "b"}, {"name": "c"})

        assert merged == {"name": "c", "bio": "b"}

    def test_replace_for_lists(self):
        field = SETTINGS_FIELDS["faqs"]

        assert merge_settings_value(field, [{"q": 1}], []) == []

    def test_none_keeps_current(self):
        field = SETTINGS_FIELDS["brand"]

        assert merge_settings_value(field, {"a": 1}, None) == {"a": 1}

    def test_apply_settings_ignores_unknown(self):
        state = default_site_data()

        assert apply_settings(state, {"clients": [{"id": "x"}]}) is state

    def test_apply_settings_rejects_malformed_values(self):
        state = default_site_data()

        assert apply_settings(state, {"faqs": {"q": "not a list"}, "hidden_ids": "art-1"}) is state

    def test_apply_settings_keeps_valid_values_next_to_malformed(self):
        state = default_site_data()

        merged = apply_settings(state, {"faqs": "oops", "hidden_ids": ["art-2"]})

        assert merged.faqs == state.faqs
        assert merged.hidden_ids == ["art-2"]

    def test_document_round_trip_keys(self):
        state = default_site_data()

        document = settings_to_document(state, ["contact_info", "hidden_ids"])

        assert set(document) == {"contactInfo", "hiddenIds"}
        assert settings_from_document({**document, "id": "main", "updated_at": "x"}) == {
            "contact_info": state.contact_info,
            "hidden_ids": [],
        }


class TestMergeRemote:
    def test_missing_table_counts_as_failed_fetch(self):
        state = default_site_data().model_copy(update={"clients": [{"id": "c-1"}]})

        merged = merge_remote(state, None, {EntityType.ARTICLE: [{"id": "art-9"}]})

        assert ids(merged.clients) == ["c-1"]
        assert ids(merged.articles) == ["art-1", "art-2", "art-3", "art-9"]

    def test_remote_hidden_ids_win(self):
        state = default_site_data().model_copy(update={"hidden_ids": ["s1"]})

        merged = merge_remote(state, {"hiddenIds": ["s2"]}, {})

        assert merged.hidden_ids == ["s2"]
        assert ids(merged.services) == ["s1", "s3", "s4"]

    def test_does_not_mutate_input(self):
        state = default_site_data()
        before = state.model_dump()

        merge_remote(state, {"brand": {"siteName": "X"}}, {EntityType.CLIENT: [{"id": "c"}]})

        assert state.model_dump() == before


class TestParseSnapshot:
    def test_round_trip(self):
        state = default_site_data().model_copy(update={"clients": [{"id": "c-1"}]})

        assert parse_snapshot(state.to_snapshot()) == state

    def test_rejects_non_object(self):
        with pytest.raises(ValueError):
            parse_snapshot(json.dumps([1, 2, 3]))

    def test_rejects_bad_json(self):
        with pytest.raises(json.JSONDecodeError):
            parse_snapshot("{")

    def test_rejects_wrong_types(self):
        with pytest.raises(ValidationError):
            parse_snapshot(json.dumps({"clients": "not a list"}))

    def test_hidden_seed_not_resurrected_by_fallback(self):
        raw = json.dumps({"services": [], "hiddenIds": ["s1"]})

        state = parse_snapshot(raw)

        assert ids(state.services) == ["s2", "s3", "s4"]
