"""Pure merge functions: seed + remote + tombstones -> one coherent state.

Nothing in here performs I/O or mutates its inputs; every function returns
new lists/dicts/SiteData instances so the engine can publish them as a
single state transition.
"""

import json
import logging
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..models import Record, SiteData
from ..schemas import (
    ENTITY_SCHEMAS,
    SETTINGS_FIELDS,
    SETTINGS_KEYS,
    EntitySchema,
    EntityType,
    MergeStrategy,
    ReconcilePolicy,
    SettingsField,
)
from ..seed import default_site_data, seed_ids, seed_records

logger = logging.getLogger(__name__)


def _unique(records: list[Record]) -> list[Record]:
    """Drop records whose id was already seen (first one wins)."""
    seen: set[str] = set()
    result = []
    for record in records:
        rid = record.get("id")
        if rid in seen:
            continue
        seen.add(rid)
        result.append(record)
    return result


def reconcile_collection(
    schema: EntitySchema,
    current: list[Record],
    remote: list[Record] | None,
    hidden: frozenset[str],
) -> list[Record]:
    """
    Merge one collection according to its schema's policy.

    Args:
        schema: Entity schema (decides the policy and the seed catalog)
        current: Collection currently held in memory
        remote: Rows fetched from the remote store; None if the fetch failed
        hidden: Seed ids suppressed by the operator

    Returns:
        The reconciled collection
    """
    if remote is None:
        # Failed fetch: keep what we have, minus anything hidden since.
        return [r for r in current if r.get("id") not in hidden]

    if schema.policy == ReconcilePolicy.SEED_MERGE:
        catalog_ids = seed_ids(schema.entity)
        visible_seed = [r for r in seed_records(schema.entity) if r["id"] not in hidden]
        remote_extra = [
            r for r in remote if r.get("id") not in catalog_ids and r.get("id") not in hidden
        ]
        return _unique(visible_seed + remote_extra)

    # REPLACE_UNLESS_EMPTY: an empty result never downgrades the collection.
    if not remote:
        return [r for r in current if r.get("id") not in hidden]
    return _unique([r for r in remote if r.get("id") not in hidden])


def merge_settings_value(field: SettingsField, current: Any, incoming: Any) -> Any:
    """Apply one incoming settings value using the field's merge strategy."""
    if incoming is None:
        return current
    if field.strategy == MergeStrategy.SHALLOW_MERGE:
        if not isinstance(incoming, dict):
            return current
        return {**(current or {}), **incoming}
    return incoming


@lru_cache(maxsize=None)
def _field_adapter(name: str) -> TypeAdapter:
    return TypeAdapter(SiteData.model_fields[name].annotation)


def apply_settings(state: SiteData, changes: dict[str, Any]) -> SiteData:
    """
    Return a copy of *state* with settings-class fields merged in.

    Each merged value is validated against its SiteData field type; a
    malformed value is logged and the current value kept, so the state
    stays loadable from its own snapshot.

    Args:
        state: Current state
        changes: Mapping of SiteData attribute name -> incoming value.
            Unknown names are ignored.
    """
    update: dict[str, Any] = {}
    for name, incoming in changes.items():
        field = SETTINGS_FIELDS.get(name)
        if field is None:
            continue
        merged = merge_settings_value(field, getattr(state, name), incoming)
        try:
            update[name] = _field_adapter(name).validate_python(merged)
        except ValidationError as e:
            logger.warning(
                f"Ignoring malformed settings value for {field.key}: "
                f"{e.error_count()} validation error(s)"
            )
    if not update:
        return state
    return state.model_copy(update=update)


def settings_from_document(document: dict[str, Any] | None) -> dict[str, Any]:
    """Map a remote settings row (camelCase columns) to SiteData attribute names."""
    if not document:
        return {}
    return {
        SETTINGS_KEYS[key].name: value
        for key, value in document.items()
        if key in SETTINGS_KEYS and value is not None
    }


def settings_to_document(state: SiteData, names: list[str] | None = None) -> dict[str, Any]:
    """Build the remote settings payload for *names* (all settings fields by default)."""
    names = names if names is not None else list(SETTINGS_FIELDS)
    return {SETTINGS_FIELDS[n].key: getattr(state, n) for n in names if n in SETTINGS_FIELDS}


def merge_remote(
    state: SiteData,
    settings_document: dict[str, Any] | None,
    remote_rows: dict[EntityType, list[Record] | None],
) -> SiteData:
    """
    Produce the bootstrap state from the current state and remote results.

    Hidden ids come from the settings document when it carries them,
    otherwise the in-memory set is kept.  Every registered collection is
    reconciled; collections missing from *remote_rows* count as failed
    fetches and are left as they are.
    """
    settings = settings_from_document(settings_document)
    merged = apply_settings(state, settings)
    hidden = merged.hidden

    collections = {
        schema.collection: reconcile_collection(
            schema,
            merged.records(schema.collection),
            remote_rows.get(entity),
            hidden,
        )
        for entity, schema in ENTITY_SCHEMAS.items()
    }
    return merged.model_copy(update=collections)


def parse_snapshot(raw: str) -> SiteData:
    """
    Rebuild SiteData from a cached JSON snapshot, filling gaps from defaults.

    Settings objects are merged key by key over the defaults.  A stored
    collection that is empty falls back to its seed catalog for the
    replace-unless-empty collections, matching the bootstrap policy.

    Raises:
        json.JSONDecodeError: If the payload is not JSON
        pydantic.ValidationError: If the payload does not fit SiteData
        ValueError: If the payload is not a JSON object
    """
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError(f"Snapshot is a {type(parsed).__name__}, expected an object")

    defaults = default_site_data()
    data = defaults.model_dump(by_alias=True)

    for key, value in parsed.items():
        field = SETTINGS_KEYS.get(key)
        if field is not None and field.strategy == MergeStrategy.SHALLOW_MERGE:
            if isinstance(value, dict):
                data[key] = {**data.get(key, {}), **value}
        elif value is not None:
            data[key] = value

    state = SiteData.model_validate(data)

    fallbacks = {}
    for schema in ENTITY_SCHEMAS.values():
        if schema.policy != ReconcilePolicy.REPLACE_UNLESS_EMPTY:
            continue
        if not state.records(schema.collection) and seed_ids(schema.entity):
            fallbacks[schema.collection] = [
                r for r in seed_records(schema.entity) if r["id"] not in state.hidden
            ]
    return state.model_copy(update=fallbacks) if fallbacks else state
