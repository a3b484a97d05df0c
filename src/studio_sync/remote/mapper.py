"""Transformation between remote table rows and engine records."""

from typing import Any

from ..models import ActivityEntry, Record

ROW_METADATA_COLUMNS = frozenset({"created_at", "updated_at"})


def row_to_record(row: dict[str, Any]) -> Record:
    """
    Flatten a table row into a record.

    Rows are stored as ``{id, data: {...}}`` with a JSONB payload, but some
    tables also carry plain columns.  Plain columns come first, the payload
    overlays them, and the row id always wins over any ``id`` inside the
    payload.

    Args:
        row: Raw row as returned by the REST API

    Returns:
        Flat record dictionary
    """
    payload = row.get("data")
    record: Record = {
        k: v for k, v in row.items() if k != "data" and k not in ROW_METADATA_COLUMNS
    }
    if isinstance(payload, dict):
        record.update(payload)
    record["id"] = row.get("id")
    return record


def rows_to_records(rows: list[dict[str, Any]] | None) -> list[Record]:
    """Flatten a list of rows; ``None`` and empty inputs give an empty list."""
    if not rows:
        return []
    return [row_to_record(r) for r in rows if r.get("id") is not None]


def record_to_row(record_id: str, payload: Record) -> dict[str, Any]:
    """Wrap a record payload into the ``{id, data}`` row shape used for writes."""
    return {"id": record_id, "data": {**payload, "id": record_id}}


def activity_to_row(entry: ActivityEntry) -> dict[str, Any]:
    """Row shape for the activity_log table."""
    return {"id": entry.id, "data": entry.model_dump(mode="json")}


def row_to_activity(row: dict[str, Any]) -> ActivityEntry | None:
    """Rebuild an activity entry from a row, or None if the row is unusable."""
    record = row_to_record(row)
    # Older rows used type/status/date naming.
    for legacy, current in (("type", "category"), ("status", "severity"), ("date", "timestamp")):
        if current not in record and legacy in record:
            record[current] = record.pop(legacy)
    if "label" not in record or "category" not in record:
        return None
    try:
        return ActivityEntry.model_validate(record)
    except ValueError:
        return None
