"""Remote store client."""

from .client import RemoteNotConfiguredError, RemoteStoreClient, RemoteStoreError
from .mapper import record_to_row, row_to_record, rows_to_records

__all__ = [
    "RemoteStoreClient",
    "RemoteStoreError",
    "RemoteNotConfiguredError",
    "record_to_row",
    "row_to_record",
    "rows_to_records",
]
