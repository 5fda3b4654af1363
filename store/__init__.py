"""SQLite persistence for the tracker's record tables."""

from store.schema import KINDS, RecordKind, get_kind, create_schema, create_tracker_db
from store.tables import (
    Sources,
    assign_uids,
    fetch_all,
    get_record,
    insert_record,
    update_record,
    delete_records,
    upsert_records,
    load_sources,
    list_uacs,
    build_uacs_lookup,
)

__all__ = [
    "KINDS",
    "RecordKind",
    "get_kind",
    "create_schema",
    "create_tracker_db",
    "Sources",
    "assign_uids",
    "fetch_all",
    "get_record",
    "insert_record",
    "update_record",
    "delete_records",
    "upsert_records",
    "load_sources",
    "list_uacs",
    "build_uacs_lookup",
]
