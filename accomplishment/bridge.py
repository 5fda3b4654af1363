"""Persistence bridge: write confirmed worksheet items back to their records.

Each save is a single keyed UPDATE on the owning record.  Subproject and
activity lines live inside a JSON array on their parent row, so confirming
one line rewrites the whole array with that line's actual fields replaced.

A failed write never raises out of the bridge: the error is logged and
stored on the item, which stays unconfirmed (or unlocked) so the user can
try again.  On success the same change is mirrored into the in-memory
``Sources`` so a regrouping shows it without reloading.
"""

from __future__ import annotations

import logging
import sqlite3

from store.schema import get_kind
from store.tables import SOURCE_KINDS, Sources, update_fields

from accomplishment.models import MONTH_KEYS, FinancialItem, PhysicalItem

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A confirm/save could not be written (missing record or store failure)."""


class PersistenceBridge:
    """Writes accomplishment items through to the tracker tables.

    Args:
        conn: Open connection used for the writes.
        sources: In-memory record collections the items were built from.
    """

    def __init__(self, conn: sqlite3.Connection, sources: Sources) -> None:
        self.conn = conn
        self.sources = sources

    # ── helpers ───────────────────────────────────────────────────────────────

    def _record(self, source_type: str, record_id: int | None) -> dict:
        for rec in self.sources.collection(source_type):
            if rec.get("id") == record_id:
                return rec
        raise PersistenceError(f"{source_type} {record_id} not found")

    def _write(self, source_type: str, record: dict, payload: dict) -> None:
        kind = get_kind(SOURCE_KINDS[source_type])
        changed = update_fields(self.conn, kind, record["id"], payload)
        if changed == 0:
            raise PersistenceError(f"{source_type} {record['id']} no longer exists")
        record.update(payload)

    @staticmethod
    def _fail(item, action: str, exc: Exception) -> bool:
        logger.error("Error %s %s: %s", action, item.unique_id, exc)
        item.error = f"Failed to save changes. {exc}"
        return False

    # ── financial ─────────────────────────────────────────────────────────────

    def confirm_financial(self, item: FinancialItem) -> bool:
        """Persist one financial item's actual figures.

        Returns:
            True and sets ``item.is_confirmed`` on success; False with
            ``item.error`` set on failure.

        Raises:
            ValueError: If the item was already confirmed in this worksheet.
        """
        if item.is_confirmed:
            raise ValueError(f"Item {item.unique_id} is already confirmed")
        actuals = {
            "actual_obligation_date": item.actual_obligation_month,
            "actual_obligation_amount": item.actual_obligation_amount,
            "actual_disbursement_date": item.actual_disbursement_month,
            "actual_disbursement_amount": item.actual_disbursement_amount,
        }
        try:
            record = self._record(item.source_type, item.source_id)
            if item.source_type in ("Subproject", "Activity"):
                lines_field = "details" if item.source_type == "Subproject" else "expenses"
                lines = record.get(lines_field) or []
                if not any(ln.get("id") == item.detail_id for ln in lines):
                    raise PersistenceError(
                        f"{item.source_type} {item.source_id} has no line {item.detail_id}")
                updated = [
                    {**ln, **actuals} if ln.get("id") == item.detail_id else ln
                    for ln in lines
                ]
                self._write(item.source_type, record, {lines_field: updated})
            elif item.source_type in ("Staffing", "Other"):
                payload = {
                    "actual_obligation_date": item.actual_obligation_month,
                    "actual_obligation_amount": item.actual_obligation_amount,
                    "actual_disbursement_amount": item.actual_disbursement_amount,
                }
                for m in MONTH_KEYS:
                    payload[f"actual_disbursement_{m}"] = getattr(item, f"actual_disbursement_{m}")
                self._write(item.source_type, record, payload)
            elif item.source_type == "Office":
                self._write(item.source_type, record, actuals)
            else:
                raise PersistenceError(f"Unknown source type {item.source_type}")
        except (PersistenceError, sqlite3.Error) as exc:
            return self._fail(item, "saving accomplishment", exc)

        item.is_confirmed = True
        item.error = None
        logger.info("Confirmed %s", item.unique_id)
        return True

    # ── physical ──────────────────────────────────────────────────────────────

    def save_physical(self, item: PhysicalItem, items: list[PhysicalItem]) -> bool:
        """Persist one physical item (a subproject parent saves its children too).

        Args:
            item: The item being saved.
            items: The whole worksheet, used to find a child's parent.

        Returns:
            True and locks the item on success; False with ``item.error``
            set on failure.
        """
        try:
            if item.is_locked:
                raise PersistenceError(f"{item.unique_id} is locked")
            if item.source_type == "Subproject":
                self._save_subproject(item, items)
            elif item.source_type == "Activity":
                record = self._record("Activity", item.source_id)
                self._write("Activity", record, {
                    "actual_date": item.actual_date_start,
                    "actual_participants_male": item.actual_male,
                    "actual_participants_female": item.actual_female,
                    "status": "Completed" if item.actual_date_start else "Ongoing",
                })
            elif item.source_type in ("Staffing", "Office"):
                record = self._record(item.source_type, item.source_id)
                self._write(item.source_type, record, {
                    "actual_obligation_date": item.actual_date_start,
                })
            else:
                raise PersistenceError(f"Unknown source type {item.source_type}")
        except (PersistenceError, sqlite3.Error) as exc:
            return self._fail(item, "saving physical accomplishment", exc)

        item.is_locked = True
        item.error = None
        logger.info("Saved %s", item.unique_id)
        return True

    def _save_subproject(self, item: PhysicalItem, items: list[PhysicalItem]) -> None:
        if item.is_parent:
            record = self._record("Subproject", item.source_id)
            by_detail = {c.detail_id: c for c in item.children}
            details = [
                {**d,
                 "actual_delivery_date": by_detail[d.get("id")].actual_date_start,
                 "actual_number_of_units": by_detail[d.get("id")].actual_qty}
                if d.get("id") in by_detail else d
                for d in record.get("details") or []
            ]
            self._write("Subproject", record, {
                "actual_completion_date": item.actual_date_start or None,
                "status": "Completed" if item.actual_date_start else "Ongoing",
                "details": details,
            })
            return

        parent = next((p for p in items if p.unique_id == item.parent_id), None)
        if parent is None:
            raise PersistenceError("Parent not found")
        record = self._record("Subproject", parent.source_id)
        details = [
            {**d,
             "actual_delivery_date": item.actual_date_start,
             "actual_number_of_units": item.actual_qty}
            if d.get("id") == item.detail_id else d
            for d in record.get("details") or []
        ]
        self._write("Subproject", record, {"details": details})
