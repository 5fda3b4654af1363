"""Local (unsaved) edits to worksheet items.

Nothing here touches the database: edits change the in-memory items and
become durable only through ``accomplishment.bridge``.
"""

from __future__ import annotations

from typing import Any

from utils.config import KnownValues
from utils.strings import safe_float

from accomplishment.grouping import group_key
from accomplishment.models import MONTH_KEYS, FinancialItem, PhysicalItem

GROUP_MONTH_FIELDS = ("actual_obligation_month", "actual_disbursement_month")

# Fields a client may change on a financial item.
MONTHLY_FIELDS = {f"actual_disbursement_{m}" for m in MONTH_KEYS}

EDITABLE_FINANCIAL = {
    "actual_obligation_month",
    "actual_obligation_amount",
    "actual_disbursement_month",
    "actual_disbursement_amount",
    *MONTHLY_FIELDS,
}

EDITABLE_PHYSICAL = {
    "actual_date_start",
    "actual_date_end",
    "actual_qty",
    "actual_male",
    "actual_female",
}


def month_start(year: int, month_index: int | str | None) -> str:
    """``YYYY-MM-01`` for a 0-based month index; empty index gives ""."""
    if month_index is None or month_index == "":
        return ""
    idx = int(month_index)
    if not 0 <= idx <= 11:
        raise ValueError(f"Month index must be between 0 and 11, got {idx}")
    return f"{year}-{idx + 1:02d}-01"


def apply_group_month(items: list[FinancialItem], key: str, field: str,
                      month_index: int | str | None, year: int) -> int:
    """Set *field* on every item of budget-code group *key* to one month.

    Overwrites whatever month each item had; items outside the group are
    untouched and the group's confirmation state is not changed.

    Returns:
        Number of items updated.

    Raises:
        ValueError: If *field* is not a month field or the index is out of range.
    """
    if field not in GROUP_MONTH_FIELDS:
        raise ValueError(f"Invalid month field: '{field}'. "
                         f"Must be one of: {', '.join(GROUP_MONTH_FIELDS)}")
    value = month_start(year, month_index)
    count = 0
    for item in items:
        if group_key(item) == key:
            setattr(item, field, value)
            count += 1
    return count


def set_monthly_disbursement(item: FinancialItem, month: str, value: Any) -> FinancialItem:
    """Set one month's actual disbursement and recompute the total.

    After the call ``item.actual_disbursement_amount`` equals the sum of the
    twelve monthly values.

    Raises:
        ValueError: If *month* is not a recognised month, the item does not
            track months, or the item is already confirmed.
    """
    _ensure_unconfirmed(item)
    if not item.has_monthly:
        raise ValueError(f"{item.source_type} items have no monthly disbursements")
    key = KnownValues.month_key(month)
    if key is None:
        raise ValueError(f"Unknown month: '{month}'")
    setattr(item, f"actual_disbursement_{key.lower()}", safe_float(value))
    item.actual_disbursement_amount = sum(item.monthly_values())
    return item


def _ensure_unconfirmed(item: FinancialItem) -> None:
    if item.is_confirmed:
        raise ValueError(f"Item {item.unique_id} is confirmed; reload to edit it again")


def _find(items: list, unique_id: str):
    for item in items:
        if item.unique_id == unique_id:
            return item
        for child in getattr(item, "children", None) or []:
            if child.unique_id == unique_id:
                return child
    return None


def find_item(items: list, unique_id: str):
    """Return the item (or physical child) with *unique_id*; KeyError if absent."""
    item = _find(items, unique_id)
    if item is None:
        raise KeyError(unique_id)
    return item


def update_item(items: list[FinancialItem], unique_id: str,
                updates: dict[str, Any]) -> FinancialItem:
    """Apply *updates* to one financial item in place.

    Only actual fields are editable; anything else is ignored.  On items
    that track months the disbursement total is always the monthly sum, so
    it cannot be set directly; items that do not track months take no
    monthly values.  A rejected update leaves the item unchanged.

    Raises:
        KeyError: If no item has *unique_id*.
        ValueError: If the item is confirmed or an update does not apply
            to its kind.
    """
    item = find_item(items, unique_id)
    _ensure_unconfirmed(item)
    fields = {k: v for k, v in updates.items() if k in EDITABLE_FINANCIAL}
    if item.has_monthly and "actual_disbursement_amount" in fields:
        raise ValueError(
            f"{item.source_type} disbursement total is the sum of its monthly values")
    if not item.has_monthly and MONTHLY_FIELDS & fields.keys():
        raise ValueError(f"{item.source_type} items have no monthly disbursements")
    for name, value in fields.items():
        if name.endswith("_month"):
            setattr(item, name, value or "")
        else:
            setattr(item, name, safe_float(value))
    if item.has_monthly and MONTHLY_FIELDS & fields.keys():
        item.actual_disbursement_amount = sum(item.monthly_values())
    return item


def update_physical_item(items: list[PhysicalItem], unique_id: str,
                         updates: dict[str, Any]) -> PhysicalItem:
    """Apply *updates* to a physical item in place.

    Setting ``actual_date_start`` on a subproject parent copies the date to
    every child.  Male/female counts keep ``actual_qty`` as their sum for
    activities.

    Raises:
        KeyError: If no item has *unique_id*.
        ValueError: If the item is locked.
    """
    item = find_item(items, unique_id)
    if item.is_locked:
        raise ValueError(f"Item {unique_id} is locked")
    for name, value in updates.items():
        if name not in EDITABLE_PHYSICAL:
            continue
        if name.startswith("actual_date"):
            setattr(item, name, value or "")
        elif name in ("actual_male", "actual_female"):
            setattr(item, name, int(safe_float(value)))
        else:
            setattr(item, name, safe_float(value))
    if item.source_type == "Activity" and (
            "actual_male" in updates or "actual_female" in updates):
        item.actual_qty = item.actual_male + item.actual_female
    if item.is_parent and item.source_type == "Subproject" and "actual_date_start" in updates:
        for child in item.children:
            child.actual_date_start = item.actual_date_start
    return item
