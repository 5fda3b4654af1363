"""Grouping engine for the accomplishment worksheets.

Financial items are bucketed object type -> budget code -> source
category -> item:

    MOOE
      MOOE - 50203010-00          (totals: target/actual obligation, disbursement)
        Subprojects               [items]
        Activities                [items]
        Program Management        [items]
    CO
      ...
    grand total                   (over every item in the filtered list)

Object types follow the configured order (MOOE, CO, PS) with any other
type after them alphabetically; budget-code groups inside an object type
are sorted lexicographically by code.  Everything here is a pure function
of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from utils.config import KnownValues

from accomplishment.models import FinancialItem, PhysicalItem

SUBGROUPS = ("Subprojects", "Activities", "Program Management")

_SUBGROUP_OF = {
    "Subproject": "Subprojects",
    "Activity": "Activities",
    "Office": "Program Management",
    "Staffing": "Program Management",
    "Other": "Program Management",
}

UacsLookup = dict[str, dict[str, dict[str, str]]]


@dataclass
class Totals:
    target_obligation: float = 0.0
    actual_obligation: float = 0.0
    target_disbursement: float = 0.0
    actual_disbursement: float = 0.0

    def add(self, item: FinancialItem) -> None:
        self.target_obligation += item.target_obligation_amount
        self.actual_obligation += item.actual_obligation_amount
        self.target_disbursement += item.target_disbursement_amount
        self.actual_disbursement += item.actual_disbursement_amount

    def to_dict(self) -> dict[str, float]:
        return {
            "target_obligation": self.target_obligation,
            "actual_obligation": self.actual_obligation,
            "target_disbursement": self.target_disbursement,
            "actual_disbursement": self.actual_disbursement,
        }


@dataclass
class BudgetCodeGroup:
    """All items sharing one ``"{object_type} - {uacs_code}"`` key."""

    key: str
    object_type: str
    uacs_code: str
    description: str
    items: list[FinancialItem] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)

    @property
    def total_target_obli(self) -> float:
        return self.totals.target_obligation

    @property
    def total_actual_obli(self) -> float:
        return self.totals.actual_obligation

    @property
    def sub_groups(self) -> dict[str, list[FinancialItem]]:
        out: dict[str, list[FinancialItem]] = {name: [] for name in SUBGROUPS}
        for item in self.items:
            out[_SUBGROUP_OF.get(item.source_type, "Program Management")].append(item)
        return out

    def common_month(self, attr: str) -> str:
        """The month shared by every item in the group, or "" when they differ."""
        values = {getattr(i, attr) for i in self.items}
        return values.pop() if len(values) == 1 else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "object_type": self.object_type,
            "uacs_code": self.uacs_code,
            "description": self.description,
            "total_target_obli": self.total_target_obli,
            "total_actual_obli": self.total_actual_obli,
            "total_target_disb": self.totals.target_disbursement,
            "total_actual_disb": self.totals.actual_disbursement,
            "common_obligation_month": self.common_month("actual_obligation_month"),
            "common_disbursement_month": self.common_month("actual_disbursement_month"),
            "sub_groups": {
                name: [i.to_dict() for i in items]
                for name, items in self.sub_groups.items()
            },
        }


@dataclass
class ObjectTypeGroup:
    object_type: str
    groups: list[BudgetCodeGroup] = field(default_factory=list)
    totals: Totals = field(default_factory=Totals)

    def to_dict(self) -> dict[str, Any]:
        return {
            "object_type": self.object_type,
            "totals": self.totals.to_dict(),
            "groups": [g.to_dict() for g in self.groups],
        }


@dataclass
class FinancialView:
    object_types: list[ObjectTypeGroup] = field(default_factory=list)
    grand_total: Totals = field(default_factory=Totals)

    @property
    def groups(self) -> list[BudgetCodeGroup]:
        """Every budget-code group, in display order."""
        return [g for ot in self.object_types for g in ot.groups]

    def find_group(self, key: str) -> BudgetCodeGroup | None:
        for g in self.groups:
            if g.key == key:
                return g
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "object_types": [ot.to_dict() for ot in self.object_types],
            "grand_total": self.grand_total.to_dict(),
        }


def group_key(item: FinancialItem) -> str:
    return f"{item.object_type} - {item.uacs_code}"


def describe_uacs(lookup: UacsLookup, object_type: str, code: str) -> str:
    """Description for *code*, searching its object type first.

    A code absent from the lookup yields "" rather than an error.
    """
    for particulars in (lookup.get(object_type) or {}).values():
        if code in particulars:
            return particulars[code]
    for obj_particulars in lookup.values():
        for particulars in obj_particulars.values():
            if code in particulars:
                return particulars[code]
    return ""


def _object_type_order(object_type: str) -> tuple[int, str]:
    try:
        return KnownValues.OBJECT_TYPES.index(object_type), ""
    except ValueError:
        return len(KnownValues.OBJECT_TYPES), object_type


def group_financial(items: list[FinancialItem], uacs_lookup: UacsLookup | None = None) -> FinancialView:
    """Group normalized items into the financial worksheet view.

    Args:
        items: Output of ``normalize_financial`` (possibly edited).
        uacs_lookup: ``object_type -> particular -> code -> description``.

    Returns:
        FinancialView with per-group totals and the grand total.
    """
    lookup = uacs_lookup or {}
    by_key: dict[str, BudgetCodeGroup] = {}
    grand = Totals()
    for item in items:
        key = group_key(item)
        group = by_key.get(key)
        if group is None:
            group = BudgetCodeGroup(
                key=key,
                object_type=item.object_type,
                uacs_code=item.uacs_code,
                description=describe_uacs(lookup, item.object_type, item.uacs_code),
            )
            by_key[key] = group
        group.items.append(item)
        group.totals.add(item)
        grand.add(item)

    by_type: dict[str, ObjectTypeGroup] = {}
    for group in by_key.values():
        ot = by_type.setdefault(group.object_type, ObjectTypeGroup(group.object_type))
        ot.groups.append(group)
        for item in group.items:
            ot.totals.add(item)

    object_types = sorted(by_type.values(), key=lambda ot: _object_type_order(ot.object_type))
    for ot in object_types:
        ot.groups.sort(key=lambda g: g.uacs_code)
    return FinancialView(object_types=object_types, grand_total=grand)


def group_physical(items: list[PhysicalItem]) -> dict[str, list[PhysicalItem]]:
    """Split physical items into the three display categories.

    Program Management lists staffing parents before office items.
    """
    return {
        "Subprojects": [i for i in items if i.source_type == "Subproject"],
        "Activities": [i for i in items if i.source_type == "Activity"],
        "Program Management": (
            [i for i in items if i.source_type == "Staffing"]
            + [i for i in items if i.source_type == "Office"]
        ),
    }


def physical_view_dict(items: list[PhysicalItem]) -> dict[str, list[dict[str, Any]]]:
    return {name: [i.to_dict() for i in rows] for name, rows in group_physical(items).items()}
