"""Financial and physical accomplishment roll-ups.

Pipeline: ``store.tables.load_sources`` -> ``normalizer`` (derived items for a
filter) -> ``grouping`` (object type / budget code / category view) ->
``editor`` (local edits) -> ``bridge`` (write-back).  ``sessions`` keeps
loaded worksheets between requests.
"""

from accomplishment.filters import AccomplishmentFilter
from accomplishment.models import FinancialItem, PhysicalItem
from accomplishment.normalizer import normalize_financial, normalize_physical
from accomplishment.grouping import (
    FinancialView,
    BudgetCodeGroup,
    group_financial,
    group_physical,
    describe_uacs,
)
from accomplishment.editor import (
    apply_group_month,
    set_monthly_disbursement,
    update_item,
    update_physical_item,
)
from accomplishment.bridge import PersistenceBridge
from accomplishment.sessions import Worksheet, WorksheetStore, build_worksheet

__all__ = [
    "AccomplishmentFilter",
    "FinancialItem",
    "PhysicalItem",
    "normalize_financial",
    "normalize_physical",
    "FinancialView",
    "BudgetCodeGroup",
    "group_financial",
    "group_physical",
    "describe_uacs",
    "apply_group_month",
    "set_monthly_disbursement",
    "update_item",
    "update_physical_item",
    "PersistenceBridge",
    "Worksheet",
    "WorksheetStore",
    "build_worksheet",
]
