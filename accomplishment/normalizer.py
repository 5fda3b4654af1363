"""Record normalizer: source records -> financial / physical items.

Five record shapes are flattened into the common ``FinancialItem`` shape:

    Subproject detail   sp-{id}-{detailId}    target = price x units
    Activity expense    act-{id}-{expId}      target = expense amount
    Office requirement  office-{id}           target = price x units
    Staffing            staff-{id}            target = annual salary, monthly actuals
    Other expense       other-{id}            target = amount, monthly actuals

and four into the ``PhysicalItem`` tree (subproject parents with detail
children, flat activities, staffing grouped by position, flat office
items).  Both functions are pure: the same sources and filter always
produce the same list in the same order.
"""

from __future__ import annotations

from store.tables import Sources
from utils.strings import safe_float, safe_int

from accomplishment.filters import AccomplishmentFilter
from accomplishment.models import MONTH_KEYS, FinancialItem, PhysicalItem


def _actuals(line: dict) -> dict:
    """The four actual fields every financial item carries, from a record or sub-line."""
    return {
        "actual_obligation_month": line.get("actual_obligation_date") or "",
        "actual_obligation_amount": safe_float(line.get("actual_obligation_amount")),
        "actual_disbursement_month": line.get("actual_disbursement_date") or "",
        "actual_disbursement_amount": safe_float(line.get("actual_disbursement_amount")),
    }


def _monthly(record: dict) -> dict:
    return {
        f"actual_disbursement_{m}": safe_float(record.get(f"actual_disbursement_{m}"))
        for m in MONTH_KEYS
    }


def normalize_financial(sources: Sources, flt: AccomplishmentFilter) -> list[FinancialItem]:
    """Flatten every in-filter record into financial items.

    Args:
        sources: Record collections (see ``store.tables.load_sources``).
        flt: Year / operating unit / tier / fund type selection.

    Returns:
        Items in source order: subproject details, activity expenses,
        office, staffing, other.
    """
    items: list[FinancialItem] = []

    for sp in sources.subprojects:
        if not flt.matches(sp, "funding_year"):
            continue
        for d in sp.get("details") or []:
            amount = safe_float(d.get("price_per_unit")) * safe_float(d.get("number_of_units"))
            items.append(FinancialItem(
                unique_id=f"sp-{sp['id']}-{d.get('id')}",
                source_type="Subproject",
                source_id=sp["id"],
                detail_id=d.get("id"),
                uacs_code=d.get("uacs_code") or "",
                object_type=d.get("object_type") or "MOOE",
                expense_particular=d.get("expense_particular") or "Unspecified",
                source_name=sp.get("name") or "",
                target_obligation_month=d.get("obligation_month") or "",
                target_obligation_amount=amount,
                target_disbursement_month=d.get("disbursement_month") or "",
                target_disbursement_amount=amount,
                **_actuals(d),
            ))

    for act in sources.activities:
        if not flt.matches(act, "funding_year"):
            continue
        name = act.get("name") or f"{act.get('type') or ''} ({act.get('component') or ''})"
        for e in act.get("expenses") or []:
            amount = safe_float(e.get("amount"))
            items.append(FinancialItem(
                unique_id=f"act-{act['id']}-{e.get('id')}",
                source_type="Activity",
                source_id=act["id"],
                detail_id=e.get("id"),
                uacs_code=e.get("uacs_code") or "",
                object_type=e.get("object_type") or "MOOE",
                expense_particular=e.get("expense_particular") or "Unspecified",
                source_name=name,
                target_obligation_month=e.get("obligation_month") or "",
                target_obligation_amount=amount,
                target_disbursement_month=e.get("disbursement_month") or "",
                target_disbursement_amount=amount,
                **_actuals(e),
            ))

    for o in sources.office_requirements:
        if not flt.matches(o, "fund_year"):
            continue
        amount = safe_float(o.get("price_per_unit")) * safe_float(o.get("number_of_units"))
        items.append(FinancialItem(
            unique_id=f"office-{o['id']}",
            source_type="Office",
            source_id=o["id"],
            uacs_code=o.get("uacs_code") or "",
            object_type="MOOE",
            expense_particular="Office Requirements",
            source_name=o.get("equipment") or "",
            target_obligation_month=o.get("obligation_date") or "",
            target_obligation_amount=amount,
            target_disbursement_month=o.get("disbursement_date") or "",
            target_disbursement_amount=amount,
            **_actuals(o),
        ))

    for s in sources.staffing_requirements:
        if not flt.matches(s, "fund_year"):
            continue
        salary = safe_float(s.get("annual_salary"))
        items.append(FinancialItem(
            unique_id=f"staff-{s['id']}",
            source_type="Staffing",
            source_id=s["id"],
            uacs_code=s.get("uacs_code") or "",
            object_type="MOOE",
            expense_particular="Salaries & Wages",
            source_name=s.get("personnel_position") or "",
            target_obligation_month=s.get("obligation_date") or "",
            target_obligation_amount=salary,
            target_disbursement_month="Monthly",
            target_disbursement_amount=salary,
            **_actuals(s),
            **_monthly(s),
        ))

    for ope in sources.other_expenses:
        if not flt.matches(ope, "fund_year"):
            continue
        amount = safe_float(ope.get("amount"))
        items.append(FinancialItem(
            unique_id=f"other-{ope['id']}",
            source_type="Other",
            source_id=ope["id"],
            uacs_code=ope.get("uacs_code") or "",
            object_type="MOOE",
            expense_particular="Other Expenses",
            source_name=ope.get("particulars") or "",
            target_obligation_month=ope.get("obligation_date") or "",
            target_obligation_amount=amount,
            target_disbursement_month=ope.get("disbursement_date") or "",
            target_disbursement_amount=amount,
            **_actuals(ope),
            **_monthly(ope),
        ))

    return items


def normalize_physical(sources: Sources, flt: AccomplishmentFilter) -> list[PhysicalItem]:
    """Build the physical accomplishment items for the filter.

    Subprojects become parents with one child per detail line; staffing
    rows are gathered under one locked virtual parent per position.
    """
    items: list[PhysicalItem] = []

    for sp in sources.subprojects:
        if not flt.matches(sp, "funding_year"):
            continue
        parent_id = f"sp-{sp['id']}"
        children = [
            PhysicalItem(
                unique_id=f"sp-{sp['id']}-d-{d.get('id')}",
                source_type="Subproject",
                source_id=sp["id"],
                parent_id=parent_id,
                detail_id=d.get("id"),
                name=d.get("particulars") or "",
                location=sp.get("location") or "",
                target_date_start=d.get("delivery_date") or "",
                target_qty=safe_float(d.get("number_of_units")),
                unit_of_measure=d.get("unit_of_measure") or "",
                actual_date_start=d.get("actual_delivery_date") or "",
                actual_qty=safe_float(d.get("actual_number_of_units")),
            )
            for d in sp.get("details") or []
        ]
        items.append(PhysicalItem(
            unique_id=parent_id,
            source_type="Subproject",
            source_id=sp["id"],
            name=sp.get("name") or "",
            location=sp.get("location") or "",
            target_date_start=sp.get("estimated_completion_date") or "",
            target_qty=0,
            unit_of_measure="Project",
            actual_date_start=sp.get("actual_completion_date") or "",
            actual_qty=0,
            is_parent=True,
            children=children,
        ))

    for act in sources.activities:
        if not flt.matches(act, "funding_year"):
            continue
        male = safe_int(act.get("participants_male"))
        female = safe_int(act.get("participants_female"))
        actual_male = safe_int(act.get("actual_participants_male"))
        actual_female = safe_int(act.get("actual_participants_female"))
        actual_date = act.get("actual_date") or ""
        end_date = act.get("end_date") or ""
        items.append(PhysicalItem(
            unique_id=f"act-{act['id']}",
            source_type="Activity",
            source_id=act["id"],
            name=act.get("name") or "",
            sub_name=act.get("type") or "",
            location=act.get("location") or "",
            target_date_start=act.get("date") or "",
            target_date_end=end_date if end_date != act.get("date") else "",
            target_qty=male + female,
            target_male=male,
            target_female=female,
            unit_of_measure="Pax",
            actual_date_start=actual_date,
            actual_qty=actual_male + actual_female,
            actual_male=actual_male,
            actual_female=actual_female,
            is_locked=bool(actual_date),
        ))

    # Staffing: one virtual parent per position, in first-seen order.
    positions: dict[str, list[dict]] = {}
    for s in sources.staffing_requirements:
        if not flt.matches(s, "fund_year"):
            continue
        positions.setdefault(s.get("personnel_position") or "", []).append(s)
    for idx, (position, rows) in enumerate(positions.items()):
        children = [
            PhysicalItem(
                unique_id=f"staff-{s['id']}",
                source_type="Staffing",
                source_id=s["id"],
                parent_id=f"staff-group-{idx}",
                name=f"{position} ({s.get('operating_unit') or ''})",
                target_date_start=s.get("obligation_date") or "",
                target_qty=1,
                unit_of_measure="Head",
                actual_date_start=s.get("actual_obligation_date") or "",
                actual_qty=1 if s.get("actual_obligation_date") else 0,
            )
            for s in rows
        ]
        items.append(PhysicalItem(
            unique_id=f"staff-group-{idx}",
            source_type="Staffing",
            source_id=None,
            name=position,
            target_qty=len(children),
            unit_of_measure="Heads",
            actual_qty=sum(1 for c in children if c.actual_date_start),
            is_parent=True,
            is_locked=True,
            children=children,
        ))

    for o in sources.office_requirements:
        if not flt.matches(o, "fund_year"):
            continue
        units = safe_float(o.get("number_of_units"))
        items.append(PhysicalItem(
            unique_id=f"office-{o['id']}",
            source_type="Office",
            source_id=o["id"],
            name=o.get("equipment") or "",
            target_date_start=o.get("obligation_date") or "",
            target_qty=units,
            unit_of_measure="Units",
            actual_date_start=o.get("actual_obligation_date") or "",
            actual_qty=units if o.get("actual_obligation_date") else 0,
        ))

    return items
