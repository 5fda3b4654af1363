"""Tests for accomplishment/normalizer.py — records to financial/physical items."""
import pytest

from accomplishment.filters import AccomplishmentFilter
from accomplishment.normalizer import normalize_financial, normalize_physical
from store.tables import Sources


def _ids(items):
    return [i.unique_id for i in items]


class TestAccomplishmentFilter:
    def test_invalid_year_rejected(self):
        with pytest.raises(ValueError, match="valid year"):
            AccomplishmentFilter(1999)

    def test_string_year_coerced(self):
        assert AccomplishmentFilter("2024").year == 2024

    def test_matches_all(self):
        flt = AccomplishmentFilter(2024)
        assert flt.matches({"fund_year": 2024, "operating_unit": "NPMO"}, "fund_year")

    def test_every_field_applied(self):
        flt = AccomplishmentFilter(2024, "NPMO", "Tier 2", "Continuing")
        rec = {"fund_year": 2024, "operating_unit": "NPMO", "tier": "Tier 2",
               "fund_type": "Continuing"}
        assert flt.matches(rec, "fund_year")
        assert not flt.matches({**rec, "tier": "Tier 1"}, "fund_year")
        assert not flt.matches({**rec, "fund_type": "Current"}, "fund_year")
        assert not flt.matches({**rec, "operating_unit": "RPMO 1"}, "fund_year")
        assert not flt.matches({**rec, "fund_year": 2023}, "fund_year")

    def test_missing_year_never_matches(self):
        assert not AccomplishmentFilter(2024).matches({"fund_year": None}, "fund_year")

    def test_pinned_to(self):
        flt = AccomplishmentFilter(2024).pinned_to("RPMO 1")
        assert flt.operating_unit == "RPMO 1"
        assert AccomplishmentFilter(2024).pinned_to(None).operating_unit == "All"


class TestNormalizeFinancial:
    def test_one_item_per_line(self, sources):
        items = normalize_financial(sources, AccomplishmentFilter(2024))
        assert _ids(items) == [
            "sp-1-1", "sp-1-2", "act-1-1", "office-1", "staff-1", "other-1",
        ]

    def test_targets(self, sources):
        items = {i.unique_id: i for i in normalize_financial(sources, AccomplishmentFilter(2024))}
        assert items["sp-1-1"].target_obligation_amount == 150000
        assert items["sp-1-2"].target_obligation_amount == 100000
        assert items["act-1-1"].target_disbursement_amount == 25000
        assert items["office-1"].target_obligation_amount == 100000
        assert items["staff-1"].target_obligation_amount == 540000
        assert items["staff-1"].target_disbursement_month == "Monthly"
        assert items["other-1"].target_obligation_amount == 60000

    def test_staffing_target_is_twelve_monthly_targets(self, sources):
        staff = sources.staffing_requirements[0]
        assert [staff[f"disbursement_{m}"] for m in ("jan", "jun", "dec")] == [45000] * 3
        item = next(i for i in normalize_financial(sources, AccomplishmentFilter(2024))
                    if i.unique_id == "staff-1")
        assert item.target_disbursement_amount == 540000
        assert item.target_obligation_amount == 540000

    def test_program_items_are_mooe(self, sources):
        items = normalize_financial(sources, AccomplishmentFilter(2024))
        for item in items:
            if item.source_type in ("Office", "Staffing", "Other"):
                assert item.object_type == "MOOE"

    def test_subproject_line_codes(self, sources):
        item = normalize_financial(sources, AccomplishmentFilter(2024))[0]
        assert item.object_type == "CO"
        assert item.uacs_code == "10605030-00"
        assert item.source_name == "Sample Coffee Production"
        assert item.detail_id == 1

    def test_operating_unit_filter(self, sources):
        items = normalize_financial(sources, AccomplishmentFilter(2024, "NPMO"))
        assert _ids(items) == ["office-1", "staff-1"]

    def test_other_year_is_empty(self, sources):
        assert normalize_financial(sources, AccomplishmentFilter(2025)) == []

    def test_deterministic(self, sources):
        flt = AccomplishmentFilter(2024)
        first = [i.to_dict() for i in normalize_financial(sources, flt)]
        second = [i.to_dict() for i in normalize_financial(sources, flt)]
        assert first == second

    def test_unnamed_activity_uses_type_and_component(self):
        src = Sources(activities=[{
            "id": 9, "name": "", "type": "Meeting", "component": "Marketing",
            "funding_year": 2024, "operating_unit": "NPMO",
            "expenses": [{"id": 1, "amount": 500, "uacs_code": "X"}],
        }])
        item = normalize_financial(src, AccomplishmentFilter(2024))[0]
        assert item.source_name == "Meeting (Marketing)"
        assert item.expense_particular == "Unspecified"

    def test_existing_actuals_carried(self):
        src = Sources(office_requirements=[{
            "id": 3, "equipment": "Printer", "fund_year": 2024, "operating_unit": "NPMO",
            "price_per_unit": 10, "number_of_units": 2, "uacs_code": "A",
            "actual_obligation_date": "2024-02-01", "actual_obligation_amount": 20,
        }])
        item = normalize_financial(src, AccomplishmentFilter(2024))[0]
        assert item.actual_obligation_month == "2024-02-01"
        assert item.actual_obligation_amount == 20


class TestNormalizePhysical:
    def test_categories_present(self, sources):
        items = normalize_physical(sources, AccomplishmentFilter(2024))
        assert _ids(items) == ["sp-1", "act-1", "staff-group-0", "office-1"]

    def test_subproject_parent_children(self, sources):
        parent = normalize_physical(sources, AccomplishmentFilter(2024))[0]
        assert parent.is_parent
        assert [c.unique_id for c in parent.children] == ["sp-1-d-1", "sp-1-d-2"]
        assert parent.children[1].target_qty == 2
        assert parent.children[0].parent_id == "sp-1"

    def test_activity_participants(self, sources):
        act = normalize_physical(sources, AccomplishmentFilter(2024))[1]
        assert act.target_qty == 35
        assert act.target_male == 20
        assert act.unit_of_measure == "Pax"
        assert act.target_date_end == "2024-03-17"
        assert not act.is_locked

    def test_staffing_grouped_and_locked(self, sources):
        group = normalize_physical(sources, AccomplishmentFilter(2024))[2]
        assert group.is_locked
        assert group.name == "Project Development Officer II"
        assert group.target_qty == 1
        assert group.children[0].name == "Project Development Officer II (NPMO)"

    def test_activity_with_actual_date_locked(self):
        src = Sources(activities=[{
            "id": 1, "name": "A", "funding_year": 2024, "operating_unit": "NPMO",
            "date": "2024-01-01", "actual_date": "2024-01-02",
        }])
        assert normalize_physical(src, AccomplishmentFilter(2024))[0].is_locked
