"""Tests for accomplishment/editor.py — local worksheet edits."""
import pytest

from accomplishment.editor import (
    apply_group_month,
    find_item,
    month_start,
    set_monthly_disbursement,
    update_item,
    update_physical_item,
)
from accomplishment.filters import AccomplishmentFilter
from accomplishment.models import FinancialItem
from accomplishment.normalizer import normalize_financial, normalize_physical


@pytest.fixture()
def financial(sources):
    return normalize_financial(sources, AccomplishmentFilter(2024))


@pytest.fixture()
def physical(sources):
    return normalize_physical(sources, AccomplishmentFilter(2024))


class TestMonthStart:
    def test_index(self):
        assert month_start(2024, 0) == "2024-01-01"
        assert month_start(2024, "11") == "2024-12-01"

    def test_empty_clears(self):
        assert month_start(2024, None) == ""
        assert month_start(2024, "") == ""

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            month_start(2024, 12)


class TestApplyGroupMonth:
    def test_sets_every_item_in_group(self, financial):
        n = apply_group_month(financial, "CO - 10605030-00", "actual_obligation_month", 2, 2024)
        assert n == 2
        assert {i.actual_obligation_month for i in financial[:2]} == {"2024-03-01"}

    def test_other_groups_untouched(self, financial):
        apply_group_month(financial, "CO - 10605030-00", "actual_disbursement_month", 4, 2024)
        assert all(i.actual_disbursement_month == "" for i in financial[2:])

    def test_overwrites_existing_months(self, financial):
        financial[0].actual_obligation_month = "2024-07-01"
        apply_group_month(financial, "CO - 10605030-00", "actual_obligation_month", 1, 2024)
        assert financial[0].actual_obligation_month == "2024-02-01"

    def test_does_not_confirm(self, financial):
        apply_group_month(financial, "CO - 10605030-00", "actual_obligation_month", 1, 2024)
        assert not any(i.is_confirmed for i in financial)

    def test_unknown_group(self, financial):
        assert apply_group_month(financial, "PS - none", "actual_obligation_month", 1, 2024) == 0

    def test_invalid_field(self, financial):
        with pytest.raises(ValueError, match="Invalid month field"):
            apply_group_month(financial, "CO - 10605030-00", "target_obligation_month", 1, 2024)


class TestMonthlyDisbursement:
    def test_total_is_monthly_sum(self, financial):
        staff = find_item(financial, "staff-1")
        set_monthly_disbursement(staff, "Jan", 45000)
        set_monthly_disbursement(staff, "February", "45,000")
        assert staff.actual_disbursement_feb == 45000
        assert staff.actual_disbursement_amount == 90000

    def test_full_year(self, financial):
        staff = find_item(financial, "staff-1")
        for m in range(1, 13):
            set_monthly_disbursement(staff, str(m), 45000)
        assert staff.actual_disbursement_amount == 540000
        assert sum(staff.monthly_values()) == staff.actual_disbursement_amount

    def test_unknown_month(self, financial):
        with pytest.raises(ValueError, match="Unknown month"):
            set_monthly_disbursement(find_item(financial, "staff-1"), "Smarch", 1)

    def test_item_without_months_rejected(self, financial):
        office = find_item(financial, "office-1")
        with pytest.raises(ValueError, match="no monthly"):
            set_monthly_disbursement(office, "Jan", 1)
        assert office.actual_disbursement_jan == 0

    def test_confirmed_item_rejected(self, financial):
        staff = find_item(financial, "staff-1")
        set_monthly_disbursement(staff, "Jan", 100)
        staff.is_confirmed = True
        with pytest.raises(ValueError, match="confirmed"):
            set_monthly_disbursement(staff, "Feb", 100)
        assert staff.actual_disbursement_amount == 100


class TestUpdateItem:
    def test_actual_fields(self, financial):
        item = update_item(financial, "office-1", {
            "actual_obligation_amount": "100000",
            "actual_obligation_month": "2024-01-01",
        })
        assert item.actual_obligation_amount == 100000
        assert item.actual_obligation_month == "2024-01-01"

    def test_target_fields_ignored(self, financial):
        item = update_item(financial, "office-1", {"target_obligation_amount": 1})
        assert item.target_obligation_amount == 100000

    def test_monthly_keeps_sum(self, financial):
        item = update_item(financial, "other-1", {
            "actual_disbursement_mar": 5000, "actual_disbursement_apr": 2500,
        })
        assert item.actual_disbursement_amount == 7500

    def test_monthly_total_not_directly_editable(self, financial):
        staff = find_item(financial, "staff-1")
        set_monthly_disbursement(staff, "Jan", 100)
        with pytest.raises(ValueError, match="sum of its monthly values"):
            update_item(financial, "staff-1", {"actual_disbursement_amount": 999,
                                               "actual_obligation_amount": 5})
        assert staff.actual_disbursement_amount == sum(staff.monthly_values()) == 100
        assert staff.actual_obligation_amount == 0

    def test_monthly_fields_rejected_without_months(self, financial):
        with pytest.raises(ValueError, match="no monthly"):
            update_item(financial, "sp-1-1", {"actual_disbursement_jan": 5})
        assert find_item(financial, "sp-1-1").actual_disbursement_jan == 0

    def test_confirmed_item_rejected(self, financial):
        office = find_item(financial, "office-1")
        office.is_confirmed = True
        with pytest.raises(ValueError, match="confirmed"):
            update_item(financial, "office-1", {"actual_obligation_amount": 12345})
        assert office.actual_obligation_amount == 0

    def test_unknown_item(self, financial):
        with pytest.raises(KeyError):
            update_item(financial, "office-99", {})

    def test_has_monthly(self):
        assert FinancialItem("a", "Staffing", 1).has_monthly
        assert not FinancialItem("b", "Office", 1).has_monthly


class TestUpdatePhysicalItem:
    def test_parent_date_copied_to_children(self, physical):
        parent = update_physical_item(physical, "sp-1", {"actual_date_start": "2024-11-30"})
        assert [c.actual_date_start for c in parent.children] == ["2024-11-30", "2024-11-30"]

    def test_child_found(self, physical):
        child = update_physical_item(physical, "sp-1-d-2", {"actual_qty": 2})
        assert child.actual_qty == 2

    def test_activity_qty_is_male_plus_female(self, physical):
        act = update_physical_item(physical, "act-1", {"actual_male": 18, "actual_female": "12"})
        assert act.actual_qty == 30

    def test_locked_rejected(self, physical):
        with pytest.raises(ValueError, match="locked"):
            update_physical_item(physical, "staff-group-0", {"actual_qty": 1})
