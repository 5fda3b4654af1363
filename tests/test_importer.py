"""Tests for workbook/importer.py — spreadsheet uploads to records."""
import datetime

import pytest

from workbook.importer import (
    WorkbookImportError,
    check_headers,
    parse_workbook,
    read_rows,
    resolve_fund_type,
    resolve_operating_unit,
    resolve_tier,
    resolve_uacs_code,
    split_ipos,
)
from workbook.logging import ImportReport
from workbook.templates import STAFFING_HEADERS, STAFFING_MONTH_HEADERS, build_template

from conftest import make_xlsx

LOOKUP = {
    "MOOE": {"Training Expenses": {"50202010-00": "Training Expenses"}},
    "CO": {"Machinery and Equipment": {"10605030-00": "Agricultural Equipment"}},
}


class TestReadRows:
    def test_empty_payload(self):
        with pytest.raises(WorkbookImportError, match="empty"):
            read_rows(b"")

    def test_not_a_workbook(self):
        with pytest.raises(WorkbookImportError, match="Unable to read workbook"):
            read_rows(b"this is not a spreadsheet")

    def test_blank_rows_dropped_and_row_numbers_kept(self):
        data = make_xlsx(["a", "b"], [[1, 2], [None, None], [3, None]])
        headers, rows = read_rows(data)
        assert headers == ["a", "b"]
        assert [n for n, _ in rows] == [2, 4]
        assert rows[1][1]["a"] == 3

    def test_is_a_value_error(self):
        assert issubclass(WorkbookImportError, ValueError)


class TestResolvers:
    def test_operating_unit_case_insensitive(self):
        assert resolve_operating_unit("rpmo 4a") == "RPMO 4A"

    def test_operating_unit_default(self):
        assert resolve_operating_unit("Nowhere") == "NPMO"
        assert resolve_operating_unit(None) == "NPMO"

    def test_operating_unit_custom_list(self):
        assert resolve_operating_unit("field office", ["Field Office"]) == "Field Office"

    def test_tier(self):
        assert resolve_tier("tier 2") == "Tier 2"
        assert resolve_tier("2") == "Tier 2"
        assert resolve_tier("") == "Tier 1"
        assert resolve_tier("Tier 9") == "Tier 1"

    def test_fund_type_note(self):
        report = ImportReport(kind="x")
        assert resolve_fund_type("continuing", report, 2) == "Continuing"
        assert resolve_fund_type("Special", report, 3) == "Current"
        assert report.skip_counts_by_category() == {"invalid_option": 1}
        assert report.rows_skipped == 0

    def test_uacs_exact(self):
        assert resolve_uacs_code(LOOKUP, "MOOE", "Training Expenses", "50202010-00") == (
            "MOOE", "Training Expenses", "50202010-00", True)

    def test_uacs_punctuation_insensitive(self):
        assert resolve_uacs_code(LOOKUP, "MOOE", "Training Expenses", "5020201000")[2:] == (
            "50202010-00", True)

    def test_uacs_found_elsewhere_adopts_type(self):
        assert resolve_uacs_code(LOOKUP, "MOOE", "Wrong", "10605030 00") == (
            "CO", "Machinery and Equipment", "10605030-00", True)

    def test_uacs_not_found(self):
        assert resolve_uacs_code(LOOKUP, "MOOE", "X", "123") == ("MOOE", "X", "123", False)

    def test_uacs_no_lookup(self):
        assert resolve_uacs_code({}, "MOOE", "X", "123")[3] is False

    def test_split_ipos(self):
        assert split_ipos("A; B ;") == ["A", "B"]
        assert split_ipos("A, B") == ["A", "B"]
        assert split_ipos("One, Inc; Two") == ["One, Inc", "Two"]
        assert split_ipos(None) == []


class TestCheckHeaders:
    def test_missing_named(self):
        with pytest.raises(WorkbookImportError, match="Missing required column"):
            check_headers("activities", ["uid", "type"])

    def test_ok(self):
        check_headers("uacs", ["particular", "uacsCode"])


class TestParseSubprojects:
    HEADERS = ["uid", "name", "province", "municipality", "fundingYear", "operatingUnit",
               "detail_particulars", "detail_pricePerUnit", "detail_numberOfUnits",
               "detail_objectType", "detail_expenseParticular", "detail_uacsCode"]

    def test_rows_grouped_by_uid(self):
        data = make_xlsx(self.HEADERS, [
            ["SP-1", "Coffee", "Rizal", "Tanay", 2024, "rpmo 4a",
             "Roaster", 150000, 1, "CO", "Machinery and Equipment", "10605030-00"],
            ["SP-1", None, None, None, None, None,
             "Grinder", 50000, 2, "CO", "Machinery and Equipment", "1060503000"],
            ["SP-2", "Cacao", None, "Baler", 2024, None, None, None, None, None, None, None],
        ])
        records, report = parse_workbook("subprojects", data, uacs_lookup=LOOKUP)
        assert [r["uid"] for r in records] == ["SP-1", "SP-2"]
        sp1 = records[0]
        assert sp1["location"] == "Tanay, Rizal"
        assert sp1["operating_unit"] == "RPMO 4A"
        assert sp1["encoded_by"] == "System Upload"
        assert [d["particulars"] for d in sp1["details"]] == ["Roaster", "Grinder"]
        assert sp1["details"][1]["uacs_code"] == "10605030-00"
        assert records[1]["location"] == "Baler"
        assert records[1]["details"] == []
        assert report.records == 2

    def test_missing_uid_skipped(self):
        data = make_xlsx(self.HEADERS, [
            [None, "Nameless", None, None, 2024, None, None, None, None, None, None, None],
            ["SP-3", "Named", None, None, 2024, None, None, None, None, None, None, None],
        ])
        records, report = parse_workbook("subprojects", data)
        assert len(records) == 1
        assert report.rows_skipped == 1
        assert report.skips[0].row == 2

    def test_unresolved_code_noted(self):
        data = make_xlsx(self.HEADERS, [
            ["SP-1", "X", None, None, 2024, None, "Seeds", 1, 1, "MOOE", "Supplies", "777"],
        ])
        records, report = parse_workbook("subprojects", data, uacs_lookup=LOOKUP)
        assert records[0]["details"][0]["uacs_code"] == "777"
        assert report.skip_counts_by_category() == {"unresolved_code": 1}


class TestParseActivities:
    HEADERS = ["uid", "type", "component", "name", "date", "participatingIpos",
               "participantsMale", "participantsFemale", "fundingYear", "fundType", "tier",
               "expense_objectType", "expense_particular", "expense_uacsCode", "expense_amount"]

    def _row(self, **kw):
        base = {
            "uid": "TRN-1", "type": "Training", "component": "Social Preparation",
            "name": "Leadership", "date": datetime.datetime(2024, 3, 15),
            "participatingIpos": "IPO One; IPO Two", "participantsMale": 10,
            "participantsFemale": 15, "fundingYear": 2024, "fundType": "Current",
            "tier": "Tier 1", "expense_objectType": "MOOE",
            "expense_particular": "Training Expenses", "expense_uacsCode": "50202010-00",
            "expense_amount": 25000,
        }
        base.update(kw)
        return [base[h] for h in self.HEADERS]

    def test_parsed(self):
        data = make_xlsx(self.HEADERS, [self._row(), self._row(expense_amount=5000)])
        records, _ = parse_workbook("activities", data, uacs_lookup=LOOKUP,
                                    operating_unit="RPMO 1")
        act = records[0]
        assert act["date"] == "2024-03-15"
        assert act["participating_ipos"] == ["IPO One", "IPO Two"]
        assert act["operating_unit"] == "RPMO 1"
        assert act["encoded_by"] == "System"
        assert [e["amount"] for e in act["expenses"]] == [25000, 5000]

    def test_caller_unit_defaults_to_npmo(self):
        records, _ = parse_workbook("activities", make_xlsx(self.HEADERS, [self._row()]))
        assert records[0]["operating_unit"] == "NPMO"

    def test_missing_common_fields(self):
        data = make_xlsx(self.HEADERS, [self._row(name=None)])
        with pytest.raises(WorkbookImportError, match=r"Row 2 \(UID: TRN-1\)"):
            parse_workbook("activities", data)

    def test_expense_needs_object_type(self):
        data = make_xlsx(self.HEADERS, [self._row(expense_objectType=None)])
        records, _ = parse_workbook("activities", data)
        assert records[0]["expenses"] == []

    def test_invalid_options_fall_back(self):
        data = make_xlsx(self.HEADERS, [self._row(fundType="Bonus", tier="Tier 7")])
        records, report = parse_workbook("activities", data)
        assert records[0]["fund_type"] == "Current"
        assert records[0]["tier"] == "Tier 1"
        assert report.skip_counts_by_category() == {"invalid_option": 2}


class TestParseProgramKinds:
    def test_staffing_template_round_trip(self):
        _, data = build_template("staffing-requirements")
        records, report = parse_workbook("staffing-requirements", data)
        assert len(records) == 1
        rec = records[0]
        assert rec["annual_salary"] == 540000
        assert rec["disbursement_dec"] == 45000
        assert rec["fund_year"] == 2024
        assert "uid" not in rec
        assert report.rows_read == 1

    def test_staffing_annual_salary_when_no_months(self):
        row = {h: None for h in STAFFING_HEADERS}
        row.update(personnelPosition="Driver", uacsCode="X", annualSalary=240000)
        data = make_xlsx(list(STAFFING_HEADERS), [[row[h] for h in STAFFING_HEADERS]])
        rec = parse_workbook("staffing-requirements", data)[0][0]
        assert rec["annual_salary"] == 240000
        assert rec["status"] == "Contractual"
        assert rec["salary_grade"] == 1
        assert all(rec[f"disbursement_{h[12:].lower()}"] == 0 for h in STAFFING_MONTH_HEADERS)

    def test_staffing_actual_months_optional(self):
        headers = ["personnelPosition", "uacsCode", "actualDisbursementJan"]
        rec = parse_workbook("staffing-requirements",
                             make_xlsx(headers, [["Driver", "X", 1000]]))[0][0]
        assert rec["actual_disbursement_jan"] == 1000
        assert "actual_disbursement_feb" not in rec

    def test_office(self):
        headers = ["uid", "equipment", "uacsCode", "numberOfUnits", "pricePerUnit",
                   "operatingUnit", "fundYear"]
        rec = parse_workbook("office-requirements", make_xlsx(headers, [
            ["OR-9", "Laptop", "50203010-00", 2, "₱50,000", "npmo", "2024"],
        ]))[0][0]
        assert rec["uid"] == "OR-9"
        assert rec["price_per_unit"] == 50000
        assert rec["fund_year"] == 2024
        assert rec["encoded_by"] == "Upload"

    def test_other(self):
        headers = ["particulars", "uacsCode", "amount"]
        rec = parse_workbook("other-expenses",
                             make_xlsx(headers, [["Internet", "X", 1200]]))[0][0]
        assert rec["amount"] == 1200
        assert rec["operating_unit"] == "NPMO"
        assert rec["fund_type"] == "Current"

    def test_uacs_rows(self):
        headers = ["objectType", "particular", "uacsCode", "description"]
        records, report = parse_workbook("uacs", make_xlsx(headers, [
            [None, "Training", "1", "T"],
            ["CO", None, "2", "skip me"],
        ]))
        assert records == [{"object_type": "MOOE", "particular": "Training",
                            "uacs_code": "1", "description": "T"}]
        assert report.skip_counts_by_category() == {"missing_fields": 1}


class TestParseWorkbook:
    def test_no_data_rows(self):
        with pytest.raises(WorkbookImportError, match="no data rows"):
            parse_workbook("uacs", make_xlsx(["particular", "uacsCode"], []))

    def test_unknown_kind(self):
        with pytest.raises(KeyError):
            parse_workbook("budget-lines", make_xlsx(["a"], [[1]]))

    def test_report_dict(self):
        _, report = parse_workbook("uacs", make_xlsx(["particular", "uacsCode"], [["A", "1"]]))
        data = report.to_dict()
        assert data["kind"] == "uacs"
        assert data["records"] == 1
        assert data["skip_counts"] == {}
