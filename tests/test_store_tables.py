"""Tests for store/ — schema, keyed reads/writes, uid assignment and checks."""
import copy
import sqlite3

import pytest

from store.checks import build_registry
from store.schema import KINDS, SCHEMA_VERSION, create_tracker_db, get_kind, migrate
from store.seed import SAMPLE_RECORDS
from store.tables import (
    assign_uids,
    build_uacs_lookup,
    carry_line_actuals,
    count_records,
    delete_records,
    derive_totals,
    fetch_all,
    get_record,
    insert_record,
    list_uacs,
    load_sources,
    next_uid,
    table_columns,
    update_fields,
    update_record,
    upsert_records,
    upsert_uacs,
)
from utils.config import monthly_fields

OFFICE = KINDS["office-requirements"]
STAFF = KINDS["staffing-requirements"]
SUB = KINDS["subprojects"]


def _office(**kw):
    rec = {"equipment": "Printer", "uacs_code": "50203010-00", "operating_unit": "NPMO",
           "fund_year": 2024, "number_of_units": 1, "price_per_unit": 15000}
    rec.update(kw)
    return rec


class TestSchema:
    def test_migrate_idempotent(self, empty_conn):
        assert migrate(empty_conn) == 0
        row = empty_conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        assert row[0] == SCHEMA_VERSION

    def test_all_tables_created(self, empty_conn):
        names = {r[0] for r in empty_conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'")}
        for kind in KINDS.values():
            assert kind.table in names
        assert "reference_uacs" in names

    def test_column_cache_is_per_database(self, conn, tmp_path):
        assert "equipment" in table_columns(conn, OFFICE.table)
        other = sqlite3.connect(str(tmp_path / "older.sqlite"))
        other.execute("CREATE TABLE office_requirements (id INTEGER PRIMARY KEY, uid TEXT)")
        assert table_columns(other, OFFICE.table) == ["id", "uid"]
        other.close()
        assert "equipment" in table_columns(conn, OFFICE.table)

    def test_get_kind_unknown(self):
        with pytest.raises(KeyError):
            get_kind("budget-lines")


class TestUids:
    def test_next_uid_continues_sequence(self, conn):
        assert next_uid(conn, OFFICE, 2024) == "OR-2024-002"
        assert next_uid(conn, OFFICE, 2025) == "OR-2025-001"

    def test_assign_uids_batch(self, conn):
        records = [_office(), _office(), _office(fund_year=2025), _office(uid="OR-2024-003")]
        assign_uids(conn, OFFICE, records)
        assert [r["uid"] for r in records] == [
            "OR-2024-002", "OR-2024-004", "OR-2025-001", "OR-2024-003",
        ]

    def test_existing_uid_kept(self, conn):
        records = assign_uids(conn, OFFICE, [_office(uid="MY-UID")])
        assert records[0]["uid"] == "MY-UID"


class TestDeriveTotals:
    def test_staffing_salary_from_months(self):
        rec = {c: 45000 for c in monthly_fields("disbursement")}
        assert derive_totals(STAFF, rec)["annual_salary"] == 540000

    def test_staffing_salary_kept_without_months(self):
        assert derive_totals(STAFF, {"annual_salary": 300000})["annual_salary"] == 300000

    def test_staffing_actual_total_only_when_months_present(self):
        rec = derive_totals(STAFF, {"actual_disbursement_amount": 99})
        assert rec["actual_disbursement_amount"] == 99
        rec = derive_totals(STAFF, {"actual_disbursement_jan": 10, "actual_disbursement_feb": 5})
        assert rec["actual_disbursement_amount"] == 15

    def test_carry_line_actuals_pairs_repeated_keys_in_order(self):
        key = ("uacs_code", "expense_particular")
        stored = [
            {"id": 4, "uacs_code": "A", "expense_particular": "x", "actual_obligation_amount": 1},
            {"id": 7, "uacs_code": "A", "expense_particular": "x", "actual_obligation_amount": 2},
        ]
        incoming = [
            {"uacs_code": "a", "expense_particular": "X", "amount": 10},
            {"uacs_code": "A", "expense_particular": "x", "actual_obligation_amount": 5},
            {"uacs_code": "A", "expense_particular": "x"},
        ]
        merged = carry_line_actuals(stored, incoming, key)
        assert [ln.get("id") for ln in merged] == [4, 7, None]
        assert [ln.get("actual_obligation_amount") for ln in merged] == [1, 5, None]
        assert merged[0]["amount"] == 10

    def test_detail_ids_assigned(self):
        rec = derive_totals(SUB, {"details": [{"id": 4}, {}, {"id": None}]})
        assert [d["id"] for d in rec["details"]] == [4, 5, 6]


class TestWrites:
    def test_insert_generates_uid(self, conn):
        rec = insert_record(conn, OFFICE, _office())
        assert rec["uid"] == "OR-2024-002"
        assert rec["id"] == 2
        assert rec["created_at"]

    def test_insert_requires_uacs_code(self, conn):
        with pytest.raises(ValueError, match="UACS Code is required"):
            insert_record(conn, OFFICE, _office(uacs_code=""))

    def test_insert_requires_operating_unit(self, conn):
        with pytest.raises(ValueError, match="Operating Unit is required"):
            insert_record(conn, OFFICE, _office(operating_unit=""))

    def test_subproject_detail_needs_code(self, conn):
        with pytest.raises(ValueError, match="UACS Code"):
            insert_record(conn, SUB, {"name": "X", "operating_unit": "NPMO",
                                      "details": [{"particulars": "Seeds"}]})

    def test_update_merges(self, conn):
        rec = update_record(conn, STAFF, 1, {"salary_grade": 16})
        assert rec["salary_grade"] == 16
        assert rec["annual_salary"] == 540000
        assert rec["personnel_position"] == "Project Development Officer II"

    def test_update_missing(self, conn):
        assert update_record(conn, STAFF, 99, {"salary_grade": 1}) is None

    def test_update_fields_verbatim(self, conn):
        assert update_fields(conn, OFFICE, 1, {"actual_obligation_amount": 5,
                                               "not_a_column": 1}) == 1
        assert get_record(conn, OFFICE, 1)["actual_obligation_amount"] == 5

    def test_delete(self, conn):
        assert delete_records(conn, OFFICE, [1, 999]) == 1
        assert get_record(conn, OFFICE, 1) is None
        assert delete_records(conn, OFFICE, []) == 0


class TestUpsert:
    def test_updates_by_uid(self, conn):
        upsert_records(conn, OFFICE, [_office(uid="OR-2024-001", equipment="Desktop")])
        assert count_records(conn, OFFICE) == 1
        assert get_record(conn, OFFICE, 1)["equipment"] == "Desktop"

    def test_keeps_recorded_actuals(self, conn):
        update_fields(conn, OFFICE, 1, {"actual_obligation_amount": 100000})
        upsert_records(conn, OFFICE, [_office(uid="OR-2024-001")])
        assert get_record(conn, OFFICE, 1)["actual_obligation_amount"] == 100000

    def test_line_actuals_survive_reimport(self, conn):
        details = get_record(conn, SUB, 1)["details"]
        details[0]["actual_obligation_amount"] = 777
        details[1]["actual_delivery_date"] = "2024-03-05"
        details[1]["actual_number_of_units"] = 2
        update_fields(conn, SUB, 1, {"details": details})

        incoming = copy.deepcopy(SAMPLE_RECORDS["subprojects"][0])
        for d in incoming["details"]:
            del d["id"]
        incoming["details"].append({**incoming["details"][0], "particulars": "Coffee Dryer"})
        upsert_records(conn, SUB, [incoming])

        after = get_record(conn, SUB, 1)["details"]
        assert [d["id"] for d in after] == [1, 2, 3]
        assert after[0]["actual_obligation_amount"] == 777
        assert after[1]["actual_delivery_date"] == "2024-03-05"
        assert after[1]["actual_number_of_units"] == 2
        assert "actual_obligation_amount" not in after[2]

    def test_reordered_lines_keep_their_ids(self, conn):
        incoming = copy.deepcopy(SAMPLE_RECORDS["subprojects"][0])
        incoming["details"] = [{k: v for k, v in d.items() if k != "id"}
                               for d in reversed(incoming["details"])]
        upsert_records(conn, SUB, [incoming])
        after = get_record(conn, SUB, 1)["details"]
        assert [(d["particulars"], d["id"]) for d in after] == [
            ("Coffee Grinder", 2), ("Coffee Roaster", 1)]

    def test_all_or_nothing(self, conn):
        batch = [_office(uid="OR-2024-050"), _office(uid="OR-2024-051", uacs_code="")]
        with pytest.raises(ValueError):
            upsert_records(conn, OFFICE, batch)
        assert count_records(conn, OFFICE) == 1

    def test_requires_uid(self, conn):
        with pytest.raises(ValueError, match="missing a UID"):
            upsert_records(conn, OFFICE, [_office()])

    def test_staffing_salary_derived(self, empty_conn):
        rec = {"uid": "SR-2024-009", "personnel_position": "Driver", "uacs_code": "X",
               "operating_unit": "NPMO", "fund_year": 2024,
               **{c: 20000 for c in monthly_fields("disbursement")}}
        upsert_records(empty_conn, STAFF, [rec])
        assert fetch_all(empty_conn, STAFF)[0]["annual_salary"] == 240000


class TestReads:
    def test_fetch_all_pages(self, conn):
        for i in range(5):
            insert_record(conn, OFFICE, _office(equipment=f"Item {i}"))
        rows = fetch_all(conn, "office-requirements", batch_size=2)
        assert len(rows) == 6
        assert [r["id"] for r in rows] == sorted(r["id"] for r in rows)

    def test_json_columns_decoded(self, conn):
        act = fetch_all(conn, "activities")[0]
        assert act["participating_ipos"] == ["Dumagat Farmers Association"]
        assert act["expenses"][0]["amount"] == 25000

    def test_load_sources_year(self, conn):
        assert len(load_sources(conn, year=2024).subprojects) == 1
        assert load_sources(conn, year=2023).subprojects == []


class TestUacs:
    def test_lookup(self, conn):
        lookup = build_uacs_lookup(list_uacs(conn))
        assert lookup["MOOE"]["Training Expenses"]["50202010-00"] == "Training Expenses"

    def test_upsert_skips_incomplete(self, empty_conn):
        n = upsert_uacs(empty_conn, [
            {"particular": "A", "uacs_code": "1"},
            {"particular": "", "uacs_code": "2"},
        ])
        assert n == 1
        assert list_uacs(empty_conn)[0]["object_type"] == "MOOE"


class TestChecks:
    def test_seed_passes(self, conn):
        result = build_registry().run_all(conn)
        assert result.is_valid()

    def test_monthly_total_mismatch(self, conn):
        update_fields(conn, STAFF, 1, {"actual_disbursement_jan": 100,
                                       "actual_disbursement_amount": 5})
        result = build_registry().run_all(conn)
        assert "monthly_totals" in result.failed_checks
        assert not result.is_valid()

    def test_unknown_code_warning(self, conn):
        update_fields(conn, OFFICE, 1, {"uacs_code": "99999999-99"})
        result = build_registry().run_all(conn)
        assert "uacs_codes" in result.failed_checks
        assert result.is_valid()

    def test_unconfigured_operating_unit_warning(self, conn):
        update_fields(conn, OFFICE, 1, {"operating_unit": "RPMO 99"})
        result = build_registry().run_all(conn)
        assert "known_operating_units" in result.failed_checks
        assert result.warning_count() == 1
        assert result.is_valid()

    def test_negative_amount(self, conn):
        update_fields(conn, OFFICE, 1, {"actual_obligation_amount": -5})
        result = build_registry().run_all(conn)
        assert "amounts" in result.failed_checks
        assert not result.is_valid()


def test_create_tracker_db_creates_parent(tmp_path):
    conn = create_tracker_db(tmp_path / "nested" / "dir" / "t.sqlite")
    assert (tmp_path / "nested" / "dir" / "t.sqlite").exists()
    conn.close()
