"""Sample records for a fresh tracker database.

``python init_tracker_db.py --seed`` loads one record of every kind plus a
small UACS reference so the worksheets have something to show.  The test
suite loads the same data.
"""

import sqlite3

from store.schema import KINDS
from store.tables import upsert_records, upsert_uacs

SAMPLE_YEAR = 2024

SAMPLE_UACS = [
    {"object_type": "MOOE", "particular": "Training Expenses",
     "uacs_code": "50202010-00", "description": "Training Expenses"},
    {"object_type": "MOOE", "particular": "Office Supplies Expenses",
     "uacs_code": "50203010-00", "description": "Office Supplies Expenses"},
    {"object_type": "MOOE", "particular": "Salaries and Wages",
     "uacs_code": "50101010-00", "description": "Salaries and Wages - Contractual"},
    {"object_type": "MOOE", "particular": "Other Maintenance and Operating Expenses",
     "uacs_code": "50299990-00", "description": "Other MOOE"},
    {"object_type": "CO", "particular": "Machinery and Equipment",
     "uacs_code": "10605030-00", "description": "Agricultural and Forestry Equipment"},
]

SAMPLE_RECORDS: dict[str, list[dict]] = {
    "subprojects": [{
        "uid": "SP-2024-001",
        "name": "Sample Coffee Production",
        "location": "Tanay, Rizal",
        "indigenous_people_organization": "Dumagat Farmers Association",
        "status": "Ongoing",
        "package_type": "Livelihood",
        "start_date": "2024-02-01",
        "estimated_completion_date": "2024-12-15",
        "funding_year": SAMPLE_YEAR,
        "operating_unit": "RPMO 4A",
        "fund_type": "Current",
        "tier": "Tier 1",
        "encoded_by": "Seed",
        "details": [
            {"id": 1, "type": "Equipment", "particulars": "Coffee Roaster",
             "delivery_date": "2024-03-01", "unit_of_measure": "unit",
             "price_per_unit": 150000, "number_of_units": 1,
             "object_type": "CO", "expense_particular": "Machinery and Equipment",
             "uacs_code": "10605030-00", "obligation_month": "2024-02-01",
             "disbursement_month": "2024-03-01"},
            {"id": 2, "type": "Equipment", "particulars": "Coffee Grinder",
             "delivery_date": "2024-03-01", "unit_of_measure": "unit",
             "price_per_unit": 50000, "number_of_units": 2,
             "object_type": "CO", "expense_particular": "Machinery and Equipment",
             "uacs_code": "10605030-00", "obligation_month": "2024-02-01",
             "disbursement_month": "2024-03-01"},
        ],
    }],
    "activities": [{
        "uid": "ACT-2024-001",
        "type": "Training",
        "component": "Social Preparation",
        "name": "Basic Leadership Training",
        "date": "2024-03-15",
        "end_date": "2024-03-17",
        "location": "Tanay, Rizal",
        "facilitator": "Juan Dela Cruz",
        "participating_ipos": ["Dumagat Farmers Association"],
        "participants_male": 20,
        "participants_female": 15,
        "funding_year": SAMPLE_YEAR,
        "operating_unit": "RPMO 4A",
        "fund_type": "Current",
        "tier": "Tier 1",
        "encoded_by": "Seed",
        "expenses": [
            {"id": 1, "amount": 25000, "object_type": "MOOE",
             "expense_particular": "Training Expenses", "uacs_code": "50202010-00",
             "obligation_month": "2024-03-01", "disbursement_month": "2024-03-15"},
        ],
    }],
    "office-requirements": [{
        "uid": "OR-2024-001",
        "equipment": "Laptop",
        "specs": "14in, 16GB RAM",
        "purpose": "Field reporting",
        "number_of_units": 2,
        "price_per_unit": 50000,
        "uacs_code": "50203010-00",
        "obligation_date": "2024-01-15",
        "disbursement_date": "2024-02-15",
        "fund_year": SAMPLE_YEAR,
        "operating_unit": "NPMO",
        "fund_type": "Current",
        "tier": "Tier 1",
        "encoded_by": "Seed",
    }],
    "staffing-requirements": [{
        "uid": "SR-2024-001",
        "personnel_position": "Project Development Officer II",
        "status": "Contractual",
        "salary_grade": 15,
        "personnel_type": "Technical",
        "uacs_code": "50101010-00",
        "obligation_date": "2024-01-01",
        "fund_year": SAMPLE_YEAR,
        "operating_unit": "NPMO",
        "fund_type": "Current",
        "tier": "Tier 1",
        "encoded_by": "Seed",
        **{f"disbursement_{m}": 45000 for m in
           ("jan", "feb", "mar", "apr", "may", "jun",
            "jul", "aug", "sep", "oct", "nov", "dec")},
    }],
    "other-expenses": [{
        "uid": "OE-2024-001",
        "particulars": "Communication Allowance",
        "amount": 60000,
        "uacs_code": "50299990-00",
        "obligation_date": "2024-01-01",
        "disbursement_date": "2024-12-31",
        "fund_year": SAMPLE_YEAR,
        "operating_unit": "RPMO 4A",
        "fund_type": "Current",
        "tier": "Tier 1",
        "encoded_by": "Seed",
    }],
}


def seed_sample_data(conn: sqlite3.Connection) -> dict[str, int]:
    """Load the sample UACS codes and records; returns rows written per table.

    Re-running is harmless: rows are keyed on uid / uacs_code.
    """
    counts = {"reference_uacs": upsert_uacs(conn, SAMPLE_UACS)}
    for slug, records in SAMPLE_RECORDS.items():
        kind = KINDS[slug]
        counts[kind.table] = upsert_records(conn, kind, [dict(r) for r in records])
    return counts
