"""
Upload templates for every importable record kind.

Each template is a workbook whose first sheet carries the column headers
the importer expects (camelCase, as users already know them from earlier
templates) and one example row.  Subprojects and activities add an
``Instructions`` sheet describing every column.

WB-001: Templates are generated with openpyxl write_only mode, same as
        the report downloads.
WB-002: Sub-line columns carry a ``detail_`` / ``expense_`` prefix; rows
        sharing a ``uid`` are grouped into one record on import.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field

import openpyxl

from utils.config import KnownValues

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def workbook_bytes(sheets: list[tuple[str, list[list]]]) -> bytes:
    """Write ``(title, rows)`` pairs to a new workbook and return its bytes."""
    wb = openpyxl.Workbook(write_only=True)
    for title, rows in sheets:
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@dataclass(frozen=True)
class TemplateSpec:
    """Layout of one upload template."""

    filename: str
    sheet: str
    headers: tuple[str, ...]
    example: dict = field(default_factory=dict)
    instructions: tuple[tuple[str, str], ...] = ()


# ── Column lists ──────────────────────────────────────────────────────────────

SUBPROJECT_HEADERS = (
    "uid", "name", "indigenousPeopleOrganization", "province", "municipality",
    "status", "packageType", "startDate", "estimatedCompletionDate",
    "actualCompletionDate", "fundingYear", "fundType", "tier", "operatingUnit",
    "remarks",
    "detail_type", "detail_particulars", "detail_deliveryDate",
    "detail_unitOfMeasure", "detail_pricePerUnit", "detail_numberOfUnits",
    "detail_objectType", "detail_expenseParticular", "detail_uacsCode",
    "detail_obligationMonth", "detail_disbursementMonth",
)

ACTIVITY_HEADERS = (
    "uid", "type", "component", "name", "date", "province", "municipality",
    "facilitator", "description", "participatingIpos", "participantsMale",
    "participantsFemale", "fundingYear", "fundType", "tier",
    "expense_objectType", "expense_particular", "expense_uacsCode",
    "expense_obligationMonth", "expense_disbursementMonth", "expense_amount",
)

PROGRAM_COMMON_HEADERS = (
    "operatingUnit", "fundYear", "fundType", "tier", "obligationDate",
    "disbursementDate", "uacsCode",
)

STAFFING_MONTH_HEADERS = tuple(f"disbursement{m}" for m in KnownValues.SHORT_MONTHS)

OFFICE_HEADERS = PROGRAM_COMMON_HEADERS + (
    "equipment", "specs", "purpose", "numberOfUnits", "pricePerUnit",
)

STAFFING_HEADERS = PROGRAM_COMMON_HEADERS + (
    "personnelPosition", "status", "salaryGrade", "annualSalary", "personnelType",
) + STAFFING_MONTH_HEADERS

OTHER_HEADERS = PROGRAM_COMMON_HEADERS + ("particulars", "amount")

UACS_HEADERS = ("objectType", "particular", "uacsCode", "description")


_PROGRAM_EXAMPLE = {
    "operatingUnit": "NPMO",
    "fundYear": 2024,
    "fundType": "Current",
    "tier": "Tier 1",
    "obligationDate": "2024-01-15",
    "disbursementDate": "2024-02-15",
}

TEMPLATES: dict[str, TemplateSpec] = {
    "subprojects": TemplateSpec(
        filename="Subprojects_Upload_Template.xlsx",
        sheet="Subprojects Data",
        headers=SUBPROJECT_HEADERS,
        example={
            "uid": "SP-TEMP-001",
            "name": "Sample Coffee Production",
            "indigenousPeopleOrganization": "Samahan ng mga Katutubong Dumagat",
            "province": "Rizal",
            "municipality": "Tanay",
            "status": "Ongoing",
            "packageType": "Package 1",
            "startDate": "2024-01-15",
            "estimatedCompletionDate": "2024-06-15",
            "actualCompletionDate": "",
            "fundingYear": 2024,
            "fundType": "Current",
            "tier": "Tier 1",
            "operatingUnit": "RPMO 4A",
            "remarks": "Sample upload with multiple items",
            "detail_type": "Equipment",
            "detail_particulars": "Coffee Roaster",
            "detail_deliveryDate": "2024-03-01",
            "detail_unitOfMeasure": "unit",
            "detail_pricePerUnit": 150000,
            "detail_numberOfUnits": 1,
            "detail_objectType": "CO",
            "detail_expenseParticular": "Machinery and Equipment",
            "detail_uacsCode": "10605030-00",
            "detail_obligationMonth": "2024-02-01",
            "detail_disbursementMonth": "2024-03-15",
        },
        instructions=(
            ("uid", "Unique Identifier. REQUIRED. Rows with the same UID will be "
                    "grouped into one subproject."),
            ("name", "Name of the subproject."),
            ("indigenousPeopleOrganization", "Name of the IPO."),
            ("province", "Province name. (Required)"),
            ("municipality", "City or Municipality name. (Required)"),
            ("status", "Proposed, Ongoing, Completed, or Cancelled."),
            ("packageType", "Package 1, Package 2, etc."),
            ("startDate", "YYYY-MM-DD"),
            ("estimatedCompletionDate", "YYYY-MM-DD"),
            ("actualCompletionDate", "YYYY-MM-DD (Optional)"),
            ("fundingYear", "Year (e.g., 2024)"),
            ("fundType", "Current, Continuing, or Insertion"),
            ("tier", "Tier 1 or Tier 2"),
            ("operatingUnit", "e.g., RPMO 4A"),
            ("remarks", "Optional remarks"),
            ("detail_type", "Item Type (e.g., Equipment, Livestock, etc.)"),
            ("detail_particulars", "Specific item name."),
            ("detail_deliveryDate", "YYYY-MM-DD"),
            ("detail_unitOfMeasure", "pcs, kgs, unit, lot, heads"),
            ("detail_pricePerUnit", "Number"),
            ("detail_numberOfUnits", "Number"),
            ("detail_objectType", "MOOE or CO"),
            ("detail_expenseParticular", "Expense Class"),
            ("detail_uacsCode", "Specific UACS Code"),
            ("detail_obligationMonth", "YYYY-MM-DD (Date of Obligation)"),
            ("detail_disbursementMonth", "YYYY-MM-DD (Date of Disbursement)"),
        ),
    ),
    "activities": TemplateSpec(
        filename="Activities_Upload_Template.xlsx",
        sheet="Activities Data",
        headers=ACTIVITY_HEADERS,
        example={
            "uid": "TRN-2024-001",
            "type": "Training",
            "component": "Social Preparation",
            "name": "Basic Leadership Training",
            "date": "2024-03-15",
            "province": "Rizal",
            "municipality": "Tanay",
            "facilitator": "John Doe",
            "description": "Leadership skills training.",
            "participatingIpos": "San Isidro Farmers Association; Other IPO",
            "participantsMale": 10,
            "participantsFemale": 15,
            "fundingYear": 2024,
            "fundType": "Current",
            "tier": "Tier 1",
            "expense_objectType": "MOOE",
            "expense_particular": "Training Expenses",
            "expense_uacsCode": "50202010-01",
            "expense_obligationMonth": "2024-03-01",
            "expense_disbursementMonth": "2024-03-20",
            "expense_amount": 25000,
        },
        instructions=(
            ("participatingIpos", "Names of IPOs. Separate multiple IPOs with a "
                                  "semicolon (;). Example: 'IPO One; IPO Two'"),
            ("province", "Province name."),
            ("municipality", "City or Municipality name."),
        ),
    ),
    "office-requirements": TemplateSpec(
        filename="Office_Template.xlsx",
        sheet="Template",
        headers=OFFICE_HEADERS,
        example={
            **_PROGRAM_EXAMPLE,
            "uacsCode": "50203010-00",
            "equipment": "Laptop",
            "specs": "i7, 16GB RAM",
            "purpose": "For administrative use",
            "numberOfUnits": 1,
            "pricePerUnit": 50000,
        },
    ),
    "staffing-requirements": TemplateSpec(
        filename="Staffing_Req_Template.xlsx",
        sheet="Template",
        headers=STAFFING_HEADERS,
        example={
            **_PROGRAM_EXAMPLE,
            "uacsCode": "50100000-00",
            "personnelPosition": "Project Development Officer II",
            "status": "Contractual",
            "salaryGrade": 15,
            "annualSalary": "",
            "personnelType": "Technical",
            **{h: 45000 for h in STAFFING_MONTH_HEADERS},
        },
    ),
    "other-expenses": TemplateSpec(
        filename="Other_Template.xlsx",
        sheet="Template",
        headers=OTHER_HEADERS,
        example={
            **_PROGRAM_EXAMPLE,
            "uacsCode": "50299990-99",
            "particulars": "Miscellaneous Expenses",
            "amount": 10000,
        },
    ),
    "uacs": TemplateSpec(
        filename="UACS_Upload_Template.xlsx",
        sheet="UACS Codes",
        headers=UACS_HEADERS,
        example={
            "objectType": "MOOE",
            "particular": "Training and Scholarship Expenses",
            "uacsCode": "50202010-01",
            "description": "Training Expenses",
        },
    ),
}


def build_template(kind: str) -> tuple[str, bytes]:
    """Return ``(filename, xlsx bytes)`` of the upload template for *kind*.

    Raises:
        KeyError: If *kind* has no template.
    """
    spec = TEMPLATES[kind]
    sheets: list[tuple[str, list[list]]] = [(
        spec.sheet,
        [list(spec.headers), [spec.example.get(h, "") for h in spec.headers]],
    )]
    if spec.instructions:
        sheets.append((
            "Instructions",
            [["Column", "Description"]] + [list(pair) for pair in spec.instructions],
        ))
    return spec.filename, workbook_bytes(sheets)
