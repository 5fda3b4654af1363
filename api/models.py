"""
Pydantic request/response models for the API.

Record input models keep every field optional so the same model serves
create and partial update (``model_dump(exclude_unset=True)``); required
fields are enforced by ``utils.validation.check_record`` so the client gets
the same message ("Operating Unit is required.") whichever path it takes.

3.C4-a: Field() descriptions and examples added for OpenAPI docs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ── Record line models ────────────────────────────────────────────────────────

class CodedLine(BaseModel):
    """Budget-code fields shared by subproject details and activity expenses."""
    id: int | None = Field(None, description="Line id within its record (assigned when missing)")
    object_type: str | None = Field(None, description="MOOE, CO or PS", examples=["CO"])
    expense_particular: str | None = Field(None, description="Expense class", examples=["Machinery and Equipment"])
    uacs_code: str | None = Field(None, description="UACS budget code", examples=["10605030-00"])
    obligation_month: str | None = Field(None, description="Target obligation date", examples=["2024-02-01"])
    disbursement_month: str | None = Field(None, description="Target disbursement date", examples=["2024-03-15"])
    actual_obligation_date: str | None = None
    actual_obligation_amount: float | None = None
    actual_disbursement_date: str | None = None
    actual_disbursement_amount: float | None = None


class SubprojectDetailIn(CodedLine):
    """One item of a subproject (equipment, livestock, ...)."""
    type: str | None = Field(None, description="Item type", examples=["Equipment"])
    particulars: str | None = Field(None, description="Item name", examples=["Coffee Roaster"])
    delivery_date: str | None = Field(None, examples=["2024-03-01"])
    unit_of_measure: str | None = Field(None, examples=["unit"])
    price_per_unit: float | None = Field(None, examples=[150000])
    number_of_units: float | None = Field(None, examples=[1])
    actual_delivery_date: str | None = None
    actual_number_of_units: float | None = None


class ActivityExpenseIn(CodedLine):
    """One budget line of an activity."""
    amount: float | None = Field(None, description="Target amount", examples=[25000])


# ── Record models ─────────────────────────────────────────────────────────────

class RecordIn(BaseModel):
    """Fields every record kind carries."""
    uid: str | None = Field(None, description="Business identifier; generated when omitted",
                            examples=["OR-2024-001"])
    operating_unit: str | None = Field(None, description="Owning operating unit", examples=["RPMO 4A"])
    fund_type: str | None = Field(None, description="Current, Continuing or Insertion", examples=["Current"])
    tier: str | None = Field(None, description="Tier 1 or Tier 2", examples=["Tier 1"])
    encoded_by: str | None = None
    actual_obligation_date: str | None = None
    actual_obligation_amount: float | None = None
    actual_disbursement_date: str | None = None
    actual_disbursement_amount: float | None = None


class SubprojectIn(RecordIn):
    name: str | None = Field(None, examples=["Sample Coffee Production"])
    location: str | None = Field(None, examples=["Tanay, Rizal"])
    indigenous_people_organization: str | None = None
    status: str | None = Field(None, examples=["Ongoing"])
    package_type: str | None = None
    start_date: str | None = None
    estimated_completion_date: str | None = None
    actual_completion_date: str | None = None
    funding_year: int | None = Field(None, examples=[2024])
    remarks: str | None = None
    details: list[SubprojectDetailIn] | None = None


class ActivityIn(RecordIn):
    type: str | None = Field(None, examples=["Training"])
    component: str | None = Field(None, examples=["Social Preparation"])
    name: str | None = Field(None, examples=["Basic Leadership Training"])
    date: str | None = Field(None, examples=["2024-03-15"])
    end_date: str | None = None
    description: str | None = None
    location: str | None = None
    facilitator: str | None = None
    participating_ipos: list[str] | None = None
    participants_male: int | None = None
    participants_female: int | None = None
    actual_date: str | None = None
    actual_participants_male: int | None = None
    actual_participants_female: int | None = None
    status: str | None = None
    funding_year: int | None = Field(None, examples=[2024])
    expenses: list[ActivityExpenseIn] | None = None


class ProgramRecordIn(RecordIn):
    fund_year: int | None = Field(None, examples=[2024])
    uacs_code: str | None = Field(None, examples=["50203010-00"])
    obligation_date: str | None = None
    disbursement_date: str | None = None


class OfficeRequirementIn(ProgramRecordIn):
    equipment: str | None = Field(None, examples=["Laptop"])
    specs: str | None = None
    purpose: str | None = None
    number_of_units: int | None = Field(None, examples=[2])
    price_per_unit: float | None = Field(None, examples=[50000])


class _MonthlyActuals(BaseModel):
    actual_disbursement_jan: float | None = None
    actual_disbursement_feb: float | None = None
    actual_disbursement_mar: float | None = None
    actual_disbursement_apr: float | None = None
    actual_disbursement_may: float | None = None
    actual_disbursement_jun: float | None = None
    actual_disbursement_jul: float | None = None
    actual_disbursement_aug: float | None = None
    actual_disbursement_sep: float | None = None
    actual_disbursement_oct: float | None = None
    actual_disbursement_nov: float | None = None
    actual_disbursement_dec: float | None = None


class StaffingRequirementIn(ProgramRecordIn, _MonthlyActuals):
    personnel_position: str | None = Field(None, examples=["Project Development Officer II"])
    status: str | None = Field(None, examples=["Contractual"])
    salary_grade: int | None = Field(None, examples=[15])
    annual_salary: float | None = Field(None, description="Replaced by the monthly sum when any month is set")
    personnel_type: str | None = Field(None, examples=["Technical"])
    disbursement_jan: float | None = None
    disbursement_feb: float | None = None
    disbursement_mar: float | None = None
    disbursement_apr: float | None = None
    disbursement_may: float | None = None
    disbursement_jun: float | None = None
    disbursement_jul: float | None = None
    disbursement_aug: float | None = None
    disbursement_sep: float | None = None
    disbursement_oct: float | None = None
    disbursement_nov: float | None = None
    disbursement_dec: float | None = None


class OtherExpenseIn(ProgramRecordIn, _MonthlyActuals):
    particulars: str | None = Field(None, examples=["Miscellaneous Expenses"])
    amount: float | None = Field(None, examples=[10000])


RECORD_MODELS: dict[str, type[RecordIn]] = {
    "subprojects": SubprojectIn,
    "activities": ActivityIn,
    "office-requirements": OfficeRequirementIn,
    "staffing-requirements": StaffingRequirementIn,
    "other-expenses": OtherExpenseIn,
}


class RecordPage(BaseModel):
    """Paginated list of records of one kind."""
    total: int = Field(..., description="Total matching rows (before pagination)", examples=[42])
    page: int = Field(..., description="1-based page number", examples=[1])
    page_size: int = Field(..., description="Rows per page", examples=[10])
    page_count: int = Field(..., description="Number of pages", examples=[5])
    can_edit: bool = Field(True, description="Whether the caller's role may edit records")
    items: list[dict[str, Any]] = Field(..., description="Records for this page")


class IdsIn(BaseModel):
    """Body for multi-delete."""
    ids: list[int] = Field(..., description="Primary keys to delete", examples=[[3, 7]])


class DeleteResult(BaseModel):
    deleted: int = Field(..., description="Number of rows removed", examples=[2])


# ── Accomplishment models ─────────────────────────────────────────────────────

class AccomplishmentFilterIn(BaseModel):
    """Worksheet filter; ``All`` matches every value."""
    year: int = Field(..., description="Fund year", examples=[2024])
    operating_unit: str = Field("All", examples=["RPMO 4A"])
    tier: str = Field("All", examples=["Tier 1"])
    fund_type: str = Field("All", examples=["Current"])


class FinancialItemUpdate(BaseModel):
    """Local edit of one financial item's actual figures."""
    actual_obligation_month: str | None = Field(None, examples=["2024-03-01"])
    actual_obligation_amount: float | None = Field(None, examples=[150000])
    actual_disbursement_month: str | None = Field(None, examples=["2024-04-01"])
    actual_disbursement_amount: float | None = Field(None, examples=[150000])


class MonthlyValueIn(BaseModel):
    value: float = Field(..., description="Actual disbursement for the month", examples=[45000])


class GroupMonthIn(BaseModel):
    """Batch month overwrite for one budget-code group."""
    key: str = Field(..., description="Group key", examples=["MOOE - 50203010-00"])
    field: str = Field(..., description="actual_obligation_month or actual_disbursement_month",
                       examples=["actual_obligation_month"])
    month_index: int | None = Field(None, ge=0, le=11,
                                    description="0-based month; null clears the month", examples=[2])


class PhysicalItemUpdate(BaseModel):
    """Local edit of one physical item."""
    actual_date_start: str | None = Field(None, examples=["2024-05-10"])
    actual_date_end: str | None = None
    actual_qty: float | None = None
    actual_male: int | None = None
    actual_female: int | None = None


# ── Reference models ──────────────────────────────────────────────────────────

class UacsEntryIn(BaseModel):
    object_type: str = Field("MOOE", examples=["MOOE"])
    particular: str = Field(..., examples=["Office Supplies Expenses"])
    uacs_code: str = Field(..., examples=["50203010-00"])
    description: str | None = Field(None, examples=["Office Supplies Expenses"])


class UacsEntryOut(UacsEntryIn):
    id: int


class PermissionsOut(BaseModel):
    role: str | None = Field(None, examples=["User"])
    can_edit: bool
    can_view_all: bool


# ── Error model ───────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error response body (2.C5-b)."""
    error: str = Field(..., description="Short error category", examples=["Bad request"])
    detail: str | None = Field(None, description="Extended error detail")
    status_code: int = Field(..., ge=400, le=599, description="HTTP status code", examples=[400])
