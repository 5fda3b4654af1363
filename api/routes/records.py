"""
Record management endpoints.

GET    /api/v1/records/{kind}               → filtered, sorted, paginated list
GET    /api/v1/records/{kind}/{id}          → one record
POST   /api/v1/records/{kind}               → create (201)
PUT    /api/v1/records/{kind}/{id}          → partial update
DELETE /api/v1/records/{kind}/{id}          → delete one
POST   /api/v1/records/{kind}/bulk-delete   → delete many by id

``kind`` is one of subprojects, activities, office-requirements,
staffing-requirements, other-expenses.

REC-001: Filters (fund_year, operating_unit, tier, fund_type) accept "All";
         the WHERE clause comes from the shared utils/query.py builder.
REC-002: Callers whose role cannot view all units are pinned to their own
         operating unit (see api/permissions.py).
REC-003: Missing required fields raise ValueError, mapped to 400 by the app.
"""

import sqlite3
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from api.database import get_db
from api.models import RECORD_MODELS, DeleteResult, IdsIn, RecordPage
from api.permissions import Caller, get_caller
from store.schema import KINDS, RecordKind
from store.tables import (
    count_records,
    delete_records,
    get_record,
    insert_record,
    list_records,
    update_record,
)
from utils.config import AppConfig
from utils.query import build_order_clause, build_where_clause

router = APIRouter(prefix="/records", tags=["records"])

_cfg = AppConfig.from_env()


def resolve_kind(kind: str) -> RecordKind:
    """Return the RecordKind for a path segment, or raise 404."""
    try:
        return KINDS[kind]
    except KeyError:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown record kind '{kind}'. Must be one of: {sorted(KINDS)}",
        ) from None


def record_filter(
    kind: RecordKind,
    caller: Caller,
    fund_year: str | None = None,
    operating_unit: str | None = None,
    tier: str | None = None,
    fund_type: str | None = None,
    q: str | None = None,
) -> tuple[str, list[Any]]:
    """WHERE clause for a record list or report, honouring the caller's scope."""
    return build_where_clause(
        year_column=kind.year_column,
        fund_year=fund_year,
        operating_unit=caller.scoped_unit(operating_unit),
        tier=tier,
        fund_type=fund_type,
        q=q,
        search_columns=list(kind.search_columns),
    )


def _parse(kind: RecordKind, payload: dict[str, Any]) -> dict[str, Any]:
    model = RECORD_MODELS[kind.slug].model_validate(payload)
    return model.model_dump(exclude_unset=True)


@router.get("/{kind}", response_model=RecordPage, summary="List records")
def list_kind(
    kind: str,
    fund_year: str | None = Query(None, description="Fund year, or All"),
    operating_unit: str | None = Query(None, description="Operating unit, or All"),
    tier: str | None = Query(None, description="Tier, or All"),
    fund_type: str | None = Query(None, description="Fund type, or All"),
    q: str | None = Query(None, description="Free-text search over name columns"),
    sort_by: str = Query("id", description="Column to sort by"),
    sort_dir: str = Query("asc", pattern="^(asc|desc)$", description="Sort direction"),
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: int = Query(_cfg.page_size, ge=1, le=500, description="Rows per page"),
    caller: Caller = Depends(get_caller),
    conn: sqlite3.Connection = Depends(get_db),
) -> RecordPage:
    """Return one page of records of *kind*."""
    rk = resolve_kind(kind)
    if sort_by not in rk.sort_columns:
        raise HTTPException(
            status_code=400,
            detail=f"sort_by must be one of: {sorted(rk.sort_columns)}",
        )
    where, params = record_filter(rk, caller, fund_year, operating_unit, tier, fund_type, q)
    total = count_records(conn, rk, where, params)
    items = list_records(
        conn, rk, where, params,
        order=build_order_clause(sort_by, sort_dir, set(rk.sort_columns)),
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    page_count = max(1, (total + page_size - 1) // page_size)
    return RecordPage(
        total=total, page=page, page_size=page_size, page_count=page_count,
        can_edit=caller.can_edit, items=items,
    )


@router.get("/{kind}/{record_id}", summary="Get one record")
def get_one(
    kind: str,
    record_id: int,
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    rk = resolve_kind(kind)
    record = get_record(conn, rk, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"{rk.label} {record_id} not found")
    return record


@router.post("/{kind}", status_code=201, summary="Create a record")
def create_one(
    kind: str,
    payload: dict[str, Any] = Body(..., description="Record fields (snake_case)"),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    """Create a record; the uid is generated when omitted."""
    rk = resolve_kind(kind)
    return insert_record(conn, rk, _parse(rk, payload))


@router.put("/{kind}/{record_id}", summary="Update a record")
def update_one(
    kind: str,
    record_id: int,
    payload: dict[str, Any] = Body(..., description="Fields to change"),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    rk = resolve_kind(kind)
    record = update_record(conn, rk, record_id, _parse(rk, payload))
    if record is None:
        raise HTTPException(status_code=404, detail=f"{rk.label} {record_id} not found")
    return record


@router.delete("/{kind}/{record_id}", response_model=DeleteResult, summary="Delete a record")
def delete_one(
    kind: str,
    record_id: int,
    conn: sqlite3.Connection = Depends(get_db),
) -> DeleteResult:
    rk = resolve_kind(kind)
    deleted = delete_records(conn, rk, [record_id])
    if deleted == 0:
        raise HTTPException(status_code=404, detail=f"{rk.label} {record_id} not found")
    return DeleteResult(deleted=deleted)


@router.post("/{kind}/bulk-delete", response_model=DeleteResult, summary="Delete many records")
def delete_many(
    kind: str,
    body: IdsIn,
    conn: sqlite3.Connection = Depends(get_db),
) -> DeleteResult:
    """Delete every listed id; unknown ids are ignored."""
    rk = resolve_kind(kind)
    return DeleteResult(deleted=delete_records(conn, rk, body.ids))
