"""
Spreadsheet transfer endpoints.

GET  /api/v1/templates/{kind}   → upload template (.xlsx)
GET  /api/v1/reports/{kind}     → filtered report (.xlsx); same filters as the list
POST /api/v1/imports/{kind}     → import a raw .xlsx request body

``kind`` is a record kind slug; templates and imports also accept ``uacs``.

DL-001: Excel export via openpyxl write_only mode, streamed with
        Content-Disposition and Content-Length headers.
IMP-004: Imports are all-or-nothing: the workbook is parsed completely and
         every record validated before the single upsert transaction.
"""

import logging
import sqlite3
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from api.database import get_db
from api.permissions import Caller, get_caller
from api.routes.records import record_filter, resolve_kind
from api.routes.reference import invalidate_uacs_cache
from store.schema import KINDS
from store.tables import assign_uids, build_uacs_lookup, list_records, list_uacs, upsert_records, upsert_uacs
from utils.config import AppConfig
from workbook.importer import parse_workbook
from workbook.reports import build_report
from workbook.templates import TEMPLATES, XLSX_MEDIA_TYPE, build_template

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transfer"])

_cfg = AppConfig.from_env()


def _xlsx_response(filename: str, content: bytes) -> StreamingResponse:
    return StreamingResponse(
        iter([content]),
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Length": str(len(content)),
        },
    )


@router.get("/templates/{kind}", summary="Download an upload template")
def download_template(kind: str) -> StreamingResponse:
    if kind not in TEMPLATES:
        raise HTTPException(
            status_code=404,
            detail=f"No template for '{kind}'. Must be one of: {sorted(TEMPLATES)}",
        )
    filename, content = build_template(kind)
    return _xlsx_response(filename, content)


@router.get("/reports/{kind}", summary="Download a filtered report")
def download_report(
    kind: str,
    fund_year: str | None = Query(None, description="Fund year, or All"),
    operating_unit: str | None = Query(None, description="Operating unit, or All"),
    tier: str | None = Query(None, description="Tier, or All"),
    fund_type: str | None = Query(None, description="Fund type, or All"),
    q: str | None = Query(None, description="Free-text search over name columns"),
    caller: Caller = Depends(get_caller),
    conn: sqlite3.Connection = Depends(get_db),
) -> StreamingResponse:
    rk = resolve_kind(kind)
    where, params = record_filter(rk, caller, fund_year, operating_unit, tier, fund_type, q)
    records = list_records(conn, rk, where, params)
    filename, content = build_report(rk.slug, records)
    return _xlsx_response(filename, content)


@router.post("/imports/{kind}", summary="Import records from a workbook")
async def import_workbook(
    kind: str,
    request: Request,
    caller: Caller = Depends(get_caller),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    """Parse the uploaded workbook and upsert its records by uid.

    The request body is the raw .xlsx file.  Parse or validation failures
    answer 400 and nothing is written.
    """
    if kind != "uacs" and kind not in KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown import kind '{kind}'")
    data = await request.body()

    records, report = parse_workbook(
        kind,
        data,
        uacs_lookup=build_uacs_lookup(list_uacs(conn)),
        operating_units=_cfg.operating_units,
        operating_unit=caller.operating_unit,
    )
    if kind == "uacs":
        written = upsert_uacs(conn, records)
        invalidate_uacs_cache()
    else:
        rk = KINDS[kind]
        assign_uids(conn, rk, records)
        written = upsert_records(conn, rk, records, batch_size=_cfg.fetch_batch_size)

    logger.info("Imported %d %s record(s)", written, kind)
    return {"imported": written, "report": report.to_dict()}
