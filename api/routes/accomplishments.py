"""
Financial and physical accomplishment endpoints.

Stateless views:
    GET  /api/v1/accomplishments/financial          → grouped view for a filter
    GET  /api/v1/accomplishments/physical           → categorized view for a filter

Worksheet sessions (edits kept server-side until confirmed/saved):
    POST   /financial/sessions                                  → load a worksheet
    GET    /financial/sessions/{sid}                            → current view
    PATCH  /financial/sessions/{sid}/items/{unique_id}          → local edit
    PUT    /financial/sessions/{sid}/items/{unique_id}/monthly/{month}
    POST   /financial/sessions/{sid}/groups/month               → batch month
    POST   /financial/sessions/{sid}/items/{unique_id}/confirm  → write back
    POST   /physical/sessions, GET /physical/sessions/{sid},
    PATCH  /physical/sessions/{sid}/items/{unique_id},
    POST   /physical/sessions/{sid}/items/{unique_id}/save
    DELETE /{financial|physical}/sessions/{sid}                 → discard

ACC-001: A confirm/save failure is reported on the item (``error``) with a
         200 response; the item stays unconfirmed so it can be retried.
ACC-002: Worksheets expire APP_SESSION_TTL seconds after their last use.
"""

import sqlite3
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from accomplishment.bridge import PersistenceBridge
from accomplishment.editor import (
    apply_group_month,
    find_item,
    set_monthly_disbursement,
    update_item,
    update_physical_item,
)
from accomplishment.filters import AccomplishmentFilter
from accomplishment.sessions import FINANCIAL, PHYSICAL, Worksheet, WorksheetStore, build_worksheet
from api.database import get_db
from api.models import (
    AccomplishmentFilterIn,
    FinancialItemUpdate,
    GroupMonthIn,
    MonthlyValueIn,
    PhysicalItemUpdate,
)
from api.permissions import Caller, get_caller
from store.tables import build_uacs_lookup, list_uacs, load_sources
from utils.config import AppConfig

router = APIRouter(prefix="/accomplishments", tags=["accomplishments"])

_cfg = AppConfig.from_env()
_store = WorksheetStore(ttl_seconds=_cfg.session_ttl)


def _filter(caller: Caller, year: int, operating_unit: str, tier: str,
            fund_type: str) -> AccomplishmentFilter:
    flt = AccomplishmentFilter(year, operating_unit, tier, fund_type)
    return flt.pinned_to(caller.scoped_unit(None))


def _load(conn: sqlite3.Connection, kind: str, flt: AccomplishmentFilter) -> Worksheet:
    sources = load_sources(conn, year=flt.year, batch_size=_cfg.fetch_batch_size)
    lookup = build_uacs_lookup(list_uacs(conn)) if kind == FINANCIAL else {}
    return build_worksheet(kind, flt, sources, lookup)


def _session(sid: str, kind: str) -> Worksheet:
    try:
        return _store.get(sid, kind)
    except KeyError:
        raise HTTPException(
            status_code=404,
            detail=f"Worksheet session '{sid}' not found or expired",
        ) from None


def _item(ws: Worksheet, unique_id: str):
    try:
        return find_item(ws.items, unique_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Item '{unique_id}' not found") from None


def _view(ws: Worksheet, caller: Caller) -> dict[str, Any]:
    return {**ws.view(), "can_edit": caller.can_edit}


# ── Financial ─────────────────────────────────────────────────────────────────

@router.get("/financial", summary="Financial accomplishment view")
def financial_view(
    year: int = Query(..., description="Fund year"),
    operating_unit: str = Query("All", description="Operating unit, or All"),
    tier: str = Query("All", description="Tier, or All"),
    fund_type: str = Query("All", description="Fund type, or All"),
    caller: Caller = Depends(get_caller),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    """Group every in-filter budget line by object type and budget code."""
    ws = _load(conn, FINANCIAL, _filter(caller, year, operating_unit, tier, fund_type))
    view = _view(ws, caller)
    view.pop("session_id")
    return view


@router.post("/financial/sessions", status_code=201, summary="Load a financial worksheet")
def open_financial(
    body: AccomplishmentFilterIn,
    caller: Caller = Depends(get_caller),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    flt = _filter(caller, body.year, body.operating_unit, body.tier, body.fund_type)
    ws = _store.add(_load(conn, FINANCIAL, flt))
    return _view(ws, caller)


@router.get("/financial/sessions/{sid}", summary="Current financial worksheet")
def get_financial(sid: str, caller: Caller = Depends(get_caller)) -> dict[str, Any]:
    return _view(_session(sid, FINANCIAL), caller)


@router.patch("/financial/sessions/{sid}/items/{unique_id}", summary="Edit a budget line")
def edit_financial_item(
    sid: str,
    unique_id: str,
    body: FinancialItemUpdate,
) -> dict[str, Any]:
    """Change actual figures locally; nothing is written until confirm."""
    ws = _session(sid, FINANCIAL)
    _item(ws, unique_id)
    with ws.lock:
        item = update_item(ws.items, unique_id, body.model_dump(exclude_unset=True))
    return item.to_dict()


@router.put(
    "/financial/sessions/{sid}/items/{unique_id}/monthly/{month}",
    summary="Set one month's actual disbursement",
)
def edit_financial_month(
    sid: str,
    unique_id: str,
    month: str,
    body: MonthlyValueIn,
) -> dict[str, Any]:
    """Set a monthly value; the item's disbursement total becomes the monthly sum."""
    ws = _session(sid, FINANCIAL)
    item = _item(ws, unique_id)
    if not item.has_monthly:
        raise HTTPException(
            status_code=400,
            detail="Monthly disbursements apply to Staffing and Other items only",
        )
    with ws.lock:
        set_monthly_disbursement(item, month, body.value)
    return item.to_dict()


@router.post("/financial/sessions/{sid}/groups/month", summary="Set a month for a whole group")
def edit_group_month(sid: str, body: GroupMonthIn) -> dict[str, Any]:
    """Overwrite the obligation or disbursement month of every item in a group."""
    ws = _session(sid, FINANCIAL)
    with ws.lock:
        updated = apply_group_month(ws.items, body.key, body.field, body.month_index,
                                    ws.filter.year)
    if updated == 0:
        raise HTTPException(status_code=404, detail=f"Group '{body.key}' not found")
    return {"key": body.key, "field": body.field, "updated": updated}


@router.post(
    "/financial/sessions/{sid}/items/{unique_id}/confirm",
    summary="Confirm a budget line",
)
def confirm_financial_item(
    sid: str,
    unique_id: str,
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    """Write the item's actual figures to its owning record."""
    ws = _session(sid, FINANCIAL)
    item = _item(ws, unique_id)
    with ws.lock:
        ok = PersistenceBridge(conn, ws.sources).confirm_financial(item)
    return {"confirmed": ok, "item": item.to_dict()}


# ── Physical ──────────────────────────────────────────────────────────────────

@router.get("/physical", summary="Physical accomplishment view")
def physical_view(
    year: int = Query(..., description="Fund year"),
    operating_unit: str = Query("All", description="Operating unit, or All"),
    tier: str = Query("All", description="Tier, or All"),
    fund_type: str = Query("All", description="Fund type, or All"),
    caller: Caller = Depends(get_caller),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    ws = _load(conn, PHYSICAL, _filter(caller, year, operating_unit, tier, fund_type))
    view = _view(ws, caller)
    view.pop("session_id")
    return view


@router.post("/physical/sessions", status_code=201, summary="Load a physical worksheet")
def open_physical(
    body: AccomplishmentFilterIn,
    caller: Caller = Depends(get_caller),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    flt = _filter(caller, body.year, body.operating_unit, body.tier, body.fund_type)
    ws = _store.add(_load(conn, PHYSICAL, flt))
    return _view(ws, caller)


@router.get("/physical/sessions/{sid}", summary="Current physical worksheet")
def get_physical(sid: str, caller: Caller = Depends(get_caller)) -> dict[str, Any]:
    return _view(_session(sid, PHYSICAL), caller)


@router.patch("/physical/sessions/{sid}/items/{unique_id}", summary="Edit a physical item")
def edit_physical_item(
    sid: str,
    unique_id: str,
    body: PhysicalItemUpdate,
) -> dict[str, Any]:
    """Local edit; a subproject parent's start date is copied to its children.

    Locked items answer 400.
    """
    ws = _session(sid, PHYSICAL)
    _item(ws, unique_id)
    with ws.lock:
        item = update_physical_item(ws.items, unique_id, body.model_dump(exclude_unset=True))
    return item.to_dict()


@router.post(
    "/physical/sessions/{sid}/items/{unique_id}/save",
    summary="Save a physical item",
)
def save_physical_item(
    sid: str,
    unique_id: str,
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    ws = _session(sid, PHYSICAL)
    item = _item(ws, unique_id)
    with ws.lock:
        ok = PersistenceBridge(conn, ws.sources).save_physical(item, ws.items)
    return {"saved": ok, "item": item.to_dict()}


# ── Session lifecycle ─────────────────────────────────────────────────────────

@router.delete("/{kind}/sessions/{sid}", status_code=204, summary="Discard a worksheet")
def discard_session(kind: str, sid: str) -> None:
    if kind not in (FINANCIAL, PHYSICAL):
        raise HTTPException(status_code=404, detail=f"Unknown worksheet kind '{kind}'")
    _session(sid, kind)
    _store.discard(sid)
