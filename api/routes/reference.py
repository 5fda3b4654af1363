"""
Reference data endpoints.

GET    /api/v1/reference/uacs          → flat list of UACS budget codes
GET    /api/v1/reference/uacs/tree     → object type → particular → code → description
POST   /api/v1/reference/uacs          → add or replace one code (201)
DELETE /api/v1/reference/uacs          → delete codes by id
GET    /api/v1/reference/options       → operating units, tiers, fund types, ...
GET    /api/v1/reference/permissions   → permission flags for a role

REF-001: The UACS tree is cached in a TTLCache and invalidated on every
         UACS write.
"""

import sqlite3

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from api.database import get_db
from api.models import DeleteResult, IdsIn, PermissionsOut, UacsEntryIn, UacsEntryOut
from api.permissions import get_user_permissions
from store.tables import build_uacs_lookup, delete_uacs, list_uacs, upsert_uacs
from utils.cache import TTLCache
from utils.config import AppConfig, KnownValues
from utils.database import query_to_dicts

router = APIRouter(prefix="/reference", tags=["reference"])

_CACHE_HEADER = {"Cache-Control": "max-age=3600"}

_cfg = AppConfig.from_env()
_uacs_cache = TTLCache(maxsize=4, ttl_seconds=3600)


def invalidate_uacs_cache() -> None:
    """Drop the cached UACS tree; called after every UACS write."""
    _uacs_cache.clear()


@router.get("/uacs", response_model=list[UacsEntryOut], summary="List UACS codes")
def list_uacs_codes(conn: sqlite3.Connection = Depends(get_db)) -> JSONResponse:
    """Return every UACS code ordered by object type and code."""
    return JSONResponse(content=list_uacs(conn), headers=_CACHE_HEADER)


@router.get("/uacs/tree", summary="UACS lookup tree")
def uacs_tree(conn: sqlite3.Connection = Depends(get_db)) -> JSONResponse:
    """Return the ``object_type -> particular -> code -> description`` lookup."""
    tree = _uacs_cache.get("tree")
    if tree is None:
        tree = build_uacs_lookup(list_uacs(conn))
        _uacs_cache.set("tree", tree)
    return JSONResponse(content=tree, headers=_CACHE_HEADER)


@router.post("/uacs", status_code=201, response_model=UacsEntryOut, summary="Add a UACS code")
def create_uacs_code(
    body: UacsEntryIn,
    conn: sqlite3.Connection = Depends(get_db),
) -> UacsEntryOut:
    """Insert a code, or replace the particular/description of an existing one."""
    if not body.uacs_code.strip() or not body.particular.strip():
        raise HTTPException(status_code=400, detail="UACS Code and Particular are required.")
    upsert_uacs(conn, [body.model_dump()])
    invalidate_uacs_cache()
    rows = query_to_dicts(
        conn,
        "SELECT id, object_type, particular, uacs_code, description "
        "FROM reference_uacs WHERE uacs_code = ?",
        (body.uacs_code.strip(),),
    )
    return UacsEntryOut(**rows[0])


@router.delete("/uacs", response_model=DeleteResult, summary="Delete UACS codes")
def delete_uacs_codes(
    body: IdsIn,
    conn: sqlite3.Connection = Depends(get_db),
) -> DeleteResult:
    deleted = delete_uacs(conn, body.ids)
    invalidate_uacs_cache()
    return DeleteResult(deleted=deleted)


@router.get("/options", summary="Option lists for forms and filters")
def options() -> JSONResponse:
    data = {
        "operating_units": _cfg.operating_units,
        "tiers": list(KnownValues.TIERS),
        "fund_types": list(KnownValues.FUND_TYPES),
        "object_types": list(KnownValues.OBJECT_TYPES),
        "months": list(KnownValues.MONTHS),
        "roles": list(KnownValues.ROLES),
        "subproject_statuses": list(KnownValues.SUBPROJECT_STATUSES),
        "activity_components": list(KnownValues.ACTIVITY_COMPONENTS),
    }
    return JSONResponse(content=data, headers=_CACHE_HEADER)


@router.get("/permissions", response_model=PermissionsOut, summary="Permission flags for a role")
def permissions(role: str | None = Query(None, description="Administrator, Management or User")) -> PermissionsOut:
    return PermissionsOut(role=role, **get_user_permissions(role))
