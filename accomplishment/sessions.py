"""Server-held accomplishment worksheets.

A worksheet is loaded once per filter: the sources are read, normalized and
kept in memory together with the derived items so that local edits, batch
month changes and confirmation flags survive between requests.  Reloading
(creating a new worksheet) starts from fresh sources with every item
unconfirmed.

Worksheets live in a ``TTLCache`` whose TTL restarts on every access, so an
abandoned worksheet is dropped after ``APP_SESSION_TTL`` seconds.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Any

from store.tables import Sources
from utils.cache import TTLCache

from accomplishment.filters import AccomplishmentFilter
from accomplishment.grouping import UacsLookup, group_financial, physical_view_dict
from accomplishment.normalizer import normalize_financial, normalize_physical

FINANCIAL = "financial"
PHYSICAL = "physical"


@dataclass
class Worksheet:
    """One loaded financial or physical worksheet."""

    id: str
    kind: str
    filter: AccomplishmentFilter
    sources: Sources
    items: list
    uacs_lookup: UacsLookup = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def view(self) -> dict[str, Any]:
        """JSON-ready view of the worksheet in its current state."""
        base = {
            "session_id": self.id,
            "kind": self.kind,
            "filter": {
                "year": self.filter.year,
                "operating_unit": self.filter.operating_unit,
                "tier": self.filter.tier,
                "fund_type": self.filter.fund_type,
            },
        }
        if self.kind == FINANCIAL:
            base.update(group_financial(self.items, self.uacs_lookup).to_dict())
        else:
            base["categories"] = physical_view_dict(self.items)
        return base


def build_worksheet(kind: str, flt: AccomplishmentFilter, sources: Sources,
                    uacs_lookup: UacsLookup | None = None) -> Worksheet:
    """Normalize *sources* for *flt* into a new, unsaved worksheet."""
    if kind == FINANCIAL:
        items = normalize_financial(sources, flt)
    elif kind == PHYSICAL:
        items = normalize_physical(sources, flt)
    else:
        raise ValueError(f"Unknown worksheet kind: '{kind}'")
    return Worksheet(
        id=uuid.uuid4().hex,
        kind=kind,
        filter=flt,
        sources=sources,
        items=items,
        uacs_lookup=uacs_lookup or {},
    )


class WorksheetStore:
    """Thread-safe registry of open worksheets with idle expiry."""

    def __init__(self, ttl_seconds: float = 3600.0, maxsize: int = 256) -> None:
        self._cache = TTLCache(maxsize=maxsize, ttl_seconds=ttl_seconds,
                               refresh_on_get=True)

    def add(self, worksheet: Worksheet) -> Worksheet:
        self._cache.set(worksheet.id, worksheet)
        return worksheet

    def get(self, session_id: str, kind: str | None = None) -> Worksheet:
        """Return an open worksheet.

        Raises:
            KeyError: If the id is unknown, expired, or of another kind.
        """
        ws = self._cache.get(session_id)
        if ws is None or (kind is not None and ws.kind != kind):
            raise KeyError(session_id)
        return ws

    def discard(self, session_id: str) -> None:
        self._cache.delete(session_id)

    def clear(self) -> None:
        self._cache.clear()

    def stats(self) -> dict[str, int]:
        return self._cache.stats()
