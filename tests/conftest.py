"""
Pytest fixtures for the funding tracker tests.

Provides a seeded temporary tracker database, an API TestClient bound to it,
and a helper that builds in-memory .xlsx uploads.

Seed contents (all fund year 2024, see store/seed.py):

    subprojects            SP-2024-001  RPMO 4A  2 CO details (150,000 + 2 x 50,000)
    activities             ACT-2024-001 RPMO 4A  1 MOOE expense (25,000), 20 M / 15 F
    office_requirements    OR-2024-001  NPMO     2 x 50,000
    staffing_requirements  SR-2024-001  NPMO     12 x 45,000 = 540,000
    other_program_expenses OE-2024-001  RPMO 4A  60,000
    reference_uacs         5 codes
"""

import io
import sys
from pathlib import Path

import openpyxl
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from store.schema import create_tracker_db  # noqa: E402
from store.seed import seed_sample_data  # noqa: E402
from store.tables import load_sources  # noqa: E402


def make_xlsx(headers: list[str], rows: list[list]) -> bytes:
    """Return the bytes of a one-sheet workbook with *headers* and *rows*."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(headers)
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def read_xlsx(content: bytes) -> list[tuple]:
    """Return every row of the first sheet of an xlsx payload."""
    wb = openpyxl.load_workbook(io.BytesIO(content))
    return list(wb.worksheets[0].iter_rows(values_only=True))


@pytest.fixture()
def db_path(tmp_path):
    """Path of a freshly created and seeded tracker database."""
    path = tmp_path / "tracker.sqlite"
    conn = create_tracker_db(path)
    seed_sample_data(conn)
    conn.close()
    return path


@pytest.fixture()
def conn(db_path):
    """Open connection to the seeded database."""
    c = create_tracker_db(db_path)
    yield c
    c.close()


@pytest.fixture()
def empty_conn(tmp_path):
    """Open connection to a database with the schema but no rows."""
    c = create_tracker_db(tmp_path / "empty.sqlite")
    yield c
    c.close()


@pytest.fixture()
def sources(conn):
    return load_sources(conn, year=2024)


@pytest.fixture()
def client(db_path):
    """TestClient for an app bound to the seeded database."""
    from fastapi.testclient import TestClient

    from api.app import create_app
    from api.routes import accomplishments, reference

    accomplishments._store.clear()
    reference.invalidate_uacs_cache()
    app = create_app(db_path=db_path)
    return TestClient(app)
