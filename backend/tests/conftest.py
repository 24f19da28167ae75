import os
import tempfile

# Point the application at throwaway locations before it is imported
_TMP_ROOT = tempfile.mkdtemp(prefix="result_portal_tests_")
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(_TMP_ROOT, "app.db"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TMP_ROOT, "uploads"))

import pytest
from openpyxl import Workbook

from result_portal.database import build_engine, build_session_factory, create_tables
from result_portal.services.result_store import ResultStore

BANNER_ROWS = [
    ["Springfield High School"],
    ["Exam Results"],
    ["Session 2024"],
    ["Subject: English"],
]
DEFAULT_HEADERS = ["SL", "Name", "Reg", "Mark"]


@pytest.fixture
def engine(tmp_path):
    engine = build_engine("sqlite:///" + str(tmp_path / "results.db"))
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return ResultStore(session_factory)


@pytest.fixture
def make_workbook(tmp_path):
    """
    Build an .xlsx file in the institution's template layout.

    `sheets` maps sheet name to a list of data rows; each row is written
    under four banner rows and one header row.
    """
    counter = {"n": 0}

    def _make(sheets, headers=DEFAULT_HEADERS, filename=None):
        workbook = Workbook()
        workbook.remove(workbook.active)
        for name, rows in sheets.items():
            worksheet = workbook.create_sheet(title=name)
            for banner in BANNER_ROWS:
                worksheet.append(banner)
            worksheet.append(list(headers))
            for row in rows:
                worksheet.append(list(row))
        counter["n"] += 1
        path = tmp_path / (filename or "upload_{}.xlsx".format(counter["n"]))
        workbook.save(path)
        return path

    return _make


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    from result_portal.routes import results

    path = tmp_path / "uploads"
    monkeypatch.setattr(results, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def client(store, upload_dir):
    from fastapi.testclient import TestClient

    from result_portal.main import app
    from result_portal.routes import results

    app.dependency_overrides[results.get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
