from sqlalchemy import text

from result_portal.models.result import Result, UNIQUE_INDEX_NAME

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _upload(client, path):
    with open(path, "rb") as f:
        return client.post("/api/upload", files={"file": (path.name, f, XLSX_TYPE)})


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.headers["X-Request-ID"]


def test_upload_then_search(client, make_workbook):
    path = make_workbook({"Batch-9B": [[1, "Alice", "2024001", 85], [2, "Bob", "2024002", 39]]})

    resp = _upload(client, path)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "count": 2, "sheets": 1}

    resp = client.get("/api/results", params={"reg": "2024001", "className": "9", "batch": "B"})

    assert resp.status_code == 200
    assert resp.json() == [{
        "registration_number": "2024001",
        "student_name": "Alice",
        "class": "9",
        "batch": "B",
        "subject": "English",
        "marks": 85.0,
        "grade": "A+",
        "exam_date": "Exam-4",
    }]


def test_upload_removes_temporary_file(client, make_workbook, upload_dir):
    _upload(client, make_workbook({"Batch-9B": [[1, "Alice", "2024001", 85]]}))

    assert list(upload_dir.iterdir()) == []


def test_failed_upload_removes_temporary_file(client, tmp_path, upload_dir):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"\x00\x01not a workbook")

    resp = _upload(client, path)

    assert resp.status_code == 400
    assert resp.json()["code"] == "DECODE_ERROR"
    assert list(upload_dir.iterdir()) == []


def test_upload_without_valid_rows(client, make_workbook):
    resp = _upload(client, make_workbook({"Batch-9B": [[1, None, None, 50]]}))

    assert resp.status_code == 400
    assert resp.json()["code"] == "NO_VALID_DATA"
    assert "template" in resp.json()["error"]


def test_upload_without_file(client):
    resp = client.post("/api/upload")

    assert resp.status_code == 400
    assert resp.json() == {"error": "No file uploaded", "code": "VALIDATION_ERROR"}


def test_upload_too_large(client, make_workbook, monkeypatch, upload_dir):
    from result_portal.routes import results

    monkeypatch.setattr(results, "MAX_UPLOAD_SIZE_MB", 0)

    resp = _upload(client, make_workbook({"Batch-9B": [[1, "Alice", "2024001", 85]]}))

    assert resp.status_code == 400
    assert "exceeds" in resp.json()["error"]
    assert list(upload_dir.iterdir()) == []


def test_search_missing_parameter(client):
    resp = client.get("/api/results", params={"reg": "2024001", "className": "9"})

    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_search_not_found(client):
    resp = client.get("/api/results", params={"reg": "2024001", "className": "9", "batch": "B"})

    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


def test_clear(client, make_workbook, store):
    _upload(client, make_workbook({"Batch-9B": [[1, "Alice", "2024001", 85]]}))

    resp = client.post("/api/clear")

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "deleted": 1}
    assert store.count() == 0


def test_deduplicate_endpoint(client, engine, session_factory, store):
    with engine.begin() as conn:
        conn.execute(text(f"DROP INDEX {UNIQUE_INDEX_NAME}"))
    with session_factory() as session, session.begin():
        for name in ("Alice", "Alice again"):
            session.add(Result(registration_number="2024001", student_name=name, class_name="9",
                               batch="B", subject="English", marks=80, grade="A+",
                               exam_date="Exam-4"))

    resp = client.post("/api/maintenance/deduplicate")

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "removed": 1}
    assert store.count() == 1
