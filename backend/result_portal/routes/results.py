"""
Results API routes - search, upload, and maintenance of published results.

Endpoints:
- GET  /api/results                   student lookup by reg, class and batch
- POST /api/upload                    ingest an Excel/CSV workbook
- POST /api/clear                     delete every result
- POST /api/maintenance/deduplicate   repair legacy duplicate rows
"""

import os
import tempfile
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import BaseModel

from result_portal.database import SessionLocal
from result_portal.exceptions import ResultPortalError, ValidationError
from result_portal.schemas import ResultRecord
from result_portal.services.ingestion import clear_results, ingest_file, search_results
from result_portal.services.result_store import ResultStore
from result_portal.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))


# ── Pydantic schemas ─────────────────────────────────────────

class UploadResponse(BaseModel):
    """Response for a successful workbook upload."""
    success: bool = True
    count: int
    sheets: int


class ClearResponse(BaseModel):
    success: bool = True
    deleted: int


class DeduplicateResponse(BaseModel):
    success: bool = True
    removed: int


def get_store() -> ResultStore:
    """FastAPI dependency providing the result store."""
    return ResultStore(SessionLocal)


def _save_upload(file: UploadFile) -> str:
    """Write the upload to a temporary file under UPLOAD_DIR and return its path."""
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    suffix = os.path.splitext(file.filename or "")[1]
    limit = MAX_UPLOAD_SIZE_MB * 1024 * 1024

    fd, path = tempfile.mkstemp(dir=UPLOAD_DIR, suffix=suffix)
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while True:
                chunk = file.file.read(1024 * 1024)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    raise ValidationError(f"File size exceeds {MAX_UPLOAD_SIZE_MB}MB limit")
                out.write(chunk)
    except Exception:
        os.remove(path)
        raise
    return path


@router.get("/api/results", response_model=List[ResultRecord])
def get_results(
    reg: Optional[str] = Query(None, description="Registration number"),
    className: Optional[str] = Query(None, description="Class tag, e.g. 9"),
    batch: Optional[str] = Query(None, description="Batch letter A-D"),
    store: ResultStore = Depends(get_store)
):
    """Return every result row for one student in one class and batch."""
    results = search_results(store, reg, className, batch)
    log_with_context(logger, "INFO", "Found {} result(s)".format(len(results)),
                     context={"registration_number": reg, "class": className, "batch": batch})
    return results


@router.post("/api/upload", response_model=UploadResponse)
def upload_results(
    file: Optional[UploadFile] = File(None),
    store: ResultStore = Depends(get_store)
):
    """
    Ingest an uploaded result workbook.

    The upload is spooled to UPLOAD_DIR, processed, and removed again
    whether processing succeeds or fails.
    """
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")

    path = _save_upload(file)
    try:
        summary = ingest_file(path, store, filename=file.filename)
    except ResultPortalError:
        raise
    except Exception as e:
        log_with_context(logger, "ERROR", "Upload processing failed: {}".format(e),
                         context={"filename": file.filename})
        raise ResultPortalError(f"Failed to process file: {e}") from e
    finally:
        if os.path.exists(path):
            os.remove(path)

    return UploadResponse(count=summary.count, sheets=summary.sheets_processed)


@router.post("/api/clear", response_model=ClearResponse)
def clear_all_results(store: ResultStore = Depends(get_store)):
    """Delete every published result."""
    deleted = clear_results(store)
    return ClearResponse(deleted=deleted)


@router.post("/api/maintenance/deduplicate", response_model=DeduplicateResponse)
def deduplicate_results(store: ResultStore = Depends(get_store)):
    """Remove legacy duplicate rows and enforce the natural-key index."""
    removed = store.deduplicate()
    return DeduplicateResponse(removed=removed)
