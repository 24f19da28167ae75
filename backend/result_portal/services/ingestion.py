"""
Ingestion Service - end-to-end processing of an uploaded result workbook.

Pipeline for one upload:
1. Decode the file into sheets
2. Classify each sheet name into (class, batch)
3. Normalize each sheet's rows into result records
4. Upsert all records in a single transaction

Sheets are processed independently: a sheet with an unrecognized name or
no usable rows does not stop the others. The upload only fails when the
file cannot be decoded or when no sheet yields a single record.
"""

import time
from pathlib import Path
from typing import List, Optional, Union

from result_portal.exceptions import NoValidDataError, NotFoundError, ValidationError
from result_portal.logging_config import get_logger, log_with_context
from result_portal.schemas import IngestionSummary, ResultRecord
from result_portal.services.classifier import classify_sheet, Matched
from result_portal.services.normalizer import normalize_sheet
from result_portal.services.result_store import ResultStore
from result_portal.services.workbook import decode_workbook

logger = get_logger("ingest")


def ingest_file(path: Union[str, Path], store: ResultStore,
                filename: Optional[str] = None) -> IngestionSummary:
    """
    Ingest a workbook from disk into the result store.

    The caller owns the file: it is read but never moved or removed here.

    Args:
        path: Location of the uploaded workbook
        store: Result store receiving the records
        filename: Original upload name, for log entries

    Returns:
        IngestionSummary with accepted row count and processed sheet count

    Raises:
        DecodeError: file is not a readable workbook
        NoValidDataError: no row in any sheet passed normalization
        StoreError: the batch could not be written
    """
    start_time = time.time()
    sheets = decode_workbook(path, filename=filename)

    records: List[ResultRecord] = []
    sheets_processed = 0

    for sheet in sheets:
        classification = classify_sheet(sheet.name)
        class_name, batch = classification.tags
        if not isinstance(classification, Matched):
            log_with_context(logger, "WARNING",
                "Sheet name '{}' has no class/batch tag, using Unknown".format(sheet.name),
                context={"sheet": sheet.name})

        normalized = normalize_sheet(sheet, class_name, batch)
        if normalized.data_rows > 0:
            sheets_processed += 1
        records.extend(normalized.records)

        log_with_context(logger, "DEBUG",
            "Sheet '{}': {} accepted, {} rejected".format(
                sheet.name, len(normalized.records), normalized.rejected),
            context={"sheet": sheet.name, "class": class_name, "batch": batch},
            extra_data={"data_rows": normalized.data_rows})

    if not records:
        log_with_context(logger, "WARNING", "No valid rows found in upload",
                         context={"filename": filename},
                         extra_data={"sheets": len(sheets)})
        raise NoValidDataError()

    store.upsert_batch(records)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Ingestion complete: {} record(s) from {} sheet(s)".format(len(records), sheets_processed),
        context={"filename": filename},
        extra_data={"duration_ms": round(duration_ms, 2), "sheets_total": len(sheets)})

    return IngestionSummary(count=len(records), sheets_processed=sheets_processed)


def search_results(store: ResultStore, registration_number: Optional[str],
                   class_name: Optional[str], batch: Optional[str]) -> List[ResultRecord]:
    """
    Look up one student's results for a class and batch.

    Raises:
        ValidationError: any of the three fields is missing or blank
        NotFoundError: nothing matches
    """
    fields = {
        "reg": registration_number,
        "className": class_name,
        "batch": batch,
    }
    missing = [name for name, value in fields.items() if not value or not value.strip()]
    if missing:
        raise ValidationError("Missing required parameters: {}".format(", ".join(missing)))

    results = store.query(registration_number.strip(), class_name.strip(), batch.strip())
    if not results:
        raise NotFoundError()
    return results


def clear_results(store: ResultStore) -> int:
    """Remove every published result."""
    return store.clear_all()
