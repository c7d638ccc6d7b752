"""Import students and payments from uploaded JSON arrays. Writes are committed per chunk."""

import io
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple, Type

from fastapi import status
from openpyxl import Workbook
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.core.config import settings
from dst_crm.core.exceptions import ServiceError
from dst_crm.core.models import Payment, Student
from dst_crm.db.batch import chunked

from .schemas import ImportFailure, ImportSummary, PaymentImportItem, StudentImportItem

logger = logging.getLogger(__name__)


def parse_upload(content: bytes) -> List[Any]:
    """Decode an uploaded file as a JSON array. Anything else is a validation error."""
    try:
        data = json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ServiceError(
            "Could not read the JSON file. Check the format.", status.HTTP_400_BAD_REQUEST
        ) from e
    if not isinstance(data, list):
        raise ServiceError("The JSON file must contain an array of records", status.HTTP_400_BAD_REQUEST)
    return data


def _reason(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def _validate_rows(
    items: List[Any],
    schema: Type[BaseModel],
    summary: ImportSummary,
) -> List[Tuple[int, BaseModel]]:
    valid: List[Tuple[int, BaseModel]] = []
    for row, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            summary.fail(row, "Record is not a JSON object")
            continue
        try:
            valid.append((row, schema.model_validate(item)))
        except ValidationError as e:
            summary.fail(row, _reason(e))
            logger.debug("Import row %s rejected: %s", row, e)
    return valid


async def _write_chunks(
    db: AsyncSession,
    model,
    valid: List[Tuple[int, BaseModel]],
    summary: ImportSummary,
    extra_columns: Dict[str, Any],
) -> None:
    for chunk in chunked(valid, settings.import_batch_size):
        try:
            for _, item in chunk:
                db.add(model(**item.model_dump(), **extra_columns))
            await db.commit()
            summary.success_count += len(chunk)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Import chunk of %s %s rows failed", len(chunk), model.__tablename__)
            for row, _ in chunk:
                summary.fail(row, "Database write failed")
    summary.failures.sort(key=lambda f: f.row)


async def import_students(db: AsyncSession, items: List[Any]) -> ImportSummary:
    """Rows missing mail, name or surname are counted as errors; the rest are created. No duplicate detection."""
    summary = ImportSummary()
    valid = _validate_rows(items, StudentImportItem, summary)
    await _write_chunks(db, Student, valid, summary, {"imported_at": datetime.now(timezone.utc)})
    logger.info(
        "Student import finished: %s imported, %s errors", summary.success_count, summary.error_count
    )
    return summary


async def import_payments(db: AsyncSession, items: List[Any]) -> ImportSummary:
    """Payments have no required fields. New payments start unmatched."""
    summary = ImportSummary()
    valid = _validate_rows(items, PaymentImportItem, summary)
    await _write_chunks(
        db,
        Payment,
        valid,
        summary,
        {"imported_at": datetime.now(timezone.utc), "match_status": "unmatched", "matched_student_id": None},
    )
    logger.info(
        "Payment import finished: %s imported, %s errors", summary.success_count, summary.error_count
    )
    return summary


def build_error_workbook(items: List[Any], failures: List[ImportFailure]) -> bytes:
    """Excel file with the failed rows as uploaded plus a reason column."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Import errors"
    headers: List[str] = []
    for failure in failures:
        item = items[failure.row - 1]
        if isinstance(item, dict):
            for key in item:
                if key not in headers:
                    headers.append(key)
    ws.append(["row"] + headers + ["reason"])
    for failure in failures:
        item = items[failure.row - 1]
        if isinstance(item, dict):
            values = [_cell(item.get(h, "")) for h in headers]
        else:
            values = [""] * len(headers)
        ws.append([failure.row] + values + [failure.reason])
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def _cell(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return json.dumps(value, ensure_ascii=False)
