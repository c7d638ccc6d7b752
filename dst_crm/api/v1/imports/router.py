"""Import router: students and payments from JSON files."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.rbac import require_admin
from dst_crm.core.exceptions import ServiceError
from dst_crm.db.session import get_db

from .schemas import ImportSummary
from . import service

router = APIRouter(prefix="/api/v1/imports", tags=["imports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _summary_response(summary: ImportSummary, items: list, report: Optional[str], filename: str):
    if report == "xlsx" and summary.failures:
        return Response(
            content=service.build_error_workbook(items, summary.failures),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
    return summary


@router.post(
    "/students",
    response_model=ImportSummary,
    dependencies=[Depends(require_admin)],
)
async def import_students(
    file: UploadFile = File(
        ...,
        description="JSON array of objects: name, surname, region, school, mail, telephoneNumber, typeOfPayment, period, amount, iban, note, vs",
    ),
    report: Optional[str] = Query(None, description="xlsx: return failed rows as an Excel file"),
    db: AsyncSession = Depends(get_db),
):
    """
    Valid rows are created; rows missing mail, name or surname are counted as errors.
    Re-importing the same file creates duplicates.
    """
    try:
        items = service.parse_upload(await file.read())
        summary = await service.import_students(db, items)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _summary_response(summary, items, report, "students_import_errors.xlsx")


@router.post(
    "/payments",
    response_model=ImportSummary,
    dependencies=[Depends(require_admin)],
)
async def import_payments(
    file: UploadFile = File(
        ...,
        description="JSON array of objects: date, amount, senderIban, senderName, vs, message",
    ),
    report: Optional[str] = Query(None, description="xlsx: return failed rows as an Excel file"),
    db: AsyncSession = Depends(get_db),
):
    try:
        items = service.parse_upload(await file.read())
        summary = await service.import_payments(db, items)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _summary_response(summary, items, report, "payments_import_errors.xlsx")
