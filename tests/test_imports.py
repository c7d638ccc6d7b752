import io
import json
from decimal import Decimal

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.api.v1.imports.schemas import PaymentImportItem, StudentImportItem
from dst_crm.core.config import settings
from dst_crm.core.enums import UserRole
from dst_crm.core.models import Payment, Student


def _upload(records) -> dict:
    return {"file": ("data.json", json.dumps(records).encode("utf-8"), "application/json")}


STUDENTS = [
    {
        "name": "Jana",
        "surname": "Kováčová",
        "region": "Bratislavský kraj",
        "school": "Gymnázium Jura Hronca",
        "mail": "Jana@DST.sk",
        "telephoneNumber": "+421900000000",
        "typeOfPayment": "bank transfer",
        "period": "month",
        "amount": 20,
        "iban": "SK3112000000198742637541",
        "note": "",
        "vs": 123456,
    },
    {"name": "Peter", "surname": "Novák", "period": "year", "amount": "200"},
]


@pytest.mark.asyncio
async def test_student_import_counts_missing_mail_as_error(
    client: AsyncClient, db_session: AsyncSession, auth_headers
) -> None:
    headers = await auth_headers(UserRole.ADMIN)

    response = await client.post("/api/v1/imports/students", files=_upload(STUDENTS), headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["success_count"] == 1
    assert data["error_count"] == 1
    assert data["failures"][0]["row"] == 2

    student = (await db_session.execute(select(Student))).scalar_one()
    assert student.mail == "jana@dst.sk"
    assert student.vs == "123456"
    assert student.telephone_number == "+421900000000"
    assert student.imported_at is not None


@pytest.mark.asyncio
async def test_payment_import_starts_unmatched(
    client: AsyncClient, db_session: AsyncSession, auth_headers
) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    records = [
        {"date": "2024-10-15", "amount": "20,50", "senderIban": "SK00", "senderName": "Kováč", "vs": "0042", "message": "clenske"},
        {"amount": 10},
        "not an object",
    ]

    response = await client.post("/api/v1/imports/payments", files=_upload(records), headers=headers)
    assert response.status_code == 200
    assert response.json()["success_count"] == 2
    assert response.json()["error_count"] == 1

    rows = (await db_session.execute(select(Payment.vs, Payment.amount, Payment.match_status))).all()
    assert {r.match_status for r in rows} == {"unmatched"}
    assert ("0042", Decimal("20.50")) in {(r.vs, Decimal(r.amount).quantize(Decimal("0.01"))) for r in rows}


@pytest.mark.asyncio
async def test_import_rejects_non_array(client: AsyncClient, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    files = {"file": ("data.json", b'{"name": "x"}', "application/json")}

    response = await client.post("/api/v1/imports/students", files=files, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_import_rejects_broken_json(client: AsyncClient, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    files = {"file": ("data.json", b"[{", "application/json")}

    response = await client.post("/api/v1/imports/payments", files=files, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_import_error_report_as_xlsx(client: AsyncClient, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)

    response = await client.post(
        "/api/v1/imports/students?report=xlsx", files=_upload(STUDENTS), headers=headers
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/vnd.openxmlformats")

    sheet = load_workbook(io.BytesIO(response.content)).active
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0][0] == "row"
    assert rows[0][-1] == "reason"
    assert rows[1][0] == 2
    assert "Peter" in rows[1]


@pytest.mark.asyncio
async def test_import_requires_admin(client: AsyncClient, auth_headers) -> None:
    headers = await auth_headers(UserRole.TEAM)
    response = await client.post("/api/v1/imports/students", files=_upload(STUDENTS), headers=headers)
    assert response.status_code == 403


def test_student_row_canonicalization() -> None:
    item = StudentImportItem.model_validate(
        {"name": " Jana ", "surname": "K", "mail": " X@Y.SK ", "amount": "1 234,5", "vs": 7.0, "note": None}
    )
    assert item.name == "Jana"
    assert item.mail == "x@y.sk"
    assert item.amount == Decimal("1234.50")
    assert item.vs == "7"
    assert item.note == ""


def test_payment_row_dates() -> None:
    assert str(PaymentImportItem.model_validate({"date": "15.10.2024"}).date) == "2024-10-15"
    assert str(PaymentImportItem.model_validate({"date": "2024-10-15T08:00:00Z"}).date) == "2024-10-15"
    assert PaymentImportItem.model_validate({"date": "yesterday"}).date is None
    assert PaymentImportItem.model_validate({"amount": "abc"}).amount == Decimal("0.00")


def test_student_row_respects_column_limits() -> None:
    base = {"name": "Jana", "surname": "K", "mail": "jana@dst.sk"}
    with pytest.raises(ValidationError):
        StudentImportItem.model_validate({**base, "vs": "0" * 25})
    with pytest.raises(ValidationError):
        StudentImportItem.model_validate({**base, "school": "S" * 400})
    with pytest.raises(ValidationError):
        StudentImportItem.model_validate({**base, "amount": "12345678901"})
    with pytest.raises(ValidationError):
        StudentImportItem.model_validate({**base, "amount": "1e40"})
    assert StudentImportItem.model_validate({**base, "amount": "9999999999.99"}).amount == Decimal("9999999999.99")


def test_payment_row_respects_column_limits() -> None:
    with pytest.raises(ValidationError):
        PaymentImportItem.model_validate({"vs": "1" * 21})
    with pytest.raises(ValidationError):
        PaymentImportItem.model_validate({"senderIban": "SK" * 30})
    with pytest.raises(ValidationError):
        PaymentImportItem.model_validate({"amount": 10 ** 11})


@pytest.mark.asyncio
async def test_oversized_row_fails_alone(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    records = [
        {"name": "Jana", "surname": "K", "mail": "jana@dst.sk", "vs": "1"},
        {"name": "Peter", "surname": "N", "mail": "peter@dst.sk", "vs": "0" * 25},
        {"name": "Eva", "surname": "C", "mail": "eva@dst.sk", "vs": "3"},
    ]

    response = await client.post("/api/v1/imports/students", files=_upload(records), headers=headers)
    data = response.json()
    assert data["success_count"] == 2
    assert [f["row"] for f in data["failures"]] == [2]
    assert "vs" in data["failures"][0]["reason"]


@pytest.mark.asyncio
async def test_failed_chunk_is_rolled_back_and_import_continues(
    client: AsyncClient, db_session: AsyncSession, auth_headers, monkeypatch
) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    monkeypatch.setattr(settings, "import_batch_size", 1)
    original_commit = db_session.commit
    commits = {"count": 0}

    async def commit_failing_second_chunk() -> None:
        commits["count"] += 1
        if commits["count"] == 2:
            raise SQLAlchemyError("write failed")
        await original_commit()

    monkeypatch.setattr(db_session, "commit", commit_failing_second_chunk)
    records = [{"vs": "1", "amount": 10}, {"vs": "2", "amount": 20}, {"vs": "3", "amount": 30}]

    response = await client.post("/api/v1/imports/payments", files=_upload(records), headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["success_count"] == 2
    assert data["error_count"] == 1
    assert data["failures"] == [{"row": 2, "reason": "Database write failed"}]

    stored = (await db_session.execute(select(Payment.vs).order_by(Payment.vs))).scalars().all()
    assert stored == ["1", "3"]
