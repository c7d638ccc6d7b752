from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.core.enums import UserRole
from dst_crm.core.models import Payment, Student


async def _seed(db_session: AsyncSession):
    monthly = Student(name="Jana", surname="Adamová", mail="jana@dst.sk", vs="1", period="month", amount=Decimal("20"))
    half = Student(name="Fero", surname="Bielik", mail="fero@dst.sk", vs="2", period="half-year", amount=Decimal("100"))
    yearly = Student(name="Eva", surname="Cibulová", mail="", vs="3", period="year", amount=Decimal("200"))
    db_session.add_all([monthly, half, yearly])
    await db_session.flush()
    db_session.add_all(
        [
            Payment(vs="1", amount=Decimal("60"), matched_student_id=monthly.id, match_status="matched"),
            Payment(vs="2", amount=Decimal("100"), matched_student_id=half.id, match_status="matched"),
            # Paid under the right VS but never paired
            Payment(vs="3", amount=Decimal("200")),
        ]
    )
    await db_session.commit()
    return monthly, half, yearly


@pytest.mark.asyncio
async def test_installments_report(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.TEAM)
    await _seed(db_session)

    response = await client.get("/api/v1/reconciliation/installments?index=3", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["index"] == 3
    rows = {r["name"]: r for r in data["rows"]}
    assert [r["surname"] for r in data["rows"]] == ["Adamová", "Bielik", "Cibulová"]

    assert Decimal(rows["Jana"]["expected"]) == Decimal("60")
    assert rows["Jana"]["status"] == "paid"
    assert Decimal(rows["Fero"]["expected"]) == Decimal("100")
    assert rows["Fero"]["status"] == "paid"
    assert Decimal(rows["Eva"]["paid"]) == Decimal("0")
    assert rows["Eva"]["status"] == "partial"
    assert Decimal(rows["Eva"]["difference"]) == Decimal("-200")


@pytest.mark.asyncio
async def test_installments_by_vs_and_filter(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    await _seed(db_session)

    response = await client.get(
        "/api/v1/reconciliation/installments",
        params={"index": 8, "basis": "vs", "status": "partial"},
        headers=headers,
    )
    rows = response.json()["rows"]
    # index 8: monthly owes 160, half-year owes 200; the yearly VS payment now counts
    assert [r["name"] for r in rows] == ["Jana", "Fero"]


@pytest.mark.asyncio
async def test_installments_index_is_clamped(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    await _seed(db_session)

    response = await client.get("/api/v1/reconciliation/installments?index=42", headers=headers)
    assert response.json()["index"] == 10


@pytest.mark.asyncio
async def test_recipients_skip_empty_mail(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    await _seed(db_session)

    response = await client.get(
        "/api/v1/reconciliation/installments/recipients", params={"status": "partial"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json() == {"recipients": [], "count": 0}

    response = await client.get("/api/v1/reconciliation/installments/recipients", headers=headers)
    assert response.json()["recipients"] == ["jana@dst.sk", "fero@dst.sk"]


@pytest.mark.asyncio
async def test_amount_override(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    monthly, _, _ = await _seed(db_session)

    response = await client.put(
        f"/api/v1/reconciliation/students/{monthly.id}/amount", json={"amount": "25,5"}, headers=headers
    )
    assert response.status_code == 200
    assert Decimal(response.json()["amount"]) == Decimal("25.50")

    team = await auth_headers(UserRole.TEAM)
    forbidden = await client.put(
        f"/api/v1/reconciliation/students/{monthly.id}/amount", json={"amount": 1}, headers=team
    )
    assert forbidden.status_code == 403
