from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.api.v1.statistics.calculator import (
    UNKNOWN_REGION,
    academic_month_index,
    expected_for_period,
    final_for_period,
    finance_totals,
    normalize_region,
    tabulate_periods,
    tabulate_tiers,
)
from dst_crm.core.enums import UserRole
from dst_crm.core.models import Payment, Student


@pytest.mark.parametrize(
    "day, index",
    [
        (date(2024, 10, 15), 2),
        (date(2024, 9, 5), 1),
        (date(2025, 8, 31), 12),
        (date(2025, 1, 1), 5),
    ],
)
def test_academic_month_index(day: date, index: int) -> None:
    assert academic_month_index(day) == index


def test_academic_calendar_expected() -> None:
    assert expected_for_period(2000, "month", 7) == 2000
    assert expected_for_period(10000, "half-year", 5) == 10000
    assert expected_for_period(10000, "half-year", 6) == 0
    assert expected_for_period(20000, "year", 1) == 20000
    assert expected_for_period(20000, "year", 2) == 0
    assert expected_for_period(20000, "fortnightly", 1) == 0


def test_final_liability() -> None:
    assert final_for_period(2000, "month") == 20000
    assert final_for_period(10000, "half-year") == 20000
    assert final_for_period(20000, "year") == 20000
    assert final_for_period(20000, "") == 0


@pytest.mark.parametrize(
    "raw, code",
    [
        ("Bratislavský kraj", "BA"),
        ("kosice", "KE"),
        ("Košický", "KE"),
        ("BA", "BA"),
        ("ke kraj", "KE"),
        ("Žilinský kraj", "ZA"),
        ("Banskobystrický kraj", "BB"),
        ("Prešovský", "PO"),
        ("", UNKNOWN_REGION),
        (None, UNKNOWN_REGION),
        ("Vienna", UNKNOWN_REGION),
    ],
)
def test_normalize_region(raw, code) -> None:
    assert normalize_region(raw) == code


def test_finance_totals_subset_counts_only_matched_payments() -> None:
    a = SimpleNamespace(id=uuid4(), amount="20", period="month")
    b = SimpleNamespace(id=uuid4(), amount="200", period="year")
    payments = [
        SimpleNamespace(matched_student_id=a.id, amount="20"),
        SimpleNamespace(matched_student_id=None, amount="15"),
        SimpleNamespace(matched_student_id=b.id, amount="100"),
    ]

    everything = finance_totals([a, b], payments, month_index=1)
    assert everything.paid == 13500
    assert everything.expected == 2000 + 20000
    assert everything.final == 20000 + 20000
    assert everything.difference == 13500 - 22000

    only_a = finance_totals([a], payments, month_index=2, subset=True)
    assert only_a.paid == 2000
    assert only_a.expected == 2000


def test_tabulate_periods_and_tiers() -> None:
    students = [
        SimpleNamespace(amount="20", period="month"),
        SimpleNamespace(amount="100", period="half-year"),
        SimpleNamespace(amount="300", period="year"),
        SimpleNamespace(amount="25", period="month"),
        SimpleNamespace(amount="50", period="sometimes"),
    ]

    periods = tabulate_periods(students)
    assert periods == {"year": 1, "half-year": 1, "month": 2, "unknown": 1}

    tiers = tabulate_tiers(students, [20000, 30000])
    assert tiers.tiers == {20000: 2, 30000: 1}
    assert tiers.other == {25000: 1}
    assert tiers.excluded == 1


async def _seed(db_session: AsyncSession) -> Student:
    jana = Student(name="Jana", surname="K", mail="jana@dst.sk", region="Bratislavský kraj", school="GJH", period="month", amount=Decimal("20"))
    fero = Student(name="Fero", surname="M", mail="fero@dst.sk", region="KE", school="", period="year", amount=Decimal("200"))
    db_session.add_all([jana, fero])
    await db_session.flush()
    db_session.add_all(
        [
            Payment(vs="1", amount=Decimal("20"), matched_student_id=jana.id, match_status="matched"),
            Payment(vs="2", amount=Decimal("40"), match_status="unmatched"),
            Payment(vs="3", amount=Decimal("30"), match_status="ambiguous"),
        ]
    )
    await db_session.commit()
    return jana


@pytest.mark.asyncio
async def test_overview_endpoint(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.TEAM)
    await _seed(db_session)

    response = await client.get("/api/v1/statistics/overview?as_of=2024-10-15", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_students"] == 2
    assert data["total_payments"] == 3
    assert Decimal(data["total_paid"]) == Decimal("90")
    assert Decimal(data["average_payment"]) == Decimal("30")
    assert (data["matched_payments"], data["unmatched_payments"], data["ambiguous_payments"]) == (1, 1, 1)


@pytest.mark.asyncio
async def test_finance_endpoint(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    await _seed(db_session)

    september = await client.get("/api/v1/statistics/finance?as_of=2024-09-05", headers=headers)
    data = september.json()
    assert data["academic_month_index"] == 1
    assert Decimal(data["paid"]) == Decimal("90")
    assert Decimal(data["expected"]) == Decimal("220")
    assert Decimal(data["final"]) == Decimal("400")
    assert Decimal(data["difference"]) == Decimal("-130")

    regional = await client.get(
        "/api/v1/statistics/finance", params={"region": "bratislava", "as_of": "2024-10-15"}, headers=headers
    )
    data = regional.json()
    assert data["region"] == "BA"
    assert Decimal(data["paid"]) == Decimal("20")
    assert Decimal(data["expected"]) == Decimal("20")


@pytest.mark.asyncio
async def test_finance_breakdown_by_school(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    await _seed(db_session)

    response = await client.get(
        "/api/v1/statistics/finance/breakdown?group_by=school&as_of=2024-09-05", headers=headers
    )
    assert response.status_code == 200
    buckets = {b["key"]: b for b in response.json()["buckets"]}
    assert set(buckets) == {"GJH", UNKNOWN_REGION}
    assert buckets["GJH"]["students"] == 1
    assert Decimal(buckets[UNKNOWN_REGION]["expected"]) == Decimal("200")


@pytest.mark.asyncio
async def test_student_stats_endpoint(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    await _seed(db_session)

    response = await client.get("/api/v1/statistics/students", headers=headers)
    data = response.json()
    assert data["periods"]["month"] == 1
    assert data["periods"]["year"] == 1
    tiers = {Decimal(t["liability"]): t["count"] for t in data["tiers"]}
    assert tiers == {Decimal("200"): 2, Decimal("300"): 0}
    assert data["other"] == []


@pytest.mark.asyncio
async def test_student_stats_ignore_as_of(client: AsyncClient, db_session: AsyncSession, auth_headers) -> None:
    headers = await auth_headers(UserRole.ADMIN)
    await _seed(db_session)

    september = await client.get("/api/v1/statistics/students?as_of=2024-09-05", headers=headers)
    march = await client.get("/api/v1/statistics/students?as_of=2025-03-01", headers=headers)
    assert september.status_code == 200
    assert september.json() == march.json()
