import os
from typing import AsyncGenerator, Callable, Dict, List

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_EMAIL", "admin@dst.sk")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dst_crm.auth.models import User
from dst_crm.auth.security import create_access_token, hash_password
from dst_crm.core.enums import UserRole
from dst_crm.core.exceptions import MailTransportError
from dst_crm.core.mailer import get_mailer
from dst_crm.db.session import Base, get_db
from dst_crm.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeMailer:
    """Records sends instead of talking to SMTP. Addresses in fail_for raise."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, str]] = []
        self.fail_for: set = set()

    async def send(self, recipient: str, subject: str, text: str) -> str:
        if recipient in self.fail_for:
            raise MailTransportError(f"550 mailbox unavailable: {recipient}")
        self.sent.append({"recipient": recipient, "subject": subject, "text": text})
        return f"<{len(self.sent)}@test>"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; the FastAPI get_db dependency yields this same session."""
    # StaticPool keeps one connection, so the in-memory database lives as long as the engine
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
def mailer() -> FakeMailer:
    fake = FakeMailer()
    app.dependency_overrides[get_mailer] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def auth_headers(db_session: AsyncSession) -> Callable:
    """Create a user with the given role and return bearer headers for it."""

    async def _make(role: UserRole = UserRole.ADMIN, email: str = None) -> Dict[str, str]:
        email = email or f"{role.value}@dst.sk"
        user = User(
            email=email,
            display_name=role.value.title(),
            password_hash=hash_password("password123"),
            role=role.value,
        )
        db_session.add(user)
        await db_session.commit()
        token = create_access_token(user_id=user.id, email=email, role=role.value)
        return {"Authorization": f"Bearer {token}"}

    return _make
