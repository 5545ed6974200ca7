from __future__ import annotations

import os

# must be set before mealcoupons.core.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

from datetime import date, datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from mealcoupons.core.db import Base, get_db  # noqa: E402
from mealcoupons.core.security import create_access_token, hash_password  # noqa: E402
from mealcoupons.main import app  # noqa: E402
from mealcoupons.models.event import Event  # noqa: E402
from mealcoupons.models.user import User  # noqa: E402

FAR_FUTURE = datetime(2099, 1, 1, tzinfo=timezone.utc)

# hash once and share it across users
PASSWORD = "s3cret-pass"
_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def engine(tmp_path):
    # file-backed so concurrent sessions get separate connections and real locking
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'coupons.db'}",
        connect_args={"timeout": 30},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make(role: str, username: str | None = None, email: str | None = None) -> User:
        u = User(
            username=username or f"{role}-{os.urandom(4).hex()}",
            password_hash=_PASSWORD_HASH,
            role=role,
            email=email,
        )
        db.add(u)
        await db.commit()
        await db.refresh(u)
        return u

    return _make


@pytest.fixture
def make_event(db):
    async def _make(
        *,
        title: str = "Tech Fest",
        expiry: datetime = FAR_FUTURE,
        event_date: date = date(2026, 10, 20),
    ) -> Event:
        e = Event(
            title=title,
            venue="Main Hall",
            event_date=event_date,
            coupon_expiry_time=expiry,
        )
        db.add(e)
        await db.commit()
        await db.refresh(e)
        return e

    return _make


@pytest.fixture
async def admin(make_user):
    return await make_user("admin", username="admin")


@pytest.fixture
async def vendor(make_user):
    return await make_user("vendor", username="vendor", email="vendor@example.com")


@pytest.fixture
async def volunteer(make_user):
    return await make_user("volunteer", username="volunteer")


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id=user.id, role=user.role)}"}

    return _headers


@pytest.fixture
def password() -> str:
    return PASSWORD
