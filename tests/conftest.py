import os
import sys
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import Mock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add the app directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app import models  # noqa: E402,F401
from app.api.deps.scheduling import get_booking_lock, get_notifier, get_shop_now  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.locks import InMemorySlotLock  # noqa: E402
from app.main import app  # noqa: E402
from app.models.appointment import Appointment  # noqa: E402
from app.models.service import Service  # noqa: E402

# In-memory SQLite by default; point at Postgres with TEST_DATABASE_URL
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Monday; the default settings close Sundays only
TEST_DAY = date(2025, 3, 10)
TEST_NOW = datetime(2025, 3, 10, 8, 0)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 300}


@pytest.fixture
async def db():
    """Create a fresh database session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL, echo=False, **_engine_kwargs(TEST_DATABASE_URL)
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)  # Clean slate
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def session_factory(tmp_path):
    """Independent sessions on a file-backed SQLite database, one connection each."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def notifier():
    """Stand-in for the Celery notifier; records calls instead of queueing tasks."""
    return Mock(spec=["chair_free", "no_show"])


@pytest.fixture
def slot_lock():
    return InMemorySlotLock()


@pytest.fixture
def shop_now():
    """Mutable clock handed to the API; tests may reassign ``shop_now['value']``."""
    return {"value": TEST_NOW}


@pytest.fixture(autouse=True)
def override_dependencies(db: AsyncSession, notifier, slot_lock, shop_now):
    """Override database, clock, lock and notifier dependencies."""

    async def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_booking_lock] = lambda: slot_lock
    app.dependency_overrides[get_shop_now] = lambda: shop_now["value"]
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as async_client:
        yield async_client


@pytest.fixture
async def services(db: AsyncSession) -> dict[str, Service]:
    """A small catalog with different durations."""
    catalog = {
        "haircut": Service(
            id="svc-haircut", name="Haircut", duration_minutes=30, price=Decimal("35.00")
        ),
        "beard": Service(
            id="svc-beard", name="Beard", duration_minutes=45, price=Decimal("25.00")
        ),
        "combo": Service(
            id="svc-combo", name="Combo", duration_minutes=60, price=Decimal("65.00")
        ),
        "brow": Service(
            id="svc-brow", name="Eyebrow", duration_minutes=15, price=Decimal("10.00")
        ),
    }
    db.add_all(catalog.values())
    await db.commit()
    return catalog


@pytest.fixture
def make_appointment(db: AsyncSession):
    """Insert an appointment row directly, bypassing booking validation."""

    async def _make(
        time: str,
        service_id: str = "svc-haircut",
        day: date = TEST_DAY,
        status: str = "confirmed",
        client_id: str = None,
        client_name: str = "Walk-in",
        client_phone: str = None,
        queue_sequence: int = 0,
    ) -> Appointment:
        appointment = Appointment(
            client_id=client_id,
            client_name=client_name,
            client_phone=client_phone,
            service_id=service_id,
            date=day,
            time=time,
            status=status,
            queue_sequence=queue_sequence,
            price=Decimal("0"),
        )
        db.add(appointment)
        await db.commit()
        await db.refresh(appointment)
        return appointment

    return _make
