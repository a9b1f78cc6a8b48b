import os
import tempfile

# Must be set before the package reads its settings
os.environ.setdefault("DATA_PATH", tempfile.mkdtemp(prefix="drivestats-test-"))
os.environ.setdefault("PUSH_ENABLED", "false")
os.environ.setdefault("APNS_BUNDLE_ID", "com.example.drivestats")

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from drivestats_admin import models  # noqa: F401
from drivestats_admin.database import Base
from drivestats_admin.models import DeviceToken, NotificationLog
from drivestats_admin.services.push_provider import FailedDevice, ProviderResponse, SentDevice

TOPIC = "com.example.drivestats"


class FakeProvider:
    """Stands in for ApnsProvider; rejects tokens listed in ``rejections``."""

    topic = TOPIC
    enabled = True

    def __init__(self, rejections=None, error=None):
        self.rejections = dict(rejections or {})
        self.error = error
        self.calls = []
        self.shut_down = False

    async def send(self, notification, tokens):
        self.calls.append((notification, list(tokens)))
        if self.error is not None:
            raise self.error

        response = ProviderResponse()
        for token in tokens:
            if token in self.rejections:
                response.failed.append(FailedDevice(device=token, reason=self.rejections[token], status="400"))
            else:
                response.sent.append(SentDevice(device=token))
        return response

    async def shutdown(self):
        self.shut_down = True


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def add_token(session):
    async def _add(user_id, device_token, is_active=True, **fields):
        record = DeviceToken(
            user_id=user_id,
            device_token=device_token,
            is_active=is_active,
            **fields,
        )
        session.add(record)
        await session.commit()
        return record

    return _add


@pytest.fixture
def fetch_token(session):
    async def _fetch(device_token):
        # Refresh only the rows read here; expiring everything would force lazy loads
        result = await session.execute(
            select(DeviceToken)
            .where(DeviceToken.device_token == device_token)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    return _fetch


@pytest.fixture
def fetch_logs(session):
    async def _fetch():
        result = await session.execute(
            select(NotificationLog)
            .order_by(NotificationLog.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    return _fetch
