import os

os.environ.update(
    {
        'POSTGRES_DB': 'delivery',
        'POSTGRES_USER': 'delivery',
        'POSTGRES_PASSWORD': 'delivery',
        'POSTGRES_PORT': '5432',
        'POSTGRES_HOST': 'localhost',
        'DATABASE_URL': 'sqlite+aiosqlite://',
        'REDIS_HOST': 'localhost',
        'REDIS_PORT': '6379',
        'REDIS_DB': '0',
        'REDIS_CACHE_TTL': '60',
        'LOG_LEVEL': 'DEBUG',
        'LOG_ROTATION': '10 MB',
        'LOG_RETENTION': '7 days',
        'SECRET_KEY': 'test-secret-key',
        'RABBITMQ_DEFAULT_USER': 'guest',
        'RABBITMQ_DEFAULT_PASS': 'guest',
        'RABBITMQ_DEFAULT_VHOST': '',
        'RABBITMQ_DEFAULT_HOST': 'localhost',
        'RABBITMQ_DEFAULT_PORT': '5672',
        'SLOT_STORAGE_BACKEND': 'memory',
        'STORE_TIMEZONE': 'America/New_York',
        'NOTIFY_MAIL_FROM': 'shop@example.com',
        'NOTIFY_MAIL_USERNAME': 'shop',
        'NOTIFY_MAIL_PASSWORD': 'secret',
        'NOTIFY_MAIL_PORT': '587',
        'NOTIFY_MAIL_SERVER': 'smtp.example.com',
    },
)

from datetime import datetime, timedelta  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from sameday_delivery import models  # noqa: E402, F401
from sameday_delivery.core.db import Base  # noqa: E402
from sameday_delivery.core.dependencies import (  # noqa: E402
    get_delivery_service,
)
from sameday_delivery.main import app  # noqa: E402
from sameday_delivery.services.delivery_service import (  # noqa: E402
    DeliveryService,
)
from sameday_delivery.services.memory_store import (  # noqa: E402
    MemorySlotStore,
)
from sameday_delivery.services.settings_service import (  # noqa: E402
    MemorySettingsStore,
    SettingsService,
)
from sameday_delivery.services.sql_store import SqlSlotStore  # noqa: E402
from sameday_delivery.utils.clock import SystemClock  # noqa: E402
from sameday_delivery.utils.enums import StorageBackend  # noqa: E402

STORE_TZ = ZoneInfo('America/New_York')
ZIP = '10001'


class FixedClock(SystemClock):
    """Часы магазина, которые двигает тест."""

    def __init__(self, current: datetime) -> None:
        self.tz = current.tzinfo
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, *args: int) -> None:
        self.current = datetime(*args, tzinfo=self.tz)

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def build_service(
    store,
    clock: FixedClock,
    settings_service: SettingsService,
) -> DeliveryService:
    return DeliveryService(
        store=store,
        settings_service=settings_service,
        clock=clock,
        hold_minutes=20,
        horizon_days=14,
        pregenerate_days=30,
    )


@pytest.fixture
def clock() -> FixedClock:
    """Суббота 1 июня 2024, 08:00 по Нью-Йорку, до cut-off."""
    return FixedClock(datetime(2024, 6, 1, 8, 0, tzinfo=STORE_TZ))


@pytest.fixture
async def sql_engine():
    engine = create_async_engine(
        'sqlite+aiosqlite://',
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sql_engine):
    return async_sessionmaker(sql_engine, expire_on_commit=False)


@pytest.fixture(params=[StorageBackend.MEMORY, StorageBackend.SQL])
def store(request, session_factory):
    """Оба хранилища слотов, тесты прогоняются для каждого."""
    if request.param == StorageBackend.MEMORY:
        return MemorySlotStore()
    return SqlSlotStore(session_factory)


@pytest.fixture
def settings_service() -> SettingsService:
    return SettingsService(MemorySettingsStore())


@pytest.fixture
def service(store, clock, settings_service) -> DeliveryService:
    return build_service(store, clock, settings_service)


@pytest.fixture
def memory_service(clock, settings_service) -> DeliveryService:
    return build_service(MemorySlotStore(), clock, settings_service)


@pytest.fixture
def sql_service(session_factory, clock, settings_service) -> DeliveryService:
    return build_service(
        SqlSlotStore(session_factory),
        clock,
        settings_service,
    )


@pytest.fixture
async def client(service):
    app.dependency_overrides[get_delivery_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url='http://test',
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def sql_client(sql_service):
    app.dependency_overrides[get_delivery_service] = lambda: sql_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url='http://test',
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def memory_client(memory_service):
    app.dependency_overrides[get_delivery_service] = lambda: memory_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url='http://test',
    ) as client:
        yield client
    app.dependency_overrides.clear()
