"""Pytest configuration and fixtures: in-memory database, fake DNS, fake cache."""
import os

# Must be set before raya_domains.config is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")

from datetime import timedelta
from typing import Dict, List, Optional, Union

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from raya_domains.config import PlatformConfig, settings
from raya_domains.db.base_class import Base
from raya_domains.db.session import build_engine
from raya_domains.exceptions import NoRecordsError
from raya_domains.models.tenant import Tenant
from raya_domains.services.custom_domain import CustomDomainService

# --- Constants ---
PLATFORM_DOMAIN = "raya.app"
SERVER_IP = "203.0.113.10"
CNAME_TARGET = "proxy.raya.app"

TENANT_A = 1
TENANT_B = 2

Answer = Union[List[str], Exception]


# --- Fakes ---

class FakeDNSResolver:
    """Answers from in-memory tables; missing names raise NoRecordsError."""

    def __init__(self):
        self.txt: Dict[str, Answer] = {}
        self.a: Dict[str, Answer] = {}
        self.cname: Dict[str, Answer] = {}
        self.calls: List[tuple] = []

    def _answer(self, table: Dict[str, Answer], rdtype: str, name: str) -> List[str]:
        self.calls.append((rdtype, name))
        answer = table.get(name)
        if answer is None:
            raise NoRecordsError(f"No {rdtype} record for {name}")
        if isinstance(answer, Exception):
            raise answer
        return list(answer)

    async def resolve_txt(self, name: str, timeout: Optional[float] = None) -> List[str]:
        return self._answer(self.txt, "TXT", name)

    async def resolve_a(self, name: str, timeout: Optional[float] = None) -> List[str]:
        return self._answer(self.a, "A", name)

    async def resolve_cname(self, name: str, timeout: Optional[float] = None) -> List[str]:
        return self._answer(self.cname, "CNAME", name)


class FakeCache:
    def __init__(self):
        self.store: Dict[str, str] = {}
        self.gets = 0
        self.sets = 0
        self.deletes = 0

    async def get(self, key: str) -> Optional[str]:
        self.gets += 1
        return self.store.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        self.sets += 1
        self.store[key] = value

    async def delete(self, key: str) -> None:
        self.deletes += 1
        self.store.pop(key, None)


# --- Fixtures ---

@pytest.fixture
def platform() -> PlatformConfig:
    return PlatformConfig(
        platform_domain=PLATFORM_DOMAIN,
        server_ip=SERVER_IP,
        cname_target=CNAME_TARGET,
    )


@pytest.fixture
def fake_dns() -> FakeDNSResolver:
    return FakeDNSResolver()


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
async def session_factory():
    """
    Fresh in-memory schema per test, seeded with two tenants.
    StaticPool keeps every session on the same SQLite connection.
    """
    import raya_domains.models  # noqa: F401

    engine = build_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as db:
        db.add_all([
            Tenant(id=TENANT_A, tenant_code="acme", name="Acme"),
            Tenant(id=TENANT_B, tenant_code="globex", name="Globex"),
        ])
        await db.commit()

    yield factory

    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(db, fake_cache, fake_dns, platform) -> CustomDomainService:
    return CustomDomainService(db, cache=fake_cache, dns=fake_dns, platform=platform, dns_timeout=1.0)


@pytest.fixture
async def client(session_factory, fake_cache, fake_dns, platform):
    """
    Async HTTP client against the app with:
      - get_db bound to the in-memory database
      - DNS, cache and platform dependencies replaced by fakes
    Requests go to "localhost" so host resolution short-circuits as platform traffic.
    """
    from raya_domains.api import deps
    from raya_domains.main import app as fastapi_app

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[deps.get_db] = _override_get_db
    fastapi_app.dependency_overrides[deps.get_dns_resolver] = lambda: fake_dns
    fastapi_app.dependency_overrides[deps.get_domain_cache] = lambda: fake_cache
    fastapi_app.dependency_overrides[deps.get_platform_config] = lambda: platform

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://localhost") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


# --- Helpers ---

def auth_headers(tenant_id: int = TENANT_A, role: str = "owner") -> dict:
    """Bearer header carrying the claims the API trusts."""
    token = jwt.encode(
        {"sub": f"user-{tenant_id}-{role}", "tenant_id": tenant_id, "role": role},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    return {"Authorization": f"Bearer {token}"}


def txt_name(domain: str) -> str:
    return f"_raya-verification.{domain}"


async def expire_window(db: AsyncSession, record) -> None:
    """Move a record's verification deadline into the past."""
    record.verification_expires_at = record.verification_expires_at - timedelta(days=30)
    db.add(record)
    await db.commit()
