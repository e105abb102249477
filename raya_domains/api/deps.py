from dataclasses import dataclass
from functools import lru_cache
from typing import AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from raya_domains.cache import Cache, get_cache
from raya_domains.config import PlatformConfig, settings
from raya_domains.db.session import SessionLocal
from raya_domains.services.custom_domain import CustomDomainService
from raya_domains.services.dns_resolver import DNSResolver, DnsPythonResolver

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    tenant_id: int
    role: str
    is_superuser: bool = False


async def get_db() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as db:
        yield db


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:
    """Decode the platform-issued access token; only its claims are trusted here."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        tenant_id = int(payload["tenant_id"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(
        user_id=str(payload.get("sub", "")),
        tenant_id=tenant_id,
        role=str(payload.get("role", "")),
        is_superuser=bool(payload.get("is_superuser", False)),
    )


@lru_cache
def get_dns_resolver() -> DNSResolver:
    return DnsPythonResolver(settings.dns_nameservers, timeout=settings.DNS_LOOKUP_TIMEOUT)


def get_domain_cache() -> Cache:
    return get_cache()


def get_platform_config() -> PlatformConfig:
    return PlatformConfig.from_settings(settings)


def get_domain_service(
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_domain_cache),
    dns: DNSResolver = Depends(get_dns_resolver),
    platform: PlatformConfig = Depends(get_platform_config),
) -> CustomDomainService:
    return CustomDomainService(
        db,
        cache=cache,
        dns=dns,
        platform=platform,
        cache_ttl=settings.DOMAIN_CACHE_TTL,
        dns_timeout=settings.DNS_LOOKUP_TIMEOUT,
    )
