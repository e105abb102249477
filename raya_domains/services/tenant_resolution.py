"""Cached domain → tenant lookups for the request hot path."""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from raya_domains.cache import Cache
from raya_domains.crud import crud_custom_domain, crud_tenant
from raya_domains.models.tenant import Tenant

logger = logging.getLogger("raya.domain.cache")

DOMAIN_CACHE_PREFIX = "domain"


def normalize_domain(domain: str) -> str:
    return domain.strip().lower().rstrip(".")


def domain_cache_key(domain: str) -> str:
    return f"{DOMAIN_CACHE_PREFIX}:{normalize_domain(domain)}"


class TenantResolutionCache:
    def __init__(self, db: AsyncSession, cache: Cache, ttl: int = 3600):
        self.db = db
        self.cache = cache
        self.ttl = ttl

    async def find_tenant_by_domain(self, domain: str) -> Optional[Tenant]:
        """Tenant owning a verified, active custom domain, or None.

        Misses are not cached: a host that never becomes a custom domain
        costs one registry query per request.
        """
        normalized = normalize_domain(domain)
        key = domain_cache_key(normalized)

        cached = await self.cache.get(key)
        if cached:
            tenant = await crud_tenant.get(self.db, int(cached))
            if tenant is not None:
                return tenant
            # Tenant vanished behind the cache entry.
            await self.cache.delete(key)

        record = await crud_custom_domain.get_routable_by_domain(self.db, normalized)
        if record is None:
            return None

        tenant = await crud_tenant.get(self.db, record.tenant_id)
        if tenant is not None:
            await self.cache.set(key, str(record.tenant_id), self.ttl)
            logger.debug("Cached %s → tenant %s", normalized, record.tenant_id)
        return tenant

    async def invalidate(self, domain: str) -> None:
        await self.cache.delete(domain_cache_key(domain))
