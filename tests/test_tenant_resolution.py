"""Cached domain → tenant lookups."""
import pytest

from raya_domains.services.tenant_resolution import TenantResolutionCache, domain_cache_key, normalize_domain
from tests.conftest import TENANT_A, txt_name


async def _activate(service, fake_dns, domain):
    record = await service.add_domain(TENANT_A, domain)
    fake_dns.txt[txt_name(record.domain)] = [record.verification_token]
    await service.verify(record.id, TENANT_A)
    return record


def test_normalize_domain():
    assert normalize_domain(" Shop.Example.COM. ") == "shop.example.com"
    assert domain_cache_key("Shop.Example.com") == "domain:shop.example.com"


@pytest.mark.asyncio
async def test_miss_then_hit(db, service, fake_dns, fake_cache):
    await _activate(service, fake_dns, "shop.example.com")
    resolution = TenantResolutionCache(db, fake_cache, ttl=60)

    tenant = await resolution.find_tenant_by_domain("shop.example.com")
    assert tenant.id == TENANT_A
    assert fake_cache.store[domain_cache_key("shop.example.com")] == str(TENANT_A)
    assert fake_cache.sets == 1

    again = await resolution.find_tenant_by_domain("SHOP.EXAMPLE.COM")
    assert again.id == TENANT_A
    assert fake_cache.sets == 1


@pytest.mark.asyncio
async def test_unverified_domain_is_not_resolved(db, service, fake_cache):
    await service.add_domain(TENANT_A, "shop.example.com")
    resolution = TenantResolutionCache(db, fake_cache)

    assert await resolution.find_tenant_by_domain("shop.example.com") is None
    # Misses are not cached
    assert fake_cache.store == {}


@pytest.mark.asyncio
async def test_unknown_host(db, fake_cache):
    resolution = TenantResolutionCache(db, fake_cache)
    assert await resolution.find_tenant_by_domain("nobody.example.org") is None


@pytest.mark.asyncio
async def test_stale_entry_for_missing_tenant_is_dropped(db, fake_cache):
    key = domain_cache_key("ghost.example.com")
    fake_cache.store[key] = "404"
    resolution = TenantResolutionCache(db, fake_cache)

    assert await resolution.find_tenant_by_domain("ghost.example.com") is None
    assert key not in fake_cache.store


@pytest.mark.asyncio
async def test_removed_domain_stops_resolving(db, service, fake_dns, fake_cache):
    record = await _activate(service, fake_dns, "shop.example.com")
    resolution = TenantResolutionCache(db, fake_cache)
    assert await resolution.find_tenant_by_domain("shop.example.com") is not None

    await service.remove_domain(record.id, TENANT_A)

    assert await resolution.find_tenant_by_domain("shop.example.com") is None


@pytest.mark.asyncio
async def test_failed_reverification_invalidates(db, service, fake_dns, fake_cache):
    record = await _activate(service, fake_dns, "shop.example.com")
    resolution = TenantResolutionCache(db, fake_cache)
    await resolution.find_tenant_by_domain("shop.example.com")

    del fake_dns.txt[txt_name(record.domain)]
    await service.verify(record.id, TENANT_A)

    assert domain_cache_key("shop.example.com") not in fake_cache.store
    assert await resolution.find_tenant_by_domain("shop.example.com") is None
