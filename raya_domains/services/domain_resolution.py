"""
Host → tenant resolution for inbound requests.

Resolution priority (first match wins):
  1. Explicit tenant header (internal / API callers)
  2. Platform-reserved hosts → platform-level request, no tenant
  3. <label>.<platform domain> → subdomain hint
  4. Verified custom domain (cache, then registry)

`DomainResolver.resolve()` never raises: timeouts and lookup errors are
logged and the request continues unresolved.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Sequence

logger = logging.getLogger("raya.domain.resolver")

SOURCE_HEADER = "header"
SOURCE_SUBDOMAIN = "subdomain"
SOURCE_CUSTOM_DOMAIN = "custom-domain"

TenantLookup = Callable[[str], Awaitable[Optional[Any]]]


def parse_host(raw: str) -> str:
    """Lowercased host without port; handles bracketed IPv6 literals."""
    host = (raw or "").strip().lower()
    if host.startswith("["):
        return host[1:host.find("]")] if "]" in host else host[1:]
    return host.split(":")[0].rstrip(".")


@dataclass(frozen=True)
class RequestContext:
    host: str
    tenant_header: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str], tenant_header_name: str = "X-Tenant-ID") -> "RequestContext":
        return cls(
            host=parse_host(headers.get("host", "")),
            tenant_header=headers.get(tenant_header_name),
        )


@dataclass(frozen=True)
class ResolutionOutcome:
    source: Optional[str] = None
    tenant_id: Optional[int] = None
    tenant_code: Optional[str] = None
    tenant_subdomain: Optional[str] = None
    custom_domain: Optional[str] = None
    platform: bool = False

    @property
    def resolved(self) -> bool:
        return self.source is not None


UNRESOLVED = ResolutionOutcome()
PLATFORM = ResolutionOutcome(platform=True)


class ResolverStrategy(Protocol):
    name: str

    async def resolve(self, ctx: RequestContext) -> Optional[ResolutionOutcome]:
        ...


class HeaderStrategy:
    name = "header"

    async def resolve(self, ctx: RequestContext) -> Optional[ResolutionOutcome]:
        if not ctx.tenant_header:
            return None
        try:
            tenant_id = int(ctx.tenant_header.strip())
        except ValueError:
            logger.debug("Ignoring non-numeric tenant header %r", ctx.tenant_header)
            return None
        return ResolutionOutcome(source=SOURCE_HEADER, tenant_id=tenant_id)


class PlatformHostStrategy:
    name = "platform"

    def __init__(self, platform_domain: str):
        self.hosts = frozenset({
            platform_domain,
            f"www.{platform_domain}",
            f"api.{platform_domain}",
            f"admin.{platform_domain}",
            "localhost",
            "127.0.0.1",
        })

    async def resolve(self, ctx: RequestContext) -> Optional[ResolutionOutcome]:
        if not ctx.host or ctx.host in self.hosts:
            return PLATFORM
        return None


class SubdomainStrategy:
    name = "subdomain"

    def __init__(self, platform_domain: str):
        self.suffix = f".{platform_domain}"

    async def resolve(self, ctx: RequestContext) -> Optional[ResolutionOutcome]:
        if not ctx.host.endswith(self.suffix):
            return None
        label = ctx.host[: -len(self.suffix)]
        return ResolutionOutcome(source=SOURCE_SUBDOMAIN, tenant_subdomain=label)


class CustomDomainStrategy:
    name = "custom-domain"

    def __init__(self, lookup: TenantLookup):
        self.lookup = lookup

    async def resolve(self, ctx: RequestContext) -> Optional[ResolutionOutcome]:
        tenant = await self.lookup(ctx.host)
        if tenant is None:
            return None
        logger.debug("Resolved custom domain %s → tenant %s", ctx.host, tenant.tenant_code)
        return ResolutionOutcome(
            source=SOURCE_CUSTOM_DOMAIN,
            tenant_id=tenant.id,
            tenant_code=tenant.tenant_code,
            custom_domain=ctx.host,
        )


class DomainResolver:
    def __init__(self, strategies: Sequence[ResolverStrategy], timeout: float = 0.5):
        self.strategies = list(strategies)
        self.timeout = timeout

    async def _run_chain(self, ctx: RequestContext) -> ResolutionOutcome:
        for strategy in self.strategies:
            outcome = await strategy.resolve(ctx)
            if outcome is not None:
                return outcome
        return UNRESOLVED

    async def resolve(self, ctx: RequestContext) -> ResolutionOutcome:
        try:
            return await asyncio.wait_for(self._run_chain(ctx), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Domain resolution for %s timed out after %.2fs", ctx.host, self.timeout)
        except Exception as e:
            logger.warning("Domain resolution failed for %s: %s", ctx.host, e)
        return UNRESOLVED


def build_domain_resolver(platform_domain: str, lookup: TenantLookup, timeout: float = 0.5) -> DomainResolver:
    return DomainResolver(
        [
            HeaderStrategy(),
            PlatformHostStrategy(platform_domain),
            SubdomainStrategy(platform_domain),
            CustomDomainStrategy(lookup),
        ],
        timeout=timeout,
    )
