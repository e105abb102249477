"""
Custom Domain Resolution Middleware

Resolves the tenant from the Host header (or an explicit tenant header) and
sets on request.state for downstream handlers:
  resolved_tenant_id, resolved_tenant_code, tenant_subdomain,
  custom_domain, tenant_source
A failed or slow resolution never fails the request.
"""

import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from raya_domains.cache import get_cache
from raya_domains.config import settings
from raya_domains.db.session import SessionLocal
from raya_domains.logging_config import tenant_id_ctx
from raya_domains.middleware.metrics import record_resolution
from raya_domains.models.tenant import Tenant
from raya_domains.services.domain_resolution import (
    DomainResolver,
    RequestContext,
    ResolutionOutcome,
    build_domain_resolver,
)
from raya_domains.services.tenant_resolution import TenantResolutionCache


async def lookup_tenant_by_domain(host: str) -> Optional[Tenant]:
    async with SessionLocal() as db:
        resolution = TenantResolutionCache(db, get_cache(), ttl=settings.DOMAIN_CACHE_TTL)
        return await resolution.find_tenant_by_domain(host)


def _outcome_label(outcome: ResolutionOutcome) -> str:
    if outcome.platform:
        return "platform"
    return outcome.source or "unresolved"


class CustomDomainMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        resolver: Optional[DomainResolver] = None,
        tenant_header: Optional[str] = None,
    ):
        super().__init__(app)
        self.resolver = resolver or build_domain_resolver(
            settings.PLATFORM_DOMAIN,
            lookup_tenant_by_domain,
            timeout=settings.DOMAIN_RESOLUTION_TIMEOUT,
        )
        self.tenant_header = tenant_header or settings.TENANT_ID_HEADER

    async def dispatch(self, request: Request, call_next) -> Response:
        ctx = RequestContext.from_headers(request.headers, self.tenant_header)

        start = time.perf_counter()
        outcome = await self.resolver.resolve(ctx)
        record_resolution(_outcome_label(outcome), time.perf_counter() - start)

        request.state.resolved_tenant_id = outcome.tenant_id
        request.state.resolved_tenant_code = outcome.tenant_code
        request.state.tenant_subdomain = outcome.tenant_subdomain
        request.state.custom_domain = outcome.custom_domain
        request.state.tenant_source = outcome.source

        tenant_token = tenant_id_ctx.set(str(outcome.tenant_id)) if outcome.tenant_id is not None else None
        try:
            return await call_next(request)
        finally:
            if tenant_token is not None:
                tenant_id_ctx.reset(tenant_token)
