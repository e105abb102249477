"""
Request Logging Middleware

Outermost middleware: opens the logging context for one request (request id,
Host) and logs one completion line with status, resolved tenant and timing.
The incoming X-Request-ID is reused so ids stay stable across the proxy.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from raya_domains.logging_config import generate_request_id, host_ctx, request_id_ctx, tenant_id_ctx
from raya_domains.services.domain_resolution import parse_host

logger = logging.getLogger("raya.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        rid_token = request_id_ctx.set(rid)
        tenant_token = tenant_id_ctx.set("-")
        host_token = host_ctx.set(parse_host(request.headers.get("host", "")) or "-")

        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            logger.info(
                "%s %s %d",
                request.method, request.url.path, response.status_code,
                extra={
                    "duration_ms": round((time.perf_counter() - start) * 1000, 1),
                    "tenant_source": getattr(request.state, "tenant_source", None),
                    "resolved_tenant_id": getattr(request.state, "resolved_tenant_id", None),
                },
            )
            return response
        except Exception:
            logger.exception(
                "%s %s raised after %.1fms",
                request.method, request.url.path, (time.perf_counter() - start) * 1000,
            )
            raise
        finally:
            host_ctx.reset(host_token)
            tenant_id_ctx.reset(tenant_token)
            request_id_ctx.reset(rid_token)
