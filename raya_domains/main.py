from fastapi import FastAPI

from raya_domains.api.v1.api import api_router
from raya_domains.config import settings
from raya_domains.exceptions import register_exception_handlers
from raya_domains.logging_config import setup_logging
from raya_domains.middleware.custom_domain import CustomDomainMiddleware
from raya_domains.middleware.metrics import PrometheusMiddleware, metrics_endpoint
from raya_domains.middleware.request_logging import RequestLoggingMiddleware

# ── Initialize structured logging ──
setup_logging()

app = FastAPI(
    title=settings.APP_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

register_exception_handlers(app)

# Middleware added last runs first: request logging → metrics → domain resolution → routes

# Custom domain resolution – resolves tenant from Host / tenant header
app.add_middleware(CustomDomainMiddleware)

# Prometheus metrics – request count, latency
app.add_middleware(PrometheusMiddleware)

# Request logging – request ID, timing
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health")
async def health_check():
    return {"status": "ok", "env": settings.APP_ENV}


app.add_route("/metrics", metrics_endpoint)
