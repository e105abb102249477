from fastapi import APIRouter

from raya_domains.api.v1.endpoints import custom_domains

api_router = APIRouter()
api_router.include_router(custom_domains.router, prefix="/domains", tags=["custom-domains"])
