"""
Custom Domain Management API

Allows tenant Owner/Admin to:
  1. Add a custom domain and get DNS verification instructions (TXT record)
  2. Verify ownership (checks the TXT record) and check A / CNAME routing
  3. Regenerate an expired verification token
  4. List / update / set primary / delete custom domains
"""
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status

from raya_domains.api import deps
from raya_domains.schemas.custom_domain import (
    DnsCheckResult,
    DnsRecordsInfo,
    DomainCreate,
    DomainInfo,
    DomainUpdate,
    DomainWithInstructions,
    VerificationResult,
)
from raya_domains.services.custom_domain import CustomDomainService

router = APIRouter()

MANAGE_ROLES = ("owner", "admin")


# ── Helpers ──

def _ensure_owner_admin(user: deps.CurrentUser) -> None:
    if user.is_superuser:
        return
    if user.role not in MANAGE_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner or an admin can manage custom domains",
        )


# ── Endpoints ──

@router.post("/", response_model=DomainWithInstructions, status_code=201)
async def add_domain(
    body: DomainCreate,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    """Claim a custom domain; returns the TXT record to publish."""
    _ensure_owner_admin(current_user)
    record = await service.add_domain(
        current_user.tenant_id,
        body.domain,
        is_primary=body.is_primary,
        domain_type=body.type,
    )
    return DomainWithInstructions(
        domain=DomainInfo.model_validate(record),
        verification=service.get_verification_instructions(record),
        message="Domain added. Follow the DNS verification instructions.",
    )


@router.get("/", response_model=List[DomainInfo])
async def list_domains(
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    _ensure_owner_admin(current_user)
    return await service.list_domains(current_user.tenant_id)


@router.get("/{domain_id}", response_model=DomainInfo)
async def get_domain(
    domain_id: int,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    _ensure_owner_admin(current_user)
    return await service.get_domain(domain_id, current_user.tenant_id)


@router.get("/{domain_id}/dns", response_model=DnsRecordsInfo)
async def get_dns_records(
    domain_id: int,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    """All DNS records the tenant needs: A or CNAME for routing, TXT for ownership."""
    _ensure_owner_admin(current_user)
    record = await service.get_domain(domain_id, current_user.tenant_id)
    return service.get_dns_records(record)


@router.post("/{domain_id}/verify", response_model=VerificationResult)
async def verify_domain(
    domain_id: int,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    """
    Check the ownership TXT record:
      _raya-verification.{domain}  →  {verification_token}
    A "not yet verified" answer is a normal 200 response; poll until DNS propagates.
    """
    _ensure_owner_admin(current_user)
    return await service.verify(domain_id, current_user.tenant_id)


@router.post("/{domain_id}/check-dns", response_model=DnsCheckResult)
async def check_dns_configuration(
    domain_id: int,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    _ensure_owner_admin(current_user)
    return await service.check_dns_configuration(domain_id, current_user.tenant_id)


@router.post("/{domain_id}/regenerate-token", response_model=DomainWithInstructions)
async def regenerate_token(
    domain_id: int,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    _ensure_owner_admin(current_user)
    record = await service.regenerate_verification_token(domain_id, current_user.tenant_id)
    return DomainWithInstructions(
        domain=DomainInfo.model_validate(record),
        verification=service.get_verification_instructions(record),
        message="New verification token generated.",
    )


@router.put("/{domain_id}", response_model=DomainInfo)
async def update_domain(
    domain_id: int,
    body: DomainUpdate,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    _ensure_owner_admin(current_user)
    return await service.update_domain(domain_id, current_user.tenant_id, body)


@router.put("/{domain_id}/set-primary", response_model=DomainInfo)
async def set_primary(
    domain_id: int,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    _ensure_owner_admin(current_user)
    return await service.set_primary(domain_id, current_user.tenant_id)


@router.delete("/{domain_id}")
async def delete_domain(
    domain_id: int,
    service: CustomDomainService = Depends(deps.get_domain_service),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    _ensure_owner_admin(current_user)
    await service.remove_domain(domain_id, current_user.tenant_id)
    return {"message": "Domain deleted"}
