"""
Custom domain lifecycle: claim, DNS ownership verification, routing checks.

Tenants must publish a TXT record:
  _raya-verification.{domain}  →  raya-verify=<32 hex chars>
and then poll `verify()` until DNS has propagated, within the token's
validity window. Traffic routing (A / CNAME) is checked separately by
`check_dns_configuration()` and never changes the verification status.
"""
import asyncio
import json
import logging
import re
from typing import Awaitable, Callable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from raya_domains.cache import Cache
from raya_domains.config import PlatformConfig
from raya_domains.crud import crud_custom_domain, crud_tenant
from raya_domains.exceptions import (
    ConflictError,
    DNSLookupError,
    NoRecordsError,
    NotFoundError,
    StateError,
    ValidationError,
)
from raya_domains.models.custom_domain import VERIFIED_STATUSES, CustomDomain, DomainStatus, DomainType
from raya_domains.schemas.custom_domain import (
    DnsCheckResult,
    DnsRecordsInfo,
    DomainUpdate,
    VerificationInstructions,
    VerificationResult,
)
from raya_domains.services.dns_resolver import DNSResolver
from raya_domains.services.tenant_resolution import TenantResolutionCache, normalize_domain
from raya_domains.services.verification_token import (
    generate_verification_token,
    is_expired,
    utcnow,
    verification_expiry,
)

logger = logging.getLogger("raya.domain")

_DOMAIN_RE = re.compile(r"^(?=.{4,253}$)(?:[a-z0-9](?:[a-z0-9_-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")

Lookup = Callable[..., Awaitable[List[str]]]

EXPIRED_MESSAGE = "The verification period has expired. Generate a new verification token to try again."


class CustomDomainService:
    def __init__(
        self,
        db: AsyncSession,
        *,
        cache: Cache,
        dns: DNSResolver,
        platform: PlatformConfig,
        cache_ttl: int = 3600,
        dns_timeout: float = 5.0,
    ):
        self.db = db
        self.dns = dns
        self.platform = platform
        self.dns_timeout = dns_timeout
        self.resolution = TenantResolutionCache(db, cache, ttl=cache_ttl)

    # ── Helpers ──

    def _validate_domain(self, domain: str) -> str:
        normalized = normalize_domain(domain)
        if not _DOMAIN_RE.match(normalized):
            raise ValidationError("Invalid domain format. Example: shop.example.com")
        platform = self.platform.platform_domain
        if normalized == platform or normalized.endswith(f".{platform}"):
            raise ValidationError("Subdomains of the platform domain cannot be used as custom domains")
        return normalized

    def _txt_record_name(self, domain: str) -> str:
        return f"{self.platform.verification_prefix}.{domain}"

    async def _lookup(self, lookup: Lookup, name: str) -> List[str]:
        try:
            return await asyncio.wait_for(lookup(name, timeout=self.dns_timeout), timeout=self.dns_timeout)
        except asyncio.TimeoutError as e:
            raise DNSLookupError(f"DNS lookup for {name} timed out") from e

    async def _best_effort_lookup(self, lookup: Lookup, name: str) -> List[str]:
        try:
            return await self._lookup(lookup, name)
        except DNSLookupError as e:
            logger.debug("Routing lookup for %s gave nothing: %s", name, e.message)
            return []

    async def _invalidate_all(self, domains: List[str]) -> None:
        for domain in domains:
            await self.resolution.invalidate(domain)

    async def _save(self, record: CustomDomain, *, was_routable: bool = False) -> CustomDomain:
        record = await crud_custom_domain.save(self.db, record)
        if was_routable and not record.is_routable:
            await self.resolution.invalidate(record.domain)
        return record

    # ── Queries ──

    async def list_domains(self, tenant_id: int) -> List[CustomDomain]:
        return await crud_custom_domain.get_multi_by_tenant(self.db, tenant_id)

    async def get_domain(self, domain_id: int, tenant_id: int) -> CustomDomain:
        record = await crud_custom_domain.get(self.db, domain_id, tenant_id)
        if record is None:
            raise NotFoundError("Domain not found")
        return record

    def get_verification_instructions(self, record: CustomDomain) -> VerificationInstructions:
        return VerificationInstructions(
            instructions="To verify your domain, add a TXT record with the following values to your DNS:",
            record_type=record.verification_method or "TXT",
            record_name=self._txt_record_name(record.domain),
            record_value=record.verification_token,
            expires_at=record.verification_expires_at,
        )

    def get_dns_records(self, record: CustomDomain) -> DnsRecordsInfo:
        return DnsRecordsInfo(
            a_record=self.platform.server_ip,
            cname_record=self.platform.cname_target,
            verification_txt=self.get_verification_instructions(record),
        )

    # ── Claim ──

    async def add_domain(
        self,
        tenant_id: int,
        domain: str,
        *,
        is_primary: bool = False,
        domain_type: DomainType = DomainType.CUSTOM,
    ) -> CustomDomain:
        normalized = self._validate_domain(domain)

        tenant = await crud_tenant.get(self.db, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")

        demoted = await crud_custom_domain.clear_primary(self.db, tenant_id) if is_primary else []

        record = CustomDomain(
            tenant_id=tenant_id,
            domain=normalized,
            type=domain_type.value,
            status=DomainStatus.PENDING.value,
            verification_token=generate_verification_token(),
            verification_method="TXT",
            verification_expires_at=verification_expiry(self.platform.verification_ttl_days),
            verification_attempts=0,
            is_primary=is_primary,
            is_active=False,
        )
        try:
            record = await crud_custom_domain.create(self.db, db_obj=record)
        except IntegrityError:
            # The unique index on `domain` decides concurrent claims.
            await self.db.rollback()
            existing = await crud_custom_domain.get_by_domain(self.db, normalized)
            if existing is not None and existing.tenant_id == tenant_id:
                raise ConflictError("This domain is already configured for your account")
            raise ConflictError("This domain is already used by another account")

        await self._invalidate_all(demoted)
        logger.info("Custom domain added: %s for tenant %s", normalized, tenant_id)
        return record

    # ── Ownership verification ──

    async def _verification_failed(
        self, record: CustomDomain, detail: str, *, was_routable: bool
    ) -> VerificationResult:
        record.status = DomainStatus.FAILED.value
        record.last_error = detail
        await self._save(record, was_routable=was_routable)
        return VerificationResult(
            verified=False,
            message=f"DNS verification error: {detail}",
            status=record.status,
        )

    async def verify(self, domain_id: int, tenant_id: int) -> VerificationResult:
        record = await self.get_domain(domain_id, tenant_id)
        was_routable = record.is_routable
        was_verified = record.status in VERIFIED_STATUSES
        now = utcnow()

        if is_expired(record.verification_expires_at, now):
            record.status = DomainStatus.EXPIRED.value
            await self._save(record, was_routable=was_routable)
            logger.info("Verification window elapsed for %s", record.domain)
            return VerificationResult(verified=False, message=EXPIRED_MESSAGE, status=record.status)

        record.verification_attempts = (record.verification_attempts or 0) + 1
        record.last_verification_attempt = now
        record.status = DomainStatus.VERIFYING.value
        record = await crud_custom_domain.save(self.db, record)

        record_name = self._txt_record_name(record.domain)
        token = record.verification_token
        try:
            values = await self._lookup(self.dns.resolve_txt, record_name)
        except NoRecordsError:
            record.status = DomainStatus.PENDING.value
            record.last_error = f"TXT record not found for {record_name}"
            await self._save(record, was_routable=was_routable)
            return VerificationResult(
                verified=False,
                message=(
                    f"TXT record not found. Make sure you created the record {record_name} "
                    f"with the value {token}"
                ),
                status=record.status,
            )
        except DNSLookupError as e:
            logger.warning("DNS verification error for %s: %s", record.domain, e.message)
            return await self._verification_failed(record, e.message, was_routable=was_routable)
        except Exception as e:
            # Any resolver failure ends in FAILED, never in VERIFYING.
            logger.exception("Unexpected resolver failure verifying %s", record.domain)
            detail = str(e) or type(e).__name__
            return await self._verification_failed(record, detail, was_routable=was_routable)

        if token not in values:
            record.status = DomainStatus.PENDING.value
            record.last_error = (
                f"Verification token mismatch. Expected {token}, found: {', '.join(values) or '(empty)'}"
            )
            await self._save(record, was_routable=was_routable)
            return VerificationResult(
                verified=False,
                message="Incorrect verification token. Check the value of the TXT record.",
                status=record.status,
            )

        record.status = DomainStatus.VERIFIED.value
        if not (was_verified and record.verified_at):
            record.verified_at = now
        record.is_active = True
        record.last_error = None
        record = await crud_custom_domain.save(self.db, record)
        await self.resolution.invalidate(record.domain)

        logger.info("Domain verified: %s for tenant %s", record.domain, tenant_id)
        return VerificationResult(
            verified=True,
            message="Domain verified successfully! It is now active.",
            status=record.status,
            verified_at=record.verified_at,
        )

    async def regenerate_verification_token(self, domain_id: int, tenant_id: int) -> CustomDomain:
        record = await self.get_domain(domain_id, tenant_id)
        if record.status in VERIFIED_STATUSES:
            raise StateError("The domain is already verified")

        record.verification_token = generate_verification_token()
        record.verification_expires_at = verification_expiry(self.platform.verification_ttl_days)
        record.verification_attempts = 0
        record.status = DomainStatus.PENDING.value
        record.last_error = None
        record = await crud_custom_domain.save(self.db, record)

        logger.info("Verification token regenerated for %s", record.domain)
        return record

    # ── Flags ──

    async def set_primary(self, domain_id: int, tenant_id: int) -> CustomDomain:
        record = await self.get_domain(domain_id, tenant_id)
        if not record.is_routable:
            raise StateError("Only a verified and active domain can be set as primary")

        demoted = await crud_custom_domain.clear_primary(self.db, tenant_id, exclude_id=record.id)
        record.is_primary = True
        record = await crud_custom_domain.save(self.db, record)
        await self._invalidate_all([record.domain, *demoted])
        return record

    async def update_domain(self, domain_id: int, tenant_id: int, obj_in: DomainUpdate) -> CustomDomain:
        record = await self.get_domain(domain_id, tenant_id)
        update_data = obj_in.model_dump(exclude_unset=True, exclude_none=True)
        demoted: List[str] = []

        if "is_active" in update_data:
            record.is_active = update_data["is_active"]
        if "type" in update_data:
            record.type = update_data["type"].value
        if update_data.get("is_primary") is True:
            if not record.is_routable:
                raise StateError("Only a verified and active domain can be set as primary")
            demoted = await crud_custom_domain.clear_primary(self.db, tenant_id, exclude_id=record.id)
            record.is_primary = True
        elif update_data.get("is_primary") is False:
            record.is_primary = False

        record = await crud_custom_domain.save(self.db, record)
        await self._invalidate_all([record.domain, *demoted])
        return record

    async def remove_domain(self, domain_id: int, tenant_id: int) -> None:
        record = await self.get_domain(domain_id, tenant_id)
        domain_name = record.domain

        await self.resolution.invalidate(domain_name)
        await crud_custom_domain.remove(self.db, record)

        logger.info("Custom domain deleted: %s for tenant %s", domain_name, tenant_id)

    # ── Routing check ──

    async def check_dns_configuration(self, domain_id: int, tenant_id: int) -> DnsCheckResult:
        record = await self.get_domain(domain_id, tenant_id)

        a_records, cname_records = await asyncio.gather(
            self._best_effort_lookup(self.dns.resolve_a, record.domain),
            self._best_effort_lookup(self.dns.resolve_cname, record.domain),
        )

        expected_cname = self.platform.cname_target
        expected_ip = self.platform.server_ip
        cname_ok = any(c.lower().rstrip(".") == expected_cname for c in cname_records)
        a_ok = bool(expected_ip) and expected_ip in a_records

        if cname_ok or a_ok:
            record.dns_records = json.dumps({"a": a_records, "cname": cname_records})
            await crud_custom_domain.save(self.db, record)
            return DnsCheckResult(
                configured=True,
                a_records=a_records,
                cname_records=cname_records,
                message="DNS configuration is correct!",
            )

        hint = f"Configure a CNAME to {expected_cname}"
        if expected_ip:
            hint += f" or an A record to {expected_ip}"
        return DnsCheckResult(
            configured=False,
            a_records=a_records,
            cname_records=cname_records,
            message=f"DNS configuration is incorrect. {hint}.",
        )

    async def find_tenant_by_domain(self, domain: str):
        return await self.resolution.find_tenant_by_domain(domain)
