"""
Custom Domain Model

One row per claimed DNS name. `domain` is unique system-wide; the store's
constraint is what arbitrates concurrent claims.
"""
import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from raya_domains.db.base_class import Base


class DomainStatus(str, enum.Enum):
    PENDING = "PENDING"            # waiting for the TXT record
    VERIFYING = "VERIFYING"        # DNS lookup in flight
    VERIFIED = "VERIFIED"
    SSL_PENDING = "SSL_PENDING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"              # DNS error other than "no record"
    EXPIRED = "EXPIRED"            # token window elapsed
    DISABLED = "DISABLED"


class DomainType(str, enum.Enum):
    CUSTOM = "CUSTOM"
    SUBDOMAIN = "SUBDOMAIN"


# Ownership proven; these rows may route traffic while is_active is set
VERIFIED_STATUSES = (DomainStatus.VERIFIED.value, DomainStatus.ACTIVE.value)


class CustomDomain(Base):
    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    domain = Column(String(255), nullable=False, unique=True)
    type = Column(String(50), nullable=False, default=DomainType.CUSTOM.value)
    status = Column(String(50), nullable=False, default=DomainStatus.PENDING.value, index=True)

    # Ownership verification (TXT)
    verification_token = Column(String(100), nullable=True, index=True)
    verification_method = Column(String(50), nullable=False, default="TXT")
    verification_expires_at = Column(DateTime(timezone=True), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_attempts = Column(Integer, nullable=False, default=0)
    last_verification_attempt = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(Text, nullable=True)

    # SSL status (tracked only)
    ssl_enabled = Column(Boolean, nullable=False, default=False)
    ssl_expires_at = Column(DateTime(timezone=True), nullable=True)
    ssl_provider = Column(String(100), nullable=True)

    is_primary = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=False)  # routing gate

    dns_records = Column(Text, nullable=True)  # JSON snapshot: {"a": [...], "cname": [...]}

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="custom_domains")

    __table_args__ = (
        Index("ix_customdomains_tenant_primary", "tenant_id", "is_primary"),
    )

    @property
    def is_routable(self) -> bool:
        return bool(self.is_active) and self.status in VERIFIED_STATUSES
