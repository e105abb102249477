from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from raya_domains.db.base_class import Base


class Tenant(Base):
    """Tenant directory row. Read-only from the domain subsystem's perspective."""

    id = Column(Integer, primary_key=True, index=True)
    tenant_code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    status = Column(String(50), default="ACTIVE")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    custom_domains = relationship("CustomDomain", back_populates="tenant", cascade="all, delete-orphan")
