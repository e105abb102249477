from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from raya_domains.models.custom_domain import DomainType


# Properties to receive via API on creation
class DomainCreate(BaseModel):
    domain: str = Field(..., min_length=4, max_length=255, examples=["shop.example.com"])
    type: DomainType = DomainType.CUSTOM
    is_primary: bool = False


# Properties to receive via API on update (the domain string is immutable)
class DomainUpdate(BaseModel):
    type: Optional[DomainType] = None
    is_primary: Optional[bool] = None
    is_active: Optional[bool] = None


class DomainInfo(BaseModel):
    id: int
    domain: str
    type: str
    status: str
    is_primary: bool
    is_active: bool
    ssl_enabled: bool
    verification_attempts: int = 0
    last_error: Optional[str] = None
    verified_at: Optional[datetime] = None
    verification_expires_at: Optional[datetime] = None
    ssl_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class VerificationInstructions(BaseModel):
    instructions: str
    record_type: str = "TXT"
    record_name: str
    record_value: str
    expires_at: Optional[datetime] = None


class DnsRecordsInfo(BaseModel):
    a_record: str
    cname_record: str
    verification_txt: VerificationInstructions


class DomainWithInstructions(BaseModel):
    domain: DomainInfo
    verification: VerificationInstructions
    message: str


class VerificationResult(BaseModel):
    verified: bool
    message: str
    status: str
    verified_at: Optional[datetime] = None


class DnsCheckResult(BaseModel):
    configured: bool
    message: str
    a_records: List[str] = []
    cname_records: List[str] = []
