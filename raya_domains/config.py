from dataclasses import dataclass
from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ── Known insecure default keys (must never be used in production) ──
_INSECURE_KEYS = {
    "change_this",
    "change_this_to_a_secure_random_string",
    "secret",
}


class Settings(BaseSettings):
    APP_NAME: str = "Raya Custom Domains"
    APP_ENV: str = "development"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "change_this"
    ALGORITHM: str = "HS256"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "raya"
    DATABASE_URL: str = ""  # overrides the POSTGRES_* parts when set
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_ECHO: bool = False
    SLOW_QUERY_THRESHOLD_MS: int = 500

    # Redis (domain → tenant cache)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 1
    REDIS_SOCKET_TIMEOUT: float = 0.5

    # Platform routing targets
    PLATFORM_DOMAIN: str = "raya.app"
    SERVER_IP: str = ""
    CNAME_TARGET: str = ""  # defaults to proxy.<PLATFORM_DOMAIN>

    # Ownership verification
    VERIFICATION_RECORD_PREFIX: str = "_raya-verification"
    VERIFICATION_TTL_DAYS: int = 7

    # Resolution
    TENANT_ID_HEADER: str = "X-Tenant-ID"
    DOMAIN_CACHE_TTL: int = 3600            # seconds
    DOMAIN_RESOLUTION_TIMEOUT: float = 0.5  # hot-path budget, seconds

    # DNS
    DNS_LOOKUP_TIMEOUT: float = 5.0
    DNS_NAMESERVERS: str = ""  # comma separated, empty = system resolv.conf

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @model_validator(mode="after")
    def _normalize_platform(self) -> "Settings":
        self.PLATFORM_DOMAIN = self.PLATFORM_DOMAIN.strip().lower().rstrip(".")
        if not self.CNAME_TARGET:
            self.CNAME_TARGET = f"proxy.{self.PLATFORM_DOMAIN}"
        return self

    @model_validator(mode="after")
    def _validate_production_security(self) -> "Settings":
        """Block startup if critical secrets are insecure in production / staging."""
        if self.APP_ENV in ("production", "staging"):
            if self.SECRET_KEY in _INSECURE_KEYS or len(self.SECRET_KEY) < 32:
                raise ValueError(
                    f"SECRET_KEY is insecure ('{self.SECRET_KEY[:8]}…'). "
                    "Set a strong random key (≥ 32 chars) in .env or environment."
                )
            if not self.DATABASE_URL and self.POSTGRES_PASSWORD in ("postgres", ""):
                raise ValueError(
                    "POSTGRES_PASSWORD is set to default 'postgres'. "
                    "Set a strong password in .env or environment."
                )
            if not self.SERVER_IP:
                raise ValueError("SERVER_IP must be set so DNS configuration can be checked.")
        return self

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"
        )

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def dns_nameservers(self) -> List[str]:
        return [ns.strip() for ns in self.DNS_NAMESERVERS.split(",") if ns.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_staging(self) -> bool:
        return self.APP_ENV == "staging"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"


@dataclass(frozen=True)
class PlatformConfig:
    """Fixed routing targets a tenant's DNS must point at."""

    platform_domain: str
    server_ip: str
    cname_target: str
    verification_prefix: str = "_raya-verification"
    verification_ttl_days: int = 7

    @classmethod
    def from_settings(cls, s: "Settings") -> "PlatformConfig":
        return cls(
            platform_domain=s.PLATFORM_DOMAIN,
            server_ip=s.SERVER_IP,
            cname_target=s.CNAME_TARGET.lower().rstrip("."),
            verification_prefix=s.VERIFICATION_RECORD_PREFIX,
            verification_ttl_days=s.VERIFICATION_TTL_DAYS,
        )


settings = Settings()
