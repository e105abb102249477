"""
Logging setup for the domain service.

- One line per record: JSON outside development, pipe-separated text in dev
- request id, resolved tenant and inbound Host attached from ContextVars
- `extra={...}` fields (durations, domains) carried into JSON output
- Verification tokens, bearer tokens and passwords never reach the output
"""

import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Optional

from raya_domains.config import settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
tenant_id_ctx: ContextVar[str] = ContextVar("tenant_id", default="-")
host_ctx: ContextVar[str] = ContextVar("host", default="-")

# LogRecord attributes that are not user supplied `extra` fields
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "request_id", "tenant_id", "host"}


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


# ═══════════════════════════════════════════
#  Masking
# ═══════════════════════════════════════════

# A live token proves control of a domain until it expires; keep 4 chars for support.
_VERIFY_TOKEN_PATTERN = re.compile(r'(raya-verify=)([0-9a-f]{4})[0-9a-f]{28}')

_REDACT_PATTERNS = [
    (re.compile(r'(bearer\s+)[A-Za-z0-9._~+/=-]+', re.I), r'\1***'),
    (re.compile(r'("?(?:password|secret)"?\s*[:=]\s*)("[^"]*"|\S+)', re.I), r'\1***'),
]


def mask_secrets(text: str) -> str:
    text = _VERIFY_TOKEN_PATTERN.sub(r'\1\2***', text)
    for pattern, replacement in _REDACT_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class ContextFilter(logging.Filter):
    """Stamps every record with the per-request context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        record.tenant_id = tenant_id_ctx.get()
        record.host = host_ctx.get()
        return True


# ═══════════════════════════════════════════
#  Formatters
# ═══════════════════════════════════════════

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": mask_secrets(record.getMessage()),
            "request_id": getattr(record, "request_id", "-"),
            "tenant_id": getattr(record, "tenant_id", "-"),
            "host": getattr(record, "host", "-"),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = mask_secrets(value) if isinstance(value, str) else value

        if record.exc_info and record.exc_info[1]:
            entry["exc"] = mask_secrets(self.formatException(record.exc_info))

        entry = {k: v for k, v in entry.items() if v not in (None, "", "-")}
        return json.dumps(entry, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    FORMAT = "%(asctime)s | %(levelname)-7s | %(name)-22s | %(request_id)s %(tenant_id)s | %(message)s"

    def format(self, record: logging.LogRecord) -> str:
        return mask_secrets(super().format(record))


# ═══════════════════════════════════════════
#  Setup
# ═══════════════════════════════════════════

def setup_logging(level: Optional[int] = None, json_logs: Optional[bool] = None) -> None:
    """Install a single stdout handler on the root logger.

    Defaults follow APP_ENV: JSON at INFO outside development, text at DEBUG in it.
    """
    if json_logs is None:
        json_logs = not settings.is_development
    if level is None:
        level = logging.INFO if json_logs else logging.DEBUG

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(HumanFormatter(HumanFormatter.FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in ("uvicorn.access", "httpcore", "httpx", "asyncio", "aiosqlite", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(logging.WARNING)
