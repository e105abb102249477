"""
Async DNS lookups used for ownership verification and routing checks.

`DNSResolver` is the seam the services depend on; `DnsPythonResolver` is the
production implementation on top of dnspython's asyncio resolver. Lookups are
plain coroutines, so callers can cancel them with `asyncio.wait_for` or task
cancellation.
"""
import logging
from typing import List, Optional, Protocol, Sequence

import dns.asyncresolver
import dns.exception
import dns.resolver

from raya_domains.exceptions import DNSLookupError, NoRecordsError

logger = logging.getLogger("raya.dns")


class DNSResolver(Protocol):
    async def resolve_txt(self, name: str, timeout: Optional[float] = None) -> List[str]:
        ...

    async def resolve_a(self, name: str, timeout: Optional[float] = None) -> List[str]:
        ...

    async def resolve_cname(self, name: str, timeout: Optional[float] = None) -> List[str]:
        ...


class DnsPythonResolver:
    """dnspython-backed resolver with a per-lookup lifetime."""

    def __init__(self, nameservers: Sequence[str] = (), timeout: float = 5.0):
        if nameservers:
            self._resolver = dns.asyncresolver.Resolver(configure=False)
            self._resolver.nameservers = list(nameservers)
        else:
            self._resolver = dns.asyncresolver.Resolver()
        self.timeout = timeout

    async def _query(self, name: str, rdtype: str, timeout: Optional[float]):
        lifetime = timeout if timeout is not None else self.timeout
        try:
            return await self._resolver.resolve(name, rdtype, lifetime=lifetime)
        except dns.resolver.NXDOMAIN as e:
            raise NoRecordsError(f"{name} does not exist") from e
        except dns.resolver.NoAnswer as e:
            raise NoRecordsError(f"No {rdtype} record for {name}") from e
        except dns.exception.Timeout as e:
            logger.info("DNS %s lookup for %s timed out after %.1fs", rdtype, name, lifetime)
            raise DNSLookupError(f"DNS {rdtype} lookup for {name} timed out") from e
        except dns.resolver.NoNameservers as e:
            raise DNSLookupError(f"No nameserver could answer {rdtype} for {name}") from e
        except dns.exception.DNSException as e:
            raise DNSLookupError(f"DNS {rdtype} lookup for {name} failed: {e}") from e

    async def resolve_txt(self, name: str, timeout: Optional[float] = None) -> List[str]:
        answer = await self._query(name, "TXT", timeout)
        # A TXT record may be split into several character-strings; join them back.
        return [
            b"".join(rdata.strings).decode("utf-8", errors="replace").strip()
            for rdata in answer
        ]

    async def resolve_a(self, name: str, timeout: Optional[float] = None) -> List[str]:
        answer = await self._query(name, "A", timeout)
        return [rdata.address for rdata in answer]

    async def resolve_cname(self, name: str, timeout: Optional[float] = None) -> List[str]:
        answer = await self._query(name, "CNAME", timeout)
        return [rdata.target.to_text(omit_final_dot=True).lower() for rdata in answer]
