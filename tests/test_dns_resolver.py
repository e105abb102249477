"""dnspython adapter: answer decoding and error mapping."""
from types import SimpleNamespace
from unittest.mock import AsyncMock

import dns.exception
import dns.name
import dns.resolver
import pytest

from raya_domains.exceptions import DNSLookupError, NoRecordsError
from raya_domains.services.dns_resolver import DnsPythonResolver


def _resolver(result=None, side_effect=None) -> DnsPythonResolver:
    resolver = DnsPythonResolver(nameservers=("192.0.2.53",), timeout=2.0)
    resolver._resolver.resolve = AsyncMock(return_value=result, side_effect=side_effect)
    return resolver


def test_explicit_nameservers():
    resolver = DnsPythonResolver(nameservers=("192.0.2.53", "192.0.2.54"))
    assert len(resolver._resolver.nameservers) == 2
    assert resolver.timeout == 5.0


@pytest.mark.asyncio
async def test_txt_strings_are_joined():
    answer = [
        SimpleNamespace(strings=(b"raya-verify=0123456789abcdef", b"0123456789abcdef")),
        SimpleNamespace(strings=(b"v=spf1 -all",)),
    ]
    resolver = _resolver(result=answer)

    values = await resolver.resolve_txt("_raya-verification.shop.example.com")

    assert values == ["raya-verify=0123456789abcdef0123456789abcdef", "v=spf1 -all"]
    resolver._resolver.resolve.assert_awaited_once_with(
        "_raya-verification.shop.example.com", "TXT", lifetime=2.0
    )


@pytest.mark.asyncio
async def test_per_call_timeout_overrides_default():
    resolver = _resolver(result=[SimpleNamespace(address="203.0.113.10")])

    assert await resolver.resolve_a("shop.example.com", timeout=0.3) == ["203.0.113.10"]
    resolver._resolver.resolve.assert_awaited_once_with("shop.example.com", "A", lifetime=0.3)


@pytest.mark.asyncio
async def test_cname_target_normalized():
    answer = [SimpleNamespace(target=dns.name.from_text("Proxy.Raya.App."))]
    resolver = _resolver(result=answer)

    assert await resolver.resolve_cname("shop.example.com") == ["proxy.raya.app"]


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [dns.resolver.NXDOMAIN(), dns.resolver.NoAnswer()])
async def test_missing_records_map_to_no_records(error):
    resolver = _resolver(side_effect=error)
    with pytest.raises(NoRecordsError):
        await resolver.resolve_txt("_raya-verification.shop.example.com")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    dns.exception.Timeout(),
    dns.resolver.NoNameservers(),
    dns.exception.DNSException("malformed response"),
])
async def test_other_failures_map_to_lookup_error(error):
    resolver = _resolver(side_effect=error)
    with pytest.raises(DNSLookupError) as exc:
        await resolver.resolve_a("shop.example.com")
    assert not isinstance(exc.value, NoRecordsError)
