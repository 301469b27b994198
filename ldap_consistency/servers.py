"""Resolve the set of servers to compare.

Servers come either from an explicit list (short or fully-qualified names) or
from DNS SRV discovery of ``_ldap._tcp.<domain>``.  The resolver also derives
the per-server column width used by the table report, so layout is a return
value rather than shared state.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import dns.exception
import dns.resolver

from .errors import ConfigError, DiscoveryError

logger = logging.getLogger(__name__)

# Table layout: per-server columns are never narrower than this
MIN_COLUMN_WIDTH = 5
# Padding added to the longest short hostname
COLUMN_PADDING = 4

LDAP_SRV_SERVICE = "_ldap._tcp"


@dataclass(frozen=True)
class ServerIdentity:
    """A resolved server: fully-qualified name plus its short display name."""

    fqdn: str

    @property
    def short(self) -> str:
        return self.fqdn.split(".", 1)[0]

    def __str__(self) -> str:
        return self.fqdn


@dataclass(frozen=True)
class ServerSet:
    """Ordered servers for a run and the report column width derived from them."""

    servers: Tuple[ServerIdentity, ...]
    column_width: int

    def __iter__(self):
        return iter(self.servers)

    def __len__(self) -> int:
        return len(self.servers)


def qualify(name: str, domain: Optional[str]) -> str:
    """Append ``domain`` to an unqualified hostname; qualified names pass through."""
    name = name.strip().rstrip(".")
    if "." in name:
        return name
    if not domain:
        raise ConfigError(f"Server '{name}' is not fully qualified and no domain was given")
    return f"{name}.{domain.strip('.')}"


def column_width(servers: Iterable[ServerIdentity]) -> int:
    """Width of each per-server report column."""
    longest = max((len(s.short) for s in servers), default=0)
    return max(MIN_COLUMN_WIDTH, longest + COLUMN_PADDING)


def suffix_from_domain(domain: str) -> str:
    """Derive the default LDAP suffix: ``example.com`` -> ``dc=example,dc=com``."""
    return ",".join(f"dc={part}" for part in domain.strip(".").split(".") if part)


def split_hosts(value: Optional[str]) -> List[str]:
    """Split a space- or comma-separated host list into names."""
    if not value:
        return []
    return [h for h in value.replace(",", " ").split() if h]


def discover_servers(domain: str, lifetime: float = 10.0) -> List[str]:
    """Look up LDAP servers for ``domain`` via DNS SRV records.

    Returns the sorted target hostnames without trailing dots.

    Raises:
        DiscoveryError: if the lookup itself fails.
    """
    record = f"{LDAP_SRV_SERVICE}.{domain.strip('.')}"
    logger.debug("Resolving SRV record %s", record)
    try:
        answer = dns.resolver.resolve(record, "SRV", lifetime=lifetime)
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return []
    except dns.exception.DNSException as exc:
        raise DiscoveryError(f"SRV lookup for {record} failed: {exc}") from exc
    return sorted({rr.target.to_text().rstrip(".") for rr in answer})


def resolve_servers(
    hosts: Optional[Iterable[str]] = None,
    domain: Optional[str] = None,
    lookup=discover_servers,
) -> ServerSet:
    """Turn explicit hosts or SRV discovery into an ordered ``ServerSet``.

    An explicit list is used verbatim (in the given order), qualifying only
    unqualified names with ``domain``.  Without one, ``lookup(domain)`` is
    called and its result is sorted.

    Args:
        hosts:   Explicit server names, or None/empty to discover.
        domain:  DNS domain used for qualification and discovery.
        lookup:  SRV lookup callable, ``lookup(domain) -> list of hostnames``.

    Raises:
        ConfigError: missing domain, or no servers resolved.
        DiscoveryError: SRV lookup failed.
    """
    names = [h for h in (hosts or []) if h and h.strip()]
    if names:
        # Repeats collapse to the first occurrence; every server gets one column
        fqdns = list(dict.fromkeys(qualify(name, domain) for name in names))
    else:
        if not domain:
            raise ConfigError("Either a server list or a domain must be given")
        fqdns = sorted({h.rstrip(".") for h in lookup(domain)})
        logger.info("Discovered %d server(s) for %s", len(fqdns), domain)

    if not fqdns:
        raise ConfigError(f"No servers found for domain {domain}")

    servers = tuple(ServerIdentity(fqdn) for fqdn in fqdns)
    return ServerSet(servers=servers, column_width=column_width(servers))
