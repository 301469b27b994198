"""Immutable per-run configuration shared by every component."""

from dataclasses import dataclass
from typing import Optional, Tuple

from .servers import ServerIdentity, ServerSet, suffix_from_domain

DEFAULT_BINDDN = "cn=Directory Manager"
DEFAULT_TIMEOUT = 10
DEFAULT_WORKERS = 16


@dataclass(frozen=True)
class RunContext:
    """Everything a check needs to know about the run.

    Attributes:
        servers:       Ordered servers to compare.
        column_width:  Width of each per-server report column.
        suffix:        LDAP suffix substituted into check search bases.
        domain:        DNS domain, if known.
        workers:       Size of the worker pool shared by all checks.
        deadline:      Seconds after which unfinished queries count as ERROR;
                       None waits for every query to finish on its own.
        strict:        Judge a check FAIL when every server returned ERROR.
    """

    servers: Tuple[ServerIdentity, ...]
    column_width: int
    suffix: str
    domain: Optional[str] = None
    workers: int = DEFAULT_WORKERS
    deadline: Optional[float] = None
    strict: bool = False

    @classmethod
    def build(
        cls,
        server_set: ServerSet,
        suffix: Optional[str] = None,
        domain: Optional[str] = None,
        **kwargs,
    ) -> "RunContext":
        """Create a context from a resolved ``ServerSet``.

        The suffix defaults to one derived from ``domain``, or from the first
        server's domain part when no domain was given.
        """
        if not suffix:
            source = domain
            if not source and server_set.servers:
                source = server_set.servers[0].fqdn.partition(".")[2]
            suffix = suffix_from_domain(source or "")
        return cls(
            servers=tuple(server_set.servers),
            column_width=server_set.column_width,
            suffix=suffix,
            domain=domain,
            **kwargs,
        )
