"""Check definitions and results.

A ``CheckDefinition`` pairs a per-server directory query with a consistency
policy.  The executor calls ``collect()`` once per server, then ``evaluate()``
on the joined values; the report calls ``rows()`` to lay the result out.
"""

import logging
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, NamedTuple, Optional, Tuple

from ..directory import DN
from ..errors import DirectoryError, NoSuchObject
from ..servers import ServerIdentity
from . import consistency
from .consistency import ERROR

logger = logging.getLogger(__name__)


class Row(NamedTuple):
    """One rendered report line: label, one cell per server, and its state."""

    label: str
    cells: List[str]
    state: str


class CheckResult:
    """Per-server values of one check plus its verdict.

    ``values`` holds exactly one entry per server, in server order, and is
    read-only once built.
    """

    def __init__(self, definition: "CheckDefinition",
                 values: Mapping[ServerIdentity, Any], verdict: str):
        self.definition = definition
        self.values = MappingProxyType(dict(values))
        self.verdict = verdict

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def label(self) -> str:
        return self.definition.label

    @property
    def servers(self) -> Tuple[ServerIdentity, ...]:
        return tuple(self.values)

    @property
    def passed(self) -> bool:
        return self.verdict == consistency.OK

    def rows(self, width: Optional[int] = None) -> List[Row]:
        return self.definition.rows(self, width)

    def __repr__(self) -> str:
        return f"CheckResult({self.name!r}, verdict={self.verdict!r})"


class CheckDefinition:
    """A named scalar check: one LDAP query per server reduced to a value.

    Args:
        name:       Short identifier used on the command line (e.g. ``users``).
        label:      Human label shown in reports (e.g. ``Active Users``).
        base:       Search base template; ``{suffix}`` and ``{domain}`` are filled in.
        filterstr:  LDAP filter.
        attribute:  Attribute to read, or ``dn`` to count entries.
        scope:      ``base``, ``one`` or ``sub``.
        reduce:     Turns the list of returned values into the per-server value.
        expected:   Safe value the servers must also agree on, if any.
        missing:    Value recorded when the search base does not exist.
    """

    def __init__(
        self,
        name: str,
        label: str,
        base: str,
        filterstr: str,
        attribute: str = DN,
        scope: str = "one",
        reduce: Callable[[List[str]], Any] = len,
        expected: Optional[Any] = None,
        missing: Any = ERROR,
    ):
        self.name = name
        self.label = label
        self.base = base
        self.filterstr = filterstr
        self.attribute = attribute
        self.scope = scope
        self.reduce = reduce
        self.expected = expected
        self.missing = missing

    def search_base(self, ctx) -> str:
        return self.base.format(suffix=ctx.suffix, domain=ctx.domain or "")

    def collect(self, client, server: ServerIdentity, ctx) -> Any:
        """Query one server.  Never raises for directory failures."""
        base = self.search_base(ctx)
        try:
            values = client.query(server.fqdn, base, self.filterstr, self.attribute, self.scope)
        except NoSuchObject as exc:
            if self.missing == ERROR:
                logger.warning("%s: %s", self.name, exc)
            return self.missing
        except DirectoryError as exc:
            logger.warning("%s: %s", self.name, exc)
            return ERROR
        return self.reduce(values)

    def unavailable(self) -> Any:
        """Value recorded when the query could not complete at all."""
        return ERROR

    def evaluate(self, values: Mapping[ServerIdentity, Any], strict: bool = False) -> str:
        return consistency.evaluate(values.values(), expected=self.expected, strict=strict)

    def rows(self, result: CheckResult, width: Optional[int] = None) -> List[Row]:
        cells = [str(result.values[server]) for server in result.servers]
        return [Row(self.label, cells, result.verdict)]

    def to_json(self, value: Any) -> Any:
        return value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
