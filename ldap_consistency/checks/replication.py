"""Replication agreement status check.

Unlike the scalar checks, each server reports a list of agreements (one per
replication peer) and the lists may differ in length between servers.  The
report spans as many lines as the longest list; there is no cross-server
comparison, only a test for ``ERROR`` cells on each line.
"""

import logging
import re
from typing import Any, List, Mapping, NamedTuple, Optional

from ..directory import attribute_values
from ..errors import DirectoryError
from ..servers import ServerIdentity
from .base import CheckDefinition, CheckResult, Row
from .consistency import ERROR, FAIL, OK

logger = logging.getLogger(__name__)

BUSY = "BUSY"

AGREEMENT_BASE = "cn=mapping tree,cn=config"
AGREEMENT_FILTER = "(objectClass=nsds5ReplicationAgreement)"
PEER_ATTR = "nsDS5ReplicaHost"
STATUS_ATTR = "nsds5replicaLastUpdateStatus"

# "Error (0) Replica acquired successfully: ..." or the older "0 Replica acquired ..."
_STATUS_CODE = re.compile(r"^\s*(?:Error\s*\()?\s*(-?\d+)")


class Agreement(NamedTuple):
    """One replication agreement as seen from a server."""

    peer: str
    status: str

    def render(self, width: Optional[int] = None) -> str:
        """``"<peer short name> <status>"``, shortened to leave a gap in ``width``.

        The status token is never cut; the peer name is shortened first and
        dropped entirely when not even one character of it fits.
        """
        if not self.peer:
            return self.status
        short = self.peer.split(".", 1)[0]
        text = f"{short} {self.status}"
        if width is None or len(text) < width:
            return text
        room = width - len(self.status) - 2
        if room < 1:
            return self.status
        return f"{short[:room]} {self.status}"


# Recorded for a server that could not be queried at all
UNREACHABLE = Agreement("", ERROR)


def parse_update_status(text: str) -> str:
    """Reduce an ``nsds5replicaLastUpdateStatus`` value to OK, BUSY or ERROR."""
    match = _STATUS_CODE.match(text or "")
    if not match:
        return ERROR
    code = int(match.group(1))
    if code == 0:
        return OK
    if code == 1:
        return BUSY
    return ERROR


def replication_rows(
    label: str,
    values: Mapping[ServerIdentity, List[Agreement]],
    width: Optional[int] = None,
) -> List[Row]:
    """Lay per-server agreement lists out as report rows.

    Row ``i`` holds each server's ``i``-th agreement, or a blank cell when the
    server has fewer.  A row is FAIL if any of its agreements is ``ERROR``.
    Only the first row carries the label.  With ``width``, cells are rendered
    to fit a report column of that width.
    """
    servers = list(values)
    height = max((len(values[s]) for s in servers), default=0)
    rows: List[Row] = []
    for i in range(height):
        cells = []
        failed = False
        for server in servers:
            agreements = values[server]
            if i < len(agreements):
                cells.append(agreements[i].render(width))
                failed = failed or agreements[i].status == ERROR
            else:
                cells.append("")
        rows.append(Row(label if i == 0 else "", cells, FAIL if failed else OK))
    return rows


class ReplicationCheck(CheckDefinition):
    """Collects replication agreements and flags any in an error state."""

    def __init__(self, name: str = "replicas", label: str = "Replication Status"):
        super().__init__(
            name, label, AGREEMENT_BASE, AGREEMENT_FILTER,
            attribute=STATUS_ATTR, scope="sub",
        )

    def collect(self, client, server: ServerIdentity, ctx) -> List[Agreement]:
        try:
            entries = client.search(
                server.fqdn, self.search_base(ctx), self.filterstr,
                [PEER_ATTR, STATUS_ATTR], self.scope,
            )
        except DirectoryError as exc:
            logger.warning("%s: %s", self.name, exc)
            return [UNREACHABLE]

        agreements = []
        for dn, attrs in entries:
            peers = attribute_values(attrs, PEER_ATTR)
            statuses = attribute_values(attrs, STATUS_ATTR)
            raw = statuses[0] if statuses else ""
            status = parse_update_status(raw)
            if status == ERROR:
                logger.warning("%s: %s agreement %s: %s", self.name, server, dn, raw or "no status")
            agreements.append(Agreement(peers[0] if peers else dn, status))
        return sorted(agreements)

    def unavailable(self) -> List[Agreement]:
        return [UNREACHABLE]

    def evaluate(self, values: Mapping[ServerIdentity, Any], strict: bool = False) -> str:
        rows = replication_rows(self.label, values)
        return FAIL if any(row.state == FAIL for row in rows) else OK

    def rows(self, result: CheckResult, width: Optional[int] = None) -> List[Row]:
        return replication_rows(self.label, result.values, width)

    def to_json(self, value: List[Agreement]) -> Any:
        return [{"peer": a.peer, "status": a.status} for a in value]
