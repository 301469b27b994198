"""Formats check results as a fixed-width terminal table or structured JSON.

Two output modes are supported:

- **Terminal**: one column per server plus a trailing STATE column, one line
  per check (several for replication status), with ``=`` rules under the
  header and after the last line.  STATE is colored when stdout is a TTY.
- **JSON**: machine-readable output with ``summary``, ``servers`` and
  ``checks`` keys, suitable for scripts and dashboards.
"""

import json
import sys
from typing import Any, Dict, List, Sequence

from ..servers import ServerIdentity
from .base import CheckResult
from .consistency import FAIL, OK

LABEL_WIDTH = 20
STATE_WIDTH = 5
HEADER_LABEL = "LDAP servers:"
STATE_HEADER = "STATE"


def _colorize(text: str, color: str) -> str:
    """Apply ANSI color codes.  Returns plain text when stdout is not a TTY."""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "reset": "\033[0m",
    }
    if not sys.stdout.isatty():
        return text
    return f"{colors.get(color, '')}{text}{colors['reset']}"


_STATE_COLORS = {
    OK: "green",
    FAIL: "red",
}


def table_width(server_count: int, column_width: int) -> int:
    return LABEL_WIDTH + server_count * column_width + STATE_WIDTH


def _line(label: str, cells: Sequence[str], state: str, column_width: int,
          color: bool = False) -> str:
    state_cell = state.ljust(STATE_WIDTH)
    if color:
        state_cell = _colorize(state_cell, _STATE_COLORS.get(state, "dim"))
    # Cells never spill into the next column
    return (
        label.ljust(LABEL_WIDTH)
        + "".join(cell[:column_width].ljust(column_width) for cell in cells)
        + state_cell
    )


def render_table(
    results: List[CheckResult],
    servers: Sequence[ServerIdentity],
    column_width: int,
    color: bool = False,
) -> List[str]:
    """Build the report table as a list of lines, in ``results`` order."""
    rule = "=" * table_width(len(servers), column_width)
    lines = [
        _line(HEADER_LABEL, [s.short for s in servers], STATE_HEADER, column_width),
        rule,
    ]
    for result in results:
        for row in result.rows(column_width):
            lines.append(_line(row.label, row.cells, row.state, column_width, color=color))
    lines.append(rule)
    return lines


def print_results(
    results: List[CheckResult],
    servers: Sequence[ServerIdentity],
    column_width: int,
    json_output: bool = False,
    version: str = "",
    timestamp: str = "",
):
    """Print the full report in terminal or JSON format."""
    if json_output:
        _print_json(results, servers, version=version, timestamp=timestamp)
    else:
        for line in render_table(results, servers, column_width, color=True):
            print(line)


def to_dict(
    results: List[CheckResult],
    servers: Sequence[ServerIdentity],
    version: str = "",
    timestamp: str = "",
) -> Dict[str, Any]:
    """Structured form of the report."""
    passed = sum(1 for r in results if r.passed)
    return {
        "version": version,
        "timestamp": timestamp,
        "servers": [s.fqdn for s in servers],
        "summary": {
            "total": len(results),
            "passed": passed,
            "failed": len(results) - passed,
        },
        "checks": [
            {
                "name": r.name,
                "label": r.label,
                "state": r.verdict,
                "values": {
                    s.short: r.definition.to_json(r.values[s]) for s in r.servers
                },
            }
            for r in results
        ],
    }


def _print_json(
    results: List[CheckResult],
    servers: Sequence[ServerIdentity],
    version: str = "",
    timestamp: str = "",
):
    print(json.dumps(to_dict(results, servers, version=version, timestamp=timestamp), indent=2))
