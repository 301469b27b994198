"""Value tokens, verdicts and the "do all servers agree" evaluator.

A per-server value is an integer count, one of the tokens below, or (for the
replication check only) a list of agreements.  Sentinel tokens take part in
comparisons as ordinary values, so one server answering ``ERROR`` while the
others answer ``42`` is a disagreement.
"""

from typing import Any, Iterable, Optional

# Per-server value tokens
YES = "YES"
NO = "NO"
ERROR = "ERROR"
NA = "N/A"

# Check verdicts
OK = "OK"
FAIL = "FAIL"


def all_equal(values: Iterable[Any]) -> bool:
    """True if every value is exactly equal to every other (vacuously for none)."""
    iterator = iter(values)
    try:
        first = next(iterator)
    except StopIteration:
        return True
    return all(v == first and type(v) is type(first) for v in iterator)


def evaluate(
    values: Iterable[Any],
    expected: Optional[Any] = None,
    strict: bool = False,
) -> str:
    """Judge a collected set of per-server values.

    Args:
        values:    One value per server.
        expected:  If set, the agreed value must also equal this safe constant.
        strict:    Treat unanimous ``ERROR`` as FAIL rather than agreement.

    Returns:
        ``OK`` or ``FAIL``.
    """
    values = list(values)
    if not all_equal(values):
        return FAIL
    if not values:
        return OK
    common = values[0]
    if strict and common == ERROR:
        return FAIL
    if expected is not None and common != expected:
        return FAIL
    return OK
