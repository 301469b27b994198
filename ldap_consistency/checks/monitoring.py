"""Nagios-style status derivation.

Pure functions: check verdicts plus warning/critical thresholds in, a status
level and exit code out.
"""

from typing import Iterable

from ..errors import ConfigError
from .consistency import OK as CHECK_OK

OK = "OK"
WARNING = "WARNING"
CRITICAL = "CRITICAL"
UNKNOWN = "UNKNOWN"

EXIT_CODES = {
    OK: 0,
    WARNING: 1,
    CRITICAL: 2,
    UNKNOWN: 3,
}


class MonitoringVerdict:
    """A monitoring status level, its exit code and a one-line message."""

    def __init__(self, level: str, message: str):
        self.level = level
        self.exit_code = EXIT_CODES[level]
        self.message = message

    def __str__(self) -> str:
        return f"{self.level} - {self.message}"

    def __repr__(self) -> str:
        return f"MonitoringVerdict({self.level!r}, {self.message!r})"


def validate_thresholds(warning: int, critical: int, total: int) -> None:
    """Reject thresholds outside ``0..total`` or with critical below warning.

    Raises:
        ConfigError: on any violation.
    """
    if not 0 <= warning <= total:
        raise ConfigError(f"Warning threshold must be between 0 and {total}, got {warning}")
    if not 0 <= critical <= total:
        raise ConfigError(f"Critical threshold must be between 0 and {total}, got {critical}")
    if critical < warning:
        raise ConfigError(
            f"Critical threshold ({critical}) must not be lower than warning threshold ({warning})"
        )


def evaluate_all(verdicts: Iterable[str], warning: int, critical: int) -> MonitoringVerdict:
    """Status for the whole catalog from the number of failing checks."""
    verdicts = list(verdicts)
    total = len(verdicts)
    passed = sum(1 for v in verdicts if v == CHECK_OK)
    fails = total - passed
    message = f"{passed}/{total} checks passed"

    if fails < warning:
        return MonitoringVerdict(OK, message)
    elif warning <= fails < critical:
        return MonitoringVerdict(WARNING, message)
    elif fails >= critical:
        return MonitoringVerdict(CRITICAL, message)
    return MonitoringVerdict(UNKNOWN, message)


def evaluate_single(label: str, verdict: str) -> MonitoringVerdict:
    """Status for one named check: OK if it passed, CRITICAL otherwise."""
    if verdict == CHECK_OK:
        return MonitoringVerdict(OK, label)
    return MonitoringVerdict(CRITICAL, label)
