"""CLI interface for ldap-consistency using Click."""

import logging
import sys
from typing import Optional

import click

from . import __version__
from .checks.catalog import CATALOG, check_names
from .checks.monitoring import EXIT_CODES, UNKNOWN, validate_thresholds
from .checks.runner import DEFAULT_CRITICAL, DEFAULT_WARNING, run_consistency
from .context import DEFAULT_BINDDN, DEFAULT_TIMEOUT, DEFAULT_WORKERS, RunContext
from .directory import DirectoryClient
from .errors import ConfigError, ConsistencyError
from .servers import discover_servers, resolve_servers, split_hosts

logger = logging.getLogger("ldap_consistency")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def _colorize(text: str, color: str) -> str:
    """Colorize text using ANSI codes when stderr is a terminal."""
    colors = {
        "red": "\033[91m",
        "reset": "\033[0m",
    }
    if not sys.stderr.isatty():
        return text
    return f"{colors.get(color, '')}{text}{colors['reset']}"


def _print_error(message: str):
    """Print a fatal error to stderr."""
    click.echo(_colorize(f"Error: {message}", "red"), err=True)


def _setup_logging(verbose: bool, nagios: bool) -> None:
    """Send log records to stderr; monitoring mode only shows errors."""
    if verbose:
        level = logging.DEBUG
    elif nagios:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger.setLevel(level)
    # Repeated main() calls in one process must not stack handlers
    for old in list(logger.handlers):
        logger.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)


def _read_password(password: Optional[str], password_file: Optional[str], nagios: bool) -> str:
    """Pick the bind password from the option, a file, or an interactive prompt."""
    if password:
        return password
    if password_file:
        with open(password_file, "r") as f:
            return f.readline().rstrip("\r\n")
    if nagios:
        raise ConfigError("A bind password (-W or -P) is required in monitoring mode")
    return click.prompt("Bind password", hide_input=True)


def _checks_help() -> str:
    return ", ".join(f"{c.name} ({c.label})" for c in CATALOG)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-H", "--hosts", help="Servers to compare, space or comma separated")
@click.option("-d", "--domain", help="DNS domain for short names and SRV discovery")
@click.option("-s", "--suffix", help="LDAP suffix (default: derived from the domain)")
@click.option("-D", "--binddn", default=DEFAULT_BINDDN, show_default=True,
              envvar="LDAP_CONSISTENCY_BINDDN", help="Bind DN")
@click.option("-W", "--password", envvar="LDAP_CONSISTENCY_PASSWORD", help="Bind password")
@click.option("-P", "--password-file", type=click.Path(exists=True, dir_okay=False),
              help="Read the bind password from the first line of a file")
@click.option("-n", "--nagios", is_flag=True, help="Monitoring plugin mode (status line + exit code)")
@click.option("--check", "check", type=click.Choice(check_names(include_aliases=True)),
              help=f"Run a single check only: {_checks_help()}")
@click.option("-w", "--warning", type=int, default=DEFAULT_WARNING, show_default=True,
              help="Failing checks for WARNING status")
@click.option("-c", "--critical", type=int, default=DEFAULT_CRITICAL, show_default=True,
              help="Failing checks for CRITICAL status")
@click.option("--json", "json_output", is_flag=True, help="Print the report as JSON")
@click.option("--strict", is_flag=True, help="Treat a check failing on every server as FAIL")
@click.option("--timeout", type=float, default=DEFAULT_TIMEOUT, show_default=True,
              help="Per-query timeout in seconds")
@click.option("--workers", type=click.IntRange(min=1), default=DEFAULT_WORKERS,
              show_default=True, help="Maximum concurrent queries")
@click.option("--deadline", type=float, help="Seconds after which unanswered queries count as ERROR")
@click.option("--ldaps", is_flag=True, help="Connect with ldaps:// instead of ldap://")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr")
@click.version_option(version=__version__)
def main(
    hosts: Optional[str],
    domain: Optional[str],
    suffix: Optional[str],
    binddn: str,
    password: Optional[str],
    password_file: Optional[str],
    nagios: bool,
    check: Optional[str],
    warning: int,
    critical: int,
    json_output: bool,
    strict: bool,
    timeout: float,
    workers: int,
    deadline: Optional[float],
    ldaps: bool,
    verbose: bool,
):
    """Compare replicated LDAP identity servers and report any divergence.

    Servers are taken from --hosts, or discovered from the _ldap._tcp SRV
    record of --domain.

    Examples:

    \b
      ldap-consistency -d example.com -W secret
      ldap-consistency -H "srv1 srv2" -d example.com -P ~/.ldap-pw
      ldap-consistency -d example.com -P pw.txt -n -w 1 -c 3
      ldap-consistency -d example.com -P pw.txt -n --check replicas
    """
    _setup_logging(verbose, nagios)

    try:
        # Before any DNS lookup, password prompt or bind
        validate_thresholds(warning, critical, len(CATALOG))
        server_set = resolve_servers(split_hosts(hosts), domain, lookup=discover_servers)
        bind_password = _read_password(password, password_file, nagios)
        ctx = RunContext.build(
            server_set,
            suffix=suffix,
            domain=domain,
            workers=workers,
            deadline=deadline,
            strict=strict,
        )
        logger.debug("Servers: %s; suffix: %s", ", ".join(s.fqdn for s in ctx.servers), ctx.suffix)
        client = DirectoryClient(binddn=binddn, password=bind_password, timeout=timeout, ldaps=ldaps)
        exit_code = run_consistency(
            ctx,
            client,
            nagios=nagios,
            check=check,
            warning=warning,
            critical=critical,
            json_output=json_output,
        )
    except ConsistencyError as e:
        _print_error(str(e))
        if nagios:
            # The monitoring system reads the status line from stdout
            click.echo(f"{UNKNOWN} - {e}")
            sys.exit(EXIT_CODES[UNKNOWN])
        sys.exit(1)
    except Exception as e:
        if not nagios:
            raise
        logger.exception("Unexpected failure")
        click.echo(f"{UNKNOWN} - {e}")
        sys.exit(EXIT_CODES[UNKNOWN])

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
