"""Orchestrates a consistency run across all servers.

This is the main entry point for the checks.  ``run_consistency()`` validates
thresholds, confirms the bind credential works somewhere, runs every check in
the catalog against every server, and prints either the table report or a
monitoring status line.  It returns the process exit code.

Concurrency model:
- Every (check, server) pair is one task on a single bounded thread pool
- Each task writes only its own result; results are read after the join
- A check is judged only once all of its server tasks are finished
- Output is produced only once every check is judged
- With a deadline, tasks still running when it passes count as ``ERROR``;
  workers are daemon threads, so abandoned tasks never delay process exit
"""

import datetime
import logging
import queue
import threading
import time
from concurrent.futures import Future, wait
from typing import Any, Callable, Dict, List, Optional, Sequence

from .. import __version__
from ..context import RunContext
from ..errors import AuthError, ConfigError
from ..servers import ServerIdentity
from . import monitoring
from .base import CheckDefinition, CheckResult
from .catalog import CATALOG, get_check
from .report import print_results

logger = logging.getLogger(__name__)

# Monitoring defaults: one failing check warns, two are critical
DEFAULT_WARNING = 1
DEFAULT_CRITICAL = 2


def run_consistency(
    ctx: RunContext,
    client,
    nagios: bool = False,
    check: Optional[str] = None,
    warning: int = DEFAULT_WARNING,
    critical: int = DEFAULT_CRITICAL,
    json_output: bool = False,
    catalog: Sequence[CheckDefinition] = CATALOG,
) -> int:
    """Run the checks and return an exit code.

    Returns:
        Monitoring mode: 0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN.
        Interactive mode: 0 once the report has been printed.

    Args:
        ctx:          Immutable run configuration (servers, suffix, pool size, ...).
        client:       Directory client providing ``query``, ``search`` and ``try_bind``.
        nagios:       Print a single monitoring status line instead of the table.
        check:        Run only this named check (monitoring single-check mode).
        warning:      Number of failing checks that makes the status WARNING.
        critical:     Number of failing checks that makes the status CRITICAL.
        json_output:  Print the report as JSON instead of a table.
        catalog:      Checks to run, in display order.

    Raises:
        ConfigError: thresholds are invalid or ``check`` is unknown.
        AuthError: no server accepted the bind credential.
    """
    # --- Validate everything that needs no server first ----------------------
    monitoring.validate_thresholds(warning, critical, len(catalog))
    selected = [_lookup(check, catalog)] if check else list(catalog)

    validate_credentials(ctx.servers, client)

    run_timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    results = run_checks(ctx, client, selected)

    if nagios:
        if check:
            verdict = monitoring.evaluate_single(results[0].label, results[0].verdict)
        else:
            verdict = monitoring.evaluate_all((r.verdict for r in results), warning, critical)
        print(verdict)
        return verdict.exit_code

    print_results(results, ctx.servers, ctx.column_width, json_output=json_output,
                  version=__version__, timestamp=run_timestamp)
    return 0


def validate_credentials(servers: Sequence[ServerIdentity], client) -> ServerIdentity:
    """Try the bind credential on each server in order; stop at the first success.

    Raises:
        AuthError: every server rejected the bind.
    """
    for server in servers:
        logger.debug("Validating credentials against %s", server)
        if client.try_bind(server.fqdn):
            return server
    raise AuthError("Bind failed on every server; check the bind DN and password")


def run_check(ctx: RunContext, client, check: CheckDefinition) -> CheckResult:
    """Run a single check against every server."""
    return run_checks(ctx, client, [check])[0]


def run_checks(
    ctx: RunContext,
    client,
    checks: Sequence[CheckDefinition] = CATALOG,
) -> List[CheckResult]:
    """Run ``checks`` against every server concurrently.

    Returns one ``CheckResult`` per check in ``checks`` order, each with
    exactly one value per server in ``ctx.servers`` order.
    """
    deadline = None if ctx.deadline is None else time.monotonic() + ctx.deadline
    tasks = len(checks) * len(ctx.servers)
    pool = WorkerPool(max_workers=min(ctx.workers, tasks), thread_name_prefix="check")
    try:
        pending: List[Dict[ServerIdentity, Future]] = [
            {server: pool.submit(_collect, check, client, server, ctx) for server in ctx.servers}
            for check in checks
        ]
        return [
            _join(check, futures, deadline, ctx.strict)
            for check, futures in zip(checks, pending)
        ]
    finally:
        pool.shutdown()


class WorkerPool:
    """Bounded pool of daemon worker threads handing out ``Future`` objects.

    Works like ``ThreadPoolExecutor`` for ``submit()`` and ``wait()``, but its
    threads never hold up interpreter exit, so a query still running when the
    deadline passes cannot keep the process alive.
    """

    def __init__(self, max_workers: int, thread_name_prefix: str = "worker"):
        self._tasks: "queue.SimpleQueue" = queue.SimpleQueue()
        self._threads = [
            threading.Thread(target=self._work, name=f"{thread_name_prefix}_{i}", daemon=True)
            for i in range(max(1, max_workers))
        ]
        for thread in self._threads:
            thread.start()

    def submit(self, fn: Callable[..., Any], *args) -> Future:
        future: Future = Future()
        self._tasks.put((future, fn, args))
        return future

    def shutdown(self) -> None:
        """Let each worker exit once the queue ahead of it is drained; never blocks."""
        for _ in self._threads:
            self._tasks.put(None)

    def _work(self) -> None:
        while True:
            task = self._tasks.get()
            if task is None:
                return
            future, fn, args = task
            # False when cancelled before it started
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args)
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)


# -- Internals ---------------------------------------------------------------

def _lookup(name: str, catalog: Sequence[CheckDefinition]) -> CheckDefinition:
    for check in catalog:
        if check.name == name:
            return check
    try:
        return get_check(name)
    except KeyError:
        raise ConfigError(f"Unknown check: {name}") from None


def _collect(check: CheckDefinition, client, server: ServerIdentity, ctx: RunContext) -> Any:
    """Worker task: query one server for one check, never raising."""
    try:
        return check.collect(client, server, ctx)
    except Exception:
        logger.exception("%s: unexpected failure querying %s", check.name, server)
        return check.unavailable()


def _join(
    check: CheckDefinition,
    futures: Dict[ServerIdentity, Future],
    deadline: Optional[float],
    strict: bool,
) -> CheckResult:
    """Wait for all of one check's server tasks, then judge the check."""
    timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
    done, _ = wait(futures.values(), timeout=timeout)

    values: Dict[ServerIdentity, Any] = {}
    for server, future in futures.items():
        if future in done:
            values[server] = future.result()
        else:
            future.cancel()
            logger.warning("%s: %s did not answer before the deadline", check.name, server)
            values[server] = check.unavailable()

    verdict = check.evaluate(values, strict=strict)
    logger.info("%s: %s", check.label, verdict)
    return CheckResult(check, values, verdict)
