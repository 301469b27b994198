"""ldap-consistency: compare replicated LDAP identity servers for divergence.

Runs a fixed catalog of checks (entry counts, replication conflicts, ghost
replicas, anonymous bind exposure, replication agreement status, ...) against
every server in parallel and reports whether the replicas agree.  Output is
either a bordered table for humans or a Nagios-style status line and exit code
for monitoring systems.
"""

__version__ = "0.3.0"
