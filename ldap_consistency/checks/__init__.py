"""Consistency checks run against every replica of an LDAP identity backend.

This package holds the check catalog (entry counts, replication conflicts,
ghost replicas, anonymous bind, AD trust records, replication agreements),
the concurrent executor that fans each check out to all servers, and the
table, JSON and monitoring outputs built from the joined results.

Entry point: ``ldap_consistency.checks.runner.run_consistency()``
"""
