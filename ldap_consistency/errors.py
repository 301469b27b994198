"""Exception hierarchy for ldap-consistency.

Fatal errors (``ConfigError``, ``DiscoveryError``, ``AuthError``) stop the run
before any check executes.  ``DirectoryError`` is raised by the directory
client for a single server and is always converted to a sentinel value by the
check executor.
"""


class ConsistencyError(Exception):
    """Base class for all ldap-consistency errors."""


class ConfigError(ConsistencyError):
    """Invalid thresholds, missing domain, or an empty server set."""


class DiscoveryError(ConfigError):
    """SRV discovery failed and no explicit server list was given."""


class AuthError(ConsistencyError):
    """No server accepted the bind credentials."""


class DirectoryError(ConsistencyError):
    """A query against one server failed (connection, auth, timeout, ...)."""

    def __init__(self, server: str, message: str):
        super().__init__(f"{server}: {message}")
        self.server = server
        self.message = message


class NoSuchObject(DirectoryError):
    """The search base does not exist on the server."""
