"""Thin LDAP abstraction for querying directory servers.

Built on ``python-ldap``.  Every call opens its own connection, binds, runs a
single search and unbinds, so one ``DirectoryClient`` can be shared across
worker threads without locking.

Key behaviors:
- ``search()`` returns decoded ``(dn, attributes)`` pairs, skipping referrals
- ``query()`` flattens one attribute (or the entry DN) across all entries
- ``try_bind()`` tests a credential against one server without raising
- Failures surface as ``DirectoryError``; a missing search base as ``NoSuchObject``
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import ldap

from .errors import DirectoryError, NoSuchObject

logger = logging.getLogger(__name__)

SCOPES = {
    "base": ldap.SCOPE_BASE,
    "one": ldap.SCOPE_ONELEVEL,
    "sub": ldap.SCOPE_SUBTREE,
}

# Pseudo-attribute meaning "the entry DN itself"
DN = "dn"
# LDAP "no attributes" selector (RFC 4511 section 4.5.1.8)
_NO_ATTRS = "1.1"

Entry = Tuple[str, Dict[str, List[str]]]


class DirectoryClient:
    """LDAP client for per-server directory queries.

    Args:
        binddn:    DN to bind as; anonymous when empty.
        password:  Bind password.
        timeout:   Network and operation timeout in seconds.
        ldaps:     Connect with ``ldaps://`` instead of ``ldap://``.
    """

    def __init__(
        self,
        binddn: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10,
        ldaps: bool = False,
    ):
        self.binddn = binddn
        self.password = password
        self.timeout = timeout
        self.scheme = "ldaps" if ldaps else "ldap"

    # -- Public API ----------------------------------------------------------

    def search(
        self,
        server: str,
        base: str,
        filterstr: str,
        attributes: Sequence[str],
        scope: str = "sub",
    ) -> List[Entry]:
        """Search one server and return ``(dn, {attribute: [values]})`` pairs.

        Attribute names keep the server's casing; values are decoded as UTF-8.

        Raises:
            NoSuchObject: ``base`` does not exist on the server.
            DirectoryError: any other LDAP failure.
        """
        if scope not in SCOPES:
            raise ValueError(f"Unknown search scope: {scope!r}")
        attrlist = [a for a in attributes if a.lower() != DN] or [_NO_ATTRS]

        conn = self._connect(server, self.binddn, self.password)
        try:
            raw = conn.search_s(base, SCOPES[scope], filterstr, attrlist)
        except ldap.NO_SUCH_OBJECT as exc:
            raise NoSuchObject(server, f"no such object: {base}") from exc
        except ldap.LDAPError as exc:
            raise DirectoryError(server, _describe(exc)) from exc
        finally:
            _unbind(conn)

        entries: List[Entry] = []
        for dn, attrs in raw:
            if dn is None:
                continue  # search continuation reference
            entries.append((dn, {
                key: [v.decode("utf-8", errors="replace") for v in values]
                for key, values in (attrs or {}).items()
            }))
        logger.debug("%s: %s %s -> %d entries", server, base, filterstr, len(entries))
        return entries

    def query(
        self,
        server: str,
        base: str,
        filterstr: str,
        attribute: str,
        scope: str = "sub",
    ) -> List[str]:
        """Return every value of ``attribute`` across matching entries.

        ``attribute="dn"`` returns one DN per entry, so ``len()`` of the result
        is the entry count.
        """
        values: List[str] = []
        for dn, attrs in self.search(server, base, filterstr, [attribute], scope):
            if attribute.lower() == DN:
                values.append(dn)
            else:
                values.extend(attribute_values(attrs, attribute))
        return values

    def try_bind(self, server: str, binddn: Optional[str] = None,
                 password: Optional[str] = None) -> bool:
        """Return True if ``server`` accepts the credential."""
        binddn = self.binddn if binddn is None else binddn
        password = self.password if password is None else password
        try:
            conn = self._connect(server, binddn, password)
        except DirectoryError as exc:
            logger.debug("Bind to %s as %s failed: %s", server, binddn, exc.message)
            return False
        _unbind(conn)
        return True

    # -- Internals -----------------------------------------------------------

    def _connect(self, server: str, binddn: Optional[str], password: Optional[str]):
        """Open and bind a connection to ``server``."""
        uri = f"{self.scheme}://{server}"
        conn = None
        try:
            conn = ldap.initialize(uri)
            conn.protocol_version = ldap.VERSION3
            conn.set_option(ldap.OPT_REFERRALS, 0)
            conn.set_option(ldap.OPT_NETWORK_TIMEOUT, self.timeout)
            conn.set_option(ldap.OPT_TIMEOUT, self.timeout)
            if binddn:
                conn.simple_bind_s(binddn, password or "")
            else:
                conn.simple_bind_s()
        except ldap.LDAPError as exc:
            if conn is not None:
                _unbind(conn)
            raise DirectoryError(server, _describe(exc)) from exc
        return conn


def attribute_values(attrs: Dict[str, List[str]], name: str) -> List[str]:
    """Case-insensitive attribute lookup on a decoded entry."""
    lower = name.lower()
    for key, values in attrs.items():
        if key.lower() == lower:
            return values
    return []


def _describe(exc: Exception) -> str:
    """Extract the human-readable description from a python-ldap error."""
    info = exc.args[0] if exc.args else None
    if isinstance(info, dict):
        desc = info.get("desc", "")
        extra = info.get("info", "")
        return f"{desc} ({extra})" if extra else desc or str(exc)
    return str(exc) or exc.__class__.__name__


def _unbind(conn) -> None:
    try:
        conn.unbind_s()
    except ldap.LDAPError:
        pass
