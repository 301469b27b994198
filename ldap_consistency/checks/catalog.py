"""The fixed, ordered catalog of consistency checks.

Each entry keeps the exact search base, filter, attribute and scope used
against every server.  ``CATALOG`` order is the report display order.
"""

import re
from typing import Dict, List

from .base import CheckDefinition
from .consistency import NA, NO, YES
from .replication import ReplicationCheck

# An RUV element without a URL belongs to a replica that no longer exists
_GHOST_RUV = re.compile(r"\{replica \d+\}")

GHOST_FILTER = "(&(objectclass=nstombstone)(nsUniqueId=ffffffff-ffffffff-ffffffff-ffffffff))"


def has_ghost_replica(values: List[str]) -> str:
    return YES if any(_GHOST_RUV.search(v) for v in values) else NO


def anonymous_bind_enabled(values: List[str]) -> str:
    return YES if values and values[0].strip().lower() == "on" else NO


def present(values: List[str]) -> str:
    return YES if values else NO


CATALOG: List[CheckDefinition] = [
    CheckDefinition("users", "Active Users",
                    "cn=users,cn=accounts,{suffix}", "(objectClass=person)"),
    CheckDefinition("susers", "Stage Users",
                    "cn=staged users,cn=accounts,cn=provisioning,{suffix}", "(objectClass=person)"),
    CheckDefinition("pusers", "Preserved Users",
                    "cn=deleted users,cn=accounts,cn=provisioning,{suffix}", "(objectClass=person)"),
    CheckDefinition("hosts", "Hosts",
                    "cn=computers,cn=accounts,{suffix}", "(fqdn=*)"),
    CheckDefinition("ugroups", "User Groups",
                    "cn=groups,cn=accounts,{suffix}", "(objectClass=ipausergroup)"),
    CheckDefinition("hgroups", "Host Groups",
                    "cn=hostgroups,cn=accounts,{suffix}", "(objectClass=ipahostgroup)"),
    CheckDefinition("hbac", "HBAC Rules",
                    "cn=hbac,{suffix}", "(objectClass=ipahbacrule)"),
    CheckDefinition("sudo", "SUDO Rules",
                    "cn=sudorules,cn=sudo,{suffix}", "(objectClass=ipasudorule)"),
    # Servers without a CA have no certificate repository
    CheckDefinition("certs", "Certificates",
                    "ou=certificateRepository,ou=ca,o=ipaca", "(certStatus=*)",
                    missing=NA),
    CheckDefinition("conflicts", "LDAP Conflicts",
                    "{suffix}", "(nsds5ReplConflict=*)",
                    attribute="nsds5ReplConflict", scope="sub"),
    CheckDefinition("ghosts", "Ghost Replicas",
                    "{suffix}", GHOST_FILTER,
                    attribute="nsds50ruv", scope="sub",
                    reduce=has_ghost_replica, expected=NO),
    CheckDefinition("bind", "Anonymous BIND",
                    "cn=config", "(objectClass=*)",
                    attribute="nsslapd-allow-anonymous-access", scope="base",
                    reduce=anonymous_bind_enabled, expected=NO),
    CheckDefinition("msdcs", "Microsoft ADTrust",
                    "cn=dns,{suffix}", "(idnsName=_kerberos._tcp.dc._msdcs)",
                    scope="sub", reduce=present),
    ReplicationCheck("replicas", "Replication Status"),
]

# Alternate spellings accepted on the command line
ALIASES: Dict[str, str] = {
    "msdscs": "msdcs",
}


def check_names(include_aliases: bool = False) -> List[str]:
    names = [c.name for c in CATALOG]
    if include_aliases:
        names.extend(ALIASES)
    return names


def get_check(name: str) -> CheckDefinition:
    """Look up a catalog entry by name or alias.

    Raises:
        KeyError: unknown name.
    """
    name = ALIASES.get(name, name)
    for check in CATALOG:
        if check.name == name:
            return check
    raise KeyError(name)
