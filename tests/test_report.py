"""Tests for the fixed-width table layout and the JSON report structure."""

from ldap_consistency.checks.base import CheckResult
from ldap_consistency.checks.catalog import get_check
from ldap_consistency.checks.consistency import ERROR, FAIL, OK
from ldap_consistency.checks.replication import BUSY, UNREACHABLE, Agreement
from ldap_consistency.checks.report import render_table, table_width, to_dict
from ldap_consistency.servers import resolve_servers

SERVERS = resolve_servers(["ipa1", "ipa2"], "example.com")
IPA1, IPA2 = SERVERS.servers


def _result(name, values, verdict):
    return CheckResult(get_check(name), dict(zip(SERVERS.servers, values)), verdict)


class TestTable:

    def test_column_widths(self):
        lines = render_table([_result("users", [10, 10], OK)], SERVERS.servers, SERVERS.column_width)
        assert lines == [
            "LDAP servers:       ipa1    ipa2    STATE",
            "=" * 41,
            "Active Users        10      10      OK   ",
            "=" * 41,
        ]

    def test_table_width(self):
        assert table_width(2, 8) == 20 + 16 + 5
        assert table_width(3, 5) == 40

    def test_rules_surround_all_rows(self):
        results = [
            _result("users", [10, 11], FAIL),
            _result("bind", ["NO", "NO"], OK),
        ]
        lines = render_table(results, SERVERS.servers, SERVERS.column_width)
        assert len(lines) == 5
        assert lines[1] == lines[-1] == "=" * 41
        assert lines[2].endswith("FAIL ")
        assert lines[3].startswith("Anonymous BIND      NO      NO")

    def test_rows_follow_result_order(self):
        results = [_result("hosts", [1, 1], OK), _result("users", [2, 2], OK)]
        lines = render_table(results, SERVERS.servers, SERVERS.column_width)
        assert lines[2].startswith("Hosts")
        assert lines[3].startswith("Active Users")

    def test_replication_spans_rows(self):
        values = [
            [Agreement("ipa2.example.com", OK), Agreement("ipa3.example.com", OK)],
            [Agreement("ipa1.example.com", ERROR)],
        ]
        lines = render_table([_result("replicas", values, FAIL)], SERVERS.servers, SERVERS.column_width)
        assert lines[2] == "Replication Status  ipa2 OK i ERROR FAIL "
        assert lines[3] == "                    ipa3 OK         OK   "
        assert lines[4] == "=" * 41

    def test_error_agreements_keep_fixed_width(self):
        values = [
            [Agreement("ipa2.example.com", ERROR), Agreement("ipa3.example.com", BUSY)],
            [Agreement("ipa1.example.com", ERROR), UNREACHABLE],
        ]
        lines = render_table([_result("replicas", values, FAIL)], SERVERS.servers, SERVERS.column_width)
        rule = lines[1]
        assert all(len(line) == len(rule) for line in lines)
        assert lines[2] == "Replication Status  i ERROR i ERROR FAIL "
        assert lines[3] == "                    ip BUSY ERROR   FAIL "

    def test_oversized_value_is_clipped_to_its_column(self):
        lines = render_table([_result("users", [123456789, 10], FAIL)],
                             SERVERS.servers, SERVERS.column_width)
        assert lines[2] == "Active Users        1234567810      FAIL "
        assert len(lines[2]) == len(lines[1])

    def test_long_hostnames_leave_room_for_full_cells(self):
        servers = resolve_servers(["replica-east", "replica-west"], "example.com")
        east, west = servers.servers
        values = {
            east: [Agreement("replica-west.example.com", ERROR)],
            west: [Agreement("replica-east.example.com", OK)],
        }
        result = CheckResult(get_check("replicas"), values, FAIL)
        lines = render_table([result], servers.servers, servers.column_width)
        assert servers.column_width == 16
        assert lines[2] == (
            "Replication Status  "
            + "replica-w ERROR ".ljust(16)
            + "replica-east OK ".ljust(16)
            + "FAIL "
        )
        assert len(lines[2]) == len(lines[1])


class TestJson:

    def test_summary_and_values(self):
        results = [
            _result("users", [10, 11], FAIL),
            _result("certs", ["N/A", "N/A"], OK),
        ]
        data = to_dict(results, SERVERS.servers, version="1.0", timestamp="now")
        assert data["summary"] == {"total": 2, "passed": 1, "failed": 1}
        assert data["servers"] == ["ipa1.example.com", "ipa2.example.com"]
        assert data["checks"][0] == {
            "name": "users",
            "label": "Active Users",
            "state": FAIL,
            "values": {"ipa1": 10, "ipa2": 11},
        }
        assert data["checks"][1]["values"] == {"ipa1": "N/A", "ipa2": "N/A"}
