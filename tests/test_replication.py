"""Tests for the replication agreement check and its multi-row layout."""

import pytest
from ldap_consistency.checks.consistency import ERROR, FAIL, OK
from ldap_consistency.checks.replication import (
    BUSY, UNREACHABLE, Agreement, ReplicationCheck, parse_update_status, replication_rows,
)
from ldap_consistency.context import RunContext
from ldap_consistency.servers import resolve_servers
from tests.fake_directory import (
    BUSY_STATUS, FAIL_STATUS, OK_STATUS, SUFFIX, FakeDirectory, ipa_dataset,
)

A = "a.example.com"
B = "b.example.com"
C = "c.example.com"


@pytest.fixture
def ctx():
    return RunContext.build(resolve_servers([A, B, C]), suffix=SUFFIX)


class TestParseUpdateStatus:

    @pytest.mark.parametrize("text,expected", [
        (OK_STATUS, OK),
        ("0 Replica acquired successfully: Incremental update succeeded", OK),
        (BUSY_STATUS, BUSY),
        (FAIL_STATUS, ERROR),
        ("Error (19) Replication error acquiring replica: replica busy", ERROR),
        ("", ERROR),
        ("garbage", ERROR),
    ])
    def test_status_tokens(self, text, expected):
        assert parse_update_status(text) == expected


class TestAgreementRender:

    def test_full_cell_when_it_fits(self):
        assert Agreement("ipa2.example.com", OK).render(8) == "ipa2 OK"
        assert Agreement("ipa2.example.com", ERROR).render() == "ipa2 ERROR"

    def test_peer_shortened_to_leave_a_gap(self):
        cell = Agreement("ipa2.example.com", ERROR).render(8)
        assert cell == "i ERROR"
        assert len(cell) < 8

    def test_status_alone_when_no_peer_fits(self):
        assert Agreement("a.example.com", ERROR).render(6) == "ERROR"
        assert UNREACHABLE.render(5) == "ERROR"

    def test_rows_respect_width(self):
        values = {"srvA": [Agreement("ipa2.example.com", ERROR)], "srvB": [Agreement("ipa1.example.com", BUSY)]}
        rows = replication_rows("Replication Status", values, width=8)
        assert rows[0].cells == ["i ERROR", "ip BUSY"]
        assert rows[0].state == FAIL


class TestReplicationRows:

    def test_uneven_lists_pad_with_blanks(self):
        values = {
            "srvA": [Agreement("b.example.com", OK), Agreement("c.example.com", OK)],
            "srvB": [Agreement("a.example.com", OK)],
        }
        rows = replication_rows("Replication Status", values)
        assert len(rows) == 2
        assert rows[0].cells == ["b OK", "a OK"]
        assert rows[1].cells == ["c OK", ""]
        assert [r.state for r in rows] == [OK, OK]

    def test_only_first_row_is_labelled(self):
        values = {"srvA": [Agreement("b", OK), Agreement("c", OK)]}
        rows = replication_rows("Replication Status", values)
        assert rows[0].label == "Replication Status"
        assert rows[1].label == ""

    def test_error_cell_fails_its_row_only(self):
        values = {
            "srvA": [Agreement("b", OK), Agreement("c", OK)],
            "srvB": [Agreement("a", OK), Agreement("c", ERROR)],
            "srvC": [Agreement("a", OK), Agreement("b", OK)],
        }
        rows = replication_rows("Replication Status", values)
        assert [r.state for r in rows] == [OK, FAIL]

    def test_unreachable_server_renders_bare_error(self):
        values = {"srvA": [Agreement("b", OK)], "srvB": [UNREACHABLE]}
        rows = replication_rows("Replication Status", values)
        assert rows[0].cells == ["b OK", "ERROR"]
        assert rows[0].state == FAIL

    def test_no_cross_server_comparison(self):
        values = {
            "srvA": [Agreement("b", OK), Agreement("c", OK)],
            "srvB": [Agreement("a", BUSY)],
        }
        rows = replication_rows("Replication Status", values)
        assert all(r.state == OK for r in rows)


class TestReplicationCheck:

    def test_collect_sorted_agreements(self, ctx):
        fake = FakeDirectory({
            A: ipa_dataset(agreements=[(C, OK_STATUS), (B, OK_STATUS)]),
        })
        agreements = ReplicationCheck().collect(fake, ctx.servers[0], ctx)
        assert agreements == [Agreement(B, OK), Agreement(C, OK)]

    def test_collect_unreachable(self, ctx):
        fake = FakeDirectory({}, down=[A])
        assert ReplicationCheck().collect(fake, ctx.servers[0], ctx) == [UNREACHABLE]

    def test_collect_failing_agreement(self, ctx):
        fake = FakeDirectory({A: ipa_dataset(agreements=[(B, FAIL_STATUS)])})
        assert ReplicationCheck().collect(fake, ctx.servers[0], ctx) == [Agreement(B, ERROR)]

    def test_evaluate_reduces_to_worst_row(self, ctx):
        check = ReplicationCheck()
        a, b, c = ctx.servers
        values = {
            a: [Agreement(B, OK), Agreement(C, OK)],
            b: [Agreement(A, OK)],
            c: [Agreement(A, OK), Agreement(B, ERROR)],
        }
        assert check.evaluate(values) == FAIL

    def test_evaluate_healthy_topology(self, ctx):
        check = ReplicationCheck()
        a, b, c = ctx.servers
        values = {
            a: [Agreement(B, OK), Agreement(C, OK)],
            b: [Agreement(A, OK)],
            c: [Agreement(A, BUSY)],
        }
        assert check.evaluate(values) == OK

    def test_to_json(self):
        assert ReplicationCheck().to_json([Agreement(B, OK)]) == [{"peer": B, "status": OK}]
