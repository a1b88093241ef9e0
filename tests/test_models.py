"""Tests for keyrotator.models."""

from decimal import Decimal

import pytest

from keyrotator.models import (
    OutcomeStatus,
    RepoOutcome,
    Repository,
    RotationDecision,
    Team,
    TeamReport,
    parse_flag,
)


class TestTeamFromDict:
    def test_name_only(self):
        assert Team.from_dict({"name": "platform"}) == Team("platform", None)

    def test_repositories(self):
        team = Team.from_dict(
            {
                "name": "platform",
                "repositories": [
                    {"name": "svc-a"},
                    {"name": "docs", "readOnly": True},
                    {"name": "infra", "read_only": True},
                    "plain",
                ],
            }
        )
        assert team.repositories == (
            Repository("svc-a"),
            Repository("docs", True),
            Repository("infra", True),
            Repository("plain"),
        )

    def test_capitalised_keys(self):
        team = Team.from_dict({"Name": "p", "Repositories": [{"Name": "r", "ReadOnly": True}]})
        assert team == Team("p", (Repository("r", True),))

    def test_empty_repositories_is_not_none(self):
        assert Team.from_dict({"name": "p", "repositories": []}).repositories == ()

    def test_string_flags_are_parsed(self):
        team = Team.from_dict(
            {"name": "p", "repositories": [{"name": "a", "readOnly": "false"}, {"name": "b", "read_only": "true"}]}
        )
        assert team.repositories == (Repository("a", False), Repository("b", True))

    def test_ambiguous_flag_rejected(self):
        with pytest.raises(ValueError, match="read_only"):
            Team.from_dict({"name": "p", "repositories": [{"name": "a", "readOnly": "maybe"}]})

    @pytest.mark.parametrize("data", [{}, {"name": ""}, {"name": "p", "repositories": [{"readOnly": True}]}])
    def test_invalid(self, data):
        with pytest.raises(ValueError):
            Team.from_dict(data)


class TestTeamReport:
    def test_counts_and_dict(self):
        report = TeamReport(
            team="platform",
            outcomes=[
                RepoOutcome("a", RotationDecision.CREATE, OutcomeStatus.ROTATED),
                RepoOutcome("b", RotationDecision.SKIP, OutcomeStatus.SKIPPED),
                RepoOutcome("c", None, OutcomeStatus.FAILED, "boom"),
            ],
        )
        assert (report.rotated, report.skipped, report.failed) == (1, 1, 1)
        d = report.to_dict()
        assert d["team"] == "platform"
        assert d["repositories"][0] == {"name": "a", "decision": "create", "status": "rotated", "error": ""}
        assert d["repositories"][2]["decision"] is None



class TestParseFlag:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (True, True),
            (False, False),
            (None, False),
            ("false", False),
            ("False", False),
            ("0", False),
            ("", False),
            ("no", False),
            ("true", True),
            (" TRUE ", True),
            ("1", True),
            ("yes", True),
            (0, False),
            (1, True),
            (Decimal("1"), True),
            (Decimal("0"), False),
        ],
    )
    def test_accepted(self, value, expected):
        assert parse_flag(value) is expected

    @pytest.mark.parametrize("value", ["maybe", "ro", 2, 0.5, [], {}])
    def test_rejected(self, value):
        with pytest.raises(ValueError):
            parse_flag(value)
