"""Tests for nodepulse/targets.py - roster and node selectors."""

from __future__ import annotations

import pytest

from nodepulse.exceptions import ConfigError
from nodepulse.targets import Roster, Target


class TestTarget:
    def test_display_is_canonical_name(self):
        assert str(Target("node1", 1)) == "node1"

    def test_equality_ignores_position(self):
        assert Target("node1", 1) == Target("node1")
        assert Target("node1", 1) != Target("node2", 1)


class TestRosterResolve:
    """Selectors are either canonical names or 1-based positions."""

    def test_numeric_and_name_resolve_to_same_target(self, roster):
        assert roster.resolve("1") == roster.resolve("node1")
        assert roster.resolve("1").index == 1

    def test_last_position(self, roster):
        assert roster.resolve("4") == Target("node4", 4)

    def test_whitespace_is_ignored(self, roster):
        assert roster.resolve(" 2 ") == Target("node2", 2)

    @pytest.mark.parametrize("selector", ["0", "5", "42"])
    def test_out_of_range_position_rejected(self, roster, selector):
        with pytest.raises(ConfigError, match="Invalid node value"):
            roster.resolve(selector)

    def test_unknown_name_rejected(self, roster):
        with pytest.raises(ConfigError, match="node9"):
            roster.resolve("node9")

    @pytest.mark.parametrize("selector", ["²", "١", "３"])
    def test_non_ascii_digits_rejected(self, roster, selector):
        with pytest.raises(ConfigError, match="Invalid node value"):
            roster.resolve(selector)

    def test_custom_roster(self):
        roster = Roster(["web1", "web2", "db1"])
        assert roster.resolve("3") == Target("db1", 3)
        assert roster.resolve("web2").index == 2
        with pytest.raises(ConfigError):
            roster.resolve("4")


class TestRosterSelect:
    def test_comma_separated(self, roster):
        targets = roster.select("1,node3")
        assert [t.name for t in targets] == ["node1", "node3"]

    def test_list_input(self, roster):
        targets = roster.select(["2", "4"])
        assert [t.name for t in targets] == ["node2", "node4"]

    def test_duplicates_dropped_keeping_order(self, roster):
        targets = roster.select("3,1,node3,1")
        assert [t.name for t in targets] == ["node3", "node1"]

    def test_empty_items_skipped(self, roster):
        assert [t.name for t in roster.select("1,,2,")] == ["node1", "node2"]

    def test_nothing_selected(self, roster):
        with pytest.raises(ConfigError, match="No nodes selected"):
            roster.select(" , ")

    def test_bad_item_fails_whole_selection(self, roster):
        with pytest.raises(ConfigError):
            roster.select("1,5")


class TestRosterValidation:
    def test_default_roster(self):
        assert Roster().names == ["node1", "node2", "node3", "node4"]
        assert len(Roster()) == 4

    def test_iteration_yields_positions(self):
        assert [(t.name, t.index) for t in Roster(["a", "b"])] == [("a", 1), ("b", 2)]

    def test_all_is_every_node_in_order(self):
        roster = Roster(["web1", "db1"])
        assert roster.all() == [Target("web1", 1), Target("db1", 2)]
        assert [t.index for t in roster.all()] == [1, 2]

    @pytest.mark.parametrize(
        "names",
        [[], ["a", "a"], ["a", ""], ["7"]],
        ids=["empty", "duplicate", "blank", "numeric"],
    )
    def test_invalid_rosters(self, names):
        with pytest.raises(ConfigError):
            Roster(names)
