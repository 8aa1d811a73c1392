"""Tests for rule merging, matching and selection."""

import pytest

from choomd.models import ProcessSnapshot
from choomd.rules import (
    DEFAULT_RULE_KEY,
    Rule,
    build_rules,
    is_reserved_key,
    matches,
    merge_rule,
    select_rule,
)
from helpers import make_rule
from helpers import make_spec as spec


class TestMergeRule:
    """Tests for merge_rule."""

    def test_empty_slot_takes_default_list(self):
        """An empty slot is replaced wholesale by the default's list."""
        default = spec(DEFAULT_RULE_KEY, command_line_file_name=["java", "node"])
        merged = merge_rule(spec("web"), default)

        assert [p.pattern for p in merged.command_line_file_name] == ["java", "node"]

    def test_own_slot_is_not_unioned_with_default(self):
        """A non-empty slot keeps exactly its own patterns."""
        default = spec(DEFAULT_RULE_KEY, command_line_file_name=["java", "node"])
        merged = merge_rule(spec("web", command_line_file_name=["python3"]), default)

        assert [p.pattern for p in merged.command_line_file_name] == ["python3"]

    def test_owner_ids_follow_same_rule(self):
        """Owner ids are inherited only when the rule has none."""
        default = spec(DEFAULT_RULE_KEY, owner_user_id=[0])

        assert merge_rule(spec("a"), default).owner_user_id == (0,)
        assert merge_rule(spec("b", owner_user_id=[1000]), default).owner_user_id == (1000,)

    def test_zero_oom_score_adj_inherits_default(self):
        """oom_score_adj = 0 counts as unset and takes the default value.

        This also means a rule cannot request 0 while DEFAULT is non-zero.
        """
        default = spec(DEFAULT_RULE_KEY, oom_score_adj=100)

        assert merge_rule(spec("a", oom_score_adj=0), default).oom_score_adj == 100

    @pytest.mark.parametrize("value", [-1000, -1, 1, 500, 1000])
    def test_nonzero_oom_score_adj_is_kept(self, value):
        """Any non-zero value overrides the default."""
        default = spec(DEFAULT_RULE_KEY, oom_score_adj=100)

        assert merge_rule(spec("a", oom_score_adj=value), default).oom_score_adj == value

    def test_merge_keeps_key_and_returns_new_rule(self):
        """Merging builds a new Rule and leaves both inputs untouched."""
        default = spec(DEFAULT_RULE_KEY, oom_score_adj=100, command_line_argument=["-x"])
        original = spec("a")
        merged = merge_rule(original, default)

        assert isinstance(merged, Rule)
        assert merged.key == "a"
        assert original.command_line_argument == ()
        assert original.oom_score_adj == 0


class TestBuildRules:
    """Tests for build_rules."""

    def test_declaration_order_is_kept(self):
        """Rules come out in the order they were declared."""
        rules = build_rules([spec("zeta"), spec("alpha"), spec("mid")])

        assert [rule.key for rule in rules] == ["zeta", "alpha", "mid"]

    def test_reserved_keys_are_excluded(self):
        """DEFAULT and other all-uppercase keys are never candidates."""
        rules = build_rules([spec("DEFAULT"), spec("GLOBAL"), spec("web")])

        assert [rule.key for rule in rules] == ["web"]

    def test_missing_default_is_empty(self):
        """Without a default nothing is inherited."""
        (rule,) = build_rules([spec("web")])

        assert rule.oom_score_adj == 0
        assert rule.command_line_file_name == ()

    @pytest.mark.parametrize(
        "key,reserved",
        [("DEFAULT", True), ("GLOBAL_1", True), ("web", False), ("Web", False)],
    )
    def test_is_reserved_key(self, key, reserved):
        """Keys without lowercase letters are reserved."""
        assert is_reserved_key(key) is reserved


class TestMatches:
    """Tests for the matcher."""

    def test_empty_rule_matches_everything(self, tsserver_process):
        """A rule with all slots empty matches unconditionally."""
        rule = make_rule()

        assert matches(rule, tsserver_process)
        assert matches(rule, ProcessSnapshot(pid=2, uid=0))

    def test_file_name_and_argument_glob(self, tsserver_process):
        """File name and argument slots are ANDed together."""
        rule = make_rule(
            command_line_file_name=["node"],
            command_line_argument=["**/tsserver.js"],
        )

        assert rule.matches(tsserver_process)

    def test_argument_mismatch_rejects(self, tsserver_process):
        """One failing slot rejects the whole rule."""
        rule = make_rule(
            command_line_file_name=["node"],
            command_line_argument=["notmatching*"],
        )

        assert not matches(rule, tsserver_process)

    def test_alternatives_in_slot_are_ored(self, python_process):
        """Any pattern of a slot may match."""
        rule = make_rule(command_line_file_name=["ruby", "python3"])

        assert matches(rule, python_process)

    def test_file_path_glob(self, python_process):
        """The path slot sees the first command line element verbatim."""
        assert matches(make_rule(command_line_file_path=["/usr/bin/*"]), python_process)
        assert not matches(make_rule(command_line_file_path=["/opt/**"]), python_process)

    def test_argument_never_matches_executable(self, python_process):
        """Arguments start at the second command line element."""
        rule = make_rule(command_line_argument=["/usr/bin/python3"])

        assert not matches(rule, python_process)

    def test_working_directory_glob(self, python_process):
        """The working directory is matched as a string."""
        assert matches(make_rule(current_working_directory=["/srv/**"]), python_process)
        assert not matches(make_rule(current_working_directory=["/home/**"]), python_process)

    def test_empty_command_line_fails_command_slots(self):
        """Without a command line, non-empty command slots never match."""
        kernel_thread = ProcessSnapshot(pid=2, uid=0)

        assert not matches(make_rule(command_line_file_path=["*"]), kernel_thread)
        assert not matches(make_rule(command_line_file_name=["*"]), kernel_thread)
        assert not matches(make_rule(command_line_argument=["*"]), kernel_thread)

    def test_owner_is_exact(self, python_process):
        """An owner list without the process uid never matches."""
        rule = make_rule(command_line_file_name=["python3"], owner_user_id=[0, 1001])

        assert not matches(rule, python_process)
        assert matches(make_rule(owner_user_id=[0, 1000]), python_process)


class TestSelectRule:
    """Tests for first-match selection."""

    def test_first_declared_match_wins(self, python_process):
        """Earlier rules take precedence over later matching ones."""
        first = make_rule("first", oom_score_adj=300, command_line_file_name=["python3"])
        second = make_rule("second", oom_score_adj=900)

        assert select_rule([first, second], python_process) is first
        assert select_rule([second, first], python_process) is second

    def test_skips_non_matching_rules(self, python_process):
        """Selection continues past rules that don't match."""
        java = make_rule("java", command_line_file_name=["java"])
        python = make_rule("python", command_line_file_name=["python3"])

        assert select_rule([java, python], python_process) is python

    def test_no_match_returns_none(self, python_process):
        """A process no rule matches is left alone."""
        assert select_rule([make_rule(command_line_file_name=["java"])], python_process) is None
        assert select_rule([], python_process) is None
