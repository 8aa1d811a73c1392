"""Rule model, default merging and process matching."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from choomd.models import ProcessSnapshot
from choomd.patterns import GlobPattern

DEFAULT_RULE_KEY = "DEFAULT"
MIN_OOM_SCORE_ADJ = -1000
MAX_OOM_SCORE_ADJ = 1000


def is_reserved_key(key: str) -> bool:
    """Keys without lowercase letters are reserved and never matched."""
    return key.upper() == key


@dataclass(slots=True, frozen=True)
class RuleSpec:
    """
    A rule table as written in the configuration, before merging.

    Empty slots and a zero ``oom_score_adj`` mean "not set" and are filled
    from the default rule by ``merge_rule``.
    """

    key: str
    command_line_file_path: tuple[GlobPattern, ...] = field(default=())
    command_line_file_name: tuple[GlobPattern, ...] = field(default=())
    command_line_argument: tuple[GlobPattern, ...] = field(default=())
    current_working_directory: tuple[GlobPattern, ...] = field(default=())
    owner_user_id: tuple[int, ...] = field(default=())
    oom_score_adj: int = 0


@dataclass(slots=True, frozen=True)
class Rule:
    """
    A merged, enforceable rule.

    Each predicate slot is a tuple of alternatives; an empty slot matches
    every process.
    """

    key: str
    command_line_file_path: tuple[GlobPattern, ...] = field(default=())
    command_line_file_name: tuple[GlobPattern, ...] = field(default=())
    command_line_argument: tuple[GlobPattern, ...] = field(default=())
    current_working_directory: tuple[GlobPattern, ...] = field(default=())
    owner_user_id: tuple[int, ...] = field(default=())
    oom_score_adj: int = 0

    def matches(self, process: ProcessSnapshot) -> bool:
        """Check whether this rule selects the given process."""
        return matches(self, process)

    def describe(self) -> dict[str, object]:
        """Plain representation used for the startup rules dump."""
        return {
            "rule": self.key,
            "oom_score_adj": self.oom_score_adj,
            "command_line_file_path": [str(p) for p in self.command_line_file_path],
            "command_line_file_name": [str(p) for p in self.command_line_file_name],
            "command_line_argument": [str(p) for p in self.command_line_argument],
            "current_working_directory": [str(p) for p in self.current_working_directory],
            "owner_user_id": list(self.owner_user_id),
        }


def merge_rule(spec: RuleSpec, default: RuleSpec) -> Rule:
    """
    Fill the unset fields of ``spec`` from ``default``.

    A non-empty slot is kept as written, never unioned with the default.
    An ``oom_score_adj`` of exactly 0 counts as unset, so a rule cannot ask
    for 0 while the default is non-zero.
    """
    return Rule(
        key=spec.key,
        command_line_file_path=spec.command_line_file_path or default.command_line_file_path,
        command_line_file_name=spec.command_line_file_name or default.command_line_file_name,
        command_line_argument=spec.command_line_argument or default.command_line_argument,
        current_working_directory=(
            spec.current_working_directory or default.current_working_directory
        ),
        owner_user_id=spec.owner_user_id or default.owner_user_id,
        oom_score_adj=spec.oom_score_adj if spec.oom_score_adj != 0 else default.oom_score_adj,
    )


def build_rules(specs: Iterable[RuleSpec], default: RuleSpec | None = None) -> list[Rule]:
    """
    Merge every non-reserved spec with the default, keeping declaration order.

    Args:
        specs: Parsed rule tables in the order they were declared.
        default: The ``DEFAULT`` table; an empty spec when absent.
    """
    if default is None:
        default = RuleSpec(key=DEFAULT_RULE_KEY)
    return [merge_rule(spec, default) for spec in specs if not is_reserved_key(spec.key)]


def _any_glob(patterns: tuple[GlobPattern, ...], values: Sequence[str]) -> bool:
    if not patterns:
        return True
    return any(pattern.matches(value) for pattern in patterns for value in values)


def _optional(value: str | None) -> tuple[str, ...]:
    return () if value is None else (value,)


def matches(rule: Rule, process: ProcessSnapshot) -> bool:
    """
    Check every predicate slot of ``rule`` against ``process``.

    Slots are ANDed together, the alternatives inside a slot are ORed.
    Owner ids are compared exactly.
    """
    if not _any_glob(rule.command_line_file_path, _optional(process.command_line_file_path)):
        return False
    if not _any_glob(rule.command_line_file_name, _optional(process.command_line_file_name)):
        return False
    if not _any_glob(rule.command_line_argument, process.command_line_arguments):
        return False
    if not _any_glob(rule.current_working_directory, (process.current_working_directory,)):
        return False
    if rule.owner_user_id and process.uid not in rule.owner_user_id:
        return False
    return True


def select_rule(rules: Sequence[Rule], process: ProcessSnapshot) -> Rule | None:
    """Return the first rule in declaration order that matches, if any."""
    for rule in rules:
        if matches(rule, process):
            return rule
    return None
