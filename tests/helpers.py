"""Rule builders shared by the test modules."""

from choomd.patterns import compile_patterns
from choomd.rules import Rule, RuleSpec


def _split(slots: dict) -> tuple[tuple[int, ...], dict]:
    owner_user_id = tuple(slots.pop("owner_user_id", ()))
    return owner_user_id, {name: compile_patterns(values) for name, values in slots.items()}


def make_rule(key: str = "rule", oom_score_adj: int = 0, **slots) -> Rule:
    """Build a merged rule from plain pattern strings."""
    owner_user_id, compiled = _split(slots)
    return Rule(key=key, owner_user_id=owner_user_id, oom_score_adj=oom_score_adj, **compiled)


def make_spec(key: str, oom_score_adj: int = 0, **slots) -> RuleSpec:
    """Build an unmerged rule spec from plain pattern strings."""
    owner_user_id, compiled = _split(slots)
    return RuleSpec(key=key, owner_user_id=owner_user_id, oom_score_adj=oom_score_adj, **compiled)
