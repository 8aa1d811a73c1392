"""Configuration loading: TOML file to poll interval and merged rules."""

import pwd
import re
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from choomd.errors import ConfigError
from choomd.patterns import compile_patterns
from choomd.rules import (
    DEFAULT_RULE_KEY,
    MAX_OOM_SCORE_ADJ,
    MIN_OOM_SCORE_ADJ,
    Rule,
    RuleSpec,
    build_rules,
    is_reserved_key,
)

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/choomd.toml")
DEFAULT_POLL_INTERVAL = "10s"

PATTERN_KEYS = (
    "command_line_file_path",
    "command_line_file_name",
    "command_line_argument",
    "current_working_directory",
)
RULE_KEYS = frozenset(PATTERN_KEYS + ("owner_user_name", "owner_user_id", "oom_score_adj"))

# Seconds per unit, humantime spellings.
_DURATION_UNITS: dict[str, float] = {
    "nsec": 1e-9, "ns": 1e-9,
    "usec": 1e-6, "us": 1e-6,
    "msec": 1e-3, "ms": 1e-3,
    "seconds": 1.0, "second": 1.0, "secs": 1.0, "sec": 1.0, "s": 1.0,
    "minutes": 60.0, "minute": 60.0, "mins": 60.0, "min": 60.0, "m": 60.0,
    "hours": 3600.0, "hour": 3600.0, "hrs": 3600.0, "hr": 3600.0, "h": 3600.0,
    "days": 86400.0, "day": 86400.0, "d": 86400.0,
    "weeks": 604800.0, "week": 604800.0, "w": 604800.0,
}
_DURATION_COMPONENT = re.compile(r"\s*(\d+)\s*([a-z]+)\s*")

UserResolver = Callable[[str], int]


@dataclass(slots=True, frozen=True)
class DaemonConfig:
    """Everything the enforcement loop needs, fixed at startup."""

    poll_interval: float
    rules: tuple[Rule, ...] = field(default=())


def parse_duration(text: str) -> float:
    """
    Parse a duration such as ``10s``, ``500ms`` or ``1m 30s`` into seconds.

    Raises:
        ConfigError: If the string is empty, uses an unknown unit, or is zero.
    """
    if not isinstance(text, str) or not text.strip():
        raise ConfigError(f"Can't parse poll interval: {text!r}")

    total = 0.0
    position = 0
    source = text.strip()
    while position < len(source):
        component = _DURATION_COMPONENT.match(source, position)
        if component is None:
            raise ConfigError(f"Can't parse poll interval: {text!r}")
        amount, unit = component.groups()
        if unit not in _DURATION_UNITS:
            raise ConfigError(f"Can't parse poll interval: unknown unit {unit!r} in {text!r}")
        total += int(amount) * _DURATION_UNITS[unit]
        position = component.end()

    if total <= 0:
        raise ConfigError(f"Poll interval must be positive: {text!r}")
    return total


def resolve_user_id(name: str) -> int:
    """Look up the numeric uid of a user name."""
    try:
        return pwd.getpwnam(name).pw_uid
    except KeyError:
        raise ConfigError(f"Can't find user: {name}") from None


def _string_list(key: str, table: dict[str, Any], field_name: str) -> list[str]:
    value = table.get(field_name, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"rules.{key}.{field_name} must be an array of strings")
    return value


def _uid_list(key: str, table: dict[str, Any]) -> list[int]:
    value = table.get("owner_user_id", [])
    if not isinstance(value, list):
        raise ConfigError(f"rules.{key}.owner_user_id must be an array of integers")
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int) or item < 0:
            raise ConfigError(f"rules.{key}.owner_user_id: {item!r} is not a valid uid")
    return value


def _oom_score_adj(key: str, table: dict[str, Any]) -> int:
    value = table.get("oom_score_adj", 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"rules.{key}.oom_score_adj must be an integer")
    if not MIN_OOM_SCORE_ADJ <= value <= MAX_OOM_SCORE_ADJ:
        raise ConfigError(
            f"rules.{key}.oom_score_adj {value} is outside "
            f"[{MIN_OOM_SCORE_ADJ}, {MAX_OOM_SCORE_ADJ}]"
        )
    return value


def parse_rule(
    key: str,
    table: dict[str, Any],
    resolve_user: UserResolver = resolve_user_id,
) -> RuleSpec:
    """
    Parse a single rule table into an unmerged ``RuleSpec``.

    Patterns are compiled and user names resolved here, so a bad rule fails
    at startup rather than during a scan.

    Raises:
        ConfigError: On malformed values, invalid globs or unknown users.
    """
    if not isinstance(table, dict):
        raise ConfigError(f"rules.{key} must be a table")

    for unknown in sorted(set(table) - RULE_KEYS):
        logger.warning("unknown_rule_key", rule=key, key=unknown)

    patterns = {name: compile_patterns(_string_list(key, table, name)) for name in PATTERN_KEYS}

    owner_user_id = set(_uid_list(key, table))
    owner_user_id.update(resolve_user(name) for name in _string_list(key, table, "owner_user_name"))

    return RuleSpec(
        key=key,
        owner_user_id=tuple(sorted(owner_user_id)),
        oom_score_adj=_oom_score_adj(key, table),
        **patterns,
    )


def parse_rules(
    rules_table: dict[str, Any],
    resolve_user: UserResolver = resolve_user_id,
) -> list[Rule]:
    """Parse the ``rules`` table and merge each rule with ``DEFAULT``."""
    if not isinstance(rules_table, dict):
        raise ConfigError("rules must be a table")

    default = parse_rule(DEFAULT_RULE_KEY, rules_table.get(DEFAULT_RULE_KEY, {}), resolve_user)
    specs = [
        parse_rule(key, table, resolve_user)
        for key, table in rules_table.items()
        if not is_reserved_key(key)
    ]
    return build_rules(specs, default)


def parse_config(
    document: dict[str, Any],
    resolve_user: UserResolver = resolve_user_id,
) -> DaemonConfig:
    """Build a ``DaemonConfig`` from an already decoded TOML document."""
    poll_interval = parse_duration(document.get("poll_interval", DEFAULT_POLL_INTERVAL))
    rules = parse_rules(document.get("rules", {}), resolve_user)
    return DaemonConfig(poll_interval=poll_interval, rules=tuple(rules))


def load_config(
    path: Path | str = DEFAULT_CONFIG_PATH,
    resolve_user: UserResolver = resolve_user_id,
) -> DaemonConfig:
    """
    Read and parse the configuration file.

    Raises:
        ConfigError: If the file can't be read or parsed, or any rule is invalid.
    """
    path = Path(path)
    try:
        document = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Can't read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Can't parse config file {path}: {e}") from e
    return parse_config(document, resolve_user)
