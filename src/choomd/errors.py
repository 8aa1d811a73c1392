"""Exception hierarchy for choomd."""


class ChoomdError(Exception):
    """Base class for all choomd errors."""


class ConfigError(ChoomdError):
    """Configuration cannot be turned into a rule set.

    Raised at startup only; the daemon never enters the loop after one.
    """


class PatternError(ConfigError):
    """A rule pattern is not a valid shell glob."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"invalid glob pattern {pattern!r}: {reason}")
