"""Shell glob patterns compiled once at rule construction time."""

import re
from dataclasses import dataclass, field

from choomd.errors import PatternError

SEPARATOR = "/"


def _translate_class(pattern: str, start: int) -> tuple[str, int]:
    """Translate the ``[...]`` class opening at ``start``.

    Returns the regex fragment and the index just past the closing bracket.
    """
    i = start + 1
    negate = False
    if i < len(pattern) and pattern[i] == "!":
        negate = True
        i += 1

    members: list[str] = []
    # A "]" right after the opening bracket is a literal member.
    if i < len(pattern) and pattern[i] == "]":
        members.append(re.escape("]"))
        i += 1

    while i < len(pattern) and pattern[i] != "]":
        char = pattern[i]
        if i + 2 < len(pattern) and pattern[i + 1] == "-" and pattern[i + 2] != "]":
            end = pattern[i + 2]
            # A reversed range is valid but contains nothing.
            if end >= char:
                members.append(f"{re.escape(char)}-{re.escape(end)}")
            i += 3
        else:
            members.append(re.escape(char))
            i += 1

    if i >= len(pattern):
        raise PatternError(pattern, "unterminated character class")

    body = "".join(members)
    if not body:
        return ("." if negate else "(?!)"), i + 1
    return (f"[^{body}]" if negate else f"[{body}]"), i + 1


def translate(pattern: str) -> str:
    """Translate a shell glob into an anchored regular expression.

    ``*`` and ``?`` match any character including the path separator.
    ``**`` must form a whole path component and matches any number of
    components, including none.
    """
    parts: list[str] = []
    i = 0
    length = len(pattern)

    while i < length:
        char = pattern[i]

        if char == "*":
            run = 1
            while i + run < length and pattern[i + run] == "*":
                run += 1
            if run == 1:
                parts.append(".*")
                i += 1
                continue
            if run > 2:
                raise PatternError(pattern, "wildcards are either regular `*` or recursive `**`")

            at_component_start = i == 0 or pattern[i - 1] == SEPARATOR
            after = i + 2
            if not at_component_start or (after < length and pattern[after] != SEPARATOR):
                raise PatternError(pattern, "recursive wildcards must form a single path component")

            if after < length:
                # "**/" also matches no directories at all.
                parts.append(f"(?:.*{re.escape(SEPARATOR)})?")
                i = after + 1
            else:
                parts.append(".*")
                i = after
        elif char == "?":
            parts.append(".")
            i += 1
        elif char == "[":
            fragment, i = _translate_class(pattern, i)
            parts.append(fragment)
        else:
            parts.append(re.escape(char))
            i += 1

    return "".join(parts)


@dataclass(slots=True, frozen=True)
class GlobPattern:
    """A validated, compiled shell glob."""

    pattern: str
    regex: re.Pattern[str] = field(compare=False, repr=False)

    @classmethod
    def compile(cls, pattern: str) -> "GlobPattern":
        """
        Compile a glob pattern.

        Args:
            pattern: Shell-style glob, e.g. ``**/tsserver.js``.

        Raises:
            PatternError: If the pattern is malformed.
        """
        if not isinstance(pattern, str):
            raise PatternError(repr(pattern), "pattern must be a string")
        try:
            regex = re.compile(translate(pattern), re.DOTALL)
        except re.error as e:
            raise PatternError(pattern, str(e)) from e
        return cls(pattern=pattern, regex=regex)

    def matches(self, value: str) -> bool:
        """Check whether the whole of ``value`` matches the pattern."""
        return self.regex.fullmatch(value) is not None

    def __str__(self) -> str:
        return self.pattern


def compile_patterns(patterns: list[str] | tuple[str, ...]) -> tuple[GlobPattern, ...]:
    """Compile a list of glob strings, failing on the first invalid one."""
    return tuple(GlobPattern.compile(pattern) for pattern in patterns)
