"""Data models for choomd."""

import os
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process state."""

    pid: int
    uid: int
    command_line: tuple[str, ...] = field(default=())
    current_working_directory: str = "/"
    oom_score: int = 0
    oom_score_adj: int = 0

    @property
    def command_line_file_path(self) -> str | None:
        """First command line element, or None for an empty command line."""
        if not self.command_line:
            return None
        return self.command_line[0]

    @property
    def command_line_file_name(self) -> str | None:
        """Last path segment of the first command line element.

        Processes that rewrite their title have no separator in it, in which
        case the whole element is the file name.
        """
        file_path = self.command_line_file_path
        if file_path is None:
            return None
        file_name = os.path.basename(file_path.rstrip("/"))
        if file_name in ("", ".."):
            return None
        return file_name

    @property
    def command_line_arguments(self) -> tuple[str, ...]:
        """Command line elements after the first one."""
        return self.command_line[1:]
