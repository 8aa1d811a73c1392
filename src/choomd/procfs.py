"""Process enumeration and the kernel OOM knobs under /proc."""

from pathlib import Path

import psutil

from choomd.models import ProcessSnapshot

PROC_ROOT = Path("/proc")

# Fallbacks for fields that can't be read for an otherwise visible process.
MIN_OOM_SCORE = 0
MIN_OOM_SCORE_ADJ = -1000
FALLBACK_CWD = "/"


def _oom_path(pid: int, name: str) -> Path:
    return PROC_ROOT / str(pid) / name


def read_oom_score(pid: int) -> int:
    """Read the kernel's current badness score for ``pid``."""
    return int(_oom_path(pid, "oom_score").read_text().strip())


def read_oom_score_adj(pid: int) -> int:
    """Read the current ``oom_score_adj`` of ``pid``."""
    return int(_oom_path(pid, "oom_score_adj").read_text().strip())


def set_oom_score_adj(pid: int, value: int) -> None:
    """
    Write ``oom_score_adj`` for ``pid``.

    Raises:
        OSError: PermissionError without privileges, FileNotFoundError or
            ProcessLookupError once the process is gone, or EINVAL for an
            out-of-range value.
    """
    _oom_path(pid, "oom_score_adj").write_text(f"{value}\n")


def _read_or(reader, pid: int, fallback: int) -> int:
    try:
        return reader(pid)
    except (OSError, ValueError):
        return fallback


def list_processes() -> list[ProcessSnapshot]:
    """
    Collect snapshots of all running processes.

    Processes that exit or deny access mid-scan are skipped; fields that
    can't be read for a visible process fall back to neutral values.
    """
    processes: list[ProcessSnapshot] = []

    for proc in psutil.process_iter():
        try:
            with proc.oneshot():
                pid = proc.pid
                try:
                    uid = proc.uids().effective
                except psutil.AccessDenied:
                    uid = 0
                try:
                    command_line = tuple(proc.cmdline())
                except psutil.AccessDenied:
                    command_line = ()
                try:
                    cwd = proc.cwd() or FALLBACK_CWD
                except psutil.AccessDenied:
                    cwd = FALLBACK_CWD

            processes.append(
                ProcessSnapshot(
                    pid=pid,
                    uid=uid,
                    command_line=command_line,
                    current_working_directory=cwd,
                    oom_score=_read_or(read_oom_score, pid, MIN_OOM_SCORE),
                    oom_score_adj=_read_or(read_oom_score_adj, pid, MIN_OOM_SCORE_ADJ),
                )
            )
        except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied):
            # Gone or unreadable since process_iter() listed it
            continue

    return processes
