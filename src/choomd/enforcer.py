"""Poll-scan-enforce loop for choomd."""

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import structlog

from choomd import procfs
from choomd.models import ProcessSnapshot
from choomd.rules import Rule, select_rule

logger = structlog.get_logger(__name__)

ProcessLister = Callable[[], Sequence[ProcessSnapshot]]
ValueSetter = Callable[[int, int], None]


@dataclass(slots=True)
class PassResult:
    """Pids sorted by what a single pass did with them."""

    changed: set[int] = field(default_factory=set)
    failed: set[int] = field(default_factory=set)
    already_satisfied: set[int] = field(default_factory=set)
    unmatched: set[int] = field(default_factory=set)


class OomEnforcer:
    """
    Applies the first matching rule's ``oom_score_adj`` to every process.

    Each pass enumerates processes, picks the first matching rule per process
    and writes its value only when it differs from the current one. A failed
    write is logged and left for the next pass, which sees the same mismatch.
    """

    def __init__(
        self,
        rules: Sequence[Rule],
        poll_interval: float = 10.0,
        list_processes: ProcessLister = procfs.list_processes,
        set_oom_score_adj: ValueSetter = procfs.set_oom_score_adj,
    ) -> None:
        """
        Initialize the OomEnforcer.

        Args:
            rules: Merged rules in declaration order.
            poll_interval: Seconds to sleep between passes.
            list_processes: Returns the current process snapshots.
            set_oom_score_adj: Writes a value for a pid, raising OSError on failure.
        """
        self._rules = tuple(rules)
        self._poll_interval = poll_interval
        self._list_processes = list_processes
        self._set_oom_score_adj = set_oom_score_adj
        self._stop_event = threading.Event()

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def enforce(self, process: ProcessSnapshot, result: PassResult) -> None:
        """Apply the selected rule to a single process."""
        rule = select_rule(self._rules, process)
        if rule is None:
            result.unmatched.add(process.pid)
            return

        new_value = rule.oom_score_adj
        if process.oom_score_adj == new_value:
            result.already_satisfied.add(process.pid)
            return

        logger.debug("oom_score_adj_setting", pid=process.pid, oom_score_adj=new_value)
        try:
            self._set_oom_score_adj(process.pid, new_value)
        except OSError as e:
            result.failed.add(process.pid)
            logger.error(
                "oom_score_adj_failed",
                pid=process.pid,
                oom_score_adj=new_value,
                rule=rule.key,
                error=str(e),
            )
            return

        result.changed.add(process.pid)
        logger.info(
            "oom_score_adj_set",
            pid=process.pid,
            old=process.oom_score_adj,
            new=new_value,
            rule=rule.key,
        )

    def run_pass(self) -> PassResult:
        """Run one enumeration-and-enforcement pass over all processes."""
        result = PassResult()

        for process in self._list_processes():
            self.enforce(process, result)

        if result.already_satisfied:
            logger.debug(
                "already_satisfied",
                pids=sorted(result.already_satisfied),
            )
        logger.debug(
            "pass_complete",
            changed=len(result.changed),
            failed=len(result.failed),
            already_satisfied=len(result.already_satisfied),
            unmatched=len(result.unmatched),
        )
        return result

    def run(self) -> None:
        """Run passes until ``stop()`` is called."""
        while not self._stop_event.is_set():
            try:
                self.run_pass()
            except Exception:
                # Enumeration itself failed; try again next pass
                logger.exception("pass_failed")

            self._stop_event.wait(timeout=self._poll_interval)

    def stop(self) -> None:
        """Request the loop to exit after the current pass."""
        self._stop_event.set()
