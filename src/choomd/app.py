"""choomd - command line entry point."""

import signal
import sys
from collections.abc import Sequence
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from choomd import __version__, procfs
from choomd.config import DEFAULT_CONFIG_PATH, load_config
from choomd.enforcer import OomEnforcer
from choomd.errors import ConfigError
from choomd.log import LOG_FORMATS, configure_logging
from choomd.models import ProcessSnapshot

logger = structlog.get_logger(__name__)

PS_COLUMNS = (
    "OOM_SCORE",
    "OOM_SCORE_ADJ",
    "PID",
    "UID",
    "CURRENT_WORKING_DIRECTORY",
    "COMMAND_LINE",
)


def build_process_table(processes: Sequence[ProcessSnapshot]) -> Table:
    """Build the ``--ps`` table, one row per process in enumeration order."""
    table = Table(box=None, pad_edge=False, show_edge=False)
    for column in PS_COLUMNS:
        justify = "right" if column in ("OOM_SCORE", "OOM_SCORE_ADJ", "PID", "UID") else "left"
        table.add_column(column, justify=justify, no_wrap=column != "COMMAND_LINE")

    for proc in processes:
        table.add_row(
            str(proc.oom_score),
            str(proc.oom_score_adj),
            str(proc.pid),
            str(proc.uid),
            proc.current_working_directory,
            " ".join(proc.command_line),
        )
    return table


def print_processes(console: Console | None = None) -> None:
    """Print every process with its OOM score and adjustment."""
    # Full width when piped so rows are never truncated
    console = console or Console(width=None if sys.stdout.isatty() else 1000)
    console.print(build_process_table(procfs.list_processes()))


def _install_signal_handlers(enforcer: OomEnforcer) -> None:
    def handle_signal(signum, _frame) -> None:
        logger.info("stopping", signal=signal.Signals(signum).name)
        enforcer.stop()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the config file.",
)
@click.option("--ps", is_flag=True, help="Print processes with oom scores and exit.")
@click.option("--once", is_flag=True, help="Run a single pass and exit.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default: $CHOOMD_LOG_LEVEL or INFO).",
)
@click.option(
    "--log-format",
    type=click.Choice(LOG_FORMATS),
    default="console",
    show_default=True,
)
@click.version_option(__version__, prog_name="choomd")
def cli(
    config_file: Path,
    ps: bool,
    once: bool,
    log_level: str | None,
    log_format: str,
) -> None:
    """Assign oom_score_adj to running processes according to rules."""
    configure_logging(log_level, log_format)

    if ps:
        print_processes()
        return

    try:
        config = load_config(config_file)
    except ConfigError as e:
        logger.error("config_error", error=str(e))
        sys.exit(1)

    for rule in config.rules:
        logger.debug("rules_loaded", **rule.describe())

    if not config.rules:
        logger.error(
            "no_rules",
            config_file=str(config_file),
            message="No rules defined in config file, there is nothing to do.",
        )
        sys.exit(1)

    enforcer = OomEnforcer(
        config.rules,
        config.poll_interval,
        list_processes=procfs.list_processes,
        set_oom_score_adj=procfs.set_oom_score_adj,
    )
    if once:
        enforcer.run_pass()
        return

    _install_signal_handlers(enforcer)
    logger.info(
        "started",
        config_file=str(config_file),
        rules=len(config.rules),
        poll_interval=config.poll_interval,
    )
    enforcer.run()


def main() -> None:
    """Entry point for the choomd daemon."""
    cli()


if __name__ == "__main__":
    main()
