"""Shared fixtures for choomd tests."""

import pytest
import structlog

from choomd.models import ProcessSnapshot


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration a test applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def tsserver_process() -> ProcessSnapshot:
    return ProcessSnapshot(
        pid=4242,
        uid=1000,
        command_line=(
            "/usr/bin/node",
            "/home/x/code/whatever/node_modules/typescript/lib/tsserver.js",
        ),
        current_working_directory="/home/x/code/whatever",
        oom_score=300,
        oom_score_adj=0,
    )


@pytest.fixture
def python_process() -> ProcessSnapshot:
    return ProcessSnapshot(
        pid=777,
        uid=1000,
        command_line=("/usr/bin/python3", "train.py"),
        current_working_directory="/srv/ml",
        oom_score=500,
        oom_score_adj=0,
    )
