import os
from pathlib import Path
import sys

import pytest

from parcheck.core.supervisor import Supervisor
from parcheck.core.workspace import Workspace


def python_job(code: str) -> list[str]:
    """An argv command that runs a snippet of Python in a fresh interpreter."""
    return [sys.executable, "-c", code]


def sleeping_job(seconds: float, rc: int = 0, output: str = "") -> list[str]:
    return python_job(
        f"import sys, time; print({output!r}, flush=True); time.sleep({seconds}); sys.exit({rc})"
    )


@pytest.fixture
def workspace_root(tmp_path) -> Path:
    return tmp_path / "parcheck-concurrent"


@pytest.fixture
def supervisor_fixture(workspace_root):
    """A supervisor that keeps its workspace in the test's tmp directory."""
    supervisor = Supervisor(
        Workspace(workspace_root), kill_timeout=2.0, cleanup_delay=0.0
    )
    yield supervisor
    supervisor.workspace.wait_for_removal(10)


@pytest.fixture
def job_events(supervisor_fixture):
    """Records (status, label) for every status change the supervisor reports."""
    events: list[tuple[str, str]] = []
    supervisor_fixture.job_status_listener = lambda status, job, counts: events.append(
        (status, job.label)
    )
    return events


@pytest.fixture(autouse=True)
def set_is_CI():
    os.environ["CI"] = "1"
