import subprocess
import sys

import msgspec
import pytest

from parcheck.core.common_types import Failed, JobResult, Killed, Succeeded
from parcheck.core.job import Job, JobStateError


def test_job_lifecycle(tmp_path):
    job = Job("lint", [sys.executable, "-c", "pass"])
    assert job.status == "pending"
    assert job.pid is None
    assert not job.shell

    process = subprocess.Popen(job.command)
    job.started(process)
    assert job.status == "running"
    assert job.pid == process.pid
    process.wait()

    job.finish(Succeeded())
    assert job.status == "succeeded"


def test_job_cannot_be_started_twice():
    job = Job("lint", "true")
    process = subprocess.Popen(["true"])
    job.started(process)
    with pytest.raises(JobStateError):
        job.started(process)
    process.wait()


def test_terminal_state_is_final():
    job = Job("lint", "true")
    job.finish(Failed(2))
    with pytest.raises(JobStateError):
        job.finish(Killed(15))
    assert job.result == Failed(2)
    assert job.status == "failed"


def test_pending_job_can_be_killed():
    job = Job("lint", "true")
    job.finish(Killed())
    assert job.status == "killed"


def test_command_line():
    assert Job("a", "cargo clippy --color always").command_line == (
        "cargo clippy --color always"
    )
    assert Job("b", ["echo", "two words"]).command_line == "echo 'two words'"
    assert Job("a", "cargo clippy").shell


def test_read_output(tmp_path):
    job = Job("a", "true")
    assert job.read_output() == ""
    job.output_file = tmp_path / "out_0"
    assert job.read_output() == ""
    job.output_file.write_bytes(b"warning: \xff unused\n")
    assert job.read_output().startswith("warning: ")


def test_jobs_compare_by_label():
    assert Job("a", "true") == Job("a", "false")
    assert Job("a", "true") != Job("b", "true")
    assert len({Job("a", "true"), Job("a", "true", 1)}) == 1
    assert str(Job("[Stable] Clippy", "true")) == "[Stable] Clippy"


def test_result_codes():
    assert Succeeded().rc == 0
    assert Failed(2).rc == 2
    assert Killed(15).rc == 143
    assert Killed().rc == 1
    assert [r.status for r in (Succeeded(), Failed(1), Killed())] == [
        "succeeded",
        "failed",
        "killed",
    ]


def test_results_are_tagged():
    encoded = msgspec.json.encode(Failed(101, launch_error="boom"))
    assert msgspec.json.decode(encoded) == {
        "type": "failed",
        "rc": 101,
        "launch_error": "boom",
    }
    assert msgspec.json.decode(b'{"type": "succeeded"}', type=JobResult) == Succeeded()
    with pytest.raises(msgspec.ValidationError):
        msgspec.json.decode(b'{"type": "exploded"}', type=JobResult)
