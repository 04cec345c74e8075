from parcheck.core.common_types import Failed, Killed
from parcheck.core.job import Job
from parcheck.core.supervisor import RunReport
from parcheck.output.job_output import (
    NO_OUTPUT_TEXT,
    HighlightConfig,
    highlight_log,
    output_failed_jobs,
)

short_cargo_log = """
warning: unused variable: `a`
 --> src/lib.rs:5:9
  |
5 |     let a = 5;
  |         ^ help: if this is intentional, prefix it with an underscore: `_a`
error[E0308]: mismatched types
 --> src/lib.rs:9:5
"""


def test_no_config():
    assert highlight_log(short_cargo_log) == short_cargo_log


config = [
    HighlightConfig(
        pattern=r"(warning:)",
        start="[START_WARNING]",
        end="[END_WARNING]",
    ),
    HighlightConfig(
        pattern=r"(error\S*:)",
        start="[START_ERROR]",
        end="[END_ERROR]",
    ),
]


def test_highlight():
    lines = highlight_log(short_cargo_log, config).splitlines()
    assert lines[1] == "[START_WARNING]warning:[END_WARNING] unused variable: `a`"
    assert lines[6] == "[START_ERROR]error[E0308]:[END_ERROR] mismatched types"
    assert lines[2] == " --> src/lib.rs:5:9"


def make_report(tmp_path) -> RunReport:
    failing = Job("[Stable] Test", "cargo test", 0)
    failing.finish(Failed(101))
    silent = Job("[Stable] Clippy", "cargo clippy", 1)
    silent.finish(Failed(1))
    killed = Job("[Nightly] Test", "cargo +nightly test", 2)
    killed.finish(Killed(15))
    return RunReport(
        101,
        [failing, silent, killed],
        first_failure=failing,
        failed_jobs=[failing, silent],
        killed_jobs=[killed],
        failure_outputs={
            "[Stable] Test": "test result: FAILED. 1 passed; 1 failed\n",
            "[Stable] Clippy": "",
        },
    )


def test_output_failed_jobs(tmp_path, capsys):
    output_failed_jobs(make_report(tmp_path), "parcheck --sequential")

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "== [Stable] Test ==",
        "test result: FAILED. 1 passed; 1 failed",
        "* The sequential run parcheck --sequential may provide a more in-context view of the cause of the issue.",
        "== [Stable] Clippy ==",
        NO_OUTPUT_TEXT,
    ]


def test_killed_jobs_are_not_shown(tmp_path, capsys):
    output_failed_jobs(make_report(tmp_path), "./check.sh")
    assert "[Nightly] Test" not in capsys.readouterr().out
