import contextlib
from typing import Generator

import rich.console
import rich.progress
import rich.table

from parcheck.core.common_types import JobStatus
from parcheck.core.job import Job
from parcheck.core.supervisor import RunReport
from parcheck.output.output import TerminalStyle as TS
from parcheck.output.output import output_error, output_info, output_plain

console = rich.console.Console()

progress: rich.progress.Progress = rich.progress.Progress(
    rich.progress.SpinnerColumn(
        table_column=rich.table.Column(ratio=None),
        spinner_name="bouncingBar",
        style="blue",
    ),
    rich.progress.TimeElapsedColumn(table_column=rich.table.Column(ratio=None)),
    rich.progress.TextColumn(
        "[cyan]{task.description}",
        table_column=rich.table.Column(ratio=1),
    ),
    transient=True,
    console=console,
)

task_id: rich.progress.TaskID | None = None

running_jobs: dict[str, None] = {}  # insertion ordered set


def on_runner_status(message: str):
    output_info(message)


def format_running_jobs_line(jobs_count: tuple[int, int]) -> str:
    total_job_count_length = len(str(jobs_count[1]))
    return f"[yellow]{jobs_count[0]:>{total_job_count_length}}/{jobs_count[1]}[/yellow] {', '.join(running_jobs)}"


def format_finished_line(job: Job) -> str:
    return f"{TS.Fg.GREEN}Finished:{TS.RESET} {job.label} {TS.Fg.BRIGHT_BLACK}({job.pid}){TS.RESET}"


def on_job_status(job_status: JobStatus, job: Job, jobs_count: tuple[int, int]):
    match job_status:
        case "running":
            running_jobs[job.label] = None
        case "succeeded":
            running_jobs.pop(job.label, None)
            output_plain(format_finished_line(job))
        case "failed" | "killed":
            running_jobs.pop(job.label, None)
        case _:
            raise ValueError(f"Unhandled job status {job_status}")

    if task_id is not None:
        progress.update(task_id, description=format_running_jobs_line(jobs_count))


@contextlib.contextmanager
def running_jobs_display() -> Generator[None, None, None]:
    """Show a live line with the running jobs while the block runs, on a terminal."""
    global task_id
    running_jobs.clear()
    if not console.is_terminal:
        yield
        return
    with progress:
        task_id = progress.add_task("Starting", total=None)
        try:
            yield
        finally:
            progress.remove_task(task_id)
            task_id = None


SUCCESS_SUMMARY = "No preliminary critical issues"
SUCCESS_CAVEAT = "but there may be things that were not logged."


def output_run_summary(report: RunReport):
    if report.ok:
        output_plain(
            f" {TS.Fg.GREEN}✓{TS.RESET} {TS.BOLD}{TS.Fg.BRIGHT_WHITE}{SUCCESS_SUMMARY}{TS.RESET}, {SUCCESS_CAVEAT}"
        )
        return

    failed = ", ".join(
        f"{job.label} [{job.result.rc}]" for job in report.failed_jobs if job.result
    )
    output_error(f"Failed: {failed}")
    if report.killed_jobs:
        plural_s = "s" if len(report.killed_jobs) > 1 else ""
        output_info(f"Stopped {len(report.killed_jobs)} other job{plural_s}")
