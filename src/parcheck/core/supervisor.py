from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
import os
from pathlib import Path
import signal
import subprocess
import time
from typing import Callable

from parcheck.core.common_types import Failed, JobResult, JobStatus, Killed, Succeeded
from parcheck.core.job import Command, Job
from parcheck.core.workspace import Workspace
from parcheck.logutils import logger
from parcheck.system_helpers import returncode_to_exit_code, signal_process_group

JobStatusListener = Callable[[JobStatus, Job, tuple[int, int]], None]
RunnerStatusListener = Callable[[str], None]

DEFAULT_KILL_TIMEOUT = 5.0
DEFAULT_CLEANUP_DELAY = 1.0


class DuplicateJobLabelError(ValueError):
    """Raised when a label is registered twice in the same run."""


@dataclass
class Completion:
    """A process exit as seen by the waiter thread of its job."""

    job: Job
    returncode: int
    finished_at: float


@dataclass
class RunReport:
    """The outcome of a run."""

    exit_code: int
    jobs: list[Job]
    first_failure: Job | None = None
    failed_jobs: list[Job] = field(default_factory=list)
    killed_jobs: list[Job] = field(default_factory=list)
    # Captured output of the failed jobs, read before the workspace goes away
    failure_outputs: dict[str, str] = field(default_factory=dict)
    workspace_path: Path | None = None

    @property
    def succeeded_jobs(self) -> list[Job]:
        return [job for job in self.jobs if isinstance(job.result, Succeeded)]

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def wait_for_process(job: Job) -> Completion:
    assert job.process is not None
    returncode = job.process.wait()
    return Completion(job, returncode, time.monotonic())


def result_from_returncode(returncode: int) -> JobResult:
    rc = returncode_to_exit_code(returncode)
    return Succeeded() if rc == 0 else Failed(rc)


def launch_error_exit_code(e: OSError) -> int:
    # Same codes as a shell uses for commands it cannot find or execute
    if isinstance(e, FileNotFoundError):
        return 127
    if isinstance(e, PermissionError):
        return 126
    return 1


class Supervisor:
    """
    Runs independent jobs concurrently, one process each, and stops all of them as soon
    as one fails.

    All bookkeeping happens on the thread that calls run(). The processes are waited
    for on a pool of threads that only report back when a process has exited.
    """

    jobs: list[Job]
    workspace: Workspace
    kill_timeout: float
    cleanup_delay: float
    job_status_listener: JobStatusListener
    runner_status_listener: RunnerStatusListener

    def __init__(
        self,
        workspace: Workspace | None = None,
        *,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
        cleanup_delay: float = DEFAULT_CLEANUP_DELAY,
    ):
        self.jobs = []
        self.workspace = workspace if workspace is not None else Workspace()
        self.kill_timeout = kill_timeout
        self.cleanup_delay = cleanup_delay
        self.job_status_listener = lambda *args: None
        self.runner_status_listener = lambda *args: None
        self._labels: set[str] = set()

    def add_job(
        self,
        label: str,
        command: Command,
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ) -> Job:
        if label in self._labels:
            raise DuplicateJobLabelError(f"Job label '{label}' is already registered")
        self._labels.add(label)
        job = Job(label, command, len(self.jobs), cwd=cwd, env=env)
        self.jobs.append(job)
        return job

    def get_job_count_tuple(self) -> tuple[int, int]:
        finished = len([job for job in self.jobs if job.result is not None])
        return (finished, len(self.jobs))

    def run(self) -> RunReport:
        logger.info("Starting run with %s jobs", len(self.jobs))

        with self.workspace:
            if not self.jobs:
                return RunReport(0, [], workspace_path=self.workspace.path)

            self.runner_status_listener(
                f"Running {len(self.jobs)} job{'s' if len(self.jobs) > 1 else ''} concurrently"
            )

            with ThreadPoolExecutor(
                max_workers=len(self.jobs), thread_name_prefix="parcheck-wait"
            ) as pool:
                waiting: dict[Future, Job] = {}
                try:
                    first_failure = self.launch_all(pool, waiting)
                    if first_failure is None:
                        first_failure = self.wait_for_first_failure(waiting)
                finally:
                    # Also reached on KeyboardInterrupt; the pool can't shut down while
                    # processes are still running.
                    if waiting:
                        self.stop_remaining(waiting)

            if first_failure is None:
                logger.info("All jobs finished successfully")
                return RunReport(0, self.jobs, workspace_path=self.workspace.path)

            report = self.create_failure_report(first_failure)
            self.workspace.schedule_removal(self.cleanup_delay)
            return report

    def launch_all(self, pool: ThreadPoolExecutor, waiting: dict[Future, Job]):
        """Launch every job. Returns the first job that could not be launched, if any."""
        first_failure: Job | None = None
        for job in self.jobs:
            if self.launch(job):
                waiting[pool.submit(wait_for_process, job)] = job
            elif first_failure is None:
                first_failure = job
        return first_failure

    def launch(self, job: Job) -> bool:
        output_file = self.workspace.output_file(job)
        job.output_file = output_file
        env = {**os.environ, **job.env} if job.env else None

        logger.debug("Launching job '%s': %s", job.label, job.command_line)
        try:
            with open(output_file, "wb") as output:
                process = subprocess.Popen(
                    job.command,
                    shell=job.shell,
                    cwd=job.cwd,
                    env=env,
                    stdin=subprocess.DEVNULL,
                    stdout=output,
                    stderr=subprocess.STDOUT,
                    # Own process group, so that termination reaches the whole job
                    start_new_session=True,
                )
        except OSError as e:
            logger.info("Job '%s' could not be launched: %s", job.label, e)
            output_file.write_text(
                f"Could not start '{job.command_line}': {e}\n", encoding="utf-8"
            )
            self.finish_job(job, Failed(launch_error_exit_code(e), launch_error=str(e)))
            return False

        job.started(process)
        self.job_status_listener("running", job, self.get_job_count_tuple())
        return True

    def wait_for_first_failure(self, waiting: dict[Future, Job]) -> Job | None:
        first_failure: Job | None = None

        while waiting and first_failure is None:
            done, _ = wait(waiting, return_when=FIRST_COMPLETED)
            # Several processes can exit between two wakeups; handle them in the order
            # they exited.
            completions: list[Completion] = sorted(
                (future.result() for future in done), key=lambda c: c.finished_at
            )
            for future in done:
                del waiting[future]

            for completion in completions:
                result = result_from_returncode(completion.returncode)
                self.finish_job(completion.job, result)
                if isinstance(result, Failed) and first_failure is None:
                    logger.info(
                        "Job '%s' failed with exit code %s",
                        completion.job.label,
                        result.rc,
                    )
                    first_failure = completion.job

        return first_failure

    def stop_remaining(self, waiting: dict[Future, Job]):
        """
        Terminate all jobs that are still running, kill them if they don't stop within
        kill_timeout, and mark them as killed. Jobs that turn out to have exited already
        keep their own result.
        """
        already_exited = [future for future in waiting if future.done()]
        for future in sorted(already_exited, key=lambda f: f.result().finished_at):
            completion = future.result()
            del waiting[future]
            self.finish_job(completion.job, result_from_returncode(completion.returncode))

        if not waiting:
            return

        self.runner_status_listener(
            f"Stopping {len(waiting)} remaining job{'s' if len(waiting) > 1 else ''}"
        )
        last_signal: dict[Job, int] = {}
        for job in waiting.values():
            assert job.process is not None
            if signal_process_group(job.process, signal.SIGTERM):
                last_signal[job] = int(signal.SIGTERM)

        try:
            wait(waiting, timeout=self.kill_timeout)
        finally:
            # Also reached when interrupted while waiting; the pool can only shut down
            # once every process has exited.
            not_done = [future for future in waiting if not future.done()]
            for future in not_done:
                job = waiting[future]
                logger.info("Job '%s' did not stop, killing it", job.label)
                assert job.process is not None
                if signal_process_group(job.process, signal.SIGKILL):
                    last_signal[job] = int(signal.SIGKILL)
        wait(not_done)

        for future, job in waiting.items():
            if job in last_signal:
                self.finish_job(job, Killed(last_signal[job]))
            else:
                # Exited on its own before it could be signalled
                completion = future.result()
                self.finish_job(job, result_from_returncode(completion.returncode))
        waiting.clear()

    def finish_job(self, job: Job, result: JobResult):
        job.finish(result)
        # Killed jobs get no result file; a missing file reads as killed
        if not isinstance(result, Killed):
            self.workspace.record_result(job, result)
        self.job_status_listener(result.status, job, self.get_job_count_tuple())

    def create_failure_report(self, first_failure: Job) -> RunReport:
        assert first_failure.result is not None
        report = RunReport(
            first_failure.result.rc,
            self.jobs,
            first_failure=first_failure,
            workspace_path=self.workspace.path,
        )
        for job in self.jobs:
            match self.workspace.read_result(job):
                case Failed():
                    report.failed_jobs.append(job)
                    report.failure_outputs[job.label] = job.read_output()
                case Succeeded():
                    pass
                case _:
                    report.killed_jobs.append(job)
        return report
