import os

from parcheck.core.common_types import Failed, Succeeded
from parcheck.core.job import Job
from parcheck.core.supervisor import RunReport, launch_error_exit_code
from parcheck.logutils import logger
from parcheck.output.output import TerminalStyle as TS
from parcheck.output.output import output_plain
from parcheck.system_helpers import returncode_to_exit_code, subprocess_tty_print


def run_sequentially(jobs: list[Job]) -> RunReport:
    """
    Run the jobs one at a time in order, with their output going straight to the
    terminal. Stops at the first job that fails.

    Slower than the concurrent run, but the output of a failing job is shown in the
    context of everything that ran before it.
    """
    report = RunReport(0, jobs)

    for job in jobs:
        output_plain(f"=== {TS.BOLD}{job.label}{TS.RESET} ===")
        env = {**os.environ, **job.env} if job.env else None
        logger.debug("Running job '%s' sequentially: %s", job.label, job.command_line)
        try:
            returncode = subprocess_tty_print(
                job.command, shell=job.shell, cwd=job.cwd, env=env
            )
        except OSError as e:
            output_plain(f"Could not start '{job.command_line}': {e}")
            job.finish(Failed(launch_error_exit_code(e), launch_error=str(e)))
        else:
            rc = returncode_to_exit_code(returncode)
            job.finish(Succeeded() if rc == 0 else Failed(rc))

        assert job.result is not None
        if isinstance(job.result, Failed):
            report.exit_code = job.result.rc
            report.first_failure = job
            report.failed_jobs.append(job)
            break

    return report
