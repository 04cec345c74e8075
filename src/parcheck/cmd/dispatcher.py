import os

import msgspec

from parcheck.cmd.argument_parsing import ParcheckNamespace, create_argument_parser
from parcheck.cmd.completions import (
    JobLabelCompleter,
    do_completion,
    generate_shell_completions,
)
from parcheck.cmd.configuration import (
    Checkfile,
    ConfigurationError,
    JobSpec,
    Settings,
    dump_schema,
    expand_jobs,
    find_checkfile,
    read_checkfile,
    select_jobs,
)
from parcheck.cmd.list_jobs import print_jobs
from parcheck.cmd.presets import PRESETS
from parcheck.core.job import Job
from parcheck.core.sequential import run_sequentially
from parcheck.core.supervisor import Supervisor
from parcheck.core.workspace import Workspace
from parcheck.logutils import logger
from parcheck.output.job_output import output_failed_jobs
from parcheck.output.output import output_error, output_info, output_plain
from parcheck.output.status_display import (
    on_job_status,
    on_runner_status,
    output_run_summary,
    running_jobs_display,
)
from parcheck.system_helpers import change_dir

USAGE_ERROR_EXIT_CODE = 1


def print_version():
    import importlib.metadata

    output_info(f"parcheck {importlib.metadata.version('parcheck')}")


def load_checkfile(file: str | None, preset: str | None) -> Checkfile:
    if preset is not None:
        logger.info("Using preset '%s'", preset)
        return PRESETS[preset]
    path = file or find_checkfile()
    if path is None:
        raise ConfigurationError(
            f"No Checkfile found in {os.getcwd()}. Create a Checkfile.toml or use --preset."
        )
    return read_checkfile(path)


def apply_overrides(settings: Settings, args: ParcheckNamespace) -> Settings:
    changes: dict[str, object] = {}
    if args.kill_timeout is not None:
        changes["kill_timeout"] = args.kill_timeout
    if args.cleanup_delay is not None:
        changes["cleanup_delay"] = args.cleanup_delay
    if args.keep_workspace:
        changes["keep_workspace"] = True
    return msgspec.structs.replace(settings, **changes)


def run_concurrently(specs: list[JobSpec], settings: Settings) -> int:
    supervisor = Supervisor(
        Workspace(settings.workspace_root, keep=settings.keep_workspace),
        kill_timeout=settings.kill_timeout,
        cleanup_delay=settings.cleanup_delay,
    )
    for spec in specs:
        supervisor.add_job(spec.label, spec.command, cwd=spec.cwd, env=spec.env or None)

    supervisor.job_status_listener = on_job_status
    supervisor.runner_status_listener = on_runner_status

    with running_jobs_display():
        report = supervisor.run()

    if not report.ok:
        output_failed_jobs(report, settings.fallback_hint)
    if settings.keep_workspace and report.workspace_path:
        output_info(f"Job outputs were kept in {report.workspace_path}")
    output_run_summary(report)
    return report.exit_code


def run_one_at_a_time(specs: list[JobSpec]) -> int:
    jobs = [
        Job(spec.label, spec.command, index, cwd=spec.cwd, env=spec.env or None)
        for index, spec in enumerate(specs)
    ]
    report = run_sequentially(jobs)
    output_run_summary(report)
    return report.exit_code


def parcheck(argv: list[str] | None = None) -> int:
    """Entry point for the parcheck command line interface."""
    parser = create_argument_parser(JobLabelCompleter())
    do_completion(parser)
    args = ParcheckNamespace(**vars(parser.parse_args(argv)))

    if args.completions:
        generate_shell_completions()
        return 0

    if args.dump_schema:
        output_plain(dump_schema())
        return 0

    if args.version:
        print_version()
        return 0

    if args.directory:
        output_info(f"Entering directory '{args.directory}'")
        if not os.path.isdir(args.directory):
            output_error(f"No such directory: '{args.directory}'")
            return USAGE_ERROR_EXIT_CODE

    with change_dir(args.directory):
        try:
            checkfile = load_checkfile(args.file, args.preset)
            specs = select_jobs(expand_jobs(checkfile), args.jobs)
        except ConfigurationError as e:
            output_error(str(e))
            return USAGE_ERROR_EXIT_CODE

        if args.list_jobs:
            print_jobs(specs)
            return 0

        if not specs:
            output_error("No jobs to run.")
            return USAGE_ERROR_EXIT_CODE

        logger.info("Jobs to run: %s", [spec.label for spec in specs])

        if args.sequential:
            return run_one_at_a_time(specs)
        return run_concurrently(specs, apply_overrides(checkfile.settings, args))
