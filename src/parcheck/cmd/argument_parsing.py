import argparse
from dataclasses import dataclass
import shutil
import textwrap
from typing import Any

from argcomplete.completers import BaseCompleter

from parcheck.cmd.completions import CheckfileDirectoriesCompleter
from parcheck.cmd.presets import PRESETS
from parcheck.logutils import logger


@dataclass
class ParcheckNamespace:
    """Wrapper for the arguments parsed by argparse. Improves ergonomics when working
    with the arguments."""

    jobs: list[str]
    version: bool
    file: str | None
    directory: str | None
    preset: str | None
    list_jobs: bool
    sequential: bool
    kill_timeout: float | None
    cleanup_delay: float | None
    keep_workspace: bool
    completions: bool
    dump_schema: bool


class ParcheckHelpFormatter(argparse.RawDescriptionHelpFormatter):
    formatting_width = 80

    def __init__(self, prog):
        terminal_cols, terminal_rows = shutil.get_terminal_size()
        self.formatting_width = min(terminal_cols, self.formatting_width)

        indent_increment = 2
        max_help_position = 24

        super().__init__(
            prog, indent_increment, max_help_position, self.formatting_width
        )

    def _fill_text(self, text, width, indent):
        return fill_help_text(text, width, indent)


def fill_help_text(text: str, width: int, indent: str) -> str:
    # Assuming main description starts with a newline
    if text.startswith("\n"):
        return "\n".join(
            [
                "\n".join(
                    textwrap.wrap(
                        line, width=width, initial_indent=indent, subsequent_indent=indent
                    )
                )
                for line in text.splitlines()
            ]
        )
    # Group descriptions
    return textwrap.fill(text, width, initial_indent=indent, subsequent_indent=indent)


def positive_float(value: str) -> float:
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a number")
    if f < 0:
        raise argparse.ArgumentTypeError(f"'{value}' must not be negative")
    return f


def create_argument_parser(job_completions: BaseCompleter | None = None):
    logger.info("Creating argument parser")

    parser = argparse.ArgumentParser(
        prog="parcheck",
        formatter_class=ParcheckHelpFormatter,
        description="""
Run independent check commands concurrently and stop at the first failure. Only the output of the jobs that failed by themselves is shown.

Run all jobs in the Checkfile:
 %(prog)s

Run some of them:
 %(prog)s JOB [JOB ...]

Run the jobs one at a time with live output:
 %(prog)s --sequential

List available jobs:
 %(prog)s --list
""",
    )

    parser._positionals.title = "POSITIONAL ARGUMENTS"
    parser._optionals.title = "OPTIONS"

    # Use Any to get around type checking for argcomplete:

    arg: Any = parser.add_argument(
        "jobs",
        nargs="*",
        default=[],
        help="Labels of the jobs to run. All jobs are run if none are given.",
    )
    arg.completer = job_completions

    parser.add_argument(
        "-v", "--version", action="store_true", help="Show version string and exit."
    )

    # Where the jobs come from:
    source_group = parser.add_argument_group("Job definitions")
    source_exclusive_group = source_group.add_mutually_exclusive_group()
    source_exclusive_group.add_argument(
        "-f",
        "--file",
        type=str,
        default=None,
        help="Read the jobs from this Checkfile instead of the one in the current directory.",
    )
    source_exclusive_group.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        default=None,
        help="Use a built-in set of jobs instead of a Checkfile.",
    )
    arg = source_group.add_argument(
        "-C",
        "--directory",
        type=str,
        default=None,
        help="Change to the specified directory before doing anything else.",
    )
    arg.completer = CheckfileDirectoriesCompleter()

    # How the jobs are run:
    run_group = parser.add_argument_group("Running")
    run_exclusive_group = run_group.add_mutually_exclusive_group()
    run_exclusive_group.add_argument(
        "-l",
        "--list",
        action="store_true",
        dest="list_jobs",
        help="List available jobs.",
    )
    run_exclusive_group.add_argument(
        "-s",
        "--sequential",
        action="store_true",
        help="Run the jobs one at a time with their output shown as they run. Slower, but gives more context when something fails.",
    )
    run_group.add_argument(
        "--kill-timeout",
        type=positive_float,
        default=None,
        metavar="SECONDS",
        help="How long to wait for stopped jobs to exit before killing them.",
    )
    run_group.add_argument(
        "--cleanup-delay",
        type=positive_float,
        default=None,
        metavar="SECONDS",
        help="How long to wait after a failure before removing the job outputs.",
    )
    run_group.add_argument(
        "--keep-workspace",
        action="store_true",
        help="Keep the directory with the job outputs after the run.",
    )

    # Meta arguments:
    meta_group = parser.add_argument_group("Meta arguments")
    meta_group.add_argument(
        "--dump-schema",
        action="store_true",
        help="Generate a JSON Schema for the Checkfile. The schema will be printed to stdout.",
    )
    meta_group.add_argument(
        "--completions",
        action="store_true",
        help="Output instructions for how to set up shell completions via the shell's startup script.",
    )

    return parser
