import argparse
import os
from pathlib import Path
import shutil
import sys
import textwrap
from typing import Any, Generator

from argcomplete.completers import BaseCompleter, DirectoriesCompleter
from argcomplete.finders import CompletionFinder

from parcheck.output.output import output_plain


class CheckfileDirectoriesCompleter(DirectoriesCompleter):
    """
    A completer for directories that contain Checkfiles.
    """

    def __call__(self, prefix, **kwargs) -> Generator[str, Any, None]:  # type: ignore
        directories = super().__call__(prefix, **kwargs)
        checkfile_dirs = set()
        for dir in directories:
            checkfile_dirs |= {
                str(c.parent)
                for c in Path(dir).rglob("Checkfile.*")
                if c.suffix in {".toml", ".yml", ".yaml"}
            }
        for f in sorted(checkfile_dirs):
            yield f


singular_options = {
    "--completions",
    "--dump-schema",
    "--help",
    "--version",
    "-h",
    "-v",
}


class ParcheckCompletionFinder(CompletionFinder):
    """
    Override _get_completions to stop completing after options that make parcheck exit
    right away, and to prefer job labels over options.
    """

    def _get_completions(
        self, comp_words, cword_prefix, cword_prequote, last_wordbreak_pos
    ) -> list[str]:
        if set(comp_words) & singular_options:
            return []

        completions = super()._get_completions(
            comp_words, cword_prefix, cword_prequote, last_wordbreak_pos
        )

        job_completions = [c for c in completions if not c.startswith("-")]
        if job_completions and not cword_prefix.startswith("-"):
            return job_completions
        return completions


def do_completion(parser: argparse.ArgumentParser):
    completer = ParcheckCompletionFinder()
    completer(parser)


def is_completing():
    return os.environ.get("_ARGCOMPLETE") == "1"


def generate_shell_completions():
    parcheck_bin = Path(sys.argv[0])
    parcheck_completions = parcheck_bin.resolve().parent / "_parcheck_completions.sh"
    if not parcheck_completions.exists():
        import argcomplete.shell_integration

        with open(parcheck_completions, "w") as f:
            f.write(argcomplete.shell_integration.shellcode([str(parcheck_bin.name)]))

    terminal_cols, _ = shutil.get_terminal_size()
    indent_string = "# "
    width = min(terminal_cols, 80) - len(indent_string)
    description = f"""\
        A shell completions script has been generated in {parcheck_completions}. It
        will pick up the parcheck that is in PATH. Add the following line to your
        shell's startup script to load completions:
    """
    output_plain(
        textwrap.indent(
            textwrap.fill(
                textwrap.dedent(description),
                width=width,
                break_long_words=False,
                break_on_hyphens=False,
            ),
            indent_string,
        )
    )
    output_plain(f"\nsource {parcheck_completions}")


class JobLabelCompleter(BaseCompleter):
    """Completes job labels from the Checkfile or preset given on the command line."""

    def __call__(  # type: ignore
        self,
        *,
        prefix,
        action: argparse.Action,
        parser: argparse.ArgumentParser,
        parsed_args: argparse.Namespace,
        **kwargs,
    ):
        from parcheck.cmd.configuration import ConfigurationError, expand_jobs
        from parcheck.cmd.dispatcher import load_checkfile
        from parcheck.system_helpers import change_dir

        try:
            with change_dir(getattr(parsed_args, "directory", None)):
                checkfile = load_checkfile(
                    getattr(parsed_args, "file", None),
                    getattr(parsed_args, "preset", None),
                )
                specs = expand_jobs(checkfile)
        except ConfigurationError:
            return {}

        already_given = set(getattr(parsed_args, "jobs", None) or [])
        return {
            spec.label: spec.description or spec.command_line
            for spec in specs
            if spec.label not in already_given
        }
