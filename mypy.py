#!/usr/bin/env python3

from pathlib import Path

from parcheck.output.output import TerminalStyle as TS
from parcheck.output.output import output_error
from src.parcheck.system_helpers import call

directories = [
    Path("src/parcheck"),
    Path("tests"),
]
mypy = Path(".venv/bin/mypy")
extra_arguments = {
    # conftest is imported by name from the test modules
    Path("tests"): "--explicit-package-bases",
}

exit_code = 0

for directory in directories:
    print(f"\n{TS.BOLD}=== Running mypy in {directory} ==={TS.RESET}")
    s = call(
        f"{mypy} --no-warn-no-return --check-untyped-defs --pretty {extra_arguments.get(directory, '')} {directory}"
    )
    if not s:
        output_error(f"Failed to run mypy in {directory}")
        exit_code |= s

exit(exit_code)
