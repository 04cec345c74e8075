import textwrap

from parcheck.cmd.configuration import JobSpec
from parcheck.output.output import TerminalStyle as TS

HEADER = f"{TS.BOLD}Available jobs:{TS.RESET}"


def format_jobs(specs: list[JobSpec]) -> list[str]:
    output: list[str] = []
    output.append("")
    for spec in specs:
        output.append(f"{TS.BOLD}{spec.label}{TS.RESET}")
        if spec.description:
            output.append(
                textwrap.fill(
                    spec.description,
                    initial_indent="    ",
                    subsequent_indent="    ",
                )
            )
        output.append(f"    {TS.DIM}{spec.command_line}{TS.RESET}")
        output.append("")
    return output


def print_jobs(specs: list[JobSpec]):
    print("\n".join([HEADER, *format_jobs(specs)]))
