from dataclasses import dataclass
import re

from parcheck.core.supervisor import RunReport
from parcheck.output.output import TerminalStyle as TS
from parcheck.output.output import isatty, output_plain


@dataclass
class HighlightConfig:
    pattern: str | re.Pattern[str]
    start: str
    end: str


warning_hl_config = HighlightConfig(
    pattern=r"(warn\w*:?|WARN\w*:?)",
    start=TS.Bg.YELLOW + TS.Fg.BLACK,
    end=TS.Fg.RESET + TS.Bg.RESET,
)

error_hl_config = HighlightConfig(
    pattern=r"(error\w*:?|ERR!|panicked)",
    start=TS.Bg.RED,
    end=TS.Fg.RESET + TS.Bg.RESET,
)

default_highlight_config: list[HighlightConfig] = [warning_hl_config, error_hl_config]

NO_OUTPUT_TEXT = "... (no output?) ..."


def highlight_log(message: str, config: list[HighlightConfig] | None = None):
    """
    Highlights the message according to the regexes and styles. Regexes are applied
    per line.
    """
    if not config:
        return message

    lines = []
    for line in message.splitlines():
        for c in config:
            line = re.sub(c.pattern, c.start + r"\1" + c.end, line, flags=re.IGNORECASE)
        lines.append(line)
    return "\n".join(lines)


def format_failure_header(label: str) -> str:
    return f"{TS.Fg.RED}=={TS.RESET} {TS.BOLD}{TS.Fg.BRIGHT_WHITE}{label}{TS.RESET} {TS.Fg.RED}=={TS.RESET}"


def format_fallback_hint(fallback_hint: str) -> str:
    return f"{TS.Fg.YELLOW}*{TS.RESET} {TS.ITALIC}The sequential run {TS.RESET}{fallback_hint}{TS.ITALIC} may provide a more in-context view of the cause of the issue.{TS.RESET}"


def output_failed_jobs(report: RunReport, fallback_hint: str):
    """
    Print the captured output of every job that failed on its own. Jobs that were
    killed because another job failed first are left out.
    """
    for job in report.failed_jobs:
        output_plain(format_failure_header(job.label))
        log = report.failure_outputs.get(job.label, "").rstrip("\n")
        if log:
            output_plain(
                highlight_log(log, default_highlight_config) if isatty else log
            )
            output_plain(format_fallback_hint(fallback_hint))
        else:
            output_plain(NO_OUTPUT_TEXT)
