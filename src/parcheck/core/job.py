from pathlib import Path
import shlex
import subprocess

from parcheck.core.common_types import JobResult, JobStatus

Command = str | list[str]
"""A shell command line run through the shell, or an argv list run directly."""


class JobStateError(RuntimeError):
    """Raised when a job is moved backwards or out of a terminal state."""


class Job:
    label: str
    command: Command
    index: int
    cwd: str | None
    env: dict[str, str] | None
    process: subprocess.Popen | None
    output_file: Path | None
    result: JobResult | None

    def __init__(
        self,
        label: str,
        command: Command,
        index: int = 0,
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ):
        self.label = label
        self.command = command
        self.index = index
        self.cwd = cwd
        self.env = env
        self.process = None
        self.output_file = None
        self.result = None

    @property
    def status(self) -> JobStatus:
        if self.result is not None:
            return self.result.status
        if self.process is not None:
            return "running"
        return "pending"

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process else None

    @property
    def shell(self) -> bool:
        return isinstance(self.command, str)

    @property
    def command_line(self) -> str:
        if isinstance(self.command, str):
            return self.command
        return shlex.join(self.command)

    def started(self, process: subprocess.Popen):
        if self.status != "pending":
            raise JobStateError(f"Job '{self.label}' was started twice")
        self.process = process

    def finish(self, result: JobResult):
        if self.result is not None:
            raise JobStateError(
                f"Job '{self.label}' already {self.result.status}, cannot be {result.status}"
            )
        self.result = result

    def read_output(self) -> str:
        if self.output_file is None or not self.output_file.exists():
            return ""
        return self.output_file.read_text(encoding="utf-8", errors="replace")

    def __repr__(self) -> str:
        return f'"{self.label}, status: {self.status}"'

    def __hash__(self) -> int:
        return hash(self.label)

    def __str__(self) -> str:
        return self.label

    def __eq__(self, __o: object) -> bool:
        return isinstance(__o, Job) and self.label == __o.label
