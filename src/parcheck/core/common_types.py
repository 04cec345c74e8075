from typing import Literal

import msgspec

JobStatus = Literal["pending", "running", "succeeded", "failed", "killed"]

TerminalJobStatus = Literal["succeeded", "failed", "killed"]


class Succeeded(msgspec.Struct, frozen=True, tag="succeeded"):
    """The job ran to completion and exited with status 0."""

    @property
    def rc(self) -> int:
        return 0

    @property
    def status(self) -> TerminalJobStatus:
        return "succeeded"


class Failed(msgspec.Struct, frozen=True, tag="failed"):
    """The job exited with a non-zero status, or could not be launched at all."""

    rc: int  # exit code; follows shell conventions, so signals are 128 + N
    launch_error: str | None = None  # set if the command could not be started

    @property
    def status(self) -> TerminalJobStatus:
        return "failed"


class Killed(msgspec.Struct, frozen=True, tag="killed"):
    """The job was terminated by the supervisor because another job failed first."""

    signal: int | None = None  # the last signal sent to the job, if it was started

    @property
    def rc(self) -> int:
        return 128 + self.signal if self.signal else 1

    @property
    def status(self) -> TerminalJobStatus:
        return "killed"


JobResult = Succeeded | Failed | Killed
