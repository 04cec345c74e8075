from .core.common_types import Failed, JobResult, Killed, Succeeded
from .core.job import Job
from .core.supervisor import DuplicateJobLabelError, RunReport, Supervisor
from .core.workspace import Workspace

__all__ = [
    "DuplicateJobLabelError",
    "Failed",
    "Job",
    "JobResult",
    "Killed",
    "RunReport",
    "Succeeded",
    "Supervisor",
    "Workspace",
]
