import os
from pathlib import Path
import shutil
import tempfile
import threading

import msgspec

from parcheck.core.common_types import JobResult
from parcheck.core.job import Job
from parcheck.logutils import logger

DEFAULT_WORKSPACE_PARENT_NAME = "parcheck-concurrent"


def default_workspace_root() -> Path:
    return Path(tempfile.gettempdir()) / DEFAULT_WORKSPACE_PARENT_NAME


class Workspace:
    """
    Scoped temporary directory for one run. Holds the output and result files of the
    jobs; each job only ever writes to its own files.

    The directory is created in a parent directory that is shared between runs, and the
    parent is removed together with the last run directory in it.
    """

    root: Path
    path: Path | None
    keep: bool

    def __init__(self, root: str | os.PathLike | None = None, *, keep: bool = False):
        self.root = Path(root) if root is not None else default_workspace_root()
        self.path = None
        self.keep = keep
        self._removal_timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def create(self) -> Path:
        # mkdtemp creates the directory atomically, so concurrent runs never collide. The
        # parent can be removed by a finishing sibling run in between, so retry once.
        for attempt in range(2):
            self.root.mkdir(parents=True, exist_ok=True)
            try:
                self.path = Path(tempfile.mkdtemp(prefix="run_", dir=self.root))
                break
            except FileNotFoundError:
                if attempt:
                    raise
        assert self.path is not None
        logger.info("Created workspace %s", self.path)
        return self.path

    def _require_path(self) -> Path:
        if self.path is None:
            raise RuntimeError("Workspace has not been created")
        return self.path

    def output_file(self, job: Job) -> Path:
        return self._require_path() / f"out_{job.index}"

    def result_file(self, job: Job) -> Path:
        return self._require_path() / f"result_{job.index}.json"

    def record_result(self, job: Job, result: JobResult):
        self.result_file(job).write_bytes(msgspec.json.encode(result))

    def read_result(self, job: Job) -> JobResult | None:
        try:
            return msgspec.json.decode(
                self.result_file(job).read_bytes(), type=JobResult
            )
        except FileNotFoundError:
            return None
        except msgspec.DecodeError as e:
            logger.warning("Unreadable result file for job '%s': %s", job.label, e)
            return None

    @property
    def removal_scheduled(self) -> bool:
        return self._removal_timer is not None

    def remove(self):
        """
        Remove the run directory, and the shared parent if it is left empty. Safe to call
        several times; errors are logged and ignored.
        """
        with self._lock:
            if self.path is not None and self.path.exists():
                shutil.rmtree(self.path, ignore_errors=True)
                if self.path.exists():
                    logger.debug("Could not fully remove workspace %s", self.path)
                else:
                    logger.info("Removed workspace %s", self.path)
            try:
                # Only succeeds if no other run is using the parent
                self.root.rmdir()
            except OSError as e:
                logger.debug("Keeping workspace parent %s: %s", self.root, e)

    def schedule_removal(self, delay: float):
        """
        Remove the workspace after delay seconds on a timer thread. The interpreter waits
        for the timer before exiting.
        """
        if self.keep or self._removal_timer is not None:
            return
        logger.info("Scheduling workspace removal in %s seconds", delay)
        self._removal_timer = threading.Timer(delay, self.remove)
        self._removal_timer.name = "parcheck-workspace-cleanup"
        self._removal_timer.start()

    def wait_for_removal(self, timeout: float | None = None):
        if self._removal_timer is not None:
            self._removal_timer.join(timeout)

    def __enter__(self):
        self.create()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if self.keep:
            if self.path is not None:
                logger.info("Keeping workspace %s", self.path)
            return
        if self._removal_timer is None:
            self.remove()
