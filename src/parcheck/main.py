"""
Runs independent check commands concurrently and stops at the first failure.
"""

# PYTHON_ARGCOMPLETE_OK

import signal
import sys

from parcheck.cmd.dispatcher import parcheck
from parcheck.logutils import logger, setup_logging
from parcheck.output.output import output_warning


def raise_system_exit(signum, frame):
    # Unwinds like any other exit, so running jobs are stopped and the workspace is
    # removed
    raise SystemExit(128 + signum)


def main():
    setup_logging()
    logger.info("Starting")
    signal.signal(signal.SIGTERM, raise_system_exit)
    try:
        return parcheck()
    except KeyboardInterrupt:
        output_warning("Interrupted by user. Aborting.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
