import datetime
import logging
import os

from parcheck.output.output import TerminalStyle as TS

DEBUG_ENVIRONMENT_VARIABLE = "DEBUG_PARCHECK"
LATEST_LOG_LINK = "parcheck_debug_latest.log"

# parcheck's modules have short names; the threads are the main thread, one waiter per
# job and the cleanup timer
FILENAME_WIDTH = 24
THREAD_NAME_WIDTH = 18
THREAD_NAME_PREFIX = "parcheck-"


def __getattr__(name):
    if name == "logger":
        return logging.getLogger("parcheck")
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def debug_log_filename(now: datetime.datetime, pid: int) -> str:
    """One log per process, so concurrent runs in the same directory don't mix."""
    return f"parcheck_debug_{now:%Y%m%d-%H%M%S}_{pid}.log"


class CustomLogFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": TS.Fg.BLUE,
        "INFO": TS.Fg.GREEN,
        "WARNING": TS.Fg.YELLOW,
        "ERROR": TS.Fg.RED,
        "CRITICAL": TS.Fg.RED + TS.BOLD,
    }

    no_colors = False

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        no_colors: bool = False,
    ):
        super().__init__(fmt, datefmt)
        self.no_colors = no_colors

    @staticmethod
    def short_thread_name(record: logging.LogRecord) -> str:
        name = record.threadName or ""
        return name.removeprefix(THREAD_NAME_PREFIX)[:THREAD_NAME_WIDTH]

    def format(self, record: logging.LogRecord) -> str:
        # Doesn't care about the format string used when instantiating the logger
        location = f"{record.filename}:{record.lineno}"
        thread = f"{self.short_thread_name(record):<{THREAD_NAME_WIDTH}}"
        message = record.getMessage()

        if self.no_colors:
            return " | ".join(
                [
                    self.formatTime(record),
                    thread,
                    f"{record.levelname:<8}",
                    f"{location:<{FILENAME_WIDTH}}",
                    message,
                ]
            )

        level_color = self.COLORS.get(record.levelname, "")
        return " | ".join(
            [
                self.formatTime(record),
                f"{TS.Fg.MAGENTA}{thread}{TS.RESET}",
                f"{level_color}{record.levelname:<8}{TS.RESET}",
                f"{TS.Fg.CYAN}{location:<{FILENAME_WIDTH}}{TS.RESET}",
                message,
            ]
        )

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        formatted_time = super().formatTime(record, datefmt)
        if self.no_colors:
            return formatted_time
        return f"{TS.Fg.CYAN}{formatted_time}{TS.RESET}"


def setup_logging():
    """
    Configure the parcheck logger from DEBUG_PARCHECK: unset disables logging, any value
    logs to stderr, and values containing "file" or "silent" also log to a file in the
    current directory ("silent" only to the file).
    """
    debug = os.environ.get(DEBUG_ENVIRONMENT_VARIABLE, "").lower()
    logger = logging.getLogger("parcheck")

    if not debug:
        logger.disabled = True
        return

    logger.disabled = False
    logger.setLevel(logging.DEBUG)

    if "silent" not in debug:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.DEBUG)
        stream_handler.setFormatter(CustomLogFormatter())
        logger.addHandler(stream_handler)

    if "file" in debug or "silent" in debug:
        log_file = debug_log_filename(datetime.datetime.now(), os.getpid())
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(CustomLogFormatter(no_colors=True))
        logger.addHandler(file_handler)

        if os.path.lexists(LATEST_LOG_LINK):
            os.unlink(LATEST_LOG_LINK)
        os.symlink(log_file, LATEST_LOG_LINK)

    logger.debug("Debug logging enabled")
