import sys

isatty = sys.stdout.isatty()


class TerminalStyle:
    """Terminal Text Styling"""

    RESET = "\033[0m" if isatty else ""
    BOLD = "\033[1m" if isatty else ""
    NOBOLD = "\033[22m" if isatty else ""
    DIM = "\033[2m" if isatty else ""
    ITALIC = "\033[3m" if isatty else ""

    class Fg:
        """Foreground Text Color"""

        BLACK = "\033[30m" if isatty else ""
        RED = "\033[31m" if isatty else ""
        GREEN = "\033[32m" if isatty else ""
        YELLOW = "\033[33m" if isatty else ""
        BLUE = "\033[34m" if isatty else ""
        MAGENTA = "\033[35m" if isatty else ""
        CYAN = "\033[36m" if isatty else ""
        WHITE = "\033[37m" if isatty else ""
        RESET = "\033[39m" if isatty else ""

        BRIGHT_BLACK = "\033[90m" if isatty else ""
        BRIGHT_RED = "\033[91m" if isatty else ""
        BRIGHT_YELLOW = "\033[93m" if isatty else ""
        BRIGHT_CYAN = "\033[96m" if isatty else ""
        BRIGHT_WHITE = "\033[97m" if isatty else ""

    class Bg:
        """Background Text Color"""

        RED = "\033[41m" if isatty else ""
        YELLOW = "\033[43m" if isatty else ""
        RESET = "\033[49m" if isatty else ""


STATUS_TEXT_FIELD_WIDTH = 12


parcheck_prefix_string = f"{TerminalStyle.Fg.BRIGHT_CYAN}{'parcheck >>>':<{STATUS_TEXT_FIELD_WIDTH}}{TerminalStyle.Fg.RESET}{TerminalStyle.NOBOLD}"


def output_info(s: str):
    print(
        f"{parcheck_prefix_string} {TerminalStyle.Fg.BRIGHT_CYAN}{s}{TerminalStyle.Fg.RESET}"
    )


def output_warning(s: str):
    print(
        f"{parcheck_prefix_string} {TerminalStyle.Fg.BRIGHT_YELLOW}{s}{TerminalStyle.Fg.RESET}"
    )


def output_error(s: str):
    print(
        f"{parcheck_prefix_string} {TerminalStyle.Fg.BRIGHT_RED}{s}{TerminalStyle.Fg.RESET}"
    )


def output_plain(s: str):
    print(s)
