import pytest

from parcheck.output import output
from parcheck.output.output import (
    TerminalStyle,
    output_error,
    output_info,
    output_plain,
    output_warning,
)


@pytest.mark.parametrize("function", [output_info, output_warning, output_error])
def test_prefixed_lines(capsys, function):
    function("Something happened")
    # Not a terminal under pytest, so no escape codes
    assert capsys.readouterr().out == "parcheck >>> Something happened\n"


def test_plain_line(capsys):
    output_plain("== lint ==")
    assert capsys.readouterr().out == "== lint ==\n"


def test_styles_are_empty_when_not_a_terminal():
    assert not output.isatty
    assert TerminalStyle.BOLD == ""
    assert TerminalStyle.Fg.BRIGHT_RED == ""
    assert TerminalStyle.Bg.RESET == ""
