"""
System-near helper functions. Only import things from the standard library here; this
way these helpers can be used also for utility scripts.
"""

import contextlib
import errno
import os
import pty
import shlex
import signal
import subprocess
from typing import Generator


class ProcessGenerator:
    """
    Class that wraps a process return value and a generator that yields the output of a
    process line by line.

    Attributes
    ----------
    returncode : int
        Process return code.
    generator : Generator
        Generator that yields the output of the process line by line.

    Yields
    ------
    str
        Output of the process.
    """

    returncode: int
    """Process return code."""

    generator: Generator
    """Generator that yields the output of the process line by line."""

    def __init__(self):
        self.returncode = -1

    def __iter__(self):
        self.value = yield from self.generator


def subprocess_tty(cmd, encoding="utf-8", timeout=10, **kwargs):
    """
    Wrapper around subprocess.Popen that sets up the process as if it were running in a
    TTY and returns a generator that yields the combined stdout and stderr of the
    process line by line.

    Parameters
    ----------
    cmd :
        Passed directly to subprocess.Popen; see its documentation for details.
    encoding : str, optional
        Encoding to use when reading the output, by default "utf-8".
    timeout : int, optional
        Timeout to use when waiting for the child process to exit after the generator
        was closed early, by default 10 seconds.

    Returns
    -------
    ProcessGenerator
        Generator that yields the output of the child process line by line. After the
        generator is exhausted, the returncode attribute of the generator will be set to
        the exit code of the child process.

    Raises
    ------
    subprocess.TimeoutExpired
        Re-raised if the child process did not exit within the set timeout after having
        received both terminate and kill signals.

    Can also raise other exceptions from subprocess.Popen.
    """

    generator = ProcessGenerator()

    def subprocess_iterator():
        m, s = pty.openpty()
        try:
            p = subprocess.Popen(cmd, stdout=s, stderr=s, **kwargs)
        except OSError:
            os.close(m)
            raise
        finally:
            os.close(s)

        try:
            for line in open(m, encoding=encoding, errors="replace"):
                if not line:  # EOF
                    break
                yield line
        except OSError as e:
            if e.errno != errno.EIO:  # EIO also means EOF
                raise
        finally:
            if p.poll() is None:
                p.send_signal(signal.SIGINT)
                try:
                    p.wait(timeout)
                except subprocess.TimeoutExpired:
                    p.terminate()
                    try:
                        p.wait(timeout)
                    except subprocess.TimeoutExpired:
                        p.kill()
                        raise
            p.wait()
            generator.returncode = p.returncode

    generator.generator = subprocess_iterator()
    return generator


def subprocess_tty_print(cmd, encoding="utf-8", timeout=10, **kwargs):
    """
    Thin wrapper around subprocess_tty that prints its output line by line. See
    subprocess_tty for details.

    Returns
    -------
    int
        The status code from the subprocess.
    """
    proc = subprocess_tty(cmd, encoding, timeout, **kwargs)
    for line in proc:
        print(line.rstrip())
    return proc.returncode


class ExitCode(int):
    """
    An int with a customised __bool__ method that considers 0 to be truthy. This is
    useful for working with subprocess return codes.
    """

    def __bool__(self):
        return self == 0


def call(cmd, encoding="utf-8", timeout=10, **kwargs) -> ExitCode:
    """
    Convenience wrapper around subprocess_tty_print; the command to be executed can be
    given as string that will be split instead of as an array. Output will be printed
    line by line.

    Returns
    -------
    ExitCode
        The exit code from the subprocess. ExitCode is a subclass of int that can be
        used as a boolean; subprocess success (0) is considered truthy.
    """

    return ExitCode(subprocess_tty_print(shlex.split(cmd), encoding, timeout, **kwargs))


def returncode_to_exit_code(returncode: int) -> int:
    """
    Convert a Popen returncode to the exit code a shell would report: processes killed
    by signal N get 128 + N.
    """
    return 128 - returncode if returncode < 0 else returncode


def signal_process_group(process: subprocess.Popen, sig: int) -> bool:
    """
    Send a signal to the process group led by process, falling back to the process
    itself where process groups are not available. The group is signalled even when
    its leader has exited, so background children of the job are reached too.

    Returns True if the signal was sent, False if nothing was left to signal.
    """
    if not hasattr(os, "killpg"):
        if process.poll() is not None:
            return False
        process.send_signal(sig)
        return True
    try:
        os.killpg(process.pid, sig)
    except (ProcessLookupError, PermissionError):
        # The whole group is gone
        return False
    return True


@contextlib.contextmanager
def change_dir(dir: str | os.PathLike | None):
    old_dir = os.getcwd()
    try:
        if dir is not None:
            os.chdir(dir)
        yield
    finally:
        os.chdir(old_dir)
