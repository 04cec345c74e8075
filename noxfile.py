import shutil

import nox

if shutil.which("uv"):
    nox.options.default_venv_backend = "uv"

nox.options.error_on_external_run = True
nox.options.stop_on_first_error = True

python_versions = ["3.11", "3.12", "3.13"]


@nox.session(python=python_versions)
def tests(session):
    session.install(".[test]")
    session.run("pytest", "-vv")
    session.run("parcheck", "--help", silent=True)
    session.run("parcheck", "--dump-schema", silent=True)


@nox.session(python=python_versions)
def examples(session):
    session.install(".")

    # Only listing here; the examples need cargo, ruff and friends to actually run.
    session.run("parcheck", "--preset", "cargo", "--list")
    session.run("parcheck", "-C", "examples/cargo", "--list")
    session.run("parcheck", "-C", "examples/python", "--list")

    # No Checkfile in the project root
    session.run("parcheck", success_codes=[1])

    with session.chdir("examples/failing"):
        session.run("parcheck", "quick")
        session.run("parcheck", "--kill-timeout", "1", success_codes=[2])
        session.run("parcheck", "--sequential", success_codes=[2])


@nox.session(python="3.13")
def typecheck(session):
    session.install(".[dev]")
    session.run("mypy", "src/parcheck")
