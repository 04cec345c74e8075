from dataclasses import dataclass, field
import itertools
import os
from pathlib import Path
import shlex
import string
from typing import Annotated

import msgspec

from parcheck.core.job import Command
from parcheck.core.supervisor import DEFAULT_CLEANUP_DELAY, DEFAULT_KILL_TIMEOUT
from parcheck.logutils import logger

CHECKFILE_NAMES = ["Checkfile.toml", "Checkfile.yml", "Checkfile.yaml"]

DEFAULT_FALLBACK_HINT = "parcheck --sequential"


class ConfigurationError(Exception):
    """Raised for Checkfiles that can't be read or don't make sense."""


NonNegativeSeconds = Annotated[float, msgspec.Meta(ge=0)]


class Settings(msgspec.Struct, forbid_unknown_fields=True, kw_only=True):
    kill_timeout: NonNegativeSeconds = DEFAULT_KILL_TIMEOUT
    """Seconds to wait for terminated jobs before killing them."""
    cleanup_delay: NonNegativeSeconds = DEFAULT_CLEANUP_DELAY
    """Seconds to wait after a failed run before removing the workspace."""
    workspace_root: str | None = None
    """Parent directory for the run workspaces. Defaults to the system temp directory."""
    fallback_hint: str = DEFAULT_FALLBACK_HINT
    """Command suggested for a sequential run when a job has failed."""
    keep_workspace: bool = False
    """Leave the workspace with the job outputs in place after the run."""


class JobDefinition(msgspec.Struct, forbid_unknown_fields=True, kw_only=True):
    shell: str | None = None
    """Command line that is run through the shell."""
    argv: list[str] | None = None
    """Program and arguments that are run without a shell."""
    cwd: str | None = None
    env: dict[str, str] = {}
    description: str | None = None


class Checkfile(msgspec.Struct, forbid_unknown_fields=True, kw_only=True):
    settings: Settings = msgspec.field(default_factory=Settings)
    matrix: dict[str, list[str]] = {}
    jobs: dict[str, JobDefinition] = {}


@dataclass
class JobSpec:
    """A job from a Checkfile with all matrix variables filled in."""

    label: str
    command: Command
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    description: str | None = None

    @property
    def command_line(self) -> str:
        if isinstance(self.command, str):
            return self.command
        return shlex.join(self.command)


def find_checkfile(directory: str | os.PathLike = ".") -> Path | None:
    for name in CHECKFILE_NAMES:
        candidate = Path(directory) / name
        if candidate.is_file():
            return candidate
    return None


def has_checkfile(directory: str | os.PathLike = ".") -> bool:
    return find_checkfile(directory) is not None


def read_checkfile(path: str | os.PathLike) -> Checkfile:
    path = Path(path)
    logger.info("Reading Checkfile %s", path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ConfigurationError(f"Could not read {path}: {e.strerror}") from e

    try:
        match path.suffix:
            case ".toml":
                return msgspec.toml.decode(data, type=Checkfile)
            case ".yml" | ".yaml":
                return msgspec.yaml.decode(data, type=Checkfile)
            case _:
                raise ConfigurationError(
                    f"Unsupported Checkfile format '{path.suffix}' for {path}"
                )
    except msgspec.ValidationError as e:
        raise ConfigurationError(f"Invalid Checkfile {path}: {e}") from e
    except msgspec.DecodeError as e:
        raise ConfigurationError(f"Malformed Checkfile {path}: {e}") from e


def dump_schema() -> str:
    schema = msgspec.json.schema(Checkfile)
    return msgspec.json.format(msgspec.json.encode(schema), indent=2).decode("utf-8")


class MatrixFormatter(string.Formatter):
    """str.format with an extra conversion, !c, that capitalizes the value."""

    def convert_field(self, value, conversion):
        if conversion == "c":
            return str(value).capitalize()
        return super().convert_field(value, conversion)


matrix_formatter = MatrixFormatter()


def expand_template(template: str, variables: dict[str, str], label: str) -> str:
    if not variables:
        return template
    try:
        return matrix_formatter.vformat(template, (), variables)
    except KeyError as e:
        raise ConfigurationError(
            f"Job '{label}' uses unknown matrix variable {e}"
        ) from e
    except (ValueError, IndexError) as e:
        raise ConfigurationError(f"Job '{label}': invalid placeholder: {e}") from e


def expand_job(label: str, definition: JobDefinition, variables: dict[str, str]):
    if (definition.shell is None) == (definition.argv is None):
        raise ConfigurationError(
            f"Job '{label}' must have exactly one of 'shell' and 'argv'"
        )

    command: Command
    if definition.shell is not None:
        command = expand_template(definition.shell, variables, label)
    else:
        assert definition.argv is not None
        command = [expand_template(arg, variables, label) for arg in definition.argv]

    return JobSpec(
        label=expand_template(label, variables, label),
        command=command,
        cwd=expand_template(definition.cwd, variables, label)
        if definition.cwd
        else None,
        env={k: expand_template(v, variables, label) for k, v in definition.env.items()},
        description=expand_template(definition.description, variables, label)
        if definition.description
        else None,
    )


def expand_jobs(checkfile: Checkfile) -> list[JobSpec]:
    """
    Expand the jobs of a Checkfile over its matrix. The matrix is the outer loop, so
    with a matrix of two channels all jobs for the first channel come first.
    """
    for name, values in checkfile.matrix.items():
        if not values:
            raise ConfigurationError(f"Matrix variable '{name}' has no values")

    names = list(checkfile.matrix)
    combinations = [
        dict(zip(names, values))
        for values in itertools.product(*checkfile.matrix.values())
    ]

    specs: dict[str, JobSpec] = {}
    for variables in combinations:
        for label, definition in checkfile.jobs.items():
            spec = expand_job(label, definition, variables)
            if existing := specs.get(spec.label):
                if existing != spec:
                    raise ConfigurationError(
                        f"Job label '{spec.label}' is used for different commands; add a matrix variable to the label"
                    )
                continue
            specs[spec.label] = spec

    logger.debug("Expanded %s jobs: %s", len(specs), list(specs))
    return list(specs.values())


def select_jobs(specs: list[JobSpec], labels: list[str]) -> list[JobSpec]:
    """The jobs with the given labels, in Checkfile order. All jobs if labels is empty."""
    if not labels:
        return specs
    known = {spec.label for spec in specs}
    unknown = [label for label in labels if label not in known]
    if unknown:
        raise ConfigurationError(
            f"Unknown job{'s' if len(unknown) > 1 else ''}: {', '.join(repr(u) for u in unknown)}"
        )
    wanted = set(labels)
    return [spec for spec in specs if spec.label in wanted]
