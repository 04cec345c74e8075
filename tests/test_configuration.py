import json
import textwrap

import pytest

from parcheck.cmd.configuration import (
    Checkfile,
    ConfigurationError,
    JobDefinition,
    dump_schema,
    expand_jobs,
    find_checkfile,
    has_checkfile,
    read_checkfile,
    select_jobs,
)
from parcheck.cmd.presets import PRESETS
from parcheck.core.supervisor import DEFAULT_KILL_TIMEOUT

toml_checkfile = """
[settings]
kill_timeout = 2.5
fallback_hint = "./check.sh"

[matrix]
channel = ["nightly", "stable"]

[jobs."[{channel!c}] Clippy"]
shell = "cargo +{channel} clippy"
description = "Lint"

[jobs."[{channel!c}] Test"]
argv = ["cargo", "+{channel}", "test", "--quiet"]
env = { RUST_BACKTRACE = "1" }
"""

yaml_checkfile = """
settings:
  keep_workspace: true
jobs:
  lint:
    shell: ruff check .
  test:
    argv: [pytest, -x]
    cwd: tests
"""


def write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(textwrap.dedent(content))
    return path


def test_read_toml(tmp_path):
    checkfile = read_checkfile(write(tmp_path, "Checkfile.toml", toml_checkfile))
    assert checkfile.settings.kill_timeout == 2.5
    assert checkfile.settings.fallback_hint == "./check.sh"
    assert checkfile.settings.keep_workspace is False
    assert checkfile.matrix == {"channel": ["nightly", "stable"]}
    assert list(checkfile.jobs) == ["[{channel!c}] Clippy", "[{channel!c}] Test"]


def test_read_yaml(tmp_path):
    checkfile = read_checkfile(write(tmp_path, "Checkfile.yml", yaml_checkfile))
    assert checkfile.settings.keep_workspace is True
    assert checkfile.settings.kill_timeout == DEFAULT_KILL_TIMEOUT
    assert checkfile.jobs["test"] == JobDefinition(argv=["pytest", "-x"], cwd="tests")


def test_find_checkfile(tmp_path):
    assert find_checkfile(tmp_path) is None
    assert not has_checkfile(tmp_path)
    write(tmp_path, "Checkfile.yml", yaml_checkfile)
    assert find_checkfile(tmp_path) == tmp_path / "Checkfile.yml"
    write(tmp_path, "Checkfile.toml", toml_checkfile)
    # TOML takes precedence
    assert find_checkfile(tmp_path) == tmp_path / "Checkfile.toml"


@pytest.mark.parametrize(
    "name,content",
    [
        ("Checkfile.toml", "[jobs.lint]\nshel = 'typo'\n"),
        ("Checkfile.toml", "[jobs.lint\n"),
        ("Checkfile.toml", "[settings]\nkill_timeout = 'soon'\n"),
        ("Checkfile.toml", "[settings]\nkill_timeout = -1\n"),
        ("Checkfile.yml", "settings:\n  cleanup_delay: -0.5\n"),
        ("Checkfile.yml", "jobs: [1, 2]\n"),
        ("Checkfile.json", "{}"),
    ],
    ids=[
        "unknown_field",
        "malformed",
        "wrong_type",
        "negative_kill_timeout",
        "negative_cleanup_delay",
        "wrong_structure",
        "suffix",
    ],
)
def test_invalid_checkfiles(tmp_path, name, content):
    with pytest.raises(ConfigurationError):
        read_checkfile(write(tmp_path, name, content))


def test_missing_checkfile(tmp_path):
    with pytest.raises(ConfigurationError):
        read_checkfile(tmp_path / "Checkfile.toml")


def test_expand_matrix(tmp_path):
    specs = expand_jobs(read_checkfile(write(tmp_path, "Checkfile.toml", toml_checkfile)))

    assert [spec.label for spec in specs] == [
        "[Nightly] Clippy",
        "[Nightly] Test",
        "[Stable] Clippy",
        "[Stable] Test",
    ]
    assert specs[0].command == "cargo +nightly clippy"
    assert specs[0].description == "Lint"
    assert specs[3].command == ["cargo", "+stable", "test", "--quiet"]
    assert specs[3].env == {"RUST_BACKTRACE": "1"}
    assert specs[3].command_line == "cargo +stable test --quiet"


def test_expand_without_matrix_keeps_braces():
    checkfile = Checkfile(jobs={"awk": JobDefinition(shell="awk '{print $1}' file")})
    assert expand_jobs(checkfile)[0].command == "awk '{print $1}' file"


def test_expand_merges_jobs_that_do_not_use_the_matrix():
    checkfile = Checkfile(
        matrix={"channel": ["nightly", "stable"]},
        jobs={
            "fmt": JobDefinition(shell="cargo fmt --check"),
            "[{channel}] test": JobDefinition(shell="cargo +{channel} test"),
        },
    )
    assert [spec.label for spec in expand_jobs(checkfile)] == [
        "fmt",
        "[nightly] test",
        "[stable] test",
    ]


def test_expand_conflicting_labels():
    checkfile = Checkfile(
        matrix={"channel": ["nightly", "stable"]},
        jobs={"test": JobDefinition(shell="cargo +{channel} test")},
    )
    with pytest.raises(ConfigurationError, match="different commands"):
        expand_jobs(checkfile)


@pytest.mark.parametrize(
    "checkfile",
    [
        Checkfile(
            matrix={"channel": ["stable"]},
            jobs={"[{toolchain}]": JobDefinition(shell="true")},
        ),
        Checkfile(matrix={"channel": []}, jobs={"a": JobDefinition(shell="true")}),
        Checkfile(jobs={"neither": JobDefinition()}),
        Checkfile(jobs={"both": JobDefinition(shell="true", argv=["true"])}),
    ],
    ids=["unknown_variable", "empty_matrix", "no_command", "two_commands"],
)
def test_expand_errors(checkfile):
    with pytest.raises(ConfigurationError):
        expand_jobs(checkfile)


def test_select_jobs():
    specs = expand_jobs(
        Checkfile(
            jobs={
                "a": JobDefinition(shell="true"),
                "b": JobDefinition(shell="true"),
                "c": JobDefinition(shell="true"),
            }
        )
    )
    assert select_jobs(specs, []) == specs
    assert [spec.label for spec in select_jobs(specs, ["c", "a"])] == ["a", "c"]
    with pytest.raises(ConfigurationError, match="'d', 'e'"):
        select_jobs(specs, ["a", "d", "e"])


def test_cargo_preset():
    specs = expand_jobs(PRESETS["cargo"])
    assert [spec.label for spec in specs] == [
        "[Nightly] Clippy",
        "[Nightly] Test",
        "[Nightly] Test (Release)",
        "[Stable] Clippy",
        "[Stable] Test",
        "[Stable] Test (Release)",
    ]
    assert specs[-1].command == (
        "cargo +stable test --color always --quiet --examples --release"
    )


def test_dump_schema():
    schema = json.loads(dump_schema())
    definitions = schema["$defs"]
    assert "Checkfile" in definitions
    assert "kill_timeout" in definitions["Settings"]["properties"]
    assert "shell" in definitions["JobDefinition"]["properties"]


def test_zero_delays_are_allowed(tmp_path):
    path = write(
        tmp_path, "Checkfile.toml", "[settings]\nkill_timeout = 0\ncleanup_delay = 0\n"
    )
    settings = read_checkfile(path).settings
    assert settings.kill_timeout == 0
    assert settings.cleanup_delay == 0
