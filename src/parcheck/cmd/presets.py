from parcheck.cmd.configuration import Checkfile, JobDefinition, Settings

cargo_preset = Checkfile(
    settings=Settings(fallback_hint="parcheck --preset cargo --sequential"),
    matrix={"channel": ["nightly", "stable"]},
    jobs={
        "[{channel!c}] Clippy": JobDefinition(
            shell="cargo +{channel} clippy --color always",
            description="Lint with Clippy",
        ),
        "[{channel!c}] Test": JobDefinition(
            shell="cargo +{channel} test --color always --quiet --examples",
            description="Run the tests in debug mode",
        ),
        "[{channel!c}] Test (Release)": JobDefinition(
            shell="cargo +{channel} test --color always --quiet --examples --release",
            description="Run the tests in release mode",
        ),
    },
)

PRESETS: dict[str, Checkfile] = {
    "cargo": cargo_preset,
}
