"""Coverage instrumentation flags and the environment they map to."""

from __future__ import annotations

from dataclasses import dataclass

from covrun.config.models import InstrumentationConfig

INSTRUMENTATION_ENV_VARS = ("CARGO_INCREMENTAL", "RUSTFLAGS", "RUSTDOCFLAGS")


@dataclass(frozen=True, slots=True)
class InstrumentationFlags:
    """Compiler flags for gcov-style coverage of a cargo test run.

    The same flag string goes to rustc and rustdoc; doctests compiled with
    different flags would write counters that grcov cannot merge.
    """

    profile: bool = True
    codegen_units: int = 1
    inline_threshold: int = 0
    link_dead_code: bool = True
    overflow_checks: bool = False
    incremental: bool = False

    @classmethod
    def from_config(cls, config: InstrumentationConfig) -> InstrumentationFlags:
        return cls(
            profile=config.profile,
            codegen_units=config.codegen_units,
            inline_threshold=config.inline_threshold,
            link_dead_code=config.link_dead_code,
            overflow_checks=config.overflow_checks,
            incremental=config.incremental,
        )

    def flag_list(self) -> list[str]:
        flags: list[str] = []
        if self.profile:
            flags.append("-Zprofile")
        flags.append(f"-Ccodegen-units={self.codegen_units}")
        flags.append(f"-Cinline-threshold={self.inline_threshold}")
        if self.link_dead_code:
            flags.append("-Clink-dead-code")
        flags.append(f"-Coverflow-checks={'on' if self.overflow_checks else 'off'}")
        return flags

    def rustflags(self) -> str:
        return " ".join(self.flag_list())

    def to_env(self) -> dict[str, str]:
        """Environment overrides for the test step. RUSTFLAGS == RUSTDOCFLAGS always."""
        flags = self.rustflags()
        return {
            "CARGO_INCREMENTAL": "1" if self.incremental else "0",
            "RUSTFLAGS": flags,
            "RUSTDOCFLAGS": flags,
        }
