from __future__ import annotations

from llvmenv.builders.cmake import ConfigureInputs, build_command, configure_command
from llvmenv.builders.driver import BuildDriver, BuildOutcome, BuildState
from llvmenv.builders.fingerprint import CONFIGURE_MARKER, configure_fingerprint

__all__ = [
    "CONFIGURE_MARKER",
    "BuildDriver",
    "BuildOutcome",
    "BuildState",
    "ConfigureInputs",
    "build_command",
    "configure_command",
    "configure_fingerprint",
]
