"""Staleness checks and CMake build orchestration for native subprojects."""

from ncbuild.build.build_state import Action, classify_action
from ncbuild.build.orchestrator import BuildResult, NativeBuildOrchestrator
from ncbuild.errors import ExitCode, NativeBuildError

__all__ = [
    "Action",
    "BuildResult",
    "ExitCode",
    "NativeBuildError",
    "NativeBuildOrchestrator",
    "classify_action",
]
