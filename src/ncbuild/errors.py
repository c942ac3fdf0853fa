"""Exit codes and the error taxonomy of a native build run.

Each error carries the process exit code the CLI reports for it. Errors are
raised inside a phase and converted into a BuildResult by the orchestrator.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit status of an ncbuild invocation."""

    SUCCESS = 0
    INVALID_ARGS = 1
    NATIVE_SETTINGS_NOT_FOUND = 2
    NATIVE_CODE_PATH_NOT_FOUND = 3
    CMAKE_CONFIGURE_STEP_ERROR = 4
    CMAKE_BUILD_ERROR = 5
    BUILD_STAMP_PATH_NOT_SET = 6


class NativeBuildError(Exception):
    """Base class for all fatal native build errors."""

    exit_code: ExitCode = ExitCode.INVALID_ARGS

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSettingsError(NativeBuildError):
    """The settings document exists but cannot be parsed."""

    exit_code = ExitCode.INVALID_ARGS


class NativeSettingsNotFoundError(NativeBuildError):
    exit_code = ExitCode.NATIVE_SETTINGS_NOT_FOUND


class NativeCodePathNotFoundError(NativeBuildError):
    exit_code = ExitCode.NATIVE_CODE_PATH_NOT_FOUND


class BuildStampPathNotSetError(NativeBuildError):
    exit_code = ExitCode.BUILD_STAMP_PATH_NOT_SET


class CMakeConfigureError(NativeBuildError):
    """The configure phase exited non-zero or could not be launched."""

    exit_code = ExitCode.CMAKE_CONFIGURE_STEP_ERROR


class CMakeBuildError(NativeBuildError):
    """The build+install phase exited non-zero or could not be launched."""

    exit_code = ExitCode.CMAKE_BUILD_ERROR


class BuildStateError(NativeBuildError):
    """The stamp or settings file exists but its timestamp cannot be read."""

    exit_code = ExitCode.INVALID_ARGS
