"""
Native build orchestration.

Sequences one invocation of the native build:

    validate paths -> classify -> [configure] -> build+install
                   -> harvest artifacts -> update stamp

- Nothing is run when the classification is Action.NONE.
- Configure only runs for Action.REGENERATE.
- The stamp is only touched after every phase that ran succeeded, so an
  interrupted or failed run is re-attempted by the next invocation.
- Artifact harvest failures are reported but never fail the run.
"""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from ncbuild.build.artifacts import ArtifactCopyResult, harvest_artifacts
from ncbuild.build.build_state import Action, classify_action, stamp_path_for, touch_stamp
from ncbuild.build.cmake_args import (
    TargetPlatform,
    build_arguments,
    build_directory,
    configure_arguments,
    detect_target_platform,
)
from ncbuild.build.process_runner import LogSink, run_process
from ncbuild.errors import (
    BuildStateError,
    CMakeBuildError,
    CMakeConfigureError,
    ExitCode,
    NativeBuildError,
    NativeCodePathNotFoundError,
    NativeSettingsNotFoundError,
)
from ncbuild.output import TimedLogger, format_detail, format_phase, format_warning, is_verbose, log
from ncbuild.settings import SETTINGS_FILE_NAME, NativeCodeSettings, load_settings

# Module-level logger
logger = logging.getLogger(__name__)

ProcessRunner = Callable[[str, List[str], LogSink], int]

TOTAL_PHASES = 4

TOOL_OUTPUT_PREFIX = "CMake: "

INSTALL_HINT = (
    "If you see an error above about something not existing and mentioning the "
    "install target then you will need to add installing to your cmake script.\n"
    "The simplest way to do this is:\n"
    "install(TARGETS YOURTARGET ARCHIVE DESTINATION lib LIBRARY DESTINATION lib RUNTIME DESTINATION lib)"
)


def get_cmake_executable() -> str:
    """CMake executable to run. NCBUILD_CMAKE overrides the PATH lookup of `cmake`."""
    return os.environ.get("NCBUILD_CMAKE") or "cmake"


@dataclass(frozen=True)
class BuildPlan:
    """Resolved inputs of one invocation, produced by path validation."""

    project_dir: Path
    configuration: str
    settings_path: Path
    settings: NativeCodeSettings
    source_dir: Path
    stamp_path: Path


@dataclass
class BuildResult:
    """Result of one orchestrated native build."""

    success: bool
    exit_code: ExitCode
    action: Optional[Action]
    message: str
    build_time: float
    build_dir: Optional[Path] = None
    artifacts: Optional[ArtifactCopyResult] = None


class NativeBuildOrchestrator:
    """
    Drives CMake for the native subproject of one project directory.

    The process runner and log sink are injectable so the whole sequence can
    run without CMake installed. Every progress line, tool line and warning
    goes to the sink.
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        sink: Optional[LogSink] = None,
        cmake: Optional[str] = None,
        target_platform: Optional[TargetPlatform] = None,
        verbose: Optional[bool] = None,
    ):
        """
        Args:
            runner: Runs one external process and returns its exit code
            sink: Receives every progress and tool output line
            cmake: CMake executable (defaults to get_cmake_executable())
            target_platform: Platform to build for (defaults to the running one)
            verbose: Also emit argument dumps (defaults to ncbuild.output verbosity)
        """
        self.runner = runner if runner is not None else run_process
        self.sink = sink if sink is not None else log
        self.cmake = cmake if cmake is not None else get_cmake_executable()
        self.target_platform = target_platform if target_platform is not None else detect_target_platform()
        self.verbose = verbose if verbose is not None else is_verbose()

    def _tool_sink(self, line: str) -> None:
        self.sink(f"{TOOL_OUTPUT_PREFIX}{line}")

    def _phase(self, phase: int, message: str, verbose_only: bool = False) -> None:
        if verbose_only and not self.verbose:
            return
        self.sink(format_phase(phase, TOTAL_PHASES, message))

    def _detail(self, message: str) -> None:
        """Verbose-only indented line."""
        if self.verbose:
            self.sink(format_detail(message))

    def prepare(self, project_dir: Path, configuration: str) -> BuildPlan:
        """
        Validate paths and load settings.

        Raises:
            NativeSettingsNotFoundError: No settings document in project_dir
            InvalidSettingsError: Settings document cannot be parsed
            NativeCodePathNotFoundError: Native source directory missing
            BuildStampPathNotSetError: Settings carry no stamp path
        """
        project_dir = Path(os.path.abspath(project_dir))
        settings_path = project_dir / SETTINGS_FILE_NAME

        if not settings_path.is_file():
            raise NativeSettingsNotFoundError(f"Native settings file not found: {settings_path}")

        settings = load_settings(settings_path)

        source_dir = Path(os.path.abspath(project_dir / settings.native_code_base))
        if not source_dir.is_dir():
            raise NativeCodePathNotFoundError(
                f"Your native source code directory ({source_dir}) doesn't exist!\n"
                f"Edit this file to change it: {settings_path}\n"
                f"Current contents:\n{settings.describe()}"
            )

        stamp_path = stamp_path_for(settings.build_stamp_path, configuration, project_dir)

        return BuildPlan(
            project_dir=project_dir,
            configuration=configuration,
            settings_path=settings_path,
            settings=settings,
            source_dir=source_dir,
            stamp_path=stamp_path,
        )

    def classify(self, plan: BuildPlan) -> Action:
        """
        Raises:
            BuildStateError: The stamp or settings timestamp cannot be read
        """
        try:
            return classify_action(
                plan.stamp_path,
                plan.settings_path,
                plan.settings.native_file_extensions,
                plan.source_dir,
                sink=self.sink,
            )
        except OSError as e:
            raise BuildStateError(f"Cannot read build state for {plan.stamp_path}: {e}") from e

    def _run_tool(self, args: List[str], error_type: type[NativeBuildError], failure_hint: str) -> None:
        try:
            returncode = self.runner(self.cmake, args, self._tool_sink)
        except OSError as e:
            raise error_type(f"Failed to launch {self.cmake}: {e}") from e

        if returncode != 0:
            raise error_type(f"CMake exited with non-zero error code: {returncode}.\n{failure_hint}")

    def configure(self, plan: BuildPlan, build_dir: Path) -> None:
        """Run the CMake configure phase into build_dir (created if absent)."""
        try:
            build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CMakeConfigureError(f"Cannot create build directory {build_dir}: {e}") from e

        args = configure_arguments(plan.settings, plan.source_dir, build_dir, self.target_platform)
        self._detail(f"CMake generation args are {' '.join(args)}")
        self._run_tool(
            args,
            CMakeConfigureError,
            f"Deleting the {build_dir} directory might fix this.",
        )

    def compile(self, plan: BuildPlan, build_dir: Path) -> None:
        """Run `cmake --build ... --target install` for the configuration."""
        args = build_arguments(plan.settings, build_dir, plan.configuration)
        self._detail(f"Calling cmake with {' '.join(args)}")
        self._run_tool(args, CMakeBuildError, INSTALL_HINT)

    def build(self, project_dir: Path, configuration: str) -> BuildResult:
        """
        Bring the native build of project_dir up to date for configuration.

        Args:
            project_dir: Project directory holding NativeCodeSettings.xml
            configuration: Build configuration name, e.g. "Debug" or "Release"

        Returns:
            BuildResult; exit_code is ExitCode.SUCCESS for both no-op and
            completed builds
        """
        start_time = time.time()
        action: Optional[Action] = None
        build_dir: Optional[Path] = None

        try:
            self._phase(1, "Checking native sources...")
            plan = self.prepare(project_dir, configuration)
            action = self.classify(plan)

            if action is Action.NONE:
                message = "No changes detected since last build -- quitting"
                self.sink(message)
                return BuildResult(
                    success=True,
                    exit_code=ExitCode.SUCCESS,
                    action=action,
                    message=message,
                    build_time=time.time() - start_time,
                )

            build_dir = build_directory(
                plan.source_dir, plan.settings.build_path_base, configuration, self.target_platform
            )
            self.sink(f"buildDir is {build_dir}")
            self._detail(f"CMake generation arguments are {plan.settings.generation_arguments}")
            self._detail(f"CMake build arguments are {plan.settings.build_arguments}")

            if action.needs_configure:
                self._phase(2, "Configuring with CMake...")
                self.configure(plan, build_dir)
            else:
                self._phase(2, "Configure skipped, build scripts unchanged", verbose_only=True)

            self._phase(3, f"Building {configuration}...")
            self.compile(plan, build_dir)

            with TimedLogger("Copying artifacts", phase=(4, TOTAL_PHASES), sink=self.sink):
                artifacts = harvest_artifacts(
                    plan.settings.dll_targets,
                    build_dir,
                    plan.project_dir,
                    self.target_platform,
                    self.sink,
                )

            try:
                touch_stamp(plan.stamp_path)
            except OSError as e:
                self.sink(format_warning(f"Could not update build stamp {plan.stamp_path}: {e}"))

        except NativeBuildError as e:
            logger.debug(f"Native build failed ({e.exit_code.name}): {e.message}")
            return BuildResult(
                success=False,
                exit_code=e.exit_code,
                action=action,
                message=e.message,
                build_time=time.time() - start_time,
                build_dir=build_dir,
            )

        message = "Work complete"
        if not artifacts.complete:
            message = f"Work complete ({len(artifacts.failed)} target(s) not copied: {', '.join(artifacts.failed)})"
        return BuildResult(
            success=True,
            exit_code=ExitCode.SUCCESS,
            action=action,
            message=message,
            build_time=time.time() - start_time,
            build_dir=build_dir,
            artifacts=artifacts,
        )
