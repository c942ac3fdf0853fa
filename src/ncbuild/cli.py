"""
Command-line interface for ncbuild.

    ncbuild build PROJECT_DIR CONFIGURATION   Bring the native build up to date
    ncbuild create -o NativeCodeSettings.xml  Write a new settings document

The process exit status of `build` is the ExitCode of the run.
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, NoReturn, Optional

from rich.console import Console

from ncbuild import __version__
from ncbuild.build.orchestrator import NativeBuildOrchestrator
from ncbuild.errors import ExitCode
from ncbuild.output import init_timer, log, log_build_complete, log_error, log_header, set_verbose
from ncbuild.settings import NativeCodeSettings, save_settings

console = Console()


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    configuration: str
    verbose: bool = False


@dataclass
class CreateArgs:
    """Arguments for the create command."""

    output_path: Path
    native_code_path: Optional[str] = None
    targets: List[str] = field(default_factory=list)
    cmake_args: Optional[str] = None
    build_folder_base: Optional[str] = None
    yes: bool = False


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with ExitCode.INVALID_ARGS.

    argparse exits with 2 by default, which would read as
    NATIVE_SETTINGS_NOT_FOUND to callers checking the exit status.
    """

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(int(ExitCode.INVALID_ARGS), f"{self.prog}: error: {message}\n")


def _configure_logging(verbose: bool) -> None:
    set_verbose(verbose)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def build_command(args: BuildArgs) -> int:
    """Run one incremental native build.

    Examples:
        ncbuild build . Debug
        ncbuild build ../MyApp Release --verbose
    """
    init_timer()
    log_header("ncbuild Native Code Builder", __version__)

    project_dir = Path(os.path.abspath(args.project_dir))
    log(f"Building {project_dir} ({args.configuration})")

    try:
        result = NativeBuildOrchestrator().build(project_dir, args.configuration)
    except KeyboardInterrupt:
        console.print("[bold yellow]✗ Build interrupted[/bold yellow]")
        return 130

    if result.success:
        log(result.message)
        log_build_complete(result.build_time, verbose_only=True)
        return int(result.exit_code)

    log_error(result.message)
    console.print(f"[bold red]✗ Native build failed ({result.exit_code.name})[/bold red]", highlight=False)
    return int(result.exit_code)


def create_command(args: CreateArgs) -> int:
    """Write a new NativeCodeSettings.xml.

    An existing file is only replaced when --yes is given.
    """
    if args.output_path.exists() and not args.yes:
        log_error(f"File exists at {args.output_path}; pass --yes to overwrite it")
        return int(ExitCode.INVALID_ARGS)

    settings = NativeCodeSettings(
        native_code_base=args.native_code_path or "",
        dll_targets=list(args.targets),
        generation_arguments=args.cmake_args or "",
        build_path_base=args.build_folder_base or "",
    )
    try:
        save_settings(settings, args.output_path)
    except OSError as e:
        log_error(f"Cannot write {args.output_path}: {e}")
        return int(ExitCode.INVALID_ARGS)

    log(f"Wrote native settings to {args.output_path}")
    return int(ExitCode.SUCCESS)


def create_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="ncbuild",
        description="Incremental CMake builds for native code embedded in a larger project",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ncbuild {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run", parser_class=_ArgumentParser)

    build_parser = subparsers.add_parser(
        "build",
        help="Configure, build and harvest native libraries when sources changed",
    )
    build_parser.add_argument(
        "project_dir",
        type=Path,
        help="Project directory containing NativeCodeSettings.xml",
    )
    build_parser.add_argument(
        "configuration",
        help="Build configuration, e.g. Debug or Release",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    create_cmd_parser = subparsers.add_parser(
        "create",
        help="Write a new NativeCodeSettings.xml",
    )
    create_cmd_parser.add_argument(
        "-o",
        "--outputPath",
        dest="output_path",
        type=Path,
        required=True,
        help="Where to write the settings document",
    )
    create_cmd_parser.add_argument(
        "-p",
        "--path",
        dest="native_code_path",
        default=None,
        help="Path to the native source root, relative to the project directory",
    )
    create_cmd_parser.add_argument(
        "-t",
        "--targets",
        nargs="*",
        default=[],
        help="Shared library targets to copy into embedded_files",
    )
    create_cmd_parser.add_argument(
        "-c",
        "--cmakeArgs",
        dest="cmake_args",
        default=None,
        help="Extra arguments for the CMake configure step (write --cmakeArgs=\"-D...\" when the value starts with a dash)",
    )
    create_cmd_parser.add_argument(
        "-b",
        "--buildFolderBase",
        dest="build_folder_base",
        default=None,
        help="Prefix of the build directory name",
    )
    create_cmd_parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Overwrite an existing settings document",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """ncbuild - incremental CMake front end for embedded native code."""
    parser = create_parser()
    parsed_args = parser.parse_args(argv)

    if not parsed_args.command:
        parser.print_help()
        sys.exit(int(ExitCode.INVALID_ARGS))

    if parsed_args.command == "build":
        args = BuildArgs(
            project_dir=parsed_args.project_dir,
            configuration=parsed_args.configuration,
            verbose=parsed_args.verbose,
        )
        _configure_logging(args.verbose)
        sys.exit(build_command(args))
    elif parsed_args.command == "create":
        create_args = CreateArgs(
            output_path=parsed_args.output_path,
            native_code_path=parsed_args.native_code_path,
            targets=parsed_args.targets,
            cmake_args=parsed_args.cmake_args,
            build_folder_base=parsed_args.build_folder_base,
            yes=parsed_args.yes,
        )
        _configure_logging(False)
        sys.exit(create_command(create_args))


if __name__ == "__main__":
    main()
