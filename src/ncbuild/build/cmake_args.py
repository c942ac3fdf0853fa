"""
CMake argument composition.

Turns settings, target platform and configuration into the argv lists for
the two CMake phases:

    cmake -S <src> [-G <generator> [-A <arch>]] -B <build> <gen args>
          -DCMAKE_INSTALL_PREFIX=<build>/inst
    cmake --build <build> --target install --config <configuration> <build args>

Free-form argument strings from the settings are split with shlex and passed
through untouched; CMake reports anything malformed as a non-zero exit.
"""

import platform
import re
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ncbuild.settings import NativeCodeSettings

INSTALL_DIR_NAME = "inst"
INSTALL_TARGET = "install"

_ARCH_ALIASES = {
    "amd64": "x64",
    "x86_64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv7l": "arm",
    "arm": "arm",
}

# Visual Studio -A platform names per normalized architecture
_VS_PLATFORMS = {
    "x64": "x64",
    "x86": "Win32",
    "arm64": "ARM64",
    "arm": "ARM",
}

_VS_GENERATOR = re.compile(r"^Visual Studio (\d+)\b")

# Visual Studio 2019 (16) dropped the "Win64" generator suffix in favour of -A
_VS_FIRST_PLATFORM_FLAG_VERSION = 16


@dataclass(frozen=True)
class TargetPlatform:
    """
    Operating system and CPU architecture the native code is built for.

    Attributes:
        system: "windows", "linux" or "macos"
        arch: Normalized architecture ("x64", "x86", "arm64", "arm", ...)
    """

    system: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.system == "windows"

    @property
    def is_64bit(self) -> bool:
        return self.arch in ("x64", "arm64")

    @property
    def library_prefix(self) -> str:
        return "" if self.is_windows else "lib"

    @property
    def library_extension(self) -> str:
        if self.is_windows:
            return "dll"
        if self.system == "macos":
            return "dylib"
        return "so"

    @property
    def debug_symbol_extension(self) -> Optional[str]:
        return "pdb" if self.is_windows else None


def normalize_arch(machine: str) -> str:
    machine = machine.strip().lower()
    return _ARCH_ALIASES.get(machine, machine)


def detect_target_platform() -> TargetPlatform:
    """Describe the platform this process runs on."""
    if sys.platform == "win32":
        system = "windows"
    elif sys.platform == "darwin":
        system = "macos"
    else:
        system = "linux"
    return TargetPlatform(system=system, arch=normalize_arch(platform.machine()))


def build_directory(source_dir: Path, build_path_base: str, configuration: str, target: TargetPlatform) -> Path:
    """Build directory for one configuration: <src>/<base>_<configuration>_<arch>."""
    return source_dir / f"{build_path_base}_{configuration}_{target.arch}"


def install_prefix(build_dir: Path) -> Path:
    return build_dir / INSTALL_DIR_NAME


def split_arguments(text: str) -> List[str]:
    """Split a free-form argument string into argv items."""
    if not text or not text.strip():
        return []
    return shlex.split(text, posix=sys.platform != "win32")


def generator_arguments(generator: str, target: TargetPlatform) -> List[str]:
    """
    Generator selection arguments for the configure phase.

    - No generator configured: nothing, CMake picks its default
    - Visual Studio 15 and older on 64-bit Windows: "<generator> Win64"
    - Visual Studio 16 and newer on Windows: the generator plus -A <platform>
    - Anything else: the generator name as given
    """
    generator = generator.strip()
    if not generator:
        return []

    match = _VS_GENERATOR.match(generator)
    if match is None or not target.is_windows:
        return ["-G", generator]

    if int(match.group(1)) >= _VS_FIRST_PLATFORM_FLAG_VERSION:
        vs_platform = _VS_PLATFORMS.get(target.arch, target.arch)
        return ["-G", generator, "-A", vs_platform]

    if target.arch == "x64" and not generator.endswith(" Win64"):
        return ["-G", f"{generator} Win64"]
    return ["-G", generator]


def configure_arguments(
    settings: NativeCodeSettings,
    source_dir: Path,
    build_dir: Path,
    target: TargetPlatform,
) -> List[str]:
    """Arguments for `cmake` configure (without the executable)."""
    return [
        "-S",
        str(source_dir),
        *generator_arguments(settings.generator, target),
        "-B",
        str(build_dir),
        *split_arguments(settings.generation_arguments),
        f"-DCMAKE_INSTALL_PREFIX={install_prefix(build_dir).as_posix()}",
    ]


def build_arguments(settings: NativeCodeSettings, build_dir: Path, configuration: str) -> List[str]:
    """Arguments for `cmake --build` with the install target (without the executable)."""
    return [
        "--build",
        str(build_dir),
        "--target",
        INSTALL_TARGET,
        "--config",
        configuration,
        *split_arguments(settings.build_arguments),
    ]
