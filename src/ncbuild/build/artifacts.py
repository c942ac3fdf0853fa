"""
Artifact harvest.

After a successful install step the shared libraries sit in
<build>/inst/lib. Each configured target is looked up under its release name
first and its debug-suffixed name second; the first one present is copied
into the project's embedded_files directory under the release name, along
with its debug-symbol sidecar when the platform has one.

A target that cannot be copied is reported and skipped. Harvest problems
never fail the build.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ncbuild.build.cmake_args import TargetPlatform, install_prefix

logger = logging.getLogger(__name__)

ARTIFACT_DIR_NAME = "embedded_files"
LIBRARY_DIR_NAME = "lib"
DEBUG_POSTFIX = "d"


@dataclass(frozen=True)
class ArtifactCopyResult:
    """Outcome of harvesting the targets of one build."""

    copied: List[Path] = field(default_factory=list)
    symbols: List[Path] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed


def candidate_names(target: str, platform: TargetPlatform) -> List[str]:
    """
    Library file names to look for, in priority order.

    Example: "imaging" on Linux -> ["libimaging.so", "libimagingd.so"]
    """
    prefix = platform.library_prefix
    ext = platform.library_extension
    return [
        f"{prefix}{target}.{ext}",
        f"{prefix}{target}{DEBUG_POSTFIX}.{ext}",
    ]


def library_dir(build_dir: Path) -> Path:
    return install_prefix(build_dir) / LIBRARY_DIR_NAME


def artifact_dir(project_dir: Path) -> Path:
    return project_dir / ARTIFACT_DIR_NAME


def _copy_symbols(library: Path, dest_library: Path, platform: TargetPlatform, sink: Callable[[str], None]) -> Optional[Path]:
    symbol_ext = platform.debug_symbol_extension
    if symbol_ext is None:
        return None

    symbols = library.with_suffix(f".{symbol_ext}")
    if not symbols.is_file():
        return None

    dest = dest_library.with_suffix(f".{symbol_ext}")
    try:
        shutil.copyfile(symbols, dest)
    except OSError as e:
        sink(f"Failed to copy {symbols} to {dest}: {e}")
        return None
    return dest


def harvest_artifacts(
    targets: Sequence[str],
    build_dir: Path,
    project_dir: Path,
    platform: TargetPlatform,
    sink: Callable[[str], None],
) -> ArtifactCopyResult:
    """
    Copy each target's library from <build>/inst/lib into <project>/embedded_files.

    Args:
        targets: Target names from the settings, in order
        build_dir: CMake build directory of this configuration
        project_dir: Project directory receiving embedded_files
        platform: Determines library naming and debug-symbol sidecars
        sink: Receives one line per copied or failed file

    Returns:
        ArtifactCopyResult listing copied files and failed targets
    """
    result = ArtifactCopyResult()
    if not targets:
        return result

    source_dir = library_dir(build_dir)
    dest_dir = artifact_dir(project_dir)
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        sink(f"Failed to create {dest_dir}: {e}")
        result.failed.extend(targets)
        return result

    for target in targets:
        names = candidate_names(target, platform)
        dest = dest_dir / names[0]
        copied = False

        for name in names:
            library = source_dir / name
            if not library.is_file():
                logger.debug(f"Candidate not found: {library}")
                continue
            try:
                shutil.copyfile(library, dest)
            except OSError as e:
                # Deleted or locked since the lookup; try the next candidate
                logger.debug(f"Copy of {library} failed: {e}")
                continue

            sink(f"Successfully copied {library} to {dest}")
            result.copied.append(dest)
            symbols = _copy_symbols(library, dest, platform, sink)
            if symbols is not None:
                result.symbols.append(symbols)
            copied = True
            break

        if not copied:
            sink(f"Failed to copy {target}: none of {', '.join(names)} found in {source_dir}")
            result.failed.append(target)

    return result
