"""
Native code settings document.

A project that embeds native code carries a NativeCodeSettings.xml next to
its project file. The document looks like this:

    <?xml version="1.0" encoding="utf-8"?>
    <NativeCodeSettings>
      <PathToNativeCodeBase>../native</PathToNativeCodeBase>
      <DLLTargets>
        <Target>imaging</Target>
      </DLLTargets>
      <CMakeGenerationArguments>-DUSE_SIMD=ON</CMakeGenerationArguments>
      <CMakeBuildArguments>-j 8</CMakeBuildArguments>
      <CMakeGenerator>Ninja</CMakeGenerator>
      <BuildStampPath>obj/native_stamp</BuildStampPath>
      <NativeFileExtensions>
        <Extension>cpp</Extension>
        <Extension>h</Extension>
      </NativeFileExtensions>
      <BuildPathBase>build</BuildPathBase>
    </NativeCodeSettings>

This module loads that document into a frozen dataclass and writes new ones
for the `create` command.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Union

from ncbuild.errors import InvalidSettingsError, NativeSettingsNotFoundError

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "NativeCodeSettings.xml"

_ROOT_TAG = "NativeCodeSettings"
_TARGETS_TAG = "DLLTargets"
_TARGET_ITEM_TAG = "Target"
_EXTENSIONS_TAG = "NativeFileExtensions"
_EXTENSION_ITEM_TAG = "Extension"

# Element name for each scalar field, in document order
_SCALAR_ELEMENTS = {
    "native_code_base": "PathToNativeCodeBase",
    "generation_arguments": "CMakeGenerationArguments",
    "build_arguments": "CMakeBuildArguments",
    "generator": "CMakeGenerator",
    "build_stamp_path": "BuildStampPath",
    "build_path_base": "BuildPathBase",
}


@dataclass(frozen=True)
class NativeCodeSettings:
    """
    Build settings for one native subproject.

    Attributes:
        native_code_base: Path to the native source root, relative to the project dir
        dll_targets: Names of the shared library targets to harvest, in order
        generation_arguments: Free-form arguments appended to the configure step
        build_arguments: Free-form arguments appended to the build step
        generator: CMake generator name ("" means CMake's default)
        build_stamp_path: Stamp path template; the configuration name is appended
        build_path_base: Prefix of the build directory name
        native_file_extensions: Watched source extensions, or None when the
            document has no NativeFileExtensions element
    """

    native_code_base: str = ""
    dll_targets: List[str] = field(default_factory=list)
    generation_arguments: str = ""
    build_arguments: str = ""
    generator: str = ""
    build_stamp_path: str = ""
    build_path_base: str = ""
    native_file_extensions: Optional[List[str]] = None

    def describe(self) -> str:
        """Human-readable dump of every field, one per line."""
        return "\n".join(f"  {f.name}: {getattr(self, f.name)!r}" for f in fields(self))


def _text(element: Optional[ET.Element]) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _items(root: ET.Element, list_tag: str, item_tag: str) -> Optional[List[str]]:
    container = root.find(list_tag)
    if container is None:
        return None
    return [_text(item) for item in container.findall(item_tag) if _text(item)]


def parse_settings(document: Union[str, bytes]) -> NativeCodeSettings:
    """
    Parse a settings document.

    Bytes are decoded by the XML parser itself, honouring a byte order mark
    and the encoding named in the XML declaration.

    Raises:
        InvalidSettingsError: If the text is not well-formed XML or the root
            element is not NativeCodeSettings
    """
    try:
        root = ET.fromstring(document)
    except (ET.ParseError, ValueError, LookupError) as e:
        # ValueError covers undecodable text and unsupported declared encodings
        raise InvalidSettingsError(f"Malformed native settings document: {e}") from e

    if root.tag != _ROOT_TAG:
        raise InvalidSettingsError(f"Expected <{_ROOT_TAG}> root element, found <{root.tag}>")

    scalars = {name: _text(root.find(tag)) for name, tag in _SCALAR_ELEMENTS.items()}
    return NativeCodeSettings(
        dll_targets=_items(root, _TARGETS_TAG, _TARGET_ITEM_TAG) or [],
        native_file_extensions=_items(root, _EXTENSIONS_TAG, _EXTENSION_ITEM_TAG),
        **scalars,
    )


def load_settings(path: Path) -> NativeCodeSettings:
    """
    Load the settings document at path.

    Raises:
        NativeSettingsNotFoundError: If the file does not exist
        InvalidSettingsError: If the file cannot be read or parsed
    """
    if not path.is_file():
        raise NativeSettingsNotFoundError(f"Native settings file not found: {path}")

    try:
        document = path.read_bytes()
    except OSError as e:
        raise InvalidSettingsError(f"Cannot read native settings file {path}: {e}") from e

    settings = parse_settings(document)
    logger.debug(f"Loaded native settings from {path}:\n{settings.describe()}")
    return settings


def render_settings(settings: NativeCodeSettings) -> str:
    """Serialize settings to an indented XML document."""
    root = ET.Element(_ROOT_TAG)
    for name, tag in _SCALAR_ELEMENTS.items():
        ET.SubElement(root, tag).text = getattr(settings, name)
        if name == "native_code_base":
            targets = ET.SubElement(root, _TARGETS_TAG)
            for target in settings.dll_targets:
                ET.SubElement(targets, _TARGET_ITEM_TAG).text = target
        elif name == "build_stamp_path" and settings.native_file_extensions is not None:
            extensions = ET.SubElement(root, _EXTENSIONS_TAG)
            for extension in settings.native_file_extensions:
                ET.SubElement(extensions, _EXTENSION_ITEM_TAG).text = extension

    ET.indent(root)
    body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
    return f'<?xml version="1.0" encoding="utf-8"?>\n{body}\n'


def save_settings(settings: NativeCodeSettings, path: Path) -> None:
    """Write settings to path, replacing any existing file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings(settings), encoding="utf-8")
    logger.debug(f"Wrote native settings to {path}")
