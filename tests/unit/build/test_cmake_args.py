"""Tests for CMake argument composition and platform naming."""

import sys
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import pytest

from ncbuild.build.cmake_args import (
    TargetPlatform,
    build_arguments,
    build_directory,
    configure_arguments,
    detect_target_platform,
    generator_arguments,
    normalize_arch,
    split_arguments,
)
from ncbuild.settings import NativeCodeSettings

LINUX = TargetPlatform("linux", "x64")
MACOS = TargetPlatform("macos", "arm64")
WIN64 = TargetPlatform("windows", "x64")
WIN32 = TargetPlatform("windows", "x86")


class TestTargetPlatform:
    """Test platform naming conventions."""

    def test_linux_library_naming(self):
        assert LINUX.library_prefix == "lib"
        assert LINUX.library_extension == "so"
        assert LINUX.debug_symbol_extension is None

    def test_macos_library_naming(self):
        assert MACOS.library_prefix == "lib"
        assert MACOS.library_extension == "dylib"

    def test_windows_library_naming(self):
        assert WIN64.library_prefix == ""
        assert WIN64.library_extension == "dll"
        assert WIN64.debug_symbol_extension == "pdb"

    def test_is_64bit(self):
        assert WIN64.is_64bit
        assert MACOS.is_64bit
        assert not WIN32.is_64bit

    @pytest.mark.parametrize(
        "machine, expected",
        [
            ("AMD64", "x64"),
            ("x86_64", "x64"),
            ("i686", "x86"),
            ("aarch64", "arm64"),
            ("arm64", "arm64"),
            ("riscv64", "riscv64"),
        ],
    )
    def test_normalize_arch(self, machine, expected):
        assert normalize_arch(machine) == expected

    def test_detect_target_platform_windows(self):
        with patch("sys.platform", "win32"), patch("platform.machine", return_value="AMD64"):
            assert detect_target_platform() == WIN64

    def test_detect_target_platform_macos(self):
        with patch("sys.platform", "darwin"), patch("platform.machine", return_value="arm64"):
            assert detect_target_platform() == MACOS

    def test_detect_target_platform_linux(self):
        with patch("sys.platform", "linux"), patch("platform.machine", return_value="x86_64"):
            assert detect_target_platform() == LINUX


class TestGeneratorArguments:
    """Test generator selection, including that a configured generator is passed."""

    def test_no_generator(self):
        assert generator_arguments("", WIN64) == []
        assert generator_arguments("   ", LINUX) == []

    def test_plain_generator_is_passed(self):
        assert generator_arguments("Ninja", LINUX) == ["-G", "Ninja"]
        assert generator_arguments("Unix Makefiles", MACOS) == ["-G", "Unix Makefiles"]

    def test_legacy_visual_studio_gets_win64_suffix(self):
        assert generator_arguments("Visual Studio 15 2017", WIN64) == ["-G", "Visual Studio 15 2017 Win64"]

    def test_legacy_visual_studio_suffix_not_doubled(self):
        assert generator_arguments("Visual Studio 15 2017 Win64", WIN64) == ["-G", "Visual Studio 15 2017 Win64"]

    def test_legacy_visual_studio_32bit_has_no_suffix(self):
        assert generator_arguments("Visual Studio 15 2017", WIN32) == ["-G", "Visual Studio 15 2017"]

    def test_modern_visual_studio_uses_platform_flag(self):
        assert generator_arguments("Visual Studio 17 2022", WIN64) == ["-G", "Visual Studio 17 2022", "-A", "x64"]
        assert generator_arguments("Visual Studio 16 2019", WIN32) == ["-G", "Visual Studio 16 2019", "-A", "Win32"]

    def test_non_ninja_generator_on_windows(self):
        assert generator_arguments("Ninja", WIN64) == ["-G", "Ninja"]


class TestSplitArguments:
    """Test free-form argument splitting."""

    def test_empty(self):
        assert split_arguments("") == []
        assert split_arguments("   ") == []

    def test_splits_on_whitespace(self):
        assert split_arguments("-DA=1  -DB=2") == ["-DA=1", "-DB=2"]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX quoting rules")
    def test_quoted_values_stay_together(self):
        assert split_arguments('-DNAME="two words" -j 4') == ["-DNAME=two words", "-j", "4"]


class TestComposeArguments:
    """Test full configure and build argv composition."""

    @pytest.fixture
    def settings(self):
        return NativeCodeSettings(
            native_code_base="native",
            dll_targets=["imaging"],
            generation_arguments="-DUSE_SIMD=ON",
            build_arguments="-j 8",
            generator="Ninja",
            build_stamp_path="obj/stamp",
            build_path_base="build",
            native_file_extensions=["cpp"],
        )

    def test_build_directory(self):
        assert build_directory(Path("/src/native"), "build", "Debug", LINUX) == Path("/src/native/build_Debug_x64")

    def test_configure_arguments(self, settings):
        source = Path("/src/native")
        build = source / "build_Debug_x64"

        args = configure_arguments(settings, source, build, LINUX)

        assert args == [
            "-S",
            str(source),
            "-G",
            "Ninja",
            "-B",
            str(build),
            "-DUSE_SIMD=ON",
            f"-DCMAKE_INSTALL_PREFIX={(build / 'inst').as_posix()}",
        ]

    def test_configure_arguments_without_generator(self, settings):
        args = configure_arguments(replace(settings, generator=""), Path("/s"), Path("/s/b"), LINUX)

        assert "-G" not in args
        assert args[:2] == ["-S", str(Path("/s"))]

    def test_build_arguments(self, settings):
        build = Path("/src/native/build_Release_x64")

        assert build_arguments(settings, build, "Release") == [
            "--build",
            str(build),
            "--target",
            "install",
            "--config",
            "Release",
            "-j",
            "8",
        ]
