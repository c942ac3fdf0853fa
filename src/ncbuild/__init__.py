"""ncbuild - incremental CMake front end for native code embedded in a larger project."""

__version__ = "0.3.0"
