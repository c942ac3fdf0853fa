"""
Centralized logging and output module for ncbuild.

Every line is prefixed with the elapsed time since program launch in
MM:SS.cc format, so a slow configure or compile step is easy to spot in
CI logs:

    00:00.01 ncbuild Native Code Builder v0.3.0
    00:00.02 [1/4] Checking native sources...
    00:00.04 Change detected in source file src/native/foo.cpp
    00:00.05 [2/4] Configuring with CMake...
    00:03.71 CMake: -- Configuring done

Usage:
    from ncbuild.output import format_phase, log, log_error

    log("Building configuration: Debug")
    log(format_phase(1, 4, "Checking native sources..."))
    log_error("CMake exited with non-zero error code: 1.")

`log` matches the LogSink signature (a callable taking one text line) and is
the default sink of the orchestrator. Code that is handed a sink formats its
lines with format_phase/format_detail/format_warning and writes them to that
sink, never to the streams directly.
"""

import sys
import time
from types import TracebackType
from typing import Callable, Optional, TextIO

# Global state for the timer
_start_time: Optional[float] = None
_output_stream: TextIO = sys.stdout
_error_stream: TextIO = sys.stderr
_verbose: bool = False


def init_timer(output_stream: Optional[TextIO] = None, error_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    Call this at program startup to set the reference time for all timestamps.
    If not called explicitly, it will be called automatically on first log.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout)
        error_stream: Optional stream for error lines (defaults to sys.stderr)
    """
    global _start_time, _output_stream, _error_stream
    _start_time = time.time()
    if output_stream is not None:
        _output_stream = output_stream
    if error_stream is not None:
        _error_stream = error_stream


def set_verbose(verbose: bool) -> None:
    """
    Set verbose mode for logging.

    Args:
        verbose: If True, verbose-only messages are printed too.
    """
    global _verbose
    _verbose = verbose


def is_verbose() -> bool:
    return _verbose


def get_elapsed() -> float:
    """
    Get elapsed time since timer initialization.

    Returns:
        Elapsed time in seconds
    """
    global _start_time
    if _start_time is None:
        init_timer()
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """
    Format the current elapsed time as MM:SS.cc.

    Returns:
        Formatted timestamp string
    """
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def format_phase(phase: int, total: int, message: str) -> str:
    """Format: [N/M] message"""
    return f"[{phase}/{total}] {message}"


def format_detail(message: str, indent: int = 6) -> str:
    return f"{' ' * indent}{message}"


def format_warning(message: str) -> str:
    return f"WARNING: {message}"


def _print(message: str, stream: Optional[TextIO] = None) -> None:
    """
    Write one timestamped line to a console stream.

    Args:
        message: Message to print
        stream: Target stream (defaults to the output stream)
    """
    target = stream if stream is not None else _output_stream
    target.write(f"{format_timestamp()} {message}\n")
    target.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """
    Log a message with timestamp.

    Args:
        message: Message to log
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message)


def log_header(title: str, version: str) -> None:
    _print(f"{title} v{version}")


def log_build_complete(build_time: float, verbose_only: bool = False) -> None:
    """
    Log build completion message.

    Args:
        build_time: Total build time in seconds
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"Work complete ({build_time:.2f}s)")


def log_error(message: str) -> None:
    """
    Log an error message to the error stream.

    Multi-line messages are split so that every line carries a timestamp.
    """
    lines = message.splitlines() or [""]
    for index, line in enumerate(lines):
        prefix = "ERROR: " if index == 0 else "       "
        _print(f"{prefix}{line}", stream=_error_stream)


class TimedLogger:
    """
    Context manager for logging with elapsed time tracking.

    Usage:
        with TimedLogger("Copying artifacts", phase=(4, 4), sink=lines.append):
            copy_everything()
        # Automatically logs completion time
    """

    def __init__(
        self,
        operation: str,
        phase: Optional[tuple[int, int]] = None,
        sink: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize timed logger.

        Args:
            operation: Description of the operation
            phase: Optional (current, total) phase numbers
            sink: Receives the start and completion lines (defaults to log)
        """
        self.operation = operation
        self.phase = phase
        self.sink = sink if sink is not None else log
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            self.sink(format_phase(self.phase[0], self.phase[1], f"{self.operation}..."))
        else:
            self.sink(f"{self.operation}...")
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb  # Unused
        elapsed = time.time() - self.start_time
        if exc_type is None:
            self.sink(format_detail(f"Done ({elapsed:.2f}s)"))
        return None
