"""
External tool runner.

Launches one build-tool process, forwards every line it writes on stdout and
stderr to a log sink, and blocks until it exits.

Both pipes are drained by their own reader thread so that a chatty stream
cannot fill its pipe buffer and stall the child. Lines from the two streams
interleave in arrival order; each line reaches the sink whole. Both readers
are joined before the exit code is returned, so no output from one phase
can leak into the next.
"""

import logging
import subprocess
import threading
from typing import IO, Callable, List

import psutil

from ncbuild.subprocess_utils import safe_popen

logger = logging.getLogger(__name__)

LogSink = Callable[[str], None]


def _pump(stream: IO[str], sink: LogSink, lock: threading.Lock) -> None:
    try:
        for raw_line in stream:
            line = raw_line.rstrip("\r\n")
            with lock:
                sink(line)
    finally:
        stream.close()


def _kill_process_tree(proc: subprocess.Popen) -> None:
    """Terminate proc and all of its descendants, children first."""
    try:
        root = psutil.Process(proc.pid)
        children = root.children(recursive=True)
    except psutil.NoSuchProcess:
        return

    for child in reversed(children):
        try:
            child.kill()
        except psutil.NoSuchProcess:
            logger.debug(f"Process {child.pid} already terminated")

    proc.terminate()
    try:
        proc.wait(timeout=5)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def run_process(executable: str, args: List[str], sink: LogSink) -> int:
    """
    Run executable with args and stream its output to sink.

    Args:
        executable: Program name or path (looked up on PATH)
        args: Arguments, one argv item each
        sink: Receives each output line without its line terminator

    Returns:
        The process exit code. A non-zero code is not an error here.

    Raises:
        OSError: If the executable cannot be launched
    """
    cmd = [executable, *args]
    logger.debug(f"Launching: {subprocess.list2cmdline(cmd)}")

    proc = safe_popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        bufsize=1,
    )
    logger.debug(f"Started {executable} (pid={proc.pid})")

    if proc.stdout is None or proc.stderr is None:
        proc.kill()
        proc.wait()
        raise OSError(f"{executable} was started without output pipes")

    lock = threading.Lock()
    readers = [
        threading.Thread(target=_pump, args=(proc.stdout, sink, lock), name=f"{executable}-stdout", daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, sink, lock), name=f"{executable}-stderr", daemon=True),
    ]
    for reader in readers:
        reader.start()

    try:
        returncode = proc.wait()
        for reader in readers:
            reader.join()
    except KeyboardInterrupt:
        logger.debug(f"Interrupted, killing {executable} (pid={proc.pid})")
        _kill_process_tree(proc)
        raise

    logger.debug(f"{executable} (pid={proc.pid}) exited with {returncode}")
    return returncode
