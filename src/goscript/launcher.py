"""
Running a built command.

run_direct: the child shares our stdin/stdout/stderr and gets the residual
    CLI arguments. SIGINT/SIGTERM run the cleanup handler and exit 1; the
    child, being in our process group, receives terminal signals itself.
run_piped: our input is forwarded to the child line by line by a background
    task (until EOF or a blank line); the child's combined output is captured
    and printed once it exits.
"""

from __future__ import annotations

import io
import logging
import signal
import subprocess
import sys
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, IO, List, Optional, Sequence, TextIO

from . import diagnostics as D

log = logging.getLogger(__name__)

_GUARDED = (signal.SIGINT, signal.SIGTERM)


class InterruptGuard:
    """Install SIGINT/SIGTERM handlers that run `cleanup` once, then exit 1."""

    def __init__(self, cleanup: Optional[Callable[[], None]] = None):
        self.cleanup = cleanup
        self._previous: dict = {}
        self._fired = False

    def _handle(self, signum, frame) -> None:
        log.debug("received signal %d", signum)
        if not self._fired:
            self._fired = True
            if self.cleanup is not None:
                self.cleanup()
        raise SystemExit(1)

    def __enter__(self) -> "InterruptGuard":
        for sig in _GUARDED:
            self._previous[sig] = signal.signal(sig, self._handle)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()


def run_direct(binary: Path, args: Sequence[str] = (), cleanup: Optional[Callable[[], None]] = None) -> int:
    argv: List[str] = [str(binary), *args]
    with InterruptGuard(cleanup):
        try:
            proc = subprocess.Popen(argv)
        except OSError as e:
            D.report(D.Diagnostic(D.EXEC_FAILED, f"Unable to run {binary}", str(e)))
            return 1
        code = proc.wait()
    log.debug("%s exited %d", binary, code)
    # killed by a signal: report as an interrupted run
    return code if code >= 0 else 1


def forward_lines(src: IO[str], dst: IO[str]) -> int:
    """Copy lines from src to dst until EOF or a blank line; closes dst."""
    n = 0
    try:
        for line in src:
            if not line.strip():
                break
            dst.write(line)
            dst.flush()
            n += 1
    except (BrokenPipeError, ValueError):
        # child exited or closed its input early
        pass
    finally:
        try:
            dst.close()
        except BrokenPipeError:
            pass
    return n


def _start_forwarder(src: IO[str], dst: IO[str]) -> "Future[int]":
    # Daemon thread: it may still be blocked on terminal input when the child
    # exits, and must not keep the process alive.
    fut: "Future[int]" = Future()

    def _run() -> None:
        try:
            fut.set_result(forward_lines(src, dst))
        except Exception as e:
            fut.set_exception(e)

    threading.Thread(target=_run, name="goscript-stdin", daemon=True).start()
    return fut


def _write_output(out: TextIO, output: bytes) -> None:
    # Child output is passed through byte for byte where the stream allows it.
    buf = getattr(out, "buffer", None)
    if buf is not None:
        out.flush()
        buf.write(output)
        buf.flush()
    else:
        out.write(output.decode(getattr(out, "encoding", None) or "utf-8", errors="replace"))
        out.flush()


def run_piped(
    binary: Path,
    args: Sequence[str] = (),
    stdin: Optional[IO[str]] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    argv: List[str] = [str(binary), *args]
    src = stdin or sys.stdin
    out = stdout or sys.stdout
    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        D.report(D.Diagnostic(D.EXEC_FAILED, f"Unable to run {binary}", str(e)))
        return 1

    child_in = io.TextIOWrapper(proc.stdin, encoding="utf-8", errors="replace")
    forwarder = _start_forwarder(src, child_in)
    output = proc.stdout.read()
    proc.stdout.close()
    code = proc.wait()
    if forwarder.done() and forwarder.exception() is None:
        log.debug("forwarded %d line(s) to %s", forwarder.result(), binary)
    _write_output(out, output)
    return code
