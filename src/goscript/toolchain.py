"""Thin adapter over the Go toolchain (go build/get/mod, gofmt)."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .config import ProjectContext

log = logging.getLogger(__name__)

# The only place compiler output is pattern-matched. Go prints
#   no required module provides package X; to add it:
#       go get X
_re_go_get = re.compile(r"go get (.+)")


@dataclass
class ToolResult:
    ok: bool
    returncode: int
    output: str
    command: str
    cwd: str
    duration: float


def run_tool(command: Sequence[str], cwd: Path, stdin: Optional[str] = None) -> ToolResult:
    """Run a tool to completion, capturing stdout+stderr as one text stream."""
    started = time.time()
    pretty = " ".join(shlex.quote(part) for part in command)
    log.debug("run %s (cwd=%s)", pretty, cwd)
    try:
        result = subprocess.run(
            list(command),
            cwd=str(cwd),
            input=stdin,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as exc:
        log.debug("%s could not start: %s", pretty, exc)
        return ToolResult(False, 127, str(exc), pretty, str(cwd), round(time.time() - started, 2))
    ended = time.time()
    log.debug("%s exited %d in %.2fs", pretty, result.returncode, ended - started)
    return ToolResult(
        ok=result.returncode == 0,
        returncode=result.returncode,
        output=result.stdout or "",
        command=pretty,
        cwd=str(cwd),
        duration=round(ended - started, 2),
    )


def go_build(ctx: ProjectContext, src: Path, out: Path) -> ToolResult:
    return run_tool([ctx.go, "build", "-o", str(out), str(src)], ctx.project_dir)


def go_get(ctx: ProjectContext, pkg: str) -> ToolResult:
    return run_tool([ctx.go, "get", pkg], ctx.project_dir)


def go_mod_tidy(ctx: ProjectContext) -> ToolResult:
    return run_tool([ctx.go, "mod", "tidy"], ctx.project_dir)


def go_mod_init(ctx: ProjectContext, module: str) -> ToolResult:
    return run_tool([ctx.go, "mod", "init", module], ctx.project_dir)


def gofmt(ctx: ProjectContext, text: str) -> ToolResult:
    """Format Go source read from stdin; the formatted text comes back as output."""
    return run_tool([ctx.gofmt], ctx.project_dir, stdin=text)


def missing_packages(output: str) -> List[str]:
    """Package paths the compiler asks us to `go get`, distinct, first-seen order."""
    out: List[str] = []
    for m in _re_go_get.finditer(output or ""):
        pkg = m.group(1).strip()
        if pkg and pkg not in out:
            out.append(pkg)
    return out
