from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from . import diagnostics as D
from . import imports
from . import toolchain
from .config import ProjectContext

log = logging.getLogger(__name__)


@dataclass
class BuildResult:
    ok: bool
    output: str = ""
    fetched: List[str] = field(default_factory=list)


def compile_binary(
    ctx: ProjectContext,
    src: Path,
    out: Path,
    *,
    _fetched: Optional[Set[str]] = None,
) -> BuildResult:
    """
    go build src -> out. Missing third-party packages named in the compiler
    output are fetched and the build retried once per batch. A package that
    is still missing after being fetched ends the loop as a plain failure.
    """
    fetched = _fetched if _fetched is not None else set()
    res = toolchain.go_build(ctx, src, out)
    if res.ok:
        return BuildResult(True, res.output, sorted(fetched))

    new_pkgs = [p for p in toolchain.missing_packages(res.output) if p not in fetched]
    if not new_pkgs:
        D.report(D.Diagnostic(D.BUILD_FAILED, res.output, f"{res.command}: exit status {res.returncode}"))
        return BuildResult(False, res.output, sorted(fetched))

    for pkg in new_pkgs:
        log.debug("build of %s needs %s", src.name, pkg)
        imports.fetch_package(ctx, pkg)
        fetched.add(pkg)
    return compile_binary(ctx, src, out, _fetched=fetched)
