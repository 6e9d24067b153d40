from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import os

import pytest

from goscript import toolchain
from goscript.assembler import DEFAULT_TEMPLATE
from goscript.config import ProjectContext
from goscript.toolchain import ToolResult

OK_BINARY = "#!/bin/sh\nexit 0\n"


def _res(ok: bool, output: str = "", command: str = "go") -> ToolResult:
    return ToolResult(ok, 0 if ok else 1, output, command, ".", 0.0)


@dataclass
class FakeGo:
    """Stands in for go/gofmt. Builds pop outcomes from `builds`, default success."""

    builds: List[Tuple[bool, str]] = field(default_factory=list)
    binary: str = OK_BINARY
    failing_gets: set = field(default_factory=set)
    gofmt_ok: bool = True
    gofmt_output: Optional[str] = None
    calls: List[Tuple[str, ...]] = field(default_factory=list)

    def go_build(self, ctx, src: Path, out: Path) -> ToolResult:
        self.calls.append(("build", src.name))
        ok, output = self.builds.pop(0) if self.builds else (True, "")
        if ok:
            out.write_text(self.binary, encoding="utf-8")
            os.chmod(out, 0o755)
        return _res(ok, output, f"go build -o {out} {src}")

    def go_get(self, ctx, pkg: str) -> ToolResult:
        self.calls.append(("get", pkg))
        if pkg in self.failing_gets:
            return _res(False, f"go: module {pkg}: not found", f"go get {pkg}")
        return _res(True)

    def go_mod_tidy(self, ctx) -> ToolResult:
        self.calls.append(("tidy",))
        return _res(True)

    def go_mod_init(self, ctx, module: str) -> ToolResult:
        self.calls.append(("init", module))
        (ctx.project_dir / "go.mod").write_text(f"module {module}\n", encoding="utf-8")
        return _res(True)

    def gofmt(self, ctx, text: str) -> ToolResult:
        self.calls.append(("gofmt",))
        if not self.gofmt_ok:
            return _res(False, "<standard input>:3:1: expected declaration, found x")
        return _res(True, text if self.gofmt_output is None else self.gofmt_output)

    def kinds(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def project(tmp_path: Path) -> ProjectContext:
    root = tmp_path / "proj"
    root.mkdir()
    ctx = ProjectContext(project_dir=root, program="goscript")
    ctx.ensure_layout()
    ctx.template_path.write_text(DEFAULT_TEMPLATE, encoding="utf-8")
    ctx.go_mod_path.write_text("module proj\n\ngo 1.22\n", encoding="utf-8")
    return ctx


@pytest.fixture
def fake_go(monkeypatch) -> FakeGo:
    fake = FakeGo()
    for name in ("go_build", "go_get", "go_mod_tidy", "go_mod_init", "gofmt"):
        monkeypatch.setattr(toolchain, name, getattr(fake, name))
    return fake


def write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    os.chmod(path, 0o755)
    return path


def tree(ctx: ProjectContext) -> Dict[str, List[str]]:
    return {
        "src": sorted(p.name for p in ctx.src_dir.iterdir()),
        "bin": sorted(p.name for p in ctx.bin_dir.iterdir()),
    }
