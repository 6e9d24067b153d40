"""
Per-invocation project context.

Everything that used to be process-wide (project directory, toolchain
executables, editor, deferred diagnostics) lives on one ProjectContext that is
built once in the CLI and handed to every component explicitly.

Environment:
  GOSCRIPT_PROJECT_DIR   project root (default: directory of the executable)
  GOSCRIPT_EDITOR/EDITOR editor used by --edit
  GOSCRIPT_GO            go executable (default: go)
  GOSCRIPT_GOFMT         gofmt executable (default: gofmt)
"""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from werkzeug.utils import secure_filename

from . import diagnostics as D

SRC_EXT = ".go"
TEMP_PREFIX = "gocmd-"


@dataclass
class ProjectContext:
    project_dir: Path
    program: str = "goscript"
    editor: Optional[str] = None
    go: str = "go"
    gofmt: str = "gofmt"
    diagnostics: D.DiagnosticSink = field(default_factory=D.DiagnosticSink)

    @property
    def src_dir(self) -> Path:
        return self.project_dir / "src"

    @property
    def bin_dir(self) -> Path:
        return self.project_dir / "bin"

    @property
    def template_path(self) -> Path:
        return self.project_dir / "script.tmpl"

    @property
    def imports_path(self) -> Path:
        return self.project_dir / "imports.json"

    @property
    def go_mod_path(self) -> Path:
        return self.project_dir / "go.mod"

    def source_path(self, name: str) -> Path:
        return self.src_dir / (name + SRC_EXT)

    def stripped_path(self, name: str) -> Path:
        return self.src_dir / name

    def binary_path(self, name: str) -> Path:
        return self.bin_dir / name

    def shebang(self) -> str:
        return f"#!/usr/bin/env -S {self.program}"

    def ensure_layout(self) -> None:
        self.src_dir.mkdir(mode=0o766, exist_ok=True)
        self.bin_dir.mkdir(mode=0o766, exist_ok=True)

    @classmethod
    def from_environment(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        argv0: Optional[str] = None,
    ) -> "ProjectContext":
        env = os.environ if environ is None else environ
        argv0 = argv0 or sys.argv[0]

        override = env.get("GOSCRIPT_PROJECT_DIR", "")
        if override:
            project_dir = Path(override).expanduser()
            if not project_dir.is_dir():
                D.fail(
                    D.CFG_PROJECT_MISSING,
                    f"Directory specified by GOSCRIPT_PROJECT_DIR not found: {project_dir}",
                )
        else:
            # Installed layout: <project>/bin/goscript or <project>/goscript
            project_dir = Path(argv0).resolve().parent

        ctx = cls(
            project_dir=project_dir,
            program=argv0,
            editor=env.get("GOSCRIPT_EDITOR") or env.get("EDITOR") or None,
            go=env.get("GOSCRIPT_GO") or "go",
            gofmt=env.get("GOSCRIPT_GOFMT") or "gofmt",
        )
        if override:
            ctx.ensure_layout()
        return ctx


def check_name(name: str) -> str:
    """Command names become file names under src/ and bin/."""
    if not name or secure_filename(name) != name:
        D.fail(D.NAME_INVALID, f"Invalid command name: {name!r}", "Use letters, digits, '-', '_' or '.' only.")
    return name


def temporary_name() -> str:
    """Generated name for a command that must not outlive the invocation."""
    return f"{TEMP_PREFIX}{time.time_ns()}"
