from __future__ import annotations

from pathlib import Path
from typing import Optional, TextIO
import sys

from . import diagnostics as D
from . import toolchain
from .assembler import DEFAULT_TEMPLATE
from .config import ProjectContext
from .fsutil import atomic_write_text

SCRIPT_MODULE = "github.com/bitfield/script"

SETUP_HELP = """\
To use the --setup option to create a goscript project:
Run '{prog} --setup <project name>'
Goscript will:
  a. Create the project directory
  b. Run go mod init <project>
  c. Run 'go get {script}'
  d. Create 'src' and 'bin' subdirectories in the project
  e. Add the required template file 'script.tmpl'
  f. Print out instructions to set GOSCRIPT_PROJECT_DIR and add GOSCRIPT_PROJECT_DIR/bin to the PATH

script.tmpl is a Jinja2 template receiving `imports` (a list of import
declarations) and `code`. Templates written with Go text/template syntax
({{{{range .Imports}}}}) fail to render and must be converted to this form.
"""


def create_project(ctx: ProjectContext, target: str, out: Optional[TextIO] = None) -> ProjectContext:
    """
    Create (or complete) a project at `target`, relative to the cwd unless
    absolute. Returns a context rooted at the new project.
    """
    out = out or sys.stdout
    project_dir = Path(target).expanduser()
    if not project_dir.is_absolute():
        project_dir = Path.cwd() / project_dir
    try:
        project_dir.mkdir(mode=0o766, parents=True, exist_ok=True)
    except OSError as e:
        D.fail(D.FS_WRITE, f"Unable to create project at {target}", e)

    pctx = ProjectContext(
        project_dir=project_dir,
        program=ctx.program,
        editor=ctx.editor,
        go=ctx.go,
        gofmt=ctx.gofmt,
        diagnostics=ctx.diagnostics,
    )

    name = project_dir.name
    res = toolchain.go_mod_init(pctx, name)
    if not res.ok:
        D.fail(D.MOD_INIT_FAILED, f"{res.command} failed (exit {res.returncode})", res.output)
    res = toolchain.go_get(pctx, SCRIPT_MODULE)
    if not res.ok:
        D.fail(D.GET_FAILED, f"{res.command} failed (exit {res.returncode})", res.output)

    try:
        pctx.ensure_layout()
        atomic_write_text(pctx.template_path, DEFAULT_TEMPLATE)
    except OSError as e:
        D.fail(D.FS_WRITE, f"Unable to lay out project at {project_dir}", e)

    print(f"Created project {name} at {project_dir}", file=out)
    print("To complete setup:", file=out)
    print(f"\t1. Set environment variable GOSCRIPT_PROJECT_DIR={project_dir}", file=out)
    print(f"\t2. Add {pctx.bin_dir} to your PATH environment variable.", file=out)
    return pctx


def setup_help(ctx: ProjectContext) -> str:
    return SETUP_HELP.format(prog=ctx.program, script=SCRIPT_MODULE)
