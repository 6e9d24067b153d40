from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import jinja2

from . import diagnostics as D
from . import toolchain
from .config import ProjectContext
from .fsutil import is_existing_file
from .imports import resolve_imports

log = logging.getLogger(__name__)

# Written to <project>/script.tmpl by --setup. Users may edit the project copy.
DEFAULT_TEMPLATE = (
    "package main\n"
    "\n"
    "import ({% for imp in imports %}\n"
    "\t{{ imp }}{% endfor %}\n"
    ")\n"
    "\n"
    "func main() {\n"
    "\t{{ code }}\n"
    "}\n"
)


def read_source_file(path: str | Path) -> str:
    """Read a source file line by line, dropping interpreter-directive (#!) lines."""
    out: List[str] = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                if line.startswith("#!"):
                    continue
                out.append(line.rstrip("\r\n") + "\n")
    except (OSError, UnicodeDecodeError) as e:
        D.fail(D.FS_READ, f"Unable to read {path}", e)
    return "".join(out)


def load_fragment(code: str) -> str:
    # A literal one-liner is very unlikely to collide with an existing path.
    if code and is_existing_file(code):
        log.debug("reading fragment from file %s", code)
        return read_source_file(code)
    return code


def _environment(ctx: ProjectContext) -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(ctx.project_dir)),
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


def render_source(ctx: ProjectContext, imports: List[str], code: str) -> str:
    try:
        tmpl = _environment(ctx).get_template(ctx.template_path.name)
        return tmpl.render(imports=imports, code=code)
    except jinja2.TemplateError as e:
        D.fail(
            D.TPL_FAILED,
            f"Unable to render template {ctx.template_path}",
            f"{e}\nThe template uses Jinja2 syntax with `imports` and `code`; see --setup help.",
        )


def format_source(ctx: ProjectContext, text: str) -> str:
    """gofmt the unit; on failure keep it as is and report at the end of the run."""
    res = toolchain.gofmt(ctx, text)
    if not res.ok:
        ctx.diagnostics.defer(D.Diagnostic(D.FMT_FAILED, "Code formatting failed", res.output))
        return text
    return res.output


def assemble_source(ctx: ProjectContext, code: str) -> str:
    fragment = load_fragment(code)
    imports = resolve_imports(ctx, fragment)
    return format_source(ctx, render_source(ctx, imports, fragment))
