"""
Command store: the project's src/ and bin/ directories.

States of a command <name>:
  active        src/<name>.go and bin/<name>
  soft-deleted  src/<name> (extension stripped), no binary; --restore brings it back
  temporary     generated name, removed again before the invocation ends

Transitions are single filesystem steps with no rollback. A failure half-way
leaves the files where they are so the user can inspect them.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, TextIO

from . import diagnostics as D
from . import toolchain
from .assembler import read_source_file
from .build import compile_binary
from .config import SRC_EXT, ProjectContext, check_name
from .fsutil import atomic_write_text, remove_if_exists

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandEntry:
    name: str
    active: bool

    def label(self) -> str:
        return self.name if self.active else f"{self.name} (requires --restore)"


def list_commands(ctx: ProjectContext) -> List[CommandEntry]:
    try:
        names = sorted(p.name for p in ctx.src_dir.iterdir() if not p.is_dir())
    except OSError as e:
        D.report(D.Diagnostic(D.FS_LIST, f"Unable to list {ctx.src_dir}", str(e)))
        return []
    out: List[CommandEntry] = []
    for n in names:
        if n.endswith(SRC_EXT):
            out.append(CommandEntry(n[: -len(SRC_EXT)], True))
        else:
            out.append(CommandEntry(n, False))
    return out


def source_path_if_exists(ctx: ProjectContext, name: str) -> Optional[Path]:
    p = ctx.source_path(check_name(name))
    return p if p.is_file() else None


def save(ctx: ProjectContext, name: str, source: str) -> Path:
    path = ctx.source_path(check_name(name))
    try:
        atomic_write_text(path, source)
    except OSError as e:
        D.fail(D.FS_WRITE, f"Unable to write {path}", e)
    log.debug("saved %s", path)
    return path


def _rename(src: Path, dst: Path) -> None:
    try:
        os.rename(src, dst)
    except OSError as e:
        D.fail(D.FS_RENAME, f"Unable to rename {src} to {dst}", e)


def delete(ctx: ProjectContext, name: str) -> None:
    """Soft delete: strip the .go extension, drop the binary, tidy go.mod."""
    check_name(name)
    _rename(ctx.source_path(name), ctx.stripped_path(name))
    binary = ctx.binary_path(name)
    try:
        if not remove_if_exists(binary):
            D.report(D.Diagnostic(D.FS_REMOVE, f"No binary to remove for {name}", str(binary)))
    except OSError as e:
        D.report(D.Diagnostic(D.FS_REMOVE, f"Unable to remove {binary}", str(e)))
    res = toolchain.go_mod_tidy(ctx)
    if not res.ok:
        D.report(D.Diagnostic(D.TIDY_FAILED, res.output, f"{res.command}: exit status {res.returncode}"))
    log.debug("soft-deleted %s", name)


def restore(ctx: ProjectContext, name: str) -> bool:
    check_name(name)
    src = ctx.source_path(name)
    _rename(ctx.stripped_path(name), src)
    log.debug("restored %s, rebuilding", name)
    return compile_binary(ctx, src, ctx.binary_path(name)).ok


def _print_with_shebang(ctx: ProjectContext, source: str, out: TextIO) -> None:
    out.write(ctx.shebang() + "\n")
    out.write(source)
    out.flush()


def cat(ctx: ProjectContext, name: str, out: Optional[TextIO] = None, copy_as: Optional[str] = None) -> None:
    """Print a command's source with a shebang, or copy it under another name."""
    source = read_source_file(ctx.source_path(check_name(name)))
    out = out or sys.stdout
    if copy_as:
        save(ctx, copy_as, source)
        print(f"A copy of {name} was saved as {copy_as}", file=out)
        return
    _print_with_shebang(ctx, source, out)


def export(ctx: ProjectContext, name: str, out: Optional[TextIO] = None) -> None:
    """Print the source as a standalone shebang script, then soft delete it."""
    source = read_source_file(ctx.source_path(check_name(name)))
    _print_with_shebang(ctx, source, out or sys.stdout)
    delete(ctx, name)


def export_binary(ctx: ProjectContext, name: str, dest_dir: Optional[Path] = None) -> Path:
    """Copy bin/<name> out of the project (default: cwd), then soft delete."""
    check_name(name)
    binary = ctx.binary_path(name)
    dest = Path(dest_dir or Path.cwd()) / name
    try:
        shutil.copyfile(binary, dest)
        os.chmod(dest, 0o755)
    except OSError as e:
        D.fail(D.FS_COPY, f"Failed to copy {binary} to {dest}", e)
    delete(ctx, name)
    return dest


def cleanup_temporary(ctx: ProjectContext, name: str) -> None:
    for p in (ctx.source_path(name), ctx.binary_path(name)):
        try:
            remove_if_exists(p)
        except OSError as e:
            D.report(D.Diagnostic(D.FS_REMOVE, f"Unable to remove {p}", str(e)))
    log.debug("cleaned up temporary command %s", name)


def recompile_all(ctx: ProjectContext) -> bool:
    for entry in list_commands(ctx):
        if not entry.active:
            continue
        res = compile_binary(ctx, ctx.source_path(entry.name), ctx.binary_path(entry.name))
        if not res.ok:
            return False
    return True


def edit(ctx: ProjectContext, name: str) -> bool:
    """Open the command's source in the configured editor and wait for it."""
    src = ctx.source_path(check_name(name))
    if not src.is_file():
        print(f"File not found in <project>/src directory for {name}")
        return False
    if not ctx.editor:
        D.report(D.Diagnostic(
            D.EDIT_NO_EDITOR,
            "The --edit option requires environment variable GOSCRIPT_EDITOR or EDITOR to be defined.",
        ))
        return False
    try:
        # Inherits the terminal; EDITOR may carry its own flags ("code -w").
        argv = shlex.split(ctx.editor) + [str(src)]
        return subprocess.run(argv, check=False).returncode == 0
    except OSError as e:
        D.fail(D.EDIT_NOT_FOUND, f"Unable to start editor {ctx.editor!r}", e)
