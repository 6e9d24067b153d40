"""
Import inference for code fragments.

A fragment is scanned for `identifier.` accesses; each identifier found in the
alias table becomes an import declaration. The table is the built-in
BASE_IMPORTS with the project's imports.json merged over it.
"""

from __future__ import annotations

import json
import logging
import re
import time
from importlib import resources
from pathlib import Path
from typing import Dict, List

import jsonschema

from . import diagnostics as D
from . import toolchain
from .config import ProjectContext
from .fsutil import atomic_write_text

log = logging.getLogger(__name__)

TIDY_AFTER_SECONDS = 7 * 24 * 60 * 60

# Matches pkg.Func, but also struct.Field and method chains. Unknown
# identifiers simply produce no import; the compiler reports the rest.
_re_qualifier = re.compile(r"(\w+)\.")

BASE_IMPORTS: Dict[str, str] = {
    # third party
    "script": "github.com/bitfield/script",
    # short aliases
    "re": "regexp",
    "fp": "path/filepath",
    "str": "strings",
    "conv": "strconv",
    "u8": "unicode/utf8",
    "hex": "encoding/hex",
    "b64": "encoding/base64",
    # standard library
    "bufio": "bufio",
    "bytes": "bytes",
    "context": "context",
    "csv": "encoding/csv",
    "base64": "encoding/base64",
    "binary": "encoding/binary",
    "json": "encoding/json",
    "xml": "encoding/xml",
    "errors": "errors",
    "exec": "os/exec",
    "filepath": "path/filepath",
    "flag": "flag",
    "fmt": "fmt",
    "fs": "io/fs",
    "hash": "hash",
    "crc32": "hash/crc32",
    "md5": "crypto/md5",
    "sha1": "crypto/sha1",
    "sha256": "crypto/sha256",
    "rand": "math/rand",
    "http": "net/http",
    "io": "io",
    "ioutil": "io/ioutil",
    "log": "log",
    "slog": "log/slog",
    "maps": "maps",
    "math": "math",
    "big": "math/big",
    "net": "net",
    "url": "net/url",
    "os": "os",
    "signal": "os/signal",
    "user": "os/user",
    "path": "path",
    "reflect": "reflect",
    "regexp": "regexp",
    "runtime": "runtime",
    "slices": "slices",
    "sort": "sort",
    "strconv": "strconv",
    "strings": "strings",
    "sync": "sync",
    "atomic": "sync/atomic",
    "syscall": "syscall",
    "tabwriter": "text/tabwriter",
    "template": "text/template",
    "time": "time",
    "unicode": "unicode",
    "utf8": "unicode/utf8",
}


def _schema() -> dict:
    raw = resources.files("goscript").joinpath("imports.schema.json").read_text(encoding="utf-8")
    return json.loads(raw)


_LOAD_ERRORS = (OSError, ValueError, jsonschema.ValidationError)


def _read_user_imports(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    data = json.loads(path.read_text(encoding="utf-8") or "{}")
    jsonschema.validate(instance=data, schema=_schema())
    return data


def _reason(e: Exception) -> str:
    return getattr(e, "message", None) or str(e)


def load_user_imports(ctx: ProjectContext) -> Dict[str, str]:
    """Read imports.json. Unreadable or invalid content is deferred, not fatal."""
    try:
        return _read_user_imports(ctx.imports_path)
    except _LOAD_ERRORS as e:
        ctx.diagnostics.defer(D.Diagnostic(D.IMP_INVALID, f"Ignoring user imports in {ctx.imports_path}", _reason(e)))
        return {}


def write_user_imports(ctx: ProjectContext, table: Dict[str, str]) -> None:
    """Rewrite imports.json in full."""
    try:
        jsonschema.validate(instance=table, schema=_schema())
        atomic_write_text(ctx.imports_path, json.dumps(table, indent=4, sort_keys=True) + "\n")
    except jsonschema.ValidationError as e:
        D.fail(D.IMP_WRITE, "Unable to marshal content for imports.json file.", e.message)
    except OSError as e:
        D.fail(D.IMP_WRITE, f"Unable to write {ctx.imports_path}", e)


def alias_table(ctx: ProjectContext) -> Dict[str, str]:
    table = dict(BASE_IMPORTS)
    table.update(load_user_imports(ctx))
    return table


def scan_identifiers(code: str) -> List[str]:
    return [m.group(1) for m in _re_qualifier.finditer(code)]


def format_import(alias: str, path: str) -> str:
    if path.rstrip("/").rsplit("/", 1)[-1] == alias:
        return f'"{path}"'
    return f'{alias} "{path}"'


def resolve_imports(ctx: ProjectContext, code: str) -> List[str]:
    """Import declarations for every known identifier in `code`, deduplicated, in order."""
    table = alias_table(ctx)
    out: List[str] = []
    for ident in scan_identifiers(code):
        path = table.get(ident)
        if not path:
            continue
        decl = format_import(ident, path)
        if decl not in out:
            out.append(decl)
    log.debug("resolved imports: %s", out)
    return out


def _go_mod_is_stale(ctx: ProjectContext) -> bool:
    try:
        mtime = ctx.go_mod_path.stat().st_mtime
    except OSError as e:
        D.fail(D.GET_FAILED, "Could not stat go.mod file.", e)
    return mtime < time.time() - TIDY_AFTER_SECONDS


def tidy(ctx: ProjectContext) -> None:
    res = toolchain.go_mod_tidy(ctx)
    if not res.ok:
        D.fail(D.TIDY_FAILED, f"{res.command} failed (exit {res.returncode})", res.output)


def fetch_package(ctx: ProjectContext, pkg: str) -> str:
    """
    `go get` an external package and remember it in imports.json under the
    last segment of its path. Returns the alias recorded.
    """
    # Tidy only occasionally; unnamed scripts may fetch on every run.
    if _go_mod_is_stale(ctx):
        log.debug("go.mod untouched for over a week, tidying first")
        tidy(ctx)

    res = toolchain.go_get(ctx, pkg)
    if not res.ok:
        D.fail(D.GET_FAILED, f"{res.command} failed (exit {res.returncode})", res.output)

    path = pkg.split("@", 1)[0].rstrip("/")
    alias = path.rsplit("/", 1)[-1]
    # The file is rewritten in full, so it must be read back intact first.
    try:
        table = _read_user_imports(ctx.imports_path)
    except _LOAD_ERRORS as e:
        D.fail(
            D.IMP_WRITE,
            f"Not recording {alias} -> {path}: {ctx.imports_path} is invalid and was left unchanged.",
            _reason(e),
        )
    table[alias] = path
    write_user_imports(ctx, table)
    log.debug("recorded import alias %s -> %s", alias, path)
    return alias
