from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from . import build, launcher, store
from . import diagnostics as D
from . import imports as imp
from .assembler import assemble_source, read_source_file
from .config import ProjectContext, check_name, temporary_name
from .fsutil import is_existing_file
from .project import create_project, setup_help

log = logging.getLogger("goscript")

EPILOG = """\
Example (Compile as 'hello'. Execute hello.):
  {prog} --code 'script.Echo("Hello World!\\n").Stdout()' --name hello; hello

Example (Execute immediately.):
  {prog} --exec --code 'script.Echo("Hello World!\\n").Stdout()'

Example shebang in 'myscript.go' file:
  (1) Add '#!/usr/bin/env -S {prog}' to the top of your go source file.
  (2) Set execute permission and type "./myscript.go" as you would with a shell script.
"""


def build_parser(prog: str) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog=prog,
        description=f"goscript {__version__}: compile and run Go one-liners and scripts.",
        epilog=EPILOG.format(prog=prog),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-c", "--code", default="", help="The code of your command or the name of a file containing the body of the main function.")
    p.add_argument("-f", "--file", default="", help="A go src file, complete with main function and imports. Alternative to --code.")
    p.add_argument("-x", "--exec", dest="exec_code", action="store_true", help="Execute the resulting binary.")
    p.add_argument("--pipe", action="store_true", help="Execute the resulting binary, feeding it terminal input line by line (until a blank line) and printing its output when it exits.")
    p.add_argument("-n", "--name", default="", help="A name for your command. The code will be saved to the project src directory with that name.")
    p.add_argument("-e", "--edit", default="", metavar="NAME", help="Edit the named command in the editor specified by GOSCRIPT_EDITOR or EDITOR.")
    p.add_argument("-t", "--template", action="store_true", help="Print a template go source file to stdout, or to the project src directory if --name provided.")
    p.add_argument("-l", "--list", action="store_true", help="Print the list of existing commands.")
    p.add_argument("-p", "--path", default="", metavar="NAME", help="Print the path to the source file specified, if exists in the project. Blank if not found.")
    p.add_argument("--cat", default="", metavar="NAME", help="Prints the script, or copies it to --name if provided. The original source and binary remain in the project.")
    p.add_argument("--export", default="", metavar="NAME", help="Exports the named script to stdout with shebang added and removes source and binary from project.")
    p.add_argument("--export-bin", default="", metavar="NAME", help="Exports the named binary to the local directory and removes source and binary from project.")
    p.add_argument("--delete", default="", metavar="NAME", help="Delete the specified compiled command. Removes .go extension from source file so it remains recoverable.")
    p.add_argument("--restore", default="", metavar="NAME", help="Restore a command after delete or export operation. Restores .go extension to the source file and recompiles.")
    p.add_argument("-g", "--goget", default="", metavar="PKG", help="Go get an external package (not part of stdlib) to pull into the project.")
    p.add_argument("--gotidy", action="store_true", help="Run go mod tidy (remove modules from go.mod file that are no longer required).")
    p.add_argument("--recompile", action="store_true", help="Recompile existing source files in the project src directory.")
    p.add_argument("--setup", default="", metavar="DIR", help="A name, absolute path or 'help'. Creates a module project to be used by goscript.")
    p.add_argument("-d", "--dir", action="store_true", help="Print the directory path to the project.")
    p.add_argument("-b", "--bang", action="store_true", help="Print the expected shebang line.")
    p.add_argument("-v", "--version", action="store_true", help="Print the goscript version.")
    p.add_argument("--verbose", action="store_true", help="Log toolchain invocations and store changes to stderr.")
    p.add_argument("args", nargs=argparse.REMAINDER, help="Arguments passed to the executed command.")
    return p


def _configure_logging(verbose: bool) -> None:
    level = os.environ.get("GOSCRIPT_LOG_LEVEL", "").upper() or ("DEBUG" if verbose else "WARNING")
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")


def _split_shebang_file(argv: List[str]) -> tuple[Optional[str], List[str]]:
    # `#!/usr/bin/env -S goscript` runs `goscript ./script.go args...`:
    # a leading existing file is the source, and implies --exec.
    if argv and not argv[0].startswith("-") and is_existing_file(argv[0]):
        return argv[0], argv[1:]
    return None, argv


def _build_and_run(ctx: ProjectContext, args: argparse.Namespace, source: str) -> int:
    temporary = not args.name
    name = temporary_name() if temporary else check_name(args.name)
    binary = ctx.binary_path(name)

    def cleanup() -> None:
        if temporary:
            store.cleanup_temporary(ctx, name)

    with launcher.InterruptGuard(cleanup):
        try:
            src = store.save(ctx, name, source)
            result = build.compile_binary(ctx, src, binary)
            if result.fetched:
                log.debug("fetched %s while building %s", ", ".join(result.fetched), name)
            if not result.ok:
                return 1
            if args.exec_code:
                return launcher.run_direct(binary, args.args, cleanup=cleanup)
            if args.pipe:
                return launcher.run_piped(binary, args.args)
            return 0
        finally:
            cleanup()


def run(ctx: ProjectContext, args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    out = sys.stdout

    if args.version:
        print(f"goscript v{__version__}", file=out)
        return 0
    if args.dir:
        print(ctx.project_dir, file=out)
        return 0
    if args.path:
        found = store.source_path_if_exists(ctx, args.path)
        if found is not None:
            print(found, file=out)
        return 0
    if args.setup:
        if args.setup == "help":
            out.write(setup_help(ctx))
        else:
            create_project(ctx, args.setup, out)
        return 0
    if args.bang:
        print(ctx.shebang(), file=out)
        return 0
    if args.list:
        for entry in store.list_commands(ctx):
            print(entry.label(), file=out)
        return 0
    if args.goget:
        imp.fetch_package(ctx, args.goget)
        return 0
    if args.gotidy:
        imp.tidy(ctx)
        return 0
    if args.recompile:
        return 0 if store.recompile_all(ctx) else 1

    if args.template:
        source = assemble_source(ctx, args.code)
        if args.name:
            path = store.save(ctx, args.name, source)
            print(f"Source file written to: {path}", file=out)
        else:
            print(ctx.shebang(), file=out)
            out.write(source)
        return 0
    if args.edit:
        return 0 if store.edit(ctx, args.edit) else 1
    if args.cat:
        store.cat(ctx, args.cat, out, copy_as=args.name or None)
        return 0
    if args.export:
        store.export(ctx, args.export, out)
        return 0
    if args.export_bin:
        store.export_binary(ctx, args.export_bin)
        return 0
    if args.delete:
        store.delete(ctx, args.delete)
        return 0
    if args.restore:
        return 0 if store.restore(ctx, args.restore) else 1

    if args.file:
        source = read_source_file(args.file)
    elif args.code:
        source = assemble_source(ctx, args.code)
    elif args.name:
        source = read_source_file(ctx.source_path(check_name(args.name)))
    else:
        parser.print_help(sys.stderr)
        return 1
    return _build_and_run(ctx, args, source)


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    prog = os.path.basename(sys.argv[0]) or "goscript"

    shebang_file, argv = _split_shebang_file(argv)
    parser = build_parser(prog)
    args = parser.parse_args(argv)
    if shebang_file:
        args.file = shebang_file
        if not args.pipe:
            args.exec_code = True
    _configure_logging(args.verbose)

    ctx: Optional[ProjectContext] = None
    try:
        ctx = ProjectContext.from_environment()
        log.debug("project directory %s", ctx.project_dir)
        return run(ctx, args, parser)
    except D.GoscriptError as e:
        D.report(e.diag)
        return 1
    except KeyboardInterrupt:
        return 1
    finally:
        if ctx is not None:
            n = ctx.diagnostics.flush(sys.stderr)
            log.debug("%d deferred diagnostic(s) reported", n)


if __name__ == "__main__":
    raise SystemExit(main())
