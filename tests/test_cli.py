from __future__ import annotations
import io
from pathlib import Path

import pytest

from goscript import __version__
from goscript.cli import main

from conftest import tree

HELLO = 'fmt.Println("hi")'


@pytest.fixture
def env(project, fake_go, monkeypatch):
    monkeypatch.setenv("GOSCRIPT_PROJECT_DIR", str(project.project_dir))
    monkeypatch.delenv("GOSCRIPT_EDITOR", raising=False)
    monkeypatch.delenv("GOSCRIPT_LOG_LEVEL", raising=False)
    return project


def test_version_and_dir(env, capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out == f"goscript v{__version__}\n"
    assert main(["-d"]) == 0
    assert capsys.readouterr().out.strip() == str(env.project_dir)


def test_bang(env, capsys):
    assert main(["--bang"]) == 0
    assert capsys.readouterr().out.startswith("#!/usr/bin/env -S ")


def test_no_options_prints_usage(env, capsys):
    assert main([]) == 1
    assert "usage:" in capsys.readouterr().err


def test_missing_project_dir(monkeypatch, tmp_path: Path, capsys):
    monkeypatch.setenv("GOSCRIPT_PROJECT_DIR", str(tmp_path / "nowhere"))
    assert main(["--list"]) == 1
    assert "GOSCRIPT_PROJECT_DIR not found" in capsys.readouterr().err


def test_temporary_command_is_removed_after_build(env, fake_go):
    assert main(["-c", HELLO]) == 0
    assert fake_go.kinds().count("build") == 1
    assert tree(env) == {"src": [], "bin": []}


def test_temporary_command_is_removed_after_build_failure(env, fake_go, capsys):
    fake_go.builds = [(False, "./x.go:6:2: undefined: nope\n")]
    assert main(["-c", "nope.Do()"]) == 1
    assert "undefined: nope" in capsys.readouterr().err
    assert tree(env) == {"src": [], "bin": []}


def test_exec_forwards_args_and_exit_code(env, fake_go, capfd):
    fake_go.binary = '#!/bin/sh\necho ran "$@"\nexit 3\n'
    assert main(["-x", "-c", HELLO, "a", "b"]) == 3
    assert "ran a b" in capfd.readouterr().out
    assert tree(env) == {"src": [], "bin": []}


def test_interrupt_during_exec_cleans_up(env, fake_go):
    # the child signals its parent, as a terminal ^C would
    fake_go.binary = "#!/bin/sh\nkill -TERM $PPID\nsleep 1\n"
    with pytest.raises(SystemExit) as ei:
        main(["-x", "-c", HELLO])
    assert ei.value.code == 1
    assert tree(env) == {"src": [], "bin": []}


def test_named_command_persists(env, capsys):
    assert main(["-c", HELLO, "-n", "hello"]) == 0
    assert tree(env) == {"src": ["hello.go"], "bin": ["hello"]}
    src = env.source_path("hello").read_text(encoding="utf-8")
    assert '\t"fmt"\n' in src and HELLO in src

    assert main(["-l"]) == 0
    assert capsys.readouterr().out == "hello\n"
    assert main(["-p", "hello"]) == 0
    assert capsys.readouterr().out.strip() == str(env.source_path("hello"))


def test_export_then_restore(env, fake_go, capsys):
    assert main(["-c", HELLO, "-n", "foo"]) == 0
    capsys.readouterr()
    assert main(["--export", "foo"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("#!/usr/bin/env -S ")
    assert HELLO in out

    main(["--list"])
    assert capsys.readouterr().out == "foo (requires --restore)\n"

    assert main(["--restore", "foo"]) == 0
    assert tree(env) == {"src": ["foo.go"], "bin": ["foo"]}


def test_template_prints_or_saves(env, capsys):
    assert main(["-t"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines()[0].startswith("#!/usr/bin/env -S ")
    assert "package main" in out and "func main()" in out

    assert main(["-t", "-n", "draft"]) == 0
    assert "Source file written to:" in capsys.readouterr().out
    assert tree(env) == {"src": ["draft.go"], "bin": []}


def test_shebang_script_runs_implicitly(env, fake_go, tmp_path: Path):
    script = tmp_path / "hello.go"
    script.write_text("#!/usr/bin/env -S goscript\npackage main\n\nfunc main() {}\n", encoding="utf-8")
    fake_go.binary = "#!/bin/sh\nexit 5\n"
    assert main([str(script)]) == 5
    assert tree(env) == {"src": [], "bin": []}


def test_goget_records_alias(env, fake_go):
    assert main(["-g", "github.com/fatih/color"]) == 0
    assert ("get", "github.com/fatih/color") in fake_go.calls
    assert '"color": "github.com/fatih/color"' in env.imports_path.read_text(encoding="utf-8")


def test_formatting_failure_is_reported_at_end(env, fake_go, capsys):
    fake_go.gofmt_ok = False
    assert main(["-c", "fmt.Println(", "-n", "broken"]) == 0
    assert "Code formatting failed" in capsys.readouterr().err


def test_setup_creates_project(env, fake_go, tmp_path: Path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["--setup", "scripts"]) == 0
    root = tmp_path / "scripts"
    assert (root / "src").is_dir() and (root / "bin").is_dir()
    assert "func main()" in (root / "script.tmpl").read_text(encoding="utf-8")
    assert ("init", "scripts") in fake_go.calls
    assert ("get", "github.com/bitfield/script") in fake_go.calls
    assert f"GOSCRIPT_PROJECT_DIR={root}" in capsys.readouterr().out


def test_setup_help(env, capsys):
    assert main(["--setup", "help"]) == 0
    assert "go mod init" in capsys.readouterr().out


def test_long_code_is_not_mistaken_for_a_path(env, capsys):
    code = 'fmt.Println("' + "x" * 300 + '")'
    assert main(["-c", code, "-n", "long"]) == 0
    assert "x" * 300 in env.source_path("long").read_text(encoding="utf-8")
    capsys.readouterr()
    assert main(["y" * 300]) == 1
    assert "usage:" in capsys.readouterr().err


def test_pipe_prints_output_and_removes_temporary(env, fake_go, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("line\n"))
    fake_go.binary = '#!/bin/sh\nread l\necho "piped $l"\nexit 2\n'
    assert main(["--pipe", "-c", HELLO]) == 2
    assert capsys.readouterr().out == "piped line\n"
    assert tree(env) == {"src": [], "bin": []}


def test_fetch_failure_during_build_removes_temporary(env, fake_go, capsys):
    missing = "github.com/x/missing"
    fake_go.builds = [(False, f"x.go:4:2: no required module provides package {missing}; to add it:\n\tgo get {missing}\n")]
    fake_go.failing_gets = {missing}
    assert main(["-c", "missing.Do()"]) == 1
    assert f"go get {missing} failed" in capsys.readouterr().err
    assert fake_go.kinds().count("build") == 1
    assert tree(env) == {"src": [], "bin": []}


def test_setup_help_describes_template_syntax(env, capsys):
    assert main(["--setup", "help"]) == 0
    out = capsys.readouterr().out
    assert "Jinja2" in out
    assert "{{range .Imports}}" in out
