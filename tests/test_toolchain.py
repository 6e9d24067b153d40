from __future__ import annotations
from pathlib import Path

from goscript.toolchain import missing_packages, run_tool

GO_OUTPUT = """\
hello.go:4:2: no required module provides package github.com/fatih/color; to add it:
	go get github.com/fatih/color
hello.go:5:2: no required module provides package gopkg.in/yaml.v3; to add it:
	go get gopkg.in/yaml.v3
"""


def test_missing_packages_from_go_output():
    assert missing_packages(GO_OUTPUT) == ["github.com/fatih/color", "gopkg.in/yaml.v3"]


def test_missing_packages_ignores_other_errors():
    assert missing_packages("hello.go:3:1: syntax error: unexpected }") == []
    assert missing_packages("") == []


def test_run_tool_merges_streams(tmp_path: Path):
    res = run_tool(["sh", "-c", "echo out; echo err >&2; exit 3"], tmp_path)
    assert not res.ok
    assert res.returncode == 3
    assert "out" in res.output and "err" in res.output


def test_run_tool_feeds_stdin(tmp_path: Path):
    res = run_tool(["cat"], tmp_path, stdin="package main\n")
    assert res.ok and res.output == "package main\n"


def test_missing_executable_is_a_failed_result(tmp_path: Path):
    res = run_tool(["goscript-no-such-tool"], tmp_path)
    assert not res.ok
    assert res.returncode == 127
