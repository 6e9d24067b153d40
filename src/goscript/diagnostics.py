from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, NoReturn, Optional, TextIO
import sys

# Diagnostic codes
CFG_PROJECT_MISSING="GSC-CFG-0001"
NAME_INVALID="GSC-NAME-0001"
FS_READ="GSC-FS-0001"
FS_WRITE="GSC-FS-0002"
FS_RENAME="GSC-FS-0003"
FS_REMOVE="GSC-FS-0004"
FS_COPY="GSC-FS-0005"
FS_LIST="GSC-FS-0006"
FMT_FAILED="GSC-FMT-0001"
TPL_FAILED="GSC-TPL-0001"
IMP_INVALID="GSC-IMP-0001"
IMP_WRITE="GSC-IMP-0002"
GET_FAILED="GSC-GET-0001"
TIDY_FAILED="GSC-GET-0002"
MOD_INIT_FAILED="GSC-GET-0003"
BUILD_FAILED="GSC-BUILD-0001"
EXEC_FAILED="GSC-EXEC-0001"
EDIT_NO_EDITOR="GSC-EDIT-0001"
EDIT_NOT_FOUND="GSC-EDIT-0002"


@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str
    detail: str = ""

    def render(self) -> str:
        message = self.message.strip()
        detail = self.detail.strip()
        if message and detail:
            return f"{message}\n{detail}"
        return message or detail


class GoscriptError(Exception):
    """Fatal condition: aborts the current command with a non-zero exit."""

    def __init__(self, diag: Diagnostic):
        super().__init__(diag.render())
        self.diag = diag


def fail(code: str, message: str, detail: object = "") -> NoReturn:
    raise GoscriptError(Diagnostic(code, message, str(detail)))


def report(diag: Diagnostic, stream: Optional[TextIO] = None) -> None:
    """Print a diagnostic now; the caller carries on with a failure result."""
    print(diag.render(), file=stream or sys.stderr)


@dataclass
class DiagnosticSink:
    """Collects non-fatal diagnostics that are printed at the end of the run."""

    deferred: List[Diagnostic] = field(default_factory=list)

    def defer(self, diag: Diagnostic) -> None:
        self.deferred.append(diag)

    def flush(self, stream: Optional[TextIO] = None) -> int:
        out = stream or sys.stderr
        n = len(self.deferred)
        for d in self.deferred:
            print(d.render(), file=out)
        self.deferred.clear()
        return n
