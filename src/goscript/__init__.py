__version__ = "1.2.3"

__all__ = ['assembler', 'build', 'cli', 'config', 'diagnostics', 'imports', 'launcher', 'project', 'store', 'toolchain']

from .config import ProjectContext
from .diagnostics import Diagnostic, DiagnosticSink, GoscriptError
from .imports import resolve_imports, fetch_package
from .assembler import assemble_source
from .build import compile_binary, BuildResult
