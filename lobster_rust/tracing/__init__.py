"""lobster-rust tracing - module resolution and trace extraction.

This package provides tools for:
- Resolving the module files of a crate from its entry file
- Tracking line and column positions over a token stream
- Parsing lobster-trace and lobster-exclude comments
- Visiting syntax trees to build the trace tree of each file
- Tracing a whole project, optionally in parallel
"""

from lobster_rust.tracing.module_resolver import (
    ModuleResolver,
    ResolutionResult,
    resolve_modules,
    scan_declarations,
)
from lobster_rust.tracing.position import PositionTracker
from lobster_rust.tracing.project_tracer import ProjectTracer, TraceResult, trace_project
from lobster_rust.tracing.tags import Tag, TagKind, TagParser
from lobster_rust.tracing.visitor import TraceVisitor, VisitorContext, visit_file

__all__ = [
    "ModuleResolver",
    "ResolutionResult",
    "resolve_modules",
    "scan_declarations",
    "PositionTracker",
    "ProjectTracer",
    "TraceResult",
    "trace_project",
    "Tag",
    "TagKind",
    "TagParser",
    "TraceVisitor",
    "VisitorContext",
    "visit_file",
]
