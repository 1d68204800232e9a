"""Project tracer - resolves a crate's modules and traces every file.

Resolution runs first on the calling thread. Parsing and visiting the
resolved files are independent per file and may run on a thread pool;
the per-file roots are merged back in discovery order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from lobster_rust.config import TracerSettings, get_settings
from lobster_rust.core.errors import ParseError
from lobster_rust.core.models import (
    FileFailure,
    ResolutionRule,
    ResolvedModule,
    TraceNode,
    UnresolvedDeclaration,
)
from lobster_rust.parsers.base import BaseParser
from lobster_rust.parsers.treesitter_parser import create_parser
from lobster_rust.tracing.module_resolver import ModuleResolver
from lobster_rust.tracing.tags import TagParser
from lobster_rust.tracing.visitor import TraceVisitor

logger = logging.getLogger(__name__)


@dataclass
class TraceResult:
    """Trace forest of a project and the problems met while building it."""
    roots: List[TraceNode] = field(default_factory=list)
    modules: List[ResolvedModule] = field(default_factory=list)
    unresolved: List[UnresolvedDeclaration] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)
    entry_traced: bool = False

    @property
    def ok(self) -> bool:
        """True if the entry file was traced."""
        return self.entry_traced

    @property
    def warnings(self) -> List[str]:
        return [str(item) for item in self.unresolved] + [str(item) for item in self.failures]

    def walk(self):
        """Iterate over all nodes of the forest in pre-order."""
        for root in self.roots:
            yield from root.walk()


class ProjectTracer:
    """Traces all files of a Rust project.

    Args:
        root_dir: Directory containing the entry file
        entry_filename: main.rs for binaries, lib.rs for libraries
        settings: Tracer settings, loaded from the environment if omitted
        parser_factory: Creates one parser per traced file
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        entry_filename: str = "main.rs",
        settings: Optional[TracerSettings] = None,
        parser_factory: Optional[Callable[[], BaseParser]] = None,
    ):
        self.root_dir = Path(root_dir)
        self.entry_filename = entry_filename
        self.settings = settings or get_settings()
        self._parser_factory = parser_factory or (
            lambda: create_parser(strict=self.settings.strict_syntax)
        )
        self.tag_parser = TagParser(self.settings.trace_marker, self.settings.exclude_marker)

    def trace(self, jobs: Optional[int] = None) -> TraceResult:
        """Resolve and trace the project.

        Args:
            jobs: Number of worker threads, the configured value if omitted

        Returns:
            TraceResult with one root per traced file in discovery order

        Raises:
            ResolutionError: If the entry file cannot be resolved
        """
        resolution = ModuleResolver(self.root_dir, self.entry_filename).resolve()
        result = TraceResult(
            modules=list(resolution.modules),
            unresolved=list(resolution.unresolved),
            failures=list(resolution.failures),
        )

        jobs = jobs if jobs is not None else self.settings.jobs
        if jobs > 1 and len(resolution.modules) > 1:
            with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="TraceWorker") as executor:
                outcomes = list(executor.map(self._trace_safely, resolution.modules))
        else:
            outcomes = [self._trace_safely(module) for module in resolution.modules]

        for module, outcome in zip(resolution.modules, outcomes):
            if isinstance(outcome, FileFailure):
                result.failures.append(outcome)
                continue
            result.roots.append(outcome)
            if module.rule is ResolutionRule.ENTRY:
                result.entry_traced = True

        logger.info("Traced %d of %d module files", len(result.roots), len(resolution.modules))
        return result

    def trace_module(self, module: ResolvedModule) -> TraceNode:
        """Parse and visit one module file.

        Raises:
            OSError: If the file cannot be read
            ParseError: If the file cannot be parsed
        """
        tree = self._parser_factory().parse_file(module.path)
        visitor = TraceVisitor(str(module.path), module.namespace, self.tag_parser)
        return visitor.visit(tree)

    def _trace_safely(self, module: ResolvedModule) -> Union[TraceNode, FileFailure]:
        try:
            return self.trace_module(module)
        except (OSError, ParseError) as exc:
            logger.warning("Failed to trace %s: %s", module.path, exc)
            reason = exc.reason if isinstance(exc, ParseError) else str(exc)
            return FileFailure(module.path, reason)


def trace_project(
    root_dir: Union[str, Path],
    entry_filename: str = "main.rs",
    jobs: Optional[int] = None,
) -> TraceResult:
    """Convenience function to trace a project with the configured settings."""
    return ProjectTracer(root_dir, entry_filename).trace(jobs)
