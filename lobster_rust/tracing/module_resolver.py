"""Module resolution for Rust crates.

Reconstructs the files of a crate from its entry file by following
``mod <name>;`` declarations. A declaration in file ``<dir>/<stem>.rs``
is resolved by trying, in order:

1. ``<dir>/<name>.rs``          (only from main.rs, lib.rs or mod.rs)
2. ``<dir>/<name>/mod.rs``      (only from main.rs, lib.rs or mod.rs)
3. ``<dir>/<stem>/<name>.rs``
4. ``<dir>/<stem>/<name>/mod.rs``

A ``#[path = "..."]`` attribute on the declaration overrides all four
rules and is resolved relative to ``<dir>``.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set, Tuple, Union

from lobster_rust.core.errors import ParseError, ResolutionError
from lobster_rust.core.models import (
    FileFailure,
    ModuleDeclaration,
    Namespace,
    ResolutionRule,
    ResolvedModule,
    UnresolvedDeclaration,
)
from lobster_rust.parsers.base import BaseParser, SyntaxNode, SyntaxToken
from lobster_rust.parsers.treesitter_parser import create_parser

logger = logging.getLogger(__name__)

PATH_ATTRIBUTE = re.compile(r'^#\[\s*path\s*=\s*"(?P<path>(?:[^"\\]|\\.)*)"\s*\]$', re.DOTALL)


@dataclass(frozen=True)
class ModuleConvention:
    """File naming convention of a language's module system."""
    extension: str = ".rs"
    root_filenames: Tuple[str, ...] = ("main.rs", "lib.rs")
    aggregator_filename: str = "mod.rs"


RUST_MODULES = ModuleConvention()


@dataclass
class ResolutionResult:
    """Modules of a project in discovery order, plus everything that went wrong."""
    modules: List[ResolvedModule] = field(default_factory=list)
    unresolved: List[UnresolvedDeclaration] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)


def scan_declarations(tree: SyntaxNode) -> List[ModuleDeclaration]:
    """Find all ``mod <name>;`` declarations of a file in textual order.

    Outer attributes are siblings preceding the item they annotate; the
    ``#[path]`` override is taken from the attributes directly before a
    declaration.

    Args:
        tree: Root of the file's syntax tree

    Returns:
        List of ModuleDeclaration objects
    """
    declarations = []
    for node in tree.walk():
        attributes: List[SyntaxNode] = []
        for child in node.children:
            if isinstance(child, SyntaxToken):
                continue
            if child.kind == "attribute_item":
                attributes.append(child)
                continue
            if child.kind == "mod_item" and child.child_by_field("body") is None:
                name = child.child_by_field("name")
                if name is not None:
                    declarations.append(ModuleDeclaration(
                        name=name.text.strip(),
                        path_override=_path_attribute(attributes + child.child_nodes("attribute_item")),
                        offset=child.start,
                    ))
            attributes = []

    declarations.sort(key=lambda declaration: declaration.offset)
    return declarations


def _path_attribute(attributes: Sequence[SyntaxNode]) -> Optional[str]:
    for attribute in attributes:
        match = PATH_ATTRIBUTE.match(attribute.text.strip())
        if match:
            return match.group("path")
    return None


class ModuleResolver:
    """Resolves the module files of a project.

    Args:
        root_dir: Directory containing the entry file
        entry_filename: Conventional entry file name (main.rs or lib.rs)
        parser_factory: Creates the parser used to scan files for declarations
        convention: File naming convention of the module system
    """

    def __init__(
        self,
        root_dir: Union[str, Path],
        entry_filename: str = "main.rs",
        parser_factory: Optional[Callable[[], BaseParser]] = None,
        convention: ModuleConvention = RUST_MODULES,
    ):
        self.root_dir = Path(root_dir)
        self.entry_filename = entry_filename
        self.convention = convention
        self._parser_factory = parser_factory or create_parser

    def resolve(self) -> ResolutionResult:
        """Resolve all modules reachable from the entry file.

        Modules are returned in depth-first discovery order, declarations
        of a file in textual order. A file belongs to the first declaration
        that resolves to it, and later declarations of the same file are
        skipped. Unresolvable declarations and unreadable files are
        recorded on the result.

        Returns:
            ResolutionResult

        Raises:
            ResolutionError: If the entry file cannot be resolved, read or parsed
        """
        entry = self._entry_module()
        result = ResolutionResult()
        seen: Set[Path] = {entry.canonical_path}
        worklist = [entry]

        while worklist:
            module = worklist.pop()
            try:
                declarations = self.scan(module.path)
            except (OSError, ParseError) as exc:
                if module.rule is ResolutionRule.ENTRY:
                    raise ResolutionError(f"Cannot read entry file {module.path}: {exc}") from exc
                logger.warning("Skipping module file %s: %s", module.path, exc)
                reason = exc.reason if isinstance(exc, ParseError) else str(exc)
                result.failures.append(FileFailure(module.path, reason))
                continue

            result.modules.append(module)
            children = []
            for declaration in declarations:
                child = self.resolve_declaration(module, declaration)
                if child is None:
                    unresolved = UnresolvedDeclaration(module.path, declaration.name, declaration.path_override)
                    logger.warning("Could not resolve module declaration: %s", unresolved)
                    result.unresolved.append(unresolved)
                elif child.canonical_path in seen:
                    logger.debug("%s is already part of the project, skipping re-inclusion", child.path)
                else:
                    seen.add(child.canonical_path)
                    children.append(child)
            worklist.extend(reversed(children))

        return result

    def scan(self, path: Path) -> List[ModuleDeclaration]:
        """Parse a file and return its module declarations."""
        return scan_declarations(self._parser_factory().parse_file(path))

    def resolve_declaration(
        self,
        module: ResolvedModule,
        declaration: ModuleDeclaration,
    ) -> Optional[ResolvedModule]:
        """Resolve one declaration of a module to a file.

        Args:
            module: The module containing the declaration
            declaration: The declaration to resolve

        Returns:
            ResolvedModule, or None if no candidate file exists
        """
        if declaration.path_override is not None:
            target = module.path.parent / declaration.path_override
            if target.is_file():
                return self._module(target, module, declaration, ResolutionRule.PATH_ATTRIBUTE)
            return None

        for rule, candidate in self.candidates(module, declaration.name):
            if candidate.is_file():
                return self._module(candidate, module, declaration, rule)
        return None

    def candidates(self, module: ResolvedModule, name: str) -> List[Tuple[ResolutionRule, Path]]:
        """Candidate files for a declaration, in the order they are tried."""
        directory = module.path.parent
        filename = f"{name}{self.convention.extension}"
        aggregator = self.convention.aggregator_filename

        candidates = []
        if module.can_declare_siblings:
            candidates.append((ResolutionRule.SIBLING_FILE, directory / filename))
            candidates.append((ResolutionRule.SIBLING_DIRECTORY, directory / name / aggregator))

        nested = directory / module.stem
        candidates.append((ResolutionRule.NESTED_FILE, nested / filename))
        candidates.append((ResolutionRule.NESTED_DIRECTORY, nested / name / aggregator))
        return candidates

    def _entry_module(self) -> ResolvedModule:
        if self.entry_filename not in self.convention.root_filenames:
            raise ResolutionError(
                f"Entry file must be one of {', '.join(self.convention.root_filenames)}, "
                f"got '{self.entry_filename}'"
            )
        if not self.root_dir.is_dir():
            raise ResolutionError(f"Project directory {self.root_dir} does not exist")

        entry_path = self.root_dir / self.entry_filename
        if not entry_path.is_file():
            raise ResolutionError(f"Entry file {entry_path} does not exist")

        return ResolvedModule(
            path=entry_path,
            canonical_path=entry_path.resolve(),
            namespace=Namespace.from_str(entry_path.stem),
            rule=ResolutionRule.ENTRY,
            is_root=True,
        )

    def _module(
        self,
        path: Path,
        parent: ResolvedModule,
        declaration: ModuleDeclaration,
        rule: ResolutionRule,
    ) -> ResolvedModule:
        return ResolvedModule(
            path=path,
            canonical_path=path.resolve(),
            namespace=parent.child_namespace.child(declaration.name),
            rule=rule,
            is_root=path.name in self.convention.root_filenames,
            is_aggregator=path.name == self.convention.aggregator_filename,
            parent=parent.path,
            declared_name=declaration.name,
        )


def resolve_modules(
    root_dir: Union[str, Path],
    entry_filename: str = "main.rs",
) -> ResolutionResult:
    """Convenience function to resolve the modules of a project.

    Args:
        root_dir: Directory containing the entry file
        entry_filename: main.rs or lib.rs

    Returns:
        ResolutionResult with modules in discovery order
    """
    return ModuleResolver(root_dir, entry_filename).resolve()
