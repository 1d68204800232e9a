"""Core data models for lobster-rust.

This module holds the trace tree (``TraceNode`` and its locations), the
namespace type used to build qualified names, and the records produced
by module resolution.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar, Dict, Iterator, List, Optional, Tuple, Union

from lobster_rust.core.errors import SealedNodeError

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    """Kinds of traceable Rust constructs."""
    MODULE = "Module"
    STRUCT = "Struct"
    ENUM = "Enum"
    TRAIT = "Trait"
    FUNCTION = "Function"
    IMPL = "Impl"

    @property
    def is_container(self) -> bool:
        """Containers only group other items in the default LOBSTER output."""
        return self in (NodeKind.MODULE, NodeKind.TRAIT, NodeKind.IMPL)


# Syntax node kinds that open a trace node
SYNTAX_KINDS: Dict[str, NodeKind] = {
    "function_item": NodeKind.FUNCTION,
    "struct_item": NodeKind.STRUCT,
    "enum_item": NodeKind.ENUM,
    "trait_item": NodeKind.TRAIT,
    "impl_item": NodeKind.IMPL,
    "mod_item": NodeKind.MODULE,
}

# Keyword token that marks the precise location of each kind
DEFINING_KEYWORDS: Dict[NodeKind, str] = {
    NodeKind.FUNCTION: "fn",
    NodeKind.STRUCT: "struct",
    NodeKind.ENUM: "enum",
    NodeKind.TRAIT: "trait",
    NodeKind.IMPL: "impl",
    NodeKind.MODULE: "mod",
}

# Type wrappers that are unwrapped to find the implemented type of an impl block
_WRAPPER_TYPES: Dict[str, str] = {
    "generic_type": "type",
    "reference_type": "type",
    "pointer_type": "type",
    "scoped_type_identifier": "name",
}


@dataclass(frozen=True)
class Namespace:
    """A dotted scope path such as ``main.Point``.

    Namespaces are immutable; ``child`` derives the namespace of a nested
    scope.
    """
    parts: Tuple[str, ...] = ()

    SEPARATOR: ClassVar[str] = "."

    @classmethod
    def from_str(cls, source: str) -> "Namespace":
        """Build a namespace from a dot separated string."""
        return cls(tuple(part for part in source.split(cls.SEPARATOR) if part))

    def child(self, name: str) -> "Namespace":
        """Return the namespace of ``name`` nested in this one."""
        return Namespace(self.parts + (name,))

    def __bool__(self) -> bool:
        return bool(self.parts)

    def __str__(self) -> str:
        return self.SEPARATOR.join(self.parts)


@dataclass(frozen=True)
class TextPosition:
    """A 1-based line and column in a source file."""
    line: int
    column: int


@dataclass
class FileReference:
    """Location of an item in a local file."""
    filename: str
    line: Optional[int] = None
    column: Optional[int] = None

    @classmethod
    def unknown(cls) -> "FileReference":
        return cls(filename="")

    def set_position(self, position: TextPosition):
        """Move the reference to a more precise position in the same file."""
        self.line = position.line
        self.column = position.column

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass
class GithubReference:
    """Location of an item in a file of a GitHub repository at a commit."""
    gh_root: str
    commit: str
    filename: str
    line: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.gh_root}/blob/{self.commit}/{self.filename}#L{self.line}"


Location = Union[FileReference, GithubReference]


@dataclass
class ContextData:
    """Namespace and optional implemented trait of a module or impl block."""
    namespace: Namespace
    trait_name: Optional[str] = None


def declared_identifier(node) -> Optional[str]:
    """Return the identifier a syntax node declares.

    For impl blocks this is the implemented type, stripped of generic
    arguments and path qualifiers (``impl<T> Wrapper<T>`` -> ``Wrapper``).

    Args:
        node: A structural syntax node

    Returns:
        The identifier, or None if the node carries no usable name
    """
    if node.kind == "impl_item":
        target = node.child_by_field("type")
        return _type_name(target) if target is not None else None

    name = node.child_by_field("name")
    if name is None:
        return None
    return name.text.strip() or None


def _type_name(element) -> Optional[str]:
    while element.kind in _WRAPPER_TYPES:
        inner = element.child_by_field(_WRAPPER_TYPES[element.kind])
        if inner is None:
            break
        element = inner

    text = " ".join(element.text.split())
    name = text.split("<", 1)[0].rsplit("::", 1)[-1].strip()
    return name or None


@dataclass
class TraceNode:
    """A traceable construct and the annotations found inside it.

    The qualified name of every child extends the name of its parent.
    Nodes are mutable while the visitor still has them on its stack and
    are sealed once attached to their parent.
    """
    name: str
    kind: NodeKind
    location: Location = field(default_factory=FileReference.unknown)
    children: List["TraceNode"] = field(default_factory=list)
    justifications: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)
    context_data: Optional[ContextData] = None
    _sealed: bool = field(default=False, init=False, repr=False, compare=False)

    @classmethod
    def from_syntax(
        cls,
        node,
        prefix: Namespace,
        location: Optional[Location] = None,
    ) -> Optional["TraceNode"]:
        """Construct a trace node from a syntax node.

        Args:
            node: Structural syntax node
            prefix: Namespace enclosing the node
            location: Location of the node, unknown if omitted

        Returns:
            TraceNode, or None if the node is not a traceable construct
        """
        kind = SYNTAX_KINDS.get(node.kind)
        if kind is None:
            return None
        # mod declarations (`mod name;`) are handled by module resolution
        if kind is NodeKind.MODULE and node.child_by_field("body") is None:
            return None

        identifier = declared_identifier(node)
        if identifier is None:
            logger.warning("Malformed %s node at byte %d. Continuing...", node.kind, node.start)
            return None

        namespace = prefix.child(identifier)
        trace_node = cls(
            name=str(namespace),
            kind=kind,
            location=location if location is not None else FileReference.unknown(),
        )
        if kind is NodeKind.IMPL:
            trait = node.child_by_field("trait")
            trace_node.context_data = ContextData(
                namespace,
                " ".join(trait.text.split()) if trait is not None else None,
            )
        elif kind is NodeKind.MODULE:
            trace_node.context_data = ContextData(namespace)
        return trace_node

    @classmethod
    def file_root(cls, namespace: Namespace, filename: str) -> "TraceNode":
        """Construct the root node representing a whole source file."""
        return cls(
            name=str(namespace),
            kind=NodeKind.MODULE,
            location=FileReference(filename, 1, 1),
            context_data=ContextData(namespace),
        )

    @property
    def tag(self) -> str:
        """LOBSTER tag, unique per kind and qualified name."""
        if self.kind.is_container:
            return f"rust {self.kind.value.lower()}:{self.name}"
        return f"rust {self.name}"

    @property
    def namespace(self) -> Namespace:
        return Namespace.from_str(self.name)

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def seal(self):
        """Finalize the node; further mutation raises SealedNodeError."""
        self._sealed = True

    def append_child(self, child: "TraceNode"):
        self._check_open("append_child")
        self.children.append(child)

    def add_reference(self, reference: str):
        self._check_open("add_reference")
        self.references.append(reference)

    def add_justification(self, justification: str):
        self._check_open("add_justification")
        self.justifications.append(justification)

    def walk(self) -> Iterator["TraceNode"]:
        """Iterate over this node and all descendants in pre-order."""
        pending = [self]
        while pending:
            node = pending.pop()
            yield node
            pending.extend(reversed(node.children))

    def find(self, name: str) -> Optional["TraceNode"]:
        """Find the first node in this subtree with the given qualified name."""
        for node in self.walk():
            if node.name == name:
                return node
        return None

    def _check_open(self, operation: str):
        if self._sealed:
            raise SealedNodeError(self.name, operation)

    def __str__(self) -> str:
        return f"Node {self.kind.value} {self.name} at {self.location}"


class ResolutionRule(Enum):
    """How a module file was found."""
    ENTRY = "entry"
    SIBLING_FILE = "sibling_file"            # <dir>/<name>.rs
    SIBLING_DIRECTORY = "sibling_directory"  # <dir>/<name>/mod.rs
    NESTED_FILE = "nested_file"              # <dir>/<stem>/<name>.rs
    NESTED_DIRECTORY = "nested_directory"    # <dir>/<stem>/<name>/mod.rs
    PATH_ATTRIBUTE = "path_attribute"        # #[path = "..."]


@dataclass(frozen=True)
class ModuleDeclaration:
    """A ``mod <name>;`` declaration found in a source file."""
    name: str
    path_override: Optional[str] = None
    offset: int = 0


@dataclass(frozen=True)
class ResolvedModule:
    """A source file that belongs to the project."""
    path: Path
    canonical_path: Path
    namespace: Namespace
    rule: ResolutionRule
    is_root: bool = False
    is_aggregator: bool = False
    parent: Optional[Path] = None
    declared_name: Optional[str] = None

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def can_declare_siblings(self) -> bool:
        """Entry and aggregator files resolve submodules in their own directory."""
        return self.is_root or self.is_aggregator

    @property
    def child_namespace(self) -> Namespace:
        """Namespace under which modules declared in this file are named."""
        if self.rule is ResolutionRule.ENTRY:
            return Namespace()
        return self.namespace


@dataclass(frozen=True)
class UnresolvedDeclaration:
    """A module declaration whose file could not be found."""
    declaring_file: Path
    name: str
    path_override: Optional[str] = None

    def __str__(self) -> str:
        target = f" (path = \"{self.path_override}\")" if self.path_override else ""
        return f"{self.declaring_file}: unresolved module '{self.name}'{target}"


@dataclass(frozen=True)
class FileFailure:
    """A project file that could not be read or parsed."""
    path: Path
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"
