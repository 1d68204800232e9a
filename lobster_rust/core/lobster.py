"""LOBSTER common interchange format.

Pydantic models of the ``lobster-imp-trace`` document, the encoder that
turns a trace forest into a document and the decoder that rebuilds the
forest from one.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from lobster_rust.core.models import (
    ContextData,
    FileReference,
    GithubReference,
    Location,
    NodeKind,
    TraceNode,
)

logger = logging.getLogger(__name__)

GENERATOR = "lobster-rust"
SCHEMA = "lobster-imp-trace"
VERSION = 3
LANGUAGE = "Rust"
REFERENCE_PREFIX = "req "


class FileLocation(BaseModel):
    """Location in a local file."""
    kind: Literal["file"] = "file"
    file: str
    line: Optional[int] = None
    column: Optional[int] = None


class GithubLocation(BaseModel):
    """Location in a file of a GitHub repository at a given commit."""
    kind: Literal["github"] = "github"
    gh_root: str
    commit: str
    file: str
    line: Optional[int] = None


class LobsterItem(BaseModel):
    """One traced item of an implementation trace document."""
    tag: str
    name: str
    location: Union[FileLocation, GithubLocation] = Field(discriminator="kind")
    messages: List[str] = Field(default_factory=list)
    just_up: List[str] = Field(default_factory=list)
    just_down: List[str] = Field(default_factory=list)
    just_global: List[str] = Field(default_factory=list)
    refs: List[str] = Field(default_factory=list)
    language: str = LANGUAGE
    kind: str


class LobsterDocument(BaseModel):
    """Envelope of a LOBSTER implementation trace document."""
    model_config = ConfigDict(populate_by_name=True)

    data: List[LobsterItem] = Field(default_factory=list)
    generator: str = GENERATOR
    schema_: str = Field(default=SCHEMA, alias="schema")
    version: int = VERSION


@dataclass(frozen=True)
class RemoteSource:
    """GitHub repository that local file locations are mapped into.

    Args:
        gh_root: Repository URL, e.g. https://github.com/org/project
        commit: Commit hash the locations refer to
        repo_root: Local checkout the file paths are made relative to
    """
    gh_root: str
    commit: str
    repo_root: Path = Path(".")

    def relative_path(self, filename: str) -> str:
        path = Path(filename).resolve()
        try:
            return path.relative_to(self.repo_root.resolve()).as_posix()
        except ValueError:
            logger.warning("%s is outside of repository root %s", filename, self.repo_root)
            return Path(filename).as_posix()


class LobsterEncoder:
    """Encodes trace forests as LOBSTER documents.

    By default only functions, structs and enums are exported; modules,
    traits and impl blocks are traversed but not emitted. With
    ``include_containers`` every node is exported, which allows the
    forest to be rebuilt by ``decode_forest``.
    """

    def __init__(self, include_containers: bool = False, remote: Optional[RemoteSource] = None):
        self.include_containers = include_containers
        self.remote = remote

    def encode(self, roots: Iterable[TraceNode]) -> LobsterDocument:
        """Build the document for a forest, items in pre-order."""
        items = [
            self.encode_node(node)
            for root in roots
            for node in root.walk()
            if self.include_containers or not node.kind.is_container
        ]
        return LobsterDocument(data=items)

    def encode_node(self, node: TraceNode) -> LobsterItem:
        return LobsterItem(
            tag=node.tag,
            name=node.name,
            location=self._location(node.location),
            just_up=list(node.justifications),
            refs=[f"{REFERENCE_PREFIX}{reference}" for reference in node.references],
            kind=node.kind.value,
        )

    def dumps(self, roots: Iterable[TraceNode]) -> str:
        """Serialize a forest to a JSON document string."""
        return self.encode(roots).model_dump_json(indent=4, by_alias=True)

    def write(self, roots: Iterable[TraceNode], output: Union[str, Path]) -> int:
        """Write a forest to a file.

        Returns:
            Number of items written
        """
        document = self.encode(roots)
        Path(output).write_text(document.model_dump_json(indent=4, by_alias=True) + "\n", encoding="utf-8")
        return len(document.data)

    def _location(self, location: Location) -> Union[FileLocation, GithubLocation]:
        if isinstance(location, GithubReference):
            return GithubLocation(
                gh_root=location.gh_root,
                commit=location.commit,
                file=location.filename,
                line=location.line,
            )
        if self.remote is not None:
            return GithubLocation(
                gh_root=self.remote.gh_root,
                commit=self.remote.commit,
                file=self.remote.relative_path(location.filename),
                line=location.line,
            )
        return FileLocation(file=location.filename, line=location.line, column=location.column)


def loads(text: str) -> LobsterDocument:
    """Parse and validate a LOBSTER document."""
    return LobsterDocument.model_validate_json(text)


def decode_forest(document: LobsterDocument) -> List[TraceNode]:
    """Rebuild the trace forest from a document.

    Items must be in pre-order. An item becomes a child of the latest
    decoded item in the same file whose name is the longest proper
    ``.``-separated prefix of its own name; items without one are roots.
    Decoded nodes are sealed.

    Args:
        document: A document, typically encoded with containers included

    Returns:
        List of root nodes
    """
    roots: List[TraceNode] = []
    decoded: Dict[Tuple[str, str], TraceNode] = {}

    for item in document.data:
        node = _decode_item(item)
        filename = node.location.filename
        parts = node.name.split(".")
        parent = None
        for length in range(len(parts) - 1, 0, -1):
            parent = decoded.get((filename, ".".join(parts[:length])))
            if parent is not None:
                break
        if parent is not None:
            parent.append_child(node)
        else:
            roots.append(node)
        decoded[(filename, node.name)] = node

    for root in roots:
        for node in root.walk():
            node.seal()
    return roots


def _decode_item(item: LobsterItem) -> TraceNode:
    kind = NodeKind(item.kind)
    location = item.location
    if isinstance(location, GithubLocation):
        decoded_location = GithubReference(location.gh_root, location.commit, location.file, location.line)
    else:
        decoded_location = FileReference(location.file, location.line, location.column)

    node = TraceNode(
        name=item.name,
        kind=kind,
        location=decoded_location,
        justifications=list(item.just_up),
        references=[
            ref[len(REFERENCE_PREFIX):] if ref.startswith(REFERENCE_PREFIX) else ref
            for ref in item.refs
        ],
    )
    if kind in (NodeKind.MODULE, NodeKind.IMPL):
        node.context_data = ContextData(node.namespace)
    return node
