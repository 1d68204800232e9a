"""Lossless syntax element model and the abstract parser interface.

A parsed file is a tree of two element kinds:

- ``SyntaxNode``: a structural node with a kind, a byte span and an
  ordered list of child elements
- ``SyntaxToken``: a leaf with a kind and its raw text

Tokens cover every byte of the file, whitespace and comments included,
so that concatenating all token texts in order reproduces the source.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Union

from lobster_rust.core.errors import ParseError


@dataclass
class SyntaxToken:
    """A leaf element holding raw source text."""
    kind: str
    text: str
    start: int
    field_name: Optional[str] = None

    @property
    def end(self) -> int:
        return self.start + len(self.text.encode("utf-8"))


@dataclass
class SyntaxNode:
    """A structural element spanning the bytes ``start`` to ``end``."""
    kind: str
    start: int
    end: int
    children: List["SyntaxElement"] = field(default_factory=list)
    field_name: Optional[str] = None
    has_error: bool = False

    @property
    def text(self) -> str:
        """Source text covered by this node."""
        return "".join(token.text for token in self.tokens())

    def tokens(self) -> Iterator[SyntaxToken]:
        """Iterate over all tokens below this node in document order."""
        pending: List[SyntaxElement] = [self]
        while pending:
            element = pending.pop()
            if isinstance(element, SyntaxToken):
                yield element
            else:
                pending.extend(reversed(element.children))

    def walk(self) -> Iterator["SyntaxNode"]:
        """Iterate over this node and all structural descendants in pre-order."""
        pending: List[SyntaxNode] = [self]
        while pending:
            node = pending.pop()
            yield node
            pending.extend(reversed(node.child_nodes()))

    def child_by_field(self, name: str) -> Optional["SyntaxElement"]:
        """Return the first child stored under the given field name."""
        for child in self.children:
            if child.field_name == name:
                return child
        return None

    def child_nodes(self, kind: Optional[str] = None) -> List["SyntaxNode"]:
        return [
            child for child in self.children
            if isinstance(child, SyntaxNode) and (kind is None or child.kind == kind)
        ]


SyntaxElement = Union[SyntaxNode, SyntaxToken]


class BaseParser(ABC):
    """Abstract base class for parsers producing lossless syntax trees."""

    def __init__(self):
        """Initialize the parser."""
        self._source: Optional[str] = None
        self._filepath: Optional[str] = None
        self._parsed: bool = False

    @property
    @abstractmethod
    def language(self) -> str:
        """Return the name of the language this parser handles."""
        ...

    @property
    def source(self) -> Optional[str]:
        """Return the parsed source code."""
        return self._source

    @property
    def filepath(self) -> Optional[str]:
        """Return the file path being parsed."""
        return self._filepath

    @property
    def is_parsed(self) -> bool:
        """Check if a file has been successfully parsed."""
        return self._parsed

    @abstractmethod
    def parse(self, source: str, filepath: str = "") -> SyntaxNode:
        """Parse source code into a syntax tree.

        Args:
            source: The source code to parse
            filepath: Optional file path for diagnostics

        Returns:
            Root node of the tree

        Raises:
            ParseError: If no tree can be produced
        """
        ...

    def parse_file(self, path: Union[str, Path]) -> SyntaxNode:
        """Read and parse a UTF-8 source file.

        Raises:
            OSError: If the file cannot be read
            ParseError: If the file is not valid UTF-8 or cannot be parsed
        """
        path = Path(path)
        data = path.read_bytes()
        try:
            source = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(str(path), f"not valid UTF-8 ({exc.reason})") from exc
        return self.parse(source, str(path))

    def reset(self):
        """Reset parser state."""
        self._source = None
        self._filepath = None
        self._parsed = False
