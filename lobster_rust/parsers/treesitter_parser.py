"""Tree-sitter based Rust parser.

Tree-sitter trees only contain the bytes covered by grammar nodes. The
parser converts them into the lossless element tree of
``lobster_rust.parsers.base`` by inserting synthetic tokens for the
uncovered gaps (mostly whitespace) and treating comments as leaves.
"""

import logging
from functools import lru_cache
from typing import Any, Iterator, List, Optional, Tuple

import tree_sitter
import tree_sitter_rust

from lobster_rust.core.errors import ParseError
from lobster_rust.parsers.base import BaseParser, SyntaxNode, SyntaxToken

logger = logging.getLogger(__name__)

# Comments are leaves even where the grammar gives them structure (doc comments)
COMMENT_KINDS = ("line_comment", "block_comment")

# Kinds of the synthetic gap tokens
WHITESPACE = "whitespace"
TEXT = "text"


@lru_cache(maxsize=None)
def _get_tree_sitter_language() -> Any:
    """Get the tree-sitter language object for Rust."""
    return tree_sitter.Language(tree_sitter_rust.language())


def _fields_and_children(node) -> Iterator[Tuple[Optional[str], Any]]:
    """Iterate over the children of a tree-sitter node with their field names."""
    cursor = node.walk()
    if not cursor.goto_first_child():
        return
    while True:
        yield cursor.field_name, cursor.node
        if not cursor.goto_next_sibling():
            break


class RustParser(BaseParser):
    """Rust parser producing lossless syntax trees.

    Tree-sitter recovers from syntax errors. Trees containing errors are
    returned with a warning, or rejected when ``strict`` is set.
    """

    def __init__(self, strict: bool = False):
        """Initialize the parser.

        Args:
            strict: Raise ParseError for sources with syntax errors
        """
        super().__init__()
        self.strict = strict
        self._parser = tree_sitter.Parser(_get_tree_sitter_language())

    @property
    def language(self) -> str:
        """Return the language this parser handles."""
        return "rust"

    def parse(self, source: str, filepath: str = "") -> SyntaxNode:
        """Parse Rust source code.

        Args:
            source: The source code to parse
            filepath: Optional file path for diagnostics

        Returns:
            Root ``source_file`` node covering every byte of the source
        """
        self.reset()
        self._source = source
        self._filepath = filepath

        try:
            data = source.encode("utf-8")
            tree = self._parser.parse(data)
        except ValueError as exc:
            raise ParseError(filepath, str(exc)) from exc
        if tree is None:
            raise ParseError(filepath, "tree-sitter produced no syntax tree")

        root = tree.root_node
        if root.has_error:
            if self.strict:
                raise ParseError(filepath, "source contains syntax errors")
            logger.warning("%s: source contains syntax errors, tracing what could be parsed",
                           filepath or "<source>")

        syntax_tree = self._convert(root, data)
        self._parsed = True
        return syntax_tree

    def _convert(self, ts_root, data: bytes) -> SyntaxNode:
        """Convert a tree-sitter tree into a lossless element tree.

        Iterative so that deeply nested expressions cannot exhaust the
        interpreter stack.
        """
        root = SyntaxNode(kind=ts_root.type, start=0, end=len(data), has_error=ts_root.has_error)
        # Frame: [tree-sitter node, element, child iterator, next uncovered byte]
        frames: List[list] = [[ts_root, root, _fields_and_children(ts_root), 0]]

        while frames:
            frame = frames[-1]
            _, element, children, position = frame
            next_child = next(children, None)

            if next_child is None:
                self._append_gap(element, data, position, element.end)
                frames.pop()
                continue

            field_name, child = next_child
            self._append_gap(element, data, position, child.start_byte)
            frame[3] = max(position, child.end_byte)

            if child.child_count == 0 or child.type in COMMENT_KINDS:
                element.children.append(SyntaxToken(
                    kind=child.type,
                    text=data[child.start_byte:child.end_byte].decode("utf-8"),
                    start=child.start_byte,
                    field_name=field_name,
                ))
            else:
                node = SyntaxNode(
                    kind=child.type,
                    start=child.start_byte,
                    end=child.end_byte,
                    field_name=field_name,
                    has_error=child.has_error,
                )
                element.children.append(node)
                frames.append([child, node, _fields_and_children(child), child.start_byte])

        return root

    @staticmethod
    def _append_gap(element: SyntaxNode, data: bytes, start: int, end: int):
        if end <= start:
            return
        text = data[start:end].decode("utf-8")
        element.children.append(SyntaxToken(
            kind=WHITESPACE if text.isspace() else TEXT,
            text=text,
            start=start,
        ))


def create_parser(strict: bool = False) -> RustParser:
    """Factory function to create a Rust parser.

    Parsers are not thread safe; create one per concurrent task.
    """
    return RustParser(strict=strict)
