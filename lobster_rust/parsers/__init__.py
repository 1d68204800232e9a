"""lobster-rust parsers - lossless syntax trees for Rust sources.

This package wraps tree-sitter so that every byte of a source file,
whitespace and comments included, is visible to the trace visitor.
"""

from lobster_rust.parsers.base import BaseParser, SyntaxElement, SyntaxNode, SyntaxToken
from lobster_rust.parsers.treesitter_parser import RustParser, create_parser

__all__ = [
    "BaseParser",
    "SyntaxElement",
    "SyntaxNode",
    "SyntaxToken",
    "RustParser",
    "create_parser",
]
