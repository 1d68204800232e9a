"""Trace visitor - builds the trace tree of one source file.

The visitor walks a lossless syntax tree depth-first. Entering a
traceable construct (function, struct, enum, trait, impl, inline module)
pushes a new trace node on the context stack; leaving it pops the node
and appends it to the enclosing one. Every token is fed to the position
tracker, and tag comments are attached to the innermost open node.

Comments directly above an item, ``///`` doc comments included, are
siblings of the item in the syntax tree and not part of it. A tag
written there belongs to the enclosing scope, so tags for a function
go inside its body.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from lobster_rust.core.models import (
    DEFINING_KEYWORDS,
    FileReference,
    Namespace,
    TraceNode,
)
from lobster_rust.parsers.base import SyntaxElement, SyntaxNode, SyntaxToken
from lobster_rust.tracing.position import PositionTracker
from lobster_rust.tracing.tags import TagKind, TagParser

logger = logging.getLogger(__name__)

LINE_COMMENT = "line_comment"


@dataclass
class Frame:
    """An open trace node and the syntax node that opened it."""
    node: TraceNode
    syntax: SyntaxNode
    keyword: Optional[str] = None
    keyword_seen: bool = False


@dataclass
class VisitorContext:
    """Working state of one file's traversal.

    The file root frame stays at the bottom of the stack for the whole
    traversal.
    """
    file_path: str
    namespace: Namespace
    tracker: PositionTracker = field(default_factory=PositionTracker)
    stack: List[Frame] = field(default_factory=list)

    @property
    def top(self) -> Frame:
        return self.stack[-1]

    @property
    def current_namespace(self) -> Namespace:
        return self.top.node.namespace if self.stack else self.namespace


class TraceVisitor:
    """Visits the syntax tree of one file and collects trace nodes.

    Args:
        file_path: Path reported in node locations
        namespace: Qualified name prefix of the file (its module path)
        tag_parser: Parser for tag comments, default markers if omitted
    """

    def __init__(
        self,
        file_path: str,
        namespace: Namespace,
        tag_parser: Optional[TagParser] = None,
    ):
        self.file_path = file_path
        self.namespace = namespace
        self.tag_parser = tag_parser or TagParser()
        self._ctx: Optional[VisitorContext] = None

    def visit(self, tree: SyntaxNode) -> TraceNode:
        """Traverse a file's tree and return its root trace node."""
        self._ctx = VisitorContext(self.file_path, self.namespace)
        try:
            self.travel(tree)
            root = self._ctx.stack.pop().node
        finally:
            self._ctx = None
        root.seal()
        logger.debug("%s: collected %d trace nodes", self.file_path, sum(1 for _ in root.walk()))
        return root

    def travel(self, root: SyntaxNode):
        """Depth-first traversal calling the enter, token and exit callbacks."""
        self.node_enter(root)
        pending: List[Tuple[SyntaxNode, Iterator[SyntaxElement]]] = [(root, iter(root.children))]

        while pending:
            parent, children = pending[-1]
            child = next(children, None)
            if child is None:
                pending.pop()
                if pending:
                    self.node_exit(parent)
            elif isinstance(child, SyntaxToken):
                self.token_visit(child, parent)
            else:
                self.node_enter(child)
                pending.append((child, iter(child.children)))

    # ---------------------------------------------------------------- nodes

    def node_enter(self, node: SyntaxNode):
        ctx = self._ctx
        if not ctx.stack:
            root = TraceNode.file_root(self.namespace, self.file_path)
            ctx.stack.append(Frame(root, node))
            return

        # Approximate location, refined when the defining keyword is visited
        position = ctx.tracker.position_at(node.start)
        location = FileReference(self.file_path, position.line, position.column)
        trace_node = TraceNode.from_syntax(node, ctx.current_namespace, location)
        if trace_node is not None:
            ctx.stack.append(Frame(trace_node, node, DEFINING_KEYWORDS.get(trace_node.kind)))

    def node_exit(self, node: SyntaxNode):
        ctx = self._ctx
        if len(ctx.stack) > 1 and ctx.top.syntax is node:
            closed = ctx.stack.pop().node
            closed.seal()
            ctx.top.node.append_child(closed)

    # --------------------------------------------------------------- tokens

    def token_visit(self, token: SyntaxToken, parent: SyntaxNode):
        ctx = self._ctx
        frame = ctx.top

        if frame.syntax is parent and token.kind == frame.keyword and not frame.keyword_seen:
            frame.keyword_seen = True
            frame.node.location.set_position(ctx.tracker.position_at(token.start))
        elif token.kind == LINE_COMMENT:
            self._visit_comment(token, frame.node)

        ctx.tracker.advance(token.text)

    def _visit_comment(self, token: SyntaxToken, node: TraceNode):
        tag = self.tag_parser.parse(token.text)
        if tag is None:
            return
        if tag.kind is TagKind.REFERENCE:
            node.add_reference(tag.value)
        else:
            node.add_justification(tag.value)


def visit_file(
    file_path: str,
    tree: SyntaxNode,
    namespace: Optional[Namespace] = None,
    tag_parser: Optional[TagParser] = None,
) -> TraceNode:
    """Convenience function to trace a single parsed file.

    Args:
        file_path: Path reported in node locations
        tree: Root of the file's syntax tree
        namespace: Module path of the file, the file stem if omitted
        tag_parser: Optional tag parser with custom markers

    Returns:
        Root trace node of the file
    """
    if namespace is None:
        stem = file_path.replace("\\", "/").rsplit("/", 1)[-1].rsplit(".", 1)[0]
        namespace = Namespace.from_str(stem)
    return TraceVisitor(file_path, namespace, tag_parser).visit(tree)
