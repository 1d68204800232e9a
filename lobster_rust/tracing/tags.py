"""Parsing of LOBSTER tag comments.

Two annotations are recognized in line comments::

    // lobster-trace: Requirements.some_requirement
    // lobster-exclude: Generated code, not traced

The trace marker must be followed by a dotted identifier; anything else
is treated as prose. The exclude marker takes the rest of the comment
as justification.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lobster_rust.config import DEFAULT_EXCLUDE_MARKER, DEFAULT_TRACE_MARKER

logger = logging.getLogger(__name__)

DOTTED_IDENTIFIER = re.compile(r"[\w\-]+(?:\.[\w\-]+)*")


class TagKind(Enum):
    REFERENCE = "reference"
    JUSTIFICATION = "justification"


@dataclass(frozen=True)
class Tag:
    kind: TagKind
    value: str


class TagParser:
    """Extracts references and justifications from comment text."""

    def __init__(
        self,
        trace_marker: str = DEFAULT_TRACE_MARKER,
        exclude_marker: str = DEFAULT_EXCLUDE_MARKER,
    ):
        self.trace_marker = trace_marker
        self.exclude_marker = exclude_marker
        self._trace_re = re.compile(rf"^{re.escape(trace_marker)}:(?P<payload>.*)$", re.DOTALL)
        self._exclude_re = re.compile(rf"^{re.escape(exclude_marker)}:(?P<payload>.*)$", re.DOTALL)

    def parse(self, comment: str) -> Optional[Tag]:
        """Parse a comment token.

        Args:
            comment: Raw comment text including the ``//`` introducer

        Returns:
            The tag, or None for ordinary or malformed comments
        """
        if not comment.startswith("//"):
            return None
        # Strip the introducer of plain, doc (///) and inner doc (//!) comments
        body = comment[2:].lstrip("/!").strip()

        match = self._trace_re.match(body)
        if match:
            payload = match.group("payload").strip()
            if DOTTED_IDENTIFIER.fullmatch(payload):
                return Tag(TagKind.REFERENCE, payload)
            logger.debug("Ignoring malformed trace tag: %r", comment.strip())
            return None

        match = self._exclude_re.match(body)
        if match:
            payload = match.group("payload").strip()
            if payload:
                return Tag(TagKind.JUSTIFICATION, payload)
            logger.debug("Ignoring exclude tag without justification: %r", comment.strip())
        return None
