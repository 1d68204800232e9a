"""Exceptions raised by lobster-rust.

Per-declaration and per-file problems are not exceptions; they are
collected as warning records on the resolution and trace results.
"""

from typing import Optional


class LobsterRustError(Exception):
    """Base class for all lobster-rust errors."""


class ResolutionError(LobsterRustError):
    """The entry file of a project could not be resolved.

    Raised for an unconventional entry name, a missing root directory
    or an entry file that cannot be read or parsed.
    """


class ParseError(LobsterRustError):
    """A source file could not be turned into a syntax tree."""

    def __init__(self, filepath: str, reason: str):
        self.filepath = filepath
        self.reason = reason
        super().__init__(f"{filepath or '<source>'}: {reason}")


class SealedNodeError(LobsterRustError):
    """A finalized trace node was modified."""

    def __init__(self, name: str, operation: Optional[str] = None):
        self.name = name
        detail = f" ({operation})" if operation else ""
        super().__init__(f"Trace node '{name}' is sealed{detail}")
