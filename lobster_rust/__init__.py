"""lobster-rust - LOBSTER implementation traces for Rust projects.

Resolves the module tree of a Rust crate, walks every source file and
collects ``lobster-trace`` / ``lobster-exclude`` annotations into the
LOBSTER common interchange format.
"""

__version__ = "0.1.0"
