"""Core data models, errors and the LOBSTER interchange format."""
