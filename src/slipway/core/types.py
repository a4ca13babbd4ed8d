"""Core type definitions."""

from typing import NewType

# Normalized request path (e.g., "/index", "/docs/guide")
# Distinct from filesystem Path to catch type mismatches
URLPath = NewType("URLPath", str)
