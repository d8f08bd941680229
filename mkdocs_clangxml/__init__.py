"""
mkdocs-clangxml: C-family doc comment extraction for MkDocs.

Parses headers with libclang, collects every declaration that carries a
documentation comment, and publishes them as a JSON document grouped by
source file.
"""

__version__ = "0.1.0"
