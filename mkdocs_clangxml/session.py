"""
A group of translation units parsed through one shared libclang index.
"""

from __future__ import annotations

import logging

from clang.cindex import Diagnostic, Index, TranslationUnit, TranslationUnitLoadError

from .buildargs import resolve_compiler_arguments
from .parser import build_forest, declarations_from_cursor, iter_nodes
from .renderer import canonicalize, group_by_file, render_json

log = logging.getLogger("mkdocs.plugins.clangxml")


class ClangSession:
    """Parses *header_files* with *compiler_arguments* and extracts their docs.

    A file libclang cannot load is logged and left out; the session never
    aborts because of one bad file.
    """

    def __init__(self, header_files, compiler_arguments, index=None):
        self.compiler_arguments = list(compiler_arguments)
        self.index = index or Index.create()
        self.units = []
        for path in header_files:
            unit = self._parse(path)
            if unit is not None:
                self.units.append(unit)

    def _parse(self, path):
        try:
            unit = self.index.parse(
                path,
                args=self.compiler_arguments,
                options=TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD,
            )
        except TranslationUnitLoadError as exc:
            log.warning("clangxml: cannot parse %s: %s", path, exc)
            return None
        for diag in unit.diagnostics:
            if diag.severity >= Diagnostic.Error:
                log.debug("clangxml: %s:%d: %s", path, diag.location.line, diag.spelling)
        return unit

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.units = []
        self.index = None

    def forests(self):
        return [(unit.spelling, build_forest(unit)) for unit in self.units]

    def raw_declarations(self):
        """Yield declarations of every unit before deduplication."""
        for unit in self.units:
            for node in iter_nodes(build_forest(unit)):
                yield from declarations_from_cursor(node.cursor)

    def declarations(self):
        return canonicalize(self.raw_declarations())

    def grouped(self):
        return group_by_file(self.declarations())

    def to_json(self):
        return render_json(self.grouped())

    def __str__(self):
        return self.to_json()


def create_session(header_files, compiler_arguments):
    return ClangSession(header_files, compiler_arguments)


def session_from_build(header_files, build_arguments, path=None, build_tool="make"):
    """Create a session with clang flags recovered from a build dry run.

    Raises ``ArgumentResolutionError`` before anything is parsed when the
    build transcript holds no usable compile command.
    """
    args = resolve_compiler_arguments(build_arguments, path=path, build_tool=build_tool)
    return ClangSession(header_files, args)
