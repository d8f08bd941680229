"""
libclang traversal for documented declarations.

Walks a translation unit through libclang's flat ``(cursor, parent)``
visitor, keeps every cursor that carries a parsed doc comment, rebuilds
the nesting of those cursors as a forest of ``CursorNode`` and maps each
cursor to zero or more ``SourceDeclaration`` records.
"""

from __future__ import annotations

import os
from ctypes import CFUNCTYPE, Structure, c_char_p, c_void_p
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from clang.cindex import Cursor, CursorKind, _CXString, callbacks, conf


class ChildVisit(IntEnum):
    """Directive returned to libclang for each visited cursor."""

    BREAK = 0
    CONTINUE = 1
    RECURSE = 2


class DeclKind(Enum):
    FUNCTION = "c.decl.function"
    VARIABLE = "c.decl.var"
    TYPEDEF = "c.decl.typedef"
    STRUCT = "c.decl.struct"
    UNION = "c.decl.union"
    ENUM = "c.decl.enum"
    ENUM_CONSTANT = "c.decl.enumelement"
    FIELD = "c.decl.field"
    CLASS = "cpp.decl.class"
    METHOD = "cpp.decl.method"
    OBJC_CLASS = "objc.decl.class"
    OBJC_CATEGORY = "objc.decl.category"
    OBJC_PROTOCOL = "objc.decl.protocol"
    OBJC_PROPERTY = "objc.decl.property"
    OBJC_IVAR = "objc.decl.ivar"
    OBJC_INSTANCE_METHOD = "objc.decl.method.instance"
    OBJC_CLASS_METHOD = "objc.decl.method.class"


_KIND_MAP = {
    CursorKind.FUNCTION_DECL: DeclKind.FUNCTION,
    CursorKind.VAR_DECL: DeclKind.VARIABLE,
    CursorKind.TYPEDEF_DECL: DeclKind.TYPEDEF,
    CursorKind.STRUCT_DECL: DeclKind.STRUCT,
    CursorKind.UNION_DECL: DeclKind.UNION,
    CursorKind.ENUM_DECL: DeclKind.ENUM,
    CursorKind.ENUM_CONSTANT_DECL: DeclKind.ENUM_CONSTANT,
    CursorKind.FIELD_DECL: DeclKind.FIELD,
    CursorKind.CLASS_DECL: DeclKind.CLASS,
    CursorKind.CXX_METHOD: DeclKind.METHOD,
    CursorKind.OBJC_INTERFACE_DECL: DeclKind.OBJC_CLASS,
    CursorKind.OBJC_CATEGORY_DECL: DeclKind.OBJC_CATEGORY,
    CursorKind.OBJC_PROTOCOL_DECL: DeclKind.OBJC_PROTOCOL,
    CursorKind.OBJC_PROPERTY_DECL: DeclKind.OBJC_PROPERTY,
    CursorKind.OBJC_IVAR_DECL: DeclKind.OBJC_IVAR,
    CursorKind.OBJC_INSTANCE_METHOD_DECL: DeclKind.OBJC_INSTANCE_METHOD,
    CursorKind.OBJC_CLASS_METHOD_DECL: DeclKind.OBJC_CLASS_METHOD,
}


# -- libclang comment API --
#
# clang.cindex does not register the parsed-comment entry points, so they
# are declared here against the already-loaded library.


class _CXComment(Structure):
    _fields_ = [("ast_node", c_void_p), ("translation_unit", c_void_p)]


_comment_api = {}


def _comment_lib():
    lib = conf.lib
    if not _comment_api:
        get_parsed = lib.clang_Cursor_getParsedComment
        get_parsed.argtypes = [Cursor]
        get_parsed.restype = _CXComment
        as_xml = lib.clang_FullComment_getAsXML
        as_xml.argtypes = [_CXComment]
        as_xml.restype = _CXString
        _comment_api["get_parsed"] = get_parsed
        _comment_api["as_xml"] = as_xml
        # own binding returning raw bytes; cindex's clang_getCString decodes strictly
        _comment_api["cstring"] = CFUNCTYPE(c_char_p, _CXString)(("clang_getCString", lib))
    return _comment_api


def comment_xml(cursor):
    """Return the parsed doc comment of *cursor* as XML, or ``""``.

    Comment text that is not valid UTF-8 is decoded with replacement
    characters.
    """
    api = _comment_lib()
    res = api["as_xml"](api["get_parsed"](cursor))
    try:
        raw = api["cstring"](res)
    finally:
        conf.lib.clang_disposeString(res)
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def null_cursor():
    return conf.lib.clang_getNullCursor()


def visit_children(root, on_node):
    """Drive libclang's pre-order visitor over everything below *root*.

    ``on_node(node, parent)`` is called once per cursor and must return a
    ``ChildVisit``. The visitor is not reentrant: do not start another
    traversal of the same translation unit from inside ``on_node``.

    An exception raised by ``on_node`` stops the traversal and is re-raised
    once libclang returns.
    """
    tu = getattr(root, "_tu", None)
    failure = []

    def visitor(node, parent, _data):
        # cursors built by ctypes do not know their translation unit
        node._tu = tu
        parent._tu = tu
        try:
            return int(on_node(node, parent))
        except BaseException as exc:
            # re-raised once clang_visitChildren returns
            failure.append(exc)
            return int(ChildVisit.BREAK)

    conf.lib.clang_visitChildren(root, callbacks["cursor_visit"](visitor), [])
    if failure:
        raise failure[0]


# -- comment tree --


@dataclass(eq=False)
class CursorNode:
    cursor: object
    children: list[CursorNode] = field(default_factory=list)

    def __eq__(self, other):
        if not isinstance(other, CursorNode):
            return NotImplemented
        return (
            self.cursor == other.cursor
            and len(self.children) == len(other.children)
            and all(a == b for a, b in zip(self.children, other.children))
        )

    def __hash__(self):
        return hash((self.cursor, len(self.children)))

    def to_dict(self, comment=comment_xml):
        return {
            "root": comment(self.cursor),
            "children": [child.to_dict(comment) for child in self.children],
        }


def collect_documented(unit, visit=visit_children, comment=comment_xml, null=None):
    """Return ``(cursor, parent)`` pairs for every documented cursor in *unit*.

    Pairs come back in visitation order. ``parent`` is the nearest documented
    ancestor, or the *null* sentinel when no ancestor carries a comment.
    """
    if null is None:
        null = null_cursor()
    pairs = []
    anchors = {}

    def on_node(node, parent):
        anchor = anchors.get(parent, null)
        if comment(node):
            pairs.append((node, anchor))
            anchor = node
        anchors[node] = anchor
        # never prune: undocumented scopes may hold documented members
        return ChildVisit.RECURSE

    visit(unit.cursor, on_node)
    return pairs


def build_forest(unit, visit=visit_children, comment=comment_xml, null=None):
    """Rebuild the nesting of documented cursors in *unit* as a forest."""
    if null is None:
        null = null_cursor()
    by_parent = {}
    for node, parent in collect_documented(unit, visit=visit, comment=comment, null=null):
        by_parent.setdefault(parent, []).append(node)

    def attach(cursor):
        return CursorNode(cursor, [attach(ch) for ch in by_parent.get(cursor, [])])

    return [attach(root) for root in by_parent.get(null, [])]


def iter_nodes(forest):
    """Yield every node of *forest* in pre-order."""
    for node in forest:
        yield node
        yield from iter_nodes(node.children)


# -- declarations --


@dataclass(frozen=True, order=True)
class SourceDeclaration:
    file: str
    line: int
    column: int
    name: str
    kind: str
    documentation_xml: str
    usr: str = field(default="", compare=False)
    declaration: str = field(default="", compare=False)

    def to_dict(self):
        return {
            "kind": self.kind,
            "name": self.name,
            "usr": self.usr,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "declaration": self.declaration,
            "documentation_xml": self.documentation_xml,
        }


def _get_signature(cursor, kind):
    name = cursor.spelling or cursor.displayname
    if kind in (DeclKind.FUNCTION, DeclKind.METHOD):
        rtype = cursor.result_type.spelling if cursor.result_type else "void"
        params = []
        for ch in cursor.get_children():
            if ch.kind == CursorKind.PARM_DECL:
                params.append(f"{ch.type.spelling} {ch.spelling}".strip())
        return f"{rtype} {name}({', '.join(params)})"
    elif kind in (DeclKind.VARIABLE, DeclKind.FIELD, DeclKind.OBJC_IVAR, DeclKind.OBJC_PROPERTY):
        return f"{cursor.type.spelling} {name}"
    elif kind == DeclKind.TYPEDEF:
        return f"typedef {cursor.underlying_typedef_type.spelling} {name}"
    elif kind in (DeclKind.STRUCT, DeclKind.UNION, DeclKind.CLASS, DeclKind.ENUM):
        kw = {
            DeclKind.STRUCT: "struct",
            DeclKind.UNION: "union",
            DeclKind.CLASS: "class",
            DeclKind.ENUM: "enum",
        }[kind]
        return f"{kw} {name}"
    elif kind == DeclKind.OBJC_INSTANCE_METHOD:
        return f"- {cursor.displayname}"
    elif kind == DeclKind.OBJC_CLASS_METHOD:
        return f"+ {cursor.displayname}"
    elif kind in (DeclKind.OBJC_CLASS, DeclKind.OBJC_CATEGORY, DeclKind.OBJC_PROTOCOL):
        kw = {
            DeclKind.OBJC_CLASS: "@interface",
            DeclKind.OBJC_CATEGORY: "@interface",
            DeclKind.OBJC_PROTOCOL: "@protocol",
        }[kind]
        return f"{kw} {cursor.displayname}"
    return name


def declarations_from_cursor(cursor, comment=comment_xml):
    """Map one documented cursor to its declaration records.

    Cursors of unknown kind, without a file location or without a parsed
    comment produce no records.
    """
    try:
        kind = _KIND_MAP.get(cursor.kind)
    except ValueError:
        # cursor kind newer than the bindings
        return []
    if kind is None:
        return []
    loc = cursor.location
    if not loc or not loc.file:
        return []
    xml = comment(cursor)
    if not xml:
        return []
    return [
        SourceDeclaration(
            file=os.path.normpath(loc.file.name),
            line=loc.line,
            column=loc.column,
            name=cursor.spelling or cursor.displayname or "",
            kind=kind.value,
            documentation_xml=xml,
            usr=cursor.get_usr() or "",
            declaration=_get_signature(cursor, kind),
        )
    ]
