"""
Turns declaration records into the per-file JSON document.

Declarations from every translation unit are deduplicated, sorted into
one canonical order and then grouped by the file they were declared in::

    {"/path/a.h": {"substructure": [{...}, ...]}, ...}
"""

from __future__ import annotations

import json

from .parser import comment_xml

SUBSTRUCTURE_KEY = "substructure"


def canonicalize(declarations):
    """Deduplicate *declarations* and return them in canonical order."""
    # set iteration order is arbitrary
    return sorted(set(declarations))


def group_by_file(declarations):
    files = dict.fromkeys(d.file for d in declarations)
    return {
        f: {SUBSTRUCTURE_KEY: [d.to_dict() for d in declarations if d.file == f]}
        for f in files
    }


def render_json(grouped):
    return json.dumps(grouped, indent=2)


def render_tree(forests, comment=comment_xml):
    """Serialize ``(path, forest)`` pairs for inspection."""
    return json.dumps(
        {path: [node.to_dict(comment) for node in forest] for path, forest in forests},
        indent=2,
    )
