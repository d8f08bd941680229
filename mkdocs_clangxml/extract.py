#!/usr/bin/env python3
"""
Extract doc comments from C-family headers as per-file JSON.

Usage:
    python -m mkdocs_clangxml.extract include/engine.h include/uart.h
    python -m mkdocs_clangxml.extract include/*.h --clang-args "-Iinclude -DFOO=1"
    python -m mkdocs_clangxml.extract include/*.h --build-tool make --build-args "-C src all"
"""

import argparse
import logging
import shlex
import sys

from .buildargs import ArgumentResolutionError
from .renderer import render_tree
from .session import create_session, session_from_build


def main(argv=None):
    p = argparse.ArgumentParser(description="Extract doc comments from C-family headers as JSON")
    p.add_argument("headers", nargs="*", help="Header files to document")
    p.add_argument("--clang-args", default="", help="Compiler arguments, shell-quoted")
    p.add_argument("--build-tool", help="Recover compiler arguments from this tool's dry run")
    p.add_argument("--build-args", default="", help="Arguments for --build-tool, shell-quoted")
    p.add_argument("--build-dir", help="Directory to run --build-tool in (default: cwd)")
    p.add_argument("-o", "--output", help="Write JSON here instead of stdout")
    p.add_argument("--tree", action="store_true", help="Dump comment trees instead of declarations")
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    if args.build_tool:
        try:
            session = session_from_build(
                args.headers,
                shlex.split(args.build_args),
                path=args.build_dir,
                build_tool=args.build_tool,
            )
        except ArgumentResolutionError as exc:
            print("could not parse compiler arguments", file=sys.stderr)
            print(exc.transcript, file=sys.stderr)
            return 1
    else:
        session = create_session(args.headers, shlex.split(args.clang_args))

    with session:
        text = render_tree(session.forests()) if args.tree else session.to_json()

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
