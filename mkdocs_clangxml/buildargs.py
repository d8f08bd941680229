"""
Recover clang arguments from a build tool's dry-run transcript.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess

log = logging.getLogger("mkdocs.plugins.clangxml")

DRY_RUN_FLAGS = {
    "make": ["--dry-run"],
    "gmake": ["--dry-run"],
    "ninja": ["-n", "-v"],
    "xcodebuild": ["-dry-run"],
}

_COMPILER_RE = re.compile(r"(?:[\w.]+-)*(?:cc|c\+\+|gcc|g\+\+|clang|clang\+\+)(?:-[\d.]+)?")

# flags whose value is the next token
_VALUE_FLAGS = frozenset(
    {
        "-I",
        "-D",
        "-U",
        "-F",
        "-x",
        "-include",
        "-imacros",
        "-isystem",
        "-iquote",
        "-idirafter",
        "-iframework",
        "-isysroot",
        "--sysroot",
        "-target",
        "-arch",
        "-Xclang",
    }
)
_DROP_VALUE_FLAGS = frozenset({"-o", "-MF", "-MT", "-MQ", "-serialize-diagnostics"})
_DROP_FLAGS = frozenset({"-c", "-M", "-MM", "-MD", "-MMD", "-MP", "-MG"})
_SHELL_SEPARATORS = frozenset({"&&", "||", ";", "|"})


class ArgumentResolutionError(RuntimeError):
    def __init__(self, transcript):
        super().__init__("could not parse compiler arguments")
        self.transcript = transcript


def dry_run_flags(tool):
    return list(DRY_RUN_FLAGS.get(os.path.basename(tool), ["-n"]))


def run_build_tool(tool, arguments, path=None):
    """Run *tool* with *arguments* in *path* and return its combined output."""
    cmd = [tool] + list(arguments)
    log.debug("clangxml: running %s in %s", " ".join(cmd), path or os.getcwd())
    try:
        proc = subprocess.run(cmd, cwd=path, capture_output=True, text=True)
    except OSError as exc:
        log.warning("clangxml: cannot run %s: %s", tool, exc)
        return ""
    return proc.stdout + proc.stderr


def _logical_lines(transcript):
    pending = ""
    for line in transcript.splitlines():
        if line.rstrip().endswith("\\"):
            pending += line.rstrip()[:-1] + " "
            continue
        yield pending + line
        pending = ""
    if pending:
        yield pending


def _compile_invocation(line):
    try:
        tokens = shlex.split(line)
    except ValueError:
        return None
    for i, tok in enumerate(tokens):
        if _COMPILER_RE.fullmatch(os.path.basename(tok)):
            args = []
            for arg in tokens[i + 1 :]:
                if arg in _SHELL_SEPARATORS:
                    break
                args.append(arg)
            if "-c" in args:
                return args
            return None
    return None


def _filter_arguments(args):
    out = []
    it = iter(args)
    for arg in it:
        if arg in _DROP_VALUE_FLAGS:
            next(it, None)
        elif arg in _DROP_FLAGS:
            continue
        elif arg in _VALUE_FLAGS:
            value = next(it, None)
            out.append(arg)
            if value is not None:
                out.append(value)
        elif arg.startswith("-"):
            out.append(arg)
        # positional inputs are the build's own sources
    return out


def parse_compiler_arguments(transcript):
    """Return the clang flags of the first compile command in *transcript*.

    Returns ``None`` when the transcript holds no compile invocation.
    """
    for line in _logical_lines(transcript or ""):
        args = _compile_invocation(line)
        if args is not None:
            return _filter_arguments(args)
    return None


def resolve_compiler_arguments(build_arguments, path=None, build_tool="make"):
    """Dry-run *build_tool* and parse clang flags out of its transcript.

    Raises ``ArgumentResolutionError`` carrying the transcript on failure.
    """
    transcript = run_build_tool(
        build_tool, list(build_arguments) + dry_run_flags(build_tool), path
    )
    args = parse_compiler_arguments(transcript)
    if args is None:
        log.error("clangxml: could not parse compiler arguments")
        log.error("clangxml: %s", transcript)
        raise ArgumentResolutionError(transcript)
    log.debug("clangxml: resolved compiler arguments %s", args)
    return args
