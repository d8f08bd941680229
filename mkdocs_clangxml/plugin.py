"""
MkDocs plugin that publishes C/C++/Objective-C doc comments as JSON.

Discovers headers under the configured source roots, parses them with
libclang, and writes the deduplicated, per-file declaration document
into the built site.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from mkdocs.config import config_options
from mkdocs.config.base import Config as MkDocsConfig
from mkdocs.exceptions import PluginError
from mkdocs.plugins import BasePlugin

from .buildargs import ArgumentResolutionError, resolve_compiler_arguments
from .renderer import canonicalize, group_by_file, render_json
from .session import ClangSession

log = logging.getLogger("mkdocs.plugins.clangxml")


@dataclass
class SourceGroup:
    root: str
    extensions: list[str] = field(default_factory=lambda: [".h"])
    exclude: list[str] = field(default_factory=list)
    clang_args: list[str] = field(default_factory=list)
    # Runtime state
    discovered: list[str] = field(default_factory=list)

    def paths(self):
        return [os.path.normpath(os.path.join(self.root, rel)) for rel in self.discovered]


class ClangXmlConfig(MkDocsConfig):
    source_root = config_options.Type(str, default="")
    sources = config_options.Type(list, default=[])
    extensions = config_options.Type(list, default=[".h"])
    exclude = config_options.Type(list, default=[])
    clang_args = config_options.Type(list, default=[])
    build_tool = config_options.Type(str, default="")
    build_args = config_options.Type(list, default=[])
    build_dir = config_options.Type(str, default="")
    output = config_options.Type(str, default="api/declarations.json")


def _discover_sources(root, extensions, exclude):
    out = []
    exts = [e if e.startswith(".") else f".{e}" for e in extensions]
    for dirpath, dirnames, fnames in os.walk(root):
        dirnames.sort()
        for fn in sorted(fnames):
            _, ext = os.path.splitext(fn)
            if ext.lower() not in exts:
                continue
            rel = os.path.relpath(os.path.join(dirpath, fn), root)
            if any(fnmatch.fnmatch(fn, p) or fnmatch.fnmatch(rel, p) for p in exclude):
                continue
            out.append(rel)
    return out


def _abs(path, config_dir):
    if not os.path.isabs(path):
        path = os.path.normpath(os.path.join(config_dir, path))
    return path


class ClangXmlPlugin(BasePlugin[ClangXmlConfig]):

    def __init__(self):
        super().__init__()
        self._groups = []
        self._build_args = []

    # ── Source group configuration ──

    def _build_groups(self, config_dir):
        raw = self.config.get("sources", [])
        global_clang = list(self.config.get("clang_args", []))
        if not raw:
            root = self.config.get("source_root", "") or "."
            return [
                SourceGroup(
                    root=_abs(root, config_dir),
                    extensions=self.config["extensions"],
                    exclude=self.config["exclude"],
                    clang_args=global_clang,
                )
            ]

        groups = []
        for i, entry in enumerate(raw):
            if isinstance(entry, str):
                entry = {"root": entry}
            if not isinstance(entry, dict) or "root" not in entry:
                log.error("clangxml: bad sources[%d], skipping", i)
                continue
            extra = entry.get("clang_args")
            groups.append(
                SourceGroup(
                    root=_abs(entry["root"], config_dir),
                    extensions=entry.get("extensions", self.config["extensions"]),
                    exclude=entry.get("exclude", self.config["exclude"]),
                    clang_args=global_clang + (list(extra) if extra else []),
                )
            )
        return groups

    def _discover(self, group):
        group.discovered = []
        if not os.path.isdir(group.root):
            log.error("clangxml: source root missing: %s", group.root)
            return
        group.discovered = _discover_sources(group.root, group.extensions, group.exclude)
        log.info("clangxml: %d headers in %s", len(group.discovered), group.root)

    def _resolve_build_args(self, config_dir):
        tool = self.config.get("build_tool", "")
        if not tool:
            return []
        build_dir = self.config.get("build_dir", "")
        path = _abs(build_dir, config_dir) if build_dir else config_dir
        try:
            return resolve_compiler_arguments(
                self.config.get("build_args", []), path=path, build_tool=tool
            )
        except ArgumentResolutionError as exc:
            raise PluginError(f"clangxml: {exc} from `{tool}` in {path}") from exc

    def _declarations(self):
        found = []
        for group in self._groups:
            with ClangSession(group.paths(), self._build_args + group.clang_args) as session:
                found.extend(session.raw_declarations())
        return canonicalize(found)

    # ── MkDocs lifecycle hooks ──

    def on_config(self, config, **kwargs):
        config_dir = os.path.dirname(config.get("config_file_path", "") or "") or os.getcwd()
        self._build_args = self._resolve_build_args(config_dir)
        self._groups = self._build_groups(config_dir)
        for g in self._groups:
            self._discover(g)
        return config

    def on_post_build(self, *, config, **kwargs):
        grouped = group_by_file(self._declarations())
        dest = os.path.join(config["site_dir"], self.config["output"])
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        with open(dest, "w", encoding="utf-8") as f:
            f.write(render_json(grouped))
        log.info("clangxml: %d files documented, written to %s", len(grouped), dest)
