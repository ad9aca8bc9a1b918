"""Tree-sitter front end for JavaScript and TypeScript configuration modules."""

from __future__ import annotations

import functools
import logging
from pathlib import PurePath
from typing import TYPE_CHECKING, cast

import tree_sitter_language_pack as tslp

from testscout.utils.cache import MemoryCache, content_hash

if TYPE_CHECKING:
    import tree_sitter
    from tree_sitter_language_pack import SupportedLanguage

logger = logging.getLogger(__name__)

GRAMMARS: dict[str, tuple[str, ...]] = {
    "javascript": (".js", ".mjs", ".cjs", ".jsx"),
    "typescript": (".ts", ".mts", ".cts"),
    "tsx": (".tsx",),
}
"""Grammar name to the config file suffixes it reads."""

_SUFFIX_GRAMMAR = {suffix: grammar for grammar, suffixes in GRAMMARS.items() for suffix in suffixes}

# Keyed by "<grammar>:<content hash>" so unchanged configs are parsed once.
_trees: MemoryCache[tree_sitter.Tree] = MemoryCache(max_size=128)


def grammar_for(file_name: str | PurePath) -> str | None:
    """Grammar that reads *file_name*, judged by suffix; ``None`` for non-JS files."""
    return _SUFFIX_GRAMMAR.get(PurePath(file_name).suffix.lower())


@functools.lru_cache(maxsize=None)
def _parser(grammar: str) -> tree_sitter.Parser:
    if grammar not in GRAMMARS:
        raise ValueError(f"Unsupported language: {grammar}")
    return tslp.get_parser(cast("SupportedLanguage", grammar))


def parse_tree(source: bytes, grammar: str) -> tree_sitter.Tree:
    """Parse *source* with *grammar*, reusing the tree of identical earlier input.

    Raises:
        ValueError: *grammar* is not one of :data:`GRAMMARS`.
    """
    key = f"{grammar}:{content_hash(source)}"
    tree = _trees.get(key)
    if tree is None:
        tree = _parser(grammar).parse(source)
        _trees.put(key, tree)
    return tree


def error_lines(root: tree_sitter.Node) -> list[int]:
    """1-based line numbers holding ``ERROR`` or missing nodes, in source order."""
    lines: list[int] = []
    pending = [root]
    while pending:
        node = pending.pop()
        if not node.has_error:
            continue
        if node.is_error or node.is_missing:
            lines.append(node.start_point.row + 1)
        pending.extend(reversed(node.children))
    return sorted(set(lines))


def parse_config_source(source: str, file_name: str) -> tree_sitter.Node | None:
    """Root node of a configuration module, or ``None`` when it cannot be read.

    Files with an unknown suffix are read as TypeScript, which also accepts
    plain JavaScript.  A module with syntax errors yields ``None``: a partial
    tree would let half-parsed option values leak into the result.
    """
    grammar = grammar_for(file_name) or "typescript"
    root = parse_tree(source.encode("utf-8"), grammar).root_node
    if root.has_error:
        logger.debug("Syntax errors in %s on lines %s", file_name, error_lines(root))
        return None
    return root


def node_text(node: tree_sitter.Node | None) -> str:
    if node is None or not node.text:
        return ""
    return node.text.decode("utf-8", errors="replace")
