"""Parsing of JavaScript/TypeScript configuration sources."""

from testscout.parsing.config_object import (
    DIRNAME,
    UNRESOLVED,
    ConfigObject,
    RegexLiteral,
    extract_config_object,
    substitute_dirname,
)
from testscout.parsing.treesitter import grammar_for, parse_config_source

__all__ = [
    "DIRNAME",
    "UNRESOLVED",
    "ConfigObject",
    "RegexLiteral",
    "extract_config_object",
    "grammar_for",
    "parse_config_source",
    "substitute_dirname",
]
