"""Side-effect-free evaluation of JavaScript/TypeScript configuration modules.

The extractor never runs configuration code.  It parses the source with
tree-sitter, locates the exported configuration value (``export default``,
``module.exports =`` or ``exports.default =``) and folds the syntax tree into
plain Python values.  Anything outside the supported subset folds to
:data:`UNRESOLVED`:

* string, template, numeric, boolean and ``null`` literals
* arrays and object literals, including spreads
* identifiers bound by top-level ``const``/``let``/``var`` declarations
* ``__dirname`` (as the :data:`DIRNAME` sentinel)
* ``a + b`` on two strings
* builder calls such as ``defineConfig({...})``: object arguments, and
  functions returning an object, are shallow-merged
* member access on objects that resolve (``base.test``)
* type casts, ``satisfies``, non-null assertions and parentheses

An unresolved property is dropped from its object; an unresolved array
element invalidates the whole array.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from testscout.parsing.treesitter import node_text, parse_config_source

if TYPE_CHECKING:
    from collections.abc import Callable

    import tree_sitter

logger = logging.getLogger(__name__)

DIRNAME: Final = "__dirname"
"""Sentinel value standing in for the configuration file's own directory."""

_MAX_DEPTH = 64

_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])",
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "\n": "",
    "\r\n": "",
}

# Node types that wrap a single inner expression and are transparent to evaluation.
_FIRST_CHILD_WRAPPERS = frozenset(
    {"parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression"}
)

_FUNCTION_NODES = frozenset(
    {
        "arrow_function",
        "function_expression",
        "function",
        "function_declaration",
        "method_definition",
        "generator_function",
        "generator_function_declaration",
    }
)


class _Unresolved:
    """Marker for values the extractor cannot determine statically."""

    _instance: _Unresolved | None = None

    def __new__(cls) -> _Unresolved:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


UNRESOLVED: Final = _Unresolved()


@dataclass(frozen=True, slots=True)
class RegexLiteral:
    """A regular-expression literal such as ``/\\.e2e\\.ts$/i``."""

    pattern: str
    flags: str = ""


ConfigObject = dict[str, Any]


def extract_config_object(source: str, file_name: str = "config.ts") -> ConfigObject | _Unresolved:
    """Extract the exported configuration object from *source*.

    Args:
        source: Text of the configuration module.
        file_name: Used only to choose the grammar (``.ts`` → TypeScript,
            ``.js`` → JavaScript, ``.tsx`` → TSX).

    Returns:
        The exported object as a ``dict``, or :data:`UNRESOLVED` when the
        source does not parse or no export resolves to an object.
    """
    root = parse_config_source(source, file_name)
    if root is None:
        return UNRESOLVED

    evaluator = _Evaluator(root)
    for candidate in _export_candidates(root):
        value = evaluator.evaluate(candidate)
        if isinstance(value, dict):
            return value
    logger.debug("No exported configuration object found in %s", file_name)
    return UNRESOLVED


def substitute_dirname(value: Any, directory: str) -> Any:
    """Replace the :data:`DIRNAME` sentinel in *value* with *directory*."""
    if isinstance(value, str):
        if value == DIRNAME:
            return directory
        if value.startswith(DIRNAME + "/"):
            return directory.rstrip("/") + value[len(DIRNAME) :]
        return value
    if isinstance(value, list):
        return [substitute_dirname(item, directory) for item in value]
    if isinstance(value, dict):
        return {key: substitute_dirname(item, directory) for key, item in value.items()}
    return value


# ── Export location ──────────────────────────────────────────────


def _export_candidates(root: tree_sitter.Node) -> list[tree_sitter.Node]:
    """Exported value expressions, default exports first."""
    defaults: list[tree_sitter.Node] = []
    assignments: list[tree_sitter.Node] = []
    for statement in root.named_children:
        if statement.type == "export_statement":
            if not any(child.type == "default" for child in statement.children):
                continue
            value = statement.child_by_field_name("value") or statement.child_by_field_name(
                "declaration"
            )
            if value is not None:
                defaults.append(value)
        elif statement.type == "expression_statement":
            expr = _first_named(statement)
            if expr is None or expr.type != "assignment_expression":
                continue
            left = expr.child_by_field_name("left")
            right = expr.child_by_field_name("right")
            if left is not None and right is not None and _is_export_target(left):
                assignments.append(right)
    return defaults + assignments


def _is_export_target(node: tree_sitter.Node) -> bool:
    if node.type == "member_expression":
        obj = node.child_by_field_name("object")
        prop = node.child_by_field_name("property")
        target = (node_text(obj), node_text(prop))
    elif node.type == "subscript_expression":
        obj = node.child_by_field_name("object")
        index = node.child_by_field_name("index")
        if index is None or index.type != "string":
            return False
        target = (node_text(obj), _decode_string(index))
    else:
        return False
    return target in {("module", "exports"), ("exports", "default")}


# ── Evaluation ───────────────────────────────────────────────────


class _Evaluator:
    """Folds expression nodes into Python values using a per-type handler table."""

    def __init__(self, root: tree_sitter.Node) -> None:
        self._bindings = _collect_bindings(root)
        self._resolving: set[str] = set()
        self._depth = 0
        self._handlers: dict[str, Callable[[tree_sitter.Node], Any]] = {
            "string": self._string,
            "template_string": self._template,
            "number": self._number,
            "true": lambda _node: True,
            "false": lambda _node: False,
            "null": lambda _node: None,
            "undefined": lambda _node: UNRESOLVED,
            "identifier": self._identifier,
            "regex": self._regex,
            "array": self._array,
            "object": self._object,
            "binary_expression": self._binary,
            "unary_expression": self._unary,
            "call_expression": self._call,
            "member_expression": self._member,
            "subscript_expression": self._subscript,
            "type_assertion": self._last_child,
            "arrow_function": self._function,
            "function_expression": self._function,
            "function": self._function,
            "function_declaration": self._function,
        }
        for wrapper in _FIRST_CHILD_WRAPPERS:
            self._handlers[wrapper] = self._first_child

    def evaluate(self, node: tree_sitter.Node | None) -> Any:
        if node is None:
            return UNRESOLVED
        handler = self._handlers.get(node.type)
        if handler is None:
            return UNRESOLVED
        if self._depth >= _MAX_DEPTH:
            return UNRESOLVED
        self._depth += 1
        try:
            return handler(node)
        finally:
            self._depth -= 1

    # -- literals --

    def _string(self, node: tree_sitter.Node) -> str:
        return _decode_string(node)

    def _template(self, node: tree_sitter.Node) -> Any:
        source = node.text or b""
        base = node.start_byte
        parts: list[str] = []
        cursor = 1  # skip opening backtick
        for child in node.named_children:
            if child.type != "template_substitution":
                continue
            parts.append(_decode_escapes(source[cursor : child.start_byte - base].decode("utf-8")))
            value = self.evaluate(_first_named(child))
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                return UNRESOLVED
            parts.append(str(value))
            cursor = child.end_byte - base
        parts.append(_decode_escapes(source[cursor:-1].decode("utf-8")))
        return "".join(parts)

    def _number(self, node: tree_sitter.Node) -> Any:
        text = node_text(node).replace("_", "")
        if text.endswith("n"):
            text = text[:-1]
        try:
            return int(text, 0)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return UNRESOLVED

    def _regex(self, node: tree_sitter.Node) -> RegexLiteral:
        pattern = node.child_by_field_name("pattern")
        flags = node.child_by_field_name("flags")
        return RegexLiteral(node_text(pattern), node_text(flags))

    def _identifier(self, node: tree_sitter.Node) -> Any:
        name = node_text(node)
        if name == "__dirname":
            return DIRNAME
        return self._lookup(name)

    def _lookup(self, name: str) -> Any:
        bound = self._bindings.get(name)
        if bound is None or name in self._resolving:
            return UNRESOLVED
        self._resolving.add(name)
        try:
            return self.evaluate(bound)
        finally:
            self._resolving.discard(name)

    # -- collections --

    def _array(self, node: tree_sitter.Node) -> Any:
        items: list[Any] = []
        for child in node.named_children:
            if child.type == "comment":
                continue
            if child.type == "spread_element":
                spread = self.evaluate(_first_named(child))
                if not isinstance(spread, list):
                    return UNRESOLVED
                items.extend(spread)
                continue
            value = self.evaluate(child)
            if value is UNRESOLVED:
                return UNRESOLVED
            items.append(value)
        return items

    def _object(self, node: tree_sitter.Node) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for child in node.named_children:
            if child.type == "pair":
                key = _property_key(child.child_by_field_name("key"))
                if key is None:
                    continue
                value = self.evaluate(child.child_by_field_name("value"))
                if value is UNRESOLVED:
                    result.pop(key, None)
                else:
                    result[key] = value
            elif child.type == "shorthand_property_identifier":
                name = node_text(child)
                value = self._lookup(name)
                if value is not UNRESOLVED:
                    result[name] = value
            elif child.type == "spread_element":
                spread = self.evaluate(_first_named(child))
                if isinstance(spread, dict):
                    result.update(spread)
        return result

    # -- operators --

    def _binary(self, node: tree_sitter.Node) -> Any:
        operator = node.child_by_field_name("operator")
        if operator is None or node_text(operator) != "+":
            return UNRESOLVED
        left = self.evaluate(node.child_by_field_name("left"))
        right = self.evaluate(node.child_by_field_name("right"))
        if isinstance(left, str) and isinstance(right, str):
            return left + right
        return UNRESOLVED

    def _unary(self, node: tree_sitter.Node) -> Any:
        operator = node_text(node.child_by_field_name("operator"))
        value = self.evaluate(node.child_by_field_name("argument"))
        if operator == "-" and isinstance(value, (int, float)) and not isinstance(value, bool):
            return -value
        if operator == "!" and isinstance(value, bool):
            return not value
        return UNRESOLVED

    def _member(self, node: tree_sitter.Node) -> Any:
        obj = self.evaluate(node.child_by_field_name("object"))
        prop = node.child_by_field_name("property")
        if isinstance(obj, dict) and prop is not None:
            return obj.get(node_text(prop), UNRESOLVED)
        return UNRESOLVED

    def _subscript(self, node: tree_sitter.Node) -> Any:
        obj = self.evaluate(node.child_by_field_name("object"))
        index = self.evaluate(node.child_by_field_name("index"))
        if isinstance(obj, dict) and isinstance(index, str):
            return obj.get(index, UNRESOLVED)
        if isinstance(obj, list) and isinstance(index, int) and not isinstance(index, bool):
            return obj[index] if 0 <= index < len(obj) else UNRESOLVED
        return UNRESOLVED

    # -- wrappers, builders and functions --

    def _first_child(self, node: tree_sitter.Node) -> Any:
        return self.evaluate(_first_named(node))

    def _last_child(self, node: tree_sitter.Node) -> Any:
        children = [child for child in node.named_children if child.type != "comment"]
        return self.evaluate(children[-1]) if children else UNRESOLVED

    def _call(self, node: tree_sitter.Node) -> Any:
        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            return UNRESOLVED
        merged: dict[str, Any] = {}
        found = False
        for arg in arguments.named_children:
            if arg.type in {"comment", "spread_element"}:
                continue
            value = self.evaluate(arg)
            if isinstance(value, dict):
                merged.update(value)
                found = True
        return merged if found else UNRESOLVED

    def _function(self, node: tree_sitter.Node) -> Any:
        body = node.child_by_field_name("body")
        if body is None:
            return UNRESOLVED
        if body.type != "statement_block":
            value = self.evaluate(body)
            return value if isinstance(value, dict) else UNRESOLVED
        returns = _return_statements(body)
        if len(returns) != 1:
            return UNRESOLVED
        value = self.evaluate(_first_named(returns[0]))
        return value if isinstance(value, dict) else UNRESOLVED


# ── Helpers ──────────────────────────────────────────────────────


def _collect_bindings(root: tree_sitter.Node) -> dict[str, tree_sitter.Node]:
    """Map top-level variable names to their initializer nodes."""
    bindings: dict[str, tree_sitter.Node] = {}
    for statement in root.named_children:
        declaration = statement
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is None:
                continue
        if declaration.type not in {"lexical_declaration", "variable_declaration"}:
            continue
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if name is not None and value is not None and name.type == "identifier":
                bindings[node_text(name)] = value
    return bindings


def _return_statements(body: tree_sitter.Node) -> list[tree_sitter.Node]:
    """``return`` statements of a function body, not counting nested functions."""
    found: list[tree_sitter.Node] = []
    stack = list(body.named_children)
    while stack:
        node = stack.pop()
        if node.type == "return_statement":
            found.append(node)
        elif node.type not in _FUNCTION_NODES:
            stack.extend(node.named_children)
    return found


def _property_key(node: tree_sitter.Node | None) -> str | None:
    if node is None:
        return None
    if node.type == "property_identifier":
        return node_text(node)
    if node.type == "string":
        return _decode_string(node)
    if node.type == "number":
        return node_text(node)
    return None


def _first_named(node: tree_sitter.Node) -> tree_sitter.Node | None:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def _decode_string(node: tree_sitter.Node) -> str:
    raw = node_text(node)
    return _decode_escapes(raw[1:-1]) if len(raw) >= 2 else ""


def _decode_escapes(text: str) -> str:
    if "\\" not in text:
        return text
    return _ESCAPE_RE.sub(_replace_escape, text)


def _replace_escape(match: re.Match[str]) -> str:
    escape = match.group(1)
    if escape in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[escape]
    if escape.startswith("u{"):
        return chr(int(escape[2:-1], 16))
    if escape.startswith("u") and len(escape) == 5:
        return chr(int(escape[1:], 16))
    if escape.startswith("x") and len(escape) == 3:
        return chr(int(escape[1:], 16))
    return escape
