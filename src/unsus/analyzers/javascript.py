# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""JavaScript parsing with tree-sitter, exposed as ESTree-shaped nodes.

The detection rules are written against ESTree node names (``CallExpression``,
``MemberExpression``, ``Literal``...). :func:`parse_source` parses with the
tree-sitter JavaScript grammar, which tracks current ECMAScript, and converts
the concrete syntax tree into :class:`Node` objects carrying those names and
fields. Node kinds without a dedicated mapping keep their tree-sitter kind in
CamelCase and expose their children as ``body``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from typing import Any

import tree_sitter_javascript
from tree_sitter import Language, Parser

JS_LANGUAGE = Language(tree_sitter_javascript.language())
SNIPPET_LIMIT = 120

# Leaves whose text is read directly; their tree-sitter children are not needed.
_OPAQUE = frozenset(
    {"string", "number", "regex", "comment", "html_comment", "hash_bang_line"}
)
_IDENTIFIERS = frozenset(
    {
        "identifier",
        "property_identifier",
        "shorthand_property_identifier",
        "shorthand_property_identifier_pattern",
        "statement_identifier",
        "undefined",
    }
)
_SKIP_KEYS = frozenset({"type", "line", "range"})

_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|[0-7]{1,3}|\r\n|[\s\S])"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\n": "",
    "\r": "",
    "\r\n": "",
    "\u2028": "",
    "\u2029": "",
}


class JavaScriptSyntaxError(ValueError):
    """Raised when the source does not parse cleanly."""


class Node:
    """ESTree-shaped view of one syntax node.

    ``line`` is 1-based; ``range`` holds UTF-8 byte offsets into the source.
    """

    def __init__(self, kind: str, line: int, start: int, end: int, **fields: Any) -> None:
        self.type = kind
        self.line = line
        self.range = (start, end)
        self.__dict__.update(fields)

    def __repr__(self) -> str:
        return f"Node({self.type!r}, line={self.line})"


def encode_source(source: str) -> bytes:
    return source.encode("utf-8", errors="replace")


def cook(raw: str) -> str:
    """Evaluate JavaScript string escapes in ``raw``."""
    text = _ESCAPE_RE.sub(_unescape, raw)
    if any("\ud800" <= ch <= "\udfff" for ch in text):
        try:
            text = text.encode("utf-16", "surrogatepass").decode("utf-16")
        except UnicodeDecodeError:
            pass
    return text


def _unescape(match: re.Match[str]) -> str:
    body = match.group(1)
    head = body[0]
    if head == "u" and len(body) > 1:
        digits = body[2:-1] if body[1] == "{" else body[1:]
        codepoint = int(digits, 16)
        return chr(codepoint) if codepoint <= 0x10FFFF else match.group(0)
    if head == "x" and len(body) == 3:
        return chr(int(body[1:], 16))
    if head in "01234567":
        return chr(int(body, 8))
    return _SIMPLE_ESCAPES.get(body, body)


def _number(text: str) -> int | float | None:
    text = text.replace("_", "").removesuffix("n")
    try:
        if text[:2].lower() in ("0x", "0o", "0b"):
            return int(text, 0)
        if len(text) > 1 and text[0] == "0" and text.isdigit():
            return int(text, 8) if set(text) <= set("01234567") else int(text)
        if any(ch in text for ch in ".eE"):
            return float(text)
        return int(text)
    except ValueError:
        return None


def _text(ts: Any) -> str:
    return ts.text.decode("utf-8", errors="replace")


def _camel(kind: str) -> str:
    return "".join(part.capitalize() for part in kind.split("_"))


def _named(ts: Any) -> list[Any]:
    return [c for c in ts.named_children if c.type not in ("comment", "html_comment")]


def _walk_children(ts: Any) -> list[Any]:
    if ts.type in _OPAQUE:
        return []
    if ts.type == "template_string":
        return [c for c in ts.named_children if c.type == "template_substitution"]
    return _named(ts)


def _make(ts: Any, kind: str, **fields: Any) -> Node:
    return Node(kind, ts.start_point[0] + 1, ts.start_byte, ts.end_byte, **fields)


class _Converter:
    """Bottom-up conversion of a tree-sitter tree without recursion."""

    def __init__(self) -> None:
        self.built: dict[int, Node] = {}

    def convert(self, root: Any) -> Node:
        stack: list[tuple[Any, bool]] = [(root, False)]
        while stack:
            ts, ready = stack.pop()
            if ready:
                self.built[ts.id] = self.build(ts)
                continue
            stack.append((ts, True))
            stack.extend((child, False) for child in _walk_children(ts))
        return self.built[root.id]

    def ref(self, ts: Any) -> Node | None:
        if ts is None:
            return None
        node = self.built.get(ts.id)
        if node is None:
            node = self.build(ts)
        return node

    def refs(self, nodes: list[Any]) -> list[Node]:
        return [n for n in (self.ref(c) for c in nodes) if n is not None]

    def build(self, ts: Any) -> Node:
        kind = ts.type
        if kind in _IDENTIFIERS:
            return _make(ts, "Identifier", name=_text(ts))
        handler = _BUILDERS.get(kind)
        if handler is not None:
            return handler(self, ts)
        return _make(ts, _camel(kind), body=self.refs(_walk_children(ts)))

    # -- literals ----------------------------------------------------------

    def string(self, ts: Any) -> Node:
        raw = _text(ts)
        return _make(ts, "Literal", value=cook(raw[1:-1]), raw=raw, regex=None)

    def number(self, ts: Any) -> Node:
        return _make(ts, "Literal", value=_number(_text(ts)), raw=_text(ts), regex=None)

    def keyword_literal(self, ts: Any) -> Node:
        value = {"true": True, "false": False}.get(ts.type)
        return _make(ts, "Literal", value=value, raw=ts.type, regex=None)

    def regex(self, ts: Any) -> Node:
        pattern = ts.child_by_field_name("pattern")
        flags = ts.child_by_field_name("flags")
        return _make(
            ts,
            "Literal",
            value=None,
            raw=_text(ts),
            regex={
                "pattern": _text(pattern) if pattern is not None else "",
                "flags": _text(flags) if flags is not None else "",
            },
        )

    def template(self, ts: Any) -> Node:
        data = ts.text
        base = ts.start_byte
        row = ts.start_point[0] + 1
        subs = [c for c in ts.named_children if c.type == "template_substitution"]
        bounds = [(s.start_byte, s.end_byte) for s in subs] + [(ts.end_byte - 1, None)]
        quasis: list[Node] = []
        cursor = base + 1
        for start, end in bounds:
            raw = data[cursor - base : start - base].decode("utf-8", errors="replace")
            line = row + data[: cursor - base].count(b"\n")
            value = {"raw": raw, "cooked": cook(raw)}
            quasis.append(Node("TemplateElement", line, cursor, start, value=value))
            if end is not None:
                cursor = end
        expressions = [self.ref(_named(s)[0]) for s in subs if _named(s)]
        return _make(ts, "TemplateLiteral", quasis=quasis, expressions=expressions)

    # -- expressions -------------------------------------------------------

    def parenthesized(self, ts: Any) -> Node:
        inner = _named(ts)
        if len(inner) == 1:
            node = self.ref(inner[0])
            if node is not None:
                return node
        return _make(ts, "SequenceExpression", body=self.refs(inner))

    def member(self, ts: Any) -> Node:
        prop = ts.child_by_field_name("property")
        return _make(
            ts,
            "MemberExpression",
            object=self.ref(ts.child_by_field_name("object")),
            property=self.ref(prop),
            computed=False,
        )

    def subscript(self, ts: Any) -> Node:
        return _make(
            ts,
            "MemberExpression",
            object=self.ref(ts.child_by_field_name("object")),
            property=self.ref(ts.child_by_field_name("index")),
            computed=True,
        )

    def private_name(self, ts: Any) -> Node:
        return _make(ts, "PrivateIdentifier", name=_text(ts).lstrip("#"))

    def call(self, ts: Any) -> Node:
        callee = self.ref(ts.child_by_field_name("function"))
        args = ts.child_by_field_name("arguments")
        if args is not None and args.type == "template_string":
            return _make(ts, "TaggedTemplateExpression", tag=callee, quasi=self.ref(args))
        arguments = self.refs(_named(args)) if args is not None else []
        return _make(ts, "CallExpression", callee=callee, arguments=arguments)

    def new(self, ts: Any) -> Node:
        args = ts.child_by_field_name("arguments")
        return _make(
            ts,
            "NewExpression",
            callee=self.ref(ts.child_by_field_name("constructor")),
            arguments=self.refs(_named(args)) if args is not None else [],
        )

    def assignment(self, ts: Any) -> Node:
        return _make(
            ts,
            "AssignmentExpression",
            left=self.ref(ts.child_by_field_name("left")),
            right=self.ref(ts.child_by_field_name("right")),
        )

    # -- declarations and patterns ----------------------------------------

    def declarator(self, ts: Any) -> Node:
        return _make(
            ts,
            "VariableDeclarator",
            id=self.ref(ts.child_by_field_name("name")),
            init=self.ref(ts.child_by_field_name("value")),
        )

    def assignment_pattern(self, ts: Any) -> Node:
        return _make(
            ts,
            "AssignmentPattern",
            left=self.ref(ts.child_by_field_name("left")),
            right=self.ref(ts.child_by_field_name("right")),
        )

    def pair_pattern(self, ts: Any) -> Node:
        key = ts.child_by_field_name("key")
        return _make(
            ts,
            "Property",
            key=self.ref(key),
            value=self.ref(ts.child_by_field_name("value")),
            computed=key is not None and key.type == "computed_property_name",
        )

    def object_pattern(self, ts: Any) -> Node:
        properties: list[Node] = []
        for child in _named(ts):
            node = self.ref(child)
            if node is None:
                continue
            if child.type == "shorthand_property_identifier_pattern":
                key = _make(child, "Identifier", name=node.name)
                node = _make(child, "Property", key=key, value=node, computed=False)
            elif child.type == "object_assignment_pattern":
                left = node.left
                if getattr(left, "type", None) == "Identifier":
                    key = _make(child, "Identifier", name=left.name)
                    node = _make(child, "Property", key=key, value=node, computed=False)
            properties.append(node)
        return _make(ts, "ObjectPattern", properties=properties)

    def import_statement(self, ts: Any) -> Node:
        specifiers: list[Node] = []
        clause = next((c for c in ts.named_children if c.type == "import_clause"), None)
        for child in _named(clause) if clause is not None else []:
            if child.type == "identifier":
                specifiers.append(_make(child, "ImportDefaultSpecifier", local=self.ref(child)))
            elif child.type == "namespace_import" and _named(child):
                local = self.ref(_named(child)[0])
                specifiers.append(_make(child, "ImportNamespaceSpecifier", local=local))
            elif child.type == "named_imports":
                for spec in _named(child):
                    if spec.type != "import_specifier":
                        continue
                    name = spec.child_by_field_name("name")
                    alias = spec.child_by_field_name("alias")
                    specifiers.append(
                        _make(
                            spec,
                            "ImportSpecifier",
                            imported=self.ref(name),
                            local=self.ref(alias if alias is not None else name),
                        )
                    )
        return _make(
            ts,
            "ImportDeclaration",
            specifiers=specifiers,
            source=self.ref(ts.child_by_field_name("source")),
        )

    def program(self, ts: Any) -> Node:
        return _make(ts, "Program", body=self.refs(_named(ts)))


_BUILDERS: dict[str, Callable[[_Converter, Any], Node]] = {
    "string": _Converter.string,
    "number": _Converter.number,
    "true": _Converter.keyword_literal,
    "false": _Converter.keyword_literal,
    "null": _Converter.keyword_literal,
    "regex": _Converter.regex,
    "template_string": _Converter.template,
    "parenthesized_expression": _Converter.parenthesized,
    "member_expression": _Converter.member,
    "subscript_expression": _Converter.subscript,
    "private_property_identifier": _Converter.private_name,
    "call_expression": _Converter.call,
    "new_expression": _Converter.new,
    "assignment_expression": _Converter.assignment,
    "variable_declarator": _Converter.declarator,
    "assignment_pattern": _Converter.assignment_pattern,
    "object_assignment_pattern": _Converter.assignment_pattern,
    "pair_pattern": _Converter.pair_pattern,
    "object_pattern": _Converter.object_pattern,
    "import_statement": _Converter.import_statement,
    "program": _Converter.program,
}


def _first_error_line(root: Any) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
    return 0


def parse_source(source: str) -> Node:
    """Parse JavaScript source (module or script) into an ESTree-shaped tree.

    Raises:
        JavaScriptSyntaxError: The source contains a syntax error.
    """
    tree = Parser(JS_LANGUAGE).parse(encode_source(source))
    root = tree.root_node
    if root.has_error:
        raise JavaScriptSyntaxError(f"syntax error at line {_first_error_line(root)}")
    return _Converter().convert(root)


def children(node: Node) -> Iterator[Node]:
    for key, value in vars(node).items():
        if key in _SKIP_KEYS or value is None:
            continue
        if isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item
        elif isinstance(value, Node):
            yield value


def iter_nodes(root: Node) -> Iterator[Node]:
    """Pre-order walk over every AST node below ``root``."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(list(children(node))))


def node_line(node: Any) -> int:
    return getattr(node, "line", 0) or 0


def snippet(source: str, node: Any, limit: int = SNIPPET_LIMIT) -> str:
    rng = getattr(node, "range", None)
    if not rng:
        return ""
    start, end = rng
    return encode_source(source)[start : min(end, start + limit)].decode(
        "utf-8", errors="replace"
    )


def is_identifier(node: Any, name: str | None = None) -> bool:
    if getattr(node, "type", None) != "Identifier":
        return False
    return name is None or node.name == name


def identifier_name(node: Any) -> str | None:
    return node.name if is_identifier(node) else None


def template_text(element: Any, key: str = "cooked") -> str:
    """``raw`` or ``cooked`` text of a TemplateElement."""
    value = getattr(element, "value", None)
    text = value.get(key) if isinstance(value, dict) else None
    return text if isinstance(text, str) else ""


def string_value(node: Any) -> str | None:
    """Value of a string literal or an expression-free template literal."""
    node_type = getattr(node, "type", None)
    if node_type == "Literal":
        if getattr(node, "regex", None) is None and isinstance(node.value, str):
            return node.value
        return None
    if node_type == "TemplateLiteral" and not node.expressions:
        return "".join(template_text(q) for q in node.quasis)
    return None


def is_literal(node: Any) -> bool:
    node_type = getattr(node, "type", None)
    if node_type == "Literal":
        return True
    return node_type == "TemplateLiteral" and not node.expressions


def property_name(member: Any) -> str | None:
    """Static property name of a member expression, if it has one."""
    prop = getattr(member, "property", None)
    if not getattr(member, "computed", False):
        return identifier_name(prop)
    return string_value(prop)


def is_member(node: Any, obj: str, prop: str) -> bool:
    """True for ``obj.prop`` / ``obj['prop']`` with a plain identifier object."""
    if getattr(node, "type", None) != "MemberExpression":
        return False
    return is_identifier(node.object, obj) and property_name(node) == prop


def required_module(node: Any) -> str | None:
    """Module name of ``require('<literal>')``, without a ``node:`` prefix."""
    if getattr(node, "type", None) != "CallExpression":
        return None
    if not is_identifier(node.callee, "require") or len(node.arguments) != 1:
        return None
    name = string_value(node.arguments[0])
    if name is None:
        return None
    return name.removeprefix("node:")
