"""Michelson text parsing and Micheline JSON helpers.

Contract artifacts ship as Michelson source (``.tz``) while node RPCs speak
Micheline JSON. :func:`parse_script` and :func:`parse_expression` convert the
former into the latter. The builder helpers create Micheline values and the
``expect_*`` helpers decode values returned by the node against the shape the
caller expects, raising :class:`SchemaMismatchError` on anything else.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, List

Micheline = Any


class MichelsonSyntaxError(ValueError):
    """Raised when Michelson source cannot be parsed."""


class SchemaMismatchError(ValueError):
    """Raised when a Micheline value does not have the expected shape."""


_TOKEN_RE = re.compile(
    r"""
      (?P<ws>\s+)
    | (?P<comment>\#[^\n]*|/\*.*?\*/)
    | (?P<string>"(?:[^"\\]|\\.)*")
    | (?P<bytes>0x[0-9a-fA-F]*)
    | (?P<int>-?[0-9]+)
    | (?P<annot>[%@:][A-Za-z0-9_.%@]*)
    | (?P<prim>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<punct>[{}();])
    """,
    re.VERBOSE | re.DOTALL,
)


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise MichelsonSyntaxError(f"Unexpected character {text[pos]!r} at offset {pos}")
        kind = match.lastgroup or ""
        if kind not in {"ws", "comment"}:
            tokens.append((kind, match.group()))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, value: str | None = None) -> tuple[str, str]:
        token = self.peek()
        if token is None:
            raise MichelsonSyntaxError(f"Unexpected end of input, expected {value or 'a token'}")
        if value is not None and token[1] != value:
            raise MichelsonSyntaxError(f"Expected {value!r}, found {token[1]!r}")
        self.pos += 1
        return token

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def expression(self) -> Micheline:
        token = self.peek()
        if token is None or token[0] != "prim":
            return self.atom()
        self.take()
        node: dict[str, Any] = {"prim": token[1]}
        args: list[Micheline] = []
        annots: list[str] = []
        while True:
            nxt = self.peek()
            if nxt is None or nxt[1] in {";", "}", ")"}:
                break
            if nxt[0] == "annot":
                annots.append(self.take()[1])
            else:
                args.append(self.atom())
        if args:
            node["args"] = args
        if annots:
            node["annots"] = annots
        return node

    def atom(self) -> Micheline:
        kind, value = self.take()
        if kind == "int":
            return {"int": value}
        if kind == "string":
            return {"string": json.loads(value)}
        if kind == "bytes":
            return {"bytes": value[2:].lower()}
        if kind == "prim":
            return {"prim": value}
        if value == "{":
            return self.sequence("}")
        if value == "(":
            inner = self.expression()
            self.take(")")
            return inner
        raise MichelsonSyntaxError(f"Unexpected token {value!r}")

    def sequence(self, close: str | None) -> list[Micheline]:
        items: list[Micheline] = []
        while True:
            token = self.peek()
            if token is None:
                if close is not None:
                    raise MichelsonSyntaxError(f"Unterminated sequence, expected {close!r}")
                return items
            if close is not None and token[1] == close:
                self.take()
                return items
            items.append(self.expression())
            token = self.peek()
            if token is not None and token[1] == ";":
                self.take()


def parse_script(text: str) -> list[Micheline]:
    """Parse a contract (``parameter ...; storage ...; code ...``) into Micheline."""

    parser = _Parser(text)
    first = parser.peek()
    if first is not None and first[1] == "{":
        parser.take()
        script = parser.sequence("}")
    else:
        script = parser.sequence(None)
    if not parser.at_end():
        raise MichelsonSyntaxError("Trailing tokens after contract script")
    sections = {node.get("prim") for node in script if isinstance(node, dict)}
    missing = {"parameter", "storage", "code"} - sections
    if missing:
        raise MichelsonSyntaxError(f"Contract script is missing sections: {', '.join(sorted(missing))}")
    return script


def parse_expression(text: str) -> Micheline:
    """Parse a single Michelson data or type expression, e.g. ``(Left Unit)``."""

    parser = _Parser(text)
    node = parser.expression()
    if not parser.at_end():
        raise MichelsonSyntaxError(f"Trailing tokens after expression: {text!r}")
    return node


# Builders --------------------------------------------------------------------


def prim(name: str, *args: Micheline) -> dict[str, Any]:
    node: dict[str, Any] = {"prim": name}
    if args:
        node["args"] = list(args)
    return node


def integer(value: int) -> dict[str, str]:
    return {"int": str(int(value))}


def string(value: str) -> dict[str, str]:
    return {"string": value}


def pair(*items: Micheline) -> dict[str, Any]:
    """Build a right comb ``Pair a (Pair b c)`` from two or more items."""

    if len(items) < 2:
        raise ValueError("pair requires at least two items")
    if len(items) == 2:
        return prim("Pair", items[0], items[1])
    return prim("Pair", items[0], pair(*items[1:]))


def left(value: Micheline) -> dict[str, Any]:
    return prim("Left", value)


def right(value: Micheline) -> dict[str, Any]:
    return prim("Right", value)


def elt(key: Micheline, value: Micheline) -> dict[str, Any]:
    return prim("Elt", key, value)


def unit() -> dict[str, Any]:
    return prim("Unit")


# Decoders --------------------------------------------------------------------


def expect_prim(node: Micheline, name: str, nargs: int | None = None) -> List[Micheline]:
    if not isinstance(node, dict) or node.get("prim") != name:
        raise SchemaMismatchError(f"Expected {name}, found {_preview(node)}")
    args = node.get("args", [])
    if nargs is not None and len(args) != nargs:
        raise SchemaMismatchError(f"Expected {name} with {nargs} arguments, found {len(args)}")
    return list(args)


def expect_int(node: Micheline) -> int:
    if not isinstance(node, dict) or "int" not in node:
        raise SchemaMismatchError(f"Expected an int, found {_preview(node)}")
    return int(node["int"])


def expect_string(node: Micheline) -> str:
    if not isinstance(node, dict) or "string" not in node:
        raise SchemaMismatchError(f"Expected a string, found {_preview(node)}")
    return node["string"]


def expect_sequence(node: Micheline) -> List[Micheline]:
    if not isinstance(node, list):
        raise SchemaMismatchError(f"Expected a sequence, found {_preview(node)}")
    return node


def unpair(node: Micheline, count: int) -> List[Micheline]:
    """Flatten a right-comb pair of ``count`` elements.

    Accepts nested ``Pair a (Pair b c)``, n-ary ``Pair a b c`` and the
    sequence shorthand ``{a; b; c}`` the node may return for combs.
    """

    if count < 2:
        raise ValueError("unpair requires count >= 2")
    if isinstance(node, list):
        items = list(node)
    else:
        items = expect_prim(node, "Pair")
    if len(items) < 2:
        raise SchemaMismatchError(f"Pair needs at least two elements, found {len(items)}")
    if len(items) == count:
        return items
    if len(items) > count:
        raise SchemaMismatchError(f"Expected a {count}-element pair, found {len(items)}")
    head = items[:-1]
    return head + unpair(items[-1], count - len(head))


def expect_or(node: Micheline) -> tuple[str, Micheline]:
    if isinstance(node, dict) and node.get("prim") in {"Left", "Right"}:
        return node["prim"], expect_prim(node, node["prim"], 1)[0]
    raise SchemaMismatchError(f"Expected Left or Right, found {_preview(node)}")


def expect_map(node: Micheline) -> Iterable[tuple[Micheline, Micheline]]:
    for item in expect_sequence(node):
        key, value = expect_prim(item, "Elt", 2)
        yield key, value


def _preview(node: Micheline, limit: int = 80) -> str:
    text = json.dumps(node, separators=(",", ":"))
    return text if len(text) <= limit else text[: limit - 3] + "..."
