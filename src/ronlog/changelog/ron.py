"""Minimal RON (Rusty Object Notation) codec.

Stability: stable
Tier: none
Since: 0.4.0
Dependencies: stdlib-only
Doc-Types: API_REFERENCE, TECHNICAL_DESIGN
Tags: changelog, ron, codec, parser

Covers the subset of RON that fragments and RONLOG documents use:

==================  ===========================  ======================
RON                 Python (decode)              Python (encode)
==================  ===========================  ======================
``(a: 1, b: "x")``  ``RonStruct``                ``RonStruct``
``Name(a: 1)``      ``RonStruct(name="Name")``   ``RonStruct``
``{"k": v}``        ``dict``                     ``dict``
``[1, 2]``          ``list``                     ``list`` / ``tuple``
``"text"``          ``str``                      ``str``
``Some(v)``         ``v``                        ``Some(v)``
``None``            ``None``                     ``None``
``true``/``false``  ``bool``                     ``bool``
``12`` / ``1.5``    ``int`` / ``float``          ``int`` / ``float``
==================  ===========================  ======================

``dumps`` writes the pretty layout: one item per line, two-space indent,
trailing commas, empty containers as ``{}`` / ``[]`` / ``()``. ``loads``
accepts any whitespace, ``//`` and ``/* */`` comments, and a leading
``#![enable(...)]`` attribute. Decode failures raise ``EncodingError``
with the 1-based line and column.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, NoReturn

from ronlog.core.errors import EncodingError

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER_RE = re.compile(r"[-+]?[0-9]+(\.[0-9]+)?([eE][-+]?[0-9]+)?")
_ATTRIBUTE_RE = re.compile(r"#!\[[^\]]*\]")

_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
}


class RonStruct(dict):
    """A RON struct: ordered named fields, optionally with a type name."""

    def __init__(self, *args: Any, name: str | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.name = name

    def __repr__(self) -> str:
        return f"RonStruct({dict.__repr__(self)}, name={self.name!r})"


@dataclass(frozen=True)
class Some:
    """Wraps a present optional value for encoding."""

    value: Any


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def dumps(value: Any, indent: str = "  ") -> str:
    """Encode ``value`` as pretty RON, terminated by a newline."""
    return _encode(value, 0, indent) + "\n"


def quote(text: str) -> str:
    """Quote ``text`` as a RON string literal."""
    out = ['"']
    for ch in text:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _encode(value: Any, level: int, indent: str) -> str:
    inner = indent * (level + 1)
    outer = indent * level

    if value is None:
        return "None"
    if isinstance(value, Some):
        return f"Some({_encode(value.value, level, indent)})"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"RON cannot encode {value!r}")
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, RonStruct):
        prefix = value.name or ""
        if not value:
            return f"{prefix}()"
        lines = [f"{prefix}("]
        for key, item in value.items():
            if not isinstance(key, str) or not _IDENT_RE.fullmatch(key):
                raise ValueError(f"Invalid RON field name: {key!r}")
            lines.append(f"{inner}{key}: {_encode(item, level + 1, indent)},")
        lines.append(f"{outer})")
        return "\n".join(lines)
    if isinstance(value, dict):
        if not value:
            return "{}"
        lines = ["{"]
        for key, item in value.items():
            lines.append(
                f"{inner}{_encode(key, level + 1, indent)}: {_encode(item, level + 1, indent)},"
            )
        lines.append(f"{outer}}}")
        return "\n".join(lines)
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        lines = ["["]
        for item in value:
            lines.append(f"{inner}{_encode(item, level + 1, indent)},")
        lines.append(f"{outer}]")
        return "\n".join(lines)
    raise TypeError(f"Cannot encode {type(value).__name__} as RON")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def loads(text: str) -> Any:
    """Decode one RON value from ``text``.

    Raises:
        EncodingError: ``text`` is not valid RON (within the supported subset).
    """
    parser = _Parser(text)
    parser.skip_attributes()
    value = parser.parse_value()
    parser.skip_ws()
    if not parser.at_end():
        parser.fail("trailing characters after value")
    return value


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    # -- helpers -------------------------------------------------------

    def fail(self, message: str, pos: int | None = None) -> NoReturn:
        pos = self.pos if pos is None else pos
        line = self.text.count("\n", 0, pos) + 1
        column = pos - (self.text.rfind("\n", 0, pos) + 1) + 1
        raise EncodingError(f"Invalid RON: {message}", line=line, column=column)

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    self.fail("unterminated block comment")
                self.pos = end + 2
            else:
                break

    def skip_attributes(self) -> None:
        while True:
            self.skip_ws()
            match = _ATTRIBUTE_RE.match(self.text, self.pos)
            if match is None:
                return
            self.pos = match.end()

    def expect(self, ch: str) -> None:
        self.skip_ws()
        if self.peek() != ch:
            found = self.peek() or "end of input"
            self.fail(f"expected {ch!r}, found {found!r}")
        self.pos += 1

    def ident(self) -> str:
        match = _IDENT_RE.match(self.text, self.pos)
        if match is None:
            self.fail("expected identifier")
        self.pos = match.end()
        return match.group()

    def separator(self, close: str) -> bool:
        """Consume ``,`` or ``close``; return True once the container is closed."""
        self.skip_ws()
        ch = self.peek()
        if ch == ",":
            self.pos += 1
            self.skip_ws()
            if self.peek() == close:
                self.pos += 1
                return True
            return False
        if ch == close:
            self.pos += 1
            return True
        self.fail(f"expected ',' or {close!r}, found {ch or 'end of input'!r}")

    # -- values --------------------------------------------------------

    def parse_value(self) -> Any:
        self.skip_ws()
        ch = self.peek()
        if ch == '"':
            return self.parse_string()
        if ch == "{":
            return self.parse_map()
        if ch == "[":
            return self.parse_list()
        if ch == "(":
            return self.parse_struct(None)
        if ch and (ch.isdigit() or ch in "+-"):
            return self.parse_number()
        if ch and (ch.isalpha() or ch == "_"):
            start = self.pos
            name = self.ident()
            if name == "true":
                return True
            if name == "false":
                return False
            if name == "None":
                return None
            if name == "Some":
                self.expect("(")
                value = self.parse_value()
                self.skip_ws()
                if self.peek() == ",":
                    self.pos += 1
                self.expect(")")
                return value
            self.skip_ws()
            if self.peek() == "(":
                return self.parse_struct(name)
            self.fail(f"unsupported identifier {name!r}", start)
        self.fail(f"unexpected {ch!r}" if ch else "unexpected end of input")

    def parse_string(self) -> str:
        start = self.pos
        self.pos += 1
        out: list[str] = []
        text = self.text
        while True:
            if self.pos >= len(text):
                self.fail("unterminated string", start)
            ch = text[self.pos]
            if ch == '"':
                self.pos += 1
                return "".join(out)
            if ch != "\\":
                out.append(ch)
                self.pos += 1
                continue
            esc = text[self.pos + 1: self.pos + 2]
            if esc in _ESCAPES:
                out.append(_ESCAPES[esc])
                self.pos += 2
            elif esc == "u":
                out.append(self._unicode_escape())
            else:
                self.fail(f"unknown escape \\{esc}")

    def _unicode_escape(self) -> str:
        # \u{1F600} or \u00E9
        text = self.text
        if text.startswith("{", self.pos + 2):
            end = text.find("}", self.pos + 3)
            digits = text[self.pos + 3: end] if end != -1 else ""
            length = end + 1 - self.pos if end != -1 else 0
        else:
            digits = text[self.pos + 2: self.pos + 6]
            length = 6
        if not digits or len(digits) > 6 or not all(c in "0123456789abcdefABCDEF" for c in digits):
            self.fail("invalid unicode escape")
        code = int(digits, 16)
        if code > 0x10FFFF:
            self.fail("unicode escape out of range")
        self.pos += length
        return chr(code)

    def parse_number(self) -> int | float:
        match = _NUMBER_RE.match(self.text, self.pos)
        if match is None:
            self.fail("invalid number")
        self.pos = match.end()
        literal = match.group()
        if match.group(1) or match.group(2):
            return float(literal)
        return int(literal)

    def parse_struct(self, name: str | None) -> RonStruct:
        self.expect("(")
        struct = RonStruct(name=name)
        self.skip_ws()
        if self.peek() == ")":
            self.pos += 1
            return struct
        while True:
            self.skip_ws()
            key_pos = self.pos
            key = self.ident()
            if key in struct:
                self.fail(f"duplicate field {key!r}", key_pos)
            self.expect(":")
            struct[key] = self.parse_value()
            if self.separator(")"):
                return struct

    def parse_map(self) -> dict[Any, Any]:
        self.expect("{")
        result: dict[Any, Any] = {}
        self.skip_ws()
        if self.peek() == "}":
            self.pos += 1
            return result
        while True:
            self.skip_ws()
            key_pos = self.pos
            key = self.parse_value()
            if isinstance(key, (dict, list)):
                self.fail("map keys must be strings or numbers", key_pos)
            if key in result:
                self.fail(f"duplicate key {key!r}", key_pos)
            self.expect(":")
            result[key] = self.parse_value()
            if self.separator("}"):
                return result

    def parse_list(self) -> list[Any]:
        self.expect("[")
        result: list[Any] = []
        self.skip_ws()
        if self.peek() == "]":
            self.pos += 1
            return result
        while True:
            result.append(self.parse_value())
            if self.separator("]"):
                return result


__all__ = ["RonStruct", "Some", "dumps", "loads", "quote"]
