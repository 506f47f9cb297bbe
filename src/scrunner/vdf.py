"""Lossless codec for Valve's text KeyValues format (``.vdf`` / ``.acf``).

Files look like::

    "UserLocalConfigStore"
    {
        "Software"
        {
            "LaunchOptions"		"gamescope -- %command%"
        }
    }

Steam owns these files and rewrites them itself, so the codec keeps every
byte it does not change: each node remembers the text in front of it, its
raw key and value tokens, and (for sections) the text before the closing
brace. ``serialize(parse(data)) == data`` for any untouched document.
Nodes added or changed in memory are rendered in the style of their
siblings (tab indentation for multi-line files, spaces for inline ones).

Parsing and serialization are iterative, so nesting depth is unbounded.
"""

from __future__ import annotations

import dataclasses
import pathlib
import re
from typing import TYPE_CHECKING, Union

import scrunner.errors

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

Value = Union[str, int]

_BOM = "\ufeff"
_TRIVIA_RE = re.compile(r"(?:\s+|//[^\n]*)*")
_QUOTED_RE = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)
_BARE_RE = re.compile(r'[^\s"{}]+')
_CONDITION_RE = re.compile(r"[ \t]*\[[^\]\n]*\]")
_INT_RE = re.compile(r"-?[0-9]+")
_UNESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_UNESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"'}
_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t"})


def _unescape(text: str) -> str:
    return _UNESCAPE_RE.sub(lambda m: _UNESCAPES.get(m.group(1), m.group()), text)


def _quote(text: str) -> str:
    return '"' + text.translate(_ESCAPES) + '"'


def _render(value: Value) -> str:
    if isinstance(value, int):
        return str(value)
    return _quote(value)


def _check_value(value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise TypeError(f"KeyValues leaves hold str or int, not {type(value).__name__}")


def _as_path(path: Sequence[str] | str) -> tuple[str, ...]:
    if isinstance(path, str):
        return (path,)
    return tuple(path)


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------

@dataclasses.dataclass(eq=False)
class Leaf:
    """A ``"key" "value"`` pair."""

    name: str
    value: Value
    prefix: str | None = None
    raw_key: str | None = None
    separator: str | None = None
    suffix: str = ""
    source: tuple[Value, str] | None = dataclasses.field(default=None, repr=False)

    def render_value(self) -> str:
        """Return the value token, reusing the original text if unchanged."""
        if self.source is not None:
            original, raw = self.source
            if type(original) is type(self.value) and original == self.value:
                return raw
        return _render(self.value)


@dataclasses.dataclass(eq=False)
class Section:
    """A named ``{ ... }`` block of uniquely named children, in file order."""

    name: str
    depth: int = 0
    prefix: str | None = None
    raw_key: str | None = None
    separator: str | None = None
    trailer: str | None = None
    condition: str = ""
    nodes: dict[str, Node] = dataclasses.field(
        default_factory=dict, init=False, repr=False
    )

    # -- container protocol -------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self.nodes.values()))

    def __len__(self) -> int:
        return len(self.nodes)

    def keys(self) -> list[str]:
        return list(self.nodes)

    def get(self, name: str) -> Node | None:
        return self.nodes.get(name)

    # -- mutation -----------------------------------------------------------

    def add(self, node: Node) -> Node:
        """Append *node*, filling in any layout it lacks from its siblings."""
        if node.name in self.nodes:
            raise ValueError(f"duplicate key {node.name!r} in section {self.name!r}")
        self._style(node)
        self.nodes[node.name] = node
        return node

    def remove(self, name: str) -> Node | None:
        return self.nodes.pop(name, None)

    def _inline(self) -> bool:
        if isinstance(self, Document):
            return False
        if self.nodes:
            last = next(reversed(self.nodes.values()))
            return "\n" not in (last.prefix or "")
        return self.separator is not None and "\n" not in self.separator

    def _line_end(self) -> str:
        texts = [self.prefix, self.separator, self.trailer]
        if self.nodes:
            texts.insert(0, next(reversed(self.nodes.values())).prefix)
        return "\r\n" if any("\r\n" in (t or "") for t in texts) else "\n"

    def _style(self, node: Node) -> None:
        inline = self._inline()
        newline = self._line_end()
        indent = ""
        if inline:
            lead = " "
        elif self.nodes:
            last = next(reversed(self.nodes.values()))
            indent = (last.prefix or "").rsplit("\n", 1)[-1]
            lead = newline + indent
        elif isinstance(self, Document):
            lead = ""
        else:
            indent = "\t" * (self.depth + 1)
            lead = newline + indent

        if node.prefix is None:
            node.prefix = lead
        if node.raw_key is None:
            node.raw_key = _quote(node.name)

        if isinstance(node, Section):
            node.depth = self.depth + 1
            gap = " " if inline else newline + indent
            if node.separator is None:
                node.separator = gap
            if node.trailer is None:
                node.trailer = gap
            return

        if node.separator is None:
            if inline:
                node.separator = " "
            else:
                leaves = [n for n in self.nodes.values() if isinstance(n, Leaf)]
                node.separator = leaves[-1].separator if leaves else "\t\t"

    # -- navigation -----------------------------------------------------------

    def get_section(self, path: Sequence[str] | str) -> Section | None:
        """Return the section at *path*, or None. Never creates anything."""
        current: Section = self
        for name in _as_path(path):
            node = current.nodes.get(name)
            if not isinstance(node, Section):
                return None
            current = node
        return current

    def get_leaf(self, path: Sequence[str] | str) -> Leaf | None:
        parts = _as_path(path)
        if not parts:
            return None
        parent = self.get_section(parts[:-1])
        if parent is None:
            return None
        node = parent.nodes.get(parts[-1])
        return node if isinstance(node, Leaf) else None

    def get_or_create_section(self, path: Sequence[str] | str) -> Section:
        current: Section = self
        for name in _as_path(path):
            node = current.nodes.get(name)
            if node is None:
                node = current.add(Section(name))
            elif isinstance(node, Leaf):
                raise ValueError(f"{name!r} is a value, not a section")
            current = node
        return current

    def set_leaf(self, path: Sequence[str] | str, value: Value) -> Leaf:
        """Create or overwrite the leaf at *path*, creating parent sections."""
        _check_value(value)
        parts = _as_path(path)
        if not parts:
            raise ValueError("empty path")
        parent = self.get_or_create_section(parts[:-1])
        if isinstance(parent, Document):
            raise ValueError("the top level of a document holds sections only")
        node = parent.nodes.get(parts[-1])
        if isinstance(node, Section):
            raise ValueError(f"{parts[-1]!r} is a section, not a value")
        if node is None:
            return parent.add(Leaf(parts[-1], value))
        node.value = value
        return node

    def remove_leaf(self, path: Sequence[str] | str) -> bool:
        """Remove the leaf at *path*. Returns False if there was none."""
        parts = _as_path(path)
        if self.get_leaf(parts) is None:
            return False
        parent = self.get_section(parts[:-1])
        parent.remove(parts[-1])
        return True

    def to_dict(self) -> dict[str, object]:
        """Return the subtree as plain nested dicts (ordering preserved)."""
        result: dict[str, object] = {}
        stack: list[tuple[Section, dict[str, object]]] = [(self, result)]
        while stack:
            section, target = stack.pop()
            for node in section.nodes.values():
                if isinstance(node, Section):
                    child: dict[str, object] = {}
                    target[node.name] = child
                    stack.append((node, child))
                else:
                    target[node.name] = node.value
        return result


@dataclasses.dataclass(eq=False)
class Document(Section):
    """Root of a parsed file. Top-level children are always sections."""

    name: str = ""
    depth: int = -1
    trailer: str | None = "\n"
    bom: bool = False


Node = Union[Section, Leaf]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, message: str, pos: int | None = None) -> scrunner.errors.MalformedFormat:
        pos = self.pos if pos is None else pos
        line = self.text.count("\n", 0, pos) + 1
        column = pos - self.text.rfind("\n", 0, pos)
        return scrunner.errors.MalformedFormat(message, line, column)

    def trivia(self) -> str:
        match = _TRIVIA_RE.match(self.text, self.pos)
        self.pos = match.end()
        return match.group()

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def token(self) -> tuple[str, str, bool]:
        """Read a quoted or bare token: (raw text, decoded text, quoted)."""
        start = self.pos
        if self.text.startswith('"', start):
            match = _QUOTED_RE.match(self.text, start)
            if match is None:
                raise self.error("unterminated quoted string", start)
            self.pos = match.end()
            return match.group(), _unescape(match.group(1)), True
        match = _BARE_RE.match(self.text, start)
        self.pos = match.end()
        return match.group(), match.group(), False

    def section_condition(self) -> str:
        """Consume a ``[$COND]`` that precedes a section's ``{``.

        Returns the condition and the trivia after it, or "" (consuming
        nothing) when no ``{`` follows, so the bracket is read as a value.
        """
        start = self.pos
        match = _CONDITION_RE.match(self.text, start)
        if match is not None:
            self.pos = match.end()
            self.trivia()
            if not self.at_end() and self.text[self.pos] == "{":
                return self.text[start:self.pos]
        self.pos = start
        return ""

    def parse(self) -> Document:
        document = Document(trailer="")
        if self.text.startswith(_BOM):
            document.bom = True
            self.pos = len(_BOM)

        stack: list[Section] = [document]
        while True:
            prefix = self.trivia()
            parent = stack[-1]

            if self.at_end():
                if len(stack) > 1:
                    raise self.error(
                        f"unexpected end of input, section {parent.name!r} is not closed"
                    )
                document.trailer = prefix
                return document

            char = self.text[self.pos]
            if char == "}":
                if len(stack) == 1:
                    raise self.error("unmatched '}'")
                self.pos += 1
                parent.trailer = prefix
                stack.pop()
                continue
            if char == "{":
                raise self.error("expected a key, found '{'")

            key_pos = self.pos
            raw_key, name, _ = self.token()
            if name in parent.nodes:
                raise self.error(f"duplicate key {name!r}", key_pos)
            separator = self.trivia()
            if self.at_end():
                raise self.error(f"unexpected end of input after key {name!r}")

            char = self.text[self.pos]
            condition = ""
            if char == "[":
                condition = self.section_condition()
                if condition:
                    char = "{"
            if char == "{":
                self.pos += 1
                section = Section(
                    name,
                    depth=len(stack) - 1,
                    prefix=prefix,
                    raw_key=raw_key,
                    separator=separator,
                    condition=condition,
                )
                parent.nodes[name] = section
                stack.append(section)
                continue
            if char == "}":
                raise self.error(f"key {name!r} has no value")
            if parent is document:
                raise self.error(
                    f"expected a section name at top level, found value for {name!r}",
                    key_pos,
                )

            raw_value, text, quoted = self.token()
            value: Value = text
            if not quoted and _INT_RE.fullmatch(text):
                value = int(text)
            trailing = _CONDITION_RE.match(self.text, self.pos)
            suffix = ""
            if trailing is not None:
                suffix = trailing.group()
                self.pos = trailing.end()
            parent.nodes[name] = Leaf(
                name,
                value,
                prefix=prefix,
                raw_key=raw_key,
                separator=separator,
                suffix=suffix,
                source=(value, raw_value),
            )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(data: bytes | str) -> Document:
    """Parse KeyValues text into a Document.

    Raises ``MalformedFormat`` on truncated input, unbalanced braces, a value
    where a top-level section is expected, or duplicate sibling keys.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", "surrogateescape")
    return _Parser(data).parse()


def parse_file(path: pathlib.Path) -> Document:
    return parse(path.read_bytes())


def serialize(document: Document) -> bytes:
    """Render *document* back to bytes (the exact inverse of ``parse``)."""
    out: list[str] = [_BOM] if document.bom else []
    stack: list[tuple[Section, Iterator[Node]]] = [(document, iter(document))]
    while stack:
        section, pending = stack[-1]
        node = next(pending, None)
        if node is None:
            stack.pop()
            out.append(section.trailer or "")
            if stack:
                out.append("}")
            continue

        out.append(node.prefix or "")
        out.append(node.raw_key or _quote(node.name))
        out.append(node.separator or "")
        if isinstance(node, Section):
            out.append(node.condition)
            out.append("{")
            stack.append((node, iter(node)))
        else:
            out.append(node.render_value())
            out.append(node.suffix)
    return "".join(out).encode("utf-8", "surrogateescape")
