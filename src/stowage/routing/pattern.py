"""Route template compilation.

Turns a template such as ``/:token/:backend/:processor/*/:id/:filename``
into a ``CompiledPattern``: an explicit descriptor of the template's
captures plus an anchored regex that matches whole request paths.

Template syntax:

- literal text, matched exactly (regex metacharacters are escaped)
- ``:name``: one path segment, one or more characters excluding ``/``
- ``*``: the wildcard; matches zero or more segments, non-greedy.
  At most one per template, exposed as ``PathParams.splat``.
"""

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from urllib.parse import unquote

from stowage.errors import ConfigurationError

WILDCARD = "splat"

_TOKEN_RE = re.compile(r":(\w+)|\*")


@dataclass(frozen=True, slots=True)
class Literal:
    text: str


@dataclass(frozen=True, slots=True)
class Capture:
    name: str


@dataclass(frozen=True, slots=True)
class Wildcard:
    pass


type Token = Literal | Capture | Wildcard


def tokenize(template: str) -> list[Token]:
    """Split a route template into literal, capture and wildcard tokens.

    Examples::

        "/:id/:filename"   -> [Literal("/"), Capture("id"), Literal("/"), Capture("filename")]
        "/:name.:ext"      -> [Literal("/"), Capture("name"), Literal("."), Capture("ext")]
        "/:p/*/:id"        -> [Literal("/"), Capture("p"), Literal("/"), Wildcard(), ...]
    """
    tokens: list[Token] = []
    pos = 0
    for m in _TOKEN_RE.finditer(template):
        if m.start() > pos:
            tokens.append(Literal(template[pos : m.start()]))
        if m.group(1) is not None:
            tokens.append(Capture(m.group(1)))
        else:
            tokens.append(Wildcard())
        pos = m.end()
    if pos < len(template):
        tokens.append(Literal(template[pos:]))
    return tokens


class PathParams(Mapping[str, str]):
    """Immutable captures from a matched path.

    Named captures are available through the ``Mapping`` interface.
    The wildcard is never a key; it is always a tuple of segments on
    ``splat`` (empty when the template has no wildcard or it matched
    nothing) and the raw substring on ``splat_raw``.
    """

    __slots__ = ("_data", "splat", "splat_raw")

    def __init__(self, data: dict[str, str] | None = None, splat_raw: str = "") -> None:
        self._data: dict[str, str] = data or {}
        self.splat_raw = splat_raw
        self.splat: tuple[str, ...] = (
            tuple(unquote(s) for s in splat_raw.split("/")) if splat_raw else ()
        )

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PathParams):
            return self._data == other._data and self.splat == other.splat
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((tuple(sorted(self._data.items())), self.splat))

    def __repr__(self) -> str:
        if self.splat:
            return f"PathParams({self._data!r}, splat={self.splat!r})"
        return f"PathParams({self._data!r})"


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A compiled route template.

    ``captures`` lists the named captures in template order and
    ``wildcard`` says whether the template contains ``*``, so callers
    can inspect a pattern without reading its regex.
    """

    template: str
    regex: re.Pattern[str]
    captures: tuple[str, ...]
    wildcard: bool

    def match(self, path: str) -> PathParams | None:
        """Match a raw (percent-encoded) *path* against the whole template.

        Captured values are percent-decoded after matching, so an encoded
        ``%2F`` stays inside its segment. Returns ``None`` on no match.
        """
        m = self.regex.fullmatch(path)
        if m is None:
            return None
        groups = m.groupdict()
        splat_raw = groups.pop(WILDCARD, None) or ""
        return PathParams({k: unquote(v) for k, v in groups.items()}, splat_raw)


def compile_pattern(template: str) -> CompiledPattern:
    """Compile a route template.

    Raises ``ConfigurationError`` for a second ``*``, a repeated capture
    name, or a capture that uses the reserved wildcard name.
    """
    parts: list[str] = []
    captures: list[str] = []
    wildcard = False

    for token in tokenize(template):
        match token:
            case Literal(text):
                parts.append(re.escape(text))
            case Capture(name):
                if name == WILDCARD:
                    msg = f"Route {template!r}: ':{WILDCARD}' is reserved for the wildcard."
                    raise ConfigurationError(msg)
                if name in captures:
                    msg = f"Route {template!r}: duplicate capture ':{name}'."
                    raise ConfigurationError(msg)
                captures.append(name)
                parts.append(f"(?P<{name}>[^/]+)")
            case Wildcard():
                if wildcard:
                    msg = f"Route {template!r}: only one '*' is allowed."
                    raise ConfigurationError(msg)
                wildcard = True
                parts.append(f"(?P<{WILDCARD}>.*?)")

    return CompiledPattern(
        template=template,
        regex=re.compile("".join(parts)),
        captures=tuple(captures),
        wildcard=wildcard,
    )
