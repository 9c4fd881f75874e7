"""Backend and processor registries.

Storage backends and file processors are external collaborators. The
core only needs the narrow shapes below, and looks them up by the name
taken from the request path. Registries are built once, when the app
freezes, and never mutated afterwards.

Backends and processors may be plain or ``async`` callables; the core
awaits whatever they return.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import IO, Any, Protocol, runtime_checkable

from stowage.errors import NotFound
from stowage.http.forms import UploadFile


@runtime_checkable
class LocalFile(Protocol):
    """A file handle backed by a path on the local filesystem."""

    path: Any


@runtime_checkable
class ByteStream(Protocol):
    """A file handle that only exposes its bytes as a readable stream."""

    def read(self, size: int = -1, /) -> bytes: ...


type FileHandle = LocalFile | ByteStream | IO[bytes]


class StoredFile(Protocol):
    """What a backend returns from ``get`` and ``upload``.

    ``exists()`` is consulted when present; ``download()``, when present,
    yields the handle to stream. Otherwise the stored file itself is
    treated as the handle.
    """

    id: str


class Backend(Protocol):
    def get(self, id: str) -> Any: ...

    def upload(self, upload: UploadFile) -> Any: ...

    def presign(self) -> Any: ...


class Processor(Protocol):
    def __call__(self, file: Any, *args: str, format: str | None = None) -> Any: ...


class Registry[T](Mapping[str, T]):
    """An immutable name -> capability mapping.

    ``lookup`` is the request-time accessor: a missing name is logged and
    surfaces as ``NotFound``, never as a crash.
    """

    __slots__ = ("_items", "kind")

    def __init__(self, kind: str, items: Mapping[str, T] | None = None) -> None:
        self.kind = kind
        self._items: Mapping[str, T] = MappingProxyType(dict(items or {}))

    def __getitem__(self, name: str) -> T:
        return self._items[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Registry({self.kind!r}, {sorted(self._items)!r})"

    def lookup(self, name: str | None, logger: logging.Logger) -> T:
        """Return the capability registered as *name*.

        Raises ``NotFound`` (after logging) when nothing is registered.
        """
        if name is not None and name in self._items:
            return self._items[name]
        logger.error("Could not find %s: %s", self.kind, name)
        raise NotFound(f"Unknown {self.kind} {name!r}")
