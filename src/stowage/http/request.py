"""Immutable HTTP request.

Frozen metadata with async body access, built once per ASGI call.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from stowage._internal.asgi import Receive, Scope
from stowage.http.headers import Headers

if TYPE_CHECKING:
    from stowage.http.forms import FormData


def _strip_root(path: str, root_path: str) -> str:
    if root_path and path.startswith(root_path):
        return path[len(root_path) :] or "/"
    return path


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the decoded, mount-relative path. ``raw_path`` is the same
    path still percent-encoded; routing and token verification use it so
    that signatures cover the exact bytes the client sent. ``root_path``
    is the prefix the app is mounted under.
    """

    method: str
    path: str
    raw_path: str
    root_path: str
    headers: Headers
    query_string: str
    http_version: str
    client: tuple[str, int] | None

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: mutable cache for the parsed form data
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    # -- Async body access --

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def form(self, *, max_file_size: int | None = None) -> FormData:
        """Parse a ``multipart/form-data`` body.

        File parts are spooled to temporary files on disk; callers own
        them and must call ``FormData.close()`` when done.

        Raises:
            InvalidFile: The body is not multipart or is malformed.
            FileTooLarge: A file part exceeds *max_file_size* bytes.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from stowage.http.forms import parse_multipart

        result = await parse_multipart(
            self.stream(),
            self.content_type or "",
            max_file_size=max_file_size,
        )
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        root_path = scope.get("root_path", "")
        path = scope["path"]
        raw = scope.get("raw_path")
        raw_path = raw.decode("latin-1") if raw else quote(path)
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=_strip_root(path, root_path),
            raw_path=_strip_root(raw_path, quote(root_path)),
            root_path=root_path,
            headers=Headers(tuple(scope.get("headers", ()))),
            query_string=scope.get("query_string", b"").decode("latin-1"),
            http_version=scope.get("http_version", "1.1"),
            client=tuple(client) if client else None,
            _receive=receive,
        )
