"""HTTP responses with a chainable .with_*() transformation API.

Each transformation returns a new object. Immutable by convention,
built incrementally by design.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class Response:
    """An in-memory HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to add
    headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain;charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    # -- Constructors --

    @classmethod
    def json(cls, payload: Any, *, status: int = 200) -> Response:
        """Serialize *payload* as a JSON response."""
        return cls(
            body=json_module.dumps(payload, default=_json_default),
            status=status,
            content_type="application/json",
        )

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class FileResponse:
    """A response whose body is streamed from a file on disk.

    When ``owned`` is true the file is a temporary spool created for this
    response; the sender deletes it once the body has been sent, or when
    sending is abandoned for any reason.

    Supports the same ``.with_*()`` chainable API as ``Response`` so the
    dispatcher can add headers without knowing the body is a file.
    """

    path: Path
    status: int = 200
    content_type: str = "application/octet-stream"
    headers: tuple[tuple[str, str], ...] = ()
    owned: bool = False

    def with_header(self, name: str, value: str) -> FileResponse:
        """Return a new FileResponse with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> FileResponse:
        """Return a new FileResponse with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def release(self) -> None:
        """Delete the file if this response owns it."""
        if self.owned:
            self.path.unlink(missing_ok=True)


type AnyResponse = Response | FileResponse


def _json_default(value: Any) -> Any:
    """Serialize presign payloads: dataclasses and ``as_dict()`` objects."""
    import dataclasses

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    as_dict = getattr(value, "as_dict", None)
    if callable(as_dict):
        return as_dict()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)
