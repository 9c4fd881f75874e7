"""Stowage exception hierarchy.

Shared across the router, the request handler, the streamer, and the
storage backends, so every module raises and catches the same types.
"""

from dataclasses import dataclass


class StowageError(Exception):
    """Base for all stowage-specific errors."""


class ConfigurationError(StowageError):
    """Raised when app configuration or a route template is invalid.

    Typically caught during ``App._freeze()`` at startup.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(StowageError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers and the registry lookups. The ASGI handler catches
    these and answers with the status and a static body; ``detail`` is
    only ever written to the log.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: unknown route, backend, processor or attachment."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403: the signed token does not match the requested path."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class UploadError(StowageError):
    """Base for errors raised while accepting an uploaded file.

    Backends raise the subclasses from ``upload()``; the multipart parser
    raises them for malformed or oversized bodies.
    """


class InvalidFile(UploadError):  # noqa: N818
    """The uploaded file was rejected (missing, malformed, wrong type)."""


class FileTooLarge(UploadError):  # noqa: N818
    """The uploaded file exceeds the configured size limit."""

    def __init__(self, size: int | None = None, limit: int | None = None) -> None:
        self.size = size
        self.limit = limit
        if limit is not None:
            super().__init__(f"Upload exceeds {limit} bytes")
        else:
            super().__init__("Upload too large")
