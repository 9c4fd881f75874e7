"""Per-request scope and the read-only application state it points at.

``AppState`` is built once when the app freezes and shared by every
request. ``RequestContext`` is created fresh for each request and
carries everything a handler needs: the request, the bound route
captures, a response-header accumulator, and the shared state.

Nothing here is shared between requests except ``AppState``, which is
frozen, so concurrent requests never interfere.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from stowage.config import AppConfig
from stowage.http.request import Request
from stowage.registry import Backend, Processor, Registry
from stowage.routing.pattern import PathParams
from stowage.security.tokens import TokenSigner, canonical_path

# Builds the URL returned after an upload: (ctx, backend, stored file, filename) -> url
type URLBuilder = Callable[[RequestContext, str, Any, str], str]


@dataclass(frozen=True, slots=True)
class AppState:
    """Process-wide, read-only state. Built at freeze time."""

    config: AppConfig
    backends: Registry[Backend]
    processors: Registry[Processor]
    signer: TokenSigner
    url_builder: URLBuilder
    logger: logging.Logger


@dataclass(slots=True)
class RequestContext:
    """Everything a route handler sees for one request.

    ``headers`` accumulates response headers (CORS, caching) that the
    dispatcher merges into the terminal response.
    """

    request: Request
    params: PathParams
    state: AppState
    headers: dict[str, str] = field(default_factory=dict)

    # -- Derived fields --

    @property
    def config(self) -> AppConfig:
        return self.state.config

    @property
    def logger(self) -> logging.Logger:
        return self.state.logger

    @property
    def backend_name(self) -> str | None:
        return self.params.get("backend")

    @property
    def processor_name(self) -> str | None:
        return self.params.get("processor")

    @property
    def resource_id(self) -> str | None:
        return self.params.get("id")

    @property
    def token(self) -> str | None:
        return self.params.get("token")

    @property
    def extension(self) -> str | None:
        return self.params.get("extension")

    @property
    def filename(self) -> str | None:
        """The requested filename, from either filename capture style."""
        if "filename" in self.params:
            return self.params["filename"]
        if "file_basename" in self.params:
            return f"{self.params['file_basename']}.{self.params['extension']}"
        return None

    @property
    def splat(self) -> tuple[str, ...]:
        return self.params.splat

    # -- Collaborator lookups --

    def backend(self) -> Backend:
        """The backend named in the path; ``NotFound`` if unknown."""
        return self.state.backends.lookup(self.backend_name, self.logger)

    def processor(self) -> Processor:
        """The processor named in the path; ``NotFound`` if unknown."""
        return self.state.processors.lookup(self.processor_name, self.logger)

    # -- Policy --

    def verified(self) -> bool:
        """Whether the path's token signs the rest of the path."""
        token = self.token or ""
        path = canonical_path(self.request.raw_path, token)
        return self.state.signer.verify(path, token)

    def upload_allowed(self) -> bool:
        return self.backend_name is not None and self.config.upload_allowed(self.backend_name)

    def set_cors_headers(self) -> None:
        """Add CORS headers when an allowed origin is configured."""
        origin = self.config.allow_origin
        if not origin:
            return
        req = self.request.headers
        self.headers["Access-Control-Allow-Origin"] = origin
        self.headers["Access-Control-Allow-Headers"] = req.get("access-control-request-headers", "")
        self.headers["Access-Control-Allow-Methods"] = req.get("access-control-request-method", "")
