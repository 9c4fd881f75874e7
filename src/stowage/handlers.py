"""Route handlers for the attachment endpoints.

Each handler receives the per-request ``RequestContext`` and either
returns a response or raises; the dispatcher turns exceptions into the
single terminal response. ``ROUTES`` lists the handlers in the order
they must be registered: specific templates before general ones.
"""

from typing import Any

from stowage._internal.invoke import invoke
from stowage.context import RequestContext
from stowage.errors import Forbidden, InvalidFile, NotFound
from stowage.http.response import FileResponse, Response
from stowage.security.urls import attachment_url
from stowage.server.streamer import stream_file


def default_url_builder(ctx: RequestContext, backend: str, stored: Any, filename: str) -> str:
    """Signed download URL for a freshly uploaded file, under this mount."""
    return attachment_url(
        ctx.state.signer,
        backend,
        str(stored.id),
        filename or "file",
        host=ctx.config.url_host,
        prefix=ctx.request.root_path,
    )


# -- Shared steps --


def _require_token(ctx: RequestContext) -> None:
    if not ctx.verified():
        raise Forbidden(f"Invalid token for {ctx.request.path}")


def _require_upload_allowed(ctx: RequestContext) -> None:
    if not ctx.upload_allowed():
        raise NotFound(f"Uploads to {ctx.backend_name!r} are not allowed")


async def _file(ctx: RequestContext) -> Any:
    """Fetch the attachment named in the path and return its handle."""
    backend = ctx.backend()
    stored = await invoke(backend.get, ctx.resource_id)
    exists = getattr(stored, "exists", None)
    if stored is None or (callable(exists) and not await invoke(exists)):
        ctx.logger.error("Could not find attachment by id: %s", ctx.resource_id)
        raise NotFound(f"Missing attachment {ctx.resource_id!r}")
    download = getattr(stored, "download", None)
    if callable(download):
        return await invoke(download)
    return stored


async def _process(ctx: RequestContext, *, with_format: bool) -> FileResponse:
    _require_token(ctx)
    processor = ctx.processor()
    handle = await _file(ctx)
    kwargs = {"format": ctx.extension} if with_format else {}
    processed = await invoke(processor, handle, *ctx.splat, **kwargs)
    return await stream_file(ctx, processed)


# -- Handlers --


async def download(ctx: RequestContext) -> FileResponse:
    """GET /:token/:backend/:id/:filename"""
    _require_token(ctx)
    return await stream_file(ctx, await _file(ctx))


async def presign(ctx: RequestContext) -> Response:
    """GET /:backend/presign"""
    _require_upload_allowed(ctx)
    backend = ctx.backend()
    return Response.json(await invoke(backend.presign))


async def process_with_format(ctx: RequestContext) -> FileResponse:
    """Processor routes whose filename carries the requested output extension."""
    return await _process(ctx, with_format=True)


async def process(ctx: RequestContext) -> FileResponse:
    """Processor routes without an output format."""
    return await _process(ctx, with_format=False)


async def upload(ctx: RequestContext) -> Response:
    """POST /:backend: multipart upload with a ``file`` field."""
    _require_upload_allowed(ctx)
    backend = ctx.backend()
    form = await ctx.request.form(max_file_size=ctx.config.max_upload_size)
    try:
        if "file" not in form.files:
            msg = "Multipart body has no 'file' field"
            raise InvalidFile(msg)
        uploaded = form.files["file"]
        stored = await invoke(backend.upload, uploaded)
    finally:
        form.close()

    url = ctx.state.url_builder(ctx, ctx.backend_name or "", stored, uploaded.filename)
    return Response.json({"id": str(stored.id), "url": url})


def preflight(ctx: RequestContext) -> Response:
    """OPTIONS /:backend. CORS headers are added by the dispatcher."""
    return Response(body="")


ROUTES: tuple[tuple[str, str, Any], ...] = (
    ("GET", "/:token/:backend/:id/:filename", download),
    ("GET", "/:backend/presign", presign),
    ("GET", "/:token/:backend/:processor/*/:id/:file_basename.:extension", process_with_format),
    ("GET", "/:token/:backend/:processor/*/:id/:filename", process),
    ("GET", "/:token/:backend/:processor/:id/:file_basename.:extension", process_with_format),
    ("GET", "/:token/:backend/:processor/:id/:filename", process),
    ("POST", "/:backend", upload),
    ("OPTIONS", "/:backend", preflight),
)
