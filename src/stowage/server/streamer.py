"""Turn a backend or processor file handle into a streamed response.

Handles that expose a local ``path`` are streamed straight from disk.
Anything else is treated as a readable byte stream and copied into a
temporary file first; the resulting ``FileResponse`` owns that file and
the sender deletes it after the body is sent (or abandoned).
"""

import logging
import mimetypes
import posixpath
import re
import shutil
import tempfile
import time
import unicodedata
from email.utils import formatdate
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

import anyio

from stowage.context import RequestContext
from stowage.errors import NotFound
from stowage.http.response import FileResponse
from stowage.registry import LocalFile

logger = logging.getLogger("stowage.streamer")

_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_UNSAFE_PREFIX_RE = re.compile(r"[^\w.-]", re.ASCII)


def cache_headers(max_age: int, *, now: float | None = None) -> dict[str, str]:
    """``Cache-Control`` and ``Expires`` headers for *max_age* seconds."""
    max_age = int(max_age)
    now = time.time() if now is None else now
    return {
        "Cache-Control": f"public max-age={max_age}",
        "Expires": formatdate(now + max_age, usegmt=True),
    }


def content_type_for(path: str) -> str:
    """MIME type for *path*'s extension, ``application/octet-stream`` if unknown."""
    content_type, _ = mimetypes.guess_type(path)
    return content_type or "application/octet-stream"


def content_disposition(filename: str) -> str:
    """``inline`` disposition for *filename*, safe to send as a latin-1 header.

    Control characters are dropped. Names that are not plain ASCII get an
    ASCII ``filename`` fallback plus the exact name as RFC 5987
    ``filename*``.
    """
    name = _CONTROL_RE.sub("", filename)
    decomposed = unicodedata.normalize("NFKD", name)
    fallback = "".join(
        c if c.isascii() and c not in '"\\' else "_"
        for c in decomposed
        if not unicodedata.combining(c)
    )
    if fallback == name:
        return f'inline; filename="{name}"'
    return f"inline; filename=\"{fallback}\"; filename*=UTF-8''{quote(name, safe='')}"


def spool_prefix(resource_id: str | None) -> str:
    """Temp file prefix for *resource_id*, reduced to one safe name component."""
    if not resource_id:
        return "stowage-"
    return f"{_UNSAFE_PREFIX_RE.sub('_', resource_id)[:64]}-"


def _spool(handle: Any, prefix: str) -> Path:
    """Copy a byte stream into a new temporary file and return its path."""
    with tempfile.NamedTemporaryFile(prefix=prefix, delete=False) as spool:
        try:
            shutil.copyfileobj(handle, spool)
        except BaseException:
            spool.close()
            Path(spool.name).unlink(missing_ok=True)
            raise
    return Path(spool.name)


async def stream_file(ctx: RequestContext, handle: Any) -> FileResponse:
    """Build the terminal response for *handle*.

    ``Content-Disposition`` and ``Content-Type`` come from the last
    segment of the request path, not from the handle.
    """
    # Last raw segment, decoded, so an encoded slash stays in the name.
    basename = unquote(posixpath.basename(ctx.request.raw_path.rstrip("/")))

    headers = {
        **cache_headers(ctx.config.content_max_age),
        "Content-Disposition": content_disposition(basename),
    }
    content_type = content_type_for(basename)

    if isinstance(handle, LocalFile):
        path = Path(handle.path)
        if not await anyio.Path(path).is_file():
            ctx.logger.error("Attachment %s has no file at %s", ctx.resource_id, path)
            raise NotFound(f"Missing file {path}")
        return FileResponse(
            path=path,
            content_type=content_type,
            headers=tuple(headers.items()),
        )

    # Resource id first so concurrent spools are identifiable; tempfile
    # appends a random suffix that keeps them unique.
    prefix = spool_prefix(ctx.resource_id)
    try:
        path = await anyio.to_thread.run_sync(_spool, handle, prefix)
    finally:
        close = getattr(handle, "close", None)
        if callable(close):
            close()
    logger.debug("Spooled %s to %s", ctx.resource_id, path)

    return FileResponse(
        path=path,
        content_type=content_type,
        headers=tuple(headers.items()),
        owned=True,
    )
