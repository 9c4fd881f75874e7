"""Attachment URL construction.

Builds the signed URLs that the download and processor routes accept::

    <host><prefix>/<token>/<backend>/<id>/<filename>
    <host><prefix>/<token>/<backend>/<processor>/<args...>/<id>/<filename>

The token signs everything after itself, so a URL stays valid when the
host or mount prefix changes.
"""

import posixpath
from urllib.parse import quote

from stowage.security.tokens import TokenSigner


def _filename(filename: str, format: str | None) -> str:
    if format:
        stem, _ = posixpath.splitext(filename)
        return f"{stem}.{format}"
    return filename


def _signed(signer: TokenSigner, path: str, host: str, prefix: str) -> str:
    token = signer.sign(path)
    return f"{host}{prefix.rstrip('/')}/{token}{path}"


def attachment_url(
    signer: TokenSigner,
    backend: str,
    file_id: str,
    filename: str = "file",
    *,
    host: str = "",
    prefix: str = "",
    format: str | None = None,
) -> str:
    """Return the signed download URL for a stored file.

    When *format* is given it replaces the filename's extension, which
    the download route passes through as the ``Content-Type`` hint.
    """
    name = quote(_filename(filename, format), safe="")
    path = f"/{backend}/{quote(file_id, safe='')}/{name}"
    return _signed(signer, path, host, prefix)


def processed_url(
    signer: TokenSigner,
    backend: str,
    processor: str,
    file_id: str,
    filename: str = "file",
    *args: str,
    host: str = "",
    prefix: str = "",
    format: str | None = None,
) -> str:
    """Return the signed URL that runs *processor* on a stored file.

    Positional *args* become the wildcard segments, e.g.
    ``processed_url(signer, "cache", "fill", "42", "a.jpg", "300", "300")``
    addresses ``/cache/fill/300/300/42/a.jpg``.
    """
    segments = [backend, processor, *(quote(str(a), safe="") for a in args)]
    name = quote(_filename(filename, format), safe="")
    path = "/" + "/".join(segments) + f"/{quote(file_id, safe='')}/{name}"
    return _signed(signer, path, host, prefix)
