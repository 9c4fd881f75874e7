"""ASGI response sending: translates stowage responses to ASGI messages.

``Response`` bodies go out in a single message. ``FileResponse`` bodies
are read in chunks and sent with ``more_body=True``; an owned spool file
is deleted in every case, including HEAD requests and failed sends.
"""

import anyio

from stowage._internal.asgi import Send
from stowage.http.response import FileResponse, Response


def encode_headers(
    content_type: str,
    headers: tuple[tuple[str, str], ...],
) -> list[tuple[bytes, bytes]]:
    """Encode response headers for ASGI.

    Raises ``UnicodeEncodeError`` when a value is not latin-1.
    """
    raw = [(b"content-type", content_type.encode("latin-1"))]
    raw.extend((name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers)
    return raw


def _raw_headers(
    content_type: str,
    headers: tuple[tuple[str, str], ...],
    content_length: int,
) -> list[tuple[bytes, bytes]]:
    raw = encode_headers(content_type, headers)
    raw.append((b"content-length", str(content_length).encode("latin-1")))
    return raw


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a Response into ASGI send() calls.

    For HEAD the body is dropped but ``Content-Length`` still reports
    the size of the body a GET would have received.
    """
    body = response.body_bytes
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": _raw_headers(response.content_type, response.headers, len(body)),
        }
    )
    await send({"type": "http.response.body", "body": b"" if head else body})


async def send_file_response(
    response: FileResponse,
    send: Send,
    *,
    head: bool = False,
    chunk_size: int = 64 * 1024,
) -> None:
    """Stream a FileResponse from disk, then release it."""
    try:
        size = (await anyio.Path(response.path).stat()).st_size
        await send(
            {
                "type": "http.response.start",
                "status": response.status,
                "headers": _raw_headers(response.content_type, response.headers, size),
            }
        )
        if head:
            await send({"type": "http.response.body", "body": b""})
            return

        async with await anyio.open_file(response.path, "rb") as f:
            while chunk := await f.read(chunk_size):
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
        await send({"type": "http.response.body", "body": b"", "more_body": False})
    finally:
        response.release()
