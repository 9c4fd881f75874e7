"""Error handling pipeline for stowage requests.

Maps exceptions raised anywhere in a handler to exactly one terminal
response. Clients only ever see static bodies; the real cause goes to
the log.

Precedence (first match wins):

1. ``InvalidFile``  -> 400 ``Upload failure error``
2. ``FileTooLarge`` -> 413 ``Upload failure error``
3. ``HTTPError``    -> its status, static body (``not found``, ``forbidden``)
4. anything else    -> 400 ``error``, message and traceback logged
"""

import logging
import traceback

from stowage.errors import FileTooLarge, HTTPError, InvalidFile, UploadError
from stowage.http.request import Request
from stowage.http.response import Response

logger = logging.getLogger("stowage.server")

TEXT = "text/plain;charset=utf-8"
HTML = "text/html;charset=utf-8"

NOT_FOUND = Response(body="not found", status=404, content_type=TEXT)
FORBIDDEN = Response(body="forbidden", status=403, content_type=TEXT)

_STATIC: dict[int, Response] = {404: NOT_FOUND, 403: FORBIDDEN}


def handle_upload_error(
    exc: UploadError,
    headers: dict[str, str],
    sink: logging.Logger,
) -> Response:
    """Map an upload failure to 400 or 413 with a generic body."""
    sink.error("Error -> %s", exc)
    status = 413 if isinstance(exc, FileTooLarge) else 400
    return Response(
        body="Upload failure error",
        status=status,
        content_type=HTML,
        headers=tuple(headers.items()),
    )


def handle_http_error(exc: HTTPError, request: Request) -> Response:
    """Map an HTTPError to its static response."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    response = _STATIC.get(exc.status) or Response(
        body=str(exc.status), status=exc.status, content_type=TEXT
    )
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


def handle_internal_error(
    exc: Exception,
    headers: dict[str, str],
    sink: logging.Logger,
) -> Response:
    """Log the failure with its full traceback and answer 400 ``error``."""
    sink.error("Error -> %s", exc)
    for line in traceback.format_exception(exc):
        for part in line.rstrip("\n").splitlines():
            sink.error(part)
    return Response(body="error", status=400, content_type=TEXT, headers=tuple(headers.items()))


def handle_error(
    exc: Exception,
    request: Request,
    headers: dict[str, str],
    sink: logging.Logger,
) -> Response:
    """Dispatch *exc* to the matching handler, in precedence order."""
    match exc:
        case InvalidFile() | FileTooLarge():
            return handle_upload_error(exc, headers, sink)
        case HTTPError():
            return handle_http_error(exc, request)
        case _:
            return handle_internal_error(exc, headers, sink)
