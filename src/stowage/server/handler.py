"""ASGI handler: translates ASGI scope/messages to stowage types.

The only component that touches raw ASGI directly. Builds a Request,
resolves the route, runs the handler inside a fresh RequestContext,
maps any failure to a status, and sends exactly one response.
"""

import logging

from stowage._internal.asgi import Receive, Scope, Send
from stowage._internal.invoke import invoke
from stowage.context import AppState, RequestContext
from stowage.http.request import Request
from stowage.http.response import AnyResponse, FileResponse
from stowage.routing.router import Router
from stowage.server.errors import NOT_FOUND, handle_error
from stowage.server.negotiation import negotiate
from stowage.server.sender import encode_headers, send_file_response, send_response

logger = logging.getLogger("stowage.server")


async def dispatch(request: Request, *, router: Router, state: AppState) -> AnyResponse:
    """Resolve *request* to its terminal response. Never raises."""
    match = router.match(request.method, request.raw_path)
    if match is None:
        logger.debug("No route for %s %s", request.method, request.path)
        return NOT_FOUND

    ctx = RequestContext(request=request, params=match.params, state=state)
    ctx.set_cors_headers()
    response: AnyResponse | None = None
    try:
        response = negotiate(await invoke(match.route.handler, ctx))
        if ctx.headers:
            response = response.with_headers(ctx.headers)
        # Headers must encode before the response leaves the error trap.
        encode_headers(response.content_type, response.headers)
    except Exception as exc:
        if isinstance(response, FileResponse):
            response.release()
        return handle_error(exc, request, ctx.headers, state.logger)
    return response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    state: AppState,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    response = await dispatch(request, router=router, state=state)

    if isinstance(response, FileResponse):
        await send_file_response(
            response,
            send,
            head=request.is_head,
            chunk_size=state.config.chunk_size,
        )
    else:
        await send_response(response, send, head=request.is_head)
