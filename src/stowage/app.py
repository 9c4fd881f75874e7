"""Stowage application class.

Mutable during setup (backend and processor registration). Frozen at
runtime when ``__call__()`` is first invoked.
"""

import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from stowage._internal.asgi import Receive, Scope, Send
from stowage.config import AppConfig
from stowage.context import AppState, URLBuilder
from stowage.errors import ConfigurationError
from stowage.handlers import ROUTES, default_url_builder
from stowage.registry import Backend, Processor, Registry
from stowage.routing.route import Route
from stowage.routing.router import Router
from stowage.security.tokens import TokenSigner
from stowage.server.handler import handle_request


class App:
    """The stowage ASGI application.

    Mount it under any prefix of an ASGI server::

        app = App(
            AppConfig(secret_key="s3cr3t", allow_uploads_to=("cache",)),
            backends={"store": store, "cache": cache},
            processors={"fill": fill},
        )

    Thread safety:
        Setup is single-threaded. The freeze transition uses a Lock +
        double-check so exactly one thread builds the route table and
        registries. After that, everything requests touch is read-only.
    """

    __slots__ = (
        "_backends",
        "_freeze_lock",
        "_frozen",
        "_logger",
        "_processors",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "_state",
        "_url_builder",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        backends: Mapping[str, Backend] | None = None,
        processors: Mapping[str, Processor] | None = None,
        url_builder: URLBuilder | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._backends: dict[str, Backend] = dict(backends or {})
        self._processors: dict[str, Processor] = dict(processors or {})
        self._url_builder: URLBuilder = url_builder or default_url_builder
        self._logger: logging.Logger = logger or logging.getLogger(self.config.logger_name)
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._state: AppState | None = None

    # -- Collaborator registration --

    def backend(self, name: str, backend: Backend) -> None:
        """Register a storage backend under *name*."""
        self._check_not_frozen()
        self._backends[name] = backend

    def processor(self, name: str, processor: Processor) -> None:
        """Register a file processor under *name*."""
        self._check_not_frozen()
        self._processors[name] = processor

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook to run during ASGI lifespan startup."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook to run during ASGI lifespan shutdown."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def router(self) -> Router:
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    @property
    def state(self) -> AppState:
        self._ensure_frozen()
        assert self._state is not None
        return self._state

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()

        assert self._router is not None
        assert self._state is not None

        await handle_request(scope, receive, send, router=self._router, state=self._state)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup, so configuration errors fail the
        server's startup instead of the first request.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    self._logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        if not self.config.secret_key:
            msg = "AppConfig.secret_key must be set to sign and verify attachment URLs."
            raise ConfigurationError(msg)

        router = Router()
        for method, path, handler in ROUTES:
            router.add(Route(path=path, handler=handler, methods=frozenset({method})))
        router.compile()

        self._state = AppState(
            config=self.config,
            backends=Registry("backend", self._backends),
            processors=Registry("processor", self._processors),
            signer=TokenSigner(self.config.secret_key),
            url_builder=self._url_builder,
            logger=self._logger,
        )
        self._router = router
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register backends and processors before the first request."
            )
            raise RuntimeError(msg)
