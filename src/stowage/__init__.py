"""Stowage: an ASGI app that serves, uploads and transforms attachments.

Files are addressed by backend name and opaque id, downloads are gated
by signed tokens, and processors transform files on the fly.

Basic usage::

    from stowage import App, AppConfig

    app = App(
        AppConfig(secret_key="s3cr3t"),
        backends={"store": store},
        processors={"fill": fill},
    )

Serve ``app`` with any ASGI server, mounted at any prefix.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "FileTooLarge",
    "Forbidden",
    "HTTPError",
    "InvalidFile",
    "NotFound",
    "RequestContext",
    "StowageError",
    "TokenSigner",
    "attachment_url",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import stowage`` fast while providing a clean top-level API.
    """
    if name == "App":
        from stowage.app import App

        return App

    if name == "AppConfig":
        from stowage.config import AppConfig

        return AppConfig

    if name == "RequestContext":
        from stowage.context import RequestContext

        return RequestContext

    if name in ("TokenSigner", "attachment_url"):
        from stowage import security as _security

        return getattr(_security, name)

    if name in (
        "ConfigurationError",
        "FileTooLarge",
        "Forbidden",
        "HTTPError",
        "InvalidFile",
        "NotFound",
        "StowageError",
    ):
        from stowage import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
