"""Signed access tokens for attachment URLs.

A token is the ``itsdangerous`` HMAC signature (SHA-256) of the
attachment's resource path, e.g. ``/cache/42/photo.jpg``. It is
deterministic, carries no expiry, and needs no server-side state.

Usage::

    signer = TokenSigner("s3cr3t")
    token = signer.sign("/cache/42/photo.jpg")
    url = f"/{token}/cache/42/photo.jpg"

    signer.verify(canonical_path(request.path, token), token)  # True
"""

import hashlib
import hmac

from itsdangerous import Signer

from stowage.errors import ConfigurationError

_SALT = "stowage.attachment"


def canonical_path(path: str, token: str) -> str:
    """Strip the leading ``/<token>`` segment from a mount-relative path.

    The signature covers only the resource path, so the same token is
    valid wherever the app is mounted. Paths that do not start with the
    token segment are returned unchanged and will fail verification.
    """
    prefix = f"/{token}"
    if token and (path == prefix or path.startswith(prefix + "/")):
        return path[len(prefix) :]
    return path


class TokenSigner:
    """Signs and verifies resource paths with a shared secret."""

    __slots__ = ("_signer",)

    def __init__(self, secret_key: str) -> None:
        if not secret_key:
            msg = "AppConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._signer = Signer(
            secret_key,
            salt=_SALT,
            key_derivation="hmac",
            digest_method=hashlib.sha256,
        )

    def sign(self, path: str) -> str:
        """Return the URL-safe token for *path*."""
        return self._signer.get_signature(path).decode("ascii")

    def verify(self, path: str, token: str) -> bool:
        """True only when *token* is exactly the token for *path*.

        Compares the encoded strings rather than decoded signature bytes,
        so alternate base64 spellings of a valid signature are rejected.
        """
        if not token:
            return False
        return hmac.compare_digest(token.encode("utf-8"), self.sign(path).encode("ascii"))
