"""Security utilities: signed attachment tokens and URL building.

Usage::

    from stowage.security import TokenSigner, attachment_url

    signer = TokenSigner("s3cr3t")
    url = attachment_url(signer, "store", "42", "photo.jpg")
"""

from stowage.security.tokens import TokenSigner, canonical_path
from stowage.security.urls import attachment_url, processed_url

__all__ = [
    "TokenSigner",
    "attachment_url",
    "canonical_path",
    "processed_url",
]
