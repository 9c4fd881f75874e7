"""Test utilities for stowage applications.

Provides an in-process ASGI test client and a multipart encoder::

    from stowage.testing import TestClient, encode_multipart
"""

from stowage.testing.client import TestClient, encode_multipart

__all__ = ["TestClient", "encode_multipart"]
