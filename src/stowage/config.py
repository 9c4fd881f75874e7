"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    Only ``secret_key`` is required. Override what you need::

        config = AppConfig(
            secret_key="s3cr3t",
            allow_origin="https://example.com",
            allow_uploads_to=("cache",),
        )
    """

    # Security
    secret_key: str = ""

    # CORS; None disables the headers entirely
    allow_origin: str | None = None

    # Backends that accept POST uploads and presign requests
    allow_uploads_to: Literal["all"] | tuple[str, ...] = "all"

    # Caching
    content_max_age: int = 60 * 60 * 24 * 365  # one year

    # Limits
    max_upload_size: int | None = None

    # Generated attachment URLs
    url_host: str = ""

    # Streaming
    chunk_size: int = 64 * 1024

    # Logger used as the sink for request errors
    logger_name: str = "stowage"

    def upload_allowed(self, backend: str) -> bool:
        """Whether *backend* may receive uploads and presign requests."""
        if self.allow_uploads_to == "all":
            return True
        return backend in self.allow_uploads_to
