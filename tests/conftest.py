"""Shared fixtures: backend and processor doubles, app factory."""

import io
import itertools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import unquote

import pytest

from stowage.app import App
from stowage.config import AppConfig
from stowage.errors import FileTooLarge, InvalidFile
from stowage.http.forms import UploadFile
from stowage.http.headers import Headers
from stowage.http.request import Request
from stowage.security.tokens import TokenSigner

SECRET = "test-secret"


@dataclass
class MemoryFile:
    """A stored blob whose handle is a plain byte stream."""

    id: str
    content: bytes

    def exists(self) -> bool:
        return True

    def download(self) -> io.BytesIO:
        return io.BytesIO(self.content)


@dataclass
class DiskFile:
    """A handle with a local path, streamed without spooling."""

    id: str
    path: Path


class MemoryBackend:
    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files: dict[str, bytes] = dict(files or {})
        self.uploads: list[tuple[str, bytes, str]] = []
        self._ids = itertools.count(1000)

    def get(self, id: str) -> MemoryFile | None:
        if id not in self.files:
            return None
        return MemoryFile(id, self.files[id])

    def upload(self, upload: UploadFile) -> MemoryFile:
        content = upload.read()
        if content == b"invalid":
            raise InvalidFile("rejected by backend")
        if len(content) > 1024:
            raise FileTooLarge(len(content), 1024)
        file_id = str(next(self._ids))
        self.files[file_id] = content
        self.uploads.append((file_id, content, upload.filename))
        return MemoryFile(file_id, content)

    def presign(self) -> dict[str, Any]:
        return {"id": "presigned", "url": "https://uploads.example.com", "fields": {}}


class DiskBackend:
    def __init__(self, root: Path) -> None:
        self.root = root

    def get(self, id: str) -> DiskFile:
        return DiskFile(id, self.root / id)

    def upload(self, upload: UploadFile) -> DiskFile:
        target = self.root / f"up-{upload.size}"
        target.write_bytes(upload.read())
        return DiskFile(target.name, target)

    def presign(self) -> dict[str, Any]:
        return {}


@dataclass
class RecordingProcessor:
    """Uppercases the content and remembers how it was called."""

    calls: list[tuple[tuple[str, ...], str | None]] = field(default_factory=list)

    def __call__(self, file: Any, *args: str, format: str | None = None) -> io.BytesIO:
        self.calls.append((args, format))
        return io.BytesIO(file.read().upper())


@pytest.fixture
def signer() -> TokenSigner:
    return TokenSigner(SECRET)


@pytest.fixture
def store(tmp_path) -> DiskBackend:
    root = tmp_path / "store"
    root.mkdir()
    (root / "7").write_bytes(b"from disk")
    return DiskBackend(root)


@pytest.fixture
def cache() -> MemoryBackend:
    return MemoryBackend({"42": b"jpeg bytes"})


@pytest.fixture
def resize() -> RecordingProcessor:
    return RecordingProcessor()


@pytest.fixture
def make_app(store, cache, resize):
    """Factory: build an App with the standard doubles and config overrides."""

    def factory(**overrides: Any) -> App:
        config = AppConfig(secret_key=SECRET, **overrides)
        return App(
            config,
            backends={"store": store, "cache": cache},
            processors={"resize": resize},
        )

    return factory


@pytest.fixture
def signed(signer):
    """Prefix a resource path with its token: ``signed("/cache/42/a.jpg")``."""

    def sign(path: str) -> str:
        return f"/{signer.sign(path)}{path}"

    return sign


@pytest.fixture
def build_request():
    """Factory: a GET ``Request`` for *path* with an empty body."""

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b""}

    def factory(path: str, method: str = "GET", headers: dict[str, str] | None = None) -> Request:
        return Request(
            method=method,
            path=unquote(path),
            raw_path=path,
            root_path="",
            headers=Headers.from_dict(headers or {}),
            query_string="",
            http_version="1.1",
            client=None,
            _receive=receive,
        )

    return factory
