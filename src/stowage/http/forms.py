"""Multipart form parsing with on-disk spooling for file parts.

Uses ``python-multipart``'s streaming parser, fed chunk by chunk from
the ASGI receive channel, so an upload is never held in memory. Each
file part is written to its own ``NamedTemporaryFile``; plain fields
are decoded as UTF-8.
"""

import os
import tempfile
from collections.abc import AsyncIterator, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from python_multipart.multipart import MultipartParser, parse_options_header

from stowage.errors import FileTooLarge, InvalidFile


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file spooled to a temporary file on disk.

    ``path`` is owned by the request that parsed it; ``close()`` removes
    the spool file and is safe to call more than once.
    """

    filename: str
    content_type: str
    size: int
    path: Path

    def open(self) -> IO[bytes]:
        """Open the spooled content for reading (binary)."""
        return self.path.open("rb")

    def read(self) -> bytes:
        """Return the whole file content."""
        return self.path.read_bytes()

    def close(self) -> None:
        """Delete the spool file."""
        self.path.unlink(missing_ok=True)

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    ``__getitem__`` returns the first value for a field.
    ``files`` maps field names to ``UploadFile`` objects.

    Usage::

        form = await request.form()
        try:
            upload = form.files["file"]
        finally:
            form.close()
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]],
        files: dict[str, UploadFile] | None = None,
    ) -> None:
        self._data = data
        self._files = files or {}

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """Uploaded files by field name."""
        return self._files

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}}, files={sorted(self._files)!r})"

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key, []))

    def close(self) -> None:
        """Remove every spooled upload."""
        for upload in self._files.values():
            upload.close()


class _Part:
    """Mutable state for the multipart part being parsed."""

    __slots__ = ("content_type", "data", "filename", "name", "size", "spool")

    def __init__(self) -> None:
        self.name: str | None = None
        self.filename: str | None = None
        self.content_type = "application/octet-stream"
        self.data = bytearray()
        self.size = 0
        self.spool: IO[bytes] | None = None


async def parse_multipart(
    chunks: AsyncIterator[bytes],
    content_type: str,
    *,
    max_file_size: int | None = None,
) -> FormData:
    """Parse a multipart body streamed as *chunks*.

    Raises:
        InvalidFile: Wrong content type, missing boundary, or a body
            the parser rejects.
        FileTooLarge: A file part grows beyond *max_file_size* bytes.
    """
    ctype, options = parse_options_header(content_type)
    if ctype != b"multipart/form-data":
        msg = f"Expected multipart/form-data, got {content_type!r}"
        raise InvalidFile(msg)
    boundary = options.get(b"boundary")
    if not boundary:
        msg = "Multipart form data missing boundary parameter"
        raise InvalidFile(msg)

    data: dict[str, list[str]] = {}
    files: dict[str, UploadFile] = {}
    part = _Part()
    header_field = bytearray()
    header_value = bytearray()

    def on_part_begin() -> None:
        nonlocal part
        part = _Part()

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        header_field.extend(chunk[start:end])

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        header_value.extend(chunk[start:end])

    def on_header_end() -> None:
        field = header_field.decode("latin-1").lower()
        value = header_value.decode("latin-1")
        header_field.clear()
        header_value.clear()
        if field == "content-disposition":
            _, params = parse_options_header(value)
            if b"name" in params:
                part.name = params[b"name"].decode("utf-8")
            if b"filename" in params:
                part.filename = params[b"filename"].decode("utf-8")
        elif field == "content-type":
            part.content_type = value

    def on_headers_finished() -> None:
        if part.filename is not None:
            part.spool = tempfile.NamedTemporaryFile(prefix="stowage-upload-", delete=False)

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        part.size += end - start
        if part.spool is None:
            part.data.extend(chunk[start:end])
            return
        if max_file_size is not None and part.size > max_file_size:
            raise FileTooLarge(part.size, max_file_size)
        part.spool.write(chunk[start:end])

    def on_part_end() -> None:
        if part.spool is not None:
            part.spool.close()
            upload = UploadFile(
                filename=os.path.basename(part.filename or ""),
                content_type=part.content_type,
                size=part.size,
                path=Path(part.spool.name),
            )
            part.spool = None
            if part.name is None:
                upload.close()
                return
            previous = files.get(part.name)
            if previous is not None:
                previous.close()
            files[part.name] = upload
        elif part.name is not None:
            data.setdefault(part.name, []).append(part.data.decode("utf-8", errors="replace"))

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
        "on_header_end": on_header_end,
        "on_headers_finished": on_headers_finished,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
    }
    parser = MultipartParser(boundary, callbacks)

    try:
        async for chunk in chunks:
            parser.write(chunk)
        parser.finalize()
    except FileTooLarge:
        _discard(part, files)
        raise
    except Exception as exc:
        _discard(part, files)
        msg = f"Malformed multipart body: {exc}"
        raise InvalidFile(msg) from exc

    return FormData(data, files)


def _discard(part: _Part, files: dict[str, UploadFile]) -> None:
    if part.spool is not None:
        part.spool.close()
        Path(part.spool.name).unlink(missing_ok=True)
    for upload in files.values():
        upload.close()
