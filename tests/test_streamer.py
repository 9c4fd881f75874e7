"""Tests for stowage.server.streamer: file handles to streamed responses."""

import asyncio
import io
from email.utils import parsedate_to_datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from stowage.context import RequestContext
from stowage.errors import NotFound
from stowage.routing.pattern import PathParams
from stowage.server.streamer import (
    cache_headers,
    content_disposition,
    content_type_for,
    spool_prefix,
    stream_file,
)


@pytest.fixture
def make_ctx(build_request):
    def factory(app, path: str, resource_id: str = "42") -> RequestContext:
        return RequestContext(
            request=build_request(path),
            params=PathParams({"id": resource_id}),
            state=app.state,
        )

    return factory


class TestCacheHeaders:
    def test_cache_control(self) -> None:
        headers = cache_headers(3600, now=0)
        assert headers["Cache-Control"] == "public max-age=3600"

    def test_expires_is_now_plus_max_age(self) -> None:
        headers = cache_headers(60, now=1_700_000_000)
        expires = parsedate_to_datetime(headers["Expires"])
        assert expires.timestamp() == 1_700_000_060
        assert headers["Expires"].endswith("GMT")


class TestContentType:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/t/cache/42/photo.jpg", "image/jpeg"),
            ("/t/cache/42/doc.pdf", "application/pdf"),
            ("/t/cache/42/notes.txt", "text/plain"),
            ("/t/cache/42/noext", "application/octet-stream"),
        ],
    )
    def test_from_extension(self, path: str, expected: str) -> None:
        assert content_type_for(path) == expected


class TestContentDisposition:
    def test_ascii_name_is_quoted_as_is(self) -> None:
        assert content_disposition("photo.jpg") == 'inline; filename="photo.jpg"'

    def test_non_ascii_name_gets_fallback_and_utf8_form(self) -> None:
        assert content_disposition("фото.jpg") == (
            "inline; filename=\"____.jpg\"; filename*=UTF-8''%D1%84%D0%BE%D1%82%D0%BE.jpg"
        )

    def test_accents_fold_to_ascii(self) -> None:
        value = content_disposition("café.jpg")
        assert value.startswith('inline; filename="cafe.jpg"; ')
        assert value.endswith("filename*=UTF-8''caf%C3%A9.jpg")

    def test_quotes_are_replaced(self) -> None:
        value = content_disposition('a"b.jpg')
        assert value.startswith('inline; filename="a_b.jpg"; ')
        assert "%22" in value

    def test_control_characters_dropped(self) -> None:
        assert content_disposition("a\r\nb.jpg") == 'inline; filename="ab.jpg"'

    def test_always_latin1_encodable(self) -> None:
        for name in ("фото.jpg", "日本.png", "a\"\\b", "emoji-\U0001f600.gif"):
            content_disposition(name).encode("latin-1")


class TestSpoolPrefix:
    @pytest.mark.parametrize(
        ("resource_id", "expected"),
        [
            ("42", "42-"),
            ("a/b", "a_b-"),
            ("../etc", ".._etc-"),
            ("фото", "____-"),
            (None, "stowage-"),
            ("", "stowage-"),
        ],
    )
    def test_single_safe_component(self, resource_id, expected: str) -> None:
        assert spool_prefix(resource_id) == expected

    def test_long_ids_truncated(self) -> None:
        assert spool_prefix("x" * 200) == "x" * 64 + "-"


class TestStreamFile:
    @pytest.mark.asyncio
    async def test_local_path_streams_directly(self, make_app, make_ctx, tmp_path) -> None:
        source = tmp_path / "stored"
        source.write_bytes(b"on disk")
        ctx = make_ctx(make_app(content_max_age=100), "/t/store/42/photo.jpg")

        response = await stream_file(ctx, SimpleNamespace(path=str(source)))

        assert response.path == source
        assert response.owned is False
        assert response.content_type == "image/jpeg"
        headers = dict(response.headers)
        assert headers["Content-Disposition"] == 'inline; filename="photo.jpg"'
        assert headers["Cache-Control"] == "public max-age=100"
        assert "Expires" in headers

    @pytest.mark.asyncio
    async def test_missing_local_file_is_not_found(self, make_app, make_ctx, tmp_path) -> None:
        ctx = make_ctx(make_app(), "/t/store/42/photo.jpg")

        with pytest.raises(NotFound):
            await stream_file(ctx, SimpleNamespace(path=tmp_path / "gone"))

    @pytest.mark.asyncio
    async def test_stream_is_spooled_to_owned_temp_file(self, make_app, make_ctx) -> None:
        ctx = make_ctx(make_app(), "/t/cache/42/photo.jpg")
        handle = io.BytesIO(b"stream bytes")

        response = await stream_file(ctx, handle)
        try:
            assert response.owned is True
            assert response.path.read_bytes() == b"stream bytes"
            assert response.path.name.startswith("42-")
            assert handle.closed
        finally:
            response.release()

        assert not response.path.exists()

    @pytest.mark.asyncio
    async def test_concurrent_spools_never_collide(self, make_app, make_ctx) -> None:
        app = make_app()
        ctxs = [make_ctx(app, f"/t/cache/{i % 2}/photo.jpg", str(i % 2)) for i in range(10)]

        responses = await asyncio.gather(
            *(stream_file(ctx, io.BytesIO(str(i).encode())) for i, ctx in enumerate(ctxs))
        )
        try:
            paths = {r.path for r in responses}
            assert len(paths) == len(responses)
            for i, r in enumerate(responses):
                assert r.path.read_bytes() == str(i).encode()
        finally:
            for r in responses:
                r.release()

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self, make_app, make_ctx) -> None:
        ctx = make_ctx(make_app(), "/t/cache/42/a.bin")
        response = await stream_file(ctx, io.BytesIO(b"x"))
        response.release()
        response.release()
        assert not Path(response.path).exists()
