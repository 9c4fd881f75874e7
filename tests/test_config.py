"""Tests for AppConfig defaults and the upload allow-list."""

import dataclasses

import pytest

from stowage.config import AppConfig


def test_defaults() -> None:
    config = AppConfig()
    assert config.secret_key == ""
    assert config.allow_origin is None
    assert config.allow_uploads_to == "all"
    assert config.content_max_age == 31_536_000
    assert config.max_upload_size is None
    assert config.logger_name == "stowage"


def test_frozen() -> None:
    config = AppConfig(secret_key="s")
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.secret_key = "other"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("allow", "backend", "expected"),
    [
        ("all", "cache", True),
        ("all", "anything", True),
        (("cache",), "cache", True),
        (("cache",), "store", False),
        ((), "cache", False),
    ],
)
def test_upload_allowed(allow, backend: str, expected: bool) -> None:
    assert AppConfig(allow_uploads_to=allow).upload_allowed(backend) is expected
