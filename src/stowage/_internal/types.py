"""Shared type aliases used across stowage modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler; receives the per-request RequestContext
Handler: TypeAlias = Callable[..., Any]
