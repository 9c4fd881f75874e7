"""Invoke helpers: call sync or async collaborators uniformly.

Route handlers, backends and processors can be plain functions or
coroutines. Any code that calls one of them goes through ``invoke`` so
the sync/async check lives in exactly one place.

Usage::

    from stowage._internal.invoke import invoke

    stored = await invoke(backend.upload, upload)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
