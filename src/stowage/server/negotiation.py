"""Content negotiation: check handler return values.

Handlers return a ``Response`` or a ``FileResponse``. Anything else is a
programming error and is reported through the normal error pipeline.
"""

from typing import Any

from stowage.http.response import AnyResponse, FileResponse, Response


def negotiate(value: Any) -> AnyResponse:
    """Return *value* when it is a response, else raise ``TypeError``."""
    match value:
        case Response() | FileResponse():
            return value
        case _:
            msg = f"Cannot convert {type(value).__name__} to a response"
            raise TypeError(msg)
