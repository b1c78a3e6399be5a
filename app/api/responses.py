"""Response classes shared by every route.

Every response carries ``Content-Type`` and ``Accept`` headers set to
``application/json; charset=utf-8``. Message bodies are JSON objects with a
single ``message`` field, indented by two spaces.
"""

import json
from typing import Any, Iterable

from fastapi import Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
ACCEPT_HEADER = "Accept"


class IndentedJSONResponse(JSONResponse):
    media_type = JSON_CONTENT_TYPE

    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=2).encode("utf-8")


def message_response(status_code: int, message: str) -> IndentedJSONResponse:
    return IndentedJSONResponse(
        status_code=status_code,
        content={"message": message},
        headers={ACCEPT_HEADER: JSON_CONTENT_TYPE},
    )


def json_lines_response(lines: Iterable[bytes]) -> StreamingResponse:
    """Stream newline-delimited JSON with a 200 status."""
    return StreamingResponse(
        lines,
        status_code=200,
        media_type=JSON_CONTENT_TYPE,
        headers={ACCEPT_HEADER: JSON_CONTENT_TYPE},
    )


async def http_exception_handler(
    _request: Request, exc: Exception
) -> IndentedJSONResponse:
    """Render framework HTTP errors (404 on unknown paths, ...) as message objects."""
    if isinstance(exc, StarletteHTTPException):
        response = message_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response
    return message_response(500, "500 Internal Server Error")
