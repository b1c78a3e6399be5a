"""The single persister resource at ``/``.

PUT appends a stream of ``{"logical_key": "<base64 ciphertext>"}`` objects in
one all-or-nothing transaction. GET streams every committed record back as
newline-delimited JSON. POST and DELETE are reserved; any other verb is a bad
request.
"""

import contextvars
import queue
import threading
from typing import Iterator

import anyio
from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from api.responses import json_lines_response, message_response
from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, OperationStatus
from modules.persister import PersisterService, classify_persister_error
from modules.persister.domain import MalformedInputError

logger = get_module_logger()

NOT_IMPLEMENTED_MESSAGE = "Method not implemented yet."
BAD_REQUEST_MESSAGE = "400 Bad Request"

_STATUS_CODES = {
    OperationStatus.SUCCESS: 200,
    OperationStatus.INVALID_INPUT: 400,
    OperationStatus.STORAGE_ERROR: 500,
    OperationStatus.INTERNAL_ERROR: 500,
}

_END_OF_EXPORT = object()


def status_code_for(result: OperationResult) -> int:
    return _STATUS_CODES.get(result.status, 500)


def stream_export(service: PersisterService) -> Iterator[bytes]:
    """Yield export lines produced by a worker thread.

    The worker holds the read transaction for the whole enumeration and
    never blocks on the client, so a slow reader cannot pin the store lock.
    """
    lines: "queue.Queue[object]" = queue.Queue()

    def _produce() -> None:
        try:
            service.export(lines.put)
        finally:
            lines.put(_END_OF_EXPORT)

    context = contextvars.copy_context()
    worker = threading.Thread(
        target=context.run,
        args=(_produce,),
        name="persister-export",
        daemon=True,
    )
    worker.start()

    while True:
        item = lines.get()
        if item is _END_OF_EXPORT:
            break
        yield item  # type: ignore[misc]


class PersisterEndpoint:
    """ASGI endpoint dispatching every HTTP verb on the resource."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        response = await self.dispatch(request)
        await response(scope, receive, send)

    async def dispatch(self, request: Request) -> Response:
        method = request.method.upper()
        if method == "PUT":
            return await self.put(request)
        if method == "GET":
            return self.get(request)
        if method in ("POST", "DELETE"):
            logger.info("method_not_implemented", method=method)
            return message_response(501, NOT_IMPLEMENTED_MESSAGE)
        logger.warning("unsupported_method", method=method)
        return message_response(400, BAD_REQUEST_MESSAGE)

    async def put(self, request: Request) -> Response:
        service: PersisterService = request.app.state.persister
        read_timeout = request.app.state.settings.server.READ_TIMEOUT_SECONDS
        decoder = service.decoder()

        try:
            with anyio.fail_after(read_timeout):
                async for chunk in request.stream():
                    decoder.feed(chunk)
            batch = decoder.finish()
        except MalformedInputError as exc:
            logger.warning("malformed_input", error=str(exc))
            result = classify_persister_error(exc)
        except ClientDisconnect:
            logger.warning("client_disconnected")
            result = classify_persister_error(
                MalformedInputError("client disconnected before the body was complete")
            )
        except TimeoutError:
            logger.warning("request_body_timeout", timeout_seconds=read_timeout)
            result = classify_persister_error(
                MalformedInputError("timed out reading the request body")
            )
        else:
            result = await run_in_threadpool(service.persist, batch)

        return message_response(status_code_for(result), result.message or "")

    def get(self, request: Request) -> Response:
        service: PersisterService = request.app.state.persister
        return json_lines_response(stream_export(service))


router = APIRouter(tags=["Persister"])
router.add_route("/", PersisterEndpoint(), include_in_schema=False)
