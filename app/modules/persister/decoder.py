"""Incremental decoder for concatenated JSON objects.

Request bodies are a sequence of JSON objects written back to back, with
optional whitespace between them and no wrapping array::

    {"key1":"SGVsbG8="}{"key2":"d29ybGQ="}
    {"key3":"IQ==", "key4":""}

Every object maps a logical key to a standard base64 payload. A top level
``null`` is accepted and contributes no entries. A ``null`` payload is kept
as ``None`` and comes back as ``null`` on export. Anything else (arrays,
strings, numbers, non-string payloads, invalid base64, invalid UTF-8) is
malformed input.
"""

import binascii
import codecs
import json
from typing import Dict, Iterable, List, Optional, Union

from modules.persister.domain.errors import MalformedInputError
from modules.persister.domain.models import Record, decode_payload

_WHITESPACE = " \t\n\r"


def _json_type_name(value: object) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if value is None:
        return "null"
    return "object"


def decode_entries(value: object) -> Dict[str, Optional[bytes]]:
    """Validate one decoded top level value and return its key/payload pairs."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedInputError(
            f"expected a JSON object, got {_json_type_name(value)}"
        )

    entries: Dict[str, Optional[bytes]] = {}
    for key, payload in value.items():
        if payload is None:
            entries[key] = None
            continue
        if not isinstance(payload, str):
            raise MalformedInputError(
                f"value for key {key!r} must be a base64 string, "
                f"got {_json_type_name(payload)}"
            )
        try:
            entries[key] = decode_payload(payload)
        except binascii.Error as e:
            raise MalformedInputError(
                f"value for key {key!r} is not valid base64: {e}"
            ) from e
    return entries


class JSONObjectStream:
    """Feed raw body chunks, get back each complete top level value.

    Values are only parsed once a chunk containing a closing brace arrives,
    so large objects split across many chunks are not re-scanned per chunk.
    Whatever is left is parsed strictly by close().
    """

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")("strict")
        self._json = json.JSONDecoder()
        self._buffer = ""
        self._closed = False

    def feed(self, chunk: Union[bytes, str]) -> List[object]:
        if self._closed:
            raise MalformedInputError("stream already closed")
        if isinstance(chunk, str):
            text = chunk
        else:
            try:
                text = self._utf8.decode(chunk)
            except UnicodeDecodeError as e:
                raise MalformedInputError(f"request body is not valid UTF-8: {e}") from e
        if not text:
            return []
        self._buffer += text
        if "}" not in text:
            return []
        return self._drain(final=False)

    def close(self) -> List[object]:
        if self._closed:
            return []
        try:
            self._buffer += self._utf8.decode(b"", final=True)
        except UnicodeDecodeError as e:
            raise MalformedInputError(f"request body is not valid UTF-8: {e}") from e
        self._closed = True
        return self._drain(final=True)

    def _drain(self, final: bool) -> List[object]:
        values: List[object] = []
        pos = 0
        length = len(self._buffer)
        while True:
            while pos < length and self._buffer[pos] in _WHITESPACE:
                pos += 1
            if pos >= length:
                break
            try:
                value, end = self._json.raw_decode(self._buffer, pos)
            except json.JSONDecodeError as e:
                if final:
                    raise MalformedInputError(f"invalid JSON: {e}") from e
                break
            values.append(value)
            pos = end
        self._buffer = self._buffer[pos:]
        return values


class BatchDecoder:
    """Turns a chunked request body into an ordered Batch of Records."""

    def __init__(self):
        self._stream = JSONObjectStream()
        self._batch: List[Record] = []

    def feed(self, chunk: Union[bytes, str]) -> None:
        self._extend(self._stream.feed(chunk))

    def finish(self) -> List[Record]:
        self._extend(self._stream.close())
        return self._batch

    def _extend(self, values: Iterable[object]) -> None:
        for value in values:
            for key, payload in decode_entries(value).items():
                self._batch.append(Record(logical_key=key, payload=payload))
