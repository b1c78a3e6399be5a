"""Enumeration of every persisted Record.

Records are written to a sink as newline-delimited ``{logical_key: payload}``
JSON objects, in surrogate id order, from inside one store transaction.

Error signaling
---------------
Once the first line has been handed to the sink the HTTP status is already
committed, so a failure cannot be reported through the transport. Instead a
final sentinel object is appended::

    {"SERVER_ERROR": "<standard base64 of the error message>"}

Readers must check every object for the SERVER_ERROR key. The message is
base64 encoded like every other payload so a client decoding all values as
bytes keeps working. A stored Record whose logical key literally is
SERVER_ERROR is emitted as server_error, so data never looks like the
sentinel. Everything about the sentinel lives in this module.
"""

from typing import Callable

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from infrastructure.persistence import KeyValueStore, Transaction
from modules.persister.domain.errors import ExportError
from modules.persister.domain.models import Record, encode_object, encode_payload

logger = get_module_logger()

SENTINEL_KEY = "SERVER_ERROR"
REMAPPED_SENTINEL_KEY = "server_error"

# Receives one encoded, newline terminated line per call
ExportSink = Callable[[bytes], None]


def emitted_key(logical_key: str) -> str:
    """Return the key a Record is emitted under."""
    if logical_key == SENTINEL_KEY:
        return REMAPPED_SENTINEL_KEY
    return logical_key


def sentinel_line(message: str) -> bytes:
    """Encode the trailing error object appended on a failed export."""
    return encode_object({SENTINEL_KEY: encode_payload(message.encode("utf-8"))})


class Exporter:
    """Streams every committed Record to a sink."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def export(self, sink: ExportSink) -> OperationResult:
        """Write all Records to sink, appending the sentinel on failure.

        Returns:
            OperationResult.success with data=<records written>, or a
            storage_error result once the sentinel has been written.
        """
        written = 0

        def _emit_all(tx: Transaction) -> None:
            nonlocal written
            for surrogate_id in tx.keys():
                try:
                    record = Record.from_stored(tx.load(surrogate_id), surrogate_id)
                except ValueError as e:
                    raise ExportError(f"{surrogate_id}: {e}") from e
                sink(record.to_line(emitted_key(record.logical_key)))
                written += 1

        try:
            self._store.run(_emit_all)
        except Exception as e:
            logger.error("export_failed", error=str(e), records_written=written)
            try:
                sink(sentinel_line(str(e)))
            except Exception as sink_error:
                logger.error("export_sentinel_failed", error=str(sink_error))
            return OperationResult.storage_error(str(e), error_code="EXPORT_FAILED")

        logger.info("export_completed", records_written=written)
        return OperationResult.success(data=written, message=f"exported {written}")
