"""Atomic ingestion of key/value batches.

The engine decodes a request body into a Batch of Records, then writes the
whole Batch inside a single store transaction, each Record under a freshly
generated surrogate id. Either every Record of the Batch is committed or none
is:

- a decode failure aborts before the store is touched;
- a failing write deletes every surrogate id already written by this
  transaction, then aborts the transaction and raises StoreWriteError.

Records are appended, never overwritten: the same logical key submitted twice
yields two Records under two different surrogate ids.
"""

from dataclasses import replace
from typing import Iterable, List, Optional, Union

from infrastructure.logging import get_module_logger
from infrastructure.persistence import KeyValueStore, StoreError, Transaction
from modules.persister.decoder import BatchDecoder
from modules.persister.domain.errors import (
    PersisterError,
    StoreWriteError,
    SurrogateKeyExhaustedError,
)
from modules.persister.domain.models import Record
from modules.persister.surrogate import SurrogateKeyGenerator

logger = get_module_logger()

DEFAULT_MAX_SURROGATE_ATTEMPTS = 16


class IngestionEngine:
    """Decodes key/value streams and commits them all-or-nothing.

    Args:
        store: Transactional store the Records are appended to.
        generator: Surrogate id source. Defaults to SurrogateKeyGenerator().
        max_surrogate_attempts: Candidates tried per Record before giving up.
    """

    def __init__(
        self,
        store: KeyValueStore,
        generator: Optional[SurrogateKeyGenerator] = None,
        max_surrogate_attempts: int = DEFAULT_MAX_SURROGATE_ATTEMPTS,
    ):
        if max_surrogate_attempts < 1:
            raise ValueError("max_surrogate_attempts must be at least 1")
        self._store = store
        self._generator = generator or SurrogateKeyGenerator()
        self._max_surrogate_attempts = max_surrogate_attempts

    def decoder(self) -> BatchDecoder:
        """Return a fresh decoder for feeding a body chunk by chunk."""
        return BatchDecoder()

    def decode(self, stream: Union[bytes, str, Iterable[Union[bytes, str]]]) -> List[Record]:
        """Decode a whole body (or an iterable of body chunks) into a Batch.

        Raises:
            MalformedInputError: the body is not a valid key/value stream.
        """
        decoder = self.decoder()
        if isinstance(stream, (bytes, bytearray, str)):
            decoder.feed(bytes(stream) if isinstance(stream, bytearray) else stream)
        else:
            for chunk in stream:
                decoder.feed(chunk)
        return decoder.finish()

    def ingest(self, stream: Union[bytes, str, Iterable[Union[bytes, str]]]) -> List[Record]:
        """Decode stream and commit the resulting Batch.

        Returns:
            The committed Records, each carrying its surrogate id.

        Raises:
            MalformedInputError: nothing was written.
            StoreWriteError: the Batch was rolled back.
            SurrogateKeyExhaustedError: the Batch was rolled back.
        """
        return self.commit(self.decode(stream))

    def commit(self, batch: List[Record]) -> List[Record]:
        """Write batch in one transaction under new surrogate ids.

        An empty batch is a successful no-op.
        """
        if not batch:
            return []

        try:
            with self._store.transaction() as tx:
                surrogate_ids = self._write_batch(tx, batch)
        except PersisterError:
            raise
        except StoreError as e:
            # The transaction itself failed to open or commit
            logger.error(
                "ingestion_commit_failed", error=str(e), record_count=len(batch)
            )
            raise StoreWriteError(str(e)) from e

        return [
            replace(record, surrogate_id=surrogate_id)
            for record, surrogate_id in zip(batch, surrogate_ids)
        ]

    def _write_batch(self, tx: Transaction, batch: List[Record]) -> List[str]:
        written: List[str] = []
        for index, record in enumerate(batch):
            try:
                surrogate_id = self._next_surrogate_id(tx)
                tx.store(surrogate_id, record.to_stored())
            except SurrogateKeyExhaustedError:
                self._roll_back(tx, written)
                raise
            except Exception as e:
                self._roll_back(tx, written)
                raise StoreWriteError(
                    f"record {index + 1} of {len(batch)}: {e}"
                ) from e
            written.append(surrogate_id)
        return written

    def _next_surrogate_id(self, tx: Transaction) -> str:
        for attempt in range(1, self._max_surrogate_attempts + 1):
            candidate = self._generator.next_id()
            if not tx.has_key(candidate):
                return candidate
            logger.warning(
                "surrogate_id_collision",
                surrogate_id=candidate,
                attempt=attempt,
            )
        raise SurrogateKeyExhaustedError(self._max_surrogate_attempts)

    def _roll_back(self, tx: Transaction, written: List[str]) -> None:
        for surrogate_id in written:
            try:
                tx.delete(surrogate_id)
            except Exception as e:
                # The aborted transaction still discards this write
                logger.warning(
                    "rollback_delete_failed",
                    surrogate_id=surrogate_id,
                    error=str(e),
                )
        logger.info("ingestion_rolled_back", rolled_back=len(written))
