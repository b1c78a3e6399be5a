"""Persister service facade.

Wraps the ingestion engine and the exporter behind OperationResult returning
methods so the HTTP layer never handles domain exceptions directly.

Usage:
    service = PersisterService(store)

    result = service.ingest(b'{"test":"SGVsbG8="}')
    if result.is_success:
        print(result.message)  # persisted 1 key-value pair

    service.export(sink=sys.stdout.buffer.write)
"""

from typing import Iterable, List, Optional, Union

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, OperationStatus
from infrastructure.persistence import KeyValueStore, StoreError
from modules.persister.decoder import BatchDecoder
from modules.persister.domain.errors import (
    MalformedInputError,
    StoreWriteError,
    SurrogateKeyExhaustedError,
)
from modules.persister.domain.models import Record
from modules.persister.export import ExportSink, Exporter
from modules.persister.ingestion import (
    DEFAULT_MAX_SURROGATE_ATTEMPTS,
    IngestionEngine,
)
from modules.persister.surrogate import SurrogateKeyGenerator

logger = get_module_logger()

ROLLBACK_PREFIX = (
    "Error: unable to store key-value pairs, "
    "all pairs in this transaction rolled back: "
)


def persisted_message(count: int) -> str:
    if count == 0:
        return "no key-value pairs persisted"
    if count == 1:
        return "persisted 1 key-value pair"
    return f"persisted {count} key-value pairs"


def classify_persister_error(exc: Exception) -> OperationResult:
    """Classify ingestion exceptions into OperationResult.

    Mapping:
    - MalformedInputError: INVALID_INPUT (client must fix and resubmit)
    - StoreWriteError, StoreError: STORAGE_ERROR
    - SurrogateKeyExhaustedError, anything else: INTERNAL_ERROR
    """
    message = ROLLBACK_PREFIX + str(exc)

    if isinstance(exc, MalformedInputError):
        return OperationResult.invalid_input(message, error_code="MALFORMED_INPUT")

    if isinstance(exc, (StoreWriteError, StoreError)):
        return OperationResult.storage_error(message, error_code="STORE_WRITE_FAILED")

    if isinstance(exc, SurrogateKeyExhaustedError):
        return OperationResult.error(
            OperationStatus.INTERNAL_ERROR,
            message,
            error_code="SURROGATE_ID_EXHAUSTED",
        )

    return OperationResult.error(
        OperationStatus.INTERNAL_ERROR,
        message,
        error_code="INTERNAL_ERROR",
    )


class PersisterService:
    """Ingestion and enumeration over one store.

    Args:
        store: The open store. Owned by the caller.
        generator: Optional surrogate id generator.
        max_surrogate_attempts: Candidates tried per Record on collision.
    """

    def __init__(
        self,
        store: KeyValueStore,
        generator: Optional[SurrogateKeyGenerator] = None,
        max_surrogate_attempts: int = DEFAULT_MAX_SURROGATE_ATTEMPTS,
    ):
        self.store = store
        self.engine = IngestionEngine(
            store,
            generator=generator,
            max_surrogate_attempts=max_surrogate_attempts,
        )
        self.exporter = Exporter(store)

    def decoder(self) -> BatchDecoder:
        return self.engine.decoder()

    def persist(self, batch: List[Record]) -> OperationResult:
        """Commit an already decoded batch."""
        try:
            committed = self.engine.commit(batch)
        except Exception as exc:
            result = classify_persister_error(exc)
            logger.warning(
                "key_value_pairs_rejected",
                error=str(exc),
                error_code=result.error_code,
                record_count=len(batch),
            )
            return result

        message = persisted_message(len(committed))
        logger.info("key_value_pairs_persisted", count=len(committed), summary=message)
        return OperationResult.success(data=committed, message=message)

    def ingest(
        self, stream: Union[bytes, str, Iterable[Union[bytes, str]]]
    ) -> OperationResult:
        """Decode stream and commit it."""
        try:
            batch = self.engine.decode(stream)
        except MalformedInputError as exc:
            logger.warning("malformed_input", error=str(exc))
            return classify_persister_error(exc)
        return self.persist(batch)

    def export(self, sink: ExportSink) -> OperationResult:
        return self.exporter.export(sink)
