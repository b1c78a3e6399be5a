"""Encrypted key-value persister module.

Accepts streams of ``{"logical_key": "<base64 ciphertext>"}`` objects and
appends them, all-or-nothing, to the embedded store under generated surrogate
ids. Reads enumerate every committed record as newline-delimited JSON.

Components:
- surrogate: surrogate id generation
- decoder: concatenated JSON object stream decoding
- ingestion: atomic batch commit with rollback
- export: enumeration and the SERVER_ERROR sentinel
- service: OperationResult facade used by the HTTP layer
"""

from modules.persister.export import (
    REMAPPED_SENTINEL_KEY,
    SENTINEL_KEY,
    Exporter,
    sentinel_line,
)
from modules.persister.ingestion import IngestionEngine
from modules.persister.service import (
    PersisterService,
    classify_persister_error,
    persisted_message,
)
from modules.persister.surrogate import SurrogateKeyGenerator

__all__ = [
    "PersisterService",
    "IngestionEngine",
    "Exporter",
    "SurrogateKeyGenerator",
    "classify_persister_error",
    "persisted_message",
    "sentinel_line",
    "SENTINEL_KEY",
    "REMAPPED_SENTINEL_KEY",
]
