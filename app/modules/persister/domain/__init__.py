"""Domain layer - data models and errors."""

from modules.persister.domain.models import (
    Record,
    decode_payload,
    encode_object,
    encode_payload,
)
from modules.persister.domain.errors import (
    ExportError,
    MalformedInputError,
    PersisterError,
    StoreWriteError,
    SurrogateKeyExhaustedError,
)

__all__ = [
    "Record",
    "decode_payload",
    "encode_object",
    "encode_payload",
    "PersisterError",
    "MalformedInputError",
    "StoreWriteError",
    "SurrogateKeyExhaustedError",
    "ExportError",
]
