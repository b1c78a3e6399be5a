"""Record model for the persister module.

A Record is one logical key/payload pair as submitted by a client. Records are
stored under a system-generated surrogate id, never under their logical key,
so submitting the same logical key twice keeps both records.

Stored representation (the value kept in the key-value store)::

    {"key": "<logical key>", "ciphertext": "<standard base64 of the payload>"}

A JSON ``null`` payload is kept as ``None`` and written back as ``null``.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class Record:
    """One persisted logical_key/payload pair.

    Attributes:
        logical_key: Caller supplied key, not unique, not the storage index.
        payload: Opaque bytes (ciphertext), stored verbatim. None for a null payload.
        surrogate_id: Storage index, set once the record has been committed.
    """

    logical_key: str
    payload: Optional[bytes]
    surrogate_id: Optional[str] = None

    def to_stored(self) -> Dict[str, Optional[str]]:
        return {
            "key": self.logical_key,
            "ciphertext": encode_payload(self.payload),
        }

    @classmethod
    def from_stored(cls, value: Any, surrogate_id: Optional[str] = None) -> "Record":
        """Rebuild a Record from its stored representation.

        Raises:
            ValueError: value is not a stored record.
        """
        if not isinstance(value, dict):
            raise ValueError(
                f"expected a stored record, got {type(value).__name__}"
            )
        key = value.get("key")
        if not isinstance(key, str) or "ciphertext" not in value:
            raise ValueError("stored record is missing key or ciphertext")
        ciphertext = value["ciphertext"]
        if ciphertext is None:
            return cls(logical_key=key, payload=None, surrogate_id=surrogate_id)
        if not isinstance(ciphertext, str):
            raise ValueError("stored ciphertext must be a string or null")
        try:
            payload = decode_payload(ciphertext)
        except binascii.Error as e:
            raise ValueError(f"stored ciphertext is not base64: {e}") from e
        return cls(logical_key=key, payload=payload, surrogate_id=surrogate_id)

    def to_line(self, logical_key: Optional[str] = None) -> bytes:
        """Encode as one newline terminated ``{logical_key: payload}`` object."""
        key = self.logical_key if logical_key is None else logical_key
        return encode_object({key: encode_payload(self.payload)})


def encode_payload(payload: Optional[bytes]) -> Optional[str]:
    if payload is None:
        return None
    return base64.b64encode(payload).decode("ascii")


def decode_payload(value: str) -> bytes:
    """Strict standard base64 decode.

    Raises:
        binascii.Error: value is not valid standard base64.
    """
    return base64.b64decode(value, validate=True)


def encode_object(obj: Dict[str, Optional[str]]) -> bytes:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":")).encode("utf-8") + b"\n"
