"""Store factory used by the service lifecycle."""

from typing import TYPE_CHECKING, Optional

from infrastructure.logging import get_module_logger
from infrastructure.persistence.encrypted_file import EncryptedFileStore
from infrastructure.persistence.store import KeyValueStore

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


def open_store(
    settings: "Settings",
    encryption_key: Optional[str] = None,
    db_file: Optional[str] = None,
) -> KeyValueStore:
    """Open the persistence file configured in settings.

    Args:
        settings: Settings instance.
        encryption_key: Key to use instead of settings.storage.resolve_encryption_key().
        db_file: Path to use instead of settings.storage.DB_FILE.

    Returns:
        An open KeyValueStore. The caller owns it and must close it.
    """
    path = db_file or settings.storage.DB_FILE
    key = encryption_key or settings.storage.resolve_encryption_key()

    store = EncryptedFileStore(path, key)
    logger.info("persistence_file_opened", db_file=str(store.path))

    try:
        length = store.length()
    except Exception:
        store.close()
        raise

    noun = "key" if length == 1 else "keys"
    logger.info(
        "persistence_file_loaded",
        db_file=str(store.path),
        key_count=length,
        summary=f"Persistence file {str(store.path)!r} contains {length} {noun}",
    )
    return store
