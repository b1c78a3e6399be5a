"""Abstract transactional key-value store."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Callable, List, TypeVar

T = TypeVar("T")


class Transaction(ABC):
    """Isolated view of the store, valid only inside its transaction scope."""

    @abstractmethod
    def has_key(self, key: str) -> bool:
        """Return True when key is present."""
        pass

    @abstractmethod
    def load(self, key: str) -> Any:
        """Return the value stored under key.

        Raises:
            KeyNotFoundError: key is not present.
        """
        pass

    @abstractmethod
    def store(self, key: str, value: Any) -> None:
        """Store value under key, replacing any existing value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is a no-op."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Return every key, sorted."""
        pass


class KeyValueStore(ABC):
    """Embedded key-value store with scoped transactions.

    Implementations must serialize transactions so that a check-then-write
    sequence inside one transaction cannot interleave with another
    transaction, and so that readers never observe a partially applied
    transaction.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Transaction]:
        """Open a transaction scope.

        The transaction commits when the block exits normally and rolls back
        when it exits with an exception; the exception is re-raised.

        Example:
            with store.transaction() as tx:
                if not tx.has_key(key):
                    tx.store(key, value)
        """
        pass

    def run(self, fn: Callable[[Transaction], T]) -> T:
        """Run fn inside one transaction and return its result."""
        with self.transaction() as tx:
            return fn(tx)

    def keys(self) -> List[str]:
        """Return every committed key."""
        return self.run(lambda tx: tx.keys())

    def length(self) -> int:
        """Return the number of committed keys."""
        return len(self.keys())

    @abstractmethod
    def close(self) -> None:
        """Release resources. Further use raises StoreClosedError."""
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass
