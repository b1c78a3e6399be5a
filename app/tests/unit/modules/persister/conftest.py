"""Fixtures for modules.persister tests."""

from contextlib import contextmanager

import pytest

from infrastructure.persistence import KeyValueStore, StoreError, Transaction


class FlakyTransaction(Transaction):
    """Delegates to a real transaction, failing on scripted calls."""

    def __init__(self, inner, owner):
        self._inner = inner
        self._owner = owner

    def has_key(self, key):
        return self._inner.has_key(key)

    def load(self, key):
        self._owner.loads += 1
        if self._owner.fail_load_on == self._owner.loads:
            raise StoreError(f"simulated load failure on {key}")
        return self._inner.load(key)

    def store(self, key, value):
        self._owner.stores += 1
        if self._owner.fail_store_on == self._owner.stores:
            raise StoreError("simulated write failure")
        self._inner.store(key, value)

    def delete(self, key):
        if self._owner.fail_delete:
            raise StoreError("simulated delete failure")
        self._inner.delete(key)

    def keys(self):
        return self._inner.keys()


class FlakyStore(KeyValueStore):
    """KeyValueStore wrapper injecting failures into an underlying store.

    Attributes:
        fail_store_on: 1-based index of the store() call that fails.
        fail_load_on: 1-based index of the load() call that fails.
        fail_delete: Every delete() fails when set.
    """

    def __init__(self, inner):
        self.inner = inner
        self.fail_store_on = None
        self.fail_load_on = None
        self.fail_delete = False
        self.stores = 0
        self.loads = 0

    @contextmanager
    def transaction(self):
        with self.inner.transaction() as tx:
            yield FlakyTransaction(tx, self)

    def close(self):
        self.inner.close()

    @property
    def closed(self):
        return self.inner.closed


@pytest.fixture
def flaky_store(store):
    return FlakyStore(store)
