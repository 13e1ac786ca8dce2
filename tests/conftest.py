from __future__ import annotations

import pytest

from promo_allocator.codes.service import PromoCodeManager
from promo_allocator.storage.memory import InMemoryKeyValueStore
from tests.codes.helpers import FailingStore


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def manager(store: InMemoryKeyValueStore) -> PromoCodeManager:
    return PromoCodeManager(store)


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()
