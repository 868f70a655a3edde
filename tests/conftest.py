import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Make the `app` package importable without installing the project
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.core.exceptions import PersistenceError
from app.core.security import PrincipalContext
from app.db.contract_store import InMemoryContractStore
from app.models.contract import Category

# Fixed reference instant: midday, so every "N days from today" is unambiguous.
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def midnight_in(days, now=NOW):
    """Local midnight of the day `days` calendar days after `now`."""
    day = now.date() + timedelta(days=days)
    return datetime(day.year, day.month, day.day, tzinfo=now.tzinfo)


class FlakyContractStore(InMemoryContractStore):
    """In-memory store whose operations can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_queries = False
        self.fail_updates = False
        self.fail_deletes = False

    async def query_by_owner_and_category(self, owner_id, category=None):
        if self.fail_queries:
            raise PersistenceError("query", ConnectionError("store unreachable"))
        return await super().query_by_owner_and_category(owner_id, category)

    async def update(self, record_id, owner_id, partial):
        if self.fail_updates:
            raise PersistenceError("update", ConnectionError("store unreachable"))
        await super().update(record_id, owner_id, partial)

    async def delete(self, record_id, owner_id):
        if self.fail_deletes:
            raise PersistenceError("delete", ConnectionError("store unreachable"))
        await super().delete(record_id, owner_id)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store():
    return FlakyContractStore()


@pytest.fixture
def owner():
    return PrincipalContext("owner-1")


@pytest.fixture
def other_owner():
    return PrincipalContext("owner-2")


@pytest.fixture
def anonymous():
    return PrincipalContext()


@pytest.fixture
def seed(store, owner):
    """Insert a contract directly into the store, bypassing validation."""

    async def _seed(name, days=None, category=Category.POOL_SERVICE, contact="912345678", owner_id=None):
        return await store.insert({
            "userId": owner_id or owner.principal_id,
            "nome": name,
            "contacto": contact,
            "categoria": category.value if isinstance(category, Category) else category,
            "dataExpiracao": midnight_in(days) if days is not None else None,
        })

    return _seed
