from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from app.core.exceptions import PersistenceError, RecordNotFoundError
from app.db.contract_store import InMemoryContractStore, MongoContractStore


# ------------------------------------------------------------------------------
# In-memory store
# ------------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_insert_assigns_id_and_created_at():
    store = InMemoryContractStore()
    record_id = await store.insert({"userId": "owner-1", "nome": "Ana", "categoria": "Piscinas"})

    document = await store.get(record_id, "owner-1")
    assert document["id"] == record_id
    assert isinstance(document["createdAt"], datetime)
    assert ObjectId.is_valid(record_id)


@pytest.mark.asyncio
async def test_query_filters_owner_and_category():
    store = InMemoryContractStore()
    await store.insert({"userId": "owner-1", "nome": "Ana", "categoria": "Piscinas"})
    await store.insert({"userId": "owner-1", "nome": "Rui", "categoria": "Jardins"})
    await store.insert({"userId": "owner-2", "nome": "Eva", "categoria": "Piscinas"})

    assert {d["nome"] for d in await store.query_by_owner_and_category("owner-1")} == {"Ana", "Rui"}
    assert [d["nome"] for d in await store.query_by_owner_and_category("owner-1", "Jardins")] == ["Rui"]
    assert await store.query_by_owner_and_category("nobody") == []


@pytest.mark.asyncio
async def test_update_merges_and_protects_identity_fields():
    store = InMemoryContractStore()
    record_id = await store.insert({"userId": "owner-1", "nome": "Ana", "contacto": "912345678"})
    created_at = (await store.get(record_id, "owner-1"))["createdAt"]

    await store.update(record_id, "owner-1", {
        "nome": "Ana Sousa",
        "userId": "intruder",
        "createdAt": datetime(2000, 1, 1, tzinfo=timezone.utc),
    })

    document = await store.get(record_id, "owner-1")
    assert document["nome"] == "Ana Sousa"
    assert document["contacto"] == "912345678"
    assert document["userId"] == "owner-1"
    assert document["createdAt"] == created_at


@pytest.mark.asyncio
async def test_foreign_records_look_missing():
    store = InMemoryContractStore()
    record_id = await store.insert({"userId": "owner-1", "nome": "Ana"})

    assert await store.get(record_id, "owner-2") is None
    with pytest.raises(RecordNotFoundError):
        await store.update(record_id, "owner-2", {"nome": "Eva"})
    with pytest.raises(RecordNotFoundError):
        await store.delete(record_id, "owner-2")
    assert len(store) == 1


@pytest.mark.asyncio
async def test_delete_is_permanent():
    store = InMemoryContractStore()
    record_id = await store.insert({"userId": "owner-1", "nome": "Ana"})

    await store.delete(record_id, "owner-1")

    assert await store.get(record_id, "owner-1") is None
    with pytest.raises(RecordNotFoundError):
        await store.delete(record_id, "owner-1")


@pytest.mark.asyncio
async def test_returned_documents_are_copies():
    store = InMemoryContractStore()
    record_id = await store.insert({"userId": "owner-1", "nome": "Ana"})

    document = await store.get(record_id, "owner-1")
    document["nome"] = "changed"

    assert (await store.get(record_id, "owner-1"))["nome"] == "Ana"


# ------------------------------------------------------------------------------
# MongoDB store (driver mocked)
# ------------------------------------------------------------------------------

@pytest.fixture
def collection():
    return MagicMock()


@pytest.mark.asyncio
async def test_mongo_insert_returns_string_id(collection):
    object_id = ObjectId()
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=object_id))
    store = MongoContractStore(collection)

    record_id = await store.insert({"userId": "owner-1", "nome": "Ana", "id": "ignored"})

    assert record_id == str(object_id)
    document = collection.insert_one.call_args[0][0]
    assert "id" not in document
    assert "createdAt" in document


@pytest.mark.asyncio
async def test_mongo_query_maps_object_ids(collection):
    object_id = ObjectId()
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=[{"_id": object_id, "userId": "owner-1", "nome": "Ana"}])
    collection.find = MagicMock(return_value=cursor)
    store = MongoContractStore(collection)

    documents = await store.query_by_owner_and_category("owner-1", "Piscinas")

    collection.find.assert_called_once_with({"userId": "owner-1", "categoria": "Piscinas"})
    assert documents == [{"id": str(object_id), "userId": "owner-1", "nome": "Ana"}]


@pytest.mark.asyncio
async def test_mongo_update_filters_on_owner(collection):
    object_id = ObjectId()
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1))
    store = MongoContractStore(collection)

    await store.update(str(object_id), "owner-1", {"nome": "Eva", "userId": "intruder"})

    collection.update_one.assert_called_once_with(
        {"_id": object_id, "userId": "owner-1"},
        {"$set": {"nome": "Eva"}},
    )


@pytest.mark.asyncio
async def test_mongo_unmatched_write_is_not_found(collection):
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=0))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
    store = MongoContractStore(collection)

    with pytest.raises(RecordNotFoundError):
        await store.update(str(ObjectId()), "owner-1", {"nome": "Eva"})
    with pytest.raises(RecordNotFoundError):
        await store.delete(str(ObjectId()), "owner-1")
    with pytest.raises(RecordNotFoundError):
        await store.delete("not-an-object-id", "owner-1")


@pytest.mark.asyncio
async def test_mongo_invalid_id_reads_as_missing(collection):
    collection.find_one = AsyncMock()
    store = MongoContractStore(collection)

    assert await store.get("not-an-object-id", "owner-1") is None
    collection.find_one.assert_not_called()


@pytest.mark.asyncio
async def test_mongo_driver_errors_become_persistence_errors(collection):
    collection.insert_one = AsyncMock(side_effect=PyMongoError("connection refused"))
    store = MongoContractStore(collection)

    with pytest.raises(PersistenceError) as excinfo:
        await store.insert({"userId": "owner-1", "nome": "Ana"})
    assert excinfo.value.operation == "insert"
