"""
Contract document store.

The engine reaches persistence only through the narrow interface defined
by `ContractStore`: insert, query by owner (and optionally category),
get, partial update and hard delete. Two implementations are provided:

    - `MongoContractStore`: MongoDB through Motor, used in production.
    - `InMemoryContractStore`: dict-backed, used by tests and by
      `STORE_BACKEND=memory`.

Every write is filtered on both the record id and the owner id, so a
principal can never touch a record it does not own; such a record is
reported as missing (`RecordNotFoundError`).

Documents are returned as plain dicts with the identifier under `id`.
"""

import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from app.core.exceptions import PersistenceError, RecordNotFoundError

logger = logging.getLogger(__name__)

OWNER_FIELD = "userId"
CATEGORY_FIELD = "categoria"
CREATED_AT_FIELD = "createdAt"

# Never changed by an update, whatever the caller sends.
PROTECTED_FIELDS = ("_id", "id", OWNER_FIELD, CREATED_AT_FIELD)


class ContractStore(ABC):
    """Interface every contract store implementation follows."""

    @abstractmethod
    async def insert(self, fields: Dict[str, Any]) -> str:
        """
        Insert a new document.

        Args:
            fields (dict): Document fields. Must include the owner id.

        Returns:
            str: Identifier assigned by the store. `createdAt` is stamped as well.
        """

    @abstractmethod
    async def query_by_owner_and_category(self, owner_id: str, category: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Return every document owned by `owner_id`, optionally restricted to one category.

        No particular order is guaranteed; callers sort.
        """

    @abstractmethod
    async def get(self, record_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        """Return one document, or None when it does not exist for this owner."""

    @abstractmethod
    async def update(self, record_id: str, owner_id: str, partial: Dict[str, Any]) -> None:
        """
        Merge `partial` into an existing document.

        Raises:
            RecordNotFoundError: If no document matches id and owner.
        """

    @abstractmethod
    async def delete(self, record_id: str, owner_id: str) -> None:
        """
        Remove a document permanently.

        Raises:
            RecordNotFoundError: If no document matches id and owner.
        """

    @staticmethod
    def writable_fields(partial: Dict[str, Any]) -> Dict[str, Any]:
        """Drop the fields an update is never allowed to change."""
        return {key: value for key, value in partial.items() if key not in PROTECTED_FIELDS}


# ------------------------------------------------------------------------------
# MongoDB implementation
# ------------------------------------------------------------------------------

class MongoContractStore(ContractStore):
    """
    Contract store backed by a MongoDB collection.

    Driver exceptions are wrapped in `PersistenceError` and never retried.

    Example:
        >>> store = MongoContractStore(get_db()["contacts"])
        >>> record_id = await store.insert({"userId": "uid-1", "nome": "Ana"})
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self._collection = collection

    async def ensure_indexes(self) -> None:
        """Create the compound index used by every listing query."""
        try:
            await self._collection.create_index([(OWNER_FIELD, ASCENDING), (CATEGORY_FIELD, ASCENDING)])
        except PyMongoError as e:
            raise self._failure("ensure_indexes", e)

    async def insert(self, fields: Dict[str, Any]) -> str:
        document = dict(fields)
        document.pop("id", None)
        document.setdefault(CREATED_AT_FIELD, datetime.now(timezone.utc))
        try:
            result = await self._collection.insert_one(document)
        except PyMongoError as e:
            raise self._failure("insert", e)
        return str(result.inserted_id)

    async def query_by_owner_and_category(self, owner_id: str, category: Optional[str] = None) -> List[Dict[str, Any]]:
        query = {OWNER_FIELD: owner_id}
        if category is not None:
            query[CATEGORY_FIELD] = category
        try:
            documents = await self._collection.find(query).to_list(length=None)
        except PyMongoError as e:
            raise self._failure("query", e)
        return [self._to_plain(document) for document in documents]

    async def get(self, record_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        object_id = self._object_id(record_id)
        if object_id is None:
            return None
        try:
            document = await self._collection.find_one({"_id": object_id, OWNER_FIELD: owner_id})
        except PyMongoError as e:
            raise self._failure("get", e)
        return self._to_plain(document) if document else None

    async def update(self, record_id: str, owner_id: str, partial: Dict[str, Any]) -> None:
        object_id = self._object_id(record_id)
        if object_id is None:
            raise RecordNotFoundError(record_id)
        try:
            result = await self._collection.update_one(
                {"_id": object_id, OWNER_FIELD: owner_id},
                {"$set": self.writable_fields(partial)},
            )
        except PyMongoError as e:
            raise self._failure("update", e)
        if result.matched_count == 0:
            raise RecordNotFoundError(record_id)

    async def delete(self, record_id: str, owner_id: str) -> None:
        object_id = self._object_id(record_id)
        if object_id is None:
            raise RecordNotFoundError(record_id)
        try:
            result = await self._collection.delete_one({"_id": object_id, OWNER_FIELD: owner_id})
        except PyMongoError as e:
            raise self._failure("delete", e)
        if result.deleted_count == 0:
            raise RecordNotFoundError(record_id)

    @staticmethod
    def _object_id(record_id: str) -> Optional[ObjectId]:
        try:
            return ObjectId(record_id)
        except (InvalidId, TypeError):
            return None

    @staticmethod
    def _to_plain(document: Dict[str, Any]) -> Dict[str, Any]:
        document["id"] = str(document.pop("_id"))
        return document

    @staticmethod
    def _failure(operation: str, error: Exception) -> PersistenceError:
        logger.error("MongoDB %s failed", operation, exc_info=error)
        return PersistenceError(operation, error)


# ------------------------------------------------------------------------------
# In-memory implementation
# ------------------------------------------------------------------------------

class InMemoryContractStore(ContractStore):
    """
    Contract store kept in a dictionary.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state by accident. Iteration follows insertion order.
    """

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}

    async def insert(self, fields: Dict[str, Any]) -> str:
        record_id = str(ObjectId())
        document = copy.deepcopy(dict(fields))
        document.pop("id", None)
        document.setdefault(CREATED_AT_FIELD, datetime.now(timezone.utc))
        self._documents[record_id] = document
        return record_id

    async def query_by_owner_and_category(self, owner_id: str, category: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            self._copy_out(record_id, document)
            for record_id, document in self._documents.items()
            if document.get(OWNER_FIELD) == owner_id
            and (category is None or document.get(CATEGORY_FIELD) == category)
        ]

    async def get(self, record_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        document = self._owned(record_id, owner_id)
        return self._copy_out(record_id, document) if document is not None else None

    async def update(self, record_id: str, owner_id: str, partial: Dict[str, Any]) -> None:
        document = self._owned(record_id, owner_id)
        if document is None:
            raise RecordNotFoundError(record_id)
        document.update(copy.deepcopy(self.writable_fields(partial)))

    async def delete(self, record_id: str, owner_id: str) -> None:
        if self._owned(record_id, owner_id) is None:
            raise RecordNotFoundError(record_id)
        del self._documents[record_id]

    def __len__(self) -> int:
        return len(self._documents)

    def _owned(self, record_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        document = self._documents.get(record_id)
        if document is None or document.get(OWNER_FIELD) != owner_id:
            return None
        return document

    @staticmethod
    def _copy_out(record_id: str, document: Dict[str, Any]) -> Dict[str, Any]:
        result = copy.deepcopy(document)
        result["id"] = record_id
        return result
