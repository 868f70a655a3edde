"""
MongoDB client initialization and access utilities.

This module configures and manages the asynchronous MongoDB client used by
the contract tracker. It connects to the database using Motor (the async
MongoDB driver for Python) and exposes the database instance and the
configured `ContractStore` to the rest of the application.

Environment variables (see `app.core.config`):
    - MONGODB_URI: Full MongoDB connection string
    - MONGODB_DB: Database name
    - CONTRACTS_COLLECTION: Collection holding the contract documents
    - STORE_BACKEND: `mongo` (default) or `memory`

Usage example:
    >>> from app.db.client import init_store, get_contract_store
    >>> await init_store()
    >>> store = get_contract_store()
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.core.config import CONTRACTS_COLLECTION, MONGO_DB_NAME, MONGO_URI, STORE_BACKEND
from app.db.contract_store import ContractStore, InMemoryContractStore, MongoContractStore

logger = logging.getLogger(__name__)

# Global MongoDB client, database and store references
client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None
_store: Optional[ContractStore] = None

# ------------------------------------------------------------------------------
# Initialization
# ------------------------------------------------------------------------------

async def init_mongo():
    """
    Initialize the global MongoDB client and database connection.

    The client is created with `tz_aware=True` so stored expiration dates
    come back as timezone-aware UTC datetimes.
    """

    global client, _db
    client = AsyncIOMotorClient(MONGO_URI, tz_aware=True)
    _db = client[MONGO_DB_NAME]
    logger.info("Connected to MongoDB at %s, using database '%s'", MONGO_URI, MONGO_DB_NAME)


async def init_store(backend: str = STORE_BACKEND) -> ContractStore:
    """
    Create the contract store selected by `backend`.

    Args:
        backend (str): `mongo` or `memory`.

    Returns:
        ContractStore: The store now returned by `get_contract_store()`.

    Raises:
        ValueError: If the backend name is unknown.
    """

    global _store
    if backend == "memory":
        _store = InMemoryContractStore()
        logger.warning("Using the in-memory contract store; data is lost on restart")
    elif backend == "mongo":
        await init_mongo()
        store = MongoContractStore(get_db()[CONTRACTS_COLLECTION])
        await store.ensure_indexes()
        _store = store
    else:
        raise ValueError(f"Unknown STORE_BACKEND '{backend}'")
    return _store


def close_mongo():
    """Close the MongoDB client if one was opened."""
    global client, _db
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")
    client = None
    _db = None

# ------------------------------------------------------------------------------
# Database Access
# ------------------------------------------------------------------------------

def get_db() -> AsyncIOMotorDatabase:
    """
    Retrieve the initialized MongoDB database instance.

    Raises:
        RuntimeError: If `init_mongo()` has not been called yet.
    """

    if _db is None:
        raise RuntimeError("MongoDB was not initialized. Call init_mongo() first.")
    return _db


def get_contract_store() -> ContractStore:
    """
    Retrieve the configured contract store. Used as a FastAPI dependency.

    Raises:
        RuntimeError: If `init_store()` has not been called yet.
    """

    if _store is None:
        raise RuntimeError("Contract store was not initialized. Call init_store() first.")
    return _store
