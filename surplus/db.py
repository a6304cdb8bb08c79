# surplus/db.py
from functools import lru_cache

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from surplus.core.config import Settings
from surplus.core.errors import StoreError
from surplus.core.logging import get_logger
from surplus.repos.base import DocumentStore
from surplus.repos.inmemory import InMemoryStore
from surplus.repos.mongo import MongoStore

LISTINGS = "listings"
PROFILES = "profiles"

log = get_logger(__name__)


@lru_cache(maxsize=4)
def get_client(mongo_uri: str) -> AsyncIOMotorClient:
    # Cached to play nicely with uvicorn --reload
    return AsyncIOMotorClient(mongo_uri, uuidRepresentation="standard")


def build_store(settings: Settings) -> DocumentStore:
    if settings.use_mongo:
        log.info("store.mongo", uri=settings.mongo_uri, db=settings.mongo_db)
        return MongoStore(get_client(settings.mongo_uri)[settings.mongo_db])
    log.info("store.memory")
    return InMemoryStore()


async def ensure_indexes(store: DocumentStore) -> None:
    """Create the Mongo indexes the listing queries rely on. No-op for other stores."""
    if not isinstance(store, MongoStore):
        return
    db = store.db

    async def ensure_index(col, keys, name: str, **kwargs):
        existing = [ix["name"] async for ix in col.list_indexes()]
        if name in existing:
            return
        await col.create_index(keys, name=name, **kwargs)

    try:
        await ensure_index(db[LISTINGS], [("status", ASCENDING), ("created_at", DESCENDING)], "status_created")
        await ensure_index(db[LISTINGS], [("donor_id", ASCENDING)], "donor_id_1")
        await ensure_index(db[PROFILES], [("email", ASCENDING)], "email_unique", unique=True)
    except PyMongoError as ex:
        log.error("store.indexes_failed", error=str(ex))
        raise StoreError(f"creating indexes failed: {ex}") from ex


def close_store(store: DocumentStore) -> None:
    if isinstance(store, MongoStore):
        store.db.client.close()
        get_client.cache_clear()
