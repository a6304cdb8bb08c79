# surplus/repos/mongo.py
from functools import wraps
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from surplus.core.errors import DuplicateError, StoreError
from surplus.core.logging import get_logger
from surplus.repos.base import Document, Sort

log = get_logger(__name__)


def _oid(s) -> Optional[ObjectId]:
    return ObjectId(s) if isinstance(s, str) and ObjectId.is_valid(s) else None


def _out(doc: Optional[Document]) -> Optional[Document]:
    if doc is None:
        return None
    doc["_id"] = str(doc["_id"])
    return doc


def _wrap_errors(op):
    @wraps(op)
    async def wrapper(self, collection, *args, **kwargs):
        try:
            return await op(self, collection, *args, **kwargs)
        except DuplicateKeyError as ex:
            raise DuplicateError(f"{op.__name__} on {collection!r} hit a unique index") from ex
        except PyMongoError as ex:
            log.error("store.failed", op=op.__name__, collection=collection, error=str(ex))
            raise StoreError(f"{op.__name__} on {collection!r} failed: {ex}") from ex

    return wrapper


class MongoStore:
    """DocumentStore over a Motor database; ids are ObjectIds rendered as strings."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    @_wrap_errors
    async def insert(self, collection: str, document: Document) -> str:
        doc = dict(document)
        doc.pop("_id", None)
        res = await self.db[collection].insert_one(doc)
        return str(res.inserted_id)

    @_wrap_errors
    async def get_by_id(self, collection: str, doc_id: str) -> Optional[Document]:
        _id = _oid(doc_id)
        if _id is None:
            return None
        return _out(await self.db[collection].find_one({"_id": _id}))

    @_wrap_errors
    async def query(
        self, collection: str, filter: Document, sort: Optional[Sort] = None
    ) -> List[Document]:
        cur = self.db[collection].find(dict(filter))
        if sort:
            cur = cur.sort(*sort)
        return [_out(d) async for d in cur]

    @_wrap_errors
    async def update_fields(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        expect: Optional[Document] = None,
    ) -> bool:
        _id = _oid(doc_id)
        if _id is None:
            return False
        res = await self.db[collection].update_one({**(expect or {}), "_id": _id}, {"$set": fields})
        return res.matched_count > 0
