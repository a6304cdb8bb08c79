# surplus/repos/inmemory.py
import copy
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

from surplus.repos.base import Document, Sort


def _id() -> str:
    return uuid.uuid4().hex


def _matches(doc: Document, filter: Document) -> bool:
    return all(doc.get(k) == v for k, v in filter.items())


class InMemoryStore:
    """Process-local document store. Documents are copied in and out."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Document]] = defaultdict(dict)

    async def insert(self, collection: str, document: Document) -> str:
        doc_id = _id()
        doc = copy.deepcopy(document)
        doc["_id"] = doc_id
        self.collections[collection][doc_id] = doc
        return doc_id

    async def get_by_id(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self.collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def query(
        self, collection: str, filter: Document, sort: Optional[Sort] = None
    ) -> List[Document]:
        docs = [copy.deepcopy(d) for d in self.collections[collection].values() if _matches(d, filter)]
        if sort:
            field, direction = sort
            # documents missing the field sort after the rest
            present = [d for d in docs if d.get(field) is not None]
            missing = [d for d in docs if d.get(field) is None]
            if direction < 0:
                # ties keep newest-inserted first
                present.reverse()
            present.sort(key=lambda d: d[field], reverse=direction < 0)
            docs = present + missing
        return docs

    async def update_fields(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        expect: Optional[Document] = None,
    ) -> bool:
        doc = self.collections[collection].get(doc_id)
        if doc is None or (expect and not _matches(doc, expect)):
            return False
        doc.update(copy.deepcopy(fields))
        return True
