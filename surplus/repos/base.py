"""Document store protocol the listing and claim services are written against."""

from typing import Any, Dict, List, Optional, Protocol, Tuple

Document = Dict[str, Any]
Sort = Tuple[str, int]


class DocumentStore(Protocol):
    """Minimal document-database interface (one collection per document kind).

    Every method may raise `StoreError` when the backing store is unavailable.
    `insert` raises `DuplicateError` when a unique index rejects the document.
    Updates are atomic per single document; there are no multi-document
    transactions.
    """

    async def insert(self, collection: str, document: Document) -> str:
        """Store a new document and return its assigned id."""
        ...

    async def get_by_id(self, collection: str, doc_id: str) -> Optional[Document]:
        """Point read. Unknown or malformed ids return None."""
        ...

    async def query(
        self, collection: str, filter: Document, sort: Optional[Sort] = None
    ) -> List[Document]:
        """Equality filter on top-level fields, optionally sorted by (field, direction)."""
        ...

    async def update_fields(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        expect: Optional[Document] = None,
    ) -> bool:
        """Set `fields` on one document. With `expect`, only if those fields still match.

        Returns False when no document matched the id (and `expect`).
        """
        ...
