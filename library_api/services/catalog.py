import logging
from typing import Dict, List, Optional, Type

from library_api.errors import StoreUnavailable
from library_api.schemas.records import Book, BookCopy, Member, Record
from library_api.store.base import InventoryStore

logger = logging.getLogger(__name__)


class CatalogService:
    """Read-only views over the store.

    When a fallback store is given, reads that fail on the primary with
    ``StoreUnavailable`` are answered from the fallback instead.
    """

    def __init__(self, store: InventoryStore, fallback: Optional[InventoryStore] = None):
        self.store = store
        self.fallback = fallback

    def _read(self, reader):
        try:
            with self.store.session() as db:
                return reader(db)
        except StoreUnavailable:
            if self.fallback is None:
                raise
            logger.warning(f"{self.store!r} unavailable, reading from {self.fallback!r}")
            with self.fallback.session() as db:
                return reader(db)

    def rows(self, record_type: Type[Record]) -> List[Record]:
        return self._read(lambda db: db.list(record_type))

    def list_books(self) -> List[Book]:
        """Books with total/available derived from their copies."""
        def reader(db):
            counts: Dict[str, List[int]] = {}
            for copy in db.list(BookCopy):
                total_available = counts.setdefault(copy.book_id, [0, 0])
                total_available[0] += 1
                if copy.is_available:
                    total_available[1] += 1
            books = db.list(Book)
            for book in books:
                book.total, book.available = counts.get(book.book_id, (0, 0))
            return books
        return self._read(reader)

    def overdue_details(self, entries) -> List[dict]:
        """Overdue entries joined with member and book display fields."""
        def reader(db):
            rows = []
            for entry in entries:
                member = db.get(Member, entry.user_id)
                book = db.get(Book, entry.book_id) if entry.book_id else None
                rows.append({
                    **entry.model_dump(mode="json"),
                    "user_name": member.name if member else "",
                    "email": member.email if member else "",
                    "book_title": book.title if book else "",
                })
            return rows
        return self._read(reader)
