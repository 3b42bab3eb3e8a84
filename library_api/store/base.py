"""Storage-agnostic inventory store interface.

A store hands out units of work::

    with store.session() as db:
        book = db.get(Book, "B1")
        ...

Everything done through ``db`` is committed when the block exits normally
and discarded when it raises. Adapters raise ``StoreUnavailable`` when the
backend cannot be reached within the configured timeout.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional, Type, TypeVar

from library_api.schemas.records import BookCopy, Record

R = TypeVar("R", bound=Record)


class StoreSession(ABC):
    @abstractmethod
    def get(self, record_type: Type[R], key: str) -> Optional[R]:
        """Record with the given primary key, or None."""

    @abstractmethod
    def list(self, record_type: Type[R], **filters) -> List[R]:
        """All records whose fields equal ``filters``, ordered by key."""

    @abstractmethod
    def add(self, record: Record) -> None:
        ...

    @abstractmethod
    def update(self, record: Record) -> None:
        ...

    @abstractmethod
    def delete(self, record_type: Type[Record], key: str) -> None:
        ...

    @abstractmethod
    def first_available_copy(self, book_id: str) -> Optional[BookCopy]:
        """Lowest-id available copy of a book, held for update until commit."""


class InventoryStore(ABC):
    #: Short backend name shown in logs and health output
    backend = "abstract"

    @abstractmethod
    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        ...

    def close(self) -> None:
        pass
