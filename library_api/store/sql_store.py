import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Type

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from library_api.database import Base, create_db_engine, create_session_factory
from library_api.errors import IntegrityViolation, StoreUnavailable
from library_api.models.book import BookCopy as BookCopyModel
from library_api.schemas.records import BookCopy, CopyStatus, Record
from library_api.store.base import InventoryStore, StoreSession, R
from library_api.store.schema import table_for

logger = logging.getLogger(__name__)


class SqlStore(InventoryStore):
    """Inventory kept in a relational database through the SQLAlchemy ORM.

    Each unit of work is one database transaction. Any SQLAlchemy error
    rolls it back. Constraint violations surface as ``IntegrityViolation``,
    everything else as ``StoreUnavailable``.
    """

    backend = "sql"

    def __init__(self, url: str, timeout: float = 5.0, create_tables: bool = True,
                 ssl_mode: str = "disable"):
        self.url = url
        self.engine = create_db_engine(url, timeout, ssl_mode)
        self._session_factory = create_session_factory(self.engine)
        if create_tables:
            try:
                Base.metadata.create_all(bind=self.engine)
            except SQLAlchemyError as e:
                # Database may come up later; units of work will report it
                logger.error(f"Unable to create tables on {self.engine.url!r}: {e}")

    @contextmanager
    def session(self) -> Iterator["SqlStoreSession"]:
        db = self._session_factory()
        try:
            yield SqlStoreSession(db)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Constraint violated, transaction rolled back: {e.orig}")
            raise IntegrityViolation(f"Constraint violated: {e.orig}") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error, transaction rolled back: {e}", exc_info=True)
            raise StoreUnavailable("Database unavailable") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def close(self) -> None:
        self.engine.dispose()

    def __repr__(self):
        return f"SqlStore({self.engine.url!r})"


class SqlStoreSession(StoreSession):
    def __init__(self, db: Session):
        self.db = db

    def get(self, record_type: Type[R], key: str) -> Optional[R]:
        table = table_for(record_type)
        row = self.db.get(table.model, key)
        return record_type.model_validate(row) if row is not None else None

    def list(self, record_type: Type[R], **filters) -> List[R]:
        table = table_for(record_type)
        key_column = getattr(table.model, table.key)
        rows = self.db.query(table.model).filter_by(**filters).order_by(key_column).all()
        return [record_type.model_validate(row) for row in rows]

    def add(self, record: Record) -> None:
        table = table_for(record)
        self.db.add(table.model(**record.model_dump()))
        self.db.flush()

    def update(self, record: Record) -> None:
        table = table_for(record)
        key = getattr(record, table.key)
        row = self.db.get(table.model, key)
        if row is None:
            self.add(record)
            return
        for name, value in record.model_dump().items():
            setattr(row, name, value)
        self.db.flush()

    def delete(self, record_type: Type[Record], key: str) -> None:
        table = table_for(record_type)
        row = self.db.get(table.model, key)
        if row is not None:
            self.db.delete(row)
            self.db.flush()

    def first_available_copy(self, book_id: str) -> Optional[BookCopy]:
        # Row lock so two concurrent borrows cannot take the same copy; rows
        # locked by another borrower are skipped rather than waited on
        row = self.db.query(BookCopyModel).filter(
            BookCopyModel.book_id == book_id,
            func.lower(BookCopyModel.status) == CopyStatus.AVAILABLE.value
        ).order_by(BookCopyModel.copy_id).with_for_update(skip_locked=True).first()
        return BookCopy.model_validate(row) if row is not None else None
