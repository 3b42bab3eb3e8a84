"""Borrow/return/copy-inventory operations.

Each public method runs as one unit of work against the inventory store and
publishes a change event once that unit of work has committed. Book
``total``/``available`` are recomputed from the book's copies inside the
same unit of work, so they never drift from the copy records.
"""

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from library_api.errors import (
    AlreadyReturned,
    BookNotFound,
    CategoryNotFound,
    CopyNotAvailable,
    CopyNotFound,
    FineNotFound,
    NoAvailableCopy,
    TransactionNotFound,
    ValidationError,
)
from library_api.schemas.records import (
    Book,
    BookCopy,
    Category,
    CopyStatus,
    Fine,
    OverdueEntry,
    ReturnResult,
    Transaction,
)
from library_api.services.notifier import ChangeNotifier, EventType
from library_api.store.base import InventoryStore, StoreSession
from library_api.utils.timezone import today

logger = logging.getLogger(__name__)

DEFAULT_FINE_REASON = "Fine added on return"


def new_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:8].upper()}"


def refresh_counts(db: StoreSession, book: Book) -> Book:
    """Recompute a book's total/available from its copies and store them."""
    copies = db.list(BookCopy, book_id=book.book_id)
    book.total = len(copies)
    book.available = sum(1 for c in copies if c.is_available)
    db.update(book)
    return book


class CirculationService:
    def __init__(self, store: InventoryStore, notifier: ChangeNotifier, loan_period_days: int = 14):
        self.store = store
        self.notifier = notifier
        self.loan_period = timedelta(days=loan_period_days)

    # ---- helpers

    def _get_book(self, db: StoreSession, book_id: str) -> Book:
        book = db.get(Book, book_id)
        if book is None:
            raise BookNotFound(book_id)
        return book

    def _book_id_for_copy(self, db: StoreSession, copy_id: str) -> Optional[str]:
        copy = db.get(BookCopy, copy_id)
        return copy.book_id if copy else None

    # ---- borrow

    def borrow(self, book_id: str, user_id: str, on: Optional[date] = None) -> Transaction:
        """Lend the lowest-id available copy of a book to a user."""
        borrow_date = on or today()
        with self.store.session() as db:
            book = self._get_book(db, book_id)
            copy = db.first_available_copy(book_id)
            if copy is None:
                raise NoAvailableCopy(book_id)

            copy.status = CopyStatus.BORROWED
            db.update(copy)

            transaction = Transaction(
                transaction_id=new_id("T"),
                user_id=user_id,
                copy_id=copy.copy_id,
                borrow_date=borrow_date,
                due_date=borrow_date + self.loan_period,
            )
            db.add(transaction)
            refresh_counts(db, book)

        logger.info(f"Borrow {transaction.transaction_id}: user {user_id} took copy {copy.copy_id} of book {book_id}")
        self.notifier.emit(
            EventType.BORROW,
            transaction_id=transaction.transaction_id,
            user_id=user_id,
            book_id=book_id,
            copy_id=copy.copy_id,
        )
        return transaction

    def borrowed_copy(self, transaction: Transaction) -> Optional[BookCopy]:
        with self.store.session() as db:
            return db.get(BookCopy, transaction.copy_id)

    # ---- return / fines

    def return_copy(
        self,
        transaction_id: str,
        return_date: Optional[date] = None,
        fine_amount: Optional[Decimal] = None,
        fine_reason: Optional[str] = None,
    ) -> ReturnResult:
        """Close an open transaction, free its copy and optionally post a fine."""
        fine = None
        with self.store.session() as db:
            transaction = db.get(Transaction, transaction_id)
            if transaction is None:
                raise TransactionNotFound(transaction_id)
            if not transaction.is_open:
                raise AlreadyReturned(transaction_id)

            transaction.return_date = return_date or today()
            db.update(transaction)

            book_id = None
            copy = db.get(BookCopy, transaction.copy_id)
            if copy is None:
                logger.warning(f"Return {transaction_id}: copy {transaction.copy_id} no longer exists")
            else:
                book_id = copy.book_id
                copy.status = CopyStatus.AVAILABLE
                db.update(copy)
                book = db.get(Book, copy.book_id)
                if book is not None:
                    refresh_counts(db, book)

            if fine_amount is not None and Decimal(fine_amount) > 0:
                fine = Fine(
                    fine_id=new_id("F"),
                    user_id=transaction.user_id,
                    transaction_id=transaction_id,
                    amount=Decimal(fine_amount),
                    due_date=today(),
                    fine_reason=fine_reason or DEFAULT_FINE_REASON,
                )
                db.add(fine)

        logger.info(
            f"Return {transaction_id}: copy {transaction.copy_id} available again"
            + (f", fine {fine.fine_id} of {fine.amount}" if fine else "")
        )
        self.notifier.emit(
            EventType.RETURN,
            transaction_id=transaction_id,
            user_id=transaction.user_id,
            book_id=book_id,
        )
        return ReturnResult(transaction=transaction, fine=fine)

    def mark_fine_paid(self, fine_id: str, on: Optional[date] = None) -> Fine:
        with self.store.session() as db:
            fine = db.get(Fine, fine_id)
            if fine is None:
                raise FineNotFound(fine_id)
            fine.payment_date = on or today()
            db.update(fine)
        logger.info(f"Fine {fine_id} paid on {fine.payment_date}")
        return fine

    def update_fine(self, fine_id: str, changes: Dict[str, Any]) -> Fine:
        """Merge the supplied fields into a fine."""
        if not changes:
            raise ValidationError("No fields to update")
        with self.store.session() as db:
            fine = db.get(Fine, fine_id)
            if fine is None:
                raise FineNotFound(fine_id)
            try:
                fine = Fine.model_validate({**fine.model_dump(), **changes, "fine_id": fine_id})
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid fine update: {e.errors()[0]['msg']}") from e
            db.update(fine)
        logger.info(f"Fine {fine_id} updated: {', '.join(sorted(changes))}")
        return fine

    # ---- copy lifecycle

    def add_copy(self, book_id: str, location: str = "main", condition: str = "good") -> BookCopy:
        with self.store.session() as db:
            book = self._get_book(db, book_id)
            copy = BookCopy(copy_id=new_id("C"), book_id=book_id, location=location, condition=condition)
            db.add(copy)
            book = refresh_counts(db, book)

        logger.info(f"Added copy {copy.copy_id} to book {book_id} (total={book.total}, available={book.available})")
        self.notifier.emit(EventType.ADD_COPY, book_id=book_id, copy_id=copy.copy_id)
        return copy

    def remove_copy(self, book_id: str, copy_id: Optional[str] = None) -> BookCopy:
        """Remove one available copy; a borrowed copy is never removed."""
        with self.store.session() as db:
            book = self._get_book(db, book_id)
            if copy_id is not None:
                copy = db.get(BookCopy, copy_id)
                if copy is None or copy.book_id != book_id:
                    raise CopyNotFound(copy_id)
                if not copy.is_available:
                    raise CopyNotAvailable(copy_id)
            else:
                copy = db.first_available_copy(book_id)
                if copy is None:
                    raise NoAvailableCopy(book_id)

            db.delete(BookCopy, copy.copy_id)
            book = refresh_counts(db, book)

        logger.info(f"Removed copy {copy.copy_id} from book {book_id} (total={book.total}, available={book.available})")
        self.notifier.emit(EventType.REMOVE_COPY, book_id=book_id, copy_id=copy.copy_id)
        return copy

    def book_counts(self, book_id: str) -> Book:
        with self.store.session() as db:
            return self._get_book(db, book_id)

    # ---- catalog edits

    def update_book(
        self,
        book_id: str,
        title: str,
        author: str,
        category_id: str,
        description: Optional[str] = None,
    ) -> Book:
        with self.store.session() as db:
            book = self._get_book(db, book_id)
            if db.get(Category, category_id) is None:
                raise CategoryNotFound(category_id)
            book.title = title
            book.author = author
            book.category_id = category_id
            book.description = description or ""
            db.update(book)

        logger.info(f"Book {book_id} edited")
        self.notifier.emit(EventType.EDIT_BOOK, book_id=book_id)
        return book

    # ---- overdue

    def list_overdue(self, as_of: Optional[date] = None) -> List[OverdueEntry]:
        """Open transactions whose due date is before ``as_of``."""
        as_of = as_of or today()
        with self.store.session() as db:
            overdue = [
                t for t in db.list(Transaction)
                if t.is_open and t.due_date < as_of
            ]
            entries = [
                OverdueEntry(
                    transaction_id=t.transaction_id,
                    user_id=t.user_id,
                    copy_id=t.copy_id,
                    book_id=self._book_id_for_copy(db, t.copy_id),
                    borrow_date=t.borrow_date,
                    due_date=t.due_date,
                )
                for t in overdue
            ]
        return sorted(entries, key=lambda e: (e.due_date, e.transaction_id))
