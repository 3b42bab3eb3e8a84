from .records import (
    CopyStatus, Category, Book, BookCopy, Transaction, Fine,
    Member, Staff, OverdueEntry, ReturnResult
)
from .book import BookUpdate, CopyAction
from .transaction import BorrowRequest, ReturnRequest
from .fine import FineUpdate
from .member import MemberCreate

__all__ = [
    "CopyStatus", "Category", "Book", "BookCopy", "Transaction", "Fine",
    "Member", "Staff", "OverdueEntry", "ReturnResult",
    "BookUpdate", "CopyAction",
    "BorrowRequest", "ReturnRequest",
    "FineUpdate",
    "MemberCreate",
]
