from .user import Member, Staff
from .book import Category, Book, BookCopy
from .transaction import Transaction, Fine

__all__ = [
    "Member",
    "Staff",
    "Category",
    "Book",
    "BookCopy",
    "Transaction",
    "Fine",
]
