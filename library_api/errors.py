"""Error taxonomy shared by the stores, the services and the API layer.

Every expected failure of a core operation is raised as one of these
classes. The API layer turns them into ``{"error": message}`` responses
using ``status_code``.
"""

from fastapi import status


class LibraryError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(LibraryError):
    status_code = status.HTTP_404_NOT_FOUND


class BookNotFound(NotFound):
    def __init__(self, book_id: str):
        super().__init__(f"Book not found: {book_id}")
        self.book_id = book_id


class CopyNotFound(NotFound):
    # Copy ids only arrive in request bodies, so a bad one is a bad request
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, copy_id: str):
        super().__init__(f"Copy not found: {copy_id}")
        self.copy_id = copy_id


class TransactionNotFound(NotFound):
    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class FineNotFound(NotFound):
    def __init__(self, fine_id: str):
        super().__init__(f"Fine not found: {fine_id}")
        self.fine_id = fine_id


class CategoryNotFound(NotFound):
    def __init__(self, category_id: str):
        super().__init__(f"Category not found: {category_id}")
        self.category_id = category_id


class Conflict(LibraryError):
    status_code = status.HTTP_409_CONFLICT


class NoAvailableCopy(Conflict):
    # Reported as a bad request by the borrow and copy endpoints
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, book_id: str):
        super().__init__(f"No available copies for book {book_id}")
        self.book_id = book_id


class CopyNotAvailable(Conflict):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, copy_id: str):
        super().__init__(f"Copy {copy_id} is not available")
        self.copy_id = copy_id


class AlreadyReturned(Conflict):
    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction {transaction_id} has already been returned")
        self.transaction_id = transaction_id


class ValidationError(LibraryError):
    status_code = status.HTTP_400_BAD_REQUEST


class StoreUnavailable(LibraryError):
    """Backend I/O failed or timed out. Safe to retry."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class IntegrityViolation(Conflict):
    """A write broke a key or check constraint. Retrying will not help."""
