"""Schema mapping between records, CSV files and SQL tables.

Legacy exports spell the same column several ways (``book_id``, ``BookID``,
``bookid``). Headers are lowercased and looked up in ``aliases`` once, when
a store adapter reads a table, so nothing past the adapter ever sees a
non-canonical name.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple, Type

from library_api import models
from library_api.schemas import records


@dataclass(frozen=True)
class Table:
    name: str
    filename: str
    key: str
    record: Type[records.Record]
    model: type
    aliases: Dict[str, str] = field(default_factory=dict)

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self.record.model_fields)

    def canonical(self, header: str) -> str:
        name = header.strip().lower().replace(" ", "_")
        return self.aliases.get(name, name)


CATEGORIES = Table(
    name="categories",
    filename="Category.csv",
    key="category_id",
    record=records.Category,
    model=models.Category,
    aliases={"categoryid": "category_id", "id": "category_id", "categoryname": "category_name", "name": "category_name"},
)

BOOKS = Table(
    name="books",
    filename="Books.csv",
    key="book_id",
    record=records.Book,
    model=models.Book,
    aliases={
        "bookid": "book_id",
        "id": "book_id",
        "authors": "author",
        "categoryid": "category_id",
        "desc": "description",
        "total_copies": "total",
        "available_copies": "available",
    },
)

BOOK_COPIES = Table(
    name="bookcopies",
    filename="BookCopies.csv",
    key="copy_id",
    record=records.BookCopy,
    model=models.BookCopy,
    aliases={"copyid": "copy_id", "bookid": "book_id"},
)

TRANSACTIONS = Table(
    name="transactions",
    filename="Transactions.csv",
    key="transaction_id",
    record=records.Transaction,
    model=models.Transaction,
    aliases={
        "transactionid": "transaction_id",
        "userid": "user_id",
        "copyid": "copy_id",
        "borrowdate": "borrow_date",
        "duedate": "due_date",
        "returndate": "return_date",
    },
)

FINES = Table(
    name="fines",
    filename="Fines.csv",
    key="fine_id",
    record=records.Fine,
    model=models.Fine,
    aliases={
        "fineid": "fine_id",
        "id": "fine_id",
        "userid": "user_id",
        "transactionid": "transaction_id",
        "duedate": "due_date",
        "paymentdate": "payment_date",
        "reason": "fine_reason",
        "finereason": "fine_reason",
    },
)

MEMBERS = Table(
    name="members",
    filename="Users.csv",
    key="user_id",
    record=records.Member,
    model=models.Member,
    aliases={"userid": "user_id", "id": "user_id", "membershipdate": "membership_date"},
)

STAFF = Table(
    name="staff",
    filename="Staff.csv",
    key="staff_id",
    record=records.Staff,
    model=models.Staff,
    aliases={"staffid": "staff_id", "staffname": "staff_name", "name": "staff_name"},
)

TABLES = (CATEGORIES, BOOKS, BOOK_COPIES, TRANSACTIONS, FINES, MEMBERS, STAFF)

_BY_RECORD = {table.record: table for table in TABLES}
_BY_NAME = {table.name: table for table in TABLES}


def table_for(record_or_type) -> Table:
    """Table mapping for a record instance or record class."""
    record_type = record_or_type if isinstance(record_or_type, type) else type(record_or_type)
    return _BY_RECORD[record_type]


def table_named(name: str) -> Table:
    return _BY_NAME[name]
