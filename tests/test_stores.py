import csv
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from library_api.database import create_db_engine
from library_api.errors import IntegrityViolation, StoreUnavailable
from library_api.schemas.records import Book, BookCopy, Category, Transaction
from library_api.services.catalog import CatalogService
from library_api.store import CsvStore, SqlStore
from library_api.store.sql_store import SqlStoreSession
from library_api.store.schema import BOOK_COPIES, BOOKS


def write_file(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_legacy_headers_are_normalized(tmp_path):
    directory = tmp_path / "legacy"
    write_file(directory / "Books.csv", "BookID,Title,Authors,CategoryID,Category_Name\nB7,Emma,Jane Austen,CAT1,Classics\n")
    write_file(directory / "BookCopies.csv", "CopyID,BookID,Status,Location\nC70,B7,Borrowed,main\nC71,B7,Available,annex\n")
    write_file(directory / "Transactions.csv", "TransactionID,UserID,CopyID,BorrowDate,DueDate,ReturnDate\nT1,U1,C70,2026-01-01,2026-01-15,\n")
    store = CsvStore(directory)

    with store.session() as db:
        book = db.get(Book, "B7")
        copies = db.list(BookCopy, book_id="B7")
        transaction = db.get(Transaction, "T1")

    assert book.author == "Jane Austen"
    assert book.category_id == "CAT1"
    assert [(c.copy_id, c.status) for c in copies] == [("C70", "borrowed"), ("C71", "available")]
    assert copies[1].location == "annex"
    assert transaction.is_open
    assert transaction.due_date == date(2026, 1, 15)


def test_rewritten_files_use_canonical_lowercase_headers(tmp_path):
    directory = tmp_path / "legacy"
    write_file(directory / "BookCopies.csv", "CopyID,BookID,Status\nC1,B1,Available\n")
    store = CsvStore(directory)

    with store.session() as db:
        copy = db.get(BookCopy, "C1")
        copy.status = "Borrowed"
        db.update(copy)

    with open(directory / BOOK_COPIES.filename, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == list(BOOK_COPIES.fields)
    assert rows[1][:3] == ["C1", "B1", "borrowed"]


def test_embedded_commas_and_newlines_survive(tmp_path):
    store = CsvStore(tmp_path)
    description = "Space, spice,\nand sandworms"

    with store.session() as db:
        db.add(Book(book_id="B1", title="Dune, Part One", author="Frank Herbert", description=description))

    with store.session() as db:
        book = db.get(Book, "B1")
    assert book.title == "Dune, Part One"
    assert book.description == description


def test_invalid_rows_are_skipped(tmp_path):
    write_file(tmp_path / BOOKS.filename, "book_id,title,total\nB1,Dune,2\nB2,Broken,not-a-number\n")
    store = CsvStore(tmp_path)

    with store.session() as db:
        assert [b.book_id for b in db.list(Book)] == ["B1"]


def test_failed_unit_of_work_writes_nothing(csv_store):
    with pytest.raises(RuntimeError):
        with csv_store.session() as db:
            db.add(Category(category_id="CAT9", category_name="Poetry"))
            raise RuntimeError("abort")

    with csv_store.session() as db:
        assert db.get(Category, "CAT9") is None


def test_busy_csv_store_times_out(csv_store):
    csv_store._lock.acquire()
    try:
        with pytest.raises(StoreUnavailable):
            with csv_store.session():
                pass
    finally:
        csv_store._lock.release()


def test_sessions_see_previous_commits(store):
    with store.session() as db:
        db.add(Category(category_id="CAT3", category_name="History"))
    with store.session() as db:
        db.delete(Category, "CAT1")

    with store.session() as db:
        assert [c.category_id for c in db.list(Category)] == ["CAT2", "CAT3"]


def test_first_available_copy_skips_borrowed(store):
    with store.session() as db:
        copy = db.get(BookCopy, "C1")
        copy.status = "borrowed"
        db.update(copy)

    with store.session() as db:
        assert db.first_available_copy("B1").copy_id == "C2"
        assert db.first_available_copy("B-NONE") is None


def unreachable_sql_store(tmp_path):
    return SqlStore(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'library.db'}", timeout=0.1)


def test_sql_errors_surface_as_store_unavailable(tmp_path):
    store = unreachable_sql_store(tmp_path)
    with pytest.raises(StoreUnavailable):
        with store.session() as db:
            db.list(Book)


def test_catalog_reads_fall_back_to_csv(tmp_path, csv_store):
    catalog = CatalogService(unreachable_sql_store(tmp_path), fallback=csv_store)

    assert [b.book_id for b in catalog.rows(Book)] == ["B1", "B2"]


def test_catalog_without_fallback_propagates(tmp_path):
    catalog = CatalogService(unreachable_sql_store(tmp_path))
    with pytest.raises(StoreUnavailable):
        catalog.rows(Book)


def test_list_books_derives_counts_from_copies(store):
    with store.session() as db:
        db.add(BookCopy(copy_id="C4", book_id="B2", status="borrowed"))

    books = {b.book_id: b for b in CatalogService(store).list_books()}
    assert (books["B1"].total, books["B1"].available) == (2, 2)
    assert (books["B2"].total, books["B2"].available) == (2, 1)


def test_constraint_violation_is_not_reported_as_unavailable(tmp_path):
    store = SqlStore(f"sqlite:///{tmp_path / 'library.db'}")

    with pytest.raises(IntegrityViolation):
        with store.session() as db:
            db.add(Book(book_id="B1", title="Dune", total=1, available=2))

    with store.session() as db:
        assert db.get(Book, "B1") is None
    store.close()


def test_engine_uses_given_ssl_mode():
    with patch("library_api.database.create_engine") as create_engine:
        create_db_engine("postgresql://u:p@db:5432/library", 3.0, ssl_mode="require")
        create_db_engine("postgresql://u:p@db:5432/library", 3.0)

    with_ssl, without_ssl = (c.kwargs["connect_args"] for c in create_engine.call_args_list)
    assert with_ssl == {"connect_timeout": 3, "sslmode": "require"}
    assert without_ssl == {"connect_timeout": 3}


def test_first_available_copy_skips_rows_locked_by_other_borrowers():
    db = MagicMock()
    ordered = db.query.return_value.filter.return_value.order_by.return_value
    ordered.with_for_update.return_value.first.return_value = None

    assert SqlStoreSession(db).first_available_copy("B1") is None
    ordered.with_for_update.assert_called_once_with(skip_locked=True)
