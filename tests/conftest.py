import pytest
from fastapi.testclient import TestClient

from library_api.main import create_app
from library_api.schemas.records import Book, BookCopy, Category, Member, Staff
from library_api.services.catalog import CatalogService
from library_api.services.circulation import CirculationService
from library_api.services.notifier import ChangeNotifier
from library_api.store import CsvStore, SqlStore


def seed(store):
    """Two books: B1 with copies C1, C2 and B2 with copy C3."""
    with store.session() as db:
        db.add(Category(category_id="CAT1", category_name="Science Fiction"))
        db.add(Category(category_id="CAT2", category_name="Software"))
        db.add(Book(book_id="B1", title="Dune", author="Frank Herbert", category_id="CAT1", total=2, available=2))
        db.add(Book(book_id="B2", title="Clean Code", author="Robert C. Martin", category_id="CAT2", total=1, available=1))
        db.add(BookCopy(copy_id="C1", book_id="B1"))
        db.add(BookCopy(copy_id="C2", book_id="B1"))
        db.add(BookCopy(copy_id="C3", book_id="B2"))
        db.add(Member(user_id="U1", name="Alice Reader", email="alice@example.com"))
        db.add(Member(user_id="U2", name="Bob Reader", email="bob@example.com"))
        db.add(Member(user_id="U3", name="Carol Reader", email="carol@example.com"))
        db.add(Staff(staff_id="S1", staff_name="Sam Librarian", email="sam@example.com", role="librarian"))


def make_store(kind, tmp_path):
    if kind == "csv":
        return CsvStore(tmp_path / "csv_files", timeout=0.2)
    return SqlStore(f"sqlite:///{tmp_path / 'library.db'}", timeout=1.0)


@pytest.fixture(params=["csv", "sql"])
def store(request, tmp_path):
    s = make_store(request.param, tmp_path)
    seed(s)
    yield s
    s.close()


@pytest.fixture
def csv_store(tmp_path):
    s = make_store("csv", tmp_path)
    seed(s)
    return s


@pytest.fixture
def notifier():
    return ChangeNotifier(node_id="test-node")


@pytest.fixture
def events(notifier):
    received = []
    with notifier.subscribe(received.append):
        yield received


@pytest.fixture
def circulation(store, notifier):
    return CirculationService(store, notifier, loan_period_days=14)


@pytest.fixture
def catalog(store):
    return CatalogService(store)


@pytest.fixture
def client(store, notifier):
    app = create_app(store=store, notifier=notifier, mqtt_enabled=False)
    with TestClient(app) as test_client:
        yield test_client
