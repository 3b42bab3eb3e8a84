from decimal import Decimal


def borrow(client, book_id="B1", user_id="U1"):
    return client.post("/api/transactions/borrow", json={"book_id": book_id, "user_id": user_id})


def test_health(client, store):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "store": store.backend}


def test_read_endpoints(client):
    for path in ("/api/books", "/api/categories", "/api/bookcopies", "/api/copies",
                 "/api/transactions", "/api/fines", "/api/members", "/api/staff"):
        response = client.get(path)
        assert response.status_code == 200, path
        assert isinstance(response.json(), list), path

    assert len(client.get("/api/bookcopies").json()) == 3
    assert client.get("/api/staff").json()[0]["staff_name"] == "Sam Librarian"


def test_books_report_copy_counts(client):
    borrow(client)
    books = {b["book_id"]: b for b in client.get("/api/books").json()}
    assert (books["B1"]["total"], books["B1"]["available"]) == (2, 1)
    assert (books["B2"]["total"], books["B2"]["available"]) == (1, 1)


def test_borrow_until_no_copy_left(client):
    first = borrow(client)
    assert first.status_code == 200
    body = first.json()
    assert body["transaction"]["user_id"] == "U1"
    assert body["transaction"]["return_date"] is None
    assert body["copy"]["copy_id"] == body["transaction"]["copy_id"]
    assert body["copy"]["status"] == "borrowed"

    assert borrow(client, user_id="U2").status_code == 200
    third = borrow(client, user_id="U3")
    assert third.status_code == 400
    assert "No available copies" in third.json()["error"]


def test_borrow_validation(client):
    response = client.post("/api/transactions/borrow", json={"book_id": "B1"})
    assert response.status_code == 400
    assert "user_id" in response.json()["error"]

    assert borrow(client, book_id="B404").status_code == 404


def test_return_with_fine(client):
    transaction_id = borrow(client).json()["transaction"]["transaction_id"]

    response = client.post("/api/transactions/return", json={
        "transaction_id": transaction_id,
        "return_date": "2026-05-01",
        "fine_amount": "4.50",
        "fine_reason": "Late",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["transaction"]["return_date"] == "2026-05-01"
    assert Decimal(body["fine"]["amount"]) == Decimal("4.50")
    assert body["fine"]["payment_date"] is None
    assert body["fine"]["user_id"] == "U1"

    fines = client.get("/api/fines").json()
    assert [f["fine_id"] for f in fines] == [body["fine"]["fine_id"]]


def test_return_errors(client):
    assert client.post("/api/transactions/return", json={"transaction_id": "T404"}).status_code == 404
    assert client.post("/api/transactions/return", json={}).status_code == 400

    transaction_id = borrow(client).json()["transaction"]["transaction_id"]
    assert client.post("/api/transactions/return", json={"transaction_id": transaction_id}).status_code == 200
    again = client.post("/api/transactions/return", json={"transaction_id": transaction_id})
    assert again.status_code == 409
    assert "already been returned" in again.json()["error"]


def test_fine_update_and_payment(client):
    transaction_id = borrow(client).json()["transaction"]["transaction_id"]
    fine = client.post("/api/transactions/return", json={
        "transaction_id": transaction_id, "fine_amount": 2,
    }).json()["fine"]

    response = client.put(f"/api/fines/{fine['fine_id']}", json={"payment_date": "2026-06-01"})
    assert response.status_code == 200
    assert response.json()["payment_date"] == "2026-06-01"
    assert response.json()["fine_reason"] == "Fine added on return"

    paid = client.post(f"/api/fines/{fine['fine_id']}/pay")
    assert paid.status_code == 200
    assert paid.json()["payment_date"] is not None

    assert client.put("/api/fines/F404", json={"fine_reason": "x"}).status_code == 404
    assert client.put(f"/api/fines/{fine['fine_id']}", json={}).status_code == 400
    for body in ({"fine_reason": None}, {"amount": None}):
        response = client.put(f"/api/fines/{fine['fine_id']}", json=body)
        assert response.status_code == 400, body
        assert next(iter(body)) in response.json()["error"]
    assert client.put(f"/api/fines/{fine['fine_id']}", json={"payment_date": None}).json()["payment_date"] is None
    assert client.post("/api/fines/F404/pay").status_code == 404


def test_manage_copies(client):
    added = client.post("/api/books/copies", json={"book_id": "B2", "action": "add"})
    assert added.status_code == 200
    body = added.json()
    assert body["success"] is True
    assert (body["total"], body["available"]) == (2, 2)

    removed = client.post("/api/books/copies", json={
        "book_id": "B2", "action": "remove", "copy_id": body["copy"]["copy_id"],
    })
    assert removed.status_code == 200
    assert (removed.json()["total"], removed.json()["available"]) == (1, 1)


def test_manage_copies_errors(client):
    assert client.post("/api/books/copies", json={"book_id": "B404", "action": "add"}).status_code == 404
    assert client.post("/api/books/copies", json={"book_id": "B1", "action": "remove"}).status_code == 400
    assert client.post("/api/books/copies", json={"book_id": "B1", "action": "burn"}).status_code == 400
    assert client.post("/api/books/copies", json={
        "book_id": "B1", "action": "remove", "copy_id": "C404",
    }).status_code == 400

    copy_id = borrow(client).json()["transaction"]["copy_id"]
    response = client.post("/api/books/copies", json={"book_id": "B1", "action": "remove", "copy_id": copy_id})
    assert response.status_code == 400
    assert "not available" in response.json()["error"]


def test_update_book(client):
    response = client.put("/api/books/B1", json={
        "title": "Dune", "author": "F. Herbert", "category_id": "CAT2", "description": "Desert planet",
    })
    assert response.status_code == 200
    assert response.json()["author"] == "F. Herbert"
    assert response.json()["description"] == "Desert planet"

    assert client.put("/api/books/B1", json={"title": "Dune", "author": "x"}).status_code == 400
    assert client.put("/api/books/B404", json={"title": "a", "author": "b", "category_id": "CAT1"}).status_code == 404
    assert client.put("/api/books/B1", json={"title": "a", "author": "b", "category_id": "CAT404"}).status_code == 404


def test_create_member(client):
    response = client.post("/api/members", json={"name": "Dana", "email": "dana@example.com", "password": "s3cret"})
    assert response.status_code == 200
    member = response.json()
    assert member["user_id"].startswith("U")
    assert member["role"] == "member"
    assert "password_hash" not in member
    assert "password" not in member

    members = client.get("/api/members").json()
    assert member["user_id"] in {m["user_id"] for m in members}
    assert all("password_hash" not in m for m in members)

    assert client.post("/api/members", json={"name": "Eve", "email": "eve@example.com"}).status_code == 400


def test_overdue_endpoint(client):
    borrow(client, book_id="B2", user_id="U2")

    assert client.get("/api/overdue").json() == []

    rows = client.get("/api/overdue", params={"as_of": "2099-01-01"}).json()
    assert len(rows) == 1
    assert rows[0]["user_name"] == "Bob Reader"
    assert rows[0]["book_title"] == "Clean Code"
    assert rows[0]["book_id"] == "B2"


def test_events_reach_subscribers(client, events):
    borrow(client)
    client.post("/api/books/copies", json={"book_id": "B2", "action": "add"})

    assert [e.type.value for e in events] == ["borrow", "addCopy"]


def test_notifier_status(client):
    status = client.get("/api/notifier/status").json()
    assert status["node_id"] == "test-node"
    assert status["mqtt_enabled"] is False
    assert status["connected"] is False


def test_busy_store_returns_503(client, store):
    if store.backend != "csv":
        return
    store._lock.acquire()
    try:
        response = borrow(client)
    finally:
        store._lock.release()
    assert response.status_code == 503
    assert "busy" in response.json()["error"]
