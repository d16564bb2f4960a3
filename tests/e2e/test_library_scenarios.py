"""
E2E tests walking a book through its full loan lifecycle over HTTP.

Scenarios:
1. Lend an available book: due in 14 days, book unavailable
2. Lend the same book to someone else: book_unavailable
3. Return it: book available again, loan completed
4. Return it again: already_returned
5. Borrower with an overdue loan asks for another book: borrower_has_overdue_loans
"""

import pytest
from datetime import timedelta
from fastapi.testclient import TestClient


@pytest.mark.integration
def test_loan_lifecycle_scenarios(client: TestClient, clock, today):
    # Setup: borrower U, second borrower U2, book B
    user = client.post("/v1/borrowers", json={"name": "Ursula", "email": "ursula@example.com"}).json()
    user2 = client.post("/v1/borrowers", json={"name": "Ulises", "email": "ulises@example.com"}).json()
    book = client.post("/v1/books", json={"title": "Pedro Páramo", "author": "Juan Rulfo", "genre": "novel"}).json()
    assert book["available"] is True

    # 1. createLoan(B, U)
    response = client.post("/v1/loans", json={"book_id": book["id"], "borrower_id": user["id"]})
    assert response.status_code == 201
    loan = response.json()["loan"]
    assert loan["due_date"] == (today + timedelta(days=14)).isoformat()
    assert client.get(f"/v1/books/{book['id']}").json()["available"] is False

    # 2. createLoan(B, U2) on the same book
    response = client.post("/v1/loans", json={"book_id": book["id"], "borrower_id": user2["id"]})
    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "book_unavailable"

    # 3. returnLoan(loan)
    response = client.post(f"/v1/loans/{loan['id']}/return")
    assert response.status_code == 200
    assert response.json()["on_time"] is True
    assert client.get(f"/v1/books/{book['id']}").json()["available"] is True
    assert client.get(f"/v1/loans/{loan['id']}").json()["status"] == "completed"

    # 4. second returnLoan(loan)
    response = client.post(f"/v1/loans/{loan['id']}/return")
    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "already_returned"
    assert client.get(f"/v1/loans/{loan['id']}").json()["loan"]["returned_date"] == today.isoformat()


@pytest.mark.integration
def test_overdue_borrower_cannot_take_another_book(client: TestClient, clock, today):
    user = client.post("/v1/borrowers", json={"name": "Olga", "email": "olga@example.com"}).json()
    first = client.post("/v1/books", json={"title": "Ficciones", "author": "Borges"}).json()
    second = client.post("/v1/books", json={"title": "El Aleph", "author": "Borges"}).json()

    client.post("/v1/loans", json={"book_id": first["id"], "borrower_id": user["id"], "duration_days": 3})
    clock.current = today + timedelta(days=4)

    # 5. Different, available book; borrower well under the loan limit
    response = client.post("/v1/loans", json={"book_id": second["id"], "borrower_id": user["id"]})

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "borrower_has_overdue_loans"
    assert client.get(f"/v1/books/{second['id']}").json()["available"] is True
    assert client.get(f"/v1/borrowers/{user['id']}").json()["overdue_loans"] == 1
