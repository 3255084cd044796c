"""Tests for customer API endpoints."""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient


class TestCustomersApi:
    """Tests for /customers."""

    def test_create(self, client: TestClient) -> None:
        """Customers are created without echoing the password."""
        response = client.post(
            "/customers",
            json={
                "email": "ada@example.com",
                "first_name": "Ada",
                "password": "secret",
                "shipping": {"city": "London"},
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "ada"
        assert "password" not in data
        assert "email" not in data["shipping"]
        assert data["billing"]["email"] == ""

    def test_duplicate_email(self, client: TestClient) -> None:
        """Emails are unique."""
        client.post("/customers", json={"email": "ada@example.com"})
        response = client.post("/customers", json={"email": "ada@example.com"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "customer_email_exists"

    def test_delete_requires_force(self, client: TestClient) -> None:
        """Customers cannot be trashed."""
        customer_id = client.post("/customers", json={"email": "ada@example.com"}).json()["id"]

        response = client.delete(f"/customers/{customer_id}")
        assert response.status_code == 501
        assert response.json()["error_code"] == "trash_not_supported"

        assert client.delete(f"/customers/{customer_id}?force=true").status_code == 200
        assert client.get(f"/customers/{customer_id}").status_code == 404

    def test_list(self, client: TestClient) -> None:
        """Listing filters by search and reports totals."""
        client.post("/customers", json={"email": "ada@example.com", "last_name": "Lovelace"})
        client.post("/customers", json={"email": "grace@example.com", "last_name": "Hopper"})

        response = client.get("/customers?search=hopper")
        assert response.headers["X-WP-Total"] == "1"
        assert response.json()["items"][0]["email"] == "grace@example.com"

    def test_order_for_unknown_customer(self, client: TestClient) -> None:
        """Orders can only reference existing customers."""
        response = client.post("/orders", json={"customer_id": 7})

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_customer_id"

    def test_order_for_customer(self, client: TestClient) -> None:
        """Orders for a customer are listed by the customer filter."""
        customer_id = client.post("/customers", json={"email": "ada@example.com"}).json()["id"]
        client.post("/orders", json={"customer_id": customer_id})
        client.post("/orders", json={})

        response = client.get(f"/orders?customer={customer_id}")
        assert [o["customer_id"] for o in response.json()["items"]] == [customer_id]

    def test_list_date_filters(self, client: TestClient) -> None:
        """created_since and created_before bound the registration date."""
        client.post("/customers", json={"email": "ada@example.com"})
        now = datetime.now(timezone.utc)
        yesterday = (now - timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S")
        tomorrow = (now + timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S")

        def total(**params: str) -> int:
            return client.get("/customers", params=params).json()["total"]

        assert total(created_since=yesterday) == 1
        assert total(created_since=tomorrow) == 0
        assert total(created_before=yesterday) == 0
