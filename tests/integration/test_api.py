import pytest
from fastapi.testclient import TestClient

from penny.api import create_app
from penny.database.connection import DatabaseConfig
from penny.repositories.base import StoreError
from penny.services.expense_service import ExpenseService

@pytest.fixture
def client(service: ExpenseService) -> TestClient:
    """API client on a real temp database"""
    return TestClient(create_app(service=service))

def create(client: TestClient, **overrides):
    body = {"date": "2024-01-10", "amount": 350.00, "vendorName": "Swiggy", "description": "Dinner"}
    body.update(overrides)
    return client.post("/expenses", json=body)

@pytest.mark.integration
class TestExpenseEndpoints:

    def test_create_expense(self, client: TestClient):
        # Act
        response = create(client)

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert data["id"] == 1
        assert data["date"] == "2024-01-10"
        assert data["amount"] == 350.0
        assert data["vendorName"] == "Swiggy"
        assert data["description"] == "Dinner"
        assert data["category"] == "Food"
        assert data["isAnomaly"] is False
        assert data["createdAt"]

    def test_create_without_description(self, client: TestClient):
        response = client.post(
            "/expenses", json={"date": "2024-01-10", "amount": "180", "vendorName": "Uber"},
        )

        assert response.status_code == 201
        assert response.json()["description"] is None
        assert response.json()["category"] == "Transport"

    @pytest.mark.parametrize("overrides, field, message", [
        ({"amount": 0}, "amount", "invalid amount"),
        ({"amount": -10}, "amount", "invalid amount"),
        ({"date": "yesterday"}, "date", "invalid date"),
        ({"vendorName": "   "}, "vendor_name", "vendor name required"),
        ({"vendorName": None}, "vendor_name", "vendor name required"),
    ])
    def test_create_invalid(self, client: TestClient, service, overrides, field, message):
        # Act
        response = create(client, **overrides)

        # Assert
        assert response.status_code == 400
        assert response.json() == {
            "status": 400,
            "error": "Validation failed",
            "details": {field: message},
        }
        assert service.list_expenses() == []

    def test_malformed_json_body(self, client: TestClient):
        response = client.post(
            "/expenses", content="not json", headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["status"] == 400

    def test_list_newest_first(self, client: TestClient):
        create(client, date="2024-01-10")
        create(client, date="2024-03-01", vendorName="Netflix", amount=999)

        response = client.get("/expenses")

        assert response.status_code == 200
        assert [e["vendorName"] for e in response.json()] == ["Netflix", "Swiggy"]

    def test_get_expense(self, client: TestClient):
        created = create(client).json()

        response = client.get(f"/expenses/{created['id']}")

        assert response.status_code == 200
        assert response.json() == created

    def test_get_missing_expense(self, client: TestClient):
        response = client.get("/expenses/999")

        assert response.status_code == 404
        assert response.json() == {"status": 404, "error": "Expense with ID 999 not found"}

    def test_delete_expense(self, client: TestClient):
        created = create(client).json()

        response = client.delete(f"/expenses/{created['id']}")

        assert response.status_code == 204
        assert response.content == b""
        assert client.get(f"/expenses/{created['id']}").status_code == 404

    def test_delete_missing_expense(self, client: TestClient):
        assert client.delete("/expenses/999").status_code == 404

    def test_id_beyond_integer_range_is_not_found(self, client: TestClient):
        # Arrange
        huge_id = 10 ** 20

        # Act
        fetched = client.get(f"/expenses/{huge_id}")
        deleted = client.delete(f"/expenses/{huge_id}")

        # Assert
        assert fetched.status_code == 404
        assert fetched.json()["status"] == 404
        assert deleted.status_code == 404

    def test_store_failure_is_500(self, client: TestClient, service, mocker):
        mocker.patch.object(service.repository, "get_all", side_effect=StoreError("db locked"))

        response = client.get("/expenses")

        assert response.status_code == 500
        assert response.json() == {"status": 500, "error": "An unexpected error occurred"}

@pytest.mark.integration
class TestUploadAndDashboard:

    def test_upload_sample_csv(self, client: TestClient, sample_csv: bytes):
        # Act
        response = client.post(
            "/expenses/upload-csv",
            files={"file": ("expenses.csv", sample_csv, "text/csv")},
        )

        # Assert
        assert response.status_code == 200
        assert response.json() == {"added": 10, "failed": 0, "errors": []}

    def test_upload_with_bad_rows_is_still_200(self, client: TestClient, invalid_csv: bytes):
        response = client.post(
            "/expenses/upload-csv",
            files={"file": ("bad.csv", invalid_csv, "text/csv")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["added"] == 2
        assert body["failed"] == 5
        assert body["errors"][0] == "row 2: invalid date"

    def test_upload_without_file(self, client: TestClient):
        response = client.post("/expenses/upload-csv")

        assert response.status_code == 400

    def test_dashboard(self, client: TestClient, sample_csv: bytes):
        # Arrange
        client.post("/expenses/upload-csv", files={"file": ("expenses.csv", sample_csv, "text/csv")})

        # Act
        response = client.get("/expenses/dashboard")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["anomalyCount"] == 1
        assert len(data["anomalies"]) == 1
        assert data["anomalies"][0]["amount"] == 75000.0
        assert data["topVendors"][0] == {"vendorName": "Amazon", "total": 77500.0, "count": 2}
        assert len(data["topVendors"]) == 5
        assert data["categoryTotals"][0]["category"] == "Shopping"
        assert data["monthlyByCategory"]["2024-01"]["Food"] == 1550.0

    def test_dashboard_empty_store(self, client: TestClient):
        response = client.get("/expenses/dashboard")

        assert response.status_code == 200
        assert response.json() == {
            "monthlyByCategory": {},
            "topVendors": [],
            "categoryTotals": [],
            "anomalies": [],
            "anomalyCount": 0,
        }

    def test_categories(self, client: TestClient):
        response = client.get("/expenses/categories")

        assert response.status_code == 200
        rules = response.json()
        assert rules["swiggy"] == "Food"
        assert rules["uber"] == "Transport"
        assert list(rules).index("uber eats") < list(rules).index("uber")

@pytest.mark.integration
def test_create_app_builds_its_own_store(tmp_path):
    app = create_app(db_config=DatabaseConfig(tmp_path / "api.db"))
    client = TestClient(app)

    assert client.post(
        "/expenses", json={"date": "2024-01-10", "amount": 10, "vendorName": "Ola"},
    ).status_code == 201
    assert (tmp_path / "api.db").exists()
