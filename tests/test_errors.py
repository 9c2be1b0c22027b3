from fastapi.testclient import TestClient
from app.main import app
from app.core.exceptions import (
    AuthenticityError,
    ConflictError,
    CorrelationMissError,
    ProviderUnavailableError,
    ResourceNotFoundError,
    ValidationError,
)
import pytest

client = TestClient(app)


def test_404_not_found():
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"


def test_validation_error_structure():
    # Temporary route with a typed body
    from pydantic import BaseModel

    class Item(BaseModel):
        name: str
        price: int

    @app.post("/test-validation")
    def create_item(item: Item):
        return item

    response = client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0


def test_custom_exception():
    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ResourceNotFoundError(message="Item not found")

    response = client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"


@pytest.mark.parametrize("exc, status_code, code", [
    (ValidationError("Invalid plan type selected", details={"plan_type": "X"}), 400, "VALIDATION_FAILURE"),
    (AuthenticityError(), 400, "AUTHENTICITY_FAILURE"),
    (ProviderUnavailableError(), 503, "PROVIDER_UNAVAILABLE"),
    (CorrelationMissError(), 404, "CORRELATION_MISS"),
    (ConflictError("Twin is already active"), 409, "CONFLICT"),
])
def test_domain_errors_share_envelope(exc, status_code, code):
    path = f"/test-domain-error/{code.lower()}"

    @app.get(path)
    def trigger():
        raise exc

    response = client.get(path)
    assert response.status_code == status_code
    data = response.json()
    assert data["code"] == code
    assert data["error"] == exc.message
    assert data["details"] == exc.details
