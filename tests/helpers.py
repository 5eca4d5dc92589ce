"""Request payload builders shared by the API tests."""

from typing import Any, Optional

from fastapi.testclient import TestClient

DEFAULT_PASSWORD = "correct-horse-battery"


def association_payload(**overrides: Any) -> dict[str, Any]:
    """Valid camelCase body for POST /api/associations."""
    payload = {
        "name": "Foo",
        "mission": "Soins de proximité",
        "fullMission": "Foo finance des centres de soins de proximité en zone rurale.",
        "category": "health",
        "email": "contact@foo.org",
        "phone": "01 23 45 67 89",
        "website": "www.foo.org",
        "address": "1 rue de la Paix, 75002 Paris",
        "siret": "12345678901234",
    }
    payload.update(overrides)
    return payload


def donation_payload(association_id: int, **overrides: Any) -> dict[str, Any]:
    """Valid camelCase body for POST /api/donations."""
    payload = {
        "associationId": association_id,
        "donorFirstName": "Marie",
        "donorLastName": "Curie",
        "donorEmail": "marie.curie@example.fr",
        "donorPhone": "06 12 34 56 78",
        "donorAddress": "11 rue Pierre et Marie Curie",
        "donorPostalCode": "75005",
        "donorCity": "Paris",
        "amount": "50.00",
    }
    payload.update(overrides)
    return payload


def register(
    client: TestClient,
    email: str = "donor@example.fr",
    password: str = DEFAULT_PASSWORD,
    user_type: Optional[str] = "donor",
    association: Optional[dict[str, Any]] = None,
):
    """POST /api/auth/register; the client keeps the session cookie."""
    body: dict[str, Any] = {
        "email": email,
        "password": password,
        "firstName": "Jeanne",
        "lastName": "Martin",
    }
    if user_type is not None:
        body["userType"] = user_type
    if association is not None:
        body["association"] = association
    return client.post("/api/auth/register", json=body)
