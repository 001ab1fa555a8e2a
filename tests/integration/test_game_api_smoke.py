"""Smoke tests for the HTTP API.

Quick validation that every endpoint is wired and answers.
"""

import pytest
from fastapi.testclient import TestClient

from trivial_drive.main import create_app
from trivial_drive.models import MessagesConfig

pytestmark = pytest.mark.integration

TEXTS = MessagesConfig()


@pytest.fixture
def client(config):
    """Test client with the application lifespan running."""
    with TestClient(create_app(config)) as test_client:
        yield test_client


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "trivial-drive"
    assert response.json()["package_name"] == "com.sample.android.trivialdrivesample"


def test_health(client):
    """Test that both listeners are reported running."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["listeners"] == {"new_purchases": "running", "consumed_purchases": "running"}


def test_initial_game_state(client):
    response = client.get("/game/state")

    assert response.status_code == 200
    assert response.json() == {
        "gas_tank_level": 4,
        "gas_tank_infinite": False,
        "is_premium": False,
        "subscriptions": [],
        "billing_flow_in_process": False,
    }


def test_drive(client):
    """Test that a drive uses gas and returns its message."""
    response = client.post("/game/drive")

    assert response.status_code == 200
    assert response.json() == {"gas_tank_level": 3, "message": TEXTS.you_drove}


def test_drive_until_empty(client):
    messages = [client.post("/game/drive").json()["message"] for _ in range(5)]

    assert messages == [TEXTS.you_drove] * 3 + [TEXTS.out_of_gas] * 2
    assert client.get("/game/state").json()["gas_tank_level"] == 0


def test_send_message(client):
    response = client.post("/game/messages", json={"message": "hello"})
    assert response.status_code == 202


def test_send_empty_message_rejected(client):
    response = client.post("/game/messages", json={"message": ""})
    assert response.status_code == 422


def test_list_products(client):
    response = client.get("/products")

    assert response.status_code == 200
    products = {item["sku"]: item for item in response.json()}
    assert set(products) == {"gas", "premium", "infinite_gas_monthly", "infinite_gas_yearly"}
    assert products["gas"]["can_purchase"] is False
    assert products["premium"]["can_purchase"] is True
    assert products["premium"]["icon"] == "upgrade_app"


def test_get_product(client):
    response = client.get("/products/infinite_gas_yearly")

    assert response.status_code == 200
    data = response.json()
    assert data["price"] == "$19.99"
    assert data["icon"] == "get_infinite_gas"


def test_get_unknown_product(client):
    response = client.get("/products/mystery_box")

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "Product not found"


def test_buy_unknown_product(client):
    response = client.post("/products/mystery_box/buy")
    assert response.status_code == 404


def test_buy_launches_flow(client):
    response = client.post("/products/premium/buy", json={"context": "upgrade-screen"})

    assert response.status_code == 200
    assert response.json()["launched"] is True
    assert client.get("/game/state").json()["billing_flow_in_process"] is True


def test_buy_subscription_reports_replaced_tier(client):
    response = client.post("/products/infinite_gas_yearly/buy")

    assert response.status_code == 200
    assert response.json()["replaced_sku"] == "infinite_gas_monthly"


def test_second_flow_not_launched(client):
    client.post("/products/premium/buy")
    response = client.post("/products/infinite_gas_monthly/buy")

    assert response.status_code == 200
    assert response.json()["launched"] is False


def test_complete_without_pending_flow(client):
    response = client.post("/emulator/purchases/complete")

    assert response.status_code == 200
    assert response.json()["completed"] is False


def test_cancel_flow(client):
    client.post("/products/premium/buy")
    response = client.post("/emulator/purchases/cancel")

    assert response.status_code == 200
    assert response.json()["sku"] == "premium"
    assert client.get("/game/state").json()["billing_flow_in_process"] is False
    assert client.get("/products/premium").json()["is_purchased"] is False


def test_refresh(client):
    response = client.post("/emulator/refresh")
    assert response.status_code == 200


def test_reset(client):
    """Test that reset forgets purchases and refills the tank."""
    client.post("/game/drive")
    client.post("/products/premium/buy")
    client.post("/emulator/purchases/complete")

    response = client.post("/emulator/reset")

    assert response.status_code == 200
    state = client.get("/game/state").json()
    assert state["gas_tank_level"] == 4
    assert state["is_premium"] is False


def test_request_id_header(client):
    first = client.get("/game/state").headers["X-Request-ID"]
    second = client.get("/game/state").headers["X-Request-ID"]
    assert first and second and first != second
