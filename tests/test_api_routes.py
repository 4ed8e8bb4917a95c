import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from restaurant_inventory.api.v1.inventory import get_store
from restaurant_inventory.main import app
from restaurant_inventory.services.alerts import validate_alert, validate_dashboard_summary

BASE = "/api/v1/inventory"


@pytest.fixture
def client(pizza_store):
    app.dependency_overrides[get_store] = lambda: pizza_store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _pizza(store, quantity=1):
    return {"items": [{"menu_item_id": store.pizza, "quantity": quantity}]}


class TestOrderRoutes:
    def test_requirements(self, client, pizza_store):
        response = client.post(f"{BASE}/requirements", json=_pizza(pizza_store, 2))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [Decimal(r["total_quantity_needed"]) for r in body["data"]] == [Decimal("0.25"), Decimal("0.1")]

    def test_availability_shortage(self, client, pizza_store):
        pizza_store.set_quantity(pizza_store.flour, "0.1")
        response = client.post(f"{BASE}/availability", json=_pizza(pizza_store))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["is_valid"] is False
        assert Decimal(data["insufficient_items"][0]["shortage"]) == Decimal("0.025")

    def test_empty_items_rejected(self, client):
        response = client.post(f"{BASE}/availability", json={"items": []})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    def test_deduct_success(self, client, pizza_store):
        response = client.post(f"{BASE}/orders/7/deduct", json=_pizza(pizza_store))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["success"] is True
        assert len(data["transactions"]) == 2
        assert pizza_store.quantity_of(pizza_store.flour) == Decimal("49.875")

    def test_deduct_shortage_is_conflict(self, client, pizza_store):
        pizza_store.set_quantity(pizza_store.flour, "0.1")
        response = client.post(f"{BASE}/orders/8/deduct", json=_pizza(pizza_store))

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["data"]["errors"][0]["type"] == "insufficient_inventory"
        assert pizza_store.ledger == []

    def test_deduct_bypass(self, client, pizza_store):
        pizza_store.set_quantity(pizza_store.flour, "0.1")
        payload = {**_pizza(pizza_store), "skip_inventory_check": True}
        response = client.post(f"{BASE}/orders/8/deduct", json=payload)

        assert response.status_code == 200
        assert pizza_store.quantity_of(pizza_store.flour) == Decimal("-0.025")

    def test_duplicate_deduction(self, client, pizza_store):
        client.post(f"{BASE}/orders/9/deduct", json=_pizza(pizza_store))
        response = client.post(f"{BASE}/orders/9/deduct", json=_pizza(pizza_store))

        assert response.status_code == 409
        assert response.json()["data"]["errors"][0]["type"] == "duplicate_deduction"

    def test_process_missing_order(self, client):
        response = client.post(f"{BASE}/orders/404/process")

        assert response.status_code == 404
        assert response.json()["data"]["errors"][0]["type"] == "order_not_found"

    def test_process_stored_order(self, client, pizza_store):
        order_id = pizza_store.add_order([{"menu_item_id": pizza_store.pizza, "quantity": 1}])
        response = client.post(f"{BASE}/orders/{order_id}/process", json={"skip_inventory_check": False})

        assert response.status_code == 200
        assert pizza_store.quantity_of(pizza_store.cheese) == Decimal("19.95")

    def test_recipe_coverage(self, client, pizza_store):
        payload = {"items": [{"menu_item_id": pizza_store.drink, "quantity": 1}]}
        response = client.post(f"{BASE}/recipe-coverage", json=payload)

        data = response.json()["data"]
        assert data["is_valid"] is False
        assert data["items_without_recipes"][0]["error"] == "Menu item has no associated recipe"


class TestStockRoutes:
    def test_batch_adjust(self, client, pizza_store):
        payload = {
            "reference_id": 5,
            "updates": [{"product_id": pizza_store.flour, "quantity_change": "-2"}],
        }
        response = client.post(f"{BASE}/batch-adjust", json=payload)

        assert response.status_code == 201
        assert response.json()["data"][0]["notes"] == "Batch update for order #5"
        assert pizza_store.quantity_of(pizza_store.flour) == Decimal("48")

    def test_batch_adjust_unknown_product(self, client, pizza_store):
        payload = {"updates": [{"product_id": 999, "quantity_change": "-2"}]}
        response = client.post(f"{BASE}/batch-adjust", json=payload)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"
        assert pizza_store.ledger == []

    def test_restock(self, client, pizza_store):
        response = client.post(f"{BASE}/products/{pizza_store.cheese}/restock", json={"quantity": "5"})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["transaction"]["transaction_type"] == "restock"
        assert Decimal(data["product"]["current_quantity"]) == Decimal("25")

    def test_adjust_direction_rule(self, client, pizza_store):
        payload = {"quantity_change": "3", "transaction_type": "waste"}
        response = client.post(f"{BASE}/products/{pizza_store.cheese}/adjust", json=payload)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    def test_quantity_check(self, client, pizza_store):
        response = client.get(f"{BASE}/products/{pizza_store.cheese}/quantity-check", params={"change": "-25"})

        data = response.json()["data"]
        assert data["is_valid"] is False
        assert data["error"] == "Quantity adjustment would result in negative inventory"

    def test_transactions(self, client, pizza_store):
        client.post(f"{BASE}/orders/3/deduct", json=_pizza(pizza_store))
        response = client.get(f"{BASE}/transactions", params={"product_id": pizza_store.flour})

        rows = response.json()["data"]
        assert len(rows) == 1
        assert rows[0]["reference_id"] == 3

    def test_transactions_limit_bounds(self, client):
        response = client.get(f"{BASE}/transactions", params={"limit": 0})
        assert response.status_code == 422


class TestAlertRoutes:
    def test_dashboard(self, client, pizza_store):
        pizza_store.set_quantity(pizza_store.flour, "2")
        pizza_store.set_quantity(pizza_store.cheese, "0")
        response = client.get(f"{BASE}/dashboard")

        data = response.json()["data"]
        assert data["total_products"] == 2
        assert data["alert_summary"] == "1 product out of stock, 1 product running low"
        assert data["low_stock_alerts"][0]["severity"] == "critical"

    def test_low_and_out_of_stock(self, client, pizza_store):
        pizza_store.set_quantity(pizza_store.cheese, "0")

        low = client.get(f"{BASE}/alerts/low-stock").json()["data"]
        out = client.get(f"{BASE}/alerts/out-of-stock").json()["data"]

        assert low == []
        assert [a["name"] for a in out] == ["Cheese"]

    def test_alert_bodies_pass_shape_validation(self, client, pizza_store):
        pizza_store.set_quantity(pizza_store.flour, "4.5")
        pizza_store.set_quantity(pizza_store.cheese, "0")

        low = client.get(f"{BASE}/alerts/low-stock").json()["data"]
        out = client.get(f"{BASE}/alerts/out-of-stock").json()["data"]
        dashboard = client.get(f"{BASE}/dashboard").json()["data"]

        assert low[0]["current_quantity"] == 4.5
        assert all(validate_alert(a) for a in low + out)
        assert validate_dashboard_summary(dashboard) is True
