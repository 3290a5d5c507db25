"""
HTTP surface tests.

Verifies:
- Requests without a known, active actor return 401
- Capability failures return 403 before any work is done
- Domain errors render as {"error", "code", "details"} with their status
- The assign -> transfer -> approve and sell -> cancel flows over HTTP
"""

import pytest

from stocktrack.services import ledger_service
from stocktrack.time_utils import utcnow


class TestActorResolution:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/items"),
            ("GET", "/api/warehouses"),
            ("POST", "/api/inventory/assign"),
            ("GET", "/api/transfers"),
            ("GET", "/api/sales"),
        ],
    )
    def test_requires_actor(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_actor(self, client, db_session):
        resp = client.get("/api/items", headers={"X-Actor-Id": "999"})
        assert resp.status_code == 401

    @pytest.mark.parametrize("raw", ["\u00b2", "12abc", "-1"])
    def test_malformed_actor_header(self, client, db_session, raw):
        resp = client.get("/api/items", headers={"X-Actor-Id": raw})
        assert resp.status_code == 401

    def test_inactive_actor(self, client, db_session, north_staff, staff_headers):
        north_staff.is_active = False
        db_session.commit()

        resp = client.get("/api/items", headers=staff_headers)
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"


class TestCapabilities:

    def test_staff_cannot_assign(self, client, staff_headers, north, widget):
        resp = client.post(
            "/api/inventory/assign",
            json={"warehouse_id": north.id, "item_id": widget.id, "quantity": 5},
            headers=staff_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json()["details"] == {"required_capability": "ASSIGN_STOCK"}

    def test_manager_cannot_approve(self, client, manager_headers):
        resp = client.post("/api/transfers/1/approve", headers=manager_headers)
        assert resp.status_code == 403

    def test_staff_cannot_create_items(self, client, staff_headers, category):
        resp = client.post(
            "/api/items",
            json={"sku": "X-1", "name": "X", "category_id": category.id, "unit": "pcs"},
            headers=staff_headers,
        )
        assert resp.status_code == 403


class TestCatalogRoutes:

    def test_create_and_fetch_item(self, client, admin_headers, category):
        resp = client.post(
            "/api/items",
            json={
                "sku": "BOLT-010",
                "name": "Bolt M10",
                "category_id": category.id,
                "unit": "pcs",
                "selling_price_cents": 250,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        item_id = resp.get_json()["id"]

        resp = client.get(f"/api/items/{item_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["total_quantity"] == 0

    def test_missing_fields(self, client, admin_headers):
        resp = client.post("/api/items", json={"name": "No SKU"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "InvalidRequest"

    def test_duplicate_sku_conflict(self, client, admin_headers, widget, category):
        resp = client.post(
            "/api/items",
            json={"sku": "WID-001", "name": "Again", "category_id": category.id, "unit": "pcs"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "ConflictingIdentity"

    def test_sku_cannot_change(self, client, admin_headers, widget):
        resp = client.put(f"/api/items/{widget.id}", json={"sku": "NEW"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_item_with_stock(self, client, admin_headers, stocked):
        resp = client.delete(f"/api/items/{stocked.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_unknown_item(self, client, admin_headers):
        resp = client.get("/api/items/424242", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "NotFound"

    def test_category_lifecycle(self, client, admin_headers, staff_headers, category):
        resp = client.put(f"/api/categories/{category.id}", json={"name": "Tools"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Tools"

        resp = client.patch(f"/api/categories/{category.id}/status", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["is_active"] is False

        resp = client.get("/api/categories", headers=staff_headers)
        assert resp.get_json() == []

        resp = client.get(f"/api/categories/{category.id}", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.get_json()["item_count"] == 0

        resp = client.delete(f"/api/categories/{category.id}", headers=admin_headers)
        assert resp.status_code == 200

        resp = client.get(f"/api/categories/{category.id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_category_with_items_not_deleted(self, client, admin_headers, category, widget):
        resp = client.delete(f"/api/categories/{category.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["details"]["item_count"] == 1

    def test_category_status_requires_boolean(self, client, admin_headers, category):
        resp = client.patch(f"/api/categories/{category.id}/status", json={"is_active": "no"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_staff_cannot_edit_categories(self, client, staff_headers, category):
        resp = client.put(f"/api/categories/{category.id}", json={"name": "Tools"}, headers=staff_headers)
        assert resp.status_code == 403


class TestInventoryRoutes:

    def test_assign_and_read_balance(self, client, admin_headers, north, widget):
        resp = client.post(
            "/api/inventory/assign",
            json={"warehouse_id": north.id, "item_id": widget.id, "quantity": 12},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["new_qty"] == 12

        resp = client.get(
            f"/api/inventory/balance?warehouse_id={north.id}&item_id={widget.id}",
            headers=admin_headers,
        )
        assert resp.get_json()["quantity"] == 12

        resp = client.get(f"/api/inventory/movements?warehouse_id={north.id}&action=add", headers=admin_headers)
        assert [e["action"] for e in resp.get_json()] == ["ADD"]

    def test_oversell_adjustment_renders_details(self, client, admin_headers, north, stocked):
        resp = client.post(
            "/api/inventory/adjust",
            json={"warehouse_id": north.id, "item_id": stocked.id, "quantity": -150},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["code"] == "InsufficientStock"
        assert body["details"]["available"] == 100
        assert body["details"]["requested"] == 150

    def test_overlong_adjust_remarks(self, client, admin_headers, north, stocked):
        resp = client.post(
            "/api/inventory/adjust",
            json={"warehouse_id": north.id, "item_id": stocked.id, "quantity": -1, "remarks": "r" * 300},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"]["max_length"] == 255
        assert ledger_service.get_balance(north.id, stocked.id) == 100

    def test_non_integer_quantity(self, client, admin_headers, north, widget):
        resp = client.post(
            "/api/inventory/assign",
            json={"warehouse_id": north.id, "item_id": widget.id, "quantity": "lots"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_warehouse_stock(self, client, staff_headers, north, stocked):
        resp = client.get(f"/api/warehouses/{north.id}/stock", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.get_json()["total_quantity"] == 100


class TestTransferRoutes:

    def test_transfer_flow(self, client, admin_headers, manager_headers, north, south, stocked):
        resp = client.post(
            "/api/transfers",
            json={
                "from_warehouse_id": north.id,
                "to_warehouse_id": south.id,
                "items": [{"item_id": stocked.id, "quantity": 30}],
                "reason": "balance stock",
            },
            headers=manager_headers,
        )
        assert resp.status_code == 201
        transfer = resp.get_json()
        assert transfer["status"] == "PENDING"

        resp = client.post(f"/api/transfers/{transfer['id']}/approve", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "COMPLETED"

        resp = client.post(f"/api/transfers/{transfer['id']}/cancel", headers=manager_headers)
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "InvalidState"

        assert ledger_service.get_balance(north.id, stocked.id) == 70
        assert ledger_service.get_balance(south.id, stocked.id) == 30

        resp = client.get("/api/transfers/stats", headers=manager_headers)
        assert resp.get_json()["completed"] == 1

    def test_empty_items_rejected(self, client, manager_headers, north, south):
        resp = client.post(
            "/api/transfers",
            json={"from_warehouse_id": north.id, "to_warehouse_id": south.id, "items": []},
            headers=manager_headers,
        )
        assert resp.status_code == 400


class TestSalesRoutes:

    def test_sell_then_cancel(self, client, staff_headers, manager_headers, north, stocked):
        resp = client.post(
            "/api/sales",
            json={
                "warehouse_id": north.id,
                "items": [{"item_id": stocked.id, "quantity": 30}],
                "payment_method": "CARD",
            },
            headers=staff_headers,
        )
        assert resp.status_code == 201
        sale = resp.get_json()
        assert sale["total_cents"] == 300000
        assert ledger_service.get_balance(north.id, stocked.id) == 70

        resp = client.post(f"/api/sales/{sale['id']}/cancel", json={"reason": "returned"}, headers=staff_headers)
        assert resp.status_code == 403

        resp = client.post(f"/api/sales/{sale['id']}/cancel", json={"reason": "returned"}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["cancellation_reason"] == "returned"
        assert ledger_service.get_balance(north.id, stocked.id) == 100

    def test_oversell_rejected(self, client, staff_headers, north, stocked):
        resp = client.post(
            "/api/sales",
            json={"warehouse_id": north.id, "items": [{"item_id": stocked.id, "quantity": 101}]},
            headers=staff_headers,
        )
        assert resp.status_code == 409
        assert resp.get_json()["details"]["available"] == 100

    @pytest.mark.parametrize("field", ["discount_type", "payment_method"])
    def test_non_string_choice(self, client, staff_headers, north, stocked, field):
        resp = client.post(
            "/api/sales",
            json={"warehouse_id": north.id, "items": [{"item_id": stocked.id, "quantity": 1}], field: 5},
            headers=staff_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "InvalidRequest"

    def test_list_sales(self, client, staff_headers, north, stocked):
        client.post(
            "/api/sales",
            json={"warehouse_id": north.id, "items": [{"item_id": stocked.id, "quantity": 1}]},
            headers=staff_headers,
        )

        resp = client.get("/api/sales?status=COMPLETED", headers=staff_headers)
        assert resp.status_code == 200
        rows = resp.get_json()
        assert len(rows) == 1
        assert "lines" not in rows[0]

    def test_end_date_covers_whole_day(self, client, staff_headers, north, stocked):
        client.post(
            "/api/sales",
            json={"warehouse_id": north.id, "items": [{"item_id": stocked.id, "quantity": 1}]},
            headers=staff_headers,
        )
        today = utcnow().date().isoformat()

        resp = client.get(f"/api/sales?start_date={today}&end_date={today}", headers=staff_headers)
        assert len(resp.get_json()) == 1

        resp = client.get("/api/sales?end_date=not-a-date", headers=staff_headers)
        assert resp.status_code == 400
