"""
Stock mutation and catalog tests.

Verifies:
- assign / adjust produce ADD / ADJUSTMENT entries with readable remarks
- inactive items and warehouses are refused where the rules say so
- warehouse stock valuation and low-stock alerts
- catalog identity rules (unique SKU, immutable SKU, guarded delete)
- category edits, warehouse manager reassignment and user management
"""

import pytest

from stocktrack.errors import (
    ConflictingIdentity,
    Forbidden,
    InsufficientStock,
    InvalidQuantity,
    InvalidRequest,
    InvalidState,
    NotFound,
)
from stocktrack.models import MovementLogEntry
from stocktrack.permissions import Actor
from stocktrack.services import catalog_service, inventory_service, ledger_service, transfer_service


class TestAssignStock:

    def test_assign_adds_and_logs(self, db_session, admin, north, widget):
        result = inventory_service.assign_stock(admin, warehouse_id=north.id, item_id=widget.id, quantity=100)

        assert result["previous_qty"] == 0
        assert result["new_qty"] == 100
        entry = db_session.query(MovementLogEntry).one()
        assert entry.action == "ADD"
        assert entry.remarks == "Added 100 pcs to North Depot"
        assert entry.user_id == admin.user_id

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_assign_requires_positive_quantity(self, db_session, admin, north, widget, quantity):
        with pytest.raises(InvalidQuantity):
            inventory_service.assign_stock(admin, warehouse_id=north.id, item_id=widget.id, quantity=quantity)

    def test_assign_refuses_inactive_item(self, db_session, admin, north, widget):
        catalog_service.set_item_status(admin, widget.id, False)

        with pytest.raises(InvalidState):
            inventory_service.assign_stock(admin, warehouse_id=north.id, item_id=widget.id, quantity=1)

    def test_assign_refuses_inactive_warehouse(self, db_session, admin, north, widget):
        catalog_service.set_warehouse_status(admin, north.id, False)

        with pytest.raises(InvalidState):
            inventory_service.assign_stock(admin, warehouse_id=north.id, item_id=widget.id, quantity=1)

    def test_assign_unknown_item(self, db_session, admin, north):
        with pytest.raises(NotFound):
            inventory_service.assign_stock(admin, warehouse_id=north.id, item_id=9999, quantity=1)

    def test_manager_cannot_assign(self, db_session, manager, north, widget):
        with pytest.raises(Forbidden):
            inventory_service.assign_stock(manager, warehouse_id=north.id, item_id=widget.id, quantity=1)


class TestAdjustStock:

    def test_negative_adjustment(self, db_session, admin, north, stocked):
        result = inventory_service.adjust_stock(
            admin, warehouse_id=north.id, item_id=stocked.id, quantity_delta=-30,
        )

        assert result["new_qty"] == 70
        entry = db_session.query(MovementLogEntry).order_by(MovementLogEntry.id.desc()).first()
        assert entry.action == "ADJUSTMENT"
        assert entry.quantity == 30
        assert entry.remarks == "Adjusted by -30 pcs"

    def test_positive_adjustment_default_remark(self, db_session, admin, north, stocked):
        inventory_service.adjust_stock(admin, warehouse_id=north.id, item_id=stocked.id, quantity_delta=5)

        entry = db_session.query(MovementLogEntry).order_by(MovementLogEntry.id.desc()).first()
        assert entry.remarks == "Adjusted by +5 pcs"

    def test_adjustment_below_zero_refused(self, db_session, admin, north, stocked):
        with pytest.raises(InsufficientStock):
            inventory_service.adjust_stock(admin, warehouse_id=north.id, item_id=stocked.id, quantity_delta=-101)

        assert ledger_service.get_balance(north.id, stocked.id) == 100

    def test_zero_adjustment_refused(self, db_session, admin, north, stocked):
        with pytest.raises(InvalidQuantity):
            inventory_service.adjust_stock(admin, warehouse_id=north.id, item_id=stocked.id, quantity_delta=0)

    def test_adjustment_allowed_on_inactive_item(self, db_session, admin, north, stocked):
        catalog_service.set_item_status(admin, stocked.id, False)

        result = inventory_service.adjust_stock(
            admin, warehouse_id=north.id, item_id=stocked.id, quantity_delta=-100, remarks="write-off",
        )

        assert result["new_qty"] == 0

    def test_overlong_remarks_refused(self, db_session, admin, north, stocked):
        with pytest.raises(InvalidRequest):
            inventory_service.adjust_stock(
                admin, warehouse_id=north.id, item_id=stocked.id, quantity_delta=-1, remarks="x" * 256,
            )

        assert ledger_service.get_balance(north.id, stocked.id) == 100

    def test_remarks_at_column_limit_kept(self, db_session, admin, north, stocked):
        inventory_service.adjust_stock(
            admin, warehouse_id=north.id, item_id=stocked.id, quantity_delta=-1, remarks="x" * 255,
        )

        entry = db_session.query(MovementLogEntry).order_by(MovementLogEntry.id.desc()).first()
        assert len(entry.remarks) == 255


class TestLineNormalization:

    def test_empty_lines(self):
        with pytest.raises(InvalidRequest):
            inventory_service.normalize_lines([])

    def test_duplicate_items(self):
        with pytest.raises(InvalidRequest):
            inventory_service.normalize_lines([
                {"item_id": 1, "quantity": 1},
                {"item_id": 1, "quantity": 2},
            ])

    def test_non_positive_quantity(self):
        with pytest.raises(InvalidQuantity):
            inventory_service.normalize_lines([{"item_id": 1, "quantity": 0}])

    def test_keeps_submission_order(self):
        assert inventory_service.normalize_lines([
            {"item_id": 7, "quantity": 1},
            {"item_id": 3, "quantity": 4},
        ]) == [(7, 1), (3, 4)]


class TestReads:

    def test_warehouse_stock_values(self, db_session, admin, staff, north, stocked, gadget):
        inventory_service.assign_stock(admin, warehouse_id=north.id, item_id=gadget.id, quantity=2)

        report = inventory_service.warehouse_stock(staff, north.id)

        assert report["total_quantity"] == 102
        assert report["total_purchase_value_cents"] == 100 * 5000 + 2 * 20000
        assert report["total_selling_value_cents"] == 100 * 10000 + 2 * 35000
        by_sku = {row["item"]["sku"]: row for row in report["items"]}
        assert by_sku["WID-001"]["potential_profit_cents"] == 100 * 5000

    def test_low_stock_sums_all_warehouses(self, db_session, admin, north, south, widget, gadget):
        inventory_service.assign_stock(admin, warehouse_id=north.id, item_id=widget.id, quantity=6)
        inventory_service.assign_stock(admin, warehouse_id=south.id, item_id=widget.id, quantity=6)
        inventory_service.assign_stock(admin, warehouse_id=south.id, item_id=gadget.id, quantity=5)

        alerts = inventory_service.low_stock_items(admin)

        # widget: 12 > 10, gadget: 5 <= 5
        assert [a["item"]["sku"] for a in alerts] == ["GAD-001"]
        assert alerts[0]["deficit"] == 0


class TestCatalog:

    def test_duplicate_sku(self, db_session, admin, category, widget):
        with pytest.raises(ConflictingIdentity):
            catalog_service.create_item(admin, sku="WID-001", name="Other", category_id=category.id, unit="pcs")

    def test_sku_immutable(self, db_session, admin, widget):
        with pytest.raises(InvalidRequest):
            catalog_service.update_item(admin, widget.id, {"sku": "NEW-SKU"})

    def test_update_item_fields(self, db_session, admin, widget):
        item = catalog_service.update_item(admin, widget.id, {"selling_price_cents": 12500, "min_stock": 3})

        assert item.selling_price_cents == 12500
        assert item.min_stock == 3

    def test_staff_cannot_create_items(self, db_session, staff, category):
        with pytest.raises(Forbidden):
            catalog_service.create_item(staff, sku="X-1", name="X", category_id=category.id, unit="pcs")

    def test_delete_item_with_stock_refused(self, db_session, admin, stocked):
        with pytest.raises(InvalidState):
            catalog_service.delete_item(admin, stocked.id)

    def test_delete_item_with_history_refused(self, db_session, admin, north, stocked):
        inventory_service.adjust_stock(admin, warehouse_id=north.id, item_id=stocked.id, quantity_delta=-100)

        with pytest.raises(InvalidState):
            catalog_service.delete_item(admin, stocked.id)

    def test_delete_unused_item(self, db_session, admin, gadget):
        catalog_service.delete_item(admin, gadget.id)

        with pytest.raises(NotFound):
            catalog_service.get_item(admin, gadget.id)

    def test_duplicate_warehouse_name(self, db_session, admin, north):
        with pytest.raises(ConflictingIdentity):
            catalog_service.create_warehouse(admin, name="North Depot", location="Elsewhere")

    def test_create_warehouse_assigns_manager(self, db_session, admin, north_manager):
        warehouse = catalog_service.create_warehouse(
            admin, name="East Depot", location="Kolkata", manager_id=north_manager.id,
        )

        assert warehouse.manager_id == north_manager.id
        assert north_manager.warehouse_id == warehouse.id

    def test_staff_cannot_be_warehouse_manager(self, db_session, north_staff, admin):
        with pytest.raises(InvalidRequest):
            catalog_service.create_warehouse(admin, name="West", location="Pune", manager_id=north_staff.id)

    def test_reassigning_manager_clears_previous_scope(self, db_session, admin, north, south, north_manager, stocked):
        replacement = catalog_service.create_user(name="New Mgr", email="new.mgr@stocktrack.test", role="MANAGER")

        warehouse = catalog_service.update_warehouse(admin, north.id, {"manager_id": replacement.id})

        assert warehouse.manager_id == replacement.id
        assert replacement.warehouse_id == north.id
        assert north_manager.warehouse_id is None
        with pytest.raises(Forbidden):
            transfer_service.create_transfer(
                Actor.from_user(north_manager),
                from_warehouse_id=north.id,
                to_warehouse_id=south.id,
                lines=[{"item_id": stocked.id, "quantity": 1}],
            )

    def test_update_category(self, db_session, admin, category):
        updated = catalog_service.update_category(admin, category.id, {"name": "Tools", "description": None})

        assert updated.name == "Tools"
        assert updated.description is None

    def test_duplicate_category_name(self, db_session, admin, category):
        other = catalog_service.create_category(admin, name="Paint")

        with pytest.raises(ConflictingIdentity):
            catalog_service.update_category(admin, other.id, {"name": "Hardware"})

    def test_inactive_category_hidden_by_default(self, db_session, admin, category):
        catalog_service.set_category_status(admin, category.id, False)

        assert catalog_service.list_categories(admin) == []
        assert [c.id for c in catalog_service.list_categories(admin, include_inactive=True)] == [category.id]

    def test_delete_category_with_items_refused(self, db_session, admin, category, widget):
        with pytest.raises(InvalidState):
            catalog_service.delete_category(admin, category.id)

    def test_delete_empty_category(self, db_session, admin, category):
        catalog_service.delete_category(admin, category.id)

        with pytest.raises(NotFound):
            catalog_service.get_category(category.id)

    def test_staff_cannot_manage_categories(self, db_session, staff, category):
        with pytest.raises(Forbidden):
            catalog_service.set_category_status(staff, category.id, False)

    def test_create_user_normalizes(self, db_session, north):
        user = catalog_service.create_user(name="New", email="New@Example.com", role="staff", warehouse_id=north.id)

        assert user.email == "new@example.com"
        assert user.role == "STAFF"

    def test_create_user_unknown_role(self, db_session):
        with pytest.raises(InvalidRequest):
            catalog_service.create_user(name="X", email="x@example.com", role="OWNER")


class TestUsers:

    def test_update_user_fields(self, db_session, north_staff):
        user = catalog_service.update_user(north_staff.id, {"name": "Sam S", "email": "Sam@Example.com"})

        assert user.name == "Sam S"
        assert user.email == "sam@example.com"

    def test_update_user_duplicate_email(self, db_session, north_staff, admin_user):
        with pytest.raises(ConflictingIdentity):
            catalog_service.update_user(north_staff.id, {"email": admin_user.email})

    def test_warehouse_manager_keeps_managing_role(self, db_session, north_manager):
        with pytest.raises(InvalidState):
            catalog_service.update_user(north_manager.id, {"role": "STAFF"})

    def test_last_admin_cannot_be_demoted(self, db_session, admin_user):
        with pytest.raises(InvalidState):
            catalog_service.update_user(admin_user.id, {"role": "MANAGER"})

    def test_deactivated_user_is_not_resolved(self, db_session, north_staff):
        catalog_service.set_user_status(north_staff.id, False)

        assert catalog_service.get_active_user(north_staff.id) is None

        catalog_service.set_user_status(north_staff.id, True)
        assert catalog_service.get_active_user(north_staff.id).id == north_staff.id

    def test_last_active_admin_cannot_be_deactivated(self, db_session, admin_user):
        with pytest.raises(InvalidState):
            catalog_service.set_user_status(admin_user.id, False)

    def test_second_admin_can_be_deactivated(self, db_session, admin_user):
        other = catalog_service.create_user(name="Backup", email="backup@stocktrack.test", role="ADMIN")

        assert catalog_service.set_user_status(other.id, False).is_active is False

    def test_move_staff_between_warehouses(self, db_session, north_staff, south):
        user = catalog_service.assign_user_warehouse(north_staff.id, south.id)
        assert user.warehouse_id == south.id

        user = catalog_service.assign_user_warehouse(north_staff.id, None)
        assert user.warehouse_id is None

    def test_manager_cannot_leave_managed_warehouse(self, db_session, north_manager, south):
        with pytest.raises(InvalidState):
            catalog_service.assign_user_warehouse(north_manager.id, None)
        with pytest.raises(InvalidState):
            catalog_service.assign_user_warehouse(north_manager.id, south.id)

    def test_unknown_user_or_warehouse(self, db_session, north_staff):
        with pytest.raises(NotFound):
            catalog_service.set_user_status(424242, False)
        with pytest.raises(NotFound):
            catalog_service.assign_user_warehouse(north_staff.id, 424242)
