# Overview: Reference data the stock core validates against (categories, items, warehouses, users).

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictingIdentity, InvalidRequest, InvalidState, NotFound
from ..models import (
    Category,
    Item,
    MovementLogEntry,
    SaleLineItem,
    StockBalance,
    TransferLineItem,
    User,
    Warehouse,
)
from ..permissions import Actor, Role, require_capability
from .concurrency import run_atomic
from .inventory_service import ensure_item, ensure_warehouse


def _flush_unique(message: str, details: dict) -> None:
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise ConflictingIdentity(message, details=details) from exc


def _require_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(f"{field} is required", details={"field": field})
    return value.strip()


def _non_negative_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidRequest(f"{field} must be a non-negative integer", details={field: value})
    return value


# =============================================================================
# Categories
# =============================================================================

def create_category(actor: Actor, *, name: str, description: str | None = None) -> Category:
    require_capability(actor, "MANAGE_CATALOG")
    name = _require_text(name, "name")

    def _op():
        category = Category(name=name, description=description)
        db.session.add(category)
        _flush_unique("Category name already exists", {"name": name})
        return category

    return run_atomic(_op)


def list_categories(actor: Actor, *, include_inactive: bool = False) -> list[Category]:
    require_capability(actor, "VIEW_CATALOG")
    query = db.session.query(Category)
    if not include_inactive:
        query = query.filter(Category.is_active.is_(True))
    return query.order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound(f"Category {category_id} not found", details={"category_id": category_id})
    return category


def update_category(actor: Actor, category_id: int, changes: dict) -> Category:
    require_capability(actor, "MANAGE_CATALOG")
    unknown = set(changes) - {"name", "description"}
    if unknown:
        raise InvalidRequest("Unknown category fields", details={"fields": sorted(unknown)})

    def _op():
        category = get_category(category_id)
        if "name" in changes:
            category.name = _require_text(changes["name"], "name")
        if "description" in changes:
            category.description = changes["description"]
        _flush_unique("Category name already exists", {"name": changes.get("name")})
        return category

    return run_atomic(_op)


def set_category_status(actor: Actor, category_id: int, is_active: bool) -> Category:
    """Deactivated categories drop out of default listings; their items are untouched."""
    require_capability(actor, "MANAGE_CATALOG")

    def _op():
        category = get_category(category_id)
        category.is_active = bool(is_active)
        db.session.flush()
        return category

    return run_atomic(_op)


def delete_category(actor: Actor, category_id: int) -> None:
    require_capability(actor, "MANAGE_CATALOG")

    def _op():
        category = get_category(category_id)
        item_count = db.session.query(func.count(Item.id)).filter(Item.category_id == category.id).scalar()
        if item_count:
            raise InvalidState(
                "Cannot delete category with assigned items. Please reassign items first.",
                details={"category_id": category.id, "item_count": int(item_count)},
            )
        db.session.delete(category)
        db.session.flush()

    run_atomic(_op)


# =============================================================================
# Items
# =============================================================================

ITEM_UPDATABLE_FIELDS = (
    "name",
    "description",
    "category_id",
    "unit",
    "min_stock",
    "purchase_price_cents",
    "selling_price_cents",
    "currency",
)


def _check_item_fields(fields: dict) -> None:
    for field in ("min_stock", "purchase_price_cents", "selling_price_cents"):
        if field in fields:
            _non_negative_int(fields[field], field)
    for field in ("name", "unit"):
        if field in fields:
            fields[field] = _require_text(fields[field], field)
    if "category_id" in fields:
        get_category(fields["category_id"])


def create_item(
    actor: Actor,
    *,
    sku: str,
    name: str,
    category_id: int,
    unit: str,
    description: str | None = None,
    min_stock: int = 0,
    purchase_price_cents: int = 0,
    selling_price_cents: int = 0,
    currency: str | None = None,
) -> Item:
    """Create a catalog item. SKU is unique and cannot be changed afterwards."""
    require_capability(actor, "MANAGE_CATALOG")
    sku = _require_text(sku, "sku")
    fields = {
        "name": name,
        "unit": unit,
        "min_stock": min_stock,
        "purchase_price_cents": purchase_price_cents,
        "selling_price_cents": selling_price_cents,
    }

    def _op():
        _check_item_fields(fields)
        get_category(category_id)
        if db.session.query(Item.id).filter_by(sku=sku).first():
            raise ConflictingIdentity("SKU already exists", details={"sku": sku})

        item = Item(
            sku=sku,
            description=description,
            category_id=category_id,
            currency=currency or current_app.config.get("DEFAULT_CURRENCY", "INR"),
            created_by_user_id=actor.user_id,
            **fields,
        )
        db.session.add(item)
        _flush_unique("SKU already exists", {"sku": sku})
        return item

    return run_atomic(_op)


def update_item(actor: Actor, item_id: int, changes: dict) -> Item:
    """Apply a partial update. The SKU is immutable."""
    require_capability(actor, "MANAGE_CATALOG")
    if "sku" in changes:
        raise InvalidRequest("SKU cannot be changed", details={"item_id": item_id})
    unknown = set(changes) - set(ITEM_UPDATABLE_FIELDS)
    if unknown:
        raise InvalidRequest("Unknown item fields", details={"fields": sorted(unknown)})
    fields = dict(changes)

    def _op():
        item = ensure_item(item_id)
        _check_item_fields(fields)
        for key, value in fields.items():
            setattr(item, key, value)
        db.session.flush()
        return item

    return run_atomic(_op)


def set_item_status(actor: Actor, item_id: int, is_active: bool) -> Item:
    require_capability(actor, "MANAGE_CATALOG")

    def _op():
        item = ensure_item(item_id)
        item.is_active = bool(is_active)
        db.session.flush()
        return item

    return run_atomic(_op)


def total_item_stock(item_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(StockBalance.quantity), 0))
        .filter(StockBalance.item_id == item_id)
        .scalar()
    )
    return int(total or 0)


def delete_item(actor: Actor, item_id: int) -> None:
    """
    Hard-delete an item that no warehouse holds.

    Items with stock, or with any movement or document history, must be
    deactivated instead.
    """
    require_capability(actor, "MANAGE_CATALOG")

    def _op():
        item = ensure_item(item_id)
        stock = total_item_stock(item.id)
        if stock > 0:
            raise InvalidState(
                "Cannot delete item with existing stock. Please remove all stock first.",
                details={"item_id": item.id, "total_quantity": stock},
            )
        referenced = any(
            db.session.query(model.id).filter(model.item_id == item.id).first() is not None
            for model in (MovementLogEntry, TransferLineItem, SaleLineItem)
        )
        if referenced:
            raise InvalidState(
                "Item has movement or document history; deactivate it instead",
                details={"item_id": item.id},
            )
        db.session.delete(item)
        db.session.flush()

    run_atomic(_op)


def list_items(
    actor: Actor,
    *,
    category_id: int | None = None,
    include_inactive: bool = False,
    search: str | None = None,
) -> list[Item]:
    require_capability(actor, "VIEW_CATALOG")
    query = db.session.query(Item)
    if category_id is not None:
        query = query.filter(Item.category_id == category_id)
    if not include_inactive:
        query = query.filter(Item.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(Item.name.ilike(pattern) | Item.sku.ilike(pattern))
    return query.order_by(Item.name.asc()).all()


def get_item(actor: Actor, item_id: int) -> Item:
    require_capability(actor, "VIEW_CATALOG")
    return ensure_item(item_id)


# =============================================================================
# Warehouses
# =============================================================================

def _resolve_manager(manager_id: int) -> User:
    manager = db.session.get(User, manager_id)
    if manager is None:
        raise NotFound(f"User {manager_id} not found", details={"user_id": manager_id})
    if manager.role not in (Role.ADMIN.value, Role.MANAGER.value):
        raise InvalidRequest("Manager must be an ADMIN or MANAGER", details={"user_id": manager_id})
    if not manager.is_active:
        raise InvalidState("Manager is not active", details={"user_id": manager_id})
    return manager


def create_warehouse(
    actor: Actor,
    *,
    name: str,
    location: str,
    manager_id: int | None = None,
) -> Warehouse:
    """Create a warehouse; a manager, when given, is assigned to it."""
    require_capability(actor, "MANAGE_CATALOG")
    name = _require_text(name, "name")
    location = _require_text(location, "location")

    def _op():
        warehouse = Warehouse(name=name, location=location)
        db.session.add(warehouse)
        _flush_unique("Warehouse name already exists", {"name": name})
        if manager_id is not None:
            manager = _resolve_manager(manager_id)
            warehouse.manager_id = manager.id
            manager.warehouse_id = warehouse.id
            db.session.flush()
        return warehouse

    return run_atomic(_op)


def update_warehouse(actor: Actor, warehouse_id: int, changes: dict) -> Warehouse:
    require_capability(actor, "MANAGE_CATALOG")
    unknown = set(changes) - {"name", "location", "manager_id"}
    if unknown:
        raise InvalidRequest("Unknown warehouse fields", details={"fields": sorted(unknown)})

    def _op():
        warehouse = ensure_warehouse(warehouse_id)
        if "name" in changes:
            warehouse.name = _require_text(changes["name"], "name")
        if "location" in changes:
            warehouse.location = _require_text(changes["location"], "location")
        if changes.get("manager_id") is not None:
            manager = _resolve_manager(changes["manager_id"])
            if warehouse.manager_id is not None and warehouse.manager_id != manager.id:
                previous = db.session.get(User, warehouse.manager_id)
                # The outgoing manager loses their scope over this warehouse
                if previous is not None and previous.warehouse_id == warehouse.id:
                    previous.warehouse_id = None
            warehouse.manager_id = manager.id
            manager.warehouse_id = warehouse.id
        _flush_unique("Warehouse name already exists", {"name": changes.get("name")})
        return warehouse

    return run_atomic(_op)


def set_warehouse_status(actor: Actor, warehouse_id: int, is_active: bool) -> Warehouse:
    require_capability(actor, "MANAGE_CATALOG")

    def _op():
        warehouse = ensure_warehouse(warehouse_id)
        warehouse.is_active = bool(is_active)
        db.session.flush()
        return warehouse

    return run_atomic(_op)


def list_warehouses(actor: Actor, *, include_inactive: bool = False) -> list[Warehouse]:
    require_capability(actor, "VIEW_CATALOG")
    query = db.session.query(Warehouse)
    if not include_inactive:
        query = query.filter(Warehouse.is_active.is_(True))
    return query.order_by(Warehouse.name.asc()).all()


def get_warehouse(actor: Actor, warehouse_id: int) -> Warehouse:
    require_capability(actor, "VIEW_CATALOG")
    return ensure_warehouse(warehouse_id)


# =============================================================================
# Users
# =============================================================================

def _parse_role(role) -> str:
    try:
        return Role(str(role).upper()).value
    except ValueError:
        raise InvalidRequest(f"Unknown role: {role}", details={"role": role}) from None


def _ensure_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found", details={"user_id": user_id})
    return user


def _managed_warehouse(user: User) -> Warehouse | None:
    return db.session.query(Warehouse).filter(Warehouse.manager_id == user.id).first()


def _guard_last_admin(user: User, message: str) -> None:
    if user.role != Role.ADMIN.value or not user.is_active:
        return
    others = (
        db.session.query(func.count(User.id))
        .filter(User.role == Role.ADMIN.value, User.is_active.is_(True), User.id != user.id)
        .scalar()
    )
    if not others:
        raise InvalidState(message, details={"user_id": user.id})


def create_user(*, name: str, email: str, role: str, warehouse_id: int | None = None) -> User:
    """
    Register an actor. Used by the CLI; there is no HTTP surface for users
    since identities are provisioned alongside the upstream gateway.
    """
    name = _require_text(name, "name")
    email = _require_text(email, "email").lower()
    role = _parse_role(role)

    def _op():
        if warehouse_id is not None:
            ensure_warehouse(warehouse_id)
        user = User(name=name, email=email, role=role, warehouse_id=warehouse_id)
        db.session.add(user)
        _flush_unique("Email already registered", {"email": email})
        return user

    return run_atomic(_op)


def update_user(user_id: int, changes: dict) -> User:
    """
    Change a user's name, email or role.

    A user who manages a warehouse keeps a managing role, and the last active
    admin cannot be demoted.
    """
    unknown = set(changes) - {"name", "email", "role"}
    if unknown:
        raise InvalidRequest("Unknown user fields", details={"fields": sorted(unknown)})
    fields = {}
    if "name" in changes:
        fields["name"] = _require_text(changes["name"], "name")
    if "email" in changes:
        fields["email"] = _require_text(changes["email"], "email").lower()
    if "role" in changes:
        fields["role"] = _parse_role(changes["role"])

    def _op():
        user = _ensure_user(user_id)
        new_role = fields.get("role", user.role)
        if new_role != user.role:
            if user.role == Role.ADMIN.value:
                _guard_last_admin(user, "Cannot demote the last active admin")
            managed = _managed_warehouse(user)
            if managed is not None and new_role not in (Role.ADMIN.value, Role.MANAGER.value):
                raise InvalidState(
                    "User manages a warehouse. Please change the warehouse manager first.",
                    details={"user_id": user.id, "warehouse_id": managed.id},
                )
        for key, value in fields.items():
            setattr(user, key, value)
        _flush_unique("Email already registered", {"email": fields.get("email")})
        return user

    return run_atomic(_op)


def set_user_status(user_id: int, is_active: bool) -> User:
    """Activate or deactivate a user. Deactivated users are refused at the API."""

    def _op():
        user = _ensure_user(user_id)
        if not is_active:
            _guard_last_admin(user, "Cannot deactivate the last active admin")
        user.is_active = bool(is_active)
        db.session.flush()
        return user

    return run_atomic(_op)


def assign_user_warehouse(user_id: int, warehouse_id: int | None) -> User:
    """
    Move a user to a warehouse, or out of any warehouse when warehouse_id is
    None. A warehouse's manager stays put until the warehouse gets a new one.
    """

    def _op():
        user = _ensure_user(user_id)
        if warehouse_id is not None:
            ensure_warehouse(warehouse_id)
        managed = _managed_warehouse(user)
        if managed is not None and managed.id != warehouse_id:
            raise InvalidState(
                "Cannot move a manager away from their managed warehouse. "
                "Please change the warehouse manager first.",
                details={"user_id": user.id, "warehouse_id": managed.id},
            )
        user.warehouse_id = warehouse_id
        db.session.flush()
        return user

    return run_atomic(_op)


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def get_active_user(user_id: int) -> User | None:
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user
