"""
Pytest fixtures for StockTrack backend tests.

Provides an in-memory database, actors for every role, two warehouses with
their managers, a small catalog, and the test client.
"""

import pytest

from stocktrack import create_app
from stocktrack.extensions import db
from stocktrack.models import Category, Item, User, Warehouse
from stocktrack.permissions import Actor, Role
from stocktrack.services import inventory_service


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'ATOMIC_RETRY_BACKOFF': 0.001,
    'LOG_LEVEL': 'WARNING',
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh tables for each test."""
    with app.app_context():
        # Clear all data but keep schema
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


def _user(session, *, name, email, role, warehouse_id=None):
    user = User(name=name, email=email, role=role.value, warehouse_id=warehouse_id)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _user(db_session, name="Asha Admin", email="admin@stocktrack.test", role=Role.ADMIN)


@pytest.fixture(scope='function')
def north(db_session):
    """Source warehouse used by most scenarios."""
    warehouse = Warehouse(name="North Depot", location="Delhi")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def south(db_session):
    warehouse = Warehouse(name="South Depot", location="Chennai")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def north_manager(db_session, north):
    user = _user(
        db_session, name="Nikhil North", email="north@stocktrack.test",
        role=Role.MANAGER, warehouse_id=north.id,
    )
    north.manager_id = user.id
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def south_manager(db_session, south):
    user = _user(
        db_session, name="Sana South", email="south@stocktrack.test",
        role=Role.MANAGER, warehouse_id=south.id,
    )
    south.manager_id = user.id
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def north_staff(db_session, north):
    return _user(
        db_session, name="Sam Staff", email="staff@stocktrack.test",
        role=Role.STAFF, warehouse_id=north.id,
    )


@pytest.fixture(scope='function')
def admin(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture(scope='function')
def manager(north_manager):
    """Actor for the manager of the north warehouse."""
    return Actor.from_user(north_manager)


@pytest.fixture(scope='function')
def other_manager(south_manager):
    return Actor.from_user(south_manager)


@pytest.fixture(scope='function')
def staff(north_staff):
    return Actor.from_user(north_staff)


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Hardware", description="Tools and parts")
    db_session.add(category)
    db_session.commit()
    return category


def _item(session, *, category, creator, sku, name, min_stock=0, purchase=0, selling=0):
    item = Item(
        sku=sku,
        name=name,
        category_id=category.id,
        unit="pcs",
        min_stock=min_stock,
        purchase_price_cents=purchase,
        selling_price_cents=selling,
        currency="INR",
        created_by_user_id=creator.id,
    )
    session.add(item)
    session.commit()
    return item


@pytest.fixture(scope='function')
def widget(db_session, category, admin_user):
    return _item(
        db_session, category=category, creator=admin_user,
        sku="WID-001", name="Widget", min_stock=10, purchase=5000, selling=10000,
    )


@pytest.fixture(scope='function')
def gadget(db_session, category, admin_user):
    return _item(
        db_session, category=category, creator=admin_user,
        sku="GAD-001", name="Gadget", min_stock=5, purchase=20000, selling=35000,
    )


@pytest.fixture(scope='function')
def stocked(admin, north, widget):
    """North holds 100 widgets."""
    inventory_service.assign_stock(admin, warehouse_id=north.id, item_id=widget.id, quantity=100)
    return widget


def actor_headers(user):
    """Gateway header identifying the caller."""
    return {"X-Actor-Id": str(user.id)}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return actor_headers(admin_user)


@pytest.fixture(scope='function')
def manager_headers(north_manager):
    return actor_headers(north_manager)


@pytest.fixture(scope='function')
def staff_headers(north_staff):
    return actor_headers(north_staff)
