"""CLI command tests."""

from sqlalchemy import update

from stocktrack.models import StockBalance, User


def test_seed_then_reconcile(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0, result.output
    assert db_session.query(User).count() == 4

    again = runner.invoke(args=["system", "seed"])
    assert "SKIP" in again.output

    result = runner.invoke(args=["ledger", "reconcile"])
    assert result.exit_code == 0
    assert "PASS" in result.output


def test_reconcile_fails_on_tampered_balance(app, db_session, admin, north, stocked):
    db_session.execute(update(StockBalance).values(quantity=1))
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["ledger", "reconcile"])

    assert result.exit_code == 1
    assert "SUM_MISMATCH" in result.output


def test_create_user_command(app, db_session, north):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--name", "Dev", "--email", "dev@stocktrack.test",
        "--role", "staff", "--warehouse-id", str(north.id),
    ])

    assert result.exit_code == 0, result.output
    user = db_session.query(User).filter_by(email="dev@stocktrack.test").one()
    assert user.role == "STAFF"
    assert user.warehouse_id == north.id


def test_deactivate_and_reactivate_user(app, db_session, north_staff):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "deactivate", "--user-id", str(north_staff.id)])
    assert result.exit_code == 0, result.output
    assert db_session.get(User, north_staff.id).is_active is False

    result = runner.invoke(args=["users", "activate", "--user-id", str(north_staff.id)])
    assert result.exit_code == 0, result.output
    assert db_session.get(User, north_staff.id).is_active is True


def test_last_admin_cannot_be_deactivated(app, db_session, admin_user):
    result = app.test_cli_runner().invoke(args=["users", "deactivate", "--user-id", str(admin_user.id)])

    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_update_user_role(app, db_session, north_staff):
    result = app.test_cli_runner().invoke(args=["users", "update", "--user-id", str(north_staff.id), "--role", "manager"])

    assert result.exit_code == 0, result.output
    assert db_session.get(User, north_staff.id).role == "MANAGER"


def test_move_user_between_warehouses(app, db_session, north_staff, south):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "assign-warehouse", "--user-id", str(north_staff.id), "--warehouse-id", str(south.id),
    ])
    assert result.exit_code == 0, result.output
    assert db_session.get(User, north_staff.id).warehouse_id == south.id

    result = runner.invoke(args=["users", "unassign-warehouse", "--user-id", str(north_staff.id)])
    assert result.exit_code == 0, result.output
    assert db_session.get(User, north_staff.id).warehouse_id is None


def test_manager_stays_with_managed_warehouse(app, db_session, north_manager):
    result = app.test_cli_runner().invoke(args=["users", "unassign-warehouse", "--user-id", str(north_manager.id)])

    assert result.exit_code == 1
    assert "change the warehouse manager first" in result.output
