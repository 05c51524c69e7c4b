"""
CLI tests.

Verifies:
- flask stock reconcile reports drift and size-less products, and --fix repairs drift
- flask users create / list
- flask registers open / history
"""

from sqlalchemy import update

from armonia.models import Product, User
from armonia.services import inventory_service, register_service


def test_reconcile_consistent(app, db_session, apparel_payload):
    inventory_service.create_product(apparel_payload)

    result = app.test_cli_runner().invoke(args=["stock", "reconcile"])
    assert result.exit_code == 0
    assert "PASS Stock is consistent" in result.output


def test_reconcile_reports_and_fixes_drift(app, db_session, apparel_payload):
    product_id = inventory_service.create_product(apparel_payload)
    db_session.execute(update(Product).where(Product.id == product_id).values(stock=3))
    db_session.commit()

    runner = app.test_cli_runner()

    result = runner.invoke(args=["stock", "reconcile"])
    assert "DRIFT SH-001" in result.output
    assert "stock=3 sizes_total=8" in result.output

    result = runner.invoke(args=["stock", "reconcile", "--fix"])
    assert "FIXED SH-001" in result.output
    assert inventory_service.get_product_with_sizes(product_id).stock == 8


def test_reconcile_warns_on_missing_sizes(app, db_session, apparel_payload):
    apparel_payload["sizes"] = []
    inventory_service.create_product(apparel_payload)

    result = app.test_cli_runner().invoke(args=["stock", "reconcile"])
    assert "WARN  SH-001" in result.output


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create", "--name", "Eva", "--email", "eva@armonia.local", "--role", "admin"])
    assert result.exit_code == 0
    assert "PASS Created user: Eva" in result.output
    assert db_session.query(User).filter_by(email="eva@armonia.local").one().role == "admin"

    result = runner.invoke(args=["users", "create", "--name", "Eva", "--email", "eva@armonia.local"])
    assert "FAIL" in result.output

    result = runner.invoke(args=["users", "list"])
    assert "eva@armonia.local" in result.output


def test_registers_open_and_history(app, db_session, cashier_user):
    runner = app.test_cli_runner()

    register_id = register_service.open_register(cashier_user.id, 50)
    result = runner.invoke(args=["registers", "open"])
    assert register_id in result.output
    assert "ledger=50.00" in result.output

    register_service.close_register(cashier_user.id, 48, 50)
    result = runner.invoke(args=["registers", "history"])
    assert "DIFF" in result.output
    assert "opened_by=Carlos Cashier" in result.output
    assert "difference=-2.00" in result.output


def test_reset_db_requires_confirmation(app, db_session, apparel_payload):
    inventory_service.create_product(apparel_payload)

    result = app.test_cli_runner().invoke(args=["system", "reset-db"])
    assert "FAIL" in result.output
    assert db_session.query(Product).count() == 1
