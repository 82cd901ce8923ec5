# Overview: Pytest coverage for the Flask CLI command groups.

from loko.extensions import db
from loko.models import Product, User

from conftest import PASSWORD, place_order


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


def test_users_create_seller_with_pickup(app):
    result = _invoke(
        app, "users", "create",
        "--name", "Awa", "--email", "Awa@Loko.test", "--password", PASSWORD, "--role", "seller",
        "--city", "Abidjan", "--latitude", "5.35", "--longitude", "-3.98",
    )

    assert "PASS Created user: awa@loko.test" in result.output
    user = db.session.query(User).filter_by(email="awa@loko.test").one()
    assert user.has_location


def test_users_create_rejects_weak_password(app):
    result = _invoke(
        app, "users", "create",
        "--name", "Weak", "--email", "weak@loko.test", "--password", "weak", "--role", "admin",
    )

    assert "FAIL Password validation failed" in result.output
    assert db.session.query(User).count() == 0


def test_users_list_filters_by_role(app, courier_user, client_user):
    result = _invoke(app, "users", "list", "--role", "courier")

    assert courier_user.email in result.output
    assert client_user.email not in result.output


def test_products_create_requires_known_seller(app):
    result = _invoke(app, "products", "create", "--name", "Rice", "--seller-id", "nobody")

    assert "FAIL Seller 'nobody' not found" in result.output
    assert db.session.query(Product).count() == 0


def test_products_create_rejects_non_seller_owner(app, courier_user):
    result = _invoke(app, "products", "create", "--name", "Rice", "--seller-id", courier_user.id)

    assert "FAIL Failed to create product: Products can only belong to a seller" in result.output
    assert db.session.query(Product).count() == 0


def test_products_create_and_list(app, seller_user):
    created = _invoke(
        app, "products", "create", "--name", "Rice 5kg", "--stock", "20", "--seller-id", seller_user.id,
    )
    listed = _invoke(app, "products", "list", "--seller-id", seller_user.id)

    assert "PASS Created product: Rice 5kg" in created.output
    assert "Rice 5kg" in listed.output
    assert "stock=20" in listed.output


def test_deliveries_list(app, client_actor):
    delivery_id = place_order(client_actor).delivery_id

    assert delivery_id in _invoke(app, "deliveries", "list").output
    assert "No deliveries found." in _invoke(app, "deliveries", "list", "--status", "FAILED").output


def test_system_init_is_idempotent(app):
    first = _invoke(app, "system", "init", "--admin-email", "root@loko.test")
    second = _invoke(app, "system", "init", "--admin-email", "root@loko.test")

    assert "PASS Created admin user: root@loko.test" in first.output
    assert "already exists" in second.output
    assert db.session.query(User).filter_by(role="admin").count() == 1
