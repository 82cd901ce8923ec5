# Overview: Pytest coverage for the seller catalogue.

"""
Seller catalogue tests.

Verifies:
- Field validation on create and partial update
- Only the owning seller (or an admin) can change or withdraw a product
- Withdrawal is a soft delete and hides the product from the storefront
"""

import logging
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from loko.extensions import db
from loko.models import Product
from loko.services import products_service
from loko.services.delivery_service import InternalError
from loko.services.permission_service import Actor, UnauthorizedError
from loko.time_utils import utcnow
from loko.validation import NotFoundError, ValidationError

from conftest import make_user, place_order


class TestCreateProduct:

    def test_seller_owns_new_product(self, seller_actor):
        p = products_service.create_product(seller_actor, {
            "name": "  Attieke 1kg ",
            "price_cents": 1500,
            "stock": 20,
            "seller_id": "ignored-for-sellers",
        })

        stored = db.session.get(Product, p.id)
        assert stored.seller_id == seller_actor.user_id
        assert stored.name == "Attieke 1kg"
        assert stored.is_active

    def test_defaults(self, seller_actor):
        p = products_service.create_product(seller_actor, {"name": "Kola"})
        assert (p.price_cents, p.stock, p.description, p.image) == (0, 0, None, None)

    @pytest.mark.parametrize("payload", [
        {},
        {"name": "A"},
        {"name": "Rice", "price_cents": -1},
        {"name": "Rice", "stock": -3},
        {"name": "Rice", "stock": 2.5},
        {"name": "Rice", "price_cents": True},
        {"name": "Rice", "price_cents": "100"},
        {"name": 42},
    ])
    def test_invalid_payload(self, seller_actor, payload):
        with pytest.raises(ValidationError):
            products_service.create_product(seller_actor, payload)
        assert db.session.query(Product).count() == 0

    def test_non_object_body(self, seller_actor):
        with pytest.raises(ValidationError):
            products_service.create_product(seller_actor, None)

    @pytest.mark.parametrize("role_fixture", ["client_actor", "courier_actor"])
    def test_only_sellers_and_admins(self, request, role_fixture):
        actor = request.getfixturevalue(role_fixture)
        with pytest.raises(UnauthorizedError):
            products_service.create_product(actor, {"name": "Rice"})

    def test_admin_names_the_seller(self, admin_actor, seller_user, courier_user):
        with pytest.raises(ValidationError):
            products_service.create_product(admin_actor, {"name": "Rice"})
        with pytest.raises(ValidationError):
            products_service.create_product(admin_actor, {"name": "Rice", "seller_id": courier_user.id})
        with pytest.raises(NotFoundError):
            products_service.create_product(admin_actor, {"name": "Rice", "seller_id": "ghost"})

        p = products_service.create_product(admin_actor, {"name": "Rice", "seller_id": seller_user.id})
        assert p.seller_id == seller_user.id


class TestUpdateProduct:

    def test_partial_update(self, seller_actor, product):
        products_service.update_product(seller_actor, product.id, {"price_cents": 1200, "unknown": "x"})

        stored = db.session.get(Product, product.id)
        assert stored.price_cents == 1200
        assert stored.name == "Widget"
        assert stored.stock == 10

    def test_name_still_validated(self, seller_actor, product):
        with pytest.raises(ValidationError):
            products_service.update_product(seller_actor, product.id, {"name": "W"})
        assert db.session.get(Product, product.id).name == "Widget"

    def test_other_seller_denied(self, seller_no_location, product, caplog):
        with caplog.at_level(logging.WARNING):
            with pytest.raises(UnauthorizedError):
                products_service.update_product(Actor.from_user(seller_no_location), product.id, {"stock": 0})

        assert db.session.get(Product, product.id).stock == 10
        assert "Permission denied" in caplog.text

    def test_admin_may_update_any(self, admin_actor, product):
        products_service.update_product(admin_actor, product.id, {"stock": 3})
        assert db.session.get(Product, product.id).stock == 3

    def test_missing_product(self, seller_actor):
        with pytest.raises(NotFoundError):
            products_service.update_product(seller_actor, "nope", {"stock": 1})


class TestDeleteProduct:

    def test_soft_delete_is_idempotent(self, seller_actor, product):
        products_service.delete_product(seller_actor, product.id)
        products_service.delete_product(seller_actor, product.id)

        stored = db.session.get(Product, product.id)
        assert stored is not None
        assert not stored.is_active
        assert products_service.list_public_products() == []

    def test_other_seller_denied(self, seller_no_location, product):
        with pytest.raises(UnauthorizedError):
            products_service.delete_product(Actor.from_user(seller_no_location), product.id)
        assert db.session.get(Product, product.id).is_active

    def test_withdrawn_product_skips_stock(self, seller_actor, client_actor, product):
        products_service.delete_product(seller_actor, product.id)

        result = place_order(
            client_actor,
            items=[{"product_id": product.id, "name": "Widget", "price": 10, "quantity": 2}],
        )

        assert result.stock_adjustments[0].reason == "product is inactive"
        assert db.session.get(Product, product.id).stock == 10

    def test_can_be_reactivated(self, seller_actor, product):
        products_service.delete_product(seller_actor, product.id)
        products_service.update_product(seller_actor, product.id, {"is_active": True})
        assert [p["id"] for p in products_service.list_public_products()] == [product.id]


class TestListings:

    def _aged(self, seller, name, *, hours_ago, **fields):
        p = products_service.add_product(seller.id, {"name": name, **fields})
        p.created_at = utcnow() - timedelta(hours=hours_ago)
        db.session.commit()
        return p

    def test_seller_sees_own_newest_first(self, seller_user, seller_no_location):
        old = self._aged(seller_user, "Old", hours_ago=5, stock=0)
        new = self._aged(seller_user, "New", hours_ago=1, stock=4)
        withdrawn = self._aged(seller_user, "Gone", hours_ago=3, stock=4)
        withdrawn.is_active = False
        db.session.commit()
        self._aged(seller_no_location, "Theirs", hours_ago=2, stock=4)

        listed = products_service.list_seller_products(seller_user.id)
        assert [p["id"] for p in listed] == [new.id, withdrawn.id, old.id]

    def test_storefront_hides_empty_and_withdrawn(self, seller_user, seller_no_location):
        self._aged(seller_user, "Sold out", hours_ago=1, stock=0)
        withdrawn = self._aged(seller_user, "Gone", hours_ago=1, stock=4)
        withdrawn.is_active = False
        db.session.commit()
        older = self._aged(seller_user, "Rice", hours_ago=3, stock=4)
        newer = self._aged(seller_no_location, "Oil", hours_ago=2, stock=1)

        listed = products_service.list_public_products()
        assert [p["id"] for p in listed] == [newer.id, older.id]
        assert listed[0]["seller_name"] == "Seller Remote"
        assert listed[1]["seller_name"] == "Seller Located"

        only = products_service.list_public_products(seller_no_location.id)
        assert [p["id"] for p in only] == [newer.id]


def test_add_product_rolls_back_on_commit_failure(seller_user, monkeypatch):
    def fail(self):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(type(db.session()), "commit", fail)

    with pytest.raises(InternalError):
        products_service.add_product(seller_user.id, {"name": "Rice"})

    monkeypatch.undo()
    assert db.session.query(Product).count() == 0


def test_add_product_requires_a_seller(db_session):
    courier = make_user("Courier Z", "courier")
    with pytest.raises(ValidationError):
        products_service.add_product(courier.id, {"name": "Rice"})
