# Overview: Pytest coverage for best-effort stock decrements.

"""Best-effort stock adjustment tests."""

import logging

from loko.extensions import db
from loko.models import Product
from loko.services import inventory_service

from conftest import BrokenUpdate


def test_decrement_applies(product):
    result = inventory_service.decrement_stock(product.id, 3)
    db.session.commit()

    assert result.applied
    assert result.reason is None
    assert inventory_service.get_stock(product.id) == 7


def test_missing_product_is_skipped_with_warning(db_session, caplog):
    with caplog.at_level(logging.WARNING):
        result = inventory_service.decrement_stock("does-not-exist", 2)

    assert not result.applied
    assert result.reason == "product not found"
    assert "does-not-exist" in caplog.text


def test_inactive_product_is_skipped(product):
    product.is_active = False
    db.session.commit()

    result = inventory_service.decrement_stock(product.id, 2)

    assert not result.applied
    assert result.reason == "product is inactive"
    assert inventory_service.get_stock(product.id) == 10


def test_stock_may_go_negative(product):
    result = inventory_service.decrement_stock(product.id, 15)
    db.session.commit()

    assert result.applied
    assert inventory_service.get_stock(product.id) == -5


def test_failed_update_is_swallowed(product, monkeypatch, caplog):
    monkeypatch.setattr(inventory_service, "update", lambda model: BrokenUpdate())

    with caplog.at_level(logging.WARNING):
        result = inventory_service.decrement_stock(product.id, 1)
    db.session.commit()

    assert not result.applied
    assert result.reason.startswith("update failed")
    assert db.session.get(Product, product.id).stock == 10
    assert "Could not update stock" in caplog.text


def test_get_stock_unknown_product(db_session):
    assert inventory_service.get_stock("nope") is None
