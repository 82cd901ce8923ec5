# Overview: Pytest coverage for geo points and input validation.

"""Geo point store and input validation tests."""

import pytest

from loko.extensions import db
from loko.models import DeliveryPoint
from loko.services import point_service
from loko.validation import ValidationError, parse_order_items

from conftest import make_user


def test_create_point_flushes_without_committing(db_session):
    point = point_service.create_point(5.36, -4.0, "  Near the pharmacy  ")

    assert point.id is not None
    assert point.description == "Near the pharmacy"

    # The caller owns the transaction
    db.session.rollback()
    assert db.session.query(DeliveryPoint).count() == 0


@pytest.mark.parametrize("lat,lng", [(90, 180), (-90, -180), (0, 0), ("12.5", "-3.25")])
def test_boundaries_and_numeric_strings_accepted(db_session, lat, lng):
    point = point_service.create_point(lat, lng)
    db.session.commit()
    assert db.session.get(DeliveryPoint, point.id).latitude == float(lat)


@pytest.mark.parametrize(
    "lat,lng",
    [
        (90.0001, 0),
        (-91, 0),
        (0, 180.5),
        (0, -181),
        (None, 0),
        (0, None),
        (True, 0),
        ("north", 0),
        ("", 0),
        (float("nan"), 0),
        ([1], 0),
    ],
)
def test_invalid_coordinates_rejected(db_session, lat, lng):
    with pytest.raises(ValidationError):
        point_service.create_point(lat, lng)
    assert db.session.query(DeliveryPoint).count() == 0


def test_non_string_description_rejected(db_session):
    with pytest.raises(ValidationError):
        point_service.create_point(1.0, 2.0, 42)


def test_pickup_point_from_seller_location(seller_user):
    point = point_service.create_pickup_point(seller_user)

    assert point.latitude == pytest.approx(5.2920)
    assert point.longitude == pytest.approx(-4.0037)
    assert point.description == "Pickup: Abidjan Treichville (Market hall)"


def test_pickup_description_defaults(db_session):
    seller = make_user("Bare Seller", "seller", city="Bouake", latitude=7.69, longitude=-5.03)
    assert point_service.describe_pickup(seller) == "Pickup: Bouake (Seller point)"

    seller.city = None
    assert point_service.describe_pickup(seller) == "Pickup: Seller point"


def test_no_pickup_point_without_location(seller_no_location):
    assert point_service.create_pickup_point(seller_no_location) is None
    assert db.session.query(DeliveryPoint).count() == 0


class TestOrderItems:

    def test_parses_product_reference_and_legacy_id(self):
        items = parse_order_items([
            {"product_id": "p1", "name": "Widget", "price": 10, "quantity": 2},
            {"id": "p2", "name": "Gadget", "price": 0, "quantity": 1, "seller_id": "s1"},
            {"name": "Free-form", "price": 3.5, "quantity": 1},
        ])

        assert [i.product_id for i in items] == ["p1", "p2", None]
        assert items[1].seller_id == "s1"
        assert items[2].price == 3.5

    def test_none_means_no_items(self):
        assert parse_order_items(None) == []

    @pytest.mark.parametrize(
        "raw",
        [
            {"name": "X", "price": 1, "quantity": 0},
            {"name": "X", "price": 1, "quantity": 1.5},
            {"name": "X", "price": 1, "quantity": True},
            {"name": "X", "price": 1},
            {"name": "X", "price": -1, "quantity": 1},
            {"name": "X", "price": "10", "quantity": 1},
            {"name": 12, "price": 1, "quantity": 1},
            {"price": 1, "quantity": 1},
            "not-an-object",
        ],
    )
    def test_malformed_items_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_order_items([raw])

    def test_items_must_be_a_list(self):
        with pytest.raises(ValidationError):
            parse_order_items({"name": "X", "quantity": 1})
