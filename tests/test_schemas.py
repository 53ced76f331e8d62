"""
Unit tests for the declared collection validators and index table.
"""
import re

import pytest
from pydantic import ValidationError

from schemas import COLLECTIONS, EMAIL_PATTERN, INDEXES, IndexSpec, indexes_for


def _schema(name):
    return next(c for c in COLLECTIONS if c.name == name).validator["$jsonSchema"]


class TestValidators:
    def test_three_collections_declared(self):
        assert [c.name for c in COLLECTIONS] == ["users", "restaurants", "carts"]

    def test_users_required_fields(self):
        schema = _schema("users")
        assert schema["required"] == ["userId", "email", "profile"]
        assert schema["properties"]["profile"]["required"] == ["firstName", "lastName"]
        assert schema["properties"]["profile"]["properties"]["phone"]["bsonType"] == "string"

    def test_users_created_at_not_required(self):
        assert "createdAt" not in _schema("users")["required"]

    def test_restaurant_address_subfields_required(self):
        schema = _schema("restaurants")
        assert schema["required"] == ["restaurantId", "name", "cuisine", "address"]
        assert schema["properties"]["address"]["required"] == ["street", "city", "zipCode"]
        assert schema["properties"]["isActive"]["bsonType"] == "bool"

    def test_cart_total_amount_minimum(self):
        schema = _schema("carts")
        assert schema["required"] == ["cartId", "customerId", "restaurantId", "items"]
        assert schema["properties"]["items"]["bsonType"] == "array"
        assert schema["properties"]["totalAmount"] == {
            "bsonType": "number",
            "minimum": 0,
            "description": "must be a positive number if the field exists",
        }

    @pytest.mark.parametrize("email", ["jane@example.com", "j.doe+food@mail.co.uk", "a_b%c@x-y.io"])
    def test_email_pattern_accepts(self, email):
        assert re.match(EMAIL_PATTERN, email)

    @pytest.mark.parametrize("email", ["jane", "jane@example", "@example.com", "jane@example.c"])
    def test_email_pattern_rejects(self, email):
        assert not re.match(EMAIL_PATTERN, email)


class TestIndexes:
    def test_twelve_indexes(self):
        assert len(INDEXES) == 12
        assert [i.name for i in indexes_for("users")] == ["userId_1", "email_1", "createdAt_1"]
        assert [i.name for i in indexes_for("restaurants")] == [
            "restaurantId_1", "name_1", "cuisine_1", "address.city_1", "isActive_1",
        ]
        assert [i.name for i in indexes_for("carts")] == [
            "cartId_1", "customerId_1", "restaurantId_1", "expiresAt_1",
        ]

    def test_unique_indexes(self):
        unique = {i.label for i in INDEXES if i.unique}
        assert unique == {"users.userId_1", "users.email_1", "restaurants.restaurantId_1", "carts.cartId_1"}

    def test_ttl_index(self):
        ttl = [i for i in INDEXES if i.expire_after_seconds is not None]
        assert [i.label for i in ttl] == ["carts.expiresAt_1"]
        assert ttl[0].options() == {"expireAfterSeconds": 0}

    def test_plain_index_has_no_options(self):
        assert indexes_for("restaurants")[1].options() == {}

    def test_index_spec_rejects_empty_keys(self):
        with pytest.raises(ValidationError):
            IndexSpec(collection="users", keys=[])

    def test_index_spec_rejects_negative_ttl(self):
        with pytest.raises(ValidationError):
            IndexSpec(collection="carts", keys=[("expiresAt", 1)], expire_after_seconds=-1)
