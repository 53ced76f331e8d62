"""
Database Schemas

MongoDB collection validators and indexes for the restaurant ordering system.
This file is the single source of truth for the shape of the users,
restaurants and carts collections; the bootstrap routine only reads it.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field
from pymongo import ASCENDING

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


class CollectionSpec(BaseModel):
    name: str = Field(..., description="Collection name")
    validator: Dict[str, Any] = Field(..., description="Validator document, e.g. {'$jsonSchema': {...}}")


class IndexSpec(BaseModel):
    collection: str = Field(..., description="Collection the index lives on")
    keys: List[Tuple[str, int]] = Field(..., min_length=1, description="(field, direction) pairs")
    unique: bool = Field(False)
    expire_after_seconds: Optional[int] = Field(None, ge=0, description="TTL in seconds after the field's timestamp")

    @property
    def name(self) -> str:
        """Server default index name, e.g. ``address.city_1``."""
        return "_".join(f"{field}_{direction}" for field, direction in self.keys)

    @property
    def label(self) -> str:
        return f"{self.collection}.{self.name}"

    def options(self) -> Dict[str, Any]:
        """Keyword options for ``Collection.create_index``."""
        options: Dict[str, Any] = {}
        if self.unique:
            options["unique"] = True
        if self.expire_after_seconds is not None:
            options["expireAfterSeconds"] = self.expire_after_seconds
        return options


def _string(description: str = "must be a string and is required") -> Dict[str, Any]:
    return {"bsonType": "string", "description": description}


# Users collection
USERS = CollectionSpec(
    name="users",
    validator={
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["userId", "email", "profile"],
            "properties": {
                "userId": _string(),
                "email": {
                    "bsonType": "string",
                    "pattern": EMAIL_PATTERN,
                    "description": "must be a valid email address and is required",
                },
                "profile": {
                    "bsonType": "object",
                    "required": ["firstName", "lastName"],
                    "properties": {
                        "firstName": _string(),
                        "lastName": _string(),
                        "phone": _string("must be a string if the field exists"),
                    },
                },
            },
        }
    },
)

# Restaurants collection
RESTAURANTS = CollectionSpec(
    name="restaurants",
    validator={
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["restaurantId", "name", "cuisine", "address"],
            "properties": {
                "restaurantId": _string(),
                "name": _string(),
                "cuisine": _string(),
                "address": {
                    "bsonType": "object",
                    "required": ["street", "city", "zipCode"],
                    "description": "must be an object and is required",
                },
                "isActive": {
                    "bsonType": "bool",
                    "description": "must be a boolean if the field exists",
                },
            },
        }
    },
)

# Carts collection; item shape is owned by the cart service
CARTS = CollectionSpec(
    name="carts",
    validator={
        "$jsonSchema": {
            "bsonType": "object",
            "required": ["cartId", "customerId", "restaurantId", "items"],
            "properties": {
                "cartId": _string(),
                "customerId": _string(),
                "restaurantId": _string(),
                "items": {
                    "bsonType": "array",
                    "description": "must be an array and is required",
                },
                "totalAmount": {
                    "bsonType": "number",
                    "minimum": 0,
                    "description": "must be a positive number if the field exists",
                },
            },
        }
    },
)

COLLECTIONS: List[CollectionSpec] = [USERS, RESTAURANTS, CARTS]


def _index(collection: str, field: str, **kwargs) -> IndexSpec:
    return IndexSpec(collection=collection, keys=[(field, ASCENDING)], **kwargs)


INDEXES: List[IndexSpec] = [
    _index("users", "userId", unique=True),
    _index("users", "email", unique=True),
    # createdAt is indexed but not required by the users validator
    _index("users", "createdAt"),

    _index("restaurants", "restaurantId", unique=True),
    _index("restaurants", "name"),
    _index("restaurants", "cuisine"),
    _index("restaurants", "address.city"),
    _index("restaurants", "isActive"),

    _index("carts", "cartId", unique=True),
    _index("carts", "customerId"),
    _index("carts", "restaurantId"),
    # TTL: a cart is removed once its expiresAt timestamp has passed
    _index("carts", "expiresAt", expire_after_seconds=0),
]


def indexes_for(collection: str) -> List[IndexSpec]:
    return [spec for spec in INDEXES if spec.collection == collection]
