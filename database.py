# Example usage:
# from database import load_config, connect
# from bootstrap import run_bootstrap
#
# # Read DATABASE_URL / DATABASE_NAME (and a .env file if present)
# config = load_config()
#
# # Open a client and select the target database
# client, db = connect(config)
#
# # Ensure collections and indexes, then close the client
# report = run_bootstrap(db, sync_validators=config.sync_validators)
# client.close()


import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import classify_error

DEFAULT_DATABASE_URL = "mongodb://localhost:27017"
DEFAULT_DATABASE_NAME = "restaurant_app"
DEFAULT_TIMEOUT_MS = 10000

_TRUTHY = {"1", "true", "yes", "on"}

# Characters MongoDB forbids in database names
_INVALID_NAME_CHARS = set("/\\. \"$\x00")
_MAX_NAME_BYTES = 63


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings threaded explicitly through every bootstrap step."""

    url: str = DEFAULT_DATABASE_URL
    name: str = DEFAULT_DATABASE_NAME
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    sync_validators: bool = False


def load_config() -> DatabaseConfig:
    """Build a DatabaseConfig from environment variables

    A .env file in the working directory is loaded first; variables already
    set in the environment take precedence over it.

    Raises:
        ValueError: DATABASE_TIMEOUT_MS is not a positive integer, or
            DATABASE_NAME is not a valid MongoDB database name
    """
    load_dotenv()

    raw_timeout = os.getenv("DATABASE_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))
    try:
        timeout_ms = int(raw_timeout)
    except ValueError:
        raise ValueError(f"DATABASE_TIMEOUT_MS must be an integer, got {raw_timeout!r}")
    if timeout_ms <= 0:
        raise ValueError(f"DATABASE_TIMEOUT_MS must be positive, got {timeout_ms}")

    name = os.getenv("DATABASE_NAME") or DEFAULT_DATABASE_NAME
    if _INVALID_NAME_CHARS.intersection(name) or len(name.encode("utf-8")) > _MAX_NAME_BYTES:
        raise ValueError(f"DATABASE_NAME is not a valid database name: {name!r}")

    return DatabaseConfig(
        url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        name=name,
        timeout_ms=timeout_ms,
        sync_validators=os.getenv("BOOTSTRAP_SYNC_VALIDATORS", "").strip().lower() in _TRUTHY,
    )


def connect(config: DatabaseConfig) -> Tuple[MongoClient, Database]:
    """Open a client and select the target database

    The server is pinged before returning so an unreachable database or bad
    credentials fail here rather than halfway through the bootstrap.

    Returns:
        tuple: (client, database). The caller owns the client and closes it.

    Raises:
        DatabaseConnectionError: server unreachable or timed out
        PermissionDenied: authentication rejected
        DatabaseOperationError: any other driver error, e.g. an invalid name
    """
    client = None
    try:
        client = MongoClient(
            config.url,
            serverSelectionTimeoutMS=config.timeout_ms,
            connectTimeoutMS=config.timeout_ms,
            socketTimeoutMS=config.timeout_ms,
        )
        client.admin.command("ping")
        db = client[config.name]
    except PyMongoError as e:
        if client is not None:
            client.close()
        error = classify_error(e, step="connect")
        if error is None:
            raise
        raise error from e

    return client, db
