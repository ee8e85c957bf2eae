"""MongoDB client lifecycle and request dependency.

The client is created once when the application starts and kept on
`app.state`; handlers receive the database handle through the
`get_database` dependency and never open or close connections
themselves. Tests replace the dependency with an in-memory database.
"""

import logging

from fastapi import Request
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from .config import Settings

logger = logging.getLogger("scholarship_api.database")


def connect(settings: Settings) -> MongoClient:
    """Create the shared `MongoClient` and confirm the server answers.

    A failed ping is logged but not raised so the HTTP server still comes
    up; individual store calls then fail with 500.
    """
    client = MongoClient(settings.MONGODB_URI, server_api=ServerApi("1", strict=True, deprecation_errors=True))
    try:
        client.admin.command("ping")
        logger.info("connected to MongoDB database %s", settings.DATABASE_NAME)
    except PyMongoError:
        logger.exception("Failed to initialize database")
    return client


def get_database(request: Request) -> Database:
    """Return the database handle acquired at startup."""
    return request.app.state.db
