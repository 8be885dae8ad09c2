import logging

from flask import current_app
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)

MOVIES = "movies"
ACTORS = "actors"
PRODUCERS = "producers"
USERS = "users"


def connect(mongo_uri: str, database_name: str):
    """
    Open the MongoDB database used by the API.

    Args:
        mongo_uri (str): Connection string.
        database_name (str): Database holding the catalog collections.

    Returns:
        Database: PyMongo database handle.
    """
    client = MongoClient(mongo_uri)
    return client[database_name]


def ensure_indexes(db: Database):
    """
    Create the indexes the catalog relies on.

    External identifiers are unique but optional, so their indexes are sparse.

    Args:
        db (Database): Database handle.
    """
    for name in (MOVIES, ACTORS, PRODUCERS):
        db[name].create_index("externalId", unique=True, sparse=True)
    db[MOVIES].create_index([("name", ASCENDING), ("yearOfRelease", ASCENDING)])
    db[USERS].create_index("email", unique=True)
    logger.info("indexes ensured on %s", db.name)


def get_db():
    """Return the database bound to the running application."""
    return current_app.extensions["catalog_db"]


def get_collection(name: str):
    """Return a collection of the database bound to the running application."""
    return get_db()[name]
