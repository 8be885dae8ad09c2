from flask import current_app

from catalog_api.providers.omdb_client import OmdbClient
from catalog_api.providers.tmdb_client import TmdbClient

__all__ = ["OmdbClient", "TmdbClient", "get_omdb_client", "get_tmdb_client"]


def get_omdb_client():
    """Return the OMDb client bound to the running application."""
    return current_app.extensions["omdb_client"]


def get_tmdb_client():
    """Return the TMDB client bound to the running application."""
    return current_app.extensions["tmdb_client"]
