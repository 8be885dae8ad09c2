from flask import Blueprint, current_app, jsonify, request

from catalog_api.api_movies.movies_functions import (
    build_movies_payload,
    create_movie,
    delete_movie,
    get_movie,
    import_movie,
    list_movies,
    update_movie,
)
from catalog_api.api_people.people_functions import parse_page_params
from catalog_api.api_users.users_functions import token_required
from catalog_api.database import get_db
from catalog_api.providers import get_omdb_client, get_tmdb_client

movies_blueprint = Blueprint("movies", __name__, url_prefix="/movies")


def respond_with_listing(search: str | None):
    page, page_size = parse_page_params(request.args, current_app.config["DEFAULT_PAGE_SIZE"], current_app.config["MAX_PAGE_SIZE"])
    listing = list_movies(get_db(), get_omdb_client(), page, page_size, search, current_app.config["MOVIE_SEED_IDS"])
    return jsonify(build_movies_payload(listing, search))


@movies_blueprint.route("", methods=["GET"])
@token_required
def get_movies():
    """
    Handle GET requests for the movies list.

    Local movies matching ``search`` come first, OMDb titles fill the rest of
    the page. Without ``search`` the OMDb part is the seed catalog.

    Returns:
        Response: Flask response with JSON payload.
    """
    search = (request.args.get("search") or "").strip()
    return respond_with_listing(search or None)


@movies_blueprint.route("/search", methods=["GET"])
@token_required
def search_movies():
    """
    Handle GET requests searching movies by ``query``.

    Returns:
        Response: Flask response with JSON payload.
    """
    query = (request.args.get("query") or request.args.get("search") or "").strip()
    return respond_with_listing(query or None)


@movies_blueprint.route("/<movie_id>", methods=["GET"])
@token_required
def get_movie_detail(movie_id: str):
    """
    Handle GET requests for a movie document.

    Args:
        movie_id (str): Local ObjectId or IMDb id.

    Returns:
        Response: Flask response with JSON payload.
    """
    return jsonify(get_movie(get_db(), get_omdb_client(), movie_id))


@movies_blueprint.route("", methods=["POST"])
@token_required
def add_movie():
    """
    Handle POST requests that insert a movie entry.

    Returns:
        Response: Flask response with JSON payload and status code.
    """
    document = create_movie(get_db(), get_tmdb_client(), request.get_json(silent=True))
    return jsonify(document), 201


@movies_blueprint.route("/import", methods=["POST"])
@token_required
def import_external_movie():
    """Handle POST requests that store an OMDb title as an external movie."""
    document = import_movie(get_db(), get_omdb_client(), request.get_json(silent=True))
    return jsonify(document), 201


@movies_blueprint.route("/<movie_id>", methods=["PUT"])
@token_required
def edit_movie(movie_id: str):
    document = update_movie(get_db(), get_tmdb_client(), movie_id, request.get_json(silent=True))
    return jsonify(document)


@movies_blueprint.route("/<movie_id>", methods=["DELETE"])
@token_required
def remove_movie(movie_id: str):
    delete_movie(get_db(), movie_id)
    return jsonify({"message": "Movie removed"})
