from flask import Blueprint, current_app, jsonify, request

from catalog_api.api_people.people_functions import (
    build_people_payload,
    create_person,
    delete_person,
    get_person,
    list_people,
    parse_page_params,
    update_person,
)
from catalog_api.api_users.users_functions import token_required
from catalog_api.database import ACTORS, PRODUCERS, get_collection
from catalog_api.providers import get_tmdb_client


def create_people_blueprint(collection_name: str, label: str, seed_config_key: str):
    """
    Build the CRUD routes shared by actors and producers.

    Args:
        collection_name (str): MongoDB collection and URL prefix (``actors``/``producers``).
        label (str): Singular name used in messages.
        seed_config_key (str): Config entry holding the TMDB seed ids.

    Returns:
        Blueprint: Routes mounted under ``/<collection_name>``.
    """
    blueprint = Blueprint(collection_name, __name__, url_prefix=f"/{collection_name}")

    def respond_with_listing(search: str | None):
        page, page_size = parse_page_params(request.args, current_app.config["DEFAULT_PAGE_SIZE"], current_app.config["MAX_PAGE_SIZE"])
        listing = list_people(
            get_collection(collection_name),
            get_tmdb_client(),
            page,
            page_size,
            search,
            current_app.config[seed_config_key],
        )
        return jsonify(build_people_payload(listing, collection_name, search))

    @blueprint.route("", methods=["GET"])
    @token_required
    def list_entries():
        """
        Handle GET requests for the merged people listing.

        Returns:
            Response: Local matches first, then TMDB people.
        """
        search = (request.args.get("search") or "").strip()
        return respond_with_listing(search or None)

    @blueprint.route("/search", methods=["GET"])
    @token_required
    def search_entries():
        """Handle GET requests searching people by ``query``."""
        query = (request.args.get("query") or request.args.get("search") or "").strip()
        return respond_with_listing(query or None)

    @blueprint.route("/<person_id>", methods=["GET"])
    @token_required
    def get_entry(person_id: str):
        """
        Handle GET requests for a person by identifier.

        Args:
            person_id (str): Local ObjectId or TMDB id.

        Returns:
            Response: Flask response with person data.
        """
        return jsonify(get_person(get_collection(collection_name), get_tmdb_client(), person_id, label))

    @blueprint.route("", methods=["POST"])
    @token_required
    def create_entry():
        document = create_person(get_collection(collection_name), request.get_json(silent=True), label)
        return jsonify(document), 201

    @blueprint.route("/<person_id>", methods=["PUT"])
    @token_required
    def update_entry(person_id: str):
        document = update_person(get_collection(collection_name), person_id, request.get_json(silent=True), label)
        return jsonify(document)

    @blueprint.route("/<person_id>", methods=["DELETE"])
    @token_required
    def delete_entry(person_id: str):
        delete_person(get_collection(collection_name), person_id, label)
        return jsonify({"message": f"{label} removed"})

    return blueprint


actors_blueprint = create_people_blueprint(ACTORS, "Actor", "ACTOR_SEED_IDS")
producers_blueprint = create_people_blueprint(PRODUCERS, "Producer", "PRODUCER_SEED_IDS")
