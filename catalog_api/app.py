import logging

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from catalog_api.api_movies.movies import movies_blueprint
from catalog_api.api_people.people import actors_blueprint, producers_blueprint
from catalog_api.api_users.users import auth_blueprint
from catalog_api.config import load_config
from catalog_api.database import connect, ensure_indexes
from catalog_api.errors import ApiError
from catalog_api.providers import OmdbClient, TmdbClient

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask):
    """Render every failure as ``{"error": message}`` with its status code."""

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        if error.status_code >= 500:
            logger.warning("request failed: %s", error.message)
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception("unhandled error")
        return jsonify({"error": "Internal server error"}), 500


def create_app(config: dict | None = None, db=None, omdb_client=None, tmdb_client=None):
    """
    Assemble the catalog API.

    Args:
        config (dict | None): Overrides applied on top of the environment settings.
        db (Database | None): Database to use instead of connecting to ``MONGO_URI``.
        omdb_client (OmdbClient | None): Movie provider to use instead of building one.
        tmdb_client (TmdbClient | None): People provider to use instead of building one.

    Returns:
        Flask: Configured application.
    """
    app = Flask(__name__)
    app.config.update(load_config())
    if config:
        app.config.update(config)
    app.json.sort_keys = False

    logging.basicConfig(level=app.config["LOG_LEVEL"], format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.logger.setLevel(app.config["LOG_LEVEL"])

    CORS(app)

    if db is None:
        db = connect(app.config["MONGO_URI"], app.config["MONGO_DB"])
        ensure_indexes(db)
    if omdb_client is None:
        omdb_client = OmdbClient(
            app.config["OMDB_API_KEY"],
            base_url=app.config["OMDB_BASE_URL"],
            timeout=app.config["PROVIDER_TIMEOUT"],
            max_workers=app.config["PROVIDER_MAX_WORKERS"],
        )
    if tmdb_client is None:
        tmdb_client = TmdbClient(
            app.config["TMDB_API_KEY"],
            base_url=app.config["TMDB_BASE_URL"],
            image_base_url=app.config["TMDB_IMAGE_BASE_URL"],
            timeout=app.config["PROVIDER_TIMEOUT"],
            max_workers=app.config["PROVIDER_MAX_WORKERS"],
        )

    app.extensions["catalog_db"] = db
    app.extensions["omdb_client"] = omdb_client
    app.extensions["tmdb_client"] = tmdb_client

    app.register_blueprint(auth_blueprint)
    app.register_blueprint(movies_blueprint)
    app.register_blueprint(actors_blueprint)
    app.register_blueprint(producers_blueprint)
    register_error_handlers(app)

    return app


def main():
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=app.config["LOG_LEVEL"] == "DEBUG")


if __name__ == "__main__":
    main()
