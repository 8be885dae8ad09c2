from flask import Blueprint, current_app, g, jsonify, request

from catalog_api.api_users.users_functions import (
    authenticate_user,
    issue_token,
    load_profile,
    register_user,
    token_required,
)
from catalog_api.database import USERS, get_collection

auth_blueprint = Blueprint("auth", __name__, url_prefix="/auth")


def token_response(user: dict):
    token = issue_token(user["_id"], current_app.config["JWT_SECRET"], current_app.config["JWT_EXPIRES_HOURS"])
    return {"token": token, "username": user.get("username")}


@auth_blueprint.route("/register", methods=["POST"])
def create_user():
    """
    Handle POST requests that create user accounts.

    Returns:
        Response: Token and username with status 201.
    """
    user = register_user(get_collection(USERS), request.get_json(silent=True))
    return jsonify(token_response(user)), 201


@auth_blueprint.route("/login", methods=["POST"])
def authenticate():
    """
    Handle POST requests for user authentication.

    Returns:
        Response: Token and username.
    """
    user = authenticate_user(get_collection(USERS), request.get_json(silent=True))
    return jsonify(token_response(user))


@auth_blueprint.route("/profile", methods=["GET"])
@token_required
def get_profile():
    """Handle GET requests for the authenticated user's profile."""
    return jsonify(load_profile(get_collection(USERS), g.current_user["_id"]))
