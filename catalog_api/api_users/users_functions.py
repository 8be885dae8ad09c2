import logging
import re
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from bson import ObjectId
from bson.errors import InvalidId
from flask import current_app, g, request
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError
from werkzeug.security import check_password_hash, generate_password_hash

from catalog_api.database import USERS, get_collection
from catalog_api.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TOKEN_ALGORITHM = "HS256"


def serialize_document(document: dict | None):
    """
    Serialize a MongoDB user document to a JSON-friendly dictionary.

    Args:
        document (dict | None): MongoDB document.

    Returns:
        dict: Safe copy with string identifiers and no password field.
    """
    if not document:
        return {}
    payload = dict(document)
    if "_id" in payload and not isinstance(payload["_id"], str):
        payload["_id"] = str(payload["_id"])
    if isinstance(payload.get("createdAt"), datetime):
        payload["createdAt"] = payload["createdAt"].isoformat()
    payload.pop("password", None)
    return payload


def issue_token(user_id, secret: str, expires_hours: int):
    """
    Sign a bearer token for a user.

    Args:
        user_id (Any): User identifier stored in the ``id`` claim.
        secret (str): HMAC signing key.
        expires_hours (int): Token lifetime.

    Returns:
        str: Encoded JWT.
    """
    claims = {
        "id": str(user_id),
        "exp": datetime.now(timezone.utc) + timedelta(hours=expires_hours),
    }
    return jwt.encode(claims, secret, algorithm=TOKEN_ALGORITHM)


def decode_token(token: str, secret: str):
    """
    Verify a bearer token and return the user id it carries.

    Args:
        token (str): Encoded JWT.
        secret (str): HMAC signing key.

    Returns:
        str: Value of the ``id`` claim.

    Raises:
        AuthenticationError: When the token is expired, tampered or lacks an id.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    user_id = claims.get("id")
    if not user_id:
        raise AuthenticationError("Invalid token")
    return user_id


def read_bearer_token(header_value: str | None):
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    scheme, _, token = (header_value or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("No token, authorization denied")
    return token.strip()


def find_user_by_id(users_collection: Collection, user_id: str, projection: dict | None = None):
    """Return the user stored under ``user_id`` or None."""
    try:
        object_id = ObjectId(str(user_id))
    except (InvalidId, TypeError):
        return None
    return users_collection.find_one({"_id": object_id}, projection)


def token_required(view):
    """
    Guard a view with the bearer token check.

    The authenticated user (without password) is stored on ``g.current_user``.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        token = read_bearer_token(request.headers.get("Authorization"))
        user_id = decode_token(token, current_app.config["JWT_SECRET"])
        user = find_user_by_id(get_collection(USERS), user_id, {"password": 0})
        if not user:
            raise AuthenticationError("Token does not match any user")
        g.current_user = user
        return view(*args, **kwargs)

    return wrapper


def read_text_field(payload: dict, field: str, strip: bool = True):
    """Return a string field of a request body, "" when absent."""
    value = payload.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip() if strip else value


def validate_registration(data: dict | None):
    """
    Check a registration body.

    Args:
        data (dict | None): Submitted JSON body.

    Returns:
        tuple[str, str, str]: Username, lower-cased email and password.

    Raises:
        ValidationError: On missing fields or a malformed email.
    """
    payload = data if isinstance(data, dict) else {}
    username = read_text_field(payload, "username")
    email = read_text_field(payload, "email").lower()
    password = read_text_field(payload, "password", strip=False)

    required_fields = {"username": username, "email": email, "password": password}
    missing = [field for field, value in required_fields.items() if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email address")
    return username, email, password


def register_user(users_collection: Collection, data: dict | None):
    """
    Create a user account.

    Args:
        users_collection (Collection): MongoDB collection handle.
        data (dict | None): Registration body.

    Returns:
        dict: Stored user document.

    Raises:
        ConflictError: When the email is already registered.
    """
    username, email, password = validate_registration(data)
    if users_collection.find_one({"email": email}):
        raise ConflictError("User already exists")

    new_user = {
        "username": username,
        "email": email,
        "password": generate_password_hash(password),
        "createdAt": datetime.now(timezone.utc),
    }
    try:
        result = users_collection.insert_one(new_user)
    except DuplicateKeyError:
        raise ConflictError("User already exists")
    logger.info("registered user %s", result.inserted_id)
    return users_collection.find_one({"_id": result.inserted_id})


def authenticate_user(users_collection: Collection, data: dict | None):
    """
    Check login credentials.

    Args:
        users_collection (Collection): MongoDB collection handle.
        data (dict | None): Login body with ``email`` and ``password``.

    Returns:
        dict: Matching user document.

    Raises:
        ValidationError: When a field is missing.
        AuthenticationError: On unknown email or wrong password.
    """
    payload = data if isinstance(data, dict) else {}
    email = read_text_field(payload, "email").lower()
    password = read_text_field(payload, "password", strip=False)
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = users_collection.find_one({"email": email})
    if not user or not check_password_hash(user.get("password") or "", password):
        raise AuthenticationError("Invalid email or password")
    return user


def load_profile(users_collection: Collection, user_id):
    """Return the serialized profile of ``user_id``."""
    user = find_user_by_id(users_collection, user_id, {"password": 0})
    if not user:
        raise NotFoundError("User not found")
    return serialize_document(user)
