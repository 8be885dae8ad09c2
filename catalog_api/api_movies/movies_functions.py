import logging
from datetime import datetime, timezone

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from catalog_api.api_people.people_functions import json_value, materialize_person, parse_object_id
from catalog_api.database import ACTORS, MOVIES, PRODUCERS
from catalog_api.errors import ConflictError, ForbiddenMutationError, NotFoundError, ValidationError
from catalog_api.listing import build_merged_listing
from catalog_api.providers.omdb_client import build_poster_placeholder

logger = logging.getLogger(__name__)

MIN_RELEASE_YEAR = 1888
MIN_PLOT_LENGTH = 10
MOVIE_SORT = [("createdAt", DESCENDING), ("_id", DESCENDING)]
SUMMARY_FIELDS = ("name",)
DETAIL_FIELDS = ("name", "gender", "dateOfBirth", "bio")


def serialize_document(doc: dict | None):
    """
    Convert a MongoDB movie document into an API-friendly dictionary.

    Args:
        doc (dict | None): MongoDB document, possibly with populated references.

    Returns:
        dict: Serializable representation with string identifiers.
    """
    if not doc:
        return {}

    serialized = {key: json_value(value) for key, value in doc.items()}

    poster_value = serialized.get("poster")
    if isinstance(poster_value, str) and poster_value.strip() and poster_value.strip().lower() not in {"none", "n/a", "null"}:
        serialized["poster"] = poster_value.strip()
    else:
        serialized["poster"] = build_poster_placeholder(serialized.get("name"))

    return serialized


def safe_int(value, default=None):
    """
    Parse a value into an integer, tolerating strings and floats.

    Args:
        value (Any): Raw value to convert.
        default (int | None): Fallback value when parsing fails.

    Returns:
        int | None: Parsed integer or the default.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


def validate_movie_payload(data: dict | None, partial: bool = False):
    """
    Check an incoming movie body and keep the known scalar fields.

    References (``producer``, ``actors``) are returned raw and resolved later.

    Args:
        data (dict | None): Submitted JSON body.
        partial (bool): Only validate the fields present (updates).

    Returns:
        dict: Cleaned fields.

    Raises:
        ValidationError: On missing or invalid fields.
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    cleaned = {}
    missing = []

    if not partial or "name" in data:
        name = data.get("name").strip() if isinstance(data.get("name"), str) else ""
        if not name:
            missing.append("name")
        cleaned["name"] = name

    if not partial or "yearOfRelease" in data:
        year = safe_int(data.get("yearOfRelease"))
        current_year = datetime.now(timezone.utc).year
        if year is None:
            missing.append("yearOfRelease")
        elif year < MIN_RELEASE_YEAR:
            raise ValidationError(f"Year must be after {MIN_RELEASE_YEAR}")
        elif year > current_year:
            raise ValidationError("Year cannot be in the future")
        cleaned["yearOfRelease"] = year

    if not partial or "plot" in data:
        plot = data.get("plot").strip() if isinstance(data.get("plot"), str) else ""
        if not plot:
            missing.append("plot")
        elif len(plot) < MIN_PLOT_LENGTH:
            raise ValidationError(f"Plot must be at least {MIN_PLOT_LENGTH} characters long")
        cleaned["plot"] = plot

    if not partial or "poster" in data:
        poster = data.get("poster").strip() if isinstance(data.get("poster"), str) else ""
        if not poster:
            missing.append("poster")
        cleaned["poster"] = poster

    if not partial or "producer" in data:
        if not data.get("producer"):
            missing.append("producer")
        cleaned["producer"] = data.get("producer")

    if not partial or "actors" in data:
        actors = data.get("actors") or []
        if not isinstance(actors, list):
            raise ValidationError("Actors must be a list of identifiers")
        cleaned["actors"] = actors

    if missing:
        raise ValidationError(f"Movie is missing required fields: {', '.join(missing)}")
    if partial and not cleaned:
        raise ValidationError("No updatable fields provided")
    return cleaned


def resolve_reference(collection: Collection, tmdb_client, reference, label: str):
    """
    Turn a person reference into the ObjectId of a local document.

    ObjectId strings must already exist locally. Numeric values are TMDB ids
    and get materialized on first reference.

    Args:
        collection (Collection): ``actors`` or ``producers`` collection.
        tmdb_client (TmdbClient): External provider.
        reference (Any): Value from the request body.
        label (str): ``Actor`` or ``Producer``.

    Returns:
        ObjectId: Identifier of the local document.

    Raises:
        ValidationError: For unknown or malformed references.
    """
    raw = str(reference).strip() if reference is not None else ""
    object_id = parse_object_id(raw)
    if object_id is not None:
        if not collection.find_one({"_id": object_id}, {"_id": 1}):
            raise ValidationError(f"{label} {raw} not found")
        return object_id

    if raw.isdigit():
        return materialize_person(collection, tmdb_client, raw, label)["_id"]

    raise ValidationError(f"Invalid {label.lower()} reference: {raw or 'empty'}")


def resolve_references(db: Database, tmdb_client, payload: dict):
    """Replace raw producer/actor references in ``payload`` with ObjectIds."""
    if "producer" in payload:
        payload["producer"] = resolve_reference(db[PRODUCERS], tmdb_client, payload["producer"], "Producer")
    if "actors" in payload:
        resolved = []
        for reference in payload["actors"]:
            object_id = resolve_reference(db[ACTORS], tmdb_client, reference, "Actor")
            if object_id not in resolved:
                resolved.append(object_id)
        payload["actors"] = resolved
    return payload


def populate_movies(db: Database, documents: list[dict], fields: tuple):
    """
    Replace producer/actor ObjectIds with the referenced documents.

    Args:
        db (Database): Database handle.
        documents (list[dict]): Movie documents, modified in place.
        fields (tuple): Person fields to keep besides ``_id``.

    Returns:
        list[dict]: The same documents.
    """
    producer_ids = {doc["producer"] for doc in documents if isinstance(doc.get("producer"), ObjectId)}
    actor_ids = {actor for doc in documents for actor in doc.get("actors") or [] if isinstance(actor, ObjectId)}
    projection = {field: 1 for field in fields}

    producers = {person["_id"]: person for person in db[PRODUCERS].find({"_id": {"$in": list(producer_ids)}}, projection)} if producer_ids else {}
    actors = {person["_id"]: person for person in db[ACTORS].find({"_id": {"$in": list(actor_ids)}}, projection)} if actor_ids else {}

    for doc in documents:
        if doc.get("producer") in producers:
            doc["producer"] = producers[doc["producer"]]
        doc["actors"] = [actors.get(actor, actor) for actor in doc.get("actors") or []]
    return documents


def find_local_movie(collection: Collection, movie_id: str):
    """Return the local movie stored under ``movie_id`` or None."""
    object_id = parse_object_id(movie_id)
    if object_id is None:
        return None
    return collection.find_one({"_id": object_id})


def get_movie(db: Database, omdb_client, movie_id: str):
    """
    Fetch a movie locally, then from OMDb by IMDb id.

    Args:
        db (Database): Database handle.
        omdb_client (OmdbClient): External provider.
        movie_id (str): ObjectId string or IMDb id.

    Returns:
        dict: Populated local movie or external payload.

    Raises:
        NotFoundError: When neither source knows the id.
    """
    document = find_local_movie(db[MOVIES], movie_id) or db[MOVIES].find_one({"externalId": movie_id})
    if document:
        return serialize_document(populate_movies(db, [document], DETAIL_FIELDS)[0])

    external = omdb_client.get_movie(movie_id)
    if external:
        return external
    raise NotFoundError("Movie not found")


def reload_movie(db: Database, object_id):
    document = db[MOVIES].find_one({"_id": object_id})
    return serialize_document(populate_movies(db, [document], SUMMARY_FIELDS)[0])


def create_movie(db: Database, tmdb_client, data: dict | None):
    """Validate, resolve references and insert a local movie."""
    payload = resolve_references(db, tmdb_client, validate_movie_payload(data))
    now = datetime.now(timezone.utc)
    payload.update({"isExternal": False, "createdAt": now, "updatedAt": now})
    result = db[MOVIES].insert_one(payload)
    return reload_movie(db, result.inserted_id)


def import_movie(db: Database, omdb_client, data: dict | None):
    """
    Store an OMDb title locally as an external movie.

    Args:
        db (Database): Database handle.
        omdb_client (OmdbClient): External provider.
        data (dict | None): Body carrying ``externalId``.

    Returns:
        dict: Stored movie.

    Raises:
        ValidationError: Without ``externalId``.
        ConflictError: When the title was already imported.
        NotFoundError: When OMDb does not know the id.
    """
    raw_id = data.get("externalId") if isinstance(data, dict) else None
    external_id = raw_id.strip() if isinstance(raw_id, str) else ""
    if not external_id:
        raise ValidationError("Movie is missing required fields: externalId")
    if db[MOVIES].find_one({"externalId": external_id}, {"_id": 1}):
        raise ConflictError("Movie already imported")

    external = omdb_client.get_movie(external_id)
    if not external:
        raise NotFoundError("Movie not found")

    document = {key: value for key, value in external.items() if key != "_id"}
    now = datetime.now(timezone.utc)
    document.update({"createdAt": now, "updatedAt": now})
    try:
        result = db[MOVIES].insert_one(document)
    except DuplicateKeyError:
        raise ConflictError("Movie already imported")
    logger.info("imported movie %s from omdb", external_id)
    return reload_movie(db, result.inserted_id)


def load_mutable_movie(collection: Collection, movie_id: str, action: str):
    """
    Load a local movie that may be changed.

    Raises:
        NotFoundError: When the movie is not stored locally.
        ForbiddenMutationError: When the movie is external.
    """
    document = find_local_movie(collection, movie_id)
    if not document:
        raise NotFoundError("Movie not found")
    if document.get("isExternal"):
        raise ForbiddenMutationError(f"Cannot {action} external movie")
    return document


def update_movie(db: Database, tmdb_client, movie_id: str, data: dict | None):
    """Apply a partial update to a local movie."""
    document = load_mutable_movie(db[MOVIES], movie_id, "update")
    updates = resolve_references(db, tmdb_client, validate_movie_payload(data, partial=True))
    updates["updatedAt"] = datetime.now(timezone.utc)
    db[MOVIES].update_one({"_id": document["_id"]}, {"$set": updates})
    return reload_movie(db, document["_id"])


def delete_movie(db: Database, movie_id: str):
    """Delete a local movie."""
    document = load_mutable_movie(db[MOVIES], movie_id, "delete")
    db[MOVIES].delete_one({"_id": document["_id"]})


def list_movies(db: Database, omdb_client, page: int, page_size: int, search: str | None, seed_ids: list[str]):
    """
    Build one merged page of local movies and OMDb titles.

    Args:
        db (Database): Database handle.
        omdb_client (OmdbClient): External provider.
        page (int): 1-based page number.
        page_size (int): Page length.
        search (str | None): Optional name filter.
        seed_ids (list[str]): IMDb ids listed when there is no search term.

    Returns:
        dict: Merged page (``items``, ``page``, ``pageSize``, ``total``, ``pages``).
    """

    def serialize_many(documents):
        return [serialize_document(document) for document in populate_movies(db, documents, SUMMARY_FIELDS)]

    return build_merged_listing(
        db[MOVIES],
        page,
        page_size,
        search,
        MOVIE_SORT,
        serialize_many,
        omdb_client.search_movies,
        omdb_client.get_movies,
        seed_ids,
        omdb_client.page_size,
    )


def build_movies_payload(listing: dict, search: str | None):
    """Prepare the API payload from a merged movie listing."""
    return {
        "movies": listing["items"],
        "page": listing["page"],
        "pageSize": listing["pageSize"],
        "pages": listing["pages"],
        "total": listing["total"],
        "search": search or "",
    }
