import logging
from datetime import date, datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from catalog_api.errors import ForbiddenMutationError, NotFoundError, ValidationError
from catalog_api.listing import build_merged_listing

logger = logging.getLogger(__name__)

GENDERS = ("male", "female", "other")
MIN_BIO_LENGTH = 10
PEOPLE_SORT = [("name", ASCENDING), ("_id", ASCENDING)]


def json_value(value):
    """
    Convert BSON values into JSON-friendly ones.

    Args:
        value (Any): Value read from MongoDB.

    Returns:
        Any: Strings for ObjectId and datetimes, converted containers, other values untouched.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [json_value(item) for item in value]
    if isinstance(value, dict):
        return {key: json_value(item) for key, item in value.items()}
    return value


def serialize_document(document: dict | None):
    """
    Convert a MongoDB document into a dict for JSON output.

    Args:
        document (dict | None): Document from the collection.

    Returns:
        dict: Copy with `_id` and dates stored as strings.
    """
    if not document:
        return {}
    return {key: json_value(value) for key, value in document.items()}


def serialize_documents(documents: list[dict]):
    return [serialize_document(document) for document in documents]


def clamp(value: int, minimum: int, maximum: int):
    """
    Return minimum when value is below minimum. Return maximum when value is above maximum. Otherwise return value.

    Args:
        value (int): Number to check.
        minimum (int): Value to use when `value` is below this argument.
        maximum (int): Value to use when `value` exceeds this argument.

    Returns:
        int: Result after the bounds check.
    """
    return max(minimum, min(maximum, value))


def parse_page_params(args, default_page_size: int, max_page_size: int):
    """
    Read ``page`` and ``limit``/``page_size`` from the query string.

    Args:
        args (MultiDict): Request arguments.
        default_page_size (int): Page length when none is given.
        max_page_size (int): Upper bound for the page length.

    Returns:
        tuple[int, int]: Page number (>= 1) and page length.
    """
    try:
        page = int(args.get("page") or 1)
    except ValueError:
        page = 1

    raw_size = args.get("limit") or args.get("page_size") or args.get("pageSize")
    try:
        page_size = int(raw_size) if raw_size else default_page_size
    except ValueError:
        page_size = default_page_size

    return max(page, 1), clamp(page_size, 1, max_page_size)


def parse_object_id(identifier: str):
    """Return the ObjectId for ``identifier`` or None when it is not one."""
    try:
        return ObjectId(str(identifier))
    except (InvalidId, TypeError):
        return None


def utc_now():
    return datetime.now(timezone.utc)


def clean_text(value):
    return value.strip() if isinstance(value, str) else ""


def validate_person_payload(data: dict | None, label: str, partial: bool = False):
    """
    Check an incoming actor/producer body and keep the known fields.

    Args:
        data (dict | None): Submitted JSON body.
        label (str): ``Actor`` or ``Producer``, used in messages.
        partial (bool): Only validate the fields present (updates).

    Returns:
        dict: Cleaned fields ready for MongoDB.

    Raises:
        ValidationError: On missing or invalid fields.
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    cleaned = {}
    missing = []

    if not partial or "name" in data:
        name = clean_text(data.get("name"))
        if not name:
            missing.append("name")
        cleaned["name"] = name

    if not partial or "gender" in data:
        gender = clean_text(data.get("gender")).lower()
        if not gender:
            missing.append("gender")
        elif gender not in GENDERS:
            raise ValidationError(f"Gender must be one of: {', '.join(GENDERS)}")
        cleaned["gender"] = gender

    if not partial or "dateOfBirth" in data:
        raw_date = clean_text(data.get("dateOfBirth"))
        if not raw_date:
            missing.append("dateOfBirth")
        else:
            try:
                birth_date = datetime.strptime(raw_date[:10], "%Y-%m-%d").date()
            except ValueError:
                raise ValidationError("Invalid dateOfBirth format. Please use YYYY-MM-DD.")
            if birth_date > utc_now().date():
                raise ValidationError("Date of birth cannot be in the future.")
            cleaned["dateOfBirth"] = birth_date.isoformat()

    if not partial or "bio" in data:
        bio = clean_text(data.get("bio"))
        if not bio:
            missing.append("bio")
        elif len(bio) < MIN_BIO_LENGTH:
            raise ValidationError(f"Bio must be at least {MIN_BIO_LENGTH} characters long")
        cleaned["bio"] = bio

    if missing:
        raise ValidationError(f"{label} is missing required fields: {', '.join(missing)}")
    if partial and not cleaned:
        raise ValidationError("No updatable fields provided")
    return cleaned


def find_local_person(collection: Collection, person_id: str):
    """Return the local person stored under ``person_id`` or None."""
    object_id = parse_object_id(person_id)
    if object_id is None:
        return None
    return collection.find_one({"_id": object_id})


def get_person(collection: Collection, tmdb_client, person_id: str, label: str):
    """
    Fetch a person locally, then from TMDB when the id is a TMDB id.

    Args:
        collection (Collection): Local people collection.
        tmdb_client (TmdbClient): External provider.
        person_id (str): ObjectId string or TMDB id.
        label (str): ``Actor`` or ``Producer``.

    Returns:
        dict: Serialized local document or external payload.

    Raises:
        NotFoundError: When neither source knows the id.
    """
    document = find_local_person(collection, person_id)
    if document:
        return serialize_document(document)

    document = collection.find_one({"externalId": str(person_id)})
    if document:
        return serialize_document(document)

    external = tmdb_client.get_person(person_id)
    if external:
        return external
    raise NotFoundError(f"{label} not found")


def materialize_person(collection: Collection, tmdb_client, external_id: str, label: str):
    """
    Return the local copy of a TMDB person, inserting it on first reference.

    Args:
        collection (Collection): Local people collection.
        tmdb_client (TmdbClient): External provider.
        external_id (str): TMDB person id.
        label (str): ``Actor`` or ``Producer``.

    Returns:
        dict: Stored MongoDB document.

    Raises:
        ValidationError: When TMDB does not know the id.
    """
    existing = collection.find_one({"externalId": str(external_id)})
    if existing:
        return existing

    external = tmdb_client.get_person(external_id)
    if not external:
        raise ValidationError(f"{label} {external_id} not found")

    document = {key: value for key, value in external.items() if key != "_id"}
    now = utc_now()
    document["createdAt"] = now
    document["updatedAt"] = now
    try:
        result = collection.insert_one(document)
    except DuplicateKeyError:
        # inserted by a concurrent request between the lookup and the insert
        return collection.find_one({"externalId": str(external_id)})
    logger.info("materialized %s %s from tmdb", label.lower(), external_id)
    return collection.find_one({"_id": result.inserted_id})


def create_person(collection: Collection, data: dict | None, label: str):
    """Validate and insert a local person, returning the stored document."""
    payload = validate_person_payload(data, label)
    now = utc_now()
    payload["createdAt"] = now
    payload["updatedAt"] = now
    result = collection.insert_one(payload)
    return serialize_document(collection.find_one({"_id": result.inserted_id}))


def load_mutable_person(collection: Collection, person_id: str, label: str, action: str):
    """
    Load a local person that may be changed.

    Raises:
        NotFoundError: When the person is not stored locally.
        ForbiddenMutationError: When the person came from TMDB.
    """
    document = find_local_person(collection, person_id)
    if not document:
        raise NotFoundError(f"{label} not found")
    if document.get("isExternal"):
        raise ForbiddenMutationError(f"Cannot {action} external {label.lower()}")
    return document


def update_person(collection: Collection, person_id: str, data: dict | None, label: str):
    """Apply a partial update to a local person and return the stored document."""
    document = load_mutable_person(collection, person_id, label, "update")
    updates = validate_person_payload(data, label, partial=True)
    updates["updatedAt"] = utc_now()
    collection.update_one({"_id": document["_id"]}, {"$set": updates})
    return serialize_document(collection.find_one({"_id": document["_id"]}))


def delete_person(collection: Collection, person_id: str, label: str):
    """Delete a local person."""
    document = load_mutable_person(collection, person_id, label, "delete")
    collection.delete_one({"_id": document["_id"]})


def list_people(collection: Collection, tmdb_client, page: int, page_size: int, search: str | None, seed_ids: list[str]):
    """
    Build one merged page of local people and TMDB people.

    Args:
        collection (Collection): Local people collection.
        tmdb_client (TmdbClient): External provider.
        page (int): 1-based page number.
        page_size (int): Page length.
        search (str | None): Optional name filter.
        seed_ids (list[str]): TMDB ids listed when there is no search term.

    Returns:
        dict: Merged page (``items``, ``page``, ``pageSize``, ``total``, ``pages``).
    """
    return build_merged_listing(
        collection,
        page,
        page_size,
        search,
        PEOPLE_SORT,
        serialize_documents,
        tmdb_client.search_people,
        tmdb_client.get_people,
        seed_ids,
        tmdb_client.page_size,
    )


def build_people_payload(listing: dict, key: str, search: str | None):
    """
    Prepare the API payload from a merged listing.

    Args:
        listing (dict): Result of ``list_people``.
        key (str): Name of the results field (``actors`` or ``producers``).
        search (str | None): Search term from the query.

    Returns:
        dict: Payload for JSON output.
    """
    return {
        key: listing["items"],
        "page": listing["page"],
        "pageSize": listing["pageSize"],
        "pages": listing["pages"],
        "total": listing["total"],
        "search": search or "",
    }
