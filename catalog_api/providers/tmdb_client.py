from catalog_api.errors import UpstreamError
from catalog_api.providers.base import ProviderClient

TMDB_GENDERS = {1: "female", 2: "male"}


def build_profile_url(image_base_url: str, profile_path: str | None):
    """
    Build a full image URL from a TMDB ``profile_path``.

    Args:
        image_base_url (str): Sized image root, e.g. ``https://image.tmdb.org/t/p/w500``.
        profile_path (str | None): Path returned by TMDB.

    Returns:
        str | None: Absolute URL or None when TMDB has no picture.
    """
    if not profile_path:
        return None
    return f"{image_base_url.rstrip('/')}/{str(profile_path).lstrip('/')}"


def normalize_person(item: dict, image_base_url: str):
    """
    Map a TMDB person (search hit or detail) onto local people fields.

    Args:
        item (dict): TMDB JSON object.
        image_base_url (str): Root used to build the profile image URL.

    Returns:
        dict: External person payload flagged with ``isExternal``.

    Raises:
        UpstreamError: When the record lacks an id or a name.
    """
    if not isinstance(item, dict) or item.get("id") in (None, "") or not item.get("name"):
        raise UpstreamError("tmdb returned a malformed person record")

    external_id = str(item["id"])
    return {
        "_id": external_id,
        "name": str(item["name"]).strip(),
        "gender": TMDB_GENDERS.get(item.get("gender"), "other"),
        "dateOfBirth": item.get("birthday") or None,
        "bio": item.get("biography") or None,
        "image": build_profile_url(image_base_url, item.get("profile_path")),
        "knownForDepartment": item.get("known_for_department"),
        "isExternal": True,
        "externalId": external_id,
    }


class TmdbClient(ProviderClient):
    """Client for the TMDB person endpoints."""

    source = "tmdb"
    page_size = 20

    def __init__(self, api_key: str, base_url: str = "https://api.themoviedb.org/3", image_base_url: str = "https://image.tmdb.org/t/p/w500", **kwargs):
        super().__init__(base_url, **kwargs)
        self.image_base_url = image_base_url
        self.api_key = api_key
        # v4 read access tokens are long JWTs sent as a bearer header, v3 keys go in the query string
        if len(api_key or "") > 40:
            self.session.headers["Authorization"] = f"Bearer {api_key}"
            self.auth_params = {}
        else:
            self.auth_params = {"api_key": api_key}

    def search_people(self, query: str, page: int = 1):
        """
        Search people by name.

        Args:
            query: Free text name query.
            page: 1-based TMDB result page (20 hits per page).

        Returns:
            tuple[list[dict], int]: Normalized people and TMDB's ``total_results``.
        """
        payload = self.get_json("search/person", params={**self.auth_params, "query": query, "page": page, "include_adult": "false"})

        hits = payload.get("results")
        if not isinstance(hits, list):
            raise UpstreamError("tmdb returned a malformed search response")
        try:
            total = int(payload.get("total_results", len(hits)))
        except (TypeError, ValueError) as exc:
            raise UpstreamError("tmdb returned a malformed search total") from exc

        return [normalize_person(hit, self.image_base_url) for hit in hits], total

    def get_person(self, person_id: str):
        """
        Look up one person by TMDB id.

        Args:
            person_id: Numeric TMDB identifier.

        Returns:
            dict | None: Normalized person, or None for ids TMDB does not know.
        """
        if not str(person_id).isdigit():
            return None
        payload = self.get_json(f"person/{person_id}", params=self.auth_params, not_found_ok=True)
        if payload is None or payload.get("success") is False:
            return None
        return normalize_person(payload, self.image_base_url)

    def get_people(self, person_ids: list[str]):
        """Resolve several TMDB ids concurrently, dropping unknown ones."""
        return self.fetch_known(person_ids, self.get_person)
