import re
from urllib.parse import quote_plus

from catalog_api.errors import UpstreamError
from catalog_api.providers.base import ProviderClient

POSTER_PLACEHOLDER_TEMPLATE = (
    "https://ui-avatars.com/api/"
    "?name={name}&background=023047&color=ffffff&size=512&length=2"
)

# Error texts OMDb sends with ``Response: "False"`` when a search simply has no hits.
EMPTY_SEARCH_ERRORS = ("movie not found!", "series not found!", "too many results.")


def build_poster_placeholder(title: str | None = None):
    """
    Build a fallback poster image for titles without artwork.

    Args:
        title (str | None): Title to encode into the placeholder.

    Returns:
        str: URL of the generated placeholder image.
    """
    base_title = (title or "").strip() or "Movie"
    return POSTER_PLACEHOLDER_TEMPLATE.format(name=quote_plus(base_title))


def clean_value(value):
    """Return None for OMDb's ``"N/A"`` markers and blank strings."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.upper() == "N/A":
        return None
    return text


def parse_omdb_year(value):
    """
    Extract the release year from OMDb's ``Year`` field.

    Args:
        value (Any): Values like ``"1994"`` or ``"2010–2013"``.

    Returns:
        int | None: First four-digit year found.
    """
    match = re.search(r"\d{4}", str(value or ""))
    return int(match.group(0)) if match else None


def split_names(value):
    """Split a comma separated OMDb people field into names."""
    text = clean_value(value)
    if not text:
        return []
    return [name.strip() for name in text.split(",") if name.strip()]


def normalize_movie(item: dict):
    """
    Map an OMDb search hit or title record onto local movie fields.

    Args:
        item (dict): OMDb JSON object.

    Returns:
        dict: External movie payload flagged with ``isExternal``.

    Raises:
        UpstreamError: When the record lacks an IMDb id or a title.
    """
    if not isinstance(item, dict) or not item.get("imdbID") or not item.get("Title"):
        raise UpstreamError("omdb returned a malformed movie record")

    name = str(item["Title"]).strip()
    return {
        "_id": item["imdbID"],
        "name": name,
        "yearOfRelease": parse_omdb_year(item.get("Year")),
        "plot": clean_value(item.get("Plot")),
        "poster": clean_value(item.get("Poster")) or build_poster_placeholder(name),
        "producer": clean_value(item.get("Production")),
        "actors": split_names(item.get("Actors")),
        "isExternal": True,
        "externalId": item["imdbID"],
    }


class OmdbClient(ProviderClient):
    """Client for the OMDb title API (search by title, lookup by IMDb id)."""

    source = "omdb"
    page_size = 10

    def __init__(self, api_key: str, base_url: str = "http://www.omdbapi.com/", **kwargs):
        super().__init__(base_url, **kwargs)
        self.api_key = api_key

    def search_movies(self, query: str, page: int = 1):
        """
        Search titles by name.

        Args:
            query: Free text title query.
            page: 1-based OMDb result page (10 hits per page).

        Returns:
            tuple[list[dict], int | None]: Normalized movies and OMDb's ``totalResults``,
            None for an empty page beyond the first.
        """
        payload = self.get_json(params={"apikey": self.api_key, "s": query, "type": "movie", "page": page})

        if payload.get("Response") == "False":
            error = str(payload.get("Error") or "")
            if error.lower() in EMPTY_SEARCH_ERRORS:
                # past the last page OMDb answers "not found" without a total
                return [], (0 if page <= 1 else None)
            raise UpstreamError(f"omdb search failed: {error or 'unknown error'}")

        hits = payload.get("Search")
        if not isinstance(hits, list):
            raise UpstreamError("omdb returned a malformed search response")
        try:
            total = int(payload.get("totalResults", len(hits)))
        except (TypeError, ValueError) as exc:
            raise UpstreamError("omdb returned a malformed search total") from exc

        return [normalize_movie(hit) for hit in hits], total

    def get_movie(self, imdb_id: str):
        """
        Look up one title by IMDb id.

        Args:
            imdb_id: Identifier such as ``tt0111161``.

        Returns:
            dict | None: Normalized movie, or None when OMDb does not know the id.
        """
        payload = self.get_json(params={"apikey": self.api_key, "i": imdb_id, "plot": "full"})
        if payload.get("Response") == "False":
            return None
        return normalize_movie(payload)

    def get_movies(self, imdb_ids: list[str]):
        """Resolve several IMDb ids concurrently, dropping unknown ones."""
        return self.fetch_known(imdb_ids, self.get_movie)
