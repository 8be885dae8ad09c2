import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MOVIE_SEED_IDS = [
    "tt0111161", "tt0068646", "tt0468569", "tt0071562", "tt0050083",
    "tt0108052", "tt0167260", "tt0110912", "tt0120737", "tt0060196",
    "tt0109830", "tt0137523", "tt1375666", "tt0080684", "tt0133093",
    "tt0099685", "tt0816692", "tt0114369", "tt0102926", "tt0120815",
]

DEFAULT_ACTOR_SEED_IDS = [
    "287", "500", "6193", "1245", "31", "3223", "1136406", "976", "5292", "1892",
    "2888", "192", "2963", "4173", "1158", "380", "8691", "72129", "1100", "12835",
]

DEFAULT_PRODUCER_SEED_IDS = [
    "10850", "770", "488", "525", "2710", "1", "578", "138", "1032", "7467",
]


def parse_id_list(raw_value: str | None, default: list[str]):
    """
    Split a comma separated environment value into identifiers.

    Args:
        raw_value (str | None): Raw environment value.
        default (list[str]): Identifiers used when the value is empty.

    Returns:
        list[str]: Non-empty, stripped identifiers.
    """
    if not raw_value:
        return list(default)
    parsed = [part.strip() for part in raw_value.split(",") if part.strip()]
    return parsed or list(default)


def load_config():
    """
    Read application settings from the environment.

    Returns:
        dict: Flask config values.
    """
    return {
        "MONGO_URI": os.getenv("MONGO_URI", "mongodb://localhost:27017"),
        "MONGO_DB": os.getenv("MONGO_DB", "movie_catalog"),
        "JWT_SECRET": os.getenv("JWT_SECRET", "change-me"),
        "JWT_EXPIRES_HOURS": int(os.getenv("JWT_EXPIRES_HOURS", 2)),
        "OMDB_API_KEY": os.getenv("OMDB_API_KEY", ""),
        "OMDB_BASE_URL": os.getenv("OMDB_BASE_URL", "http://www.omdbapi.com/"),
        "TMDB_API_KEY": os.getenv("TMDB_API_KEY", ""),
        "TMDB_BASE_URL": os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3"),
        "TMDB_IMAGE_BASE_URL": os.getenv("TMDB_IMAGE_BASE_URL", "https://image.tmdb.org/t/p/w500"),
        "PROVIDER_TIMEOUT": float(os.getenv("PROVIDER_TIMEOUT", 10)),
        "PROVIDER_MAX_WORKERS": int(os.getenv("PROVIDER_MAX_WORKERS", 8)),
        "DEFAULT_PAGE_SIZE": int(os.getenv("DEFAULT_PAGE_SIZE", 10)),
        "MAX_PAGE_SIZE": int(os.getenv("MAX_PAGE_SIZE", 100)),
        "MOVIE_SEED_IDS": parse_id_list(os.getenv("MOVIE_SEED_IDS"), DEFAULT_MOVIE_SEED_IDS),
        "ACTOR_SEED_IDS": parse_id_list(os.getenv("ACTOR_SEED_IDS"), DEFAULT_ACTOR_SEED_IDS),
        "PRODUCER_SEED_IDS": parse_id_list(os.getenv("PRODUCER_SEED_IDS"), DEFAULT_PRODUCER_SEED_IDS),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
        "PORT": int(os.getenv("PORT", 5000)),
    }
