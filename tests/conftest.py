"""
Shared pytest fixtures for the catalog API tests.

- In-memory MongoDB database (mongomock)
- Fake OMDb / TMDB providers serving a fixed catalog
- Flask application, test client and authenticated headers
"""

import mongomock
import pytest

from catalog_api.app import create_app
from catalog_api.errors import UpstreamError

TEST_MOVIE_SEEDS = [f"tt{index:07d}" for index in range(1, 13)]
TEST_ACTOR_SEEDS = [str(index) for index in range(100, 112)]
TEST_PRODUCER_SEEDS = [str(index) for index in range(500, 505)]


def make_external_movie(imdb_id: str, name: str):
    return {
        "_id": imdb_id,
        "name": name,
        "yearOfRelease": 2000,
        "plot": "An external plot long enough.",
        "poster": f"https://posters.example/{imdb_id}.jpg",
        "producer": None,
        "actors": [],
        "isExternal": True,
        "externalId": imdb_id,
    }


def make_external_person(person_id: str, name: str):
    return {
        "_id": person_id,
        "name": name,
        "gender": "other",
        "dateOfBirth": "1970-01-01",
        "bio": "An external biography.",
        "image": None,
        "knownForDepartment": "Acting",
        "isExternal": True,
        "externalId": person_id,
    }


class FakeProvider:
    """In-memory provider: a search catalog and a detail catalog, with call recording."""

    page_size = 10

    def __init__(self, search_catalog: list[dict], details: dict[str, dict]):
        self.search_catalog = search_catalog
        self.details = details
        self.search_calls = []
        self.detail_calls = []
        self.fail = False

    def search(self, query: str, page: int = 1):
        self.search_calls.append((query, page))
        if self.fail:
            raise UpstreamError("provider request failed")
        start = (page - 1) * self.page_size
        return list(self.search_catalog[start:start + self.page_size]), len(self.search_catalog)

    def get_one(self, identifier: str):
        self.detail_calls.append(identifier)
        if self.fail:
            raise UpstreamError("provider request failed")
        found = self.details.get(str(identifier))
        return dict(found) if found else None

    def get_many(self, identifiers: list[str]):
        return [item for item in (self.get_one(identifier) for identifier in identifiers) if item]


class FakeOmdbClient(FakeProvider):
    page_size = 10

    def search_movies(self, query: str, page: int = 1):
        return self.search(query, page)

    def get_movie(self, imdb_id: str):
        return self.get_one(imdb_id)

    def get_movies(self, imdb_ids: list[str]):
        return self.get_many(imdb_ids)


class FakeTmdbClient(FakeProvider):
    page_size = 20

    def search_people(self, query: str, page: int = 1):
        return self.search(query, page)

    def get_person(self, person_id: str):
        return self.get_one(person_id)

    def get_people(self, person_ids: list[str]):
        return self.get_many(person_ids)


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    return mongomock.MongoClient()["catalog_test"]


@pytest.fixture
def omdb_client() -> FakeOmdbClient:
    """OMDb stand-in: 25 search hits and a detail record for every seed."""
    search_catalog = [make_external_movie(f"tt9{index:06d}", f"Remote Movie {index}") for index in range(25)]
    details = {imdb_id: make_external_movie(imdb_id, f"Seed Movie {imdb_id}") for imdb_id in TEST_MOVIE_SEEDS}
    details.update({movie["externalId"]: movie for movie in search_catalog})
    return FakeOmdbClient(search_catalog, details)


@pytest.fixture
def tmdb_client() -> FakeTmdbClient:
    """TMDB stand-in: 45 search hits and a detail record for every seed."""
    search_catalog = [make_external_person(str(9000 + index), f"Remote Person {index}") for index in range(45)]
    details = {person_id: make_external_person(person_id, f"Seed Person {person_id}") for person_id in TEST_ACTOR_SEEDS + TEST_PRODUCER_SEEDS}
    details.update({person["externalId"]: person for person in search_catalog})
    return FakeTmdbClient(search_catalog, details)


@pytest.fixture
def app(db, omdb_client, tmdb_client):
    config = {
        "TESTING": True,
        "JWT_SECRET": "test-secret",
        "JWT_EXPIRES_HOURS": 2,
        "DEFAULT_PAGE_SIZE": 10,
        "MAX_PAGE_SIZE": 100,
        "MOVIE_SEED_IDS": TEST_MOVIE_SEEDS,
        "ACTOR_SEED_IDS": TEST_ACTOR_SEEDS,
        "PRODUCER_SEED_IDS": TEST_PRODUCER_SEEDS,
        "LOG_LEVEL": "WARNING",
    }
    return create_app(config=config, db=db, omdb_client=omdb_client, tmdb_client=tmdb_client)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(client) -> dict:
    """Register a user and return a bearer header for it."""
    response = client.post("/auth/register", json={"username": "neo", "email": "neo@example.com", "password": "redpill"})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.get_json()['token']}"}
