"""
Endpoint tests for /movies.
"""

import pytest
from bson import ObjectId

from catalog_api.api_movies import movies_functions
from tests.conftest import TEST_MOVIE_SEEDS


@pytest.fixture
def producer_id(db) -> str:
    result = db["producers"].insert_one({"name": "Lana Producer", "gender": "female", "dateOfBirth": "1965-06-21", "bio": "Produces ambitious films."})
    return str(result.inserted_id)


@pytest.fixture
def actor_id(db) -> str:
    result = db["actors"].insert_one({"name": "Keanu Local", "gender": "male", "dateOfBirth": "1964-09-02", "bio": "Plays thoughtful heroes."})
    return str(result.inserted_id)


def movie_body(producer_id: str, actor_ids=None, **overrides) -> dict:
    body = {
        "name": "Local Matrix",
        "yearOfRelease": 1999,
        "plot": "A hacker learns the truth about reality.",
        "poster": "https://posters.example/local.jpg",
        "producer": producer_id,
        "actors": actor_ids or [],
    }
    body.update(overrides)
    return body


def create(client, auth_headers, body) -> dict:
    response = client.post("/movies", json=body, headers=auth_headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


class TestCreateMovie:

    def test_create_populates_references(self, client, auth_headers, producer_id, actor_id):
        movie = create(client, auth_headers, movie_body(producer_id, [actor_id]))

        assert movie["name"] == "Local Matrix"
        assert movie["isExternal"] is False
        assert movie["producer"] == {"_id": producer_id, "name": "Lana Producer"}
        assert movie["actors"] == [{"_id": actor_id, "name": "Keanu Local"}]

    def test_missing_fields(self, client, auth_headers):
        response = client.post("/movies", json={"name": "Only a name"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Movie is missing required fields: yearOfRelease, plot, poster, producer"

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"yearOfRelease": 1700}, "Year must be after 1888"),
            ({"yearOfRelease": 3000}, "Year cannot be in the future"),
            ({"plot": "short"}, "Plot must be at least 10 characters long"),
            ({"actors": "not-a-list"}, "Actors must be a list of identifiers"),
        ],
    )
    def test_invalid_fields(self, client, auth_headers, producer_id, overrides, message):
        response = client.post("/movies", json=movie_body(producer_id, **overrides), headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["error"] == message

    def test_unknown_local_producer(self, client, auth_headers):
        missing = str(ObjectId())
        response = client.post("/movies", json=movie_body(missing), headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["error"] == f"Producer {missing} not found"

    def test_tmdb_reference_is_materialized_once(self, client, auth_headers, db, tmdb_client):
        create(client, auth_headers, movie_body("500", ["100", "101"]))
        create(client, auth_headers, movie_body("500", ["100"], name="Second Movie"))

        assert db["producers"].count_documents({"externalId": "500"}) == 1
        assert db["actors"].count_documents({"externalId": "100"}) == 1
        stored = db["actors"].find_one({"externalId": "101"})
        assert stored["isExternal"] is True
        assert tmdb_client.detail_calls.count("100") == 1

    def test_unknown_tmdb_reference(self, client, auth_headers, producer_id):
        response = client.post("/movies", json=movie_body(producer_id, ["424242"]), headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Actor 424242 not found"


class TestGetMovie:

    def test_local_movie_has_full_people(self, client, auth_headers, producer_id, actor_id):
        movie = create(client, auth_headers, movie_body(producer_id, [actor_id]))

        response = client.get(f"/movies/{movie['_id']}", headers=auth_headers)

        body = response.get_json()
        assert response.status_code == 200
        assert body["producer"]["bio"] == "Produces ambitious films."
        assert body["actors"][0]["gender"] == "male"

    def test_falls_back_to_omdb(self, client, auth_headers):
        response = client.get(f"/movies/{TEST_MOVIE_SEEDS[0]}", headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()["isExternal"] is True

    def test_not_found_anywhere(self, client, auth_headers):
        response = client.get("/movies/tt0000000", headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json()["error"] == "Movie not found"

    def test_provider_failure_is_internal_error(self, client, auth_headers, omdb_client):
        omdb_client.fail = True
        response = client.get("/movies/tt0000000", headers=auth_headers)
        assert response.status_code == 500
        assert "error" in response.get_json()


class TestUpdateAndDelete:

    def test_partial_update(self, client, auth_headers, producer_id):
        movie = create(client, auth_headers, movie_body(producer_id))

        response = client.put(f"/movies/{movie['_id']}", json={"name": "  Renamed  "}, headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()["name"] == "Renamed"
        assert response.get_json()["plot"] == movie["plot"]

    def test_update_validates_fields(self, client, auth_headers, producer_id):
        movie = create(client, auth_headers, movie_body(producer_id))
        response = client.put(f"/movies/{movie['_id']}", json={"plot": "tiny"}, headers=auth_headers)
        assert response.status_code == 400

    def test_delete(self, client, auth_headers, producer_id, db):
        movie = create(client, auth_headers, movie_body(producer_id))

        response = client.delete(f"/movies/{movie['_id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json() == {"message": "Movie removed"}
        assert db["movies"].count_documents({}) == 0

    def test_missing_movie(self, client, auth_headers):
        missing = str(ObjectId())
        assert client.put(f"/movies/{missing}", json={"name": "x"}, headers=auth_headers).status_code == 404
        assert client.delete(f"/movies/{missing}", headers=auth_headers).status_code == 404

    def test_external_movie_cannot_change(self, client, auth_headers, db):
        response = client.post("/movies/import", json={"externalId": TEST_MOVIE_SEEDS[1]}, headers=auth_headers)
        assert response.status_code == 201
        movie = response.get_json()
        before = db["movies"].find_one({"_id": ObjectId(movie["_id"])})

        update = client.put(f"/movies/{movie['_id']}", json={"name": "Hijacked"}, headers=auth_headers)
        delete = client.delete(f"/movies/{movie['_id']}", headers=auth_headers)

        assert update.status_code == 403
        assert update.get_json()["error"] == "Cannot update external movie"
        assert delete.status_code == 403
        assert delete.get_json()["error"] == "Cannot delete external movie"
        assert db["movies"].find_one({"_id": ObjectId(movie["_id"])}) == before


class TestImportMovie:

    def test_import_stores_external_copy(self, client, auth_headers, db):
        response = client.post("/movies/import", json={"externalId": TEST_MOVIE_SEEDS[0]}, headers=auth_headers)

        assert response.status_code == 201
        stored = db["movies"].find_one({"externalId": TEST_MOVIE_SEEDS[0]})
        assert stored["isExternal"] is True

    def test_import_twice_conflicts(self, client, auth_headers):
        body = {"externalId": TEST_MOVIE_SEEDS[0]}
        assert client.post("/movies/import", json=body, headers=auth_headers).status_code == 201
        assert client.post("/movies/import", json=body, headers=auth_headers).status_code == 409

    def test_import_unknown_title(self, client, auth_headers):
        response = client.post("/movies/import", json={"externalId": "tt0000000"}, headers=auth_headers)
        assert response.status_code == 404

    def test_import_requires_external_id(self, client, auth_headers):
        assert client.post("/movies/import", json={}, headers=auth_headers).status_code == 400


class TestListMovies:

    def test_seed_list_without_local_rows(self, client, auth_headers):
        response = client.get("/movies?limit=5", headers=auth_headers)

        body = response.get_json()
        assert response.status_code == 200
        assert [movie["externalId"] for movie in body["movies"]] == TEST_MOVIE_SEEDS[:5]
        assert body["total"] == len(TEST_MOVIE_SEEDS)
        assert body["pages"] == 3
        assert body["pageSize"] == 5

    def test_three_local_then_seven_external(self, client, auth_headers, producer_id):
        for index in range(3):
            create(client, auth_headers, movie_body(producer_id, name=f"Local {index}"))

        body = client.get("/movies?limit=10", headers=auth_headers).get_json()

        assert [movie["name"] for movie in body["movies"][:3]] == ["Local 2", "Local 1", "Local 0"]
        assert [movie["isExternal"] for movie in body["movies"]] == [False] * 3 + [True] * 7
        assert body["total"] == 3 + len(TEST_MOVIE_SEEDS)
        assert body["pages"] == 2

    def test_search_merges_provider_hits(self, client, auth_headers, producer_id, omdb_client):
        create(client, auth_headers, movie_body(producer_id, name="Remote Lookalike"))

        body = client.get("/movies/search?query=remote&page=1&limit=10", headers=auth_headers).get_json()

        assert body["movies"][0]["name"] == "Remote Lookalike"
        assert len(body["movies"]) == 10
        assert body["total"] == 1 + 25
        assert body["pages"] == 3
        assert body["search"] == "remote"
        assert omdb_client.search_calls == [("remote", 1)]

    def test_search_local_full_page_skips_provider(self, client, auth_headers, producer_id, omdb_client):
        for index in range(2):
            create(client, auth_headers, movie_body(producer_id, name=f"Matrix {index}"))

        body = client.get("/movies?search=matrix&limit=2", headers=auth_headers).get_json()

        assert [movie["isExternal"] for movie in body["movies"]] == [False, False]
        assert omdb_client.search_calls == []

    def test_provider_failure_fails_listing(self, client, auth_headers, omdb_client):
        omdb_client.fail = True
        response = client.get("/movies?search=anything", headers=auth_headers)
        assert response.status_code == 500

    def test_invalid_paging_values_fall_back(self, client, auth_headers):
        body = client.get("/movies?page=abc&limit=0", headers=auth_headers).get_json()
        assert body["page"] == 1
        assert body["pageSize"] == 1

    def test_imported_seed_is_listed_once(self, client, auth_headers):
        client.post("/movies/import", json={"externalId": TEST_MOVIE_SEEDS[0]}, headers=auth_headers)

        body = client.get("/movies?limit=5", headers=auth_headers).get_json()

        assert [movie["externalId"] for movie in body["movies"]] == TEST_MOVIE_SEEDS[:5]
        assert body["total"] == len(TEST_MOVIE_SEEDS)

    def test_local_rows_are_populated_in_one_pass(self, client, auth_headers, producer_id, monkeypatch):
        for index in range(3):
            create(client, auth_headers, movie_body(producer_id, name=f"Local {index}"))
        batches = []
        populate = movies_functions.populate_movies

        def recording_populate(db, documents, fields):
            batches.append(len(documents))
            return populate(db, documents, fields)

        monkeypatch.setattr(movies_functions, "populate_movies", recording_populate)

        body = client.get("/movies?limit=5", headers=auth_headers).get_json()

        assert batches == [3]
        assert [movie["producer"]["name"] for movie in body["movies"][:3]] == ["Lana Producer"] * 3
