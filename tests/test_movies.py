import pytest

from models import Movie, new_id


@pytest.fixture
def payload(genre):
    return {"title": "Alien", "genreId": genre.id, "numberInStock": 4, "dailyRentalRate": 1.5}


def test_list_movies_sorted_by_title(client, dm, genre):
    dm.create_movie("Zodiac", genre.id, 1, 1)
    dm.create_movie("Alien", genre.id, 1, 1)

    res = client.get("/movies")

    assert [m["title"] for m in res.get_json()] == ["Alien", "Zodiac"]


def test_get_movie(client, movie, genre):
    res = client.get(f"/movies/{movie.id}")

    assert res.status_code == 200
    assert res.get_json() == {
        "id": movie.id,
        "title": "The Matrix",
        "genre": {"id": genre.id, "name": "Action"},
        "numberInStock": 10,
        "dailyRentalRate": 2,
    }


def test_get_movie_malformed_id_is_400(client):
    assert client.get("/movies/abc").status_code == 400


def test_get_unknown_movie_is_404(client):
    assert client.get(f"/movies/{new_id()}").status_code == 404


def test_create_movie_requires_auth(client, payload):
    assert client.post("/movies", json=payload).status_code == 401


def test_create_movie_embeds_genre(client, payload, genre, auth_headers):
    res = client.post("/movies", json=payload, headers=auth_headers)

    assert res.status_code == 200
    body = res.get_json()
    assert body["genre"] == {"id": genre.id, "name": "Action"}
    assert body["numberInStock"] == 4
    assert Movie.query.count() == 1


def test_create_movie_with_unknown_genre_is_400(client, payload, auth_headers):
    payload["genreId"] = new_id()

    res = client.post("/movies", json=payload, headers=auth_headers)

    assert res.status_code == 400
    assert res.get_json() == {"error": "Invalid genre."}


def test_create_movie_with_negative_stock_is_400(client, payload, auth_headers):
    payload["numberInStock"] = -1
    assert client.post("/movies", json=payload, headers=auth_headers).status_code == 400


def test_create_movie_with_boolean_stock_is_400(client, payload, auth_headers):
    payload["numberInStock"] = True

    res = client.post("/movies", json=payload, headers=auth_headers)

    assert res.status_code == 400
    assert res.get_json()["error"].startswith("numberInStock:")
    assert Movie.query.count() == 0


def test_update_movie(client, movie, payload, dm, auth_headers):
    other = dm.create_genre("Horror")
    payload["genreId"] = other.id

    res = client.put(f"/movies/{movie.id}", json=payload, headers=auth_headers)

    assert res.status_code == 200
    body = res.get_json()
    assert body["title"] == "Alien"
    assert body["genre"] == {"id": other.id, "name": "Horror"}


def test_update_unknown_movie_is_404(client, payload, auth_headers):
    assert client.put(f"/movies/{new_id()}", json=payload, headers=auth_headers).status_code == 404


def test_delete_movie_requires_admin(client, movie, auth_headers):
    assert client.delete(f"/movies/{movie.id}", headers=auth_headers).status_code == 403
    assert Movie.query.count() == 1


def test_delete_movie(client, movie, admin_headers):
    res = client.delete(f"/movies/{movie.id}", headers=admin_headers)

    assert res.status_code == 200
    assert Movie.query.count() == 0
