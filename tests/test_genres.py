from models import Genre, new_id


def test_list_genres_sorted_by_name(client, dm):
    dm.create_genre("Thriller")
    dm.create_genre("Comedy")

    res = client.get("/genres")

    assert res.status_code == 200
    assert [g["name"] for g in res.get_json()] == ["Comedy", "Thriller"]


def test_get_genre(client, genre):
    res = client.get(f"/genres/{genre.id}")

    assert res.status_code == 200
    assert res.get_json() == {"id": genre.id, "name": "Action"}


def test_get_genre_malformed_id_is_400(client):
    res = client.get("/genres/1")

    assert res.status_code == 400
    assert res.get_json() == {"error": "Invalid ID."}


def test_get_genre_id_with_trailing_newline_is_400(client):
    res = client.get(f"/genres/{new_id()}%0A")

    assert res.status_code == 400
    assert res.get_json() == {"error": "Invalid ID."}


def test_get_genre_unknown_id_is_404(client):
    assert client.get(f"/genres/{new_id()}").status_code == 404


def test_create_genre(client, auth_headers):
    res = client.post("/genres", json={"name": "Drama"}, headers=auth_headers)

    assert res.status_code == 200
    body = res.get_json()
    assert body["name"] == "Drama"
    assert Genre.query.filter_by(name="Drama").count() == 1


def test_create_genre_too_long_is_400(client, auth_headers):
    res = client.post("/genres", json={"name": "x" * 51}, headers=auth_headers)

    assert res.status_code == 400
    assert res.get_json()["error"].startswith("name:")


def test_update_genre(client, genre, auth_headers):
    res = client.put(f"/genres/{genre.id}", json={"name": "Adventure"}, headers=auth_headers)

    assert res.status_code == 200
    assert res.get_json()["name"] == "Adventure"


def test_update_unknown_genre_is_404(client, auth_headers):
    res = client.put(f"/genres/{new_id()}", json={"name": "Adventure"}, headers=auth_headers)
    assert res.status_code == 404


def test_delete_genre(client, genre, admin_headers):
    genre_id = genre.id

    res = client.delete(f"/genres/{genre_id}", headers=admin_headers)

    assert res.status_code == 200
    assert res.get_json()["id"] == genre_id
    assert Genre.query.count() == 0


def test_delete_unknown_genre_is_404(client, admin_headers):
    assert client.delete(f"/genres/{new_id()}", headers=admin_headers).status_code == 404


def test_renaming_genre_does_not_touch_movie_snapshot(client, movie, genre, auth_headers):
    client.put(f"/genres/{genre.id}", json={"name": "Sci-Fi"}, headers=auth_headers)

    res = client.get(f"/movies/{movie.id}")
    assert res.get_json()["genre"] == {"id": genre.id, "name": "Action"}
