import main


def test_add_favorite_movie(logged_in, store, user):
    res = logged_in.post("/api/users/addtoFavoritemovie", json={"movieId": 550, "type": "movie"})

    assert res.status_code == 200
    assert res.json() == {"message": "Movie added to favorites", "favorites": [550]}


def test_add_favorite_movie_twice_keeps_one_entry(logged_in, store, user):
    logged_in.post("/api/users/addtoFavoritemovie", json={"movieId": 550, "type": "movie"})
    res = logged_in.post("/api/users/addtoFavoritemovie", json={"movieId": 550, "type": "movie"})

    assert res.json()["favorites"] == [550]


def test_add_favorite_movie_rejects_wrong_type(logged_in, store):
    res = logged_in.post("/api/users/addtoFavoritemovie", json={"movieId": 550, "type": "tvshow"})

    assert res.status_code == 400
    assert "add_favorite" not in store.calls


def test_add_favorite_requires_login(client, store):
    res = client.post("/api/users/addtoFavoritemovie", json={"movieId": 550, "type": "movie"})

    assert res.status_code == 401


def test_add_favorite_tv(logged_in, store, user):
    res = logged_in.post("/api/users/addtoFavoritestv", json={"showId": "1399", "type": "tvshow"})

    assert res.status_code == 200
    assert res.json() == {"message": "TV Show added to favorites", "favorites": [1399]}


def test_add_favorite_unknown_user(client, store):
    client.cookies.set(main.TOKEN_COOKIE, main.create_token({"id": 77}))

    res = client.post("/api/users/addtoFavoritestv", json={"showId": 1399, "type": "tvshow"})

    assert res.status_code == 404
    assert "add_favorite" not in store.calls


def test_remove_favorite(logged_in, store, user):
    store.favorites[(user["id"], main.MEDIA_MOVIE)] = [550, 680]
    store.favorites[(user["id"], main.MEDIA_TV)] = [1399]

    res = logged_in.post("/api/users/RemovefromFavorite", json={"mediaId": 550, "mediaType": "movie"})

    assert res.status_code == 200
    assert res.json()["message"] == "movie removed successfully"
    assert res.json()["data"] == {"favoriteMovies": [680], "favoriteTvShows": [1399]}


def test_show_favorites(logged_in, store, user):
    store.favorites[(user["id"], main.MEDIA_MOVIE)] = [550]
    store.favorites[(user["id"], main.MEDIA_TV)] = [1399, 1396]

    res = logged_in.get("/api/users/showFavorites")

    assert res.status_code == 200
    assert res.json()["data"] == {"favoriteMovies": [550], "favoriteTvShows": [1399, 1396]}


def test_show_favorites_store_failure(logged_in, store, monkeypatch):
    def broken(user_id, media_type):
        raise RuntimeError("database unreachable")

    monkeypatch.setattr(main, "get_favorite_ids", broken)

    res = logged_in.get("/api/users/showFavorites")

    assert res.status_code == 500
    assert res.json() == {"error": "Internal Server Error"}
