import pytest

from helpers import write_mp3


@pytest.fixture
async def seeded(catalog, music_dir):
    path = write_mp3(music_dir / "a.mp3", title="Let It Be")
    await catalog.upsert_if_absent(str(path), "Let It Be", "The Beatles", "Let It Be")
    await catalog.upsert_if_absent(
        str(music_dir / "b.mp3"), "Angie", "Rolling Stones", "Goats Head Soup"
    )
    return {t.title: t for t in await catalog.list_all()}


async def test_stats_empty(client, auth_headers):
    response = await client.get("/api/v1/library/stats", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"total_files": 0}


async def test_list_tracks_empty(client, auth_headers):
    response = await client.get("/api/v1/library/tracks", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == []


async def test_list_tracks_ordered(client, auth_headers, seeded):
    response = await client.get("/api/v1/library/tracks", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert [t["artist"] for t in data] == ["Rolling Stones", "The Beatles"]
    assert set(data[0]) == {"id", "path", "title", "artist", "album", "favourited"}
    assert data[0]["favourited"] is False


async def test_stats_counts_tracks(client, auth_headers, seeded):
    response = await client.get("/api/v1/library/stats", headers=auth_headers)

    assert response.json() == {"total_files": 2}


async def test_search(client, auth_headers, seeded):
    response = await client.get(
        "/api/v1/library/search", params={"q": "beatles"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert [t["title"] for t in response.json()] == ["Let It Be"]


async def test_search_without_query_returns_all(client, auth_headers, seeded):
    response = await client.get("/api/v1/library/search", headers=auth_headers)

    assert len(response.json()) == 2


async def test_get_track(client, auth_headers, seeded):
    track = seeded["Angie"]

    response = await client.get(f"/api/v1/library/tracks/{track.id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["path"] == track.path


async def test_get_unknown_track(client, auth_headers):
    response = await client.get("/api/v1/library/tracks/999", headers=auth_headers)

    assert response.status_code == 404


async def test_toggle_favourite(client, auth_headers, seeded):
    track = seeded["Angie"]
    url = f"/api/v1/library/tracks/{track.id}/favourite"

    first = await client.post(url, headers=auth_headers)
    assert first.status_code == 200
    assert first.json()["favourited"] is True

    favourites = await client.get("/api/v1/library/favourites", headers=auth_headers)
    assert [t["id"] for t in favourites.json()] == [track.id]
    filtered = await client.get(
        "/api/v1/library/tracks", params={"favourites": "true"}, headers=auth_headers
    )
    assert [t["id"] for t in filtered.json()] == [track.id]

    second = await client.post(url, headers=auth_headers)
    assert second.json()["favourited"] is False
    favourites = await client.get("/api/v1/library/favourites", headers=auth_headers)
    assert favourites.json() == []


async def test_toggle_unknown_track(client, auth_headers):
    response = await client.post(
        "/api/v1/library/tracks/999/favourite", headers=auth_headers
    )

    assert response.status_code == 404


async def test_stream_returns_file_bytes(client, auth_headers, seeded):
    track = seeded["Let It Be"]

    response = await client.get(
        f"/api/v1/library/tracks/{track.id}/stream", headers=auth_headers
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/mpeg"
    with open(track.path, "rb") as f:
        assert response.content == f.read()


async def test_stream_with_query_token(client, app, seeded):
    track = seeded["Let It Be"]
    token = app.state.token_store.issue()

    response = await client.get(
        f"/api/v1/library/tracks/{track.id}/stream", params={"token": token}
    )

    assert response.status_code == 200


async def test_stream_supports_ranges(client, auth_headers, seeded):
    track = seeded["Let It Be"]
    headers = dict(auth_headers, Range="bytes=0-9")

    response = await client.get(
        f"/api/v1/library/tracks/{track.id}/stream", headers=headers
    )

    assert response.status_code == 206
    assert len(response.content) == 10


async def test_stream_file_missing_on_disk(client, auth_headers, seeded):
    # b.mp3 was catalogued but never written.
    track = seeded["Angie"]

    response = await client.get(
        f"/api/v1/library/tracks/{track.id}/stream", headers=auth_headers
    )

    assert response.status_code == 404


async def test_stream_unknown_id(client, auth_headers):
    response = await client.get(
        "/api/v1/library/tracks/999/stream", headers=auth_headers
    )

    assert response.status_code == 404
