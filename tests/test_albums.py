"""Tests for album CRUD, list views and ownership enforcement."""
from album_api.models.album import Album

from conftest import count_rows, create_album, upload


class TestAlbumCrud:
    def test_create_album(self, client, alice):
        album = create_album(client, alice, "Holiday")
        assert album["name"] == "Holiday"
        assert album["description"] == "Summer trip"
        assert album["shared_users"] == []

        me = client.get("/user/profile/google", headers=alice).json()["user"]
        assert album["owner_id"] == me["id"]

    def test_create_requires_authentication(self, client):
        response = client.post("/albums", json={"name": "Nope"})
        assert response.status_code == 401
        assert count_rows(Album) == 0

    def test_create_rejects_empty_name(self, client, alice):
        response = client.post("/albums", json={"name": ""}, headers=alice)
        assert response.status_code == 422

    def test_update_album(self, client, alice):
        album = create_album(client, alice)
        response = client.put(
            f"/albums/{album['id']}",
            json={"name": "Renamed", "description": ""},
            headers=alice,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["description"] is None

    def test_update_rejects_owner_change(self, client, alice):
        album = create_album(client, alice)
        response = client.put(f"/albums/{album['id']}", json={"owner_id": 999}, headers=alice)
        assert response.status_code == 422

    def test_delete_album_cascades(self, client, alice, storage):
        album = create_album(client, alice)
        assert upload(client, alice, album["id"]).status_code == 201

        response = client.delete(f"/albums/{album['id']}", headers=alice)
        assert response.status_code == 204
        assert client.get(f"/albums/{album['id']}").status_code == 404

    def test_missing_album(self, client, alice):
        assert client.get("/albums/9999").status_code == 404
        assert client.put("/albums/9999", json={"name": "x"}, headers=alice).status_code == 404
        assert client.delete("/albums/9999", headers=alice).status_code == 404


class TestPublicRead:
    def test_anonymous_can_read(self, client, alice, bob):
        album = create_album(client, alice)
        client.post(f"/albums/{album['id']}/share", json={"emails": ["bob@gmail.com"]}, headers=alice)

        response = client.get(f"/albums/{album['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == album["name"]
        assert response.json()["shared_users"] is None

    def test_shared_users_only_for_owner(self, client, alice, bob):
        album = create_album(client, alice)
        client.post(f"/albums/{album['id']}/share", json={"emails": ["bob@gmail.com"]}, headers=alice)

        as_owner = client.get(f"/albums/{album['id']}", headers=alice).json()
        as_friend = client.get(f"/albums/{album['id']}", headers=bob).json()
        assert as_owner["shared_users"] == ["bob@gmail.com"]
        assert as_friend["shared_users"] is None


class TestOwnershipEnforcement:
    """A user cannot modify another user's album."""

    def test_other_user_cannot_update(self, client, alice, bob):
        album = create_album(client, alice)
        response = client.put(f"/albums/{album['id']}", json={"name": "Mine now"}, headers=bob)
        assert response.status_code == 403
        assert response.json()["detail"] == "not authorized"
        assert client.get(f"/albums/{album['id']}").json()["name"] == album["name"]

    def test_other_user_cannot_delete(self, client, alice, bob):
        album = create_album(client, alice)
        assert client.delete(f"/albums/{album['id']}", headers=bob).status_code == 403
        assert count_rows(Album) == 1

    def test_other_user_cannot_share(self, client, alice, bob, carol):
        album = create_album(client, alice)
        response = client.post(
            f"/albums/{album['id']}/share", json={"emails": ["carol@gmail.com"]}, headers=bob
        )
        assert response.status_code == 403
        assert client.get(f"/albums/{album['id']}", headers=alice).json()["shared_users"] == []

    def test_shared_user_cannot_update(self, client, alice, bob):
        album = create_album(client, alice)
        client.post(f"/albums/{album['id']}/share", json={"emails": ["bob@gmail.com"]}, headers=alice)
        response = client.put(f"/albums/{album['id']}", json={"name": "x"}, headers=bob)
        assert response.status_code == 403


class TestListViews:
    def test_my_albums_and_shared_albums_are_disjoint(self, client, alice, bob):
        own = create_album(client, alice, "Alice's")
        shared = create_album(client, bob, "Bob's")
        client.post(f"/albums/{shared['id']}/share", json={"emails": ["alice@gmail.com"]}, headers=bob)

        mine = [a["id"] for a in client.get("/albums", headers=alice).json()]
        shared_with_me = [a["id"] for a in client.get("/albums/shared", headers=alice).json()]

        assert mine == [own["id"]]
        assert shared_with_me == [shared["id"]]

    def test_owner_does_not_see_own_album_as_shared(self, client, alice, bob):
        album = create_album(client, alice)
        client.post(f"/albums/{album['id']}/share", json={"emails": ["bob@gmail.com"]}, headers=alice)
        assert client.get("/albums/shared", headers=alice).json() == []

    def test_list_requires_authentication(self, client):
        assert client.get("/albums").status_code == 401
        assert client.get("/albums/shared").status_code == 401

    def test_pagination(self, client, alice):
        for i in range(3):
            create_album(client, alice, f"Album {i}")

        page = client.get("/albums", params={"skip": 1, "limit": 1}, headers=alice).json()
        assert len(page) == 1
        assert len(client.get("/albums", params={"limit": 500}, headers=alice).json()) == 3
