"""Tests for image upload, listing, favorites, comments and deletion."""
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from album_api.main import app
from album_api.models.image import Image
from album_api.services.image import MAX_UPLOAD_BYTES

from conftest import count_rows, create_album, upload


def share(client, headers, album_id, emails):
    response = client.post(f"/albums/{album_id}/share", json={"emails": emails}, headers=headers)
    assert response.status_code == 200


class TestUploadImage:
    def test_upload(self, client, alice, storage):
        album = create_album(client, alice)
        response = upload(client, alice, album["id"], "Beach.PNG", tags=" sea, sun,, ", person="Alice")

        assert response.status_code == 201, response.text
        image = response.json()
        assert image["album_id"] == album["id"]
        assert image["name"] == "Beach.PNG"
        assert image["tags"] == ["sea", "sun"]
        assert image["person"] == "Alice"
        assert image["is_favorite"] is False
        assert image["comments"] == []
        assert image["file_url"].startswith("https://cdn.test/uploads/")
        assert image["file_url"].endswith(".png")
        assert len(storage.objects) == 1

    def test_custom_name_and_favorite(self, client, alice):
        album = create_album(client, alice)
        response = upload(client, alice, album["id"], name="Sunset", is_favorite="true")
        assert response.json()["name"] == "Sunset"
        assert response.json()["is_favorite"] is True

    def test_oversized_file_is_rejected_before_storage(self, client, alice, storage):
        album = create_album(client, alice)
        response = upload(client, alice, album["id"], content=b"0" * (6 * 1024 * 1024))

        assert response.status_code == 400
        assert response.json()["detail"] == "File size exceeds the 5MB limit"
        assert storage.store_calls == 0
        assert count_rows(Image) == 0

    def test_exactly_limit_is_accepted(self, client, alice):
        album = create_album(client, alice)
        response = upload(client, alice, album["id"], content=b"0" * MAX_UPLOAD_BYTES)
        assert response.status_code == 201

    def test_unsupported_type_is_rejected(self, client, alice, storage):
        album = create_album(client, alice)
        response = upload(client, alice, album["id"], "notes.txt", content=b"hello")

        assert response.status_code == 400
        assert response.json()["detail"] == "Unsupported file type"
        assert response.json()["invalid"] == [".txt"]
        assert storage.store_calls == 0

    def test_missing_file(self, client, alice, storage):
        album = create_album(client, alice)
        response = client.post(f"/albums/{album['id']}/images", data={"name": "x"}, headers=alice)

        assert response.status_code == 400
        assert response.json()["detail"] == "No file uploaded"
        assert storage.store_calls == 0

    def test_missing_album(self, client, alice, storage):
        response = upload(client, alice, 9999)
        assert response.status_code == 404
        assert storage.store_calls == 0

    def test_other_user_cannot_upload(self, client, alice, bob, storage):
        album = create_album(client, alice)
        share(client, alice, album["id"], ["bob@gmail.com"])

        response = upload(client, bob, album["id"])
        assert response.status_code == 403
        assert storage.store_calls == 0
        assert count_rows(Image) == 0

    def test_storage_failure_persists_nothing(self, client, alice, storage):
        album = create_album(client, alice)
        storage.fail_store = True

        response = upload(client, alice, album["id"])
        assert response.status_code == 502
        assert count_rows(Image) == 0

    def test_persist_failure_removes_stored_object(self, client, alice, storage, monkeypatch):
        album = create_album(client, alice)
        original_commit = AsyncSession.commit

        async def failing_commit(self):
            if any(isinstance(obj, Image) for obj in self.new):
                raise SQLAlchemyError("disk full")
            return await original_commit(self)

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)

        unchecked = TestClient(app, raise_server_exceptions=False)
        response = upload(unchecked, alice, album["id"])

        assert response.status_code == 500
        assert storage.store_calls == 1
        assert len(storage.deleted) == 1
        assert storage.deleted[0].startswith("uploads/")
        assert storage.objects == {}
        assert count_rows(Image) == 0

    def test_overlong_name_is_rejected(self, client, alice, storage):
        album = create_album(client, alice)
        response = upload(client, alice, album["id"], name="n" * 300)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_FAILED"
        assert response.json()["invalid"] == ["name"]
        assert storage.store_calls == 0

    def test_overlong_person_is_rejected(self, client, alice, storage):
        album = create_album(client, alice)
        response = upload(client, alice, album["id"], person="p" * 300)

        assert response.status_code == 400
        assert response.json()["invalid"] == ["person"]
        assert storage.store_calls == 0

    def test_long_file_name_is_truncated(self, client, alice):
        album = create_album(client, alice)
        response = upload(client, alice, album["id"], "a" * 300 + ".jpg")

        assert response.status_code == 201
        assert response.json()["name"] == "a" * 255


class TestListImages:
    def test_tag_filter_matches_all_tags(self, client, alice):
        album = create_album(client, alice)
        both = upload(client, alice, album["id"], tags="cat,cute").json()
        upload(client, alice, album["id"], tags="cat")
        upload(client, alice, album["id"], tags="dog")

        response = client.get(f"/albums/{album['id']}/images", params={"tags": "cute, cat"}, headers=alice)
        assert [i["id"] for i in response.json()] == [both["id"]]

        cats = client.get(f"/albums/{album['id']}/images", params={"tags": "cat"}, headers=alice).json()
        assert len(cats) == 2
        assert len(client.get(f"/albums/{album['id']}/images", headers=alice).json()) == 3

    def test_shared_user_can_list(self, client, alice, bob, carol):
        album = create_album(client, alice)
        upload(client, alice, album["id"])
        share(client, alice, album["id"], ["bob@gmail.com"])

        assert len(client.get(f"/albums/{album['id']}/images", headers=bob).json()) == 1
        assert client.get(f"/albums/{album['id']}/images", headers=carol).status_code == 403


class TestFavoritesAndComments:
    def test_toggle_favorite(self, client, alice):
        album = create_album(client, alice)
        image = upload(client, alice, album["id"]).json()
        url = f"/albums/{album['id']}/images/{image['id']}/favorite"

        assert client.put(url, headers=alice).json()["is_favorite"] is True
        assert client.put(url, headers=alice).json()["is_favorite"] is False

    def test_shared_user_cannot_toggle_favorite(self, client, alice, bob):
        album = create_album(client, alice)
        image = upload(client, alice, album["id"]).json()
        share(client, alice, album["id"], ["bob@gmail.com"])

        response = client.put(f"/albums/{album['id']}/images/{image['id']}/favorite", headers=bob)
        assert response.status_code == 403

    def test_shared_user_can_comment(self, client, alice, bob):
        album = create_album(client, alice)
        image = upload(client, alice, album["id"]).json()
        share(client, alice, album["id"], ["bob@gmail.com"])
        url = f"/albums/{album['id']}/images/{image['id']}/comments"

        client.put(url, json={"comment": "Nice shot"}, headers=alice)
        response = client.put(url, json={"comment": "Love it"}, headers=bob)

        assert response.status_code == 200
        comments = response.json()["comments"]
        assert [c["text"] for c in comments] == ["Nice shot", "Love it"]
        assert [c["user"]["name"] for c in comments] == ["Alice", "Bob"]

    def test_stranger_cannot_comment(self, client, alice, carol):
        album = create_album(client, alice)
        image = upload(client, alice, album["id"]).json()

        response = client.put(
            f"/albums/{album['id']}/images/{image['id']}/comments",
            json={"comment": "Hi"},
            headers=carol,
        )
        assert response.status_code == 403

    def test_empty_comment_is_rejected(self, client, alice):
        album = create_album(client, alice)
        image = upload(client, alice, album["id"]).json()
        response = client.put(
            f"/albums/{album['id']}/images/{image['id']}/comments",
            json={"comment": ""},
            headers=alice,
        )
        assert response.status_code == 422


class TestDeleteImage:
    def test_delete_image_removes_blob(self, client, alice, storage):
        album = create_album(client, alice)
        image = upload(client, alice, album["id"]).json()

        response = client.delete(f"/albums/{album['id']}/images/{image['id']}", headers=alice)
        assert response.status_code == 204
        assert count_rows(Image) == 0
        assert len(storage.deleted) == 1
        assert storage.objects == {}

    def test_delete_through_other_album_is_not_found(self, client, alice):
        first = create_album(client, alice, "First")
        second = create_album(client, alice, "Second")
        image = upload(client, alice, first["id"]).json()

        response = client.delete(f"/albums/{second['id']}/images/{image['id']}", headers=alice)
        assert response.status_code == 404
        assert response.json()["detail"] == "Image not found"
        assert count_rows(Image) == 1

    def test_other_user_cannot_delete(self, client, alice, bob):
        album = create_album(client, alice)
        image = upload(client, alice, album["id"]).json()

        response = client.delete(f"/albums/{album['id']}/images/{image['id']}", headers=bob)
        assert response.status_code == 403
        assert count_rows(Image) == 1
