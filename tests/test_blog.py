"""
Blog post tests: creation with image upload, public lookups, search,
editor's pick, and author/admin guarded updates and deletes.
"""

import io
import os
import sqlite3
from unittest.mock import patch

import pytest

from conftest import bearer, image_file, register_user
from hubpress.core.errors import StorageError


def create_post(client, headers, title="Hello World", content="Some python content",
                category="tech", description="A first post"):
    return client.post("/blog/post", headers=headers, content_type="multipart/form-data", data={
        "title": title,
        "content": content,
        "category": category,
        "description": description,
        "blogImage": image_file(),
    })


@pytest.fixture
def other_user(client):
    body = register_user(client, email="other@example.com", first="Other", last="Person")
    return body["User"], bearer(body["access_token"])


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def test_create_post(client, app, user):
    profile, headers = user
    response = create_post(client, headers)
    assert response.status_code == 201
    data = response.get_json()
    assert data["status"] == "success"
    assert data["message"] == "Blog created successfully."

    blog = data["blog"]
    assert blog["slug"] == "hello-world"
    assert blog["author"] == profile["id"]
    assert blog["authorName"] == "janedoe"
    assert blog["recommendedByEditor"] is False
    assert blog["image"].startswith("/uploads/")

    key = blog["image"].rsplit("/", 1)[1]
    assert len(key) == 32
    assert os.path.isfile(os.path.join(app.config["UPLOAD_FOLDER"], key))


def test_create_post_generates_unique_slugs(client, user):
    _, headers = user
    create_post(client, headers)
    response = create_post(client, headers)
    assert response.get_json()["blog"]["slug"] == "hello-world-1"


def test_create_post_without_image(client, user):
    _, headers = user
    response = client.post("/blog/post", headers=headers, data={"title": "T", "content": "C"})
    assert response.status_code == 400
    assert response.get_json() == {"message": "Missing required fields"}


def test_create_post_without_title(client, user):
    _, headers = user
    response = client.post("/blog/post", headers=headers, content_type="multipart/form-data",
                           data={"content": "C", "blogImage": image_file()})
    assert response.status_code == 400
    assert response.get_json() == {"message": "Missing required fields"}


def test_create_post_with_unselected_image(client, user):
    _, headers = user
    response = client.post("/blog/post", headers=headers, content_type="multipart/form-data",
                           data={"title": "T", "content": "C", "blogImage": (io.BytesIO(b""), "")})
    assert response.status_code == 400
    assert response.get_json() == {"message": "Missing required fields"}


def test_create_post_requires_login(client):
    response = create_post(client, {})
    assert response.status_code == 401


def test_failed_upload_removes_post(client, user):
    _, headers = user
    with patch("hubpress.modules.blog.routes.upload_file", side_effect=StorageError("bucket unavailable")):
        response = create_post(client, headers)

    assert response.status_code == 500
    assert client.get("/blog/all").get_json() == []


def test_failure_after_upload_removes_post_and_image(client, app, user):
    _, headers = user
    with patch("hubpress.modules.blog.routes.with_signed_image", side_effect=StorageError("signing failed")):
        response = create_post(client, headers)

    assert response.status_code == 500
    assert client.get("/blog/all").get_json() == []
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

def test_all_posts_newest_first(client, user):
    _, headers = user
    create_post(client, headers, title="First")
    create_post(client, headers, title="Second")

    titles = [b["title"] for b in client.get("/blog/all").get_json()]
    assert titles == ["Second", "First"]


def test_posts_by_category(client, user):
    _, headers = user
    create_post(client, headers, title="Code", category="tech")
    create_post(client, headers, title="Trip", category="travel")

    response = client.get("/blog/category/travel")
    assert [b["title"] for b in response.get_json()] == ["Trip"]


def test_post_by_id_and_slug(client, user):
    _, headers = user
    blog = create_post(client, headers).get_json()["blog"]

    by_id = client.get(f"/blog/id/{blog['id']}")
    assert by_id.status_code == 200
    assert by_id.get_json()["title"] == "Hello World"

    by_slug = client.get("/blog/slug/hello-world")
    assert by_slug.status_code == 200
    assert by_slug.get_json()["id"] == blog["id"]


def test_post_not_found(client):
    response = client.get("/blog/id/42")
    assert response.status_code == 404
    assert response.get_json() == {"status": "Failed", "message": "Blog not found."}

    assert client.get("/blog/slug/missing").status_code == 404


def test_search_is_case_insensitive(client, user):
    _, headers = user
    create_post(client, headers, title="Flask tips", content="All about python web apps")
    create_post(client, headers, title="Road trip", content="Driving", category="travel")

    response = client.get("/blog/search", query_string={"query": "PYTHON"})
    assert response.status_code == 200
    assert [b["title"] for b in response.get_json()["blogs"]] == ["Flask tips"]

    by_category = client.get("/blog/search", query_string={"query": "trav"})
    assert [b["title"] for b in by_category.get_json()["blogs"]] == ["Road trip"]


def test_search_requires_query(client):
    assert client.get("/blog/search").status_code == 400


def test_latest_returns_three_newest(client, user):
    _, headers = user
    for title in ("One", "Two", "Three", "Four"):
        create_post(client, headers, title=title)

    titles = [b["title"] for b in client.get("/blog/latest").get_json()]
    assert titles == ["Four", "Three", "Two"]


# ---------------------------------------------------------------------------
# Editor's pick
# ---------------------------------------------------------------------------

def test_recommended_not_found(client):
    response = client.get("/blog/recommended")
    assert response.status_code == 404
    assert response.get_json() == {"status": "Failed", "message": "No recommended blog found."}


def test_admin_recommends_single_post(client, user, admin):
    _, headers = user
    _, admin_headers = admin
    first = create_post(client, headers, title="First").get_json()["blog"]
    second = create_post(client, headers, title="Second").get_json()["blog"]

    response = client.patch(f"/blog/update/{first['id']}", headers=admin_headers,
                            json={"recommendedByEditor": True})
    assert response.status_code == 200
    assert client.get("/blog/recommended").get_json()["id"] == first["id"]

    client.patch(f"/blog/update/{second['id']}", headers=admin_headers, json={"recommendedByEditor": True})
    assert client.get("/blog/recommended").get_json()["id"] == second["id"]
    assert client.get(f"/blog/id/{first['id']}").get_json()["recommendedByEditor"] is False


def test_author_cannot_recommend(client, user):
    _, headers = user
    blog = create_post(client, headers).get_json()["blog"]
    response = client.patch(f"/blog/update/{blog['id']}", headers=headers, json={"recommendedByEditor": True})
    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

def test_author_updates_post(client, user):
    _, headers = user
    blog = create_post(client, headers).get_json()["blog"]

    response = client.patch(f"/blog/update/{blog['id']}", headers=headers,
                            json={"title": "Renamed Post", "category": "news"})
    assert response.status_code == 200
    updated = response.get_json()["blog"]
    assert updated["title"] == "Renamed Post"
    assert updated["slug"] == "renamed-post"
    assert updated["category"] == "news"


def test_update_replaces_image(client, app, user):
    _, headers = user
    blog = create_post(client, headers).get_json()["blog"]
    old_key = blog["image"].rsplit("/", 1)[1]

    response = client.patch(f"/blog/update/{blog['id']}", headers=headers,
                            content_type="multipart/form-data",
                            data={"blogImage": image_file("new.webp")})
    assert response.status_code == 200
    new_key = response.get_json()["blog"]["image"].rsplit("/", 1)[1]
    assert new_key != old_key
    assert not os.path.exists(os.path.join(app.config["UPLOAD_FOLDER"], old_key))


def test_failed_update_removes_new_image(client, app, user):
    _, headers = user
    blog = create_post(client, headers).get_json()["blog"]
    old_key = blog["image"].rsplit("/", 1)[1]

    with patch("hubpress.modules.blog.routes.BlogDatabase.update_blog",
               side_effect=sqlite3.OperationalError("database is locked")):
        response = client.patch(f"/blog/update/{blog['id']}", headers=headers,
                                content_type="multipart/form-data",
                                data={"blogImage": image_file("new.webp")})

    assert response.status_code == 500
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == [old_key]


def test_update_by_other_user_forbidden(client, user, other_user):
    _, headers = user
    _, other_headers = other_user
    blog = create_post(client, headers).get_json()["blog"]

    response = client.patch(f"/blog/update/{blog['id']}", headers=other_headers, json={"title": "Mine now"})
    assert response.status_code == 403
    assert response.get_json()["status"] == "Failed"


def test_update_missing_post(client, user):
    _, headers = user
    response = client.patch("/blog/update/999", headers=headers, json={"title": "X"})
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def test_delete_by_other_user_forbidden(client, user, other_user):
    _, headers = user
    _, other_headers = other_user
    blog = create_post(client, headers).get_json()["blog"]

    response = client.delete(f"/blog/delete/{blog['id']}", headers=other_headers)
    assert response.status_code == 403
    assert response.get_json() == {
        "status": "Failed",
        "message": "You are not allowed to perform this action.",
    }


def test_author_deletes_post_and_image(client, app, user):
    _, headers = user
    blog = create_post(client, headers).get_json()["blog"]
    key = blog["image"].rsplit("/", 1)[1]

    response = client.delete(f"/blog/delete/{blog['id']}", headers=headers)
    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "success"
    assert data["message"]["id"] == blog["id"]
    assert not os.path.exists(os.path.join(app.config["UPLOAD_FOLDER"], key))
    assert client.get(f"/blog/id/{blog['id']}").status_code == 404


def test_admin_deletes_any_post(client, user, admin):
    _, headers = user
    _, admin_headers = admin
    blog = create_post(client, headers).get_json()["blog"]
    assert client.delete(f"/blog/delete/{blog['id']}", headers=admin_headers).status_code == 200


def test_delete_missing_post(client, user):
    _, headers = user
    response = client.delete("/blog/delete/999", headers=headers)
    assert response.status_code == 404
    assert response.get_json() == {"status": "Failed", "message": "Blog not found.."}


def test_delete_all_posts(client, app, user, admin):
    _, headers = user
    _, admin_headers = admin
    create_post(client, headers, title="One")
    create_post(client, headers, title="Two")

    assert client.delete("/blog/del-all", headers=headers).status_code == 403

    response = client.delete("/blog/del-all", headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json() == {"blogs": {"deletedCount": 2}}
    assert client.get("/blog/all").get_json() == []
    assert os.listdir(app.config["UPLOAD_FOLDER"]) == []
