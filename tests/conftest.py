"""
Shared fixtures for the HubPress test suite.

Every test gets its own temporary directory holding the SQLite databases,
the local upload folder and the log file.
"""

import io
import logging
import os
import shutil
import tempfile

import pytest
from flask import Flask

from hubpress import HubPress


PASSWORD = "correct-horse-battery"


def build_app(tmp_dir, **overrides):
    """Flask app with HubPress initialised against tmp_dir"""
    app = Flask(__name__)
    config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "JWT_PRIVATE_KEY": "test-jwt-key",
        "JWT_COOKIE_SECURE": False,
        "RATE_LIMIT_ENABLED": False,
        "DB_DIR": tmp_dir,
        "USER_DB": os.path.join(tmp_dir, "users.db"),
        "BLOG_DB": os.path.join(tmp_dir, "blogs.db"),
        "STORAGE_TYPE": "local",
        "S3_BUCKET_NAME": None,
        "UPLOAD_FOLDER": os.path.join(tmp_dir, "uploads"),
        "LOG_FILE": os.path.join(tmp_dir, "logs", "app.log"),
        "FRONTEND_DIST": os.path.join(tmp_dir, "dist"),
        "EMAIL_PROVIDER": "smtp",
        "EMAIL_PASSWORD": None,
        "EMAIL_ADDRESS": "no-reply@hub256.live",
        "CLOUDFLARE_TOKEN": "cf-token",
        "CLOUDFLARE_EMAIL": "ops@hub256.live",
        "CLOUDFLARE_ZONE_TAG": "zone123",
    }
    config.update(overrides)
    HubPress(app, config)
    return app


@pytest.fixture
def tmp_dir():
    """Create a temporary directory for databases and uploads, cleaned up after."""
    d = tempfile.mkdtemp(prefix="hubpress-test-")
    yield d
    package_logger = logging.getLogger("hubpress")
    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.FileHandler) and handler.baseFilename.startswith(os.path.abspath(d)):
            package_logger.removeHandler(handler)
            handler.close()
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def app(tmp_dir):
    return build_app(tmp_dir)


@pytest.fixture
def client(app):
    return app.test_client()


def register_user(client, email="jane@example.com", first="Jane", last="Doe", password=PASSWORD):
    response = client.post("/auth/register", json={
        "firstName": first,
        "lastName": last,
        "email": email,
        "password": password,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def register_admin(client, email="admin@example.com", username="editor", password=PASSWORD):
    response = client.post("/auth/admin/register", json={
        "username": username,
        "email": email,
        "password": password,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(client):
    """A registered regular user: (json body, auth headers)"""
    body = register_user(client)
    return body["User"], bearer(body["access_token"])


@pytest.fixture
def admin(client):
    """A registered admin: (json body, auth headers)"""
    body = register_admin(client)
    return body["User"], bearer(body["access_token"])


def image_file(name="cover.png", data=b"\x89PNG fake image bytes"):
    return (io.BytesIO(data), name)
