"""
Shared fixtures: a Flask test client pointed at temporary data and users files.

Run:  pytest tests/ -v
"""

import pytest
import yaml

from accounts import hash_password


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def users_file(tmp_path):
    path = tmp_path / "users.yml"
    path.write_text(yaml.safe_dump({"admin": hash_password("secret", rounds=4)}), encoding="utf-8")
    return path


@pytest.fixture
def app(data_dir, users_file):
    import server

    original = dict(server.app.config)
    server.app.config.update(
        TESTING=True,
        DATA_DIR=data_dir,
        USERS_FILE=users_file,
        SECRET_KEY="test-secret-key",
    )
    yield server.app
    server.app.config.clear()
    server.app.config.update(original)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def create_document(data_dir):
    def _create(name, content=""):
        (data_dir / name).write_text(content, encoding="utf-8")
    return _create


@pytest.fixture
def admin(client):
    """Sign the test client in as admin."""
    with client.session_transaction() as sess:
        sess["username"] = "admin"
    return client


@pytest.fixture
def session_of():
    def _read(client):
        with client.session_transaction() as sess:
            return dict(sess)
    return _read
