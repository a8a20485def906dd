import functools
import logging
import os
import secrets
from pathlib import Path

from flask import Flask, Response, g, redirect, render_template, request, session, url_for
from jinja2 import DictLoader

from accounts import CredentialStore
from documents import (
    DocumentExists,
    DocumentKind,
    DocumentNotFound,
    DocumentStore,
    InvalidDocumentName,
    UndecodableDocument,
    UnsupportedDocumentType,
    render,
)
from session_state import SessionState

app = Flask(__name__)
logger = logging.getLogger(__name__)

PROJECT_DIR = Path(__file__).resolve().parent

import json as _json

_CONFIG_PATH = PROJECT_DIR / "cms.config.json"
_DEFAULTS = {
    "port": 4567,
    "host": "127.0.0.1",
    "data_dir": "data",
    "users_file": "users.yml",
    "test_data_dir": "tests/data",
    "test_users_file": "tests/users.yml",
    "secret_key": None,
    "log_level": "INFO",
}

def _load_config() -> dict:
    cfg = dict(_DEFAULTS)
    if _CONFIG_PATH.is_file():
        try:
            with open(_CONFIG_PATH) as f:
                user = _json.load(f)
            cfg.update(user)
        except (OSError, ValueError) as e:
            print(f"Warning: could not load {_CONFIG_PATH.name}: {e}")
    return cfg

def _project_path(raw) -> Path:
    path = Path(raw)
    return path if path.is_absolute() else PROJECT_DIR / path

def _settings(cfg: dict, environ) -> dict:
    """Resolve the Flask config values from the loaded config and environment.

    `CMS_ENV=test` switches to the test data dir and users file. The secret
    comes from `CMS_SECRET_KEY`, then the config file, then a random key.
    """
    env = environ.get("CMS_ENV", "production")
    prefix = "test_" if env == "test" else ""
    secret_key = environ.get("CMS_SECRET_KEY") or cfg["secret_key"]
    if not secret_key:
        # sessions will not survive a restart
        logger.warning("no secret_key configured, generating a random one for this process")
        secret_key = secrets.token_hex(32)
    return {
        "CMS_ENV": env,
        "DATA_DIR": _project_path(cfg[prefix + "data_dir"]),
        "USERS_FILE": _project_path(cfg[prefix + "users_file"]),
        "SECRET_KEY": secret_key,
    }

_cfg = _load_config()

PORT = _cfg["port"]
HOST = _cfg["host"]
LOG_LEVEL = _cfg["log_level"]

app.config.update(_settings(_cfg, os.environ))

SIGNIN_REQUIRED_MESSAGE = "You must be signed in to do that."


@app.before_request
def _load_request_state():
    g.state = SessionState(session)
    g.documents = DocumentStore(app.config["DATA_DIR"])


def signin_required(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        if not g.state.signed_in:
            g.state.set_message(SIGNIN_REQUIRED_MESSAGE)
            return redirect(url_for("index"))
        return view(*args, **kwargs)
    return wrapper


def _page(template: str, status: int = 200, **context):
    # the layout shows the pending message, which consumes it
    body = render_template(template, message=g.state.take_message(),
                           user=g.state.current_user, **context)
    return body, status


def _back_home(message: str):
    g.state.set_message(message)
    return redirect(url_for("index"))


@app.route("/")
def index():
    return _page("index.html", files=g.documents.list())


@app.route("/favicon.ico")
def favicon():
    return "", 204


@app.route("/new")
@signin_required
def new_document():
    return _page("new.html", filename="")


@app.route("/create", methods=["POST"])
@signin_required
def create_document():
    filename = request.form.get("filename", "").strip()
    if not filename:
        g.state.set_message("A name is required.")
        return _page("new.html", status=422, filename=filename)
    try:
        g.documents.create(filename)
    except InvalidDocumentName:
        g.state.set_message(f"{filename} is not a valid document name.")
        return _page("new.html", status=422, filename=filename)
    except DocumentExists:
        g.state.set_message(f"{filename} already exists.")
        return _page("new.html", status=422, filename=filename)
    logger.info("%s created %s", g.state.current_user, filename)
    return _back_home(f"{filename} has been created.")


@app.route("/<filename>")
def view_document(filename):
    try:
        rendered = render(filename, g.documents.read(filename))
    except (DocumentNotFound, InvalidDocumentName):
        return _back_home(f"{filename} does not exist.")
    except UnsupportedDocumentType:
        return _back_home(f"{filename} cannot be displayed.")
    if rendered.kind is DocumentKind.MARKDOWN:
        return _page("document.html", filename=filename, html=rendered.body)
    return Response(rendered.body, mimetype=rendered.content_type)


@app.route("/<filename>/edit")
@signin_required
def edit_document(filename):
    try:
        content = g.documents.read(filename, strict=True)
    except (DocumentNotFound, InvalidDocumentName):
        return _back_home(f"{filename} does not exist.")
    except UndecodableDocument:
        return _back_home(f"{filename} is not UTF-8 text and cannot be edited.")
    return _page("edit.html", filename=filename, content=content)


@app.route("/<filename>", methods=["POST"])
@signin_required
def update_document(filename):
    try:
        g.documents.write(filename, request.form.get("content", ""))
    except InvalidDocumentName:
        return _back_home(f"{filename} does not exist.")
    logger.info("%s updated %s", g.state.current_user, filename)
    return _back_home(f"{filename} has been updated.")


@app.route("/<filename>/delete", methods=["POST"])
@signin_required
def delete_document(filename):
    try:
        g.documents.delete(filename)
    except (DocumentNotFound, InvalidDocumentName):
        return _back_home(f"{filename} does not exist.")
    logger.info("%s deleted %s", g.state.current_user, filename)
    return _back_home(f"{filename} has been deleted.")


@app.route("/users/signin")
def signin_form():
    return _page("signin.html", username="")


@app.route("/users/signin", methods=["POST"])
def signin():
    username = request.form.get("username", "")
    password = request.form.get("password", "")
    if CredentialStore(app.config["USERS_FILE"]).verify(username, password):
        g.state.sign_in(username)
        logger.info("%s signed in", username)
        return _back_home("Welcome!")
    logger.warning("failed sign-in for %r", username)
    g.state.set_message("Invalid Credentials!")
    return _page("signin.html", status=422, username=username)


@app.route("/users/signout", methods=["POST"])
def signout():
    if g.state.signed_in:
        logger.info("%s signed out", g.state.current_user)
    g.state.sign_out()
    g.state.set_message("You have been signed out!")
    return redirect(url_for("signin_form"))


LAYOUT_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{% block title %}CMS{% endblock %}</title>
<style>
body { font-family: system-ui, -apple-system, "Segoe UI", Roboto, sans-serif; max-width: 760px; margin: 2rem auto; padding: 0 1rem; color: #1f2937; }
a { color: #2563eb; text-decoration: none; }
.message { background: #fef3c7; border: 1px solid #f59e0b; border-radius: 6px; padding: .6rem .9rem; }
ul.files { list-style: none; padding: 0; }
ul.files li { display: flex; gap: .75rem; align-items: center; padding: .3rem 0; }
ul.files form { display: inline; }
textarea { width: 100%; min-height: 24rem; font-family: ui-monospace, monospace; }
button { cursor: pointer; }
footer { margin-top: 2rem; border-top: 1px solid #e5e7eb; padding-top: 1rem; color: #6b7280; }
</style>
</head>
<body>
{% if message %}<p class="message">{{ message }}</p>{% endif %}
{% block content %}{% endblock %}
</body>
</html>
"""

INDEX_TEMPLATE = r"""{% extends "layout.html" %}
{% block content %}
<ul class="files">
{% for name in files %}
  <li>
    <a href="{{ url_for('view_document', filename=name) }}">{{ name }}</a>
    <a href="{{ url_for('edit_document', filename=name) }}">Edit</a>
    <form method="post" action="{{ url_for('delete_document', filename=name) }}">
      <button type="submit">Delete</button>
    </form>
  </li>
{% endfor %}
</ul>
<p><a href="{{ url_for('new_document') }}">New Document</a></p>
<footer>
{% if user %}
  <form method="post" action="{{ url_for('signout') }}">
    <p>Signed in as {{ user }}. <button type="submit">Sign Out</button></p>
  </form>
{% else %}
  <p><a href="{{ url_for('signin_form') }}">Sign In</a></p>
{% endif %}
</footer>
{% endblock %}
"""

DOCUMENT_TEMPLATE = r"""{% extends "layout.html" %}
{% block title %}{{ filename }}{% endblock %}
{% block content %}
<article>
{{ html|safe }}
</article>
{% endblock %}
"""

EDIT_TEMPLATE = r"""{% extends "layout.html" %}
{% block title %}Edit {{ filename }}{% endblock %}
{% block content %}
<form method="post" action="{{ url_for('update_document', filename=filename) }}">
  <label for="content">Edit content of {{ filename }}:</label>
  <textarea id="content" name="content">
{{ content }}</textarea>
  <button type="submit">Save Changes</button>
</form>
{% endblock %}
"""

NEW_TEMPLATE = r"""{% extends "layout.html" %}
{% block title %}New Document{% endblock %}
{% block content %}
<form method="post" action="{{ url_for('create_document') }}">
  <label for="filename">Add a new document:</label>
  <input id="filename" name="filename" type="text" value="{{ filename }}">
  <button type="submit">Create</button>
</form>
{% endblock %}
"""

SIGNIN_TEMPLATE = r"""{% extends "layout.html" %}
{% block title %}Sign In{% endblock %}
{% block content %}
<h1>Sign In</h1>
<form method="post" action="{{ url_for('signin') }}">
  <p><label for="username">Username:</label>
  <input id="username" name="username" type="text" value="{{ username }}"></p>
  <p><label for="password">Password:</label>
  <input type="password" id="password" name="password"></p>
  <button type="submit">Sign In</button>
</form>
{% endblock %}
"""

app.jinja_loader = DictLoader({
    "layout.html": LAYOUT_TEMPLATE,
    "index.html": INDEX_TEMPLATE,
    "document.html": DOCUMENT_TEMPLATE,
    "edit.html": EDIT_TEMPLATE,
    "new.html": NEW_TEMPLATE,
    "signin.html": SIGNIN_TEMPLATE,
})


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print(f"Serving documents: {app.config['DATA_DIR']} ({app.config['CMS_ENV']})")
    print(f"Open http://{HOST}:{PORT}")
    app.run(host=HOST, port=PORT)
