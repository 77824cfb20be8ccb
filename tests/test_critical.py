"""
Critical Integration Tests for mailblocks
=========================================

Focused tests covering the Flask integration points most likely to break:
extension init, auth guard, editor sessions, save gate over HTTP, template
storage and test sends.
Run with: pytest tests/test_critical.py -v

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import os
import shutil
import tempfile
from unittest.mock import patch

import pytest
from flask import Flask

from mailblocks import MailBlocks
from mailblocks.core import LoggingService


PREFIX = '/admin/editor'


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="mailblocks-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


def _make_app(db_dir, **overrides):
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["DB_DIR"] = db_dir
    app.config["USER_DB"] = os.path.join(db_dir, "users.db")
    app.config["TEMPLATES_DB"] = os.path.join(db_dir, "templates.db")
    app.config["ANALYTICS_DB"] = os.path.join(db_dir, "analytics.db")
    app.config.update(overrides)
    MailBlocks(app)
    return app


@pytest.fixture
def app(tmp_db_dir):
    """Flask app with mailblocks registered and a fake Resend key."""
    return _make_app(
        tmp_db_dir,
        RESEND_API_KEY="re_test_fake_key_123",
        EMAIL_ADDRESS="editor@example.com",
        EMAIL_ADMIN_EMAIL="admin@example.com",
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(client):
    """Test client with an admin session."""
    with client.session_transaction() as sess:
        sess["admin_id"] = 1
    return client


def _open_session(admin, **body):
    response = admin.post(f"{PREFIX}/sessions", json=body)
    assert response.status_code == 201
    return response.get_json()["session_id"]


def _add(admin, sid, block_type, **body):
    response = admin.post(f"{PREFIX}/sessions/{sid}/blocks", json={"type": block_type, **body})
    assert response.status_code == 201
    return response.get_json()["block"]


def _order(admin, sid):
    data = admin.get(f"{PREFIX}/sessions/{sid}").get_json()
    return [b["id"] for b in data["document"]["blocks"]]


# ---------------------------------------------------------------------------
# 1. Extension initialisation
# ---------------------------------------------------------------------------

def test_extension_initialisation(tmp_db_dir):
    """MailBlocks(app) boots, stores itself on the app and creates DB_DIR."""
    target = os.path.join(tmp_db_dir, "nested", "databases")
    app = _make_app(target)

    ext = app.extensions["mailblocks"]
    assert isinstance(ext, MailBlocks)
    assert ext.get_registered_modules() == ["editor"]
    assert os.path.isdir(target)
    assert os.path.exists(os.path.join(target, "templates.db"))


def test_email_service_reads_config(app):
    svc = app.extensions["mailblocks"].email_service
    assert svc.provider == "resend"
    assert svc.api_key == "re_test_fake_key_123"
    assert svc.admin_email == "admin@example.com"
    assert svc.configured


def test_resend_error_response_reports_failure(app):
    svc = app.extensions["mailblocks"].email_service
    with patch("mailblocks.modules.editor.email_service.resend.Emails.send",
               return_value={"statusCode": 422, "message": "Invalid from"}) as send:
        assert svc.send_email(["someone@example.com"], "Hi", "<p>x</p>") is False
    send.assert_called_once()
    assert send.call_args.args[0]["from"] == "editor@example.com"


def test_email_service_smtp_without_password(tmp_db_dir):
    app = _make_app(tmp_db_dir, EMAIL_PROVIDER="smtp", EMAIL_PASSWORD="")
    svc = app.extensions["mailblocks"].email_service
    assert svc.provider == "smtp"
    assert not svc.configured
    assert svc.send_email(["not-an-address"], "Hi", "<p>x</p>") is False


# ---------------------------------------------------------------------------
# 2. Auth guard
# ---------------------------------------------------------------------------

def test_routes_require_admin(client):
    assert client.get(f"{PREFIX}/block-types").status_code == 401
    assert client.post(f"{PREFIX}/sessions", json={}).status_code == 401
    assert client.get(f"{PREFIX}/templates").status_code == 401


def test_block_types_listing(admin):
    data = admin.get(f"{PREFIX}/block-types").get_json()
    types = [entry["type"] for entry in data["block_types"]]
    assert types == ["text", "heading", "image", "button", "divider", "spacer", "social", "footer"]


# ---------------------------------------------------------------------------
# 3. Editing sessions
# ---------------------------------------------------------------------------

def test_session_editing_flow(admin):
    sid = _open_session(admin)
    h1 = _add(admin, sid, "heading")
    t1 = _add(admin, sid, "text")
    assert h1["content"]["text"] == "Your Heading"

    moved = admin.post(f"{PREFIX}/sessions/{sid}/blocks/{t1['id']}/move", json={"direction": "up"})
    assert moved.get_json()["moved"] is True
    assert _order(admin, sid) == [t1["id"], h1["id"]]

    html = admin.get(f"{PREFIX}/sessions/{sid}/preview").get_json()["html"]
    assert html.index("<p style=") < html.index("<h2 style=")

    for expected in ([h1["id"], t1["id"]], [h1["id"]], []):
        admin.post(f"{PREFIX}/sessions/{sid}/undo")
        assert _order(admin, sid) == expected

    for _ in range(3):
        data = admin.post(f"{PREFIX}/sessions/{sid}/redo").get_json()
    assert [b["id"] for b in data["document"]["blocks"]] == [t1["id"], h1["id"]]
    assert data["can_undo"] is True
    assert data["can_redo"] is False


def test_session_update_duplicate_reorder_delete(admin):
    sid = _open_session(admin)
    a = _add(admin, sid, "button")
    b = _add(admin, sid, "divider")

    patched = admin.patch(f"{PREFIX}/sessions/{sid}/blocks/{a['id']}",
                          json={"content": {"text": "Buy"}, "styles": {"color": "#000000"}})
    block = patched.get_json()["document"]["blocks"][0]
    assert block["content"]["text"] == "Buy"
    assert block["content"]["link"] == "#"
    assert block["styles"]["color"] == "#000000"

    dup = admin.post(f"{PREFIX}/sessions/{sid}/blocks/{a['id']}/duplicate").get_json()["block"]
    assert _order(admin, sid) == [a["id"], dup["id"], b["id"]]

    admin.post(f"{PREFIX}/sessions/{sid}/blocks/{b['id']}/reorder", json={"index": 0})
    assert _order(admin, sid) == [b["id"], a["id"], dup["id"]]

    deleted = admin.delete(f"{PREFIX}/sessions/{sid}/blocks/{a['id']}").get_json()
    assert deleted["deleted"] == a["id"]
    assert _order(admin, sid) == [b["id"], dup["id"]]


def test_session_errors_are_json(admin):
    sid = _open_session(admin)

    unknown = admin.post(f"{PREFIX}/sessions/{sid}/blocks", json={"type": "video"})
    assert unknown.status_code == 400
    assert unknown.get_json()["error"] == "UnknownBlockType"

    missing = admin.delete(f"{PREFIX}/sessions/{sid}/blocks/nope")
    assert missing.status_code == 404
    assert missing.get_json()["error"] == "BlockNotFound"

    gone = admin.get(f"{PREFIX}/sessions/does-not-exist")
    assert gone.status_code == 404
    assert gone.get_json()["error"] == "SessionNotFound"

    bad_index = admin.post(f"{PREFIX}/sessions/{sid}/blocks/nope/reorder", json={"index": "x"})
    assert bad_index.status_code == 400


def test_close_session(admin):
    sid = _open_session(admin)
    assert admin.delete(f"{PREFIX}/sessions/{sid}").status_code == 200
    assert admin.get(f"{PREFIX}/sessions/{sid}").status_code == 404


def test_global_styles_route_is_one_undoable_edit(admin):
    sid = _open_session(admin)
    data = admin.patch(f"{PREFIX}/sessions/{sid}/styles", json={
        "styles": {"backgroundColor": "#f4f4f4"},
        "settings": {"preheader": "This week"},
    }).get_json()
    assert data["document"]["styles"]["backgroundColor"] == "#f4f4f4"
    assert data["document"]["settings"]["preheader"] == "This week"

    undone = admin.post(f"{PREFIX}/sessions/{sid}/undo").get_json()
    assert undone["document"]["styles"]["backgroundColor"] == "#ffffff"
    assert undone["document"]["settings"]["preheader"] == ""
    assert undone["can_undo"] is False


@pytest.mark.parametrize("body", [
    {"styles": ["red"]},
    {"styles": "dark"},
    {"settings": ["x"]},
])
def test_global_styles_route_rejects_non_objects(admin, body):
    sid = _open_session(admin)
    response = admin.patch(f"{PREFIX}/sessions/{sid}/styles", json=body)
    assert response.status_code == 400
    assert admin.get(f"{PREFIX}/sessions/{sid}").get_json()["can_undo"] is False


def test_non_object_json_body_is_ignored(admin):
    sid = _open_session(admin)
    response = admin.patch(f"{PREFIX}/sessions/{sid}/styles", json=["not", "an", "object"])
    assert response.status_code == 200
    assert response.get_json()["can_undo"] is False


# ---------------------------------------------------------------------------
# 4. Save gate over HTTP
# ---------------------------------------------------------------------------

def test_save_refused_without_unsubscribe_link(admin, app):
    sid = _open_session(admin)
    _add(admin, sid, "text")
    _add(admin, sid, "footer")

    with patch("mailblocks.modules.editor.routes.save_template") as persist:
        response = admin.post(f"{PREFIX}/sessions/{sid}/save", json={"name": "Welcome"})

    assert response.status_code == 422
    assert response.get_json()["error"] == "MissingUnsubscribeLink"
    persist.assert_not_called()
    assert admin.get(f"{PREFIX}/templates").get_json()["templates"] == []


def test_save_and_reopen_template(admin):
    sid = _open_session(admin)
    _add(admin, sid, "heading")
    footer = _add(admin, sid, "footer")
    admin.patch(f"{PREFIX}/sessions/{sid}/blocks/{footer['id']}",
                json={"content": {"text": 'Bye <a href="{{unsubscribeUrl}}">Unsubscribe</a>'}})

    saved = admin.post(f"{PREFIX}/sessions/{sid}/save", json={"name": "Welcome", "tags": ["onboarding"]})
    assert saved.status_code == 200
    template_id = saved.get_json()["id"]

    listed = admin.get(f"{PREFIX}/templates").get_json()["templates"]
    assert [t["name"] for t in listed] == ["Welcome"]
    assert listed[0]["tags"] == ["onboarding"]
    assert listed[0]["structure"]["settings"]["contentWidth"] == 600

    reopened = admin.post(f"{PREFIX}/sessions", json={"template_id": template_id}).get_json()
    assert reopened["template_id"] == template_id
    assert [b["type"] for b in reopened["document"]["blocks"]] == ["heading", "footer"]
    assert reopened["can_undo"] is False


def test_template_crud_routes(admin):
    body = {
        "name": "Promo",
        "category": "promotional",
        "structure": {
            "blocks": [{"id": 1, "type": "footer", "content": {"text": "{{UnsubscribeUrl}}"}, "styles": {}}],
            "settings": {"contentWidth": 500},
        },
    }
    created = admin.post(f"{PREFIX}/templates", json=body)
    assert created.status_code == 200
    template_id = created.get_json()["id"]

    fetched = admin.get(f"{PREFIX}/templates/{template_id}").get_json()
    assert fetched["category"] == "promotional"
    assert fetched["structure"]["blocks"][0]["id"] == "1"
    assert fetched["structure"]["settings"]["contentWidth"] == 500

    refused = admin.post(f"{PREFIX}/templates", json={"name": "Bad", "structure": {"blocks": []}})
    assert refused.status_code == 422

    assert admin.post(f"{PREFIX}/templates", json={"structure": {}}).status_code == 400

    assert admin.delete(f"{PREFIX}/templates/{template_id}").status_code == 200
    assert admin.get(f"{PREFIX}/templates/{template_id}").status_code == 404
    assert admin.delete(f"{PREFIX}/templates/{template_id}").status_code == 404


def test_saving_over_deleted_template_returns_404(admin):
    footer = {"type": "footer", "content": {"text": "{{unsubscribeUrl}}"}}
    created = admin.post(f"{PREFIX}/templates", json={"name": "Old", "structure": {"blocks": [footer]}})
    template_id = created.get_json()["id"]

    sid = admin.post(f"{PREFIX}/sessions", json={"template_id": template_id}).get_json()["session_id"]
    admin.delete(f"{PREFIX}/templates/{template_id}")

    stale = admin.post(f"{PREFIX}/templates",
                       json={"id": template_id, "name": "Old", "structure": {"blocks": [footer]}})
    assert stale.status_code == 404
    assert stale.get_json()["error"] == "Template not found"

    from_session = admin.post(f"{PREFIX}/sessions/{sid}/save", json={"name": "Old"})
    assert from_session.status_code == 404
    assert admin.get(f"{PREFIX}/templates").get_json()["templates"] == []


# ---------------------------------------------------------------------------
# 5. Preview and send-test
# ---------------------------------------------------------------------------

def test_stateless_preview(admin):
    response = admin.post(f"{PREFIX}/preview", json={
        "name": "Preview",
        "blocks": [{"id": "t", "type": "text", "content": {"text": "Hello world"}}],
        "settings": {"preheader": "Peek", "contentWidth": 520},
    })
    html = response.get_json()["html"]
    assert html.startswith("<!DOCTYPE html>")
    assert "Hello world" in html
    assert "max-width: 520px;" in html
    assert "opacity:0;\">Peek</div>" in html


def test_send_test_substitutes_unsubscribe_link(admin):
    created = admin.post(f"{PREFIX}/templates", json={
        "name": "Digest",
        "structure": {"blocks": [
            {"id": "f", "type": "footer", "content": {"text": '<a href="{{unsubscribeUrl}}">Leave</a>'}},
        ]},
    })
    template_id = created.get_json()["id"]

    with patch("mailblocks.modules.editor.email_service.resend.Emails.send",
               return_value={"id": "email_123"}) as send:
        response = admin.post(f"{PREFIX}/templates/{template_id}/send-test")

    assert response.status_code == 200
    assert "admin@example.com" in response.get_json()["message"]

    payload = send.call_args.args[0]
    assert payload["to"] == ["admin@example.com"]
    assert payload["subject"] == "[TEST] Digest"
    assert '<a href="#">Leave</a>' in payload["html"]
    assert "{{unsubscribeUrl}}" not in payload["html"]


def test_send_test_without_provider(tmp_db_dir):
    app = _make_app(tmp_db_dir, RESEND_API_KEY="")
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["admin_id"] = 1

    created = client.post(f"{PREFIX}/templates", json={
        "name": "Digest",
        "structure": {"blocks": [{"type": "footer", "content": {"text": "{{unsubscribeUrl}}"}}]},
    })
    response = client.post(f"{PREFIX}/templates/{created.get_json()['id']}/send-test")
    assert response.status_code == 500


# ---------------------------------------------------------------------------
# 6. Persistent logging
# ---------------------------------------------------------------------------

def test_saves_are_logged_to_database(admin, app):
    admin.post(f"{PREFIX}/templates", json={
        "name": "Logged",
        "structure": {"blocks": [{"type": "footer", "content": {"text": "{{unsubscribeUrl}}"}}]},
    })
    with app.app_context():
        rows = LoggingService.recent(source="editor")
    assert any(row["message"] == "Template saved: Logged" for row in rows)
    assert rows[0]["level"] == "INFO"


def test_send_test_failure_logs_traceback(admin, app):
    created = admin.post(f"{PREFIX}/templates", json={
        "name": "Broken",
        "structure": {"blocks": [{"type": "footer", "content": {"text": "{{unsubscribeUrl}}"}}]},
    })
    template_id = created.get_json()["id"]

    with patch("mailblocks.modules.editor.routes.compile_document", side_effect=RuntimeError("boom")):
        response = admin.post(f"{PREFIX}/templates/{template_id}/send-test")

    assert response.status_code == 500
    assert response.get_json()["error"] == "boom"
    with app.app_context():
        rows = LoggingService.recent(source="editor")
    assert rows[0]["level"] == "ERROR"
    assert rows[0]["message"] == "Exception occurred: RuntimeError"
    assert "Traceback" in rows[0]["details"]


def test_database_paths_follow_db_dir(tmp_db_dir):
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["DB_DIR"] = tmp_db_dir
    with patch.dict(os.environ, {}, clear=False):
        for key in ("USER_DB", "TEMPLATES_DB", "ANALYTICS_DB"):
            os.environ.pop(key, None)
        MailBlocks(app)

    assert app.config["TEMPLATES_DB"] == os.path.join(tmp_db_dir, "templates.db")
    assert app.config["ANALYTICS_DB"] == os.path.join(tmp_db_dir, "analytics_log.db")
    assert os.path.exists(app.config["TEMPLATES_DB"])
