"""
Integration tests for the /user endpoints and the welcome email.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
import resend
from bson import ObjectId
from fastapi.testclient import TestClient

from config import Settings
from mailer import configure_mailer, send_email, send_welcome_email


class TestRegister:
    def test_register(self, client, user_payload):
        with patch("routes_users.send_welcome_email") as welcome:
            response = client.post("/user/add", json=user_payload)

        assert response.status_code == 200
        data = response.json()
        assert ObjectId.is_valid(data["_id"])
        assert data["username"] == "ada"
        assert data["email"] == "ada@example.com"
        assert "password" not in data
        welcome.assert_called_once()

    def test_register_alias(self, client, user_payload):
        assert client.post("/user/register", json=user_payload).status_code == 200

    def test_password_is_hashed(self, client, db, user):
        stored = db.users.find_one({"username": "ada"})

        assert stored["password"] != "Analytical1!"

    def test_duplicate_email(self, client, user, user_payload):
        """A second user with the same email fails, the first remains."""
        response = client.post("/user/add", json={**user_payload, "username": "ada2"})

        assert response.status_code == 400
        assert client.get(f"/user/{user['_id']}").status_code == 200

    def test_duplicate_username(self, client, user, user_payload):
        response = client.post("/user/add", json={**user_payload, "email": "other@example.com"})

        assert response.status_code == 400

    def test_invalid_email(self, client, user_payload):
        response = client.post("/user/add", json={**user_payload, "email": "not-an-email"})

        assert response.status_code == 400
        assert "email" in response.json()["message"]


class TestLogin:
    def test_login_returns_token(self, client, user, user_payload):
        response = client.post(
            "/user/login",
            json={"email": user_payload["email"], "password": user_payload["password"]},
        )

        assert response.status_code == 200
        assert response.json()["user_id"] == user["_id"]
        assert response.json()["token"]

    def test_wrong_password(self, client, user, user_payload):
        response = client.post("/user/login", json={"email": user_payload["email"], "password": "nope"})

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid email or password"}


class TestReadAndUpdate:
    def test_list_hides_passwords(self, client, user):
        users = client.get("/user/").json()

        assert len(users) == 1
        assert "password" not in users[0]

    def test_get_missing(self, client):
        assert client.get(f"/user/{ObjectId()}").status_code == 404

    def test_update_name_keeps_password(self, client, db, user, auth_headers):
        before = db.users.find_one({"_id": ObjectId(user["_id"])})["password"]

        response = client.patch(f"/user/{user['_id']}", json={"name": "Countess"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["name"] == "Countess"
        assert "password" not in response.json()
        assert db.users.find_one({"_id": ObjectId(user["_id"])})["password"] == before

    def test_update_password_rehashes(self, client, user, user_payload, auth_headers):
        client.patch(f"/user/{user['_id']}", json={"password": "NewSecret2@"}, headers=auth_headers)

        old = client.post("/user/login", json={"email": user_payload["email"], "password": user_payload["password"]})
        new = client.post("/user/login", json={"email": user_payload["email"], "password": "NewSecret2@"})

        assert old.status_code == 400
        assert new.status_code == 200

    def test_update_requires_authentication(self, client, user):
        assert client.patch(f"/user/{user['_id']}", json={"name": "x"}).status_code == 401


class TestMailer:
    """Welcome emails go through Resend when an API key is configured."""

    @pytest.fixture
    def user_doc(self):
        return {"name": "Ada", "username": "ada", "email": "ada@example.com"}

    def test_skipped_without_api_key(self, user_doc):
        with patch("mailer.resend.Emails.send") as send:
            assert send_welcome_email(Settings(), user_doc) is False

        send.assert_not_called()

    def test_sends_with_api_key(self, user_doc):
        settings = Settings(resend_api_key="re_test")

        with patch("mailer.resend.Emails.send", return_value={"id": "email-1"}) as send:
            assert send_welcome_email(settings, user_doc) is True

        payload = send.call_args[0][0]
        assert payload["to"] == ["ada@example.com"]
        assert payload["from"] == settings.mail_from

    def test_failure_is_reported_not_raised(self):
        settings = Settings(resend_api_key="re_test")

        with patch("mailer.resend.Emails.send", side_effect=RuntimeError("boom")):
            assert send_email(settings, "ada@example.com", "Hi", "<p>Hi</p>", "Hi") is False


class TestMailerConcurrency:
    """The Resend key is set once at startup and shared by every sender."""

    @pytest.fixture(autouse=True)
    def reset_key(self, monkeypatch):
        monkeypatch.setattr(resend, "api_key", None)

    @staticmethod
    def recording_send(seen, lock):
        def send(payload):
            time.sleep(0.01)
            with lock:
                seen.append((payload["to"][0], resend.api_key))
            return {"id": payload["to"][0]}
        return send

    def test_lifespan_sets_key(self, app, settings):
        settings.resend_api_key = "re_startup"

        with TestClient(app):
            assert resend.api_key == "re_startup"

    def test_concurrent_sends_keep_key(self):
        settings = Settings(resend_api_key="re_test")
        configure_mailer(settings)
        seen, lock = [], threading.Lock()
        users = [{"name": f"U{i}", "username": f"u{i}", "email": f"u{i}@example.com"} for i in range(8)]

        with patch("mailer.resend.Emails.send", side_effect=self.recording_send(seen, lock)):
            with ThreadPoolExecutor(max_workers=8) as pool:
                results = list(pool.map(lambda u: send_welcome_email(settings, u), users))

        assert all(results)
        assert sorted(email for email, _ in seen) == sorted(u["email"] for u in users)
        assert {key for _, key in seen} == {"re_test"}

    def test_concurrent_registrations_send_both_emails(self, app, settings, user_payload):
        settings.resend_api_key = "re_test"
        seen, lock = [], threading.Lock()
        payloads = [
            {**user_payload, "username": "ada", "email": "ada@example.com"},
            {**user_payload, "username": "grace", "email": "grace@example.com"},
        ]

        with TestClient(app) as client, \
                patch("mailer.resend.Emails.send", side_effect=self.recording_send(seen, lock)):
            with ThreadPoolExecutor(max_workers=2) as pool:
                responses = list(pool.map(lambda p: client.post("/user/add", json=p), payloads))

        assert [r.status_code for r in responses] == [200, 200]
        assert sorted(seen) == [("ada@example.com", "re_test"), ("grace@example.com", "re_test")]
