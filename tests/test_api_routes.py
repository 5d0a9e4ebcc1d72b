"""End-to-end tests for the HTTP API with an in-memory database and a temporary storage directory."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.v1.auth import get_auth_service
from app.api.v1.files import get_blob_store
from app.core.config import settings
from app.core.database import get_db
from app.core.security import PasswordHasher, TokenAuthority
from app.main import app
from app.models import Base, Role, User
from app.services.auth import AuthService
from app.services.blob_store import BlobStore
from app.services.credentials import CredentialStore
from app.services.session_ledger import SessionLedger

API = settings.API_V1_PREFIX
_HASHER = PasswordHasher(time_cost=1, memory_cost=8192, parallelism=1)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.storage = Path(tmp.name)

        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(engine)
        self.db = sessionmaker(bind=engine, autoflush=False)()
        self.addCleanup(engine.dispose)
        self.addCleanup(self.db.close)

        self.auth = AuthService(
            credentials=CredentialStore(self.db),
            sessions=SessionLedger(self.db),
            hasher=_HASHER,
            tokens=TokenAuthority("api-test-secret", ttl_seconds=3600),
        )
        blobs = BlobStore(self.storage)

        def override_get_db():
            yield self.db

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_auth_service] = lambda: self.auth
        app.dependency_overrides[get_blob_store] = lambda: blobs
        self.addCleanup(app.dependency_overrides.clear)

        self.client = TestClient(app)

    def signup(self, email: str, password: str = "s3cret-pass") -> dict:
        response = self.client.post(
            f"{API}/auth/signup", json={"email": email, "password": password}
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def login(self, email: str, password: str = "s3cret-pass") -> str:
        response = self.client.post(
            f"{API}/auth/login", json={"email": email, "password": password}
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["access_token"]


class TestAuthRoutes(ApiTestCase):
    def test_signup_returns_token_and_user(self) -> None:
        body = self.signup("alice@example.com")
        self.assertEqual(body["token_type"], "bearer")
        self.assertEqual(body["user"]["email"], "alice@example.com")
        self.assertEqual(body["user"]["role"], "user")
        self.assertNotIn("password_hash", body["user"])

    def test_duplicate_signup_conflicts(self) -> None:
        self.signup("alice@example.com")
        response = self.client.post(
            f"{API}/auth/signup", json={"email": "alice@example.com", "password": "another-pass"}
        )
        self.assertEqual(response.status_code, 409)

    def test_signup_validates_input(self) -> None:
        for payload in (
            {"email": "alice@example.com", "password": "short"},
            {"email": "not-an-email", "password": "s3cret-pass"},
        ):
            with self.subTest(payload=payload):
                response = self.client.post(f"{API}/auth/signup", json=payload)
                self.assertEqual(response.status_code, 422)

    def test_bad_credentials_share_one_message(self) -> None:
        self.signup("alice@example.com")
        wrong_password = self.client.post(
            f"{API}/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"}
        )
        unknown_user = self.client.post(
            f"{API}/auth/login", json={"email": "nobody@example.com", "password": "s3cret-pass"}
        )
        self.assertEqual(wrong_password.status_code, 401)
        self.assertEqual(unknown_user.status_code, 401)
        self.assertEqual(wrong_password.json(), unknown_user.json())

    def test_me(self) -> None:
        token = self.signup("alice@example.com")["access_token"]
        response = self.client.get(f"{API}/auth/me", headers=bearer(token))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["email"], "alice@example.com")
        self.assertIn("expires_at", response.json())

    def test_missing_and_invalid_tokens(self) -> None:
        missing = self.client.get(f"{API}/auth/me")
        self.assertEqual(missing.status_code, 401)

        invalid = self.client.get(f"{API}/auth/me", headers=bearer("not.a.token"))
        self.assertEqual(invalid.status_code, 401)
        self.assertEqual(invalid.json()["detail"], "Invalid or expired token")

    def test_padded_email_logs_in_with_the_same_body(self) -> None:
        credentials = {"email": "  alice@example.com ", "password": "s3cret-pass"}
        signup = self.client.post(f"{API}/auth/signup", json=credentials)
        self.assertEqual(signup.status_code, 201)
        self.assertEqual(signup.json()["user"]["email"], "alice@example.com")

        login = self.client.post(f"{API}/auth/login", json=credentials)
        self.assertEqual(login.status_code, 200)
        self.assertEqual(login.json()["user"]["id"], signup.json()["user"]["id"])

    def test_signup_issues_token_without_second_login(self) -> None:
        with patch.object(self.auth, "login") as login:
            body = self.signup("alice@example.com")
        login.assert_not_called()
        self.assertEqual(self.auth.validate(body["access_token"]).email, "alice@example.com")
        self.assertEqual(self.auth.sessions.count_for_user(body["user"]["id"]), 1)

    def test_unrecognised_stored_role_is_rejected(self) -> None:
        body = self.signup("alice@example.com")
        user = self.db.get(User, body["user"]["id"])
        user.role = "admin"
        self.db.commit()

        response = self.client.get(f"{API}/files", headers=bearer(body["access_token"]))
        self.assertEqual(response.status_code, 401)
        login = self.client.post(
            f"{API}/auth/login", json={"email": "alice@example.com", "password": "s3cret-pass"}
        )
        self.assertEqual(login.status_code, 403)

    def test_logout_keeps_token_valid_until_expiry(self) -> None:
        token = self.signup("alice@example.com")["access_token"]
        response = self.client.post(f"{API}/auth/logout", headers=bearer(token))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.assertEqual(self.client.get(f"{API}/auth/me", headers=bearer(token)).status_code, 200)


class TestServiceRoutes(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.auth.signup("ops@example.com", "service-pass", Role.SERVICE)
        self.service_token = self.login("ops@example.com", "service-pass")

    def test_user_role_cannot_list_users(self) -> None:
        token = self.signup("alice@example.com")["access_token"]
        response = self.client.get(f"{API}/auth/users", headers=bearer(token))
        self.assertEqual(response.status_code, 403)

    def test_service_lists_users(self) -> None:
        self.signup("alice@example.com")
        response = self.client.get(f"{API}/auth/users", headers=bearer(self.service_token))
        self.assertEqual(response.status_code, 200)
        emails = [u["email"] for u in response.json()["users"]]
        self.assertEqual(emails, ["ops@example.com", "alice@example.com"])

    def test_service_creates_service_account(self) -> None:
        response = self.client.post(
            f"{API}/auth/service",
            json={"email": "bot@example.com", "password": "bot-password"},
            headers=bearer(self.service_token),
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["role"], "service")

    def test_role_change_rejects_old_token(self) -> None:
        body = self.signup("alice@example.com")
        old_token = body["access_token"]

        response = self.client.put(
            f"{API}/auth/users/{body['user']['id']}/role",
            json={"role": "service"},
            headers=bearer(self.service_token),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "service")

        stale = self.client.get(f"{API}/auth/me", headers=bearer(old_token))
        self.assertEqual(stale.status_code, 401)
        self.assertEqual(stale.json()["detail"], "User role has changed, please login again.")

        fresh = self.login("alice@example.com")
        self.assertEqual(
            self.client.get(f"{API}/auth/users", headers=bearer(fresh)).status_code, 200
        )

    def test_role_change_unknown_user(self) -> None:
        response = self.client.put(
            f"{API}/auth/users/9999/role",
            json={"role": "service"},
            headers=bearer(self.service_token),
        )
        self.assertEqual(response.status_code, 404)


class TestFileRoutes(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice = self.signup("alice@example.com")["access_token"]
        self.bob = self.signup("bob@example.com")["access_token"]

    def upload(self, token: str, name: str, data: bytes, content_type: str) -> dict:
        response = self.client.post(
            f"{API}/files/upload",
            files={"file": (name, data, content_type)},
            headers=bearer(token),
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["file"]

    def test_upload_download_delete_flow(self) -> None:
        data = os.urandom(1024)
        uploaded = self.upload(self.alice, "report.pdf", data, "application/pdf")
        self.assertEqual(uploaded["size"], 1024)
        self.assertEqual(uploaded["original_name"], "report.pdf")
        file_id = uploaded["id"]

        listed = self.client.get(f"{API}/files", headers=bearer(self.alice)).json()
        self.assertEqual([f["id"] for f in listed], [file_id])

        stats = self.client.get(f"{API}/files/stats", headers=bearer(self.alice)).json()
        self.assertEqual(stats, {"file_count": 1, "total_size": 1024})

        download = self.client.get(f"{API}/files/{file_id}", headers=bearer(self.alice))
        self.assertEqual(download.status_code, 200)
        self.assertEqual(download.content, data)
        self.assertEqual(download.headers["content-type"], "application/pdf")
        self.assertIn("report.pdf", download.headers["content-disposition"])

        deleted = self.client.delete(f"{API}/files/{file_id}", headers=bearer(self.alice))
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(os.listdir(self.storage), [])
        gone = self.client.get(f"{API}/files/{file_id}", headers=bearer(self.alice))
        self.assertEqual(gone.status_code, 404)

    def test_other_user_is_forbidden(self) -> None:
        file_id = self.upload(self.alice, "secret.txt", b"top secret", "text/plain")["id"]

        self.assertEqual(
            self.client.get(f"{API}/files/{file_id}", headers=bearer(self.bob)).status_code, 403
        )
        self.assertEqual(
            self.client.delete(f"{API}/files/{file_id}", headers=bearer(self.bob)).status_code,
            403,
        )
        self.assertEqual(self.client.get(f"{API}/files", headers=bearer(self.bob)).json(), [])
        self.assertEqual(
            self.client.get(f"{API}/files/{file_id}", headers=bearer(self.alice)).content,
            b"top secret",
        )

    def test_empty_upload(self) -> None:
        uploaded = self.upload(self.alice, "empty.txt", b"", "text/plain")
        self.assertEqual(uploaded["size"], 0)
        download = self.client.get(f"{API}/files/{uploaded['id']}", headers=bearer(self.alice))
        self.assertEqual(download.content, b"")

    def test_files_require_authentication(self) -> None:
        self.assertEqual(self.client.get(f"{API}/files").status_code, 401)
        response = self.client.post(
            f"{API}/files/upload", files={"file": ("a.txt", b"x", "text/plain")}
        )
        self.assertEqual(response.status_code, 401)

    def test_overlong_filename_is_rejected(self) -> None:
        response = self.client.post(
            f"{API}/files/upload",
            files={"file": ("n" * 600 + ".txt", b"data", "text/plain")},
            headers=bearer(self.alice),
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(os.listdir(self.storage), [])

    def test_unknown_file(self) -> None:
        response = self.client.get(f"{API}/files/does-not-exist", headers=bearer(self.alice))
        self.assertEqual(response.status_code, 404)


class TestHealth(ApiTestCase):
    def test_health_reports_database_and_storage(self) -> None:
        response = self.client.get(f"{API}/health/")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")
        self.assertEqual(body["storage"], "writable")


if __name__ == "__main__":
    unittest.main()
