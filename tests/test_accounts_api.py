"""HTTP tests for /api/v1/account: admin CRUD and self-service routes."""

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.security import create_access_token
from app.main import app
from app.models import Account, Base
from app.services.accounts import create_account, update_account, update_accounts

ACCOUNT = "/api/v1/account"


def _session_factory() -> sessionmaker:
    """In-memory SQLite database with the schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _auth(account_id: int, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(sub=account_id, role=role)}"}


def _new_account(n: int, role: str = "user") -> dict:
    return {
        "username": f"user{n}",
        "email": f"user{n}@example.com",
        "password": "password123",
        "role": role,
    }


class AccountApiTestCase(unittest.TestCase):
    """One admin and two users in a fresh database."""

    def setUp(self) -> None:
        self.SessionLocal = _session_factory()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.addCleanup(app.dependency_overrides.clear)

        rounds = patch("app.core.security.BCRYPT_ROUNDS", 4)
        rounds.start()
        self.addCleanup(rounds.stop)

        db = self.SessionLocal()
        try:
            self.admin_id = create_account(db, _new_account(0, role="admin")).id
            self.user1_id = create_account(db, _new_account(1)).id
            self.user2_id = create_account(db, _new_account(2)).id
        finally:
            db.close()

        self.client = TestClient(app)
        self.admin = _auth(self.admin_id, "admin")
        self.user1 = _auth(self.user1_id, "user")

    def _get_row(self, account_id: int) -> Account | None:
        db = self.SessionLocal()
        try:
            return db.get(Account, account_id)
        finally:
            db.close()


class TestAuthorization(AccountApiTestCase):
    def test_missing_token_is_unauthorized(self) -> None:
        resp = self.client.get(f"{ACCOUNT}/me")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["status"], "UNAUTHORIZED")
        self.assertEqual(resp.headers.get("www-authenticate"), "Bearer")

    def test_garbage_token_is_unauthorized(self) -> None:
        resp = self.client.get(f"{ACCOUNT}/me", headers={"Authorization": "Bearer nope"})
        self.assertEqual(resp.status_code, 401)

    def test_non_admin_cannot_list(self) -> None:
        resp = self.client.post(f"{ACCOUNT}/list", json={}, headers=self.user1)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["status"], "UNAUTHORIZED")

    def test_soft_deleted_account_token_is_rejected(self) -> None:
        resp = self.client.put(f"{ACCOUNT}/soft-delete/{self.user1_id}", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        resp = self.client.get(f"{ACCOUNT}/me", headers=self.user1)
        self.assertEqual(resp.status_code, 401)


class TestCreate(AccountApiTestCase):
    def test_create_account(self) -> None:
        resp = self.client.post(f"{ACCOUNT}/create", json=_new_account(3), headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["username"], "user3")
        self.assertEqual(data["added_by"], self.admin_id)
        self.assertNotIn("password", data)

    def test_create_duplicate_username_is_validation_error(self) -> None:
        body = {**_new_account(3), "username": "user1"}
        resp = self.client.post(f"{ACCOUNT}/create", json=body, headers=self.admin)
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["status"], "VALIDATION_ERROR")

    def test_add_bulk(self) -> None:
        body = {"data": [_new_account(3), _new_account(4)]}
        resp = self.client.post(f"{ACCOUNT}/add-bulk", json=body, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"], {"count": 2})

    def test_add_bulk_duplicate_in_batch_rejects_all(self) -> None:
        body = {"data": [_new_account(3), _new_account(3)]}
        resp = self.client.post(f"{ACCOUNT}/add-bulk", json=body, headers=self.admin)
        self.assertEqual(resp.status_code, 422)
        resp = self.client.post(f"{ACCOUNT}/count", json={}, headers=self.admin)
        self.assertEqual(resp.json()["data"], {"count": 3})


class TestRead(AccountApiTestCase):
    def test_list_excludes_caller_and_paginates(self) -> None:
        body = {"options": {"page": 1, "limit": 1, "sort": "-id"}}
        resp = self.client.post(f"{ACCOUNT}/list", json=body, headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual([a["id"] for a in data["data"]], [self.user2_id])
        paginator = data["paginator"]
        self.assertEqual(paginator["item_count"], 2)
        self.assertEqual(paginator["page_count"], 2)
        self.assertTrue(paginator["has_next_page"])
        self.assertFalse(paginator["has_prev_page"])
        self.assertEqual(paginator["next"], 2)
        self.assertIsNone(paginator["prev"])

    def test_list_with_query(self) -> None:
        body = {"query": {"username": "user1"}}
        resp = self.client.post(f"{ACCOUNT}/list", json=body, headers=self.admin)
        self.assertEqual([a["id"] for a in resp.json()["data"]["data"]], [self.user1_id])

    def test_list_unknown_filter_is_validation_error(self) -> None:
        body = {"query": {"password_hash": "x"}}
        resp = self.client.post(f"{ACCOUNT}/list", json=body, headers=self.admin)
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["status"], "VALIDATION_ERROR")

    def test_list_count_only(self) -> None:
        resp = self.client.post(
            f"{ACCOUNT}/list", json={"is_count_only": True}, headers=self.admin
        )
        self.assertEqual(resp.json()["data"], {"total_records": 2})
        resp = self.client.post(
            f"{ACCOUNT}/list",
            json={"is_count_only": True, "query": {"role": "nobody"}},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["status"], "RECORD_NOT_FOUND")

    def test_count_with_where(self) -> None:
        resp = self.client.post(
            f"{ACCOUNT}/count", json={"where": {"role": "user"}}, headers=self.admin
        )
        self.assertEqual(resp.json()["data"], {"count": 2})

    def test_get_account(self) -> None:
        resp = self.client.get(f"{ACCOUNT}/{self.user1_id}", headers=self.admin)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["email"], "user1@example.com")
        resp = self.client.get(f"{ACCOUNT}/9999", headers=self.admin)
        self.assertEqual(resp.status_code, 404)

    def test_me(self) -> None:
        resp = self.client.get(f"{ACCOUNT}/me", headers=self.user1)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["id"], self.user1_id)


class TestUpdate(AccountApiTestCase):
    def test_full_update(self) -> None:
        body = {
            "username": "renamed",
            "email": "Renamed@Example.com",
            "first_name": "Elvera",
            "last_name": None,
            "mobile_no": None,
            "role": "user",
            "is_active": True,
        }
        resp = self.client.put(
            f"{ACCOUNT}/update/{self.user1_id}", json=body, headers=self.admin
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.json()["data"]
        self.assertEqual(data["email"], "renamed@example.com")
        self.assertEqual(data["updated_by"], self.admin_id)

    def test_partial_update(self) -> None:
        resp = self.client.put(
            f"{ACCOUNT}/partial-update/{self.user1_id}",
            json={"first_name": "Sheldon"},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["first_name"], "Sheldon")
        self.assertEqual(resp.json()["data"]["username"], "user1")

    def test_partial_update_to_taken_email_is_validation_error(self) -> None:
        resp = self.client.put(
            f"{ACCOUNT}/partial-update/{self.user1_id}",
            json={"email": "user2@example.com"},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 422)

    def test_admin_cannot_update_self_through_collection_routes(self) -> None:
        resp = self.client.put(
            f"{ACCOUNT}/partial-update/{self.admin_id}",
            json={"role": "user"},
            headers=self.admin,
        )
        self.assertEqual(resp.status_code, 404)

    def test_bulk_update(self) -> None:
        body = {"filter": {"role": "user"}, "data": {"is_active": False}}
        resp = self.client.put(f"{ACCOUNT}/update-bulk", json=body, headers=self.admin)
        self.assertEqual(resp.json()["data"], {"count": 2})
        self.assertFalse(self._get_row(self.user1_id).is_active)
        self.assertTrue(self._get_row(self.admin_id).is_active)

    def test_bulk_update_unique_field_is_validation_error(self) -> None:
        body = {"data": {"username": "same"}}
        resp = self.client.put(f"{ACCOUNT}/update-bulk", json=body, headers=self.admin)
        self.assertEqual(resp.status_code, 422)

    def test_update_profile(self) -> None:
        resp = self.client.put(
            f"{ACCOUNT}/update-profile",
            json={"username": "adelle", "mobile_no": "(450) 259-9838"},
            headers=self.user1,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["username"], "adelle")
        self.assertEqual(resp.json()["data"]["role"], "user")

    def test_change_password(self) -> None:
        resp = self.client.put(
            f"{ACCOUNT}/change-password",
            json={"oldPassword": "wrong-password", "newPassword": "newPassword1"},
            headers=self.user1,
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "FAILURE")

        resp = self.client.put(
            f"{ACCOUNT}/change-password",
            json={"oldPassword": "password123", "newPassword": "newPassword1"},
            headers=self.user1,
        )
        self.assertEqual(resp.json()["status"], "SUCCESS")
        resp = self.client.post(
            "/api/v1/auth/login", json={"username": "user1", "password": "newPassword1"}
        )
        self.assertEqual(resp.status_code, 200)

    def test_null_for_required_column_is_bad_request(self) -> None:
        cases = (
            ("update-bulk", {"data": {"role": None}}, self.admin),
            ("update-bulk", {"data": {"is_active": None}}, self.admin),
            (f"partial-update/{self.user1_id}", {"username": None}, self.admin),
            (f"partial-update/{self.user1_id}", {"email": None}, self.admin),
            ("update-profile", {"username": None}, self.user1),
        )
        for path, body, headers in cases:
            with self.subTest(path=path, body=body):
                resp = self.client.put(f"{ACCOUNT}/{path}", json=body, headers=headers)
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json()["status"], "BAD_REQUEST")
        row = self._get_row(self.user1_id)
        self.assertEqual(row.username, "user1")
        self.assertEqual(row.email, "user1@example.com")
        self.assertEqual(row.role, "user")
        self.assertTrue(row.is_active)

    def test_not_null_violation_is_not_reported_as_conflict(self) -> None:
        db = self.SessionLocal()
        try:
            with self.assertRaises(IntegrityError):
                update_account(db, self.user1_id, {"username": None})
            with self.assertRaises(IntegrityError):
                update_accounts(db, {"role": "user"}, {"role": None})
        finally:
            db.close()
        self.assertEqual(self._get_row(self.user1_id).username, "user1")
        self.assertEqual(self._get_row(self.user2_id).role, "user")


class TestDelete(AccountApiTestCase):
    def test_soft_delete(self) -> None:
        resp = self.client.put(f"{ACCOUNT}/soft-delete/{self.user1_id}", headers=self.admin)
        self.assertEqual(resp.json()["data"], {"count": 1})
        self.assertTrue(self._get_row(self.user1_id).is_deleted)
        resp = self.client.put(f"{ACCOUNT}/soft-delete/{self.user1_id}", headers=self.admin)
        self.assertEqual(resp.status_code, 404)

    def test_soft_delete_many_skips_caller(self) -> None:
        body = {"ids": [self.admin_id, self.user1_id, self.user2_id]}
        resp = self.client.put(f"{ACCOUNT}/soft-delete-many", json=body, headers=self.admin)
        self.assertEqual(resp.json()["data"], {"count": 2})
        self.assertFalse(self._get_row(self.admin_id).is_deleted)

    def test_delete_with_warning_only_counts(self) -> None:
        resp = self.client.delete(
            f"{ACCOUNT}/delete/{self.user1_id}",
            params={"is_warning": "true"},
            headers=self.admin,
        )
        self.assertEqual(resp.json()["data"], {"count": 1})
        self.assertIsNotNone(self._get_row(self.user1_id))

    def test_delete(self) -> None:
        resp = self.client.delete(f"{ACCOUNT}/delete/{self.user1_id}", headers=self.admin)
        self.assertEqual(resp.json()["data"], {"count": 1})
        self.assertIsNone(self._get_row(self.user1_id))
        resp = self.client.delete(f"{ACCOUNT}/delete/{self.user1_id}", headers=self.admin)
        self.assertEqual(resp.status_code, 404)

    def test_delete_many(self) -> None:
        body = {"ids": [self.user1_id, self.user2_id, 9999]}
        resp = self.client.post(f"{ACCOUNT}/delete-many", json=body, headers=self.admin)
        self.assertEqual(resp.json()["data"], {"count": 2})

    def test_delete_many_requires_ids(self) -> None:
        resp = self.client.post(f"{ACCOUNT}/delete-many", json={}, headers=self.admin)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["status"], "BAD_REQUEST")


if __name__ == "__main__":
    unittest.main()
