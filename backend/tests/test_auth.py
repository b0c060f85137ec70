"""
Authentication and authorization tests.

Verifies:
- Login issues a bearer token; only its hash is stored
- Logout, idle timeout and deactivation revoke access
- Role grants: cashier sells, manager cancels and reports, admin bypasses
"""

from datetime import timedelta

import pytest

from posledger.models import SessionToken
from posledger.services import permission_service, session_service
from posledger.services.auth_service import (
    PasswordValidationError,
    UserError,
    authenticate,
    create_user,
    hash_password,
    verify_password,
)


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("Password123!", rounds=4)
        assert hashed != "Password123!"
        assert verify_password("Password123!", hashed)
        assert not verify_password("Password123?", hashed)

    @pytest.mark.parametrize("password", ["Short1!", "password123!", "PASSWORD123!", "Password!!!", "Password123"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            hash_password(password, rounds=4)

    def test_malformed_hash(self):
        assert not verify_password("Password123!", "not-a-bcrypt-hash")


class TestUsers:

    def test_duplicate_username(self, cashier):
        with pytest.raises(UserError):
            create_user(username="cashier", name="Again", password="Password123!", rounds=4)

    def test_unknown_role(self, setup_roles):
        with pytest.raises(UserError):
            create_user(username="x", name="X", password="Password123!", role_name="owner", rounds=4)

    def test_authenticate(self, cashier):
        assert authenticate("cashier", "Password123!").id == cashier.id
        assert authenticate("cashier", "wrong") is None
        assert authenticate("nobody", "Password123!") is None

    def test_inactive_user_cannot_authenticate(self, db_session, cashier):
        cashier.is_active = False
        db_session.commit()
        assert authenticate("cashier", "Password123!") is None


class TestSessions:

    def test_only_hash_is_stored(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        assert session.token_hash == session_service.hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0

    def test_validate_and_revoke(self, cashier):
        _, token = session_service.create_session(cashier.id)
        assert session_service.validate_session(token).id == cashier.id

        assert session_service.revoke_session(token)
        assert session_service.validate_session(token) is None
        assert not session_service.revoke_session(token)

    def test_idle_timeout(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        session.last_used_at = session.last_used_at - timedelta(hours=3)
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.refresh(session)
        assert session.is_revoked
        assert session.revoked_reason == "Idle timeout"

    def test_absolute_timeout(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        session.expires_at = session.created_at - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_cleanup(self, cashier):
        _, token = session_service.create_session(cashier.id)
        session_service.create_session(cashier.id)
        session_service.revoke_session(token)
        assert session_service.cleanup_expired_sessions() == 1


class TestPermissions:

    def test_cashier(self, cashier):
        perms = permission_service.get_user_permissions(cashier.id)
        assert perms == {"CREATE_TRANSACTION", "VIEW_TRANSACTIONS"}

    def test_manager(self, manager):
        assert permission_service.user_has_permission(manager.id, "CANCEL_TRANSACTION")
        assert permission_service.user_has_permission(manager.id, "VIEW_REPORTS")

    def test_admin_bypasses(self, admin):
        assert permission_service.user_has_permission(admin.id, "MANAGE_INVENTORY")
        assert "VIEW_REPORTS" in permission_service.get_user_permissions(admin.id)

    def test_require_permission(self, cashier):
        with pytest.raises(permission_service.PermissionDeniedError):
            permission_service.require_permission(cashier.id, "CANCEL_TRANSACTION")

    def test_seeding_is_idempotent(self, setup_roles):
        assert permission_service.initialize_permissions() == 0
        assert permission_service.create_default_roles() == 0


class TestAuthRoutes:

    def test_login(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "cashier", "password": "Password123!"})
        assert resp.status_code == 200
        assert resp.json["token"]
        assert resp.json["user"]["username"] == "cashier"
        assert "CREATE_TRANSACTION" in resp.json["permissions"]

    def test_login_wrong_password(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "cashier", "password": "nope"})
        assert resp.status_code == 401

    def test_login_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "cashier"})
        assert resp.status_code == 400

    def test_logout_revokes_token(self, client, cashier):
        token = client.post(
            "/api/auth/login", json={"username": "cashier", "password": "Password123!"}
        ).json["token"]
        headers = {"Authorization": f"Bearer {token}"}

        assert client.get("/api/auth/me", headers=headers).status_code == 200
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/transactions"),
            ("POST", "/api/transactions/pending"),
            ("GET", "/api/transactions/1"),
            ("POST", "/api/transactions/1/cancel"),
            ("POST", "/api/payment/create"),
            ("GET", "/api/payment/status/INV-20250601-0001"),
            ("GET", "/api/reports/summary"),
            ("POST", "/api/inventory/1/adjust"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
