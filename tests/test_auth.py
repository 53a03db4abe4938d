from datetime import datetime, timedelta

from conftest import TEST_PASSWORD, auth_headers
from visit_dzaleka.models import AuditLog, User
from visit_dzaleka.security_utils import create_access_token, verify_password


class TestRegisterAndLogin:
    def test_register_returns_token_for_visitor(self, client, db):
        response = client.post(
            "/api/auth/register",
            json={"email": "  Amina@Example.com ", "password": "karibu123", "firstName": "Amina"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "amina@example.com"
        assert body["user"]["role"] == "visitor"
        assert body["tokenType"] == "bearer"

        me = client.get("/api/auth/user", headers={"Authorization": f"Bearer {body['accessToken']}"})
        assert me.json()["fullName"] == "Amina"
        assert db.query(AuditLog).filter(AuditLog.action == "register").count() == 1

    def test_duplicate_and_invalid_registrations(self, client, visitor):
        user, _ = visitor
        duplicate = client.post("/api/auth/register", json={"email": user.email.upper(), "password": "karibu123"})
        assert duplicate.status_code == 400
        assert client.post("/api/auth/register", json={"email": "nope", "password": "karibu123"}).status_code == 422
        assert client.post("/api/auth/register", json={"email": "a@b.mw", "password": "123"}).status_code == 422

    def test_login(self, client, db, coordinator):
        user, _ = coordinator

        response = client.post("/api/auth/login", json={"email": user.email.upper(), "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "coordinator"
        db.expire_all()
        assert db.get(User, user.id).last_login_at is not None

    def test_login_failures(self, client, make_user):
        user, _ = make_user("guide", is_active=False)
        wrong = client.post("/api/auth/login", json={"email": user.email, "password": "wrong-password"})
        assert wrong.status_code == 401
        unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": TEST_PASSWORD})
        assert unknown.status_code == 401
        inactive = client.post("/api/auth/login", json={"email": user.email, "password": TEST_PASSWORD})
        assert inactive.status_code == 403


class TestTokens:
    def test_missing_and_bad_tokens(self, client):
        assert client.get("/api/auth/user").status_code == 401
        assert client.get("/api/auth/user", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401

    def test_token_for_deleted_user(self, client):
        token = create_access_token(4242, "admin")
        assert client.get("/api/auth/user", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_deactivated_user_is_forbidden(self, client, db, visitor):
        user, headers = visitor
        user.is_active = False
        db.commit()
        assert client.get("/api/auth/user", headers=headers).status_code == 403


class TestProfile:
    def test_update_profile(self, client, visitor):
        _, headers = visitor
        response = client.patch(
            "/api/auth/profile",
            json={"firstName": " Grace ", "phone": "+265 881 000 111", "preferredContactMethod": "whatsapp"},
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["firstName"] == "Grace"
        assert body["preferredContactMethod"] == "whatsapp"

    def test_profile_validation(self, client, visitor):
        _, headers = visitor
        assert client.patch("/api/auth/profile", json={"phone": "12"}, headers=headers).status_code == 422
        assert (
            client.patch("/api/auth/profile", json={"preferredContactMethod": "fax"}, headers=headers).status_code
            == 422
        )

    def test_change_password(self, client, db, visitor):
        user, headers = visitor
        wrong = client.post(
            "/api/auth/change-password",
            json={"currentPassword": "not-it", "newPassword": "NewSecret1"},
            headers=headers,
        )
        assert wrong.status_code == 400

        ok = client.post(
            "/api/auth/change-password",
            json={"currentPassword": TEST_PASSWORD, "newPassword": "NewSecret1"},
            headers=headers,
        )
        assert ok.status_code == 200
        db.expire_all()
        assert verify_password("NewSecret1", db.get(User, user.id).password_hash)


class TestPasswordReset:
    def test_same_message_for_known_and_unknown_accounts(self, client, visitor):
        user, _ = visitor
        known = client.post("/api/auth/forgot-password", json={"email": user.email})
        unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_reset_flow(self, client, db, visitor):
        user, _ = visitor
        client.post("/api/auth/forgot-password", json={"email": user.email})
        db.expire_all()
        token = db.get(User, user.id).password_reset_token
        assert token

        response = client.post("/api/auth/reset-password", json={"token": token, "password": "Fresh-start9"})
        assert response.status_code == 200

        login = client.post("/api/auth/login", json={"email": user.email, "password": "Fresh-start9"})
        assert login.status_code == 200
        # Tokens are single use
        reused = client.post("/api/auth/reset-password", json={"token": token, "password": "Another-one9"})
        assert reused.status_code == 400

    def test_expired_token(self, client, db, visitor):
        user, _ = visitor
        user.password_reset_token = "expired-token"
        user.password_reset_expires = datetime.utcnow() - timedelta(minutes=1)
        db.commit()

        response = client.post("/api/auth/reset-password", json={"token": "expired-token", "password": "Fresh-start9"})
        assert response.status_code == 400


class TestCreateUser:
    def test_admin_creates_staff(self, client, admin):
        _, headers = admin
        response = client.post(
            "/api/auth/create-user",
            json={"email": "guard@example.com", "password": "gate-keeper", "role": "security"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["role"] == "security"
        assert response.json()["emailVerified"] is True

    def test_rules(self, client, admin, coordinator):
        _, admin_headers = admin
        coordinator_user, coordinator_headers = coordinator
        payload = {"email": "new@example.com", "password": "secret99", "role": "guide"}

        assert client.post("/api/auth/create-user", json=payload, headers=coordinator_headers).status_code == 403
        bad_role = {**payload, "role": "superuser"}
        assert client.post("/api/auth/create-user", json=bad_role, headers=admin_headers).status_code == 422
        taken = {**payload, "email": coordinator_user.email}
        assert client.post("/api/auth/create-user", json=taken, headers=admin_headers).status_code == 400


def test_auth_headers_helper_matches_login_token(client, visitor):
    user, _ = visitor
    assert client.get("/api/auth/user", headers=auth_headers(user)).json()["id"] == user.id
