"""
tests/test_auth_routes.py -- Integration tests for signup, login, logout and the auth guard.

These tests exercise the full stack: FastAPI routing -> schema validation ->
auth helpers -> UserStore -> error envelope. Running through ASGI catches
regressions where the cookie name, cookie attributes, or a message changes.

Coverage:
  - Signup: ordered validation messages, generic duplicate message, 201 success
  - Login: identical 401 for unknown email and wrong password, cookie attributes
  - Logout: cookie cleared with matching attributes, token still decodes afterwards
  - Guard: missing cookie, bad token, deleted user
  - Schema: unknown and mistyped fields rejected with 400
  - Rate limit: login and signup answer 429 once the per-address limit is spent
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from conftest import PASSWORD, delete_user_row


def _set_cookie_headers(resp) -> list[str]:
    return resp.headers.get_list("set-cookie")


class TestSignup:
    def test_success(self, api_client: TestClient, prefix: str) -> None:
        resp = api_client.post(
            f"{prefix}/signup", json={"username": "al", "email": "a@b.com", "password": PASSWORD}
        )
        assert resp.status_code == 201
        assert resp.json() == {"message": "User registered successfully", "success": True}
        assert not _set_cookie_headers(resp), "signup must not start a session"

    @pytest.mark.parametrize("missing", ["username", "email", "password"])
    def test_missing_field(self, api_client: TestClient, prefix: str, missing: str) -> None:
        body = {"username": "al", "email": "a@b.com", "password": PASSWORD}
        del body[missing]
        resp = api_client.post(f"{prefix}/signup", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Username, email, and password are required."

    def test_empty_field(self, api_client: TestClient, prefix: str) -> None:
        resp = api_client.post(f"{prefix}/signup", json={"username": "", "email": "a@b.com", "password": PASSWORD})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Username, email, and password are required."

    def test_bad_email(self, api_client: TestClient, prefix: str) -> None:
        resp = api_client.post(f"{prefix}/signup", json={"username": "al", "email": "a@b", "password": PASSWORD})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Please enter a valid email address."

    @pytest.mark.parametrize(
        ("password", "message"),
        [
            ("abcdef1!", "Password must contain at least one uppercase letter."),
            ("ABCDEF1!", "Password must contain at least one lowercase letter."),
            ("Abcdefg!", "Password must contain at least one number."),
            ("Abcdefg1", "Password must contain at least one special symbol."),
            ("Abc def1!", "Password cannot contain spaces or dots."),
            ("Ab1!", "Password must be at least 8 characters long."),
        ],
    )
    def test_weak_password(self, api_client: TestClient, prefix: str, password: str, message: str) -> None:
        resp = api_client.post(f"{prefix}/signup", json={"username": "al", "email": "a@b.com", "password": password})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == message

    def test_duplicate_email_is_generic(self, api_client: TestClient, prefix: str, register, stores) -> None:
        register()
        resp = api_client.post(
            f"{prefix}/signup", json={"username": "someone else", "email": "a@b.com", "password": "Zyxwvu9#"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Registration Failed"
        user_store, _ = stores
        assert user_store.get_by_email("a@b.com").username == "al"

    def test_password_is_stored_hashed(self, register, stores) -> None:
        register()
        user_store, _ = stores
        stored = user_store.get_by_email("a@b.com").hashed_password
        assert stored != PASSWORD
        assert stored.startswith("$2b$10$")

    def test_unknown_field_rejected(self, api_client: TestClient, prefix: str) -> None:
        body = {"username": "al", "email": "a@b.com", "password": PASSWORD, "isAdmin": True}
        resp = api_client.post(f"{prefix}/signup", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_mistyped_field_rejected(self, api_client: TestClient, prefix: str) -> None:
        resp = api_client.post(f"{prefix}/signup", json={"username": 12, "email": "a@b.com", "password": PASSWORD})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"


    def test_multibyte_password_over_bcrypt_limit(self, api_client: TestClient, prefix: str) -> None:
        # 44 characters, 84 bytes in UTF-8.
        password = "Aa1!" + "é" * 40
        resp = api_client.post(f"{prefix}/signup", json={"username": "al", "email": "a@b.com", "password": password})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Password must be at most 72 bytes long."

    def test_schema_rejection_does_not_echo_password(self, api_client: TestClient, prefix: str) -> None:
        password = "Aa1!" + "b" * 66
        resp = api_client.post(f"{prefix}/signup", json={"username": "al", "email": "a@b.com", "password": password})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"
        assert password not in resp.text


class TestLogin:
    def test_success_sets_session_cookie(self, api_client: TestClient, prefix: str, cookie_name: str, register) -> None:
        register()
        resp = api_client.post(f"{prefix}/login", json={"email": "a@b.com", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Login successful", "success": True}
        assert resp.headers["cache-control"] == "no-store"
        cookie = next(h for h in _set_cookie_headers(resp) if h.startswith(f"{cookie_name}="))
        lowered = cookie.lower()
        assert "httponly" in lowered
        assert "samesite=strict" in lowered
        assert "max-age=86400" in lowered

    def test_wrong_password_and_unknown_email_look_identical(
        self, api_client: TestClient, prefix: str, register
    ) -> None:
        register()
        wrong_pw = api_client.post(f"{prefix}/login", json={"email": "a@b.com", "password": "Wrong1!!x"})
        no_user = api_client.post(f"{prefix}/login", json={"email": "ghost@b.com", "password": PASSWORD})
        assert wrong_pw.status_code == no_user.status_code == 401
        assert wrong_pw.json() == no_user.json()
        assert wrong_pw.json() == {
            "error": {"code": "invalid_credentials", "message": "Invalid credentials", "detail": None}
        }
        assert not _set_cookie_headers(wrong_pw)

    def test_missing_fields(self, api_client: TestClient, prefix: str) -> None:
        resp = api_client.post(f"{prefix}/login", json={"email": "a@b.com"})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Email and password are required."

    def test_bad_email_format(self, api_client: TestClient, prefix: str) -> None:
        resp = api_client.post(f"{prefix}/login", json={"email": "nope", "password": PASSWORD})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Please enter a valid email address."


    def test_password_over_bcrypt_limit_is_plain_401(self, api_client: TestClient, prefix: str, register) -> None:
        register()
        resp = api_client.post(f"{prefix}/login", json={"email": "a@b.com", "password": PASSWORD + "é" * 40})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_credentials"


class TestLogout:
    def test_clears_cookie(self, api_client: TestClient, prefix: str, cookie_name: str) -> None:
        resp = api_client.post(f"{prefix}/logout")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Logged out successfully"}
        cookie = next(h for h in _set_cookie_headers(resp) if h.startswith(f"{cookie_name}="))
        lowered = cookie.lower()
        assert "max-age=0" in lowered
        assert "httponly" in lowered
        assert "samesite=strict" in lowered

    def test_token_survives_logout(self, api_client: TestClient, prefix: str, register, login, use_token) -> None:
        """Logout only clears the browser cookie; a copied token keeps working until it expires."""
        register()
        token = login()
        api_client.post(f"{prefix}/logout")
        use_token(token)
        assert api_client.get(f"{prefix}/profile").status_code == 200


class TestAuthGuard:
    def test_missing_cookie(self, api_client: TestClient, prefix: str) -> None:
        resp = api_client.get(f"{prefix}/profile")
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Not Authorized! Login Again."

    def test_garbage_token(self, api_client: TestClient, prefix: str, use_token) -> None:
        use_token("not-a-jwt")
        resp = api_client.get(f"{prefix}/profile")
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid token"

    def test_deleted_user(self, api_client: TestClient, prefix: str, register, login, stores) -> None:
        register()
        login()
        user_store, _ = stores
        delete_user_row(user_store, user_store.get_by_email("a@b.com").id)
        resp = api_client.get(f"{prefix}/profile")
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid credentials."


class TestRateLimit:
    @pytest.fixture
    def tight_limit(self, monkeypatch):
        monkeypatch.setattr("api.routes.auth.get_settings", lambda: SimpleNamespace(login_rate_limit="2/minute"))
        limiter.reset()
        yield
        limiter.reset()

    def test_login_limited_per_address(self, api_client: TestClient, prefix: str, tight_limit) -> None:
        body = {"email": "ghost@b.com", "password": PASSWORD}
        statuses = [api_client.post(f"{prefix}/login", json=body).status_code for _ in range(3)]
        assert statuses == [401, 401, 429]

        resp = api_client.post(f"{prefix}/login", json=body)
        assert resp.status_code == 429
        assert resp.json()["error"]["code"] == "rate_limited"
        assert "retry-after" in resp.headers

    def test_signup_limited_per_address(self, api_client: TestClient, prefix: str, tight_limit, stores) -> None:
        for n in range(2):
            resp = api_client.post(
                f"{prefix}/signup", json={"username": f"u{n}", "email": f"u{n}@b.com", "password": PASSWORD}
            )
            assert resp.status_code == 201

        resp = api_client.post(f"{prefix}/signup", json={"username": "u2", "email": "u2@b.com", "password": PASSWORD})
        assert resp.status_code == 429
        user_store, _ = stores
        assert user_store.get_by_email("u2@b.com") is None
