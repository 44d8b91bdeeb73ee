from datetime import timedelta

from conftest import ADMIN_EMAIL, STUDENT_PASSWORD, login, register_student
from pilates_studio.db import db_session, utcnow


def test_register_returns_tokens_and_profile(client):
    result = register_student(client, "ana@pilatesstudio.com")
    auth = result["auth"]

    assert auth["token_type"] == "bearer"
    assert auth["access_token"]
    assert auth["refresh_token"]
    assert auth["user"]["role"] == "student"
    assert auth["user"]["full_name"] == "Ana Diaz"
    assert auth["user"]["email"] == "ana@pilatesstudio.com"


def test_register_validation_errors_are_localized(client):
    response = client.post(
        "/api/auth/register",
        json={
            "email": "ana@pilatesstudio.com",
            "password": "Alumna123!",
            "confirm_password": "Distinta123!",
            "first_name": "Ana",
            "last_name": "Diaz",
        },
    )
    assert response.status_code == 400
    body = response.json()
    assert body["status_code"] == 400
    assert body["message"] == "Se produjeron uno o más errores de validación"
    assert body["errors"] == {"confirm_password": ["Las contraseñas no coinciden"]}
    assert "timestamp" in body


def test_register_duplicate_email(client):
    register_student(client, "ana@pilatesstudio.com")
    response = client.post(
        "/api/auth/register",
        json={
            "email": "ANA@pilatesstudio.com",
            "password": STUDENT_PASSWORD,
            "confirm_password": STUDENT_PASSWORD,
            "first_name": "Ana",
            "last_name": "Otra",
        },
    )
    assert response.status_code == 400
    assert response.json()["details"] == "El email ya está registrado"


def test_anonymous_cannot_register_staff(client):
    response = client.post(
        "/api/auth/register",
        json={
            "email": "staff@pilatesstudio.com",
            "password": "Staff123!",
            "confirm_password": "Staff123!",
            "first_name": "Pedro",
            "last_name": "Lopez",
            "role": "instructor",
        },
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Acceso denegado"


def test_admin_can_register_instructor(client, admin_headers):
    response = client.post(
        "/api/auth/register",
        json={
            "email": "staff@pilatesstudio.com",
            "password": "Staff123!",
            "confirm_password": "Staff123!",
            "first_name": "Pedro",
            "last_name": "Lopez",
            "role": "instructor",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    assert response.json()["user"]["role"] == "instructor"

    instructors = client.get("/api/instructors", headers=admin_headers).json()
    assert [i["full_name"] for i in instructors] == ["Pedro Lopez"]


def test_login_with_wrong_password(client):
    register_student(client, "ana@pilatesstudio.com")
    response = client.post("/api/auth/login", json={"email": "ana@pilatesstudio.com", "password": "Nope123!"})
    assert response.status_code == 401
    assert response.json()["details"] == "Credenciales inválidas"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_account_locks_after_repeated_failures(client):
    register_student(client, "ana@pilatesstudio.com")
    for _ in range(5):
        response = client.post("/api/auth/login", json={"email": "ana@pilatesstudio.com", "password": "Nope123!"})
        assert response.status_code == 401

    # even the right password is refused while locked
    response = client.post("/api/auth/login", json={"email": "ana@pilatesstudio.com", "password": STUDENT_PASSWORD})
    assert response.status_code == 401
    assert response.json()["details"].startswith("Cuenta bloqueada temporalmente")


def test_refresh_rotates_the_token(client):
    auth = register_student(client, "ana@pilatesstudio.com")["auth"]
    old = auth["refresh_token"]

    response = client.post("/api/auth/refresh", json={"refresh_token": old})
    assert response.status_code == 200
    new = response.json()["refresh_token"]
    assert new != old

    reused = client.post("/api/auth/refresh", json={"refresh_token": old})
    assert reused.status_code == 401


def test_logout_revokes_refresh_token(client):
    result = register_student(client, "ana@pilatesstudio.com")
    response = client.post("/api/auth/logout", headers=result["headers"])
    assert response.status_code == 204

    response = client.post("/api/auth/refresh", json={"refresh_token": result["auth"]["refresh_token"]})
    assert response.status_code == 401


def test_change_password(client):
    result = register_student(client, "ana@pilatesstudio.com")
    response = client.post(
        "/api/auth/change-password",
        json={
            "current_password": STUDENT_PASSWORD,
            "new_password": "Nueva123!",
            "confirm_new_password": "Nueva123!",
        },
        headers=result["headers"],
    )
    assert response.status_code == 204
    login(client, "ana@pilatesstudio.com", "Nueva123!")


def test_token_endpoint_accepts_form_login(client, admin_headers):
    response = client.post("/api/auth/token", data={"username": ADMIN_EMAIL, "password": "Admin123!"})
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"


def test_me_requires_authentication(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "No autorizado"


def test_garbage_token_is_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_role_ladder(client, admin_headers, student):
    assert client.get("/api/users", headers=student["headers"]).status_code == 403
    assert client.get("/api/students", headers=student["headers"]).status_code == 403
    assert client.get("/api/zones", headers=student["headers"]).status_code == 200

    users = client.get("/api/users", headers=admin_headers)
    assert users.status_code == 200
    assert {u["role"] for u in users.json()} == {"admin", "student"}


def test_student_cannot_read_another_student(client, student):
    other = register_student(client, "berta@pilatesstudio.com", "Berta", "Ruiz")
    response = client.get(f"/api/students/{other['student_id']}", headers=student["headers"])
    assert response.status_code == 403

    own = client.get(f"/api/students/{student['student_id']}", headers=student["headers"])
    assert own.status_code == 200
    assert own.json()["full_name"] == "Ana Diaz"


def test_deactivated_user_cannot_login(client, admin_headers, student):
    me = client.get("/api/auth/me", headers=student["headers"]).json()
    response = client.delete(f"/api/users/{me['id']}", headers=admin_headers)
    assert response.status_code == 204

    response = client.post("/api/auth/login", json={"email": "ana.diaz@pilatesstudio.com", "password": STUDENT_PASSWORD})
    assert response.status_code == 401


def _auth_service(app, session):
    return app.state.registry.scope(session, app.state.cache, app.state.settings).resolve("AuthService")


def test_email_verification(app, client, session_factory):
    result = register_student(client, "ana@pilatesstudio.com")
    assert result["auth"]["user"]["email_verified"] is False

    with db_session(session_factory) as s:
        auth = _auth_service(app, s)
        token = auth.issue_email_verification(auth.get_user_by_email("ana@pilatesstudio.com"))

    assert client.post("/api/auth/verify-email", params={"token": "wrong"}).status_code == 400
    response = client.post("/api/auth/verify-email", params={"token": token})
    assert response.status_code == 200
    assert response.json()["message"] == "Email verificado exitosamente"

    me = client.get("/api/auth/me", headers=result["headers"]).json()
    assert me["email_verified"] is True
    # single use
    assert client.post("/api/auth/verify-email", params={"token": token}).status_code == 400


def test_forgot_password_does_not_reveal_accounts(client):
    response = client.post("/api/auth/forgot-password", json={"email": "nadie@pilatesstudio.com"})
    assert response.status_code == 202


def test_password_reset_flow(app, client, session_factory):
    register_student(client, "ana@pilatesstudio.com")
    assert client.post("/api/auth/forgot-password", json={"email": "ana@pilatesstudio.com"}).status_code == 202

    with db_session(session_factory) as s:
        token = _auth_service(app, s).forgot_password("ana@pilatesstudio.com")

    mismatch = client.post(
        "/api/auth/reset-password",
        json={"token": token, "password": "Nueva123!", "confirm_password": "Otra123!"},
    )
    assert mismatch.status_code == 400
    assert mismatch.json()["errors"] == {"confirm_password": ["Las contraseñas no coinciden"]}

    reset = client.post(
        "/api/auth/reset-password",
        json={"token": token, "password": "Nueva123!", "confirm_password": "Nueva123!"},
    )
    assert reset.status_code == 200, reset.text

    login(client, "ana@pilatesstudio.com", "Nueva123!")
    old = client.post("/api/auth/login", json={"email": "ana@pilatesstudio.com", "password": STUDENT_PASSWORD})
    assert old.status_code == 401

    reused = client.post(
        "/api/auth/reset-password",
        json={"token": token, "password": "Otra123!", "confirm_password": "Otra123!"},
    )
    assert reused.status_code == 400
    assert reused.json()["details"] == "Token inválido o expirado"


def test_expired_reset_token_is_rejected(app, client, session_factory):
    register_student(client, "ana@pilatesstudio.com")
    with db_session(session_factory) as s:
        auth = _auth_service(app, s)
        token = auth.forgot_password("ana@pilatesstudio.com")
        auth.get_user_by_email("ana@pilatesstudio.com").password_reset_expires_at = utcnow() - timedelta(minutes=1)

    response = client.post(
        "/api/auth/reset-password",
        json={"token": token, "password": "Nueva123!", "confirm_password": "Nueva123!"},
    )
    assert response.status_code == 400
