"""
Tests del módulo de autenticación: login, registro y permisos por rol.
"""
from datetime import timedelta

from fastapi.testclient import TestClient

from app.main import app
from app.modules.auth.models import User
from app.modules.auth.utils import create_access_token, hash_password, verify_password

TEST_PASSWORD = "clave-segura-123"


client = TestClient(app)


def test_password_hashing():
    hashed = hash_password("otra-clave-123")
    assert hashed != "otra-clave-123"
    assert verify_password("otra-clave-123", hashed)
    assert not verify_password("incorrecta", hashed)
    assert not verify_password("otra-clave-123", "")


def test_login_returns_token(admin_user):
    response = client.post("/auth/login", json={"username": "admin", "password": TEST_PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]
    assert body["user"]["username"] == "admin"
    assert body["user"]["role"] == "Admin"
    assert body["user"]["last_login"] is not None


def test_login_is_case_insensitive_on_username(admin_user):
    response = client.post("/auth/login", json={"username": "  ADMIN ", "password": TEST_PASSWORD})
    assert response.status_code == 200


def test_login_wrong_password(admin_user):
    response = client.post("/auth/login", json={"username": "admin", "password": "incorrecta"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Credenciales incorrectas"


def test_login_unknown_user():
    response = client.post("/auth/login", json={"username": "nadie", "password": TEST_PASSWORD})
    assert response.status_code == 401


def test_login_inactive_user(db_session, seller_user):
    seller_user.is_active = False
    db_session.commit()

    response = client.post("/auth/login", json={"username": "vendedor", "password": TEST_PASSWORD})
    assert response.status_code == 403
    assert response.json()["detail"] == "Cuenta inactiva"


def test_profile_with_token(seller_headers):
    response = client.get("/auth/perfil", headers=seller_headers)

    assert response.status_code == 200
    assert response.json()["username"] == "vendedor"
    assert response.json()["full_name"] == "Vendedor Pruebas"


def test_profile_without_token():
    response = client.get("/auth/perfil")
    assert response.status_code in (401, 403)


def test_profile_with_invalid_token():
    response = client.get("/auth/perfil", headers={"Authorization": "Bearer token-invalido"})
    assert response.status_code == 401


def test_profile_with_expired_token(admin_user):
    token = create_access_token({"sub": str(admin_user.id)}, expires_delta=timedelta(minutes=-5))
    response = client.get("/auth/perfil", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_admin_registers_user(db_session, admin_headers):
    response = client.post("/auth/registro", headers=admin_headers, json={
        "username": "Nuevo.Vendedor",
        "password": "clave-nueva-123",
        "first_name": "Nuevo",
        "last_name": "Vendedor",
        "email": "nuevo@empresa.com.co",
        "role": "Vendedor"
    })

    assert response.status_code == 201
    assert response.json()["username"] == "nuevo.vendedor"

    user = db_session.query(User).filter(User.username == "nuevo.vendedor").first()
    assert user is not None
    assert verify_password("clave-nueva-123", user.password)


def test_register_duplicate_username(admin_headers):
    payload = {
        "username": "admin",
        "password": "clave-nueva-123",
        "first_name": "Otro",
        "last_name": "Admin",
    }
    response = client.post("/auth/registro", headers=admin_headers, json=payload)
    assert response.status_code == 400


def test_register_requires_admin(seller_headers):
    response = client.post("/auth/registro", headers=seller_headers, json={
        "username": "intruso",
        "password": "clave-nueva-123",
        "first_name": "Intruso",
        "last_name": "Pruebas",
    })
    assert response.status_code == 403


def test_register_rejects_short_password(admin_headers):
    response = client.post("/auth/registro", headers=admin_headers, json={
        "username": "corto",
        "password": "123",
        "first_name": "Corto",
        "last_name": "Pruebas",
    })
    assert response.status_code == 422
