from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pilates_studio.api_main import create_app
from pilates_studio.config import Settings
from pilates_studio.db import db_session, init_db
from pilates_studio.seed import ensure_admin


ADMIN_EMAIL = "admin@pilatesstudio.com"
ADMIN_PASSWORD = "Admin123!"
STUDENT_PASSWORD = "Alumna123!"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="testing",
        jwt_secret="tests-secret-key",
        bcrypt_rounds=4,
        seed_on_startup=False,
        admin_email=None,
        admin_password=None,
        log_level="WARNING",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def session_factory(app):
    return app.state.session_factory


def login(client: TestClient, email: str, password: str) -> dict[str, str]:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def register_student(client: TestClient, email: str, first_name: str = "Ana", last_name: str = "Diaz") -> dict:
    response = client.post(
        "/api/auth/register",
        json={
            "email": email,
            "password": STUDENT_PASSWORD,
            "confirm_password": STUDENT_PASSWORD,
            "first_name": first_name,
            "last_name": last_name,
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    headers = {"Authorization": f"Bearer {body['access_token']}"}
    profile = client.get("/api/students/me", headers=headers)
    assert profile.status_code == 200, profile.text
    return {"headers": headers, "student_id": profile.json()["id"], "auth": body}


def next_week() -> str:
    return (date.today() + timedelta(days=7)).isoformat()


@pytest.fixture
def admin_headers(client, session_factory, settings) -> dict[str, str]:
    with db_session(session_factory) as s:
        ensure_admin(s, ADMIN_EMAIL, ADMIN_PASSWORD, settings)
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def student(client) -> dict:
    return register_student(client, "ana.diaz@pilatesstudio.com")


@pytest.fixture
def studio(client, admin_headers) -> dict:
    """One zone, one instructor and one class next week (capacity 2)."""
    zone = client.post(
        "/api/zones",
        json={"name": "Sala Reformer", "capacity": 10, "equipment_available": "Reformer"},
        headers=admin_headers,
    )
    assert zone.status_code == 201, zone.text

    instructor = client.post(
        "/api/instructors",
        json={
            "first_name": "Laura",
            "last_name": "Mendez",
            "email": "laura.mendez@pilatesstudio.com",
            "password": "Instructora1!",
            "specializations": "Reformer",
        },
        headers=admin_headers,
    )
    assert instructor.status_code == 201, instructor.text

    cls = client.post(
        "/api/classes",
        json={
            "instructor_id": instructor.json()["id"],
            "zone_id": zone.json()["id"],
            "class_date": next_week(),
            "start_time": "10:00:00",
            "end_time": "11:00:00",
            "capacity_limit": 2,
            "class_type": "Reformer Básico",
        },
        headers=admin_headers,
    )
    assert cls.status_code == 201, cls.text

    return {
        "zone_id": zone.json()["id"],
        "instructor_id": instructor.json()["id"],
        "class_id": cls.json()["id"],
    }
