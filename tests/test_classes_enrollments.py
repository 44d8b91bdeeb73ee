from datetime import timedelta

from conftest import next_week, register_student
from pilates_studio.db import db_session, utcnow
from pilates_studio.models import Class


def _enroll(client, headers, class_id, student_id):
    return client.post("/api/enrollments", json={"class_id": class_id, "student_id": student_id}, headers=headers)


def _buy_package(client, admin_headers, student, class_count=4):
    package = client.post(
        "/api/packages",
        json={"name": f"Paquete {class_count} clases", "price": 200, "class_count": class_count, "validity_days": 30},
        headers=admin_headers,
    )
    assert package.status_code == 201, package.text
    purchase = client.post(
        "/api/purchases",
        json={"student_id": student["student_id"], "package_id": package.json()["id"], "amount": 200},
        headers=student["headers"],
    )
    assert purchase.status_code == 201, purchase.text
    return purchase.json()


def test_class_read_reports_names_and_spots(client, studio, student):
    response = client.get(f"/api/classes/{studio['class_id']}", headers=student["headers"])
    assert response.status_code == 200
    body = response.json()
    assert body["instructor_name"] == "Laura Mendez"
    assert body["zone_name"] == "Sala Reformer"
    assert body["reserved_spots"] == 0
    assert body["available_spots"] == 2
    assert body["status"] == "scheduled"


def test_class_capacity_cannot_exceed_zone(client, admin_headers, studio):
    response = client.post(
        "/api/classes",
        json={
            "instructor_id": studio["instructor_id"],
            "zone_id": studio["zone_id"],
            "class_date": next_week(),
            "start_time": "15:00:00",
            "end_time": "16:00:00",
            "capacity_limit": 11,
        },
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert "excede la capacidad de la zona" in response.json()["details"]


def test_overlapping_class_is_rejected(client, admin_headers, studio):
    response = client.post(
        "/api/classes",
        json={
            "instructor_id": studio["instructor_id"],
            "zone_id": studio["zone_id"],
            "class_date": next_week(),
            "start_time": "10:30:00",
            "end_time": "11:30:00",
            "capacity_limit": 5,
        },
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["details"] == "El instructor o la zona ya tienen una clase en ese horario"


def test_back_to_back_classes_do_not_overlap(client, admin_headers, studio):
    response = client.post(
        "/api/classes",
        json={
            "instructor_id": studio["instructor_id"],
            "zone_id": studio["zone_id"],
            "class_date": next_week(),
            "start_time": "11:00:00",
            "end_time": "12:00:00",
            "capacity_limit": 5,
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text


def test_students_cannot_schedule_classes(client, studio, student):
    response = client.post(
        "/api/classes",
        json={
            "instructor_id": studio["instructor_id"],
            "zone_id": studio["zone_id"],
            "class_date": next_week(),
            "start_time": "18:00:00",
            "end_time": "19:00:00",
            "capacity_limit": 5,
        },
        headers=student["headers"],
    )
    assert response.status_code == 403


def test_enrollment_fills_class(client, studio, student):
    other = register_student(client, "berta@pilatesstudio.com", "Berta", "Ruiz")
    third = register_student(client, "carla@pilatesstudio.com", "Carla", "Soto")

    assert _enroll(client, student["headers"], studio["class_id"], student["student_id"]).status_code == 201
    assert _enroll(client, other["headers"], studio["class_id"], other["student_id"]).status_code == 201

    response = _enroll(client, third["headers"], studio["class_id"], third["student_id"])
    assert response.status_code == 400
    assert response.json()["details"] == "No hay cupos disponibles en esta clase"

    cls = client.get(f"/api/classes/{studio['class_id']}", headers=student["headers"]).json()
    assert cls["available_spots"] == 0

    available = client.get("/api/classes", params={"only_available": True}, headers=student["headers"]).json()
    assert studio["class_id"] not in [c["id"] for c in available]


def test_double_enrollment_is_rejected(client, studio, student):
    assert _enroll(client, student["headers"], studio["class_id"], student["student_id"]).status_code == 201
    response = _enroll(client, student["headers"], studio["class_id"], student["student_id"])
    assert response.status_code == 400
    assert response.json()["details"] == "El estudiante ya está inscrito en esta clase"


def test_student_cannot_enroll_someone_else(client, studio, student):
    other = register_student(client, "berta@pilatesstudio.com", "Berta", "Ruiz")
    response = _enroll(client, student["headers"], studio["class_id"], other["student_id"])
    assert response.status_code == 403


def test_enrollment_consumes_and_cancellation_restores_package_class(client, admin_headers, studio, student):
    purchase = _buy_package(client, admin_headers, student)
    assert purchase["remaining_classes"] == 4
    assert purchase["status"] == "active"

    enrollment = _enroll(client, student["headers"], studio["class_id"], student["student_id"])
    assert enrollment.status_code == 201
    body = enrollment.json()
    assert body["purchase_id"] == purchase["id"]
    assert body["student_name"] == "Ana Diaz"
    assert body["class_name"] == "Reformer Básico"

    current = client.get(f"/api/purchases/{purchase['id']}", headers=student["headers"]).json()
    assert current["remaining_classes"] == 3

    cancelled = client.post(
        f"/api/enrollments/{body['id']}/cancel",
        json={"reason": "Viaje"},
        headers=student["headers"],
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancellation_reason"] == "Viaje"

    current = client.get(f"/api/purchases/{purchase['id']}", headers=student["headers"]).json()
    assert current["remaining_classes"] == 4


def test_cancelled_enrollment_can_be_reopened(client, studio, student):
    first = _enroll(client, student["headers"], studio["class_id"], student["student_id"]).json()
    client.post(f"/api/enrollments/{first['id']}/cancel", json={}, headers=student["headers"])

    again = _enroll(client, student["headers"], studio["class_id"], student["student_id"])
    assert again.status_code == 201
    assert again.json()["id"] == first["id"]
    assert again.json()["status"] == "confirmed"
    assert again.json()["cancelled_at"] is None


def test_cancellation_needs_two_hours_notice(client, session_factory, studio, student):
    starts = utcnow() + timedelta(hours=1)
    with db_session(session_factory) as s:
        cls = Class(
            instructor_id=studio["instructor_id"],
            zone_id=studio["zone_id"],
            class_date=starts.date(),
            start_time=starts.time().replace(microsecond=0),
            end_time=(starts + timedelta(hours=1)).time().replace(microsecond=0),
            capacity_limit=5,
            class_type="Mat",
            difficulty_level="beginner",
            status="scheduled",
        )
        s.add(cls)
        s.flush()
        class_id = cls.id

    enrollment = _enroll(client, student["headers"], class_id, student["student_id"])
    assert enrollment.status_code == 201, enrollment.text

    response = client.post(
        f"/api/enrollments/{enrollment.json()['id']}/cancel", json={}, headers=student["headers"]
    )
    assert response.status_code == 400
    assert response.json()["details"].startswith("Las cancelaciones deben hacerse al menos 2 horas antes")


def test_cancelling_class_releases_enrollments(client, admin_headers, studio, student):
    purchase = _buy_package(client, admin_headers, student)
    enrollment = _enroll(client, student["headers"], studio["class_id"], student["student_id"]).json()

    response = client.post(f"/api/classes/{studio['class_id']}/cancel", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    current = client.get(f"/api/enrollments/{enrollment['id']}", headers=student["headers"]).json()
    assert current["status"] == "cancelled"
    restored = client.get(f"/api/purchases/{purchase['id']}", headers=student["headers"]).json()
    assert restored["remaining_classes"] == 4

    again = client.post(f"/api/classes/{studio['class_id']}/cancel", headers=admin_headers)
    assert again.status_code == 400


def test_capacity_cannot_drop_below_confirmed(client, admin_headers, studio, student):
    other = register_student(client, "berta@pilatesstudio.com", "Berta", "Ruiz")
    _enroll(client, student["headers"], studio["class_id"], student["student_id"])
    _enroll(client, other["headers"], studio["class_id"], other["student_id"])

    response = client.put(f"/api/classes/{studio['class_id']}", json={"capacity_limit": 1}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["details"] == "La capacidad no puede ser menor que las reservas confirmadas"


def test_complete_and_record_attendance(client, admin_headers, studio, student):
    enrollment = _enroll(client, student["headers"], studio["class_id"], student["student_id"]).json()

    completed = client.post(f"/api/enrollments/{enrollment['id']}/complete", headers=admin_headers)
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"

    payload = {
        "class_id": studio["class_id"],
        "student_id": student["student_id"],
        "attendance_date": utcnow().isoformat(),
    }
    recorded = client.post("/api/attendance", json=payload, headers=admin_headers)
    assert recorded.status_code == 201, recorded.text
    assert recorded.json()["student_name"] == "Ana Diaz"

    duplicate = client.post("/api/attendance", json=payload, headers=admin_headers)
    assert duplicate.status_code == 400

    roster = client.get(f"/api/classes/{studio['class_id']}/attendance", headers=admin_headers).json()
    assert len(roster) == 1


def test_attendance_requires_enrollment(client, admin_headers, studio, student):
    response = client.post(
        "/api/attendance",
        json={
            "class_id": studio["class_id"],
            "student_id": student["student_id"],
            "attendance_date": utcnow().isoformat(),
        },
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_unknown_class_is_404(client, student):
    response = client.get("/api/classes/9999", headers=student["headers"])
    assert response.status_code == 404
    assert response.json()["message"] == "Recurso no encontrado"


def test_status_update_to_cancelled_releases_enrollments(client, admin_headers, studio, student):
    purchase = _buy_package(client, admin_headers, student)
    enrollment = _enroll(client, student["headers"], studio["class_id"], student["student_id"]).json()

    response = client.put(
        f"/api/classes/{studio['class_id']}",
        json={"status": "cancelled", "description": "Sala en mantenimiento"},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "cancelled"
    assert body["description"] == "Sala en mantenimiento"
    assert body["reserved_spots"] == 0

    current = client.get(f"/api/enrollments/{enrollment['id']}", headers=student["headers"]).json()
    assert current["status"] == "cancelled"
    restored = client.get(f"/api/purchases/{purchase['id']}", headers=student["headers"]).json()
    assert restored["remaining_classes"] == 4


def test_completed_enrollment_is_not_reopened(client, admin_headers, studio, student):
    purchase = _buy_package(client, admin_headers, student)
    enrollment = _enroll(client, student["headers"], studio["class_id"], student["student_id"]).json()
    client.post(f"/api/enrollments/{enrollment['id']}/complete", headers=admin_headers)

    again = _enroll(client, student["headers"], studio["class_id"], student["student_id"])
    assert again.status_code == 400
    assert again.json()["details"] == "El estudiante ya completó esta clase"

    current = client.get(f"/api/enrollments/{enrollment['id']}", headers=student["headers"]).json()
    assert current["status"] == "completed"
    remaining = client.get(f"/api/purchases/{purchase['id']}", headers=student["headers"]).json()
    assert remaining["remaining_classes"] == 3


def test_only_available_skips_cancelled_and_past_classes(client, admin_headers, session_factory, studio, student):
    cancelled = client.post(
        "/api/classes",
        json={
            "instructor_id": studio["instructor_id"],
            "zone_id": studio["zone_id"],
            "class_date": next_week(),
            "start_time": "17:00:00",
            "end_time": "18:00:00",
            "capacity_limit": 5,
        },
        headers=admin_headers,
    ).json()
    client.post(f"/api/classes/{cancelled['id']}/cancel", headers=admin_headers)

    yesterday = utcnow() - timedelta(days=1)
    with db_session(session_factory) as s:
        past = Class(
            instructor_id=studio["instructor_id"],
            zone_id=studio["zone_id"],
            class_date=yesterday.date(),
            start_time=yesterday.time().replace(hour=9, minute=0, second=0, microsecond=0),
            end_time=yesterday.time().replace(hour=10, minute=0, second=0, microsecond=0),
            capacity_limit=5,
            difficulty_level="beginner",
            status="scheduled",
        )
        s.add(past)
        s.flush()
        past_id = past.id

    available = client.get("/api/classes", params={"only_available": True}, headers=student["headers"]).json()
    ids = [c["id"] for c in available]
    assert studio["class_id"] in ids
    assert cancelled["id"] not in ids
    assert past_id not in ids


def test_can_enroll_explains_refusal(client, studio, student):
    url = f"/api/enrollments/student/{student['student_id']}/can-enroll/{studio['class_id']}"
    assert client.get(url, headers=student["headers"]).json() == {"allowed": True, "reason": None}

    _enroll(client, student["headers"], studio["class_id"], student["student_id"])
    answer = client.get(url, headers=student["headers"]).json()
    assert answer["allowed"] is False
    assert answer["reason"] == "El estudiante ya está inscrito en esta clase"


def test_can_cancel_reflects_state(client, studio, student):
    enrollment = _enroll(client, student["headers"], studio["class_id"], student["student_id"]).json()
    url = f"/api/enrollments/{enrollment['id']}/can-cancel"
    assert client.get(url, headers=student["headers"]).json()["allowed"] is True

    client.post(f"/api/enrollments/{enrollment['id']}/cancel", json={}, headers=student["headers"])
    answer = client.get(url, headers=student["headers"]).json()
    assert answer == {"allowed": False, "reason": "Solo se pueden cancelar inscripciones confirmadas"}


def test_upcoming_lists_only_confirmed_future_enrollments(client, admin_headers, studio, student):
    later = client.post(
        "/api/classes",
        json={
            "instructor_id": studio["instructor_id"],
            "zone_id": studio["zone_id"],
            "class_date": next_week(),
            "start_time": "12:00:00",
            "end_time": "13:00:00",
            "capacity_limit": 5,
        },
        headers=admin_headers,
    ).json()
    first = _enroll(client, student["headers"], studio["class_id"], student["student_id"]).json()
    second = _enroll(client, student["headers"], later["id"], student["student_id"]).json()

    upcoming = client.get(f"/api/enrollments/student/{student['student_id']}/upcoming", headers=student["headers"])
    assert upcoming.status_code == 200
    assert [e["id"] for e in upcoming.json()] == [first["id"], second["id"]]

    client.post(f"/api/enrollments/{first['id']}/cancel", json={}, headers=student["headers"])
    upcoming = client.get(f"/api/enrollments/student/{student['student_id']}/upcoming", headers=student["headers"])
    assert [e["id"] for e in upcoming.json()] == [second["id"]]


def test_client_supplied_timestamps_are_ignored(client, admin_headers):
    response = client.post(
        "/api/zones",
        json={
            "name": "Sala Mat",
            "capacity": 15,
            "created_at": "2000-01-01T00:00:00",
            "updated_at": "2000-01-01T00:00:00",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert not body["created_at"].startswith("2000-01-01")
    assert body["created_at"] == body["updated_at"]
