from datetime import timedelta

from pilates_studio.db import db_session, utcnow
from pilates_studio.models import Purchase


def _package(client, admin_headers, **overrides):
    payload = {"name": "Paquete 8 clases", "price": 400, "class_count": 8, "validity_days": 30}
    payload.update(overrides)
    response = client.post("/api/packages", json=payload, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


def _purchase(client, admin_headers, student, package_id, amount=400):
    response = client.post(
        "/api/purchases",
        json={"student_id": student["student_id"], "package_id": package_id, "amount": amount},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _payment(client, admin_headers, purchase_id, amount=400):
    response = client.post(
        "/api/payments",
        json={
            "purchase_id": purchase_id,
            "amount": amount,
            "payment_method": "card",
            "payment_date": utcnow().isoformat(),
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_package_price_is_serialized_as_number(client, admin_headers):
    package = _package(client, admin_headers, price="399.90")
    assert package["price"] == 399.9
    assert package["is_active"] is True


def test_purchase_uses_package_terms(client, admin_headers, student):
    package = _package(client, admin_headers, name="Paquete 12 clases", class_count=12, validity_days=45)
    purchase = _purchase(client, admin_headers, student, package["id"])

    assert purchase["remaining_classes"] == 12
    assert purchase["package_name"] == "Paquete 12 clases"
    assert purchase["student_name"] == "Ana Diaz"
    assert purchase["status"] == "active"


def test_inactive_package_cannot_be_bought(client, admin_headers, student):
    package = _package(client, admin_headers, is_active=False)
    response = client.post(
        "/api/purchases",
        json={"student_id": student["student_id"], "package_id": package["id"], "amount": 400},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["details"] == "El paquete no está disponible"


def test_package_with_purchases_is_only_deactivated(client, admin_headers, student):
    package = _package(client, admin_headers)
    _purchase(client, admin_headers, student, package["id"])

    assert client.delete(f"/api/packages/{package['id']}", headers=admin_headers).status_code == 204
    current = client.get(f"/api/packages/{package['id']}", headers=admin_headers)
    assert current.status_code == 200
    assert current.json()["is_active"] is False

    unused = _package(client, admin_headers, name="Clase suelta", class_count=1)
    assert client.delete(f"/api/packages/{unused['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/packages/{unused['id']}", headers=admin_headers).status_code == 404


def test_payment_lifecycle(client, admin_headers, student):
    purchase = _purchase(client, admin_headers, student, _package(client, admin_headers)["id"])
    payment = _payment(client, admin_headers, purchase["id"])
    assert payment["status"] == "pending"
    assert payment["student_name"] == "Ana Diaz"

    processed = client.post(
        f"/api/payments/{payment['id']}/process",
        params={"transaction_id": "TX-1001"},
        headers=admin_headers,
    )
    assert processed.status_code == 200
    assert processed.json()["status"] == "completed"
    assert processed.json()["transaction_id"] == "TX-1001"

    refunded = client.post(
        f"/api/payments/{payment['id']}/refund",
        json={"reason": "Lesión"},
        headers=admin_headers,
    )
    assert refunded.status_code == 200
    assert refunded.json()["status"] == "refunded"
    assert "Reembolso: Lesión" in refunded.json()["notes"]


def test_invalid_payment_transitions(client, admin_headers, student):
    purchase = _purchase(client, admin_headers, student, _package(client, admin_headers)["id"])
    payment = _payment(client, admin_headers, purchase["id"])

    refund_pending = client.post(f"/api/payments/{payment['id']}/refund", json={}, headers=admin_headers)
    assert refund_pending.status_code == 400

    assert client.post(f"/api/payments/{payment['id']}/fail", headers=admin_headers).status_code == 200
    reprocess = client.post(f"/api/payments/{payment['id']}/process", headers=admin_headers)
    assert reprocess.status_code == 400
    assert "failed" in reprocess.json()["details"]


def test_payments_by_purchase(client, admin_headers, student):
    purchase = _purchase(client, admin_headers, student, _package(client, admin_headers)["id"])
    _payment(client, admin_headers, purchase["id"], amount=200)
    _payment(client, admin_headers, purchase["id"], amount=200)

    payments = client.get(f"/api/payments/purchase/{purchase['id']}", headers=admin_headers).json()
    assert [p["amount"] for p in payments] == [200.0, 200.0]


def test_students_cannot_list_payments(client, student):
    assert client.get("/api/payments", headers=student["headers"]).status_code == 403


def test_expire_overdue_purchases(client, admin_headers, session_factory, student):
    purchase = _purchase(client, admin_headers, student, _package(client, admin_headers)["id"])
    with db_session(session_factory) as s:
        row = s.get(Purchase, purchase["id"])
        row.expiration_date = utcnow() - timedelta(days=1)

    response = client.post("/api/purchases/expire", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"expired": 1}

    current = client.get(f"/api/purchases/{purchase['id']}", headers=admin_headers).json()
    assert current["status"] == "expired"

    # nothing left to expire
    assert client.post("/api/purchases/expire", headers=admin_headers).json() == {"expired": 0}


def test_dashboard_reflects_revenue(client, admin_headers, student):
    purchase = _purchase(client, admin_headers, student, _package(client, admin_headers)["id"])
    payment = _payment(client, admin_headers, purchase["id"])
    client.post(f"/api/payments/{payment['id']}/process", headers=admin_headers)

    stats = client.get("/api/analytics/dashboard", params={"refresh": True}, headers=admin_headers)
    assert stats.status_code == 200
    body = stats.json()
    assert body["total_students"] == 1
    assert body["active_students"] == 1
    assert body["active_purchases"] == 1
    assert body["total_revenue"] == 400.0
    assert body["monthly_revenue"] == 400.0

    assert client.get("/api/analytics/dashboard", headers=student["headers"]).status_code == 403


def test_renew_closes_current_purchase(client, admin_headers, student):
    package = _package(client, admin_headers)
    purchase = _purchase(client, admin_headers, student, package["id"])
    bigger = _package(client, admin_headers, name="Paquete 12 clases", price=540, class_count=12, validity_days=45)

    renewed = client.post(
        f"/api/purchases/{purchase['id']}/renew",
        json={"package_id": bigger["id"]},
        headers=student["headers"],
    )
    assert renewed.status_code == 201, renewed.text
    body = renewed.json()
    assert body["id"] != purchase["id"]
    assert body["package_name"] == "Paquete 12 clases"
    assert body["remaining_classes"] == 12
    assert body["amount"] == 540.0
    assert body["status"] == "active"

    previous = client.get(f"/api/purchases/{purchase['id']}", headers=admin_headers).json()
    assert previous["status"] == "cancelled"


def test_renew_defaults_to_same_package(client, admin_headers, student):
    purchase = _purchase(client, admin_headers, student, _package(client, admin_headers)["id"])
    renewed = client.post(f"/api/purchases/{purchase['id']}/renew", json={}, headers=admin_headers).json()
    assert renewed["package_id"] == purchase["package_id"]
    assert renewed["remaining_classes"] == 8


def test_expiring_soon(client, admin_headers, session_factory, student):
    package = _package(client, admin_headers)
    soon = _purchase(client, admin_headers, student, package["id"])
    later = _purchase(client, admin_headers, student, package["id"])
    with db_session(session_factory) as s:
        s.get(Purchase, soon["id"]).expiration_date = utcnow() + timedelta(days=3)

    response = client.get("/api/purchases/expiring-soon", params={"days": 7}, headers=admin_headers)
    assert response.status_code == 200
    ids = [p["id"] for p in response.json()]
    assert ids == [soon["id"]]
    assert later["id"] not in ids

    assert client.get("/api/purchases/expiring-soon", headers=student["headers"]).status_code == 403
