"""
Tests for the refund and refund-request routes.
"""
from decimal import Decimal

from patient_api.auth.models import UserRole
from patient_api.core.audit_models import AuditLog, AuditAction
from patient_api.orders.models import OrderStatus
from patient_api.payments.gateway import PaymentGatewayError
from patient_api.refunds.models import RefundRequest, RefundRequestStatus


# ============================================================================
# DIRECT REFUNDS
# ============================================================================

def test_admin_refunds_order(client, db, make_user, make_clinic, make_order, auth_headers):
    admin = make_user(UserRole.ADMIN)
    order = make_order(make_clinic(), total="100.00", brand="60.00")

    response = client.post(
        "/api/v1/refunds", json={"order_id": order.id, "reason": "damaged"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Refund processed successfully"
    assert body["data"]["refund"]["id"] == "re_1"
    assert Decimal(str(body["data"]["brand_coverage"]["amount"])) == Decimal("40")
    assert body["data"]["brand_coverage"]["paid"] is True

    db.refresh(order)
    assert order.status == OrderStatus.REFUNDED
    entry = db.query(AuditLog).filter(AuditLog.action == AuditAction.REFUND_CREATED.value).one()
    assert entry.user_id == admin.id


def test_brand_refunds_only_own_clinic(client, make_user, make_clinic, make_order, auth_headers):
    own, other = make_clinic(), make_clinic()
    brand = make_user(UserRole.BRAND, clinic=own)
    foreign_order = make_order(other)

    response = client.post("/api/v1/refunds", json={"order_id": foreign_order.id}, headers=auth_headers(brand))
    assert response.status_code == 403

    own_order = make_order(own)
    response = client.post("/api/v1/refunds", json={"order_id": own_order.id}, headers=auth_headers(brand))
    assert response.status_code == 200


def test_patient_cannot_refund(client, make_user, make_clinic, make_order, auth_headers):
    patient = make_user(UserRole.PATIENT)
    order = make_order(make_clinic(), patient=patient)
    response = client.post("/api/v1/refunds", json={"order_id": order.id}, headers=auth_headers(patient))
    assert response.status_code == 403


def test_refund_validation_errors(client, make_user, make_clinic, make_order, auth_headers):
    headers = auth_headers(make_user(UserRole.ADMIN))
    clinic = make_clinic()

    missing = client.post("/api/v1/refunds", json={}, headers=headers)
    assert missing.status_code == 400
    assert missing.json()["message"] == "Order ID is required"

    assert client.post("/api/v1/refunds", json={"order_id": 999}, headers=headers).status_code == 404

    no_payment = make_order(clinic, with_payment=False)
    response = client.post("/api/v1/refunds", json={"order_id": no_payment.id}, headers=headers)
    assert response.status_code == 400
    assert response.json()["message"] == "No payment found for this order"

    refunded = make_order(clinic, status=OrderStatus.REFUNDED)
    assert client.post("/api/v1/refunds", json={"order_id": refunded.id}, headers=headers).status_code == 400

    order = make_order(clinic, total="100.00")
    for amount in ("0", "-5", "100.01"):
        response = client.post("/api/v1/refunds", json={"order_id": order.id, "amount": amount}, headers=headers)
        assert response.status_code == 400


def test_sub_cent_refund_amount_rejected(client, db, gateway, make_user, make_clinic, make_order, auth_headers):
    order = make_order(make_clinic(), total="100.00", brand="60.00")
    headers = auth_headers(make_user(UserRole.ADMIN))

    for amount in ("0.004", "10.005"):
        response = client.post("/api/v1/refunds", json={"order_id": order.id, "amount": amount}, headers=headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Refund amount cannot have more than two decimal places"

    assert gateway.refunds == []
    db.refresh(order)
    assert order.status == OrderStatus.PAID

    trailing_zero = client.post("/api/v1/refunds", json={"order_id": order.id, "amount": "10.500"}, headers=headers)
    assert trailing_zero.status_code == 200
    assert gateway.refunds[0]["amount_cents"] == 1050


def test_processor_failure_returns_envelope(client, db, gateway, make_user, make_clinic, make_order, auth_headers):
    gateway.refund_error = PaymentGatewayError("Charge ch_1 has already been refunded")
    order = make_order(make_clinic())

    response = client.post(
        "/api/v1/refunds", json={"order_id": order.id}, headers=auth_headers(make_user(UserRole.ADMIN))
    )

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Failed to process refund"
    assert "error" not in body
    db.refresh(order)
    assert order.status == OrderStatus.PAID


def test_refund_requires_authentication(client):
    assert client.post("/api/v1/refunds", json={"order_id": 1}).status_code == 401


# ============================================================================
# REFUND REQUESTS
# ============================================================================

def test_brand_creates_refund_request(client, db, make_user, make_clinic, make_order, auth_headers):
    clinic = make_clinic()
    brand = make_user(UserRole.BRAND, clinic=clinic)
    order = make_order(clinic, total="80.00", brand="50.00")

    response = client.post(
        "/api/v1/refund-requests", json={"order_id": order.id, "reason": "wrong item"}, headers=auth_headers(brand)
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "pending"
    assert Decimal(str(data["amount"])) == Decimal("80")
    assert Decimal(str(data["brand_coverage_amount"])) == Decimal("80")
    assert data["requested_by_id"] == brand.id

    duplicate = client.post("/api/v1/refund-requests", json={"order_id": order.id}, headers=auth_headers(brand))
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "A refund request is already pending for this order"


def test_brand_cannot_request_for_other_clinic(client, make_user, make_clinic, make_order, auth_headers):
    brand = make_user(UserRole.BRAND, clinic=make_clinic())
    order = make_order(make_clinic())
    response = client.post("/api/v1/refund-requests", json={"order_id": order.id}, headers=auth_headers(brand))
    assert response.status_code == 403


def test_refund_request_rejects_refunded_order(client, make_user, make_clinic, make_order, auth_headers):
    clinic = make_clinic()
    brand = make_user(UserRole.BRAND, clinic=clinic)
    order = make_order(clinic, status=OrderStatus.REFUNDED)
    response = client.post("/api/v1/refund-requests", json={"order_id": order.id}, headers=auth_headers(brand))
    assert response.status_code == 400
    assert response.json()["message"] == "This order has already been refunded"


def create_request(db, order, requested_by, status=RefundRequestStatus.PENDING):
    refund_request = RefundRequest(
        order_id=order.id,
        clinic_id=order.clinic_id,
        requested_by_id=requested_by.id,
        amount=order.total_amount,
        brand_coverage_amount=order.total_amount,
        status=status,
    )
    db.add(refund_request)
    db.commit()
    db.refresh(refund_request)
    return refund_request


def test_list_clinic_requests(client, db, make_user, make_clinic, make_order, auth_headers):
    clinic, other = make_clinic(), make_clinic()
    brand = make_user(UserRole.BRAND, clinic=clinic)
    admin = make_user(UserRole.ADMIN)
    first = create_request(db, make_order(clinic), brand)
    second = create_request(db, make_order(clinic), brand, status=RefundRequestStatus.DENIED)
    create_request(db, make_order(other), admin)

    response = client.get(f"/api/v1/refund-requests/clinic/{clinic.id}", headers=auth_headers(brand))
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["data"]] == [second.id, first.id]

    pending = client.get(
        f"/api/v1/refund-requests/clinic/{clinic.id}?status=pending", headers=auth_headers(brand)
    )
    assert [item["id"] for item in pending.json()["data"]] == [first.id]

    assert client.get(f"/api/v1/refund-requests/clinic/{other.id}", headers=auth_headers(brand)).status_code == 403


def test_listing_all_clinics_is_admin_only(client, db, make_user, make_clinic, make_order, auth_headers):
    clinic = make_clinic()
    brand = make_user(UserRole.BRAND, clinic=clinic)
    admin = make_user(UserRole.ADMIN)
    create_request(db, make_order(clinic), brand)
    create_request(db, make_order(make_clinic()), admin)

    assert client.get("/api/v1/refund-requests/clinic/all", headers=auth_headers(brand)).status_code == 403

    response = client.get("/api/v1/refund-requests/clinic/all", headers=auth_headers(admin))
    assert response.status_code == 200
    assert len(response.json()["data"]) == 2


def test_latest_request_for_order(client, db, make_user, make_clinic, make_order, auth_headers):
    clinic = make_clinic()
    brand = make_user(UserRole.BRAND, clinic=clinic)
    order = make_order(clinic)

    empty = client.get(f"/api/v1/refund-requests/order/{order.id}", headers=auth_headers(brand))
    assert empty.status_code == 200
    assert empty.json()["data"] is None

    create_request(db, order, brand, status=RefundRequestStatus.DENIED)
    latest = create_request(db, order, brand)
    response = client.get(f"/api/v1/refund-requests/order/{order.id}", headers=auth_headers(brand))
    assert response.json()["data"]["id"] == latest.id


def test_admin_approves_request(client, db, gateway, make_user, make_clinic, make_order, auth_headers):
    clinic = make_clinic()
    brand = make_user(UserRole.BRAND, clinic=clinic)
    admin = make_user(UserRole.ADMIN)
    order = make_order(clinic, total="100.00", brand="60.00")
    refund_request = create_request(db, order, brand)

    response = client.post(
        f"/api/v1/refund-requests/{refund_request.id}/approve",
        json={"review_notes": "ok"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["refund_request"]["status"] == "approved"
    assert data["refund_request"]["reviewed_by_id"] == admin.id
    assert data["refund_request"]["review_notes"] == "ok"
    assert gateway.refunds[0]["amount_cents"] == 10000
    assert gateway.transfers[0]["metadata"]["refundRequestId"] == refund_request.id

    db.refresh(order)
    assert order.status == OrderStatus.REFUNDED

    again = client.post(f"/api/v1/refund-requests/{refund_request.id}/approve", headers=auth_headers(admin))
    assert again.status_code == 400
    assert again.json()["message"] == "Refund request has already been approved"


def test_brand_cannot_review_requests(client, db, make_user, make_clinic, make_order, auth_headers):
    clinic = make_clinic()
    brand = make_user(UserRole.BRAND, clinic=clinic)
    refund_request = create_request(db, make_order(clinic), brand)

    for action in ("approve", "deny"):
        response = client.post(f"/api/v1/refund-requests/{refund_request.id}/{action}", headers=auth_headers(brand))
        assert response.status_code == 403


def test_admin_denies_request(client, db, gateway, make_user, make_clinic, make_order, auth_headers):
    clinic = make_clinic()
    brand = make_user(UserRole.BRAND, clinic=clinic)
    admin = make_user(UserRole.ADMIN)
    refund_request = create_request(db, make_order(clinic), brand)

    response = client.post(
        f"/api/v1/refund-requests/{refund_request.id}/deny",
        json={"review_notes": "outside policy"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "denied"
    assert gateway.refunds == []
    assert db.query(AuditLog).filter(AuditLog.action == AuditAction.REFUND_REQUEST_DENIED.value).count() == 1

    again = client.post(f"/api/v1/refund-requests/{refund_request.id}/deny", headers=auth_headers(admin))
    assert again.json()["message"] == "Refund request has already been denied"


def test_unknown_refund_request(client, make_user, auth_headers):
    response = client.post("/api/v1/refund-requests/999/deny", headers=auth_headers(make_user(UserRole.ADMIN)))
    assert response.status_code == 404
