"""
Test configuration for the patient API backend.
"""
import os

# Settings are read at import time, so the environment is prepared first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["CRON_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_123"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_PLATFORM_ACCOUNT_ID"] = "acct_platform"

from decimal import Decimal
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from patient_api.database import get_db
from patient_api.models import (
    Base, User, UserRole, UserRoleAssignment, Clinic, Order, OrderStatus, Payment, PaymentStatus,
)
from patient_api.main import app
from patient_api.core.rate_limit import ALL_LIMITERS
from patient_api.core.security import hash_password, create_user_token
from patient_api.payments.gateway import (
    PaymentGatewayError, RefundResult, TransferResult, get_payment_gateway,
)
from patient_api.webhooks.router import processed_events

# Test database URL
TEST_DATABASE_URL = "sqlite://"

# Create test database engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session factory
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "Password123!"


class FakeGateway:
    """
    Stand-in for the payment processor client.

    Records every call. Set refund_error or transfer_error to make the
    matching call fail, or require_plain_refund to reject reverse_transfer
    refunds the way the processor does for charges without a transfer.
    """
    def __init__(self):
        self.refunds = []
        self.transfers = []
        self.refund_error: Optional[PaymentGatewayError] = None
        self.transfer_error: Optional[PaymentGatewayError] = None
        self.require_plain_refund = False

    async def create_refund(self, payment_intent, amount_cents=None, reverse_transfer=True):
        self.refunds.append({
            "payment_intent": payment_intent,
            "amount_cents": amount_cents,
            "reverse_transfer": reverse_transfer,
        })
        if self.refund_error:
            raise self.refund_error
        if reverse_transfer and self.require_plain_refund:
            raise PaymentGatewayError(
                "The charge ch_123 does not have an associated transfer",
                error_type="invalid_request_error",
                status_code=400,
            )
        return RefundResult(id=f"re_{len(self.refunds)}", status="succeeded", amount=amount_cents or 0)

    async def create_transfer(self, amount_cents, currency, destination, metadata=None,
                              description=None, stripe_account=None):
        self.transfers.append({
            "amount_cents": amount_cents,
            "currency": currency,
            "destination": destination,
            "metadata": metadata or {},
            "description": description,
            "stripe_account": stripe_account,
        })
        if self.transfer_error:
            raise self.transfer_error
        return TransferResult(id=f"tr_{len(self.transfers)}", amount=amount_cents)


@pytest.fixture(autouse=True)
def reset_in_memory_state():
    """Rate limiters and the webhook dedup cache live in process memory."""
    for limiter in ALL_LIMITERS:
        limiter.clear()
    processed_events.clear()
    yield


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.
    """
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    # Drop tables after test
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture(scope="function")
def client(db, gateway):
    """
    Create a test client with a test database session and fake processor.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    # Override dependencies
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    # Create test client
    with TestClient(app) as client:
        yield client

    # Remove dependency overrides
    app.dependency_overrides = {}


@pytest.fixture
def make_user(db):
    """Factory creating users with one or more roles."""
    counter = {"n": 0}

    def _make_user(*roles: UserRole, clinic: Optional[Clinic] = None, is_active: bool = True, **fields) -> User:
        counter["n"] += 1
        roles = roles or (UserRole.PATIENT,)
        defaults = {
            "email": f"user{counter['n']}@example.com",
            "first_name": "Jane",
            "last_name": "Doe",
            "phone_number": "555-123-4567",
            "address": "1 Main Street",
        }
        defaults.update(fields)
        user = User(
            password_hash=hash_password(DEFAULT_PASSWORD),
            clinic_id=clinic.id if clinic else None,
            is_active=is_active,
            **defaults,
        )
        user.role_assignments = [UserRoleAssignment(role=role) for role in roles]
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_clinic(db):
    counter = {"n": 0}

    def _make_clinic(stripe_account_id: Optional[str] = "acct_brand", **fields) -> Clinic:
        counter["n"] += 1
        clinic = Clinic(
            name=fields.pop("name", f"Brand {counter['n']}"),
            slug=fields.pop("slug", f"brand-{counter['n']}"),
            stripe_account_id=stripe_account_id,
            **fields,
        )
        db.add(clinic)
        db.commit()
        db.refresh(clinic)
        return clinic

    return _make_clinic


@pytest.fixture
def make_order(db):
    """Factory creating a paid order with its processor payment."""
    counter = {"n": 0}

    def _make_order(
        clinic: Optional[Clinic],
        patient: Optional[User] = None,
        total: str = "100.00",
        brand: str = "60.00",
        payment_intent: Optional[str] = "pi_123",
        charge_id: Optional[str] = None,
        status: OrderStatus = OrderStatus.PAID,
        with_payment: bool = True,
    ) -> Order:
        counter["n"] += 1
        order = Order(
            order_number=f"ORD-{counter['n']:04d}",
            user_id=patient.id if patient else None,
            clinic_id=clinic.id if clinic else None,
            status=status,
            total_amount=Decimal(total),
            brand_amount=Decimal(brand),
        )
        db.add(order)
        db.flush()
        if with_payment:
            db.add(Payment(
                order_id=order.id,
                amount=Decimal(total),
                status=PaymentStatus.SUCCEEDED,
                stripe_payment_intent_id=payment_intent,
                stripe_charge_id=charge_id,
            ))
        db.commit()
        db.refresh(order)
        return order

    return _make_order


@pytest.fixture
def auth_headers():
    """Bearer headers for a user's regular session."""
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_user_token(user)}"}

    return _auth_headers
