"""
Test configuration and fixtures.

Runs the API against an in-memory SQLite database with Stripe, Pusher, email
and the chain RPC left unconfigured; individual tests patch those seams.
"""

import os
from datetime import date, timedelta

import pytest

# Set test environment variables before importing app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
for _key in (
    "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "PUSHER_APP_ID", "PUSHER_KEY", "PUSHER_SECRET",
    "MAILGUN_API_KEY", "MAILGUN_DOMAIN", "SENDGRID_API_KEY", "CHAIN_RPC_URL", "NFT_CONTRACT_ADDRESS",
):
    os.environ[_key] = ""

from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.membership import MembershipPlan, BillingPeriod  # noqa: E402
from app.models.user import User, UserRole, MembershipStatus  # noqa: E402
from app.models.workspace import Workspace, WorkspaceType, ResourceCategory  # noqa: E402
from app.models.cafe import MenuItem, MenuCategory  # noqa: E402
from app.rate_limit import storage as rate_limit_storage  # noqa: E402
from app.services.auth import get_password_hash, create_access_token  # noqa: E402

TEST_PASSWORD = "Password123!"


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "api: API endpoint tests")


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    rate_limit_storage.reset()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# =============================================================================
# FACTORIES
# =============================================================================


def make_user(db, email="member@example.com", role=UserRole.user, **kwargs) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(TEST_PASSWORD),
        role=role,
        full_name=kwargs.pop("full_name", "Test Member"),
        **kwargs,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def future_date() -> date:
    return date.today() + timedelta(days=7)


@pytest.fixture
def member(db_session) -> User:
    return make_user(db_session)


@pytest.fixture
def nft_member(db_session) -> User:
    return make_user(db_session, email="holder@example.com", nft_holder=True, wallet_address="0x" + "a" * 40)


@pytest.fixture
def staff(db_session) -> User:
    return make_user(db_session, email="staff@example.com", role=UserRole.staff, full_name="Barista")


@pytest.fixture
def admin(db_session) -> User:
    return make_user(db_session, email="admin@example.com", role=UserRole.admin, full_name="Admin")


@pytest.fixture
def resident_plan(db_session) -> MembershipPlan:
    plan = MembershipPlan(
        name="Resident Desk",
        slug="resident",
        price=425.00,
        nft_holder_price=225.00,
        billing_period=BillingPeriod.monthly,
        meeting_room_credits_hours=8,
        printing_credits=100,
        cafe_discount_percentage=20,
        guest_passes=2,
        includes_hot_desk=True,
    )
    db_session.add(plan)
    db_session.commit()
    db_session.refresh(plan)
    return plan


@pytest.fixture
def resident(db_session, resident_plan) -> User:
    return make_user(
        db_session,
        email="resident@example.com",
        membership_plan_id=resident_plan.id,
        membership_status=MembershipStatus.active,
    )


@pytest.fixture
def hot_desk(db_session) -> Workspace:
    ws = Workspace(
        name="Hot Desk - Main Floor",
        type=WorkspaceType.hot_desk,
        resource_category=ResourceCategory.desk,
        capacity=1,
        base_price_hourly=2.50,
        requires_credits=False,
        min_duration=1,
        max_duration=12,
        amenities=["WiFi"],
    )
    db_session.add(ws)
    db_session.commit()
    db_session.refresh(ws)
    return ws


@pytest.fixture
def focus_room(db_session) -> Workspace:
    ws = Workspace(
        name="Focus Room A",
        type=WorkspaceType.focus_room,
        resource_category=ResourceCategory.meeting_room,
        capacity=4,
        base_price_hourly=25.00,
        requires_credits=True,
        min_duration=0.5,
        max_duration=8,
    )
    db_session.add(ws)
    db_session.commit()
    db_session.refresh(ws)
    return ws


@pytest.fixture
def latte(db_session) -> MenuItem:
    item = MenuItem(title="Latte", slug="latte", price=4.75, category=MenuCategory.coffee, orderable=True)
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def croissant(db_session) -> MenuItem:
    item = MenuItem(title="Almond Croissant", slug="almond-croissant", price=3.75, category=MenuCategory.pastries)
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item
