"""
Shared pytest configuration and fixtures.

Every test gets its own SQLite database file, seeded with a handful of users
and properties. API tests talk to the FastAPI app through TestClient with the
get_session dependency pointed at that database.
"""
import os
import sys
from types import SimpleNamespace

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Must be set before config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BREVO_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.orm import sessionmaker

from database import build_engine, get_session
from models import Base, User, Property, PropertyUnit, Tenant, Role, GrantStatus
from services.access_cache import access_cache
from services.grant_store import GrantStore


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several sessions can race on the same rows."""
    db_engine = build_engine(f"sqlite:///{tmp_path / 'access.db'}")
    Base.metadata.create_all(bind=db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def clear_access_cache():
    """The process-wide cache must not leak decisions between databases."""
    access_cache.clear()
    yield
    access_cache.clear()


# ============================================================================
# Seed data
# ============================================================================

@pytest.fixture
def world(db):
    """
    Users and properties shared by most tests.

    - Sunset Condos: legacy landlord = owner, ACTIVE OWNER grant for owner
    - Acacia Residences: no landlord, ACTIVE OWNER grant for owner
    - Bayview Towers: legacy landlord = legacy, no grants (unreconciled)
    """
    owner = User(email="owner@example.com", first_name="Olivia", last_name="Owner")
    agent = User(email="a@x.com", first_name="Andy", last_name="Agent")
    outsider = User(email="outsider@example.com", first_name="Oscar", last_name="Outsider")
    legacy = User(email="legacy@example.com", first_name="Lara", last_name="Landlord")
    manager = User(email="manager@example.com", first_name="Mina", last_name="Manager")
    db.add_all([owner, agent, outsider, legacy, manager])
    db.flush()

    sunset = Property(property_name="Sunset Condos", landlord_id=owner.id, city="Pasay")
    acacia = Property(property_name="Acacia Residences", city="Makati")
    bayview = Property(property_name="Bayview Towers", landlord_id=legacy.id, city="Manila")
    db.add_all([sunset, acacia, bayview])
    db.flush()

    db.add_all([
        PropertyUnit(property_id=sunset.id, unit_number="101", unit_type="Studio"),
        PropertyUnit(property_id=sunset.id, unit_number="102", unit_type="1BR"),
        PropertyUnit(property_id=bayview.id, unit_number="201", unit_type="Studio"),
        Tenant(property_id=sunset.id, first_name="Tina", last_name="Tenant", email="tina@example.com"),
        Tenant(property_id=bayview.id, first_name="Ben", last_name="Boarder", email="ben@example.com"),
    ])

    grants = GrantStore(db)
    grants.upsert(sunset.id, owner.id, Role.OWNER, GrantStatus.ACTIVE)
    grants.upsert(acacia.id, owner.id, Role.OWNER, GrantStatus.ACTIVE)
    db.commit()

    return SimpleNamespace(
        owner=owner.id,
        agent=agent.id,
        outsider=outsider.id,
        legacy=legacy.id,
        manager=manager.id,
        sunset=sunset.id,
        acacia=acacia.id,
        bayview=bayview.id,
    )


# ============================================================================
# HTTP client
# ============================================================================

@pytest.fixture
def client(session_factory, world):
    from main import app

    def override_get_session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Factory for bearer headers carrying {"id": user_id}."""
    def _headers(user_id: int) -> dict:
        token = jwt.encode({"id": user_id}, "test-secret", algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers
