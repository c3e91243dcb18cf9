# tests/conftest.py
from __future__ import annotations

import os

# Must be set before config.database / app are imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("DEBUG_SECRET", "test-debug-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config.database import Base, engine_options
from models.master_data import MasterLocation, MasterStatus, MasterType
from models.property import Property
from services.lookup_service import InMemoryLookupTables
from tests.reference_data import LOCATIONS, STATUSES, TYPES


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", future=True, **engine_options("sqlite://"))
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def master_data(db):
    """Seed the reference tables with a small Bangkok / Chachoengsao tree."""
    for type_id, name in TYPES.items():
        db.add(MasterType(id=type_id, name=name))
    for status_id, name in STATUSES.items():
        db.add(MasterStatus(id=status_id, name=name))
    # parents before children
    for loc_id in sorted(LOCATIONS):
        level, parent_id, name = LOCATIONS[loc_id]
        db.add(MasterLocation(id=loc_id, level=level, parent_id=parent_id, name=name))
        db.flush()
    db.commit()
    return db


@pytest.fixture
def lookups():
    return InMemoryLookupTables(TYPES, STATUSES, LOCATIONS)


@pytest.fixture
def make_property(db):
    def _factory(**fields):
        prop = Property(**fields)
        db.add(prop)
        db.commit()
        db.refresh(prop)
        return prop
    return _factory


@pytest.fixture
def client(session_factory, monkeypatch):
    import app as app_module
    import routes.options_routes
    import routes.property_routes

    monkeypatch.setattr(routes.property_routes, "SessionLocal", session_factory)
    monkeypatch.setattr(routes.options_routes, "SessionLocal", session_factory)
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    from flask_jwt_extended import create_access_token
    import app as app_module

    with app_module.app.app_context():
        token = create_access_token(identity="1")
    return {"Authorization": f"Bearer {token}"}
