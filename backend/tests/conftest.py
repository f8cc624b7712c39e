import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("REMINDER_LOOP_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agenda.database import get_db
from agenda.main import app
from agenda.models import Base, Businesses, Professionals, Services

from .factories import EVOLUTION_CONFIG, weekly_schedule


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def salon(db):
    """Business with a 30 min and a 60 min service and one professional."""
    business = Businesses(
        name="Salão Bella",
        slug="salao-bella",
        timezone="America/Sao_Paulo",
        automatic_reminders=1,
        evolution_api_config=json.dumps(EVOLUTION_CONFIG),
    )
    db.add(business)
    db.flush()

    haircut = Services(business_id=business.id, name="Corte", duration=30, price=50.0)
    coloring = Services(business_id=business.id, name="Coloração", duration=60, price=120.0)
    professional = Professionals(business_id=business.id, name="Ana", schedule=weekly_schedule())
    db.add_all([haircut, coloring, professional])
    db.commit()

    return {
        "business": business,
        "haircut": haircut,
        "coloring": coloring,
        "professional": professional,
    }
