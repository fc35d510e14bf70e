import os

os.environ.setdefault("LOGBOOK_BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGBOOK_SEED_DEMO_DATA", "false")
os.environ.setdefault("LOGBOOK_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from logbook.database import Base, get_db
from logbook.main import app
from logbook.models import User
from logbook.seed import DEMO_PASSWORD, seed_demo_data


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
def db(engine):
    Session = sessionmaker(bind=engine)
    session = Session()
    seed_demo_data(session)
    yield session
    session.close()


@pytest.fixture
def users(db):
    return {u.role: u for u in db.query(User).all()}


@pytest.fixture
def client(engine, db):
    Session = sessionmaker(bind=engine)

    def override_get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


CREDENTIALS = {
    "operator": ("operator@logbook.io", DEMO_PASSWORD),
    "supervisor": ("supervisor@logbook.io", DEMO_PASSWORD),
    "customer": ("customer@logbook.io", DEMO_PASSWORD),
    "super_admin": ("admin@logbook.io", DEMO_PASSWORD),
}


@pytest.fixture
def auth():
    """Basic-auth tuple for a seeded user by role."""
    return CREDENTIALS.__getitem__
