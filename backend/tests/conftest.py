import os
import sys
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ["EMAIL_ENABLED"] = "false"

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app_config import AppConfigurator
from auth import get_current_user
from database import Base, get_db
from email_service import email_service
from enums import Role

from factories import make_user


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Remplace l'envoi réel : chaque email est enregistré dans la liste"""
    sent = []

    async def fake_send_email(recipients, message, sender_email=None):
        sent.append({
            "to": [r.email for r in recipients],
            "subject": message.subject,
            "category": message.category,
        })
        return True

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


@pytest.fixture
def admin(db):
    return make_user(db, "admin@bailnotarie.fr", Role.ADMINISTRATEUR)


@pytest.fixture
def operateur(db):
    return make_user(db, "operateur@bailnotarie.fr", Role.OPERATEUR)


@pytest.fixture
def notaire(db):
    return make_user(db, "notaire@etude.fr", Role.NOTAIRE)


@pytest.fixture
def app(db):
    app = AppConfigurator.create_app(create_tables=False)
    app.dependency_overrides[get_db] = lambda: db
    return app


@pytest.fixture
def login_as(app):
    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
    return _login


@pytest.fixture
def client(app, admin, login_as):
    login_as(admin)
    with TestClient(app) as test_client:
        yield test_client
