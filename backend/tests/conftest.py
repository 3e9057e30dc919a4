"""
Fixtures communes : environnement de test, base SQLite en memoire,
stockage local temporaire, tokens JWT.
"""
import os

from cryptography.fernet import Fernet

# Avant tout import de redcap (get_settings est mis en cache)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from redcap.core.settings import get_settings
from redcap.core.storage import LocalBlobStorage
from redcap.domain.entities import GarminActivity, GarminAuth, UserSyncStatus  # noqa: F401 (tables)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    return LocalBlobStorage(str(tmp_path / "storage"))


@pytest.fixture
def user_id():
    return uuid4()


def make_access_token(user_id, expires_in: timedelta = timedelta(minutes=30)) -> str:
    settings = get_settings()
    payload = {
        "sub": str(user_id),
        "type": "access",
        "exp": datetime.utcnow() + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {make_access_token(user_id)}"}


@pytest.fixture
def make_activity(session, user_id):
    """Insere une GarminActivity pour l'utilisateur de test."""
    def _make(**overrides):
        fields = {
            "user_id": user_id,
            "activity_id": 12345678901,
            "activity_name": "Morning Run",
            "activity_type": "running",
            "start_time": datetime(2026, 2, 7, 7, 0, 0, tzinfo=timezone.utc),
            "duration": 3000.0,
            "distance": 10000.0,
            "elevation_gain": 150.0,
            "fit_file_path": None,
        }
        fields.update(overrides)
        activity = GarminActivity(**fields)
        session.add(activity)
        session.commit()
        session.refresh(activity)
        return activity
    return _make
