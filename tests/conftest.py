import os
import time
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

# Configuration is read at import time, so it has to be in place before the app loads
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_SERVICE_KEY"] = "test-service-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models.file import File
from app.models.folder import Folder
from app.supabase_client import get_supabase

TEST_JWT_SECRET = "test-jwt-secret"
SIGNED_URL = "https://project.supabase.test/storage/v1/object/sign/files/x?token=abc"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_token(user_id, email, secret=TEST_JWT_SECRET, audience="authenticated", expires_in=3600):
    claims = {
        "sub": str(user_id),
        "email": email,
        "aud": audience,
        "role": "authenticated",
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def _make_user(email):
    user_id = uuid.uuid4()
    return SimpleNamespace(
        id=user_id,
        email=email,
        headers={"Authorization": f"Bearer {make_token(user_id, email)}"},
    )


@pytest.fixture
def alice():
    return _make_user("alice@example.com")


@pytest.fixture
def bob():
    return _make_user("bob@example.com")


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def supabase_mock():
    """Managed backend client with storage calls succeeding and no registered users."""
    client = MagicMock()
    bucket = client.storage.from_.return_value
    bucket.create_signed_url.return_value = {"signedURL": SIGNED_URL, "signedUrl": SIGNED_URL}
    bucket.remove.return_value = []
    client.auth.admin.list_users.return_value = []
    return client


@pytest.fixture
def bucket(supabase_mock):
    return supabase_mock.storage.from_.return_value


@pytest.fixture
def client(db_session, supabase_mock):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_supabase] = lambda: supabase_mock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_folder(db_session):
    def _make_folder(owner, name, parent=None, **kwargs):
        folder = Folder(
            name=name,
            owner_id=owner.id,
            parent_folder_id=parent.id if parent is not None else None,
            **kwargs,
        )
        db_session.add(folder)
        db_session.commit()
        db_session.refresh(folder)
        return folder

    return _make_folder


@pytest.fixture
def make_file(db_session):
    def _make_file(owner, name, folder=None, **kwargs):
        record = File(
            name=name,
            owner_id=owner.id,
            folder_id=folder.id if folder is not None else None,
            storage_path=f"{owner.id}/{uuid.uuid4().hex}-{name}",
            file_type=kwargs.pop("file_type", "application/octet-stream"),
            size=kwargs.pop("size", 10),
            **kwargs,
        )
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record

    return _make_file
