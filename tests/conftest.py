"""
Shared fixtures.

Tests run against an in-memory SQLite database and fake stand-ins for the
three external services (image host, SMTP relay, geocoder), wired in through
FastAPI dependency overrides.
"""

import os

# Must be set before any app import reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ADMIN_EMAIL"] = "admin@catalogue.test"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.exceptions import EmailDeliveryError, GeocodingError, ImageHostError, UnsupportedImage
from app.core.security import create_access_token, get_password_hash
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.user import User
from app.services.geocoding import get_geocoder
from app.services.images import ALLOWED_FORMATS, get_image_host, public_id_from_url
from app.services.mailer import get_mailer

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeImageHost:
    def __init__(self):
        self.uploaded = []
        self.destroyed = []
        self.copied = []
        self.fail_copy = False

    def upload(self, file, filename, folder):
        if filename.rsplit(".", 1)[-1].lower() not in ALLOWED_FORMATS:
            raise UnsupportedImage(filename, ALLOWED_FORMATS)
        url = f"https://res.cloudinary.com/demo/image/upload/v1/{folder}/{len(self.uploaded)}-{filename}"
        self.uploaded.append(url)
        return url

    def copy(self, url, folder):
        if self.fail_copy:
            raise ImageHostError("Image copy failed", context={"url": url})
        new_url = url.rsplit(".", 1)[0] + "-copy.jpg"
        self.copied.append(new_url)
        return new_url

    def destroy(self, url, folder):
        self.destroyed.append(public_id_from_url(url, folder))
        return True


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, text=None, html=None, from_name=None):
        if self.fail:
            raise EmailDeliveryError(context={"to": to})
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})


class FakeGeocoder:
    def __init__(self):
        self.places = {}
        self.fail = False
        self.queries = []

    def geocode(self, query):
        self.queries.append(query)
        if self.fail:
            raise GeocodingError(context={"query": query})
        return self.places.get(query)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def image_host():
    return FakeImageHost()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def client(db, image_host, mailer, geocoder):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_host] = lambda: image_host
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _make_user(db, email, role, password="secret123", name="Test User"):
    user = User(name=name, email=email, password_hash=get_password_hash(password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return _make_user(db, "buyer@example.com", "user", name="Buyer")


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@example.com", "admin", name="Admin")


@pytest.fixture
def user_headers(user):
    return {"Authorization": f"Bearer {create_access_token(str(user.id), role=user.role)}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_access_token(str(admin.id), role=admin.role)}"}
