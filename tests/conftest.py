# tests/conftest.py

"""
Shared fixtures for the catalog service tests.

The app reads its configuration from the environment at import time, so the
test database, signing secret and storage account are set here before
anything from catalog_service is imported.
"""
import base64
import json
import logging
import os
import tempfile
import time

import pytest

_test_dir = tempfile.mkdtemp(prefix="catalog-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_test_dir, 'catalog.db')}"
os.environ["AUTH_JWT_SECRET"] = "test-secret-with-enough-bytes-for-hs256"
os.environ["AUTH_JWT_ISSUER"] = "catalog-tests"
# Azurite's well-known development account.
os.environ["AZURE_STORAGE_ACCOUNT_NAME"] = "devstoreaccount1"
os.environ["AZURE_STORAGE_ACCOUNT_KEY"] = (
    "Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw=="
)
os.environ["AZURE_STORAGE_CONTAINER_NAME"] = "product-images"

from authlib.jose import jwt  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from catalog_service.db import Base, SessionLocal, engine  # noqa: E402
from catalog_service.main import app  # noqa: E402
from catalog_service.models import Category  # noqa: E402

# Suppress noisy logs during tests for cleaner output
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("catalog_service.main").setLevel(logging.WARNING)


def make_token(subject="admin", issuer="catalog-tests", expires_in=3600, secret=None):
    now = int(time.time())
    payload = {"sub": subject, "iss": issuer, "iat": now}
    if expires_in is not None:
        payload["exp"] = now + expires_in
    token = jwt.encode(
        {"alg": "HS256"}, payload, secret or os.environ["AUTH_JWT_SECRET"]
    )
    return token.decode("utf-8")


def make_unsigned_token(header, payload, signature="AAAA"):
    """Token with an arbitrary header and a made-up signature segment."""

    def segment(data):
        raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    return f"{segment(header)}.{segment(payload)}.{signature}"


@pytest.fixture(scope="function")
def db_session_for_test():
    """
    Recreates every table and provides a session for seeding and for checking
    what the API actually persisted.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="module")
def anonymous_client():
    """TestClient without credentials; runs the app's startup handler."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="module")
def client():
    """TestClient sending a valid bearer token on every request."""
    with TestClient(
        app, headers={"Authorization": f"Bearer {make_token()}"}
    ) as test_client:
        yield test_client


@pytest.fixture
def categories(db_session_for_test: Session):
    """Two seeded categories, keyed by name."""
    seeded = {name: Category(name=name) for name in ("Drinks", "Snacks")}
    db_session_for_test.add_all(seeded.values())
    db_session_for_test.commit()
    return {name: category.id for name, category in seeded.items()}
