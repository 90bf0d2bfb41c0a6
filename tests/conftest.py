"""
Pytest configuration and shared fixtures.
"""

import os

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

# Required settings must exist before anything loads the configuration
os.environ.setdefault("DATABASE_URL", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("PORT", "8000")

from api.config import APIConfig  # noqa: E402
from api.main import create_app  # noqa: E402
from api.store import DocumentCollection, DocumentStore  # noqa: E402
from api.tokens import TokenService  # noqa: E402

TEST_SECRET = "test-secret-key"
TEST_EMAIL = "reader@example.com"


class InMemoryCollection(DocumentCollection):
    """Exact-match document collection kept in a list."""

    def __init__(self, documents=None):
        self.documents = [dict(doc) for doc in documents or []]

    def _match(self, query):
        for doc in self.documents:
            if all(doc.get(key) == value for key, value in query.items()):
                return doc
        return None

    async def find_one(self, query):
        doc = self._match(query)
        return dict(doc) if doc else None

    async def find_all(self):
        return [dict(doc) for doc in self.documents]

    async def insert_one(self, document):
        doc = dict(document)
        doc.setdefault("_id", ObjectId())
        self.documents.append(doc)
        return doc["_id"]

    async def update_one(self, query, fields):
        doc = self._match(query)
        if doc is None:
            return 0
        doc.update(fields)
        return 1

    async def delete_one(self, query):
        doc = self._match(query)
        if doc is None:
            return 0
        self.documents.remove(doc)
        return 1


@pytest.fixture
def api_config():
    """Settings for tests; nothing connects to MongoDB."""
    return APIConfig(
        database_url="mongodb://localhost:27017",
        jwt_secret=TEST_SECRET,
        port=8000,
    )


@pytest.fixture
def document_store():
    """Store backed by in-memory collections."""
    return DocumentStore(users=InMemoryCollection(), books=InMemoryCollection())


@pytest.fixture
def token_service():
    return TokenService(TEST_SECRET)


@pytest.fixture
def app(api_config, document_store, token_service):
    return create_app(config=api_config, store=document_store, tokens=token_service)


@pytest.fixture
def client(app):
    """Create test client with the lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(token_service):
    """Authorization header carrying a valid token."""
    token = token_service.issue({"email": TEST_EMAIL})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_book():
    return {"title": "A Light in the Attic", "category": "Poetry", "author": "Shel Silverstein"}
