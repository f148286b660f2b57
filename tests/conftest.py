"""
Pytest configuration and fixtures for the API tests.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import MENU_ITEMS, USERS, create_document, ensure_indexes, get_db
from main import app
from schemas import MenuItem, User
from security import hash_password


@pytest.fixture(scope="function")
def mongo_db():
    """
    Fresh in-memory MongoDB for each test, with the production unique indexes.
    """
    mongo_client = mongomock.MongoClient()
    db = mongo_client["kazakh_menu_test"]
    ensure_indexes(db)
    yield db
    mongo_client.close()


@pytest.fixture(scope="function")
def client(mongo_db):
    """
    Test client with the database dependency pointed at the in-memory database.
    """
    app.dependency_overrides[get_db] = lambda: mongo_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _seed_user(db, name, email, password, role):
    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    return create_document(db, USERS, user)


def _login(client, email, password):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, f"Login failed: {response.json()}"
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def seed_admin_user(mongo_db):
    """An admin account."""
    return _seed_user(mongo_db, "Test Admin", "admin@test.com", "adminpass123", "admin")


@pytest.fixture
def seed_user(mongo_db):
    """A regular customer account."""
    return _seed_user(mongo_db, "Aigerim", "aigerim@test.com", "userpass123", "user")


@pytest.fixture
def seed_other_user(mongo_db):
    """A second customer, used for ownership checks."""
    return _seed_user(mongo_db, "Nurlan", "nurlan@test.com", "otherpass123", "user")


@pytest.fixture
def admin_headers(client, seed_admin_user):
    return _login(client, "admin@test.com", "adminpass123")


@pytest.fixture
def user_headers(client, seed_user):
    return _login(client, "aigerim@test.com", "userpass123")


@pytest.fixture
def other_user_headers(client, seed_other_user):
    return _login(client, "nurlan@test.com", "otherpass123")


@pytest.fixture
def seed_menu_item(mongo_db):
    """A main course priced at 3500."""
    item = MenuItem(
        name="Beshbarmak",
        description="Boiled horse meat with hand-cut noodles and onion sauce",
        price=3500,
        category="Main Courses",
    )
    return create_document(mongo_db, MENU_ITEMS, item)


@pytest.fixture
def seed_dessert(mongo_db):
    item = MenuItem(
        name="Chak-chak",
        description="Fried dough pieces glazed with warm honey",
        price=1200,
        category="Dessert",
    )
    return create_document(mongo_db, MENU_ITEMS, item)
