import os
os.environ.setdefault("ENV_FILE", ".env.test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("TEST_MODE", "true")
try:
    from dotenv import load_dotenv
    load_dotenv(os.environ["ENV_FILE"])
except Exception:
    pass

import pytest
from uuid import uuid4
from datetime import datetime, UTC
from fastapi.testclient import TestClient

from config import get_settings
from database_adapter import DatabaseAdapter
from main import app
from services.database import get_db
from services.session import get_session_events
from services.storage import LocalStorage, get_storage
from .test_data import TEST_BUYER, TEST_MECHANIC, TEST_SHOP_OWNER


@pytest.fixture(scope="session")
def test_settings():
    """Load test environment settings from ENV_FILE (defaults to .env.test)."""
    return get_settings(os.environ.get("ENV_FILE", ".env.test"))


@pytest.fixture(scope="session", autouse=True)
def setup_test_database(test_settings):
    """Reset the SQLite test database once at session start."""
    test_db = DatabaseAdapter(test_settings)
    test_db.init()
    test_db.cleanup()


@pytest.fixture(scope="session")
def test_db(test_settings):
    """SQLite database for testing (no Supabase required)"""
    db = DatabaseAdapter(test_settings)
    db.init()
    yield db


@pytest.fixture
def clean_database(test_db):
    """Clean database before each test"""
    test_db.cleanup()
    yield test_db


@pytest.fixture
def upload_storage(tmp_path):
    return LocalStorage(str(tmp_path / "uploads"), "http://testserver/uploads")


@pytest.fixture
def client(clean_database, upload_storage):
    """Test client using SQLite and local upload storage. Auth is driven by Authorization headers."""
    app.dependency_overrides[get_db] = lambda: clean_database
    app.dependency_overrides[get_storage] = lambda: upload_storage
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def session_events():
    """The global event hub, emptied of test listeners afterwards."""
    events = get_session_events()
    before = list(events._subscribers)
    yield events
    events._subscribers[:] = before


def _insert_profile(db, profile: dict) -> dict:
    data = {
        **profile,
        "id": str(uuid4()),
        "market_id": "kisekka",
        "created_at": datetime.now(UTC).isoformat(),
        "last_active_at": datetime.now(UTC).isoformat(),
    }
    return db.table("users").insert(data).execute().data[0]


@pytest.fixture
def test_buyer(clean_database):
    """An onboarded buyer profile"""
    return _insert_profile(clean_database, TEST_BUYER)


@pytest.fixture
def test_mechanic(clean_database):
    """An onboarded mechanic profile"""
    return _insert_profile(clean_database, TEST_MECHANIC)


@pytest.fixture
def test_shop_owner(clean_database):
    """An onboarded shop owner with a shop linked to the profile"""
    owner = _insert_profile(clean_database, TEST_SHOP_OWNER)
    shop = clean_database.table("shops").insert({
        "owner_id": owner["id"],
        "name": "Mukasa Auto Spares",
        "zone": "KM2",
        "categories": ["Brakes", "Suspension"],
        "whatsapp_number": owner["whatsapp_number"],
        "phone_number": owner["phone_number"],
        "description": "Toyota and Nissan parts",
        "market_id": "kisekka",
    }).execute().data[0]
    return clean_database.table("users").update({"shop_id": shop["id"]}).eq("id", owner["id"]).execute().data[0]


@pytest.fixture
def newcomer_id():
    """Identity id of a signed-in user who has not onboarded yet"""
    return str(uuid4())


@pytest.fixture
def auth_headers():
    """Return a factory that builds dev-token Authorization headers for a user dict or id."""
    def _make(user):
        user_id = user["id"] if isinstance(user, dict) else user
        return {"Authorization": f"dev-token-{user_id}"}
    return _make
