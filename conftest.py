import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from database import make_engine
from main import create_app
from schemas.user_schema import InsertUser, Role
from storage.database_storage import DatabaseStorage
from storage.memory_storage import MemStorage


@pytest.fixture(params=["memory", "database"])
async def storage(request):
    """Every storage backend, each starting empty."""
    if request.param == "memory":
        store = MemStorage()
    else:
        store = DatabaseStorage(make_engine("sqlite+aiosqlite://"))
    await store.init()
    yield store
    await store.close()


@pytest.fixture
def make_user(storage):
    async def _make_user(username, email=None, role=Role.USER, **fields):
        return await storage.create_user(InsertUser(
            username=username,
            email=email or f"{username}@example.com",
            password="not-a-real-hash",
            role=role,
            **fields,
        ))
    return _make_user


@pytest.fixture
def settings():
    return Settings(APP_ENV="development", STORAGE_BACKEND="memory", SECRET_KEY="test-secret")


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def app_storage(client):
    return client.app.state.storage


@pytest.fixture
def sign_up(client):
    """Register through the API and return the user id plus bearer auth headers."""
    def _sign_up(name):
        response = client.post("/auth/register", json={
            "email": f"{name}@example.com", "password": "s3cret-pass", "first_name": name, "last_name": "Test",
        })
        client.cookies.clear()
        body = response.json()
        return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}
    return _sign_up
