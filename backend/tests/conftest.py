import os

# Keep the app's own engine off disk; tests bind their own engine below
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from atlascore import config
from atlascore.database import Base, get_db
from atlascore.main import app
from atlascore.models import Category, Product, User
from atlascore.security import create_access_token, hash_password

STATS_SECRET = "stats-secret"


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def test_config(monkeypatch):
    monkeypatch.setattr(config, "SIMULATED_PAYMENT_DELAY", 0)
    monkeypatch.setattr(config, "WEBHOOK_SECRET", "plugin-secret")
    monkeypatch.setattr(config, "STATS_SECRET", STATS_SECRET)
    monkeypatch.setattr(config, "STORE_CURRENCY", "USD")


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def plugin_calls(monkeypatch):
    """Record commands sent to the game server instead of calling it."""
    calls = []

    async def fake_call_plugin(endpoint, payload):
        calls.append((endpoint, payload))
        return {"success": True}

    monkeypatch.setattr("atlascore.delivery.call_plugin", fake_call_plugin)
    return calls


def make_user(db, username="steve", is_admin=0, minecraft_uuid="", password="secret123"):
    user = User(
        username=username,
        email=f"{username}@example.com",
        password=hash_password(password),
        is_admin=is_admin,
        minecraft_uuid=minecraft_uuid,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_product(db, name="Diamond Kit", price=10.0, stock=None, commands=None, category=None):
    product = Product(
        name=name,
        price=price,
        stock=stock,
        category=category,
        in_game_commands=commands if commands is not None else ["give {player} diamond 1"],
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def make_category(db, name="Kits"):
    category = Category(name=name)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def player(db):
    return make_user(db, "steve", minecraft_uuid="069a79f4-44e9-4726-a5be-fca90e38aaf5")


@pytest.fixture
def admin(db):
    return make_user(db, "alex", is_admin=1)
