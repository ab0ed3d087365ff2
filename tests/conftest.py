"""Pytest fixtures for TaskFlow tests.

Uses a SQLite database file and FastAPI TestClient. Overrides the `get_db`
dependency so tests are isolated from any real DB, and points the image
store at a per-test temporary directory.
"""

import os

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///./test_taskflow.db")

# Must be set before the application modules read them at import time
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import taskflow.database as database
from taskflow.auth import get_password_hash
from taskflow.main import app
from taskflow.models import Base, Role, SectorModel, UserModel


# Create test engine and session factory
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and drop them after to ensure isolation."""
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        # Drop all tables to start clean for next test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Store uploaded images under a temporary directory."""
    path = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(path))
    return path


@pytest.fixture()
def db_session():
    """Provide a SQLAlchemy session for direct DB access in tests."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# Override get_db dependency in the app
def _override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[database.get_db] = _override_get_db

# Many auth calls run across the suite; keep the limiter out of the way here
app.state.limiter.enabled = False


@pytest.fixture()
def client():
    """FastAPI test client using the app with overridden dependencies."""
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def create_user(db_session):
    """Insert a user directly in the DB and return it."""
    counter = {"n": 0}

    def _create_user(role: str = Role.USUARIO.value, name: str | None = None, email: str | None = None, password: str = "secret123", active: bool = True):
        counter["n"] += 1
        name = name or f"{role} {counter['n']}"
        email = email or f"{role.lower()}{counter['n']}@example.com"
        user = UserModel(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            active=active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture()
def create_sector(db_session):
    def _create_sector(name: str = "Suporte", active: bool = True):
        sector = SectorModel(name=name, active=active)
        db_session.add(sector)
        db_session.commit()
        db_session.refresh(sector)
        return sector

    return _create_sector


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture()
def png():
    """Build a multipart file tuple for a small PNG image."""
    def _png(name: str = "foto.png"):
        return ("Imagens", (name, PNG_BYTES, "image/png"))

    return _png


@pytest.fixture()
def open_ticket(client, png):
    """Open a ticket through the API and return the `ticket` body."""
    def _open_ticket(client_id: int, sector_id: int | None = None, images: int = 0, **overrides):
        data = {
            "Titulo": "Impressora parada",
            "Descricao": "Não imprime desde ontem",
            "Prioridade": "Alta",
            "ID_Cliente": str(client_id),
            "Nome_Cliente": "Cliente",
        }
        if sector_id is not None:
            data["ID_Setor"] = str(sector_id)
        data.update(overrides)
        files = [png(f"foto{i}.png") for i in range(images)]
        r = client.post("/tickets", data=data, files=files or None)
        assert r.status_code == 201, r.text
        return r.json()["ticket"]

    return _open_ticket
