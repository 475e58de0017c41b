import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import get_db
from main import app
from models import Base
from schemas import AppointmentCreate, ClientCreate, ServiceCreate
from services import appointment_store, client_store, service_catalog, settings_store, whatsapp_service


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def settings_file(tmp_path):
    path = tmp_path / "settings.json"
    settings_store.configure(str(path))
    yield path
    settings_store.configure(str(path))


@pytest.fixture(autouse=True)
def manual_whatsapp(monkeypatch):
    # Sem credenciais: apenas links wa.me
    monkeypatch.setattr(whatsapp_service, "api_key", None)
    monkeypatch.setattr(whatsapp_service, "phone_number", None)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_client(db):
    def _make(name="Ana Silva", **fields):
        return client_store.add_client(db, ClientCreate(name=name, **fields))
    return _make


@pytest.fixture
def make_appointment(db):
    def _make(client, start: datetime, minutes=60, service="Corte de Cabelo", status="confirmed", **fields):
        return appointment_store.create_appointment(db, AppointmentCreate(
            start=start,
            end_time=start + timedelta(minutes=minutes),
            client=client.name,
            client_id=client.id,
            service=service,
            status=status,
            **fields
        ))
    return _make


@pytest.fixture
def make_service(db):
    def _make(name="Manicure", price=18.75, duration_minutes=45):
        return service_catalog.create_service(db, ServiceCreate(
            name=name, price=price, duration_minutes=duration_minutes
        ))
    return _make
