import pytest
from datetime import datetime
from fastapi import HTTPException

from models import ClientAttendance, ClientService
from schemas import ClientAttendanceCreate, ClientServiceCreate, ClientUpdate
from services import client_store
from services.client_store import generate_initials


@pytest.mark.parametrize("name, initials", [
    ("Ana Silva", "AS"),
    ("Maria", "M"),
    ("maria da silva", "MD"),
    ("  Bruno   Costa  ", "BC"),
])
def test_generate_initials(name, initials):
    assert generate_initials(name) == initials


def test_add_client_defaults(make_client):
    client = make_client("Ana Silva", email="Ana.Silva@Example.com")

    assert client.id
    assert client.initials == "AS"
    assert client.status == "active"
    assert client.email == "ana.silva@example.com"


def test_update_client_recomputes_initials(db, make_client):
    client = make_client("Ana Silva")

    updated = client_store.update_client(db, client.id, ClientUpdate(name="Carla Mendes"))

    assert updated.initials == "CM"


def test_get_unknown_client_is_404(db):
    with pytest.raises(HTTPException) as exc:
        client_store.get_client(db, "nao-existe")
    assert exc.value.status_code == 404


def test_list_clients_by_status(db, make_client):
    make_client("Ana Silva")
    inactive = make_client("Bruno Costa")
    client_store.update_client(db, inactive.id, ClientUpdate(status="inactive"))

    assert [c.name for c in client_store.list_clients(db, "active")] == ["Ana Silva"]
    assert [c.name for c in client_store.list_clients(db, "inactive")] == ["Bruno Costa"]
    assert len(client_store.list_clients(db, "all")) == 2


def test_delete_client_keeps_history(db, make_client):
    client = make_client("Ana Silva")
    client_store.add_client_service(db, client.id, ClientServiceCreate(
        service_name="Corte de Cabelo", service_date=datetime(2024, 5, 10, 10), price=25
    ))
    client_store.add_client_attendance(db, client.id, ClientAttendanceCreate(
        appointment_id="ag-1", date=datetime(2024, 5, 10, 10), attended=True
    ))

    client_store.delete_client(db, client.id)

    assert client_store.find_client(db, client.id) is None
    assert db.query(ClientService).filter(ClientService.client_id == client.id).count() == 1
    assert db.query(ClientAttendance).filter(ClientAttendance.client_id == client.id).count() == 1


def test_add_client_service_requires_client(db):
    with pytest.raises(HTTPException) as exc:
        client_store.add_client_service(db, "nao-existe", ClientServiceCreate(
            service_name="Barba", service_date=datetime(2024, 5, 10, 10), price=12.5
        ))
    assert exc.value.status_code == 404


def test_client_services_newest_first(db, make_client):
    client = make_client()
    for day in (1, 3, 2):
        client_store.add_client_service(db, client.id, ClientServiceCreate(
            service_name="Barba", service_date=datetime(2024, 5, day, 10), price=12.5
        ))

    services = client_store.get_client_services(db, client.id)

    assert [s.service_date.day for s in services] == [3, 2, 1]


def test_auto_inactivate_clients(db, make_client, make_appointment):
    now = datetime(2024, 6, 15, 12, 0)
    recent = make_client("Ana Silva")
    old = make_client("Bruno Costa")
    never = make_client("Carla Mendes")
    make_appointment(recent, datetime(2024, 6, 1, 10, 0))
    make_appointment(old, datetime(2024, 3, 1, 10, 0))

    count = client_store.auto_inactivate_clients(db, days_inactive=45, now=now)

    assert count == 2
    assert client_store.get_client(db, recent.id).status == "active"
    assert client_store.get_client(db, old.id).status == "inactive"
    assert client_store.get_client(db, never.id).status == "inactive"
