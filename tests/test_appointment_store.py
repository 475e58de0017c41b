import pytest
from datetime import date, datetime, timedelta, timezone
from fastapi import HTTPException

from schemas import AppointmentCreate, AppointmentUpdate
from services import appointment_store
from services.appointment_store import COLORS


def test_create_appointment(make_client, make_appointment):
    client = make_client("Ana Silva")

    appointment = make_appointment(client, datetime(2024, 5, 10, 10, 0), service="Manicure")

    assert appointment.title == "Ana Silva - Manicure"
    assert appointment.color in COLORS
    assert appointment.client_initials == "AS"
    assert appointment.end_time == datetime(2024, 5, 10, 11, 0)


def test_status_defaults_to_pending(db, make_client):
    client = make_client()
    appointment = appointment_store.create_appointment(db, AppointmentCreate(
        start=datetime(2024, 5, 10, 10, 0),
        end_time=datetime(2024, 5, 10, 10, 30),
        client=client.name,
        client_id=client.id,
        service="Barba"
    ))

    assert appointment.status == "pending"


def test_aware_datetimes_are_stored_in_lisbon_time(db, make_client):
    client = make_client()
    start = datetime(2024, 7, 1, 9, 0, tzinfo=timezone.utc)
    appointment = appointment_store.create_appointment(db, AppointmentCreate(
        start=start,
        end_time=start + timedelta(hours=1),
        client=client.name,
        client_id=client.id,
        service="Barba"
    ))

    # Verão: Lisboa = UTC+1
    assert appointment.start == datetime(2024, 7, 1, 10, 0)


def test_create_requires_existing_client(db):
    with pytest.raises(HTTPException) as exc:
        appointment_store.create_appointment(db, AppointmentCreate(
            start=datetime(2024, 5, 10, 10, 0),
            end_time=datetime(2024, 5, 10, 11, 0),
            client="Fantasma",
            client_id="nao-existe",
            service="Barba"
        ))
    assert exc.value.status_code == 404


def test_end_before_start_is_rejected(db, make_client):
    client = make_client()
    with pytest.raises(HTTPException) as exc:
        appointment_store.create_appointment(db, AppointmentCreate(
            start=datetime(2024, 5, 10, 10, 0),
            end_time=datetime(2024, 5, 10, 9, 0),
            client=client.name,
            client_id=client.id,
            service="Barba"
        ))
    assert exc.value.status_code == 400


def test_update_recomputes_title(db, make_client, make_appointment):
    appointment = make_appointment(make_client("Ana Silva"), datetime(2024, 5, 10, 10, 0))

    updated = appointment_store.update_appointment(db, appointment.id, AppointmentUpdate(service="Coloração"))

    assert updated.title == "Ana Silva - Coloração"


def test_update_keeps_title_when_names_unchanged(db, make_client, make_appointment):
    appointment = make_appointment(make_client("Ana Silva"), datetime(2024, 5, 10, 10, 0))

    updated = appointment_store.update_appointment(db, appointment.id, AppointmentUpdate(status="cancelled"))

    assert updated.title == "Ana Silva - Corte de Cabelo"
    assert updated.status == "cancelled"


def test_get_appointments_by_date(db, make_client, make_appointment):
    client = make_client()
    make_appointment(client, datetime(2024, 5, 10, 15, 0))
    make_appointment(client, datetime(2024, 5, 10, 9, 0))
    make_appointment(client, datetime(2024, 5, 11, 0, 0))

    appointments = appointment_store.get_appointments_by_date(db, date(2024, 5, 10))

    assert [a.start.hour for a in appointments] == [9, 15]


def test_delete_appointment(db, make_client, make_appointment):
    appointment = make_appointment(make_client(), datetime(2024, 5, 10, 10, 0))

    appointment_store.delete_appointment(db, appointment.id)

    with pytest.raises(HTTPException):
        appointment_store.get_appointment(db, appointment.id)
