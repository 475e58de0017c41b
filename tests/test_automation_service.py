from datetime import date, datetime

from models import Appointment, Client
from schemas import Automation, ClientUpdate
from services import client_store
from services.automation_service import build_relevant_client, get_relevant_clients, personalize_message

NOW = datetime(2024, 6, 15, 9, 0)


def automation(trigger, time_value=1, template="Olá {nome}"):
    return Automation(
        id=99,
        name="Teste",
        type="message",
        trigger=trigger,
        time_value=time_value,
        message_template=template
    )


def load(db):
    return db.query(Client).all(), db.query(Appointment).all()


def names(clients):
    return sorted(client.name for client in clients)


def test_birthday_matches_month_and_day(db, make_client):
    make_client("Ana Silva", birth_date=date(1990, 6, 15))
    make_client("Bruno Costa", birth_date=date(1990, 6, 16))
    make_client("Carla Mendes")

    clients, appointments = load(db)

    assert names(get_relevant_clients(automation("birthday"), clients, appointments, now=NOW)) == ["Ana Silva"]


def test_before_and_after_appointment(db, make_client, make_appointment):
    today = make_client("Ana Silva")
    tomorrow = make_client("Bruno Costa")
    make_appointment(today, datetime(2024, 6, 15, 14, 0))
    make_appointment(tomorrow, datetime(2024, 6, 16, 10, 0))

    clients, appointments = load(db)

    assert names(get_relevant_clients(automation("after_appointment"), clients, appointments, now=NOW)) == ["Ana Silva"]
    assert names(get_relevant_clients(automation("before_appointment"), clients, appointments, now=NOW)) == ["Bruno Costa"]


def test_no_show_uses_cancelled_status(db, make_client, make_appointment):
    cancelled = make_client("Ana Silva")
    confirmed = make_client("Bruno Costa")
    make_appointment(cancelled, datetime(2024, 6, 10, 10, 0), status="cancelled")
    make_appointment(confirmed, datetime(2024, 6, 10, 11, 0), status="confirmed")

    clients, appointments = load(db)

    assert names(get_relevant_clients(automation("no_show"), clients, appointments, now=NOW)) == ["Ana Silva"]


def test_inactivity(db, make_client, make_appointment):
    old = make_client("Ana Silva")
    recent = make_client("Bruno Costa")
    make_client("Carla Mendes")
    inactive = make_client("Diogo Santos")
    client_store.update_client(db, inactive.id, ClientUpdate(status="inactive"))
    make_appointment(old, datetime(2024, 5, 1, 10, 0))
    make_appointment(recent, datetime(2024, 5, 1, 10, 0))
    make_appointment(recent, datetime(2024, 6, 10, 10, 0))

    clients, appointments = load(db)
    relevant = get_relevant_clients(automation("inactivity", time_value=30), clients, appointments, now=NOW)

    assert names(relevant) == ["Ana Silva", "Carla Mendes"]


def test_low_stock_has_no_clients(db, make_client):
    make_client("Ana Silva")
    clients, appointments = load(db)

    assert get_relevant_clients(automation("low_stock"), clients, appointments, now=NOW) == []


def test_personalize_message(db, make_client, make_appointment):
    ana = make_client("Ana Silva")
    bruno = make_client("Bruno Costa")
    make_appointment(ana, datetime(2024, 4, 2, 10, 0), service="Barba")
    make_appointment(ana, datetime(2024, 5, 1, 10, 0), service="Coloração")

    _, appointments = load(db)
    template = "Olá {nome}, sua última visita foi em {data} ({serviço})."

    assert personalize_message(template, ana, appointments) == "Olá Ana Silva, sua última visita foi em 01/05/2024 (Coloração)."
    assert personalize_message(template, bruno, appointments) == "Olá Bruno Costa, sua última visita foi em N/A (serviço)."


def test_relevant_client_carries_whatsapp_link(db, make_client):
    ana = make_client("Ana Silva", phone="(+351) 912 345 678")
    entry = build_relevant_client(automation("birthday", template="Parabéns {nome}!"), ana, [])

    assert entry.message == "Parabéns Ana Silva!"
    assert entry.link == "https://wa.me/351912345678?text=Parab%C3%A9ns%20Ana%20Silva!"
