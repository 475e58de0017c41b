import pytest
from datetime import date, datetime
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from models import ClientAttendance, ClientService, DailySummary, Transaction
from schemas import AdditionalServiceCreate, ClosingAppointmentUpdate
from services.closing_service import ClosingWorkflow, estimate_value
from services.financial_store import FinancialStore

DAY = date(2024, 5, 10)
NOW = datetime(2024, 5, 10, 19, 30)


class FlakyFinancialStore(FinancialStore):
    """Falha ao gravar transações enquanto `fail` estiver ligado"""

    def __init__(self):
        self.fail = True

    def stage_transaction(self, db, transaction):
        if self.fail:
            raise SQLAlchemyError("falha simulada")
        return super().stage_transaction(db, transaction)


@pytest.fixture
def workflow():
    return ClosingWorkflow()


@pytest.fixture
def day_setup(make_client, make_appointment, make_service):
    ana = make_client("Ana Silva")
    bruno = make_client("Bruno Costa")
    appointment = make_appointment(ana, datetime(2024, 5, 10, 10, 0), minutes=60)
    make_service("Manicure", price=18.75)
    return ana, bruno, appointment


def test_estimate_value_uses_duration(make_client, make_appointment):
    client = make_client()
    by_length = make_appointment(client, datetime(2024, 5, 10, 10, 0), minutes=90)
    by_service = make_appointment(client, datetime(2024, 5, 10, 12, 0), minutes=90, service_duration=45)

    assert estimate_value(by_length) == 37.5
    assert estimate_value(by_service) == 18.75


def test_start_builds_working_set(db, workflow, make_client, make_appointment):
    client = make_client()
    make_appointment(client, datetime(2024, 5, 10, 10, 0), status="confirmed")
    make_appointment(client, datetime(2024, 5, 10, 14, 0), status="cancelled")
    make_appointment(client, datetime(2024, 5, 11, 10, 0))

    closing = workflow.start_closing(db, DAY)

    assert closing.step == "appointments"
    assert [a.attended for a in closing.appointments] == [True, False]
    assert all(a.current_value == 25.0 and a.payment_method == "cash" for a in closing.appointments)
    assert closing.can_proceed is True


def test_start_resumes_existing_record(db, workflow, day_setup):
    first = workflow.start_closing(db, DAY)
    second = workflow.start_closing(db, DAY)

    assert first.id == second.id


def test_empty_day_can_proceed(db, workflow):
    closing = workflow.start_closing(db, DAY)

    assert closing.appointments == []
    assert closing.can_proceed is True
    assert workflow.next_step(db, DAY).step == "additional"


def test_guard_blocks_unconfirmed_attendance(db, workflow, day_setup):
    _, _, appointment = day_setup
    workflow.start_closing(db, DAY)

    closing = workflow.update_closing_appointment(db, DAY, appointment.id, ClosingAppointmentUpdate(attended=None))
    assert closing.can_proceed is False

    with pytest.raises(HTTPException) as exc:
        workflow.next_step(db, DAY)
    assert exc.value.status_code == 400


def test_total_revenue_includes_attended_and_additional(db, workflow, day_setup):
    _, bruno, appointment = day_setup
    workflow.start_closing(db, DAY)
    workflow.update_closing_appointment(db, DAY, appointment.id, ClosingAppointmentUpdate(current_value=30))
    workflow.next_step(db, DAY)
    workflow.add_additional_service(db, DAY, AdditionalServiceCreate(
        client_id=bruno.id, service_name="Manicure", value=20
    ))
    workflow.next_step(db, DAY, now=NOW)

    result = workflow.get_automation_step(db, DAY, now=NOW)

    assert result.stats.total_revenue == 50
    assert result.stats.total_clients == 2
    assert result.stats.total_services == 2
    assert result.stats.pending_automations == 5


def test_commit_phase_writes_one_transaction_per_billable_event(db, workflow, day_setup):
    ana, bruno, appointment = day_setup
    workflow.start_closing(db, DAY)
    workflow.update_closing_appointment(db, DAY, appointment.id, ClosingAppointmentUpdate(
        current_value=30, payment_method="card"
    ))
    workflow.next_step(db, DAY)
    workflow.add_additional_service(db, DAY, AdditionalServiceCreate(client_id=bruno.id, service_name="Manicure"))

    closing = workflow.next_step(db, DAY, now=NOW)

    assert closing.step == "automations"
    assert closing.applied_steps == ["attendance", "appointment_services", "additional_services", "summary"]

    transactions = db.query(Transaction).order_by(Transaction.amount).all()
    assert [tx.amount for tx in transactions] == [18.75, 30.0]

    services = db.query(ClientService).all()
    assert len(services) == 2
    assert {s.transaction_id for s in services} == {tx.id for tx in transactions}

    appointment_service = next(s for s in services if s.client_id == ana.id)
    assert appointment_service.payment_method == "card"

    additional_service = next(s for s in services if s.client_id == bruno.id)
    assert additional_service.service_date == datetime(2024, 5, 10, 19, 30)

    summary = db.query(DailySummary).filter(DailySummary.date == DAY).one()
    assert summary.total_income == 48.75
    assert summary.transaction_count == 2


def test_no_show_records_reason_and_no_revenue(db, workflow, day_setup):
    ana, _, appointment = day_setup
    workflow.start_closing(db, DAY)
    workflow.update_closing_appointment(db, DAY, appointment.id, ClosingAppointmentUpdate(attended=False))
    workflow.next_step(db, DAY)
    workflow.next_step(db, DAY, now=NOW)

    attendance = db.query(ClientAttendance).filter(ClientAttendance.client_id == ana.id).one()
    assert attendance.attended is False
    assert attendance.reason == "Não compareceu"
    assert db.query(Transaction).count() == 0
    assert db.query(ClientService).count() == 0


def test_failed_step_rolls_back_and_resumes(db, day_setup):
    flaky = FlakyFinancialStore()
    workflow = ClosingWorkflow(financial_store=flaky)
    workflow.start_closing(db, DAY)
    workflow.next_step(db, DAY)

    with pytest.raises(HTTPException) as exc:
        workflow.next_step(db, DAY, now=NOW)
    assert exc.value.status_code == 500
    assert exc.value.detail == "Erro ao processar fechamento de caixa"

    closing = workflow.get_closing(db, DAY)
    assert closing.step == "additional"
    assert closing.applied_steps == ["attendance"]
    assert db.query(ClientAttendance).count() == 1
    assert db.query(Transaction).count() == 0
    assert db.query(ClientService).count() == 0

    flaky.fail = False
    closing = workflow.next_step(db, DAY, now=NOW)

    assert closing.step == "automations"
    assert db.query(ClientAttendance).count() == 1
    assert db.query(Transaction).count() == 1


def test_edits_only_in_their_step(db, workflow, day_setup):
    _, bruno, appointment = day_setup
    workflow.start_closing(db, DAY)

    with pytest.raises(HTTPException) as exc:
        workflow.add_additional_service(db, DAY, AdditionalServiceCreate(client_id=bruno.id, service_name="Manicure"))
    assert exc.value.status_code == 409

    workflow.next_step(db, DAY)
    with pytest.raises(HTTPException) as exc:
        workflow.update_closing_appointment(db, DAY, appointment.id, ClosingAppointmentUpdate(current_value=10))
    assert exc.value.status_code == 409

    # Sem registros gravados ainda, voltar permite editar
    workflow.previous_step(db, DAY)
    closing = workflow.update_closing_appointment(db, DAY, appointment.id, ClosingAppointmentUpdate(current_value=10))
    assert closing.appointments[0].current_value == 10


def test_additional_service_validation(db, workflow, day_setup):
    _, bruno, _ = day_setup
    workflow.start_closing(db, DAY)
    workflow.next_step(db, DAY)

    with pytest.raises(HTTPException) as exc:
        workflow.add_additional_service(db, DAY, AdditionalServiceCreate(client_id="nao-existe", service_name="Manicure"))
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        workflow.add_additional_service(db, DAY, AdditionalServiceCreate(client_id=bruno.id, service_name="Massagem"))
    assert exc.value.status_code == 400

    closing = workflow.add_additional_service(db, DAY, AdditionalServiceCreate(client_id=bruno.id, service_name="Manicure"))
    assert closing.additional_services[0].value == 18.75

    closing = workflow.remove_additional_service(db, DAY, 0)
    assert closing.additional_services == []


def test_complete_only_from_automations(db, workflow, day_setup):
    workflow.start_closing(db, DAY)
    with pytest.raises(HTTPException) as exc:
        workflow.complete_closing(db, DAY)
    assert exc.value.status_code == 409

    workflow.next_step(db, DAY)
    workflow.next_step(db, DAY, now=NOW)

    completed = []
    closing = workflow.complete_closing(db, DAY, on_complete=completed.append, now=NOW)

    assert closing.completed_at == NOW
    assert closing.can_proceed is False
    assert completed == [closing]

    with pytest.raises(HTTPException) as exc:
        workflow.previous_step(db, DAY)
    assert exc.value.status_code == 409


def test_previous_from_automations_does_not_reapply(db, workflow, day_setup):
    workflow.start_closing(db, DAY)
    workflow.next_step(db, DAY)
    workflow.next_step(db, DAY, now=NOW)

    assert workflow.previous_step(db, DAY).step == "additional"
    workflow.next_step(db, DAY, now=NOW)

    assert db.query(Transaction).count() == 1
    assert db.query(ClientAttendance).count() == 1
