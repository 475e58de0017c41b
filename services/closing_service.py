"""
Fechamento de caixa: assistente em três etapas (agendamentos, serviços
adicionais, automações) persistido por data em ClosingRecord.

A passagem de "additional" para "automations" grava os registros do dia em
quatro etapas atômicas. Cada etapa aplicada fica anotada em
`applied_steps`; repetir o fechamento depois de uma falha retoma da etapa
que falhou sem duplicar as anteriores.
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException, status
from datetime import date, datetime
from typing import Callable, Optional
import logging

from models import Appointment, Client, ClosingRecord, new_id
from schemas import (
    AdditionalService, AdditionalServiceCreate,
    ClientAttendanceCreate, ClientServiceCreate,
    ClosingAppointment, ClosingAppointmentUpdate,
    ClosingAutomationsResponse, ClosingResponse, ClosingState, ClosingStats,
    PendingAutomation, TransactionCreate
)
from services.appointment_store import appointment_store as default_appointment_store
from services.automation_service import get_relevant_clients
from services.catalog_service import service_catalog as default_service_catalog
from services.client_store import client_store as default_client_store
from services.financial_store import financial_store as default_financial_store
from services.settings_store import settings_store as default_settings_store
from utils.date_utils import format_day, get_lisbon_datetime
from utils.db_utils import commit_or_rollback, update_fields

logger = logging.getLogger(__name__)

# Valor por hora usado para estimar o valor de um agendamento
HOURLY_RATE = 25

COMMIT_STEPS = ("attendance", "appointment_services", "additional_services", "summary")

NO_SHOW_REASON = "Não compareceu"


def estimate_value(appointment: Appointment) -> float:
    """duração/60 * 25, com a duração do serviço ou, na falta, fim - início"""
    if appointment.service_duration:
        duration = appointment.service_duration
    else:
        duration = (appointment.end_time - appointment.start).total_seconds() / 60
    return round(duration / 60 * HOURLY_RATE, 2)


def to_closing_appointment(appointment: Appointment) -> ClosingAppointment:
    value = estimate_value(appointment)
    return ClosingAppointment(
        id=appointment.id,
        client_id=appointment.client_id,
        client=appointment.client,
        client_initials=appointment.client_initials,
        service=appointment.service,
        start=appointment.start,
        end=appointment.end_time,
        status=appointment.status,
        attended=appointment.status != "cancelled",
        original_value=value,
        current_value=value,
        payment_method="cash"
    )


def attendance_confirmed(state: ClosingState) -> bool:
    """Todos os agendamentos têm comparecimento marcado (lista vazia passa)"""
    return all(isinstance(appointment.attended, bool) for appointment in state.appointments)


def compute_stats(state: ClosingState, pending_automations: int = 0) -> ClosingStats:
    attended = [appointment for appointment in state.appointments if appointment.attended]
    clients = {appointment.client_id for appointment in attended}
    clients.update(service.client_id for service in state.additional_services)

    total_revenue = sum(appointment.current_value for appointment in attended)
    total_revenue += sum(service.value for service in state.additional_services)

    return ClosingStats(
        total_clients=len(clients),
        total_services=len(attended) + len(state.additional_services),
        total_revenue=round(total_revenue, 2),
        pending_automations=pending_automations
    )


class ClosingWorkflow:
    def __init__(
        self,
        client_store=default_client_store,
        financial_store=default_financial_store,
        appointment_store=default_appointment_store,
        service_catalog=default_service_catalog,
        settings_store=default_settings_store
    ):
        self.client_store = client_store
        self.financial_store = financial_store
        self.appointment_store = appointment_store
        self.service_catalog = service_catalog
        self.settings_store = settings_store

    # Persistência do estado
    def _find_record(self, db: Session, day: date) -> Optional[ClosingRecord]:
        return db.query(ClosingRecord).filter(ClosingRecord.date == day).first()

    def _get_record(self, db: Session, day: date) -> ClosingRecord:
        record = self._find_record(db, day)
        if not record:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Fechamento não iniciado para esta data"
            )
        return record

    def _state(self, record: ClosingRecord) -> ClosingState:
        return ClosingState.model_validate(record.state or {})

    def _save_state(self, db: Session, record: ClosingRecord, state: ClosingState):
        record.state = state.model_dump(mode="json")
        record.updated_at = get_lisbon_datetime()
        commit_or_rollback(db, "Não foi possível salvar o fechamento", record)

    def _require_open(self, record: ClosingRecord):
        if record.completed_at is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Fechamento já concluído"
            )

    def _require_step(self, record: ClosingRecord, step: str):
        self._require_open(record)
        if record.step != step:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Etapa do fechamento não permite esta operação"
            )

    def _can_proceed(self, record: ClosingRecord, state: ClosingState) -> bool:
        if record.completed_at is not None:
            return False
        if record.step == "appointments":
            return attendance_confirmed(state)
        return True

    def to_response(self, record: ClosingRecord) -> ClosingResponse:
        state = self._state(record)
        return ClosingResponse(
            id=record.id,
            date=record.date,
            step=record.step,
            applied_steps=list(record.applied_steps or []),
            can_proceed=self._can_proceed(record, state),
            completed_at=record.completed_at,
            appointments=state.appointments,
            additional_services=state.additional_services
        )

    # Etapa 1: agendamentos
    def start_closing(self, db: Session, day: date) -> ClosingResponse:
        """Abre o fechamento do dia ou retoma o já existente"""
        record = self._find_record(db, day)
        if record:
            return self.to_response(record)

        appointments = self.appointment_store.get_appointments_by_date(db, day)
        state = ClosingState(appointments=[to_closing_appointment(app) for app in appointments])

        record = ClosingRecord(
            id=new_id(),
            date=day,
            step="appointments",
            state=state.model_dump(mode="json"),
            applied_steps=[]
        )
        db.add(record)
        commit_or_rollback(db, "Não foi possível iniciar o fechamento", record)

        logger.info("Fechamento de %s iniciado com %s agendamento(s)", format_day(day), len(appointments))
        return self.to_response(record)

    def get_closing(self, db: Session, day: date) -> ClosingResponse:
        return self.to_response(self._get_record(db, day))

    def update_closing_appointment(
        self,
        db: Session,
        day: date,
        appointment_id: str,
        appointment_update: ClosingAppointmentUpdate
    ) -> ClosingResponse:
        record = self._get_record(db, day)
        self._require_step(record, "appointments")
        if record.applied_steps:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Registros do fechamento já foram gravados"
            )

        # Só "attended" aceita null: marca o comparecimento como não confirmado
        update_data = update_fields(appointment_update, ("current_value", "payment_method"))

        state = self._state(record)
        for index, appointment in enumerate(state.appointments):
            if appointment.id == appointment_id:
                state.appointments[index] = ClosingAppointment.model_validate(
                    {**appointment.model_dump(), **update_data}
                )
                break
        else:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Agendamento não encontrado no fechamento"
            )

        self._save_state(db, record, state)
        return self.to_response(record)

    # Etapa 2: serviços adicionais
    def _require_additional_editable(self, record: ClosingRecord):
        self._require_step(record, "additional")
        if "additional_services" in (record.applied_steps or []):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Serviços adicionais já foram gravados"
            )

    def add_additional_service(self, db: Session, day: date, service: AdditionalServiceCreate) -> ClosingResponse:
        record = self._get_record(db, day)
        self._require_additional_editable(record)

        self.client_store.get_client(db, service.client_id)
        catalog_entry = self.service_catalog.find_active_by_name(db, service.service_name)
        if not catalog_entry:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Serviço não encontrado no catálogo"
            )

        value = service.value if service.value is not None else round(catalog_entry.price, 2)
        state = self._state(record)
        state.additional_services.append(AdditionalService(
            client_id=service.client_id,
            service_name=catalog_entry.name,
            value=value,
            payment_method=service.payment_method
        ))

        self._save_state(db, record, state)
        return self.to_response(record)

    def remove_additional_service(self, db: Session, day: date, index: int) -> ClosingResponse:
        record = self._get_record(db, day)
        self._require_additional_editable(record)

        state = self._state(record)
        if index < 0 or index >= len(state.additional_services):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Serviço adicional não encontrado"
            )
        state.additional_services.pop(index)

        self._save_state(db, record, state)
        return self.to_response(record)

    # Transições
    def next_step(self, db: Session, day: date, now: Optional[datetime] = None) -> ClosingResponse:
        record = self._get_record(db, day)
        self._require_open(record)
        state = self._state(record)

        if record.step == "appointments":
            if not attendance_confirmed(state):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Confirme o comparecimento de todos os agendamentos"
                )
            record.step = "additional"
            commit_or_rollback(db, "Não foi possível avançar o fechamento", record)
            return self.to_response(record)

        if record.step == "additional":
            self._run_commit_phase(db, record, state, now or get_lisbon_datetime())
            record.step = "automations"
            commit_or_rollback(db, "Não foi possível avançar o fechamento", record)
            logger.info("Fechamento de %s gravado", format_day(day))
            return self.to_response(record)

        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Última etapa do fechamento; use a conclusão"
        )

    def previous_step(self, db: Session, day: date) -> ClosingResponse:
        record = self._get_record(db, day)
        self._require_open(record)

        previous = {"additional": "appointments", "automations": "additional"}.get(record.step)
        if previous is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Primeira etapa do fechamento"
            )

        record.step = previous
        commit_or_rollback(db, "Não foi possível voltar a etapa do fechamento", record)
        return self.to_response(record)

    # Gravação dos registros do dia
    def _run_commit_phase(self, db: Session, record: ClosingRecord, state: ClosingState, now: datetime):
        for step_name in COMMIT_STEPS:
            if step_name in (record.applied_steps or []):
                continue

            apply_step = getattr(self, f"_apply_{step_name}")
            try:
                apply_step(db, record.date, state, now)
                record.applied_steps = [*(record.applied_steps or []), step_name]
                record.updated_at = get_lisbon_datetime()
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Falha na etapa '%s' do fechamento de %s", step_name, format_day(record.date))
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Erro ao processar fechamento de caixa"
                )

    def _apply_attendance(self, db: Session, day: date, state: ClosingState, now: datetime):
        for appointment in state.appointments:
            attended = bool(appointment.attended)
            self.client_store.stage_client_attendance(db, appointment.client_id, ClientAttendanceCreate(
                appointment_id=appointment.id,
                date=appointment.start,
                attended=attended,
                reason=None if attended else NO_SHOW_REASON
            ))

    def _apply_appointment_services(self, db: Session, day: date, state: ClosingState, now: datetime):
        for appointment in state.appointments:
            if not appointment.attended:
                continue
            transaction = self.financial_store.stage_transaction(db, TransactionCreate(
                type="income",
                category="service",
                amount=appointment.current_value,
                date=appointment.start,
                description=f"{appointment.service} - {appointment.client}",
                related_appointment_id=appointment.id,
                related_client_id=appointment.client_id,
                payment_method=appointment.payment_method
            ))
            self.client_store.stage_client_service(db, appointment.client_id, ClientServiceCreate(
                service_name=appointment.service,
                service_date=appointment.start,
                price=appointment.current_value,
                attended=True,
                payment_method=appointment.payment_method,
                transaction_id=transaction.id
            ))

    def _apply_additional_services(self, db: Session, day: date, state: ClosingState, now: datetime):
        service_date = datetime.combine(day, now.time())
        for service in state.additional_services:
            transaction = self.financial_store.stage_transaction(db, TransactionCreate(
                type="income",
                category="service",
                amount=service.value,
                date=service_date,
                description=f"Serviço adicional: {service.service_name}",
                related_client_id=service.client_id,
                payment_method=service.payment_method
            ))
            self.client_store.stage_client_service(db, service.client_id, ClientServiceCreate(
                service_name=service.service_name,
                service_date=service_date,
                price=service.value,
                attended=True,
                payment_method=service.payment_method,
                notes="Serviço adicional",
                transaction_id=transaction.id
            ))

    def _apply_summary(self, db: Session, day: date, state: ClosingState, now: datetime):
        self.financial_store.stage_daily_summary(db, day)

    # Etapa 3: automações
    def get_automation_step(self, db: Session, day: date, now: Optional[datetime] = None) -> ClosingAutomationsResponse:
        record = self._get_record(db, day)
        if record.step != "automations":
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Etapa do fechamento não permite esta operação"
            )

        active = [automation for automation in self.settings_store.get_automations() if automation.active]
        clients = db.query(Client).all()
        appointments = db.query(Appointment).all()

        pending = [
            PendingAutomation(
                automation=automation,
                matched_clients=len(get_relevant_clients(automation, clients, appointments, now=now))
            )
            for automation in active
        ]
        return ClosingAutomationsResponse(
            stats=compute_stats(self._state(record), pending_automations=len(active)),
            automations=pending
        )

    def complete_closing(
        self,
        db: Session,
        day: date,
        on_complete: Optional[Callable[[ClosingResponse], None]] = None,
        now: Optional[datetime] = None
    ) -> ClosingResponse:
        record = self._get_record(db, day)
        self._require_step(record, "automations")

        record.completed_at = now or get_lisbon_datetime()
        commit_or_rollback(db, "Não foi possível concluir o fechamento", record)

        response = self.to_response(record)
        if on_complete:
            on_complete(response)
        logger.info("Fechamento de %s concluído", format_day(day))
        return response

closing_workflow = ClosingWorkflow()
