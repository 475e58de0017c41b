from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import date
from typing import List, Optional
import logging
import random

from models import Appointment
from schemas import AppointmentCreate, AppointmentUpdate
from services.client_store import client_store
from utils.date_utils import day_bounds, get_lisbon_datetime, to_lisbon
from utils.db_utils import commit_or_rollback, update_fields

logger = logging.getLogger(__name__)

# Cores para os agendamentos
COLORS = ["blue", "green", "red", "purple", "orange", "pink", "yellow", "cyan", "teal", "indigo"]

# Campos que não aceitam null numa atualização
REQUIRED_FIELDS = ("start", "end_time", "client", "client_id", "service", "status", "color")


def build_title(client: str, service: str) -> str:
    return f"{client} - {service}"


class AppointmentStore:
    def create_appointment(self, db: Session, appointment: AppointmentCreate) -> Appointment:
        # Verificar se cliente existe
        client = client_store.get_client(db, appointment.client_id)

        if to_lisbon(appointment.end_time) < to_lisbon(appointment.start):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="O fim do agendamento não pode ser anterior ao início"
            )

        payload = appointment.model_dump()
        payload["start"] = to_lisbon(payload["start"])
        payload["end_time"] = to_lisbon(payload["end_time"])
        if not payload["client_initials"]:
            payload["client_initials"] = client.initials

        db_appointment = Appointment(
            **payload,
            title=build_title(appointment.client, appointment.service),
            color=random.choice(COLORS)
        )
        db.add(db_appointment)
        commit_or_rollback(db, "Não foi possível criar o agendamento", db_appointment)

        logger.info(
            "Agendamento %s criado para %s em %s",
            db_appointment.id, db_appointment.client, db_appointment.start.strftime("%d/%m/%Y %H:%M")
        )
        return db_appointment

    def get_appointment(self, db: Session, appointment_id: str) -> Appointment:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Agendamento não encontrado"
            )
        return appointment

    def list_appointments(self, db: Session, day: Optional[date] = None) -> List[Appointment]:
        if day is not None:
            return self.get_appointments_by_date(db, day)
        return db.query(Appointment).order_by(Appointment.start).all()

    def get_appointments_by_date(self, db: Session, day: date) -> List[Appointment]:
        """Agendamentos cujo início cai no dia informado"""
        start, end = day_bounds(day)
        return db.query(Appointment).filter(
            Appointment.start >= start,
            Appointment.start < end
        ).order_by(Appointment.start).all()

    def update_appointment(self, db: Session, appointment_id: str, appointment_update: AppointmentUpdate) -> Appointment:
        db_appointment = self.get_appointment(db, appointment_id)
        update_data = update_fields(appointment_update, REQUIRED_FIELDS)
        for field in ("start", "end_time"):
            if update_data.get(field) is not None:
                update_data[field] = to_lisbon(update_data[field])

        # Atualizar o título se o cliente ou serviço mudou
        if update_data.get("client") or update_data.get("service"):
            update_data["title"] = build_title(
                update_data.get("client") or db_appointment.client,
                update_data.get("service") or db_appointment.service
            )

        for field, value in update_data.items():
            setattr(db_appointment, field, value)

        if db_appointment.end_time < db_appointment.start:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="O fim do agendamento não pode ser anterior ao início"
            )

        db_appointment.updated_at = get_lisbon_datetime()
        commit_or_rollback(db, "Não foi possível atualizar o agendamento", db_appointment)

        return db_appointment

    def delete_appointment(self, db: Session, appointment_id: str):
        db_appointment = self.get_appointment(db, appointment_id)
        db.delete(db_appointment)
        commit_or_rollback(db, "Não foi possível excluir o agendamento")

appointment_store = AppointmentStore()
