from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from typing import List, Optional
import logging

from models import Client, ClientService, ClientAttendance, Appointment, new_id
from schemas import (
    ClientCreate, ClientUpdate,
    ClientServiceCreate, ClientServiceUpdate,
    ClientAttendanceCreate, ClientAttendanceUpdate
)
from utils.date_utils import get_lisbon_datetime
from utils.db_utils import commit_or_rollback, update_fields

logger = logging.getLogger(__name__)


def generate_initials(name: str) -> str:
    """Primeira letra de cada palavra do nome, em maiúsculas, no máximo 2"""
    return "".join(part[0] for part in name.split()).upper()[:2]


def _normalize_email(value: Optional[str]) -> Optional[str]:
    return (value or '').strip().lower() or None


class ClientStore:
    def add_client(self, db: Session, client: ClientCreate) -> Client:
        payload = client.model_dump()
        payload["name"] = payload["name"].strip()
        payload["email"] = _normalize_email(payload["email"])
        if payload["phone"] is not None:
            payload["phone"] = payload["phone"].strip() or None

        db_client = Client(
            **payload,
            initials=generate_initials(payload["name"]),
            status="active"
        )
        db.add(db_client)
        commit_or_rollback(db, "Não foi possível adicionar o cliente", db_client)

        logger.info("Cliente %s adicionado", db_client.id)
        return db_client

    def get_client(self, db: Session, client_id: str) -> Client:
        client = db.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cliente não encontrado"
            )
        return client

    def find_client(self, db: Session, client_id: str) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id).first()

    def list_clients(self, db: Session, status_filter: str = "all", skip: int = 0, limit: int = 100) -> List[Client]:
        """Buscar clientes com filtro de status"""
        query = db.query(Client)

        if status_filter in ("active", "inactive"):
            query = query.filter(Client.status == status_filter)
        # Se "all", não aplica filtro

        return query.order_by(Client.name).offset(skip).limit(limit).all()

    def update_client(self, db: Session, client_id: str, client_update: ClientUpdate) -> Client:
        db_client = self.get_client(db, client_id)
        update_data = update_fields(client_update, ("name", "status"))

        if "name" in update_data:
            update_data["name"] = update_data["name"].strip()
            update_data["initials"] = generate_initials(update_data["name"])
        if "email" in update_data:
            update_data["email"] = _normalize_email(update_data["email"])

        for field, value in update_data.items():
            setattr(db_client, field, value)

        db_client.updated_at = get_lisbon_datetime()
        commit_or_rollback(db, "Não foi possível atualizar o cliente", db_client)

        return db_client

    def delete_client(self, db: Session, client_id: str):
        """Excluir cliente; serviços e comparecimentos ficam órfãos"""
        db_client = self.get_client(db, client_id)
        db.delete(db_client)
        commit_or_rollback(db, "Não foi possível excluir o cliente")

    def auto_inactivate_clients(self, db: Session, days_inactive: int = 45, now: Optional[datetime] = None) -> int:
        """Inativar clientes ativos sem agendamentos desde a data de corte"""
        cutoff_date = (now or get_lisbon_datetime()) - timedelta(days=days_inactive)

        clients_to_inactivate = db.query(Client).filter(
            and_(
                Client.status == "active",
                ~Client.id.in_(
                    db.query(Appointment.client_id).filter(
                        Appointment.start >= cutoff_date
                    ).distinct()
                )
            )
        ).all()

        for client in clients_to_inactivate:
            client.status = "inactive"
            client.updated_at = get_lisbon_datetime()

        commit_or_rollback(db, "Não foi possível inativar os clientes")
        return len(clients_to_inactivate)

    # Serviços prestados
    def stage_client_service(self, db: Session, client_id: str, service: ClientServiceCreate) -> ClientService:
        """Adiciona à sessão sem commit; quem chama decide quando gravar"""
        db_service = ClientService(id=new_id(), client_id=client_id, **service.model_dump())
        db.add(db_service)
        return db_service

    def add_client_service(self, db: Session, client_id: str, service: ClientServiceCreate) -> ClientService:
        self.get_client(db, client_id)

        db_service = self.stage_client_service(db, client_id, service)
        commit_or_rollback(db, "Não foi possível registrar o serviço", db_service)

        return db_service

    def get_client_service(self, db: Session, service_id: str) -> ClientService:
        service = db.query(ClientService).filter(ClientService.id == service_id).first()
        if not service:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Serviço do cliente não encontrado"
            )
        return service

    def update_client_service(self, db: Session, service_id: str, service_update: ClientServiceUpdate) -> ClientService:
        db_service = self.get_client_service(db, service_id)

        update_data = update_fields(service_update, ("service_name", "service_date", "price", "attended"))
        for field, value in update_data.items():
            setattr(db_service, field, value)

        db_service.updated_at = get_lisbon_datetime()
        commit_or_rollback(db, "Não foi possível atualizar o serviço", db_service)

        return db_service

    def delete_client_service(self, db: Session, service_id: str):
        db_service = self.get_client_service(db, service_id)
        db.delete(db_service)
        commit_or_rollback(db, "Não foi possível excluir o serviço")

    def get_client_services(self, db: Session, client_id: str) -> List[ClientService]:
        return db.query(ClientService).filter(
            ClientService.client_id == client_id
        ).order_by(ClientService.service_date.desc()).all()

    # Histórico de comparecimento
    def stage_client_attendance(self, db: Session, client_id: str, attendance: ClientAttendanceCreate) -> ClientAttendance:
        db_attendance = ClientAttendance(id=new_id(), client_id=client_id, **attendance.model_dump())
        db.add(db_attendance)
        return db_attendance

    def add_client_attendance(self, db: Session, client_id: str, attendance: ClientAttendanceCreate) -> ClientAttendance:
        self.get_client(db, client_id)

        db_attendance = self.stage_client_attendance(db, client_id, attendance)
        commit_or_rollback(db, "Não foi possível registrar o comparecimento", db_attendance)

        return db_attendance

    def update_client_attendance(self, db: Session, attendance_id: str, attendance_update: ClientAttendanceUpdate) -> ClientAttendance:
        db_attendance = db.query(ClientAttendance).filter(ClientAttendance.id == attendance_id).first()
        if not db_attendance:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Registro de comparecimento não encontrado"
            )

        for field, value in update_fields(attendance_update, ("date", "attended")).items():
            setattr(db_attendance, field, value)

        commit_or_rollback(db, "Não foi possível atualizar o comparecimento", db_attendance)
        return db_attendance

    def get_client_attendance(self, db: Session, client_id: str) -> List[ClientAttendance]:
        return db.query(ClientAttendance).filter(
            ClientAttendance.client_id == client_id
        ).order_by(ClientAttendance.date.desc()).all()

client_store = ClientStore()
