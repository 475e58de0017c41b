from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional

from models import Service
from schemas import ServiceCreate
from utils.db_utils import commit_or_rollback

class ServiceCatalog:
    """Catálogo fixo de serviços usado em agendamentos e no fechamento de caixa"""

    def _ensure_unique_name(self, db: Session, name: str, exclude_id: Optional[str] = None):
        query = db.query(Service).filter(Service.name == name)
        if exclude_id:
            query = query.filter(Service.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Serviço com este nome já existe"
            )

    def create_service(self, db: Session, service: ServiceCreate) -> Service:
        self._ensure_unique_name(db, service.name)

        db_service = Service(**service.model_dump())
        db.add(db_service)
        commit_or_rollback(db, "Não foi possível criar o serviço", db_service)

        return db_service

    def get_service(self, db: Session, service_id: str) -> Service:
        service = db.query(Service).filter(Service.id == service_id).first()
        if not service:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Serviço não encontrado"
            )
        return service

    def find_active_by_name(self, db: Session, name: str) -> Optional[Service]:
        return db.query(Service).filter(
            Service.name == name,
            Service.is_active == True
        ).first()

    def get_services(self, db: Session, include_inactive: bool = False) -> List[Service]:
        query = db.query(Service)
        if not include_inactive:
            query = query.filter(Service.is_active == True)
        return query.order_by(Service.name).all()

    def update_service(self, db: Session, service_id: str, service_update: ServiceCreate) -> Service:
        db_service = self.get_service(db, service_id)

        if service_update.name != db_service.name:
            self._ensure_unique_name(db, service_update.name, exclude_id=service_id)

        for field, value in service_update.model_dump().items():
            setattr(db_service, field, value)

        commit_or_rollback(db, "Não foi possível atualizar o serviço", db_service)
        return db_service

    def delete_service(self, db: Session, service_id: str):
        """Inativa o serviço; registros antigos continuam com o nome"""
        db_service = self.get_service(db, service_id)
        db_service.is_active = False
        commit_or_rollback(db, "Não foi possível inativar o serviço")

service_catalog = ServiceCatalog()
