from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from schemas import ServiceCreate, ServiceResponse
from services import service_catalog

router = APIRouter()


@router.get("", response_model=List[ServiceResponse])
def list_services(include_inactive: bool = False, db: Session = Depends(get_db)):
    """Listar serviços do catálogo"""
    return service_catalog.get_services(db, include_inactive)

@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(service: ServiceCreate, db: Session = Depends(get_db)):
    """Criar novo serviço"""
    return service_catalog.create_service(db, service)

@router.get("/{service_id}", response_model=ServiceResponse)
def get_service(service_id: str, db: Session = Depends(get_db)):
    return service_catalog.get_service(db, service_id)

@router.put("/{service_id}", response_model=ServiceResponse)
def update_service(service_id: str, service_update: ServiceCreate, db: Session = Depends(get_db)):
    """Atualizar serviço"""
    return service_catalog.update_service(db, service_id, service_update)

@router.delete("/{service_id}")
def delete_service(service_id: str, db: Session = Depends(get_db)):
    """Inativar serviço"""
    service_catalog.delete_service(db, service_id)
    return {"message": "Serviço inativado com sucesso"}
