from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from schemas import (
    ClientCreate, ClientUpdate, ClientResponse,
    ClientServiceCreate, ClientServiceUpdate, ClientServiceResponse,
    ClientAttendanceCreate, ClientAttendanceUpdate, ClientAttendanceResponse
)
from services import client_store

router = APIRouter()


@router.get("/clients", response_model=List[ClientResponse])
def list_clients(
    status_filter: str = Query("all", alias="status", description="Filtro de status: all, active, inactive"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db)
):
    """Listar clientes com filtro de status"""
    return client_store.list_clients(db, status_filter, skip, limit)

@router.post("/clients", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
def create_client(client: ClientCreate, db: Session = Depends(get_db)):
    """Cadastrar novo cliente"""
    return client_store.add_client(db, client)

@router.post("/clients/auto-inactivate")
def auto_inactivate_clients(days_inactive: int = Query(45, ge=1), db: Session = Depends(get_db)):
    """Inativar clientes sem agendamentos nos últimos dias"""
    count = client_store.auto_inactivate_clients(db, days_inactive)
    return {"message": f"{count} clientes foram inativados", "count": count}

@router.get("/clients/{client_id}", response_model=ClientResponse)
def get_client(client_id: str, db: Session = Depends(get_db)):
    return client_store.get_client(db, client_id)

@router.put("/clients/{client_id}", response_model=ClientResponse)
def update_client(client_id: str, client_update: ClientUpdate, db: Session = Depends(get_db)):
    """Atualizar cliente"""
    return client_store.update_client(db, client_id, client_update)

@router.delete("/clients/{client_id}")
def delete_client(client_id: str, db: Session = Depends(get_db)):
    """Excluir cliente (histórico de serviços e comparecimento é mantido)"""
    client_store.delete_client(db, client_id)
    return {"message": "Cliente excluído com sucesso"}


# Serviços prestados
@router.get("/clients/{client_id}/services", response_model=List[ClientServiceResponse])
def get_client_services(client_id: str, db: Session = Depends(get_db)):
    return client_store.get_client_services(db, client_id)

@router.post("/clients/{client_id}/services", response_model=ClientServiceResponse, status_code=status.HTTP_201_CREATED)
def add_client_service(client_id: str, service: ClientServiceCreate, db: Session = Depends(get_db)):
    """Registrar serviço prestado ao cliente"""
    return client_store.add_client_service(db, client_id, service)

@router.put("/client-services/{service_id}", response_model=ClientServiceResponse)
def update_client_service(service_id: str, service_update: ClientServiceUpdate, db: Session = Depends(get_db)):
    return client_store.update_client_service(db, service_id, service_update)

@router.delete("/client-services/{service_id}")
def delete_client_service(service_id: str, db: Session = Depends(get_db)):
    client_store.delete_client_service(db, service_id)
    return {"message": "Serviço excluído com sucesso"}


# Comparecimento
@router.get("/clients/{client_id}/attendance", response_model=List[ClientAttendanceResponse])
def get_client_attendance(client_id: str, db: Session = Depends(get_db)):
    """Histórico de comparecimento do cliente"""
    return client_store.get_client_attendance(db, client_id)

@router.post("/clients/{client_id}/attendance", response_model=ClientAttendanceResponse, status_code=status.HTTP_201_CREATED)
def add_client_attendance(client_id: str, attendance: ClientAttendanceCreate, db: Session = Depends(get_db)):
    return client_store.add_client_attendance(db, client_id, attendance)

@router.put("/client-attendance/{attendance_id}", response_model=ClientAttendanceResponse)
def update_client_attendance(attendance_id: str, attendance_update: ClientAttendanceUpdate, db: Session = Depends(get_db)):
    return client_store.update_client_attendance(db, attendance_id, attendance_update)
