from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional

from database import get_db
from schemas import AppointmentCreate, AppointmentUpdate, AppointmentResponse
from services import appointment_store

router = APIRouter()


@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    day: Optional[date] = Query(None, alias="date", description="Dia no formato AAAA-MM-DD"),
    db: Session = Depends(get_db)
):
    """Listar agendamentos (opcionalmente de um dia)"""
    return appointment_store.list_appointments(db, day)

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(appointment: AppointmentCreate, db: Session = Depends(get_db)):
    """Criar agendamento"""
    return appointment_store.create_appointment(db, appointment)

@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(appointment_id: str, db: Session = Depends(get_db)):
    return appointment_store.get_appointment(db, appointment_id)

@router.put("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(appointment_id: str, appointment_update: AppointmentUpdate, db: Session = Depends(get_db)):
    """Atualizar agendamento"""
    return appointment_store.update_appointment(db, appointment_id, appointment_update)

@router.delete("/{appointment_id}")
def delete_appointment(appointment_id: str, db: Session = Depends(get_db)):
    appointment_store.delete_appointment(db, appointment_id)
    return {"message": "Agendamento excluído com sucesso"}
