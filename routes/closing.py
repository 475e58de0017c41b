from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import date

from database import get_db
from schemas import (
    AdditionalServiceCreate, ClosingAppointmentUpdate,
    ClosingAutomationsResponse, ClosingResponse
)
from services import closing_workflow

router = APIRouter()


@router.post("/{day}/start", response_model=ClosingResponse)
def start_closing(day: date, db: Session = Depends(get_db)):
    """Abrir (ou retomar) o fechamento de caixa do dia"""
    return closing_workflow.start_closing(db, day)

@router.get("/{day}", response_model=ClosingResponse)
def get_closing(day: date, db: Session = Depends(get_db)):
    return closing_workflow.get_closing(db, day)

@router.patch("/{day}/appointments/{appointment_id}", response_model=ClosingResponse)
def update_closing_appointment(
    day: date,
    appointment_id: str,
    appointment_update: ClosingAppointmentUpdate,
    db: Session = Depends(get_db)
):
    """Marcar comparecimento, valor e forma de pagamento de um agendamento"""
    return closing_workflow.update_closing_appointment(db, day, appointment_id, appointment_update)

@router.post("/{day}/additional", response_model=ClosingResponse)
def add_additional_service(day: date, service: AdditionalServiceCreate, db: Session = Depends(get_db)):
    """Registrar serviço adicional (sem agendamento)"""
    return closing_workflow.add_additional_service(db, day, service)

@router.delete("/{day}/additional/{index}", response_model=ClosingResponse)
def remove_additional_service(day: date, index: int, db: Session = Depends(get_db)):
    return closing_workflow.remove_additional_service(db, day, index)

@router.post("/{day}/next", response_model=ClosingResponse)
def next_step(day: date, db: Session = Depends(get_db)):
    """Avançar etapa; de serviços adicionais para automações grava os registros do dia"""
    return closing_workflow.next_step(db, day)

@router.post("/{day}/previous", response_model=ClosingResponse)
def previous_step(day: date, db: Session = Depends(get_db)):
    return closing_workflow.previous_step(db, day)

@router.get("/{day}/automations", response_model=ClosingAutomationsResponse)
def get_automation_step(day: date, db: Session = Depends(get_db)):
    """Estatísticas do dia e automações ativas"""
    return closing_workflow.get_automation_step(db, day)

@router.post("/{day}/complete", response_model=ClosingResponse)
def complete_closing(day: date, db: Session = Depends(get_db)):
    """Concluir o fechamento"""
    return closing_workflow.complete_closing(db, day)
