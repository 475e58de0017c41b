from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session
from typing import Any, Dict, List

from database import get_db
from schemas import (
    Automation, AutomationCreate, AutomationUpdate,
    RelevantClient, SendAutomationRequest, SendAutomationResponse,
    SettingsSnapshot, WhatsAppMessage
)
from services import automation_service, settings_store, whatsapp_service

automations_router = APIRouter()
settings_router = APIRouter()
whatsapp_router = APIRouter()


# Automações
@automations_router.get("", response_model=List[Automation])
def list_automations():
    return settings_store.get_automations()

@automations_router.post("", response_model=Automation, status_code=status.HTTP_201_CREATED)
def create_automation(automation: AutomationCreate):
    """Criar automação"""
    return settings_store.create_automation(automation)

@automations_router.get("/{automation_id}", response_model=Automation)
def get_automation(automation_id: int):
    return settings_store.get_automation(automation_id)

@automations_router.put("/{automation_id}", response_model=Automation)
def update_automation(automation_id: int, automation_update: AutomationUpdate):
    return settings_store.update_automation(automation_id, automation_update)

@automations_router.delete("/{automation_id}")
def delete_automation(automation_id: int):
    settings_store.delete_automation(automation_id)
    return {"message": "Automação removida com sucesso"}

@automations_router.post("/{automation_id}/toggle", response_model=Automation)
def toggle_automation(automation_id: int):
    """Ativar/desativar automação"""
    return settings_store.toggle_automation(automation_id)

@automations_router.get("/{automation_id}/clients", response_model=List[RelevantClient])
def get_relevant_clients(automation_id: int, db: Session = Depends(get_db)):
    """Clientes elegíveis com a mensagem personalizada e o link do WhatsApp"""
    return automation_service.get_matches(db, automation_id)

@automations_router.post("/{automation_id}/send", response_model=SendAutomationResponse)
def send_automation(automation_id: int, request: SendAutomationRequest, db: Session = Depends(get_db)):
    """Enviar a automação para os clientes selecionados"""
    return automation_service.send(db, automation_id, request.client_ids)


# Configurações
@settings_router.get("", response_model=SettingsSnapshot)
def get_settings():
    return settings_store.load()

@settings_router.put("/{section}")
def update_settings_section(section: str, data: Dict[str, Any] = Body(...)):
    """Atualizar businessInfo, workingHours, notifications ou automationSettings"""
    return settings_store.update_section(section, data)


# WhatsApp
@whatsapp_router.post("/send-message")
def send_whatsapp_message(message: WhatsAppMessage):
    """Enviar mensagem (ou gerar o link wa.me sem credenciais)"""
    return whatsapp_service.send_message(message.phone, message.message)
