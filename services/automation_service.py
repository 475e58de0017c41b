from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence
import logging

from models import Appointment, Client
from schemas import Automation, RelevantClient, SendAutomationResponse
from services.settings_store import settings_store
from services.whatsapp_service import whatsapp_service
from utils.date_utils import format_day, get_lisbon_datetime

logger = logging.getLogger(__name__)

TRIGGER_LABELS = {
    "after_appointment": "Após Atendimento",
    "before_appointment": "Antes do Atendimento",
    "no_show": "Não Comparecimento",
    "birthday": "Aniversário",
    "inactivity": "Inatividade",
    "low_stock": "Estoque Baixo",
}


def _appointments_by_client(appointments: Sequence[Appointment]) -> Dict[str, List[Appointment]]:
    grouped: Dict[str, List[Appointment]] = {}
    for appointment in appointments:
        grouped.setdefault(appointment.client_id, []).append(appointment)
    return grouped


def _latest_appointment(appointments: Sequence[Appointment]) -> Optional[Appointment]:
    if not appointments:
        return None
    return max(appointments, key=lambda appointment: appointment.start)


def get_relevant_clients(
    automation: Automation,
    clients: Sequence[Client],
    appointments: Sequence[Appointment],
    now: Optional[datetime] = None
) -> List[Client]:
    """
    Clientes que atendem ao gatilho da automação.

    Datas comparadas pelo dia do calendário de Lisboa; `now` permite fixar o
    relógio nos testes.
    """
    if not clients:
        return []

    now = now or get_lisbon_datetime()
    today = now.date()
    by_client = _appointments_by_client(appointments)
    trigger = automation.trigger

    def has_appointment_on(client, day):
        return any(app.start.date() == day for app in by_client.get(client.id, []))

    if trigger == "after_appointment":
        # Clientes que tiveram atendimento hoje
        return [client for client in clients if has_appointment_on(client, today)]

    if trigger == "before_appointment":
        # Clientes com agendamento para amanhã
        tomorrow = today + timedelta(days=1)
        return [client for client in clients if has_appointment_on(client, tomorrow)]

    if trigger == "birthday":
        # Considera apenas mês e dia
        return [
            client for client in clients
            if client.birth_date is not None
            and (client.birth_date.month, client.birth_date.day) == (today.month, today.day)
        ]

    if trigger == "no_show":
        # "cancelled" é usado como indicativo de não comparecimento
        return [
            client for client in clients
            if any(app.status == "cancelled" for app in by_client.get(client.id, []))
        ]

    if trigger == "inactivity":
        cutoff_date = now - timedelta(days=automation.time_value)
        relevant = []
        for client in clients:
            last_appointment = _latest_appointment(by_client.get(client.id, []))
            if last_appointment is None:
                if client.status == "active":
                    relevant.append(client)
            elif last_appointment.start < cutoff_date:
                relevant.append(client)
        return relevant

    # low_stock não se aplica a clientes
    return []


def personalize_message(message: str, client: Client, appointments: Sequence[Appointment]) -> str:
    """Substitui {nome}, {data} e {serviço} com dados do cliente"""
    personalized = message.replace("{nome}", client.name)
    last_appointment = _latest_appointment([app for app in appointments if app.client_id == client.id])

    if "{data}" in message:
        personalized = personalized.replace(
            "{data}", format_day(last_appointment.start) if last_appointment else "N/A"
        )
    if "{serviço}" in message:
        personalized = personalized.replace(
            "{serviço}", last_appointment.service if last_appointment else "serviço"
        )
    return personalized


def build_relevant_client(automation: Automation, client: Client, appointments: Sequence[Appointment]) -> RelevantClient:
    message = personalize_message(automation.message_template or "", client, appointments)
    return RelevantClient(
        client_id=client.id,
        name=client.name,
        phone=client.phone,
        message=message,
        link=whatsapp_service.build_link(client.phone, message)
    )


class AutomationService:
    def _load(self, db: Session):
        return db.query(Client).all(), db.query(Appointment).all()

    def get_matches(self, db: Session, automation_id: int, now: Optional[datetime] = None) -> List[RelevantClient]:
        automation = settings_store.get_automation(automation_id)
        clients, appointments = self._load(db)
        relevant = get_relevant_clients(automation, clients, appointments, now=now)
        return [build_relevant_client(automation, client, appointments) for client in relevant]

    def send(self, db: Session, automation_id: int, client_ids: List[str], now: Optional[datetime] = None) -> SendAutomationResponse:
        """
        Envia a mensagem personalizada para os clientes selecionados e
        atualiza a contagem de envios da automação.
        """
        if not client_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Selecione pelo menos um cliente para enviar mensagem"
            )

        automation = settings_store.get_automation(automation_id)
        clients, appointments = self._load(db)
        selected = {client.id: client for client in clients if client.id in client_ids}
        missing = [client_id for client_id in client_ids if client_id not in selected]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cliente não encontrado"
            )

        messages = []
        sent = 0
        for client_id in client_ids:
            entry = build_relevant_client(automation, selected[client_id], appointments)
            messages.append(entry)
            if entry.phone and whatsapp_service.send_message(entry.phone, entry.message).get("success"):
                sent += 1

        updated = settings_store.record_send(automation_id, sent, now or get_lisbon_datetime())
        logger.info("Automação %s (%s) enviada para %s cliente(s)", automation.id, TRIGGER_LABELS.get(automation.trigger), sent)
        return SendAutomationResponse(automation=updated, messages=messages)

automation_service = AutomationService()
