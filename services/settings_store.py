"""
Configurações persistidas em arquivo JSON versionado: automações, ajustes de
automação, dados do negócio, horário de funcionamento e notificações.

Arquivos antigos (cópia direta do localStorage do navegador, sem "version")
são migrados uma única vez, na primeira leitura.
"""

import json
import logging
import os
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

from schemas import Automation, AutomationCreate, AutomationUpdate, SettingsSnapshot
from utils.db_utils import update_fields

logger = logging.getLogger(__name__)

CURRENT_VERSION = 2

LEGACY_KEYS = ["automations", "automationSettings", "businessInfo", "workingHours", "notifications"]

SECTIONS = {
    "automationSettings": "automation_settings",
    "businessInfo": "business_info",
    "workingHours": "working_hours",
    "notifications": "notifications",
}

# Lista de automações predefinidas
PREDEFINED_AUTOMATIONS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Lembrete de Agendamento",
        "type": "reminder",
        "trigger": "before_appointment",
        "timeValue": 1,
        "timeUnit": "days",
        "active": True,
        "lastRun": None,
        "sentCount": 0,
        "messageTemplate": "Olá {nome}, lembre-se do seu agendamento amanhã! Estamos esperando por você."
    },
    {
        "id": 2,
        "name": "Agradecimento Pós-Atendimento",
        "type": "message",
        "trigger": "after_appointment",
        "timeValue": 2,
        "timeUnit": "hours",
        "active": True,
        "lastRun": None,
        "sentCount": 0,
        "messageTemplate": "Olá {nome}, obrigado por nos visitar hoje! Esperamos que tenha gostado do atendimento."
    },
    {
        "id": 3,
        "name": "Feliz Aniversário",
        "type": "message",
        "trigger": "birthday",
        "timeValue": 0,
        "timeUnit": "days",
        "active": True,
        "lastRun": None,
        "sentCount": 0,
        "messageTemplate": "Feliz aniversário, {nome}! Desejamos um dia maravilhoso e queremos celebrar com você oferecendo 10% de desconto em nossos serviços este mês."
    },
    {
        "id": 4,
        "name": "Promoção de Produtos",
        "type": "promotion",
        "trigger": "inactivity",
        "timeValue": 30,
        "timeUnit": "days",
        "active": False,
        "lastRun": None,
        "sentCount": 0,
        "messageTemplate": "Olá {nome}, sentimos sua falta! Já faz um tempo desde sua última visita em {data}. Que tal agendar um novo horário com 15% de desconto?"
    },
    {
        "id": 5,
        "name": "Alerta de Estoque Baixo",
        "type": "message",
        "trigger": "low_stock",
        "timeValue": 1,
        "timeUnit": "hours",
        "active": True,
        "lastRun": None,
        "sentCount": 0,
        "messageTemplate": "Atenção: O produto X está com estoque baixo. Favor verificar."
    },
    {
        "id": 6,
        "name": "Recuperação de Não Comparecimento",
        "type": "followup",
        "trigger": "no_show",
        "timeValue": 1,
        "timeUnit": "days",
        "active": True,
        "lastRun": None,
        "sentCount": 0,
        "messageTemplate": "Olá {nome}, notamos que você não compareceu ao seu agendamento ontem. Podemos ajudar a remarcar em um horário mais conveniente para você?"
    },
]


def _decode(value):
    # O localStorage só guarda strings; valores antigos vêm serializados
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def _migrate_v0_to_v1(data: Dict[str, Any]) -> Dict[str, Any]:
    migrated = {key: _decode(data[key]) for key in LEGACY_KEYS if key in data}
    migrated["version"] = 1
    return migrated


def _migrate_v1_to_v2(data: Dict[str, Any]) -> Dict[str, Any]:
    automations = []
    for automation in data.get("automations") or []:
        automation = dict(automation)
        raw_value = automation.pop("time_value", automation.get("timeValue"))
        try:
            automation["timeValue"] = int(raw_value or 0)
        except (TypeError, ValueError):
            automation["timeValue"] = 0
        automations.append(automation)
    return {**data, "automations": automations, "version": 2}


MIGRATIONS = {
    0: _migrate_v0_to_v1,
    1: _migrate_v1_to_v2,
}


def migrate(data: Dict[str, Any]) -> Dict[str, Any]:
    """Aplica em sequência as migrações até a versão atual"""
    version = data.get("version", 0)
    if version > CURRENT_VERSION:
        raise ValueError(f"Versão de configuração desconhecida: {version}")

    while version < CURRENT_VERSION:
        data = MIGRATIONS[version](data)
        version = data["version"]
    return data


def default_snapshot() -> SettingsSnapshot:
    return SettingsSnapshot.model_validate({
        "version": CURRENT_VERSION,
        "automations": PREDEFINED_AUTOMATIONS,
    })


class SettingsStore:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.RLock()
        self._snapshot: Optional[SettingsSnapshot] = None

    def configure(self, path: str):
        """Troca o arquivo de configuração e descarta o cache"""
        with self._lock:
            self.path = path
            self._snapshot = None

    def load(self) -> SettingsSnapshot:
        with self._lock:
            if self._snapshot is not None:
                return self._snapshot

            if not os.path.exists(self.path):
                self._snapshot = default_snapshot()
                return self._snapshot

            try:
                with open(self.path, encoding="utf-8") as f:
                    raw = json.load(f)
                original_version = raw.get("version", 0)
                snapshot = SettingsSnapshot.model_validate(migrate(raw))
            except (ValueError, TypeError, AttributeError):
                # Arquivo corrompido: o arquivo fica intacto até o próximo save
                logger.exception("Arquivo de configurações inválido (%s); usando configurações padrão", self.path)
                self._snapshot = default_snapshot()
                return self._snapshot

            self._snapshot = snapshot
            if original_version != CURRENT_VERSION:
                logger.info("Configurações migradas da versão %s para %s", original_version, CURRENT_VERSION)
                self._write(snapshot)
            return snapshot

    def _write(self, snapshot: SettingsSnapshot):
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot.model_dump(mode="json", by_alias=True), f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def save(self, snapshot: SettingsSnapshot):
        with self._lock:
            self._write(snapshot)
            self._snapshot = snapshot

    # Automações
    def get_automations(self) -> List[Automation]:
        return list(self.load().automations)

    def get_automation(self, automation_id: int) -> Automation:
        for automation in self.load().automations:
            if automation.id == automation_id:
                return automation
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Automação não encontrada"
        )

    def _replace_automation(self, updated: Automation) -> Automation:
        snapshot = self.load()
        automations = [updated if a.id == updated.id else a for a in snapshot.automations]
        self.save(snapshot.model_copy(update={"automations": automations}))
        return updated

    def create_automation(self, automation: AutomationCreate) -> Automation:
        with self._lock:
            snapshot = self.load()
            next_id = max((a.id for a in snapshot.automations), default=0) + 1
            created = Automation(id=next_id, **automation.model_dump())
            self.save(snapshot.model_copy(update={"automations": [*snapshot.automations, created]}))
            return created

    def update_automation(self, automation_id: int, automation_update: AutomationUpdate) -> Automation:
        with self._lock:
            current = self.get_automation(automation_id)
            update_data = update_fields(
                automation_update, ("name", "type", "trigger", "time_value", "time_unit", "active")
            )
            updated = Automation.model_validate({**current.model_dump(), **update_data})
            return self._replace_automation(updated)

    def toggle_automation(self, automation_id: int) -> Automation:
        with self._lock:
            current = self.get_automation(automation_id)
            return self._replace_automation(current.model_copy(update={"active": not current.active}))

    def delete_automation(self, automation_id: int):
        with self._lock:
            self.get_automation(automation_id)
            snapshot = self.load()
            remaining = [a for a in snapshot.automations if a.id != automation_id]
            self.save(snapshot.model_copy(update={"automations": remaining}))

    def record_send(self, automation_id: int, sent: int, now: datetime) -> Automation:
        """Atualiza a contagem de envios e a última execução"""
        with self._lock:
            current = self.get_automation(automation_id)
            updated = current.model_copy(update={
                "sent_count": current.sent_count + sent,
                "last_run": now,
            })
            return self._replace_automation(updated)

    # Seções livres (dados do negócio, horários, notificações...)
    def _section_attr(self, section: str) -> str:
        if section not in SECTIONS:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Seção de configuração não encontrada"
            )
        return SECTIONS[section]

    def get_section(self, section: str) -> Dict[str, Any]:
        return getattr(self.load(), self._section_attr(section))

    def update_section(self, section: str, data: Dict[str, Any]) -> Dict[str, Any]:
        attr = self._section_attr(section)
        with self._lock:
            snapshot = self.load()
            self.save(snapshot.model_copy(update={attr: data}))
            return data

settings_store = SettingsStore(os.getenv("SETTINGS_FILE", "settings.json"))
