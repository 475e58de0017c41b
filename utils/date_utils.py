"""
Utilitários para datas e horários usando o fuso horário de Lisboa
"""

from datetime import datetime, date, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

BUSINESS_TZ = ZoneInfo("Europe/Lisbon")

def get_lisbon_datetime() -> datetime:
    """
    Obtém a data/hora atual em Lisboa, sem tzinfo (o banco guarda hora local)
    """
    return datetime.now(BUSINESS_TZ).replace(tzinfo=None)

def get_lisbon_date() -> date:
    """
    Obtém apenas a data atual no fuso horário de Lisboa
    """
    return get_lisbon_datetime().date()

def to_lisbon(value: datetime) -> datetime:
    """
    Converte um datetime com tzinfo para hora local de Lisboa (naive).
    Valores sem tzinfo já são considerados hora local.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(BUSINESS_TZ).replace(tzinfo=None)

def day_bounds(day: date):
    """Início (inclusivo) e fim (exclusivo) de um dia"""
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)

def parse_day(value: Optional[str]) -> Optional[date]:
    """Converte 'YYYY-MM-DD' (ou ISO com hora) em date"""
    if not value:
        return None
    return datetime.fromisoformat(value[:10]).date()

def format_day(value) -> str:
    """Formato dd/mm/aaaa usado nas mensagens"""
    return value.strftime("%d/%m/%Y")
