from sqlalchemy import Column, Integer, String, DateTime, Date, Float, Boolean, Text, JSON
from sqlalchemy.orm import declarative_base
import uuid

from utils.date_utils import get_lisbon_datetime

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True, index=True)
    birth_date = Column(Date, nullable=True)
    address = Column(String(200), nullable=True)
    postal_code = Column(String(20), nullable=True)
    city = Column(String(100), nullable=True)
    nif = Column(String(20), nullable=True)  # Número de Identificação Fiscal
    notes = Column(Text, nullable=True)
    initials = Column(String(2), nullable=False)
    avatar_url = Column(String(255), nullable=True)
    status = Column(String(10), default="active")  # active, inactive
    created_at = Column(DateTime, default=get_lisbon_datetime)
    updated_at = Column(DateTime, default=get_lisbon_datetime, onupdate=get_lisbon_datetime)


class Service(Base):
    """Catálogo fixo de serviços oferecidos"""
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    duration_minutes = Column(Integer, default=30)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=get_lisbon_datetime)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    start = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    # Sem ForeignKey: a referência ao cliente é validada apenas na criação
    client_id = Column(String(36), nullable=False, index=True)
    client = Column(String(100), nullable=False)
    client_initials = Column(String(2), nullable=True)
    client_avatar = Column(String(255), nullable=True)
    service_id = Column(String(36), nullable=True)
    service = Column(String(100), nullable=False)
    service_duration = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="pending")  # confirmed, pending, cancelled
    color = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=get_lisbon_datetime)
    updated_at = Column(DateTime, default=get_lisbon_datetime, onupdate=get_lisbon_datetime)


class ClientService(Base):
    """Serviço efetivamente prestado (e cobrado) a um cliente"""
    __tablename__ = "client_services"

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(String(36), nullable=False, index=True)
    service_name = Column(String(100), nullable=False)
    service_date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    attended = Column(Boolean, default=True)
    payment_method = Column(String(20), nullable=True)  # cash, card, transfer, other
    transaction_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=get_lisbon_datetime)
    updated_at = Column(DateTime, default=get_lisbon_datetime, onupdate=get_lisbon_datetime)


class ClientAttendance(Base):
    __tablename__ = "client_attendance"

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(String(36), nullable=False, index=True)
    appointment_id = Column(String(36), nullable=False)
    date = Column(DateTime, nullable=False)
    attended = Column(Boolean, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=get_lisbon_datetime)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(String(10), nullable=False)  # income, expense
    category = Column(String(20), nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    description = Column(String(255), nullable=False)
    related_appointment_id = Column(String(36), nullable=True)
    related_client_id = Column(String(36), nullable=True)
    payment_method = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=get_lisbon_datetime)


class DailySummary(Base):
    __tablename__ = "daily_summary"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(Date, nullable=False, unique=True, index=True)
    total_income = Column(Float, nullable=False, default=0.0)
    total_expense = Column(Float, nullable=False, default=0.0)
    net_balance = Column(Float, nullable=False, default=0.0)
    transaction_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=get_lisbon_datetime)
    updated_at = Column(DateTime, default=get_lisbon_datetime, onupdate=get_lisbon_datetime)


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    cost = Column(Float, nullable=False, default=0.0)
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=5)
    category = Column(String(50), nullable=False, default="outro")
    supplier = Column(String(100), nullable=True)
    barcode = Column(String(50), nullable=True)
    sales = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=get_lisbon_datetime, onupdate=get_lisbon_datetime)


class ClosingRecord(Base):
    """Estado persistido do fechamento de caixa de um dia"""
    __tablename__ = "closing_records"

    id = Column(String(36), primary_key=True, default=new_id)
    date = Column(Date, nullable=False, unique=True, index=True)
    step = Column(String(20), nullable=False, default="appointments")  # appointments, additional, automations
    state = Column(JSON, nullable=False, default=dict)
    applied_steps = Column(JSON, nullable=False, default=list)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=get_lisbon_datetime)
    updated_at = Column(DateTime, default=get_lisbon_datetime, onupdate=get_lisbon_datetime)
