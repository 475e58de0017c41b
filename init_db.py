#!/usr/bin/env python3
"""
Script para inicializar o banco de dados com dados de exemplo
Execute este script após a primeira execução do sistema
"""

from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from fastapi import HTTPException

from database import SessionLocal, engine
from models import Base, Client, Service
from schemas import ClientCreate, ServiceCreate
from services import client_store, service_catalog

# Catálogo de serviços (valor = duração/60 * 25)
SERVICES = [
    {"name": "Corte de Cabelo", "description": "Corte com lavagem e finalização", "price": 25.00, "duration_minutes": 60},
    {"name": "Coloração", "description": "Coloração completa", "price": 50.00, "duration_minutes": 120},
    {"name": "Manicure", "description": "Cuidado completo das unhas das mãos", "price": 18.75, "duration_minutes": 45},
    {"name": "Pedicure", "description": "Cuidado completo das unhas dos pés", "price": 25.00, "duration_minutes": 60},
    {"name": "Barba", "description": "Acabamento de barba com navalha", "price": 12.50, "duration_minutes": 30},
    {"name": "Corte e Barba", "description": "Corte de cabelo + acabamento de barba", "price": 37.50, "duration_minutes": 90},
    {"name": "Tratamento Capilar", "description": "Hidratação e reconstrução", "price": 25.00, "duration_minutes": 60},
]

CLIENTS = [
    {
        "name": "Ana Silva",
        "email": "ana.silva@example.com",
        "phone": "(+351) 912 345 678",
        "birth_date": date(1990, 6, 15),
        "address": "Rua das Flores, 123",
        "postal_code": "1000-001",
        "city": "Lisboa",
        "nif": "123456789",
        "notes": "Cliente regular, prefere atendimento pela manhã"
    },
    {
        "name": "Bruno Costa",
        "email": "bruno.costa@example.com",
        "phone": "(+351) 931 234 567",
        "birth_date": date(1985, 9, 22),
        "address": "Av. da Liberdade, 1000",
        "postal_code": "1250-096",
        "city": "Lisboa",
        "nif": "234567891",
        "notes": "Alérgico a alguns produtos"
    },
    {
        "name": "Carla Mendes",
        "email": "carla.mendes@example.com",
        "phone": "(+351) 961 987 654",
        "birth_date": date(1992, 4, 10),
        "address": "Rua Augusta, 500",
        "postal_code": "1100-053",
        "city": "Lisboa",
        "nif": "345678912"
    },
    {
        "name": "Diogo Santos",
        "email": "diogo.santos@example.com",
        "phone": "(+351) 968 888 777",
        "birth_date": date(1988, 11, 5),
        "address": "Rua do Comércio, 200",
        "postal_code": "1100-150",
        "city": "Lisboa",
        "nif": "456789123",
        "notes": "Prefere atendimento no fim do dia"
    },
    {
        "name": "Eduarda Lima",
        "email": "eduarda.lima@example.com",
        "phone": "(+351) 927 777 888",
        "birth_date": date(1995, 2, 28),
        "address": "Avenida da República, 800",
        "postal_code": "1050-191",
        "city": "Lisboa",
        "nif": "567891234"
    },
]


def init_database():
    """Inicializar banco de dados com dados de exemplo"""

    # Criar tabelas
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        if db.query(Service).first():
            print("✅ Catálogo de serviços já existe no banco de dados")
        else:
            for service_data in SERVICES:
                service_catalog.create_service(db, ServiceCreate(**service_data))
            print(f"✅ {len(SERVICES)} serviços criados no catálogo")

        if db.query(Client).first():
            print("✅ Clientes já existem no banco de dados")
        else:
            for client_data in CLIENTS:
                client_store.add_client(db, ClientCreate(**client_data))
            print(f"✅ {len(CLIENTS)} clientes de exemplo criados")

        print("\n🎉 Banco de dados inicializado com sucesso!")

    except (SQLAlchemyError, HTTPException) as e:
        print(f"❌ Erro ao inicializar banco de dados: {e}")
        db.rollback()
    finally:
        db.close()

if __name__ == "__main__":
    print("🚀 Inicializando banco de dados do salão...")
    init_database()
