from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from services import setup_service

router = APIRouter()


def _respond(result: dict):
    if not result["success"]:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result)
    return result


@router.get("/setup-financial-tables")
def setup_financial_tables():
    """Criar as tabelas transactions e daily_summary"""
    return _respond(setup_service.setup_financial_tables())

@router.get("/fix-transactions-table")
def fix_transactions_table():
    """Adicionar colunas que faltam na tabela transactions"""
    return _respond(setup_service.fix_transactions_table())

@router.get("/setup-stored-procedure")
def setup_stored_procedure():
    """Criar a função exec_sql (PostgreSQL)"""
    return _respond(setup_service.setup_stored_procedure())
