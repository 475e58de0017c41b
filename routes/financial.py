from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from database import get_db
from schemas import (
    TransactionCreate, TransactionUpdate, TransactionResponse,
    DailySummaryResponse, TransactionType
)
from services import financial_store

router = APIRouter()


def _dump(schema, instance):
    return schema.model_validate(instance).model_dump(mode="json", by_alias=True)


@router.get("/transactions")
def list_transactions(
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db)
):
    """Listar transações, mais recentes primeiro"""
    transactions = financial_store.list_transactions(db, transaction_type, start_date, end_date)
    return {"data": [_dump(TransactionResponse, tx) for tx in transactions]}

@router.post("/transactions", status_code=status.HTTP_201_CREATED)
def create_transaction(transaction: TransactionCreate, db: Session = Depends(get_db)):
    """Criar transação (receita ou despesa)"""
    return {"data": _dump(TransactionResponse, financial_store.add_transaction(db, transaction))}

@router.get("/transactions/{transaction_id}")
def get_transaction(transaction_id: str, db: Session = Depends(get_db)):
    return {"data": _dump(TransactionResponse, financial_store.get_transaction(db, transaction_id))}

@router.put("/transactions/{transaction_id}")
def update_transaction(transaction_id: str, transaction_update: TransactionUpdate, db: Session = Depends(get_db)):
    transaction = financial_store.update_transaction(db, transaction_id, transaction_update)
    return {"data": _dump(TransactionResponse, transaction)}

@router.delete("/transactions/{transaction_id}")
def delete_transaction(transaction_id: str, db: Session = Depends(get_db)):
    financial_store.delete_transaction(db, transaction_id)
    return {"success": True}

@router.get("/summary")
def list_daily_summaries(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db)
):
    """Resumos diários, mais recentes primeiro"""
    summaries = financial_store.list_daily_summaries(db, start_date, end_date)
    return {"data": [_dump(DailySummaryResponse, summary) for summary in summaries]}

@router.post("/close-day")
def close_day(day: Optional[date] = Query(None, alias="date"), db: Session = Depends(get_db)):
    """Fechar operações do dia e gerar o resumo"""
    return {"data": _dump(DailySummaryResponse, financial_store.close_daily_operations(db, day))}

@router.get("/report")
def get_report(
    period: str = Query("month", description="Período: day, week, month, year"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db)
):
    """Totais do período com crescimento em relação ao período anterior"""
    return {"data": financial_store.get_period_report(db, period, start_date, end_date)}
