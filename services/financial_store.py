from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import date, timedelta
from typing import List, Dict, Any, Optional
import logging

from models import Transaction, DailySummary, new_id
from schemas import TransactionCreate, TransactionUpdate
from utils.date_utils import day_bounds, get_lisbon_date, to_lisbon
from utils.db_utils import commit_or_rollback, update_fields

logger = logging.getLogger(__name__)


def _normalize_dates(payload: Dict[str, Any]) -> Dict[str, Any]:
    if payload.get("date") is not None:
        payload["date"] = to_lisbon(payload["date"])
    return payload


class FinancialStore:
    def stage_transaction(self, db: Session, transaction: TransactionCreate) -> Transaction:
        """Adiciona à sessão sem commit"""
        payload = _normalize_dates(transaction.model_dump())
        payload["id"] = payload["id"] or new_id()
        db_transaction = Transaction(**payload)
        db.add(db_transaction)
        return db_transaction

    def add_transaction(self, db: Session, transaction: TransactionCreate) -> Transaction:
        db_transaction = self.stage_transaction(db, transaction)
        commit_or_rollback(db, "Não foi possível adicionar a transação", db_transaction)
        return db_transaction

    def get_transaction(self, db: Session, transaction_id: str) -> Transaction:
        transaction = db.query(Transaction).filter(Transaction.id == transaction_id).first()
        if not transaction:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Transação não encontrada"
            )
        return transaction

    def list_transactions(
        self,
        db: Session,
        transaction_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Transaction]:
        """Transações filtradas, mais recentes primeiro"""
        query = db.query(Transaction)

        if transaction_type:
            query = query.filter(Transaction.type == transaction_type)
        if start_date:
            query = query.filter(Transaction.date >= day_bounds(start_date)[0])
        if end_date:
            query = query.filter(Transaction.date < day_bounds(end_date)[1])

        return query.order_by(Transaction.date.desc()).all()

    def update_transaction(self, db: Session, transaction_id: str, transaction_update: TransactionUpdate) -> Transaction:
        db_transaction = self.get_transaction(db, transaction_id)

        update_data = _normalize_dates(update_fields(
            transaction_update, ("type", "category", "amount", "date", "description")
        ))
        for field, value in update_data.items():
            setattr(db_transaction, field, value)

        commit_or_rollback(db, "Não foi possível atualizar a transação", db_transaction)
        return db_transaction

    def delete_transaction(self, db: Session, transaction_id: str):
        db_transaction = self.get_transaction(db, transaction_id)
        db.delete(db_transaction)
        commit_or_rollback(db, "Não foi possível excluir a transação")

    def get_transactions_by_date(self, db: Session, day: date) -> List[Transaction]:
        start, end = day_bounds(day)
        return db.query(Transaction).filter(
            Transaction.date >= start,
            Transaction.date < end
        ).all()

    def get_daily_summary(self, db: Session, day: date) -> Optional[DailySummary]:
        return db.query(DailySummary).filter(DailySummary.date == day).first()

    def list_daily_summaries(self, db: Session, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[DailySummary]:
        query = db.query(DailySummary)
        if start_date:
            query = query.filter(DailySummary.date >= start_date)
        if end_date:
            query = query.filter(DailySummary.date <= end_date)
        return query.order_by(DailySummary.date.desc()).all()

    def stage_daily_summary(self, db: Session, day: date) -> DailySummary:
        """
        Recalcula o resumo do dia a partir de todas as transações do dia e
        atualiza o registro existente (mesmo id) ou cria um novo.
        """
        day_transactions = self.get_transactions_by_date(db, day)

        total_income = round(sum(tx.amount for tx in day_transactions if tx.type == "income"), 2)
        total_expense = round(sum(tx.amount for tx in day_transactions if tx.type == "expense"), 2)

        summary = self.get_daily_summary(db, day)
        if summary is None:
            summary = DailySummary(id=new_id(), date=day)
            db.add(summary)

        summary.total_income = total_income
        summary.total_expense = total_expense
        summary.net_balance = round(total_income - total_expense, 2)
        summary.transaction_count = len(day_transactions)
        return summary

    def close_daily_operations(self, db: Session, day: Optional[date] = None) -> DailySummary:
        """Fechar operações do dia e gerar o resumo"""
        day = day or get_lisbon_date()
        summary = self.stage_daily_summary(db, day)
        commit_or_rollback(db, "Não foi possível fechar o dia", summary)

        logger.info(
            "Dia %s fechado: receitas=%.2f despesas=%.2f transacoes=%s",
            day.isoformat(), summary.total_income, summary.total_expense, summary.transaction_count
        )
        return summary

    # Relatórios por período
    def get_period_report(self, db: Session, period: str, start_date: Optional[date] = None, end_date: Optional[date] = None, today: Optional[date] = None) -> Dict[str, Any]:
        """Totais do período com crescimento em relação ao período anterior"""
        if start_date and end_date:
            current_start, current_end = start_date, end_date
        else:
            current_start, current_end = self._period_bounds(period, today or get_lisbon_date())

        if current_end < current_start:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Período inválido"
            )

        # Período anterior com o mesmo número de dias
        days_diff = (current_end - current_start).days + 1
        previous_start = current_start - timedelta(days=days_diff)
        previous_end = current_start - timedelta(days=1)

        current_metrics = self._get_metrics_for_period(db, current_start, current_end)
        previous_metrics = self._get_metrics_for_period(db, previous_start, previous_end)

        return {
            **current_metrics,
            "growthPercentages": self._calculate_growth_percentages(current_metrics, previous_metrics),
            "period": {
                "current": {"start": current_start.isoformat(), "end": current_end.isoformat()},
                "previous": {"start": previous_start.isoformat(), "end": previous_end.isoformat()}
            }
        }

    def _period_bounds(self, period: str, today: date):
        if period == 'week':
            start = today - timedelta(days=today.weekday())
            return start, start + timedelta(days=6)
        if period == 'month':
            start = today.replace(day=1)
            if today.month == 12:
                end = today.replace(year=today.year + 1, month=1, day=1) - timedelta(days=1)
            else:
                end = today.replace(month=today.month + 1, day=1) - timedelta(days=1)
            return start, end
        if period == 'year':
            return today.replace(month=1, day=1), today.replace(month=12, day=31)
        return today, today

    def _get_metrics_for_period(self, db: Session, start_date: date, end_date: date) -> Dict[str, Any]:
        transactions = self.list_transactions(db, start_date=start_date, end_date=end_date)
        total_income = round(sum(tx.amount for tx in transactions if tx.type == "income"), 2)
        total_expense = round(sum(tx.amount for tx in transactions if tx.type == "expense"), 2)

        return {
            "totalIncome": total_income,
            "totalExpense": total_expense,
            "netBalance": round(total_income - total_expense, 2),
            "transactionCount": len(transactions)
        }

    def _calculate_growth_percentages(self, current: Dict[str, Any], previous: Dict[str, Any]) -> Dict[str, float]:
        """Calcular porcentagens de crescimento"""
        def calculate_percentage(current_val, previous_val):
            if previous_val == 0:
                return 100.0 if current_val > 0 else 0.0
            return round(((current_val - previous_val) / abs(previous_val)) * 100, 2)

        return {
            "incomeGrowth": calculate_percentage(current["totalIncome"], previous["totalIncome"]),
            "expenseGrowth": calculate_percentage(current["totalExpense"], previous["totalExpense"]),
            "netBalanceGrowth": calculate_percentage(current["netBalance"], previous["netBalance"])
        }

financial_store = FinancialStore()
