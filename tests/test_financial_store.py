import pytest
from datetime import date, datetime
from fastapi import HTTPException

from models import DailySummary
from schemas import TransactionCreate, TransactionUpdate
from services import financial_store


def add(db, amount, when, transaction_type="income", category="service"):
    return financial_store.add_transaction(db, TransactionCreate(
        type=transaction_type,
        category=category,
        amount=amount,
        date=when,
        description="Teste"
    ))


def test_amounts_rounded_to_two_decimals(db):
    transaction = add(db, 10.456, datetime(2024, 5, 10, 10, 0))

    assert transaction.amount == 10.46


def test_close_daily_operations_is_idempotent(db):
    day = date(2024, 5, 10)
    add(db, 30, datetime(2024, 5, 10, 10, 0))
    add(db, 20, datetime(2024, 5, 10, 15, 0))
    add(db, 12.5, datetime(2024, 5, 10, 16, 0), "expense", "supplies")
    add(db, 99, datetime(2024, 5, 11, 9, 0))

    first = financial_store.close_daily_operations(db, day)
    first_values = (first.id, first.total_income, first.total_expense, first.net_balance, first.transaction_count)
    second = financial_store.close_daily_operations(db, day)

    assert (second.id, second.total_income, second.total_expense, second.net_balance, second.transaction_count) == first_values
    assert first_values[1:] == (50.0, 12.5, 37.5, 3)
    assert db.query(DailySummary).count() == 1


def test_close_daily_operations_recomputes_from_scratch(db):
    day = date(2024, 5, 10)
    add(db, 30, datetime(2024, 5, 10, 10, 0))
    first = financial_store.close_daily_operations(db, day)

    add(db, 20, datetime(2024, 5, 10, 18, 0))
    second = financial_store.close_daily_operations(db, day)

    assert second.id == first.id
    assert second.total_income == 50.0
    assert second.transaction_count == 2


def test_list_transactions_filters_and_order(db):
    add(db, 10, datetime(2024, 5, 1, 10, 0))
    add(db, 20, datetime(2024, 5, 3, 10, 0))
    add(db, 5, datetime(2024, 5, 2, 10, 0), "expense", "rent")

    incomes = financial_store.list_transactions(db, "income")
    in_range = financial_store.list_transactions(db, start_date=date(2024, 5, 2), end_date=date(2024, 5, 2))

    assert [tx.amount for tx in incomes] == [20, 10]
    assert [tx.amount for tx in in_range] == [5]


def test_update_and_delete_transaction(db):
    transaction = add(db, 10, datetime(2024, 5, 1, 10, 0))

    updated = financial_store.update_transaction(db, transaction.id, TransactionUpdate(amount=15, notes="corrigido"))
    assert updated.amount == 15
    assert updated.notes == "corrigido"

    financial_store.delete_transaction(db, transaction.id)
    with pytest.raises(HTTPException) as exc:
        financial_store.get_transaction(db, transaction.id)
    assert exc.value.status_code == 404


def test_period_report_growth(db):
    add(db, 100, datetime(2024, 5, 6, 10, 0))
    add(db, 40, datetime(2024, 5, 7, 10, 0), "expense", "rent")
    add(db, 50, datetime(2024, 4, 30, 10, 0))

    report = financial_store.get_period_report(db, "week", today=date(2024, 5, 8))

    assert report["totalIncome"] == 100
    assert report["totalExpense"] == 40
    assert report["netBalance"] == 60
    assert report["period"]["current"] == {"start": "2024-05-06", "end": "2024-05-12"}
    assert report["growthPercentages"]["incomeGrowth"] == 100.0
    assert report["growthPercentages"]["expenseGrowth"] == 100.0


def test_invalid_period_is_rejected(db):
    with pytest.raises(HTTPException) as exc:
        financial_store.get_period_report(db, "custom", date(2024, 5, 10), date(2024, 5, 1))
    assert exc.value.status_code == 400
