"""
Configuração inicial do banco (tabelas financeiras, coluna notes em
transactions, função exec_sql e tabela de produtos).

Cada operação roda com tempo limite. Em falha ou tempo esgotado a resposta
traz o SQL para execução manual no editor do banco.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as SetupTimeout
from typing import Any, Callable, Dict, List
import logging
import os

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateTable

from database import engine
from models import Base, DailySummary, Product, Transaction

logger = logging.getLogger(__name__)

EXEC_SQL_FUNCTION = """CREATE OR REPLACE FUNCTION exec_sql(sql text)
RETURNS void AS $$
BEGIN
  EXECUTE sql;
END;
$$ LANGUAGE plpgsql SECURITY DEFINER;"""

FINANCIAL_TABLES = [Transaction.__table__, DailySummary.__table__]


def create_table_sql(bind: Engine, tables: List) -> str:
    return "\n\n".join(
        f"{str(CreateTable(table).compile(dialect=bind.dialect)).strip()};" for table in tables
    )


def add_column_sql(bind: Engine, table, column, if_not_exists: bool = False) -> str:
    column_type = column.type.compile(dialect=bind.dialect)
    guard = "IF NOT EXISTS " if if_not_exists else ""
    return f"ALTER TABLE {table.name} ADD COLUMN {guard}{column.name} {column_type};"


class SetupService:
    def __init__(self, bind: Engine = engine, timeout: float = None):
        self.engine = bind
        if timeout is None:
            timeout = float(os.getenv("SETUP_TIMEOUT_SECONDS", "15"))
        self.timeout = timeout

    def _run_with_timeout(self, operation: Callable[[], Any]) -> Any:
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(operation)
        try:
            return future.result(timeout=self.timeout)
        finally:
            executor.shutdown(wait=False)

    def _run(self, operation: Callable[[], str], failure_message: str, **manual_script) -> Dict[str, Any]:
        try:
            message = self._run_with_timeout(operation)
        except SetupTimeout:
            logger.error("%s: tempo limite de %ss excedido", failure_message, self.timeout)
            return self._manual_setup(failure_message, "Tempo limite excedido", **manual_script)
        except SQLAlchemyError as e:
            logger.exception(failure_message)
            return self._manual_setup(failure_message, str(e), **manual_script)

        logger.info(message)
        return {"success": True, "message": message}

    def _manual_setup(self, message: str, error: str, **manual_script) -> Dict[str, Any]:
        return {
            "success": False,
            "message": message,
            "error": error,
            "manualSetupRequired": True,
            **manual_script
        }

    def setup_financial_tables(self) -> Dict[str, Any]:
        def operation():
            Base.metadata.create_all(bind=self.engine, tables=FINANCIAL_TABLES)
            return "Tabelas financeiras configuradas com sucesso"

        return self._run(
            operation,
            "Falha ao configurar as tabelas financeiras",
            scriptContent=create_table_sql(self.engine, FINANCIAL_TABLES)
        )

    def fix_transactions_table(self) -> Dict[str, Any]:
        """Adiciona as colunas que faltam em transactions (ex.: notes)"""
        table = Transaction.__table__

        def operation():
            inspector = inspect(self.engine)
            if not inspector.has_table(table.name):
                table.create(bind=self.engine)
                return "Tabela de transações criada com sucesso"

            existing = {column["name"] for column in inspector.get_columns(table.name)}
            missing = [column for column in table.columns if column.name not in existing]
            with self.engine.begin() as conn:
                for column in missing:
                    conn.execute(text(add_column_sql(self.engine, table, column)))

            if missing:
                return f"Colunas adicionadas em transactions: {', '.join(c.name for c in missing)}"
            return "Tabela de transações já está atualizada"

        sql_to_run = "\n".join(
            add_column_sql(self.engine, table, column, if_not_exists=True)
            for column in table.columns if column.nullable
        )
        return self._run(operation, "Falha ao corrigir a tabela de transações", sqlToRun=sql_to_run)

    def setup_stored_procedure(self) -> Dict[str, Any]:
        if self.engine.dialect.name != "postgresql":
            return self._manual_setup(
                "Falha ao configurar a função exec_sql. Execute o script manualmente no editor SQL.",
                f"Banco '{self.engine.dialect.name}' não suporta funções PL/pgSQL",
                scriptContent=EXEC_SQL_FUNCTION
            )

        def operation():
            with self.engine.begin() as conn:
                conn.execute(text(EXEC_SQL_FUNCTION))
            return "Função exec_sql configurada com sucesso"

        return self._run(
            operation,
            "Falha ao configurar a função exec_sql. Execute o script manualmente no editor SQL.",
            scriptContent=EXEC_SQL_FUNCTION
        )

    def setup_products_table(self) -> Dict[str, Any]:
        table = Product.__table__

        def operation():
            if inspect(self.engine).has_table(table.name):
                return "A tabela de produtos já existe!"
            table.create(bind=self.engine)
            return "Tabela de produtos inicializada com sucesso!"

        return self._run(
            operation,
            "Falha ao criar a tabela de produtos",
            sqlToRun=create_table_sql(self.engine, [table])
        )

setup_service = SetupService()
