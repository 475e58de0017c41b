"""
Política única de escrita: grava na sessão, faz commit e, se o banco
falhar, desfaz a sessão inteira antes de reportar o erro.
"""

import logging
from typing import Any, Dict, Iterable

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def commit_or_rollback(db: Session, detail: str, *instances) -> None:
    """Commit da sessão; em falha faz rollback e levanta HTTP 500 com `detail`"""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(detail)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )
    for instance in instances:
        db.refresh(instance)


def update_fields(update: BaseModel, required: Iterable[str]) -> Dict[str, Any]:
    """
    Campos enviados na atualização parcial.

    Um campo obrigatório enviado explicitamente como null é recusado com 400
    antes de chegar ao registro.
    """
    update_data = update.model_dump(exclude_unset=True)
    model_fields = type(update).model_fields
    null_fields = [
        model_fields[field].alias or field
        for field in required
        if field in update_data and update_data[field] is None
    ]
    if null_fields:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Campos obrigatórios não podem ser nulos: {', '.join(null_fields)}"
        )
    return update_data
