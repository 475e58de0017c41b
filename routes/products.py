from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from schemas import ProductCreate, ProductUpdate, ProductResponse, StockUpdate
from services import product_store, setup_service

router = APIRouter()


@router.post("/setup")
def setup_products_table():
    """Criar a tabela de produtos, se ainda não existir"""
    result = setup_service.setup_products_table()
    if not result["success"]:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result)
    return result

@router.get("", response_model=List[ProductResponse])
def list_products(
    category: Optional[str] = None,
    low_stock: bool = Query(False, alias="lowStock"),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db)
):
    """Listar produtos (filtros por categoria e estoque baixo)"""
    return product_store.list_products(db, category, low_stock, limit)

@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(product: ProductCreate, db: Session = Depends(get_db)):
    return product_store.create_product(db, product)

@router.patch("/stock", response_model=ProductResponse)
def update_stock(stock_update: StockUpdate, db: Session = Depends(get_db)):
    """Somar (ou subtrair) quantidade ao estoque"""
    return product_store.update_stock(db, stock_update)

@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return product_store.get_product(db, product_id)

@router.patch("/{product_id}", response_model=ProductResponse)
def update_product(product_id: str, product_update: ProductUpdate, db: Session = Depends(get_db)):
    """Atualizar produto"""
    return product_store.update_product(db, product_id, product_update)

@router.delete("/{product_id}")
def delete_product(product_id: str, db: Session = Depends(get_db)):
    product_store.delete_product(db, product_id)
    return {"success": True}
