from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional
import logging

from models import Product
from schemas import ProductCreate, ProductUpdate, StockUpdate
from utils.date_utils import get_lisbon_datetime
from utils.db_utils import commit_or_rollback, update_fields

logger = logging.getLogger(__name__)


class ProductStore:
    def list_products(
        self,
        db: Session,
        category: Optional[str] = None,
        low_stock: bool = False,
        limit: Optional[int] = None
    ) -> List[Product]:
        query = db.query(Product)
        if category:
            query = query.filter(Product.category == category)
        if low_stock:
            query = query.filter(Product.stock <= Product.min_stock)

        query = query.order_by(Product.name)
        if limit:
            query = query.limit(limit)
        return query.all()

    def get_product(self, db: Session, product_id: str) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Produto não encontrado"
            )
        return product

    def create_product(self, db: Session, product: ProductCreate) -> Product:
        db_product = Product(**product.model_dump(), sales=0, updated_at=get_lisbon_datetime())
        db.add(db_product)
        commit_or_rollback(db, "Não foi possível criar o produto", db_product)

        logger.info("Produto %s criado (%s)", db_product.id, db_product.name)
        return db_product

    def update_product(self, db: Session, product_id: str, product_update: ProductUpdate) -> Product:
        db_product = self.get_product(db, product_id)

        update_data = update_fields(
            product_update, ("name", "price", "cost", "stock", "min_stock", "category")
        )
        for field, value in update_data.items():
            setattr(db_product, field, value)

        db_product.updated_at = get_lisbon_datetime()
        commit_or_rollback(db, "Não foi possível atualizar o produto", db_product)
        return db_product

    def delete_product(self, db: Session, product_id: str):
        db_product = self.get_product(db, product_id)
        db.delete(db_product)
        commit_or_rollback(db, "Não foi possível excluir o produto")

    def update_stock(self, db: Session, stock_update: StockUpdate) -> Product:
        """Soma `quantity` (positiva ou negativa) ao estoque atual"""
        if not stock_update.id or stock_update.quantity is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="ID do produto e quantidade são obrigatórios"
            )

        db_product = self.get_product(db, stock_update.id)
        new_stock = db_product.stock + stock_update.quantity
        if new_stock < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Estoque insuficiente"
            )

        db_product.stock = new_stock
        db_product.updated_at = get_lisbon_datetime()
        commit_or_rollback(db, "Não foi possível atualizar o estoque", db_product)

        if db_product.stock <= db_product.min_stock:
            logger.warning("Produto %s com estoque baixo: %s", db_product.name, db_product.stock)
        return db_product

product_store = ProductStore()
