from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, func

from cleanapi.storage.models import ProductModel
from .base import BaseRepository

class ProductRepository(BaseRepository[ProductModel]):

    def create(self, session: Session, entity: ProductModel) -> ProductModel:
        session.add(entity)
        session.flush()
        return entity

    def get(self, session: Session, id: str) -> Optional[ProductModel]:
        return session.get(ProductModel, id)

    def update(self, session: Session, id: str, updates: dict) -> Optional[ProductModel]:
        product = self.get(session, id)
        if not product:
            return None

        for key, value in updates.items():
            setattr(product, key, value)

        session.flush()
        return product

    def delete(self, session: Session, id: str) -> bool:
        product = self.get(session, id)
        if not product:
            return False
        session.delete(product)
        session.flush()
        return True

    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.created_at).limit(limit).offset(offset)
        return list(session.scalars(stmt).all())

    def count(self, session: Session) -> int:
        return session.scalar(select(func.count()).select_from(ProductModel)) or 0

    def list_by_category(
        self, session: Session, category: str, limit: int = 100, offset: int = 0
    ) -> List[ProductModel]:
        stmt = (
            select(ProductModel)
            .where(ProductModel.category == category)
            .order_by(ProductModel.created_at)
            .limit(limit)
            .offset(offset)
        )
        return list(session.scalars(stmt).all())
