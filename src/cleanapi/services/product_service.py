from typing import List, Tuple
from uuid import uuid4
from sqlalchemy.orm import Session

from cleanapi.access_control.constants import ACTION_LIST
from cleanapi.access_control.models import AuthContext
from cleanapi.services import schemas
from cleanapi.storage.models import ProductModel
from cleanapi.storage.repositories.product_repository import ProductRepository
from cleanapi.storage.repositories.secured_repository import SecuredRepository


class ProductService:
    def __init__(self, repository: SecuredRepository[ProductModel]):
        self.repository = repository

    def create_product(self, session: Session, ctx: AuthContext, product_create: schemas.ProductCreate) -> ProductModel:
        product = ProductModel(
            id=str(uuid4()),
            name=product_create.name,
            description=product_create.description,
            price=product_create.price,
            stock=product_create.stock,
            category=product_create.category,
            created_by=ctx.user_id or None,
        )
        return self.repository.create(session, ctx, product)

    def get_product(self, session: Session, ctx: AuthContext, product_id: str) -> ProductModel:
        return self.repository.get(session, ctx, product_id)

    def update_product(
        self, session: Session, ctx: AuthContext, product_id: str, product_update: schemas.ProductUpdate
    ) -> ProductModel:
        updates = product_update.model_dump(exclude_unset=True, exclude_none=True)
        if not updates:
            return self.repository.get(session, ctx, product_id)
        return self.repository.update(session, ctx, product_id, updates)

    def delete_product(self, session: Session, ctx: AuthContext, product_id: str) -> None:
        self.repository.delete(session, ctx, product_id)

    def list_products(
        self, session: Session, ctx: AuthContext, limit: int = 10, offset: int = 0
    ) -> Tuple[List[ProductModel], int]:
        items = self.repository.list(session, ctx, limit=limit, offset=offset)
        return items, self.repository.count(session, ctx)

    def list_by_category(
        self, session: Session, ctx: AuthContext, category: str, limit: int = 10, offset: int = 0
    ) -> List[ProductModel]:
        """Products in ``category``; authorized as a product listing."""
        self.repository.validate_access(ctx, ACTION_LIST)
        products: ProductRepository = self.repository.repository
        items = products.list_by_category(session, category, limit=limit, offset=offset)
        self.repository.audit(session, ctx, ACTION_LIST)
        return items
