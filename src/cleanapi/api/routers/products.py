from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cleanapi.access_control.constants import (
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_LIST,
    ACTION_READ,
    ACTION_UPDATE,
    RESOURCE_PRODUCT,
)
from cleanapi.access_control.models import AuthContext
from cleanapi.api.dependencies import get_db, get_product_service
from cleanapi.api.dependencies_auth import require_permission, require_resource_permission
from cleanapi.platform.config import settings
from cleanapi.services import schemas
from cleanapi.services.product_service import ProductService
from cleanapi.storage.repositories.product_repository import ProductRepository


router = APIRouter()

def product_owner(session: Session, product_id: str) -> Optional[str]:
    product = ProductRepository().get(session, product_id)
    return product.created_by if product else None


@router.post("/", response_model=schemas.ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    product_create: schemas.ProductCreate,
    service: Annotated[ProductService, Depends(get_product_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_permission(RESOURCE_PRODUCT, ACTION_CREATE))],
):
    """
    Create a product owned by the caller.
    """
    return service.create_product(session, ctx, product_create)

@router.get("/", response_model=schemas.ProductListResponse)
def list_products(
    service: Annotated[ProductService, Depends(get_product_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_permission(RESOURCE_PRODUCT, ACTION_LIST))],
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
):
    items, total = service.list_products(session, ctx, limit, offset)
    return schemas.ProductListResponse(
        items=[schemas.ProductResponse.model_validate(product) for product in items],
        total=total,
        limit=limit,
        offset=offset,
    )

@router.get("/category/{category}", response_model=List[schemas.ProductResponse])
def list_products_by_category(
    category: str,
    service: Annotated[ProductService, Depends(get_product_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_permission(RESOURCE_PRODUCT, ACTION_LIST))],
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
):
    return service.list_by_category(session, ctx, category, limit, offset)

@router.get("/{id}", response_model=schemas.ProductResponse)
def get_product(
    id: str,
    service: Annotated[ProductService, Depends(get_product_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_resource_permission(RESOURCE_PRODUCT, ACTION_READ, product_owner))],
):
    return service.get_product(session, ctx, id)

@router.put("/{id}", response_model=schemas.ProductResponse)
def update_product(
    id: str,
    product_update: schemas.ProductUpdate,
    service: Annotated[ProductService, Depends(get_product_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_resource_permission(RESOURCE_PRODUCT, ACTION_UPDATE, product_owner))],
):
    return service.update_product(session, ctx, id, product_update)

@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    id: str,
    service: Annotated[ProductService, Depends(get_product_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_resource_permission(RESOURCE_PRODUCT, ACTION_DELETE, product_owner))],
):
    service.delete_product(session, ctx, id)
