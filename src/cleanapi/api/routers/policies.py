from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from cleanapi.access_control.engine import PolicyEngine
from cleanapi.access_control.models import AuthContext
from cleanapi.api.dependencies import get_policy_engine, get_policy_store
from cleanapi.api.dependencies_auth import require_admin
from cleanapi.platform.logging import get_logger
from cleanapi.services import schemas
from cleanapi.storage.repositories.policy_repository import PolicyRepository


logger = get_logger(__name__)
router = APIRouter()

@router.get("/", response_model=List[schemas.PolicyDocumentResponse])
def list_policies(
    store: Annotated[PolicyRepository, Depends(get_policy_store)],
    engine: Annotated[PolicyEngine, Depends(get_policy_engine)],
    ctx: Annotated[AuthContext, Depends(require_admin)],
    role: Optional[str] = Query(None, description="Only active policies that apply to this role"),
):
    """
    List policy documents, inactive ones included unless filtering by role.
    """
    policies = engine.get_policies_for_role(role) if role else store.get_all()
    return [schemas.PolicyDocumentResponse.from_domain(policy) for policy in policies]

@router.post("/", response_model=schemas.PolicyDocumentResponse, status_code=status.HTTP_201_CREATED)
def create_policy(
    policy_create: schemas.PolicyDocumentCreate,
    engine: Annotated[PolicyEngine, Depends(get_policy_engine)],
    ctx: Annotated[AuthContext, Depends(require_admin)],
):
    """
    Create a policy document. Takes effect for requests after the cache reload.
    """
    created = engine.add_policy(policy_create.to_domain())
    logger.info("policy_created_via_api", policy_id=created.id, by=ctx.user_id)
    return schemas.PolicyDocumentResponse.from_domain(created)

@router.put("/{id}", response_model=schemas.PolicyDocumentResponse)
def update_policy(
    id: str,
    policy_update: schemas.PolicyDocumentCreate,
    engine: Annotated[PolicyEngine, Depends(get_policy_engine)],
    ctx: Annotated[AuthContext, Depends(require_admin)],
):
    """
    Replace a policy document and its full statement set.
    """
    updated = engine.update_policy(policy_update.to_domain(policy_id=id))
    return schemas.PolicyDocumentResponse.from_domain(updated)

@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_policy(
    id: str,
    engine: Annotated[PolicyEngine, Depends(get_policy_engine)],
    ctx: Annotated[AuthContext, Depends(require_admin)],
):
    engine.remove_policy(id)

@router.post("/reload", response_model=schemas.PolicyReloadResponse)
def reload_policies(
    engine: Annotated[PolicyEngine, Depends(get_policy_engine)],
    ctx: Annotated[AuthContext, Depends(require_admin)],
):
    """
    Rebuild the policy cache from the store.
    """
    documents = engine.load_policies()
    return schemas.PolicyReloadResponse(documents=documents, roles=engine.cache.roles())
