"""
Policy Engine.

Evaluates a PermissionRequest against the cached policy documents.

Algorithm:
1. Candidates are the documents of the request role's bucket plus the
   wildcard bucket, each document once. No candidates means deny with
   "no policies found for role".
2. A statement matches when its principal, action, resource and every
   condition match the request.
3. Matching statements contribute their owning document's name to the deny
   or allow list according to their effect.
4. Deny overrides allow: any deny match refuses the request whatever else
   matched. Otherwise any allow match grants it. Otherwise it is refused with
   "no matching policy found".
"""

from typing import Any, List, Optional

from cleanapi.access_control.cache import PolicyCache
from cleanapi.access_control.constants import CTX_RESOURCE_OWNER_ID
from cleanapi.access_control.models import (
    AttributeEquals,
    Condition,
    Effect,
    PermissionRequest,
    PermissionResponse,
    PolicyDocument,
    PolicyStatement,
    ResourceOwnership,
)
from cleanapi.access_control.store import PolicyStore
from cleanapi.platform.logging import get_logger
from cleanapi.platform.metrics import AUTHZ_DECISIONS

logger = get_logger(__name__)

REASON_INVALID_REQUEST = "invalid request"
REASON_NO_POLICIES = "no policies found for role"
REASON_DENIED = "denied by policy"
REASON_ALLOWED = "allowed by policy"
REASON_NO_MATCH = "no matching policy found"


class PolicyEngine:
    """Statement-based allow/deny evaluator over a PolicyCache."""

    def __init__(self, cache: PolicyCache, store: PolicyStore):
        self.cache = cache
        self.store = store

    # --- Evaluation ---

    def evaluate(self, request: Optional[PermissionRequest]) -> PermissionResponse:
        if not isinstance(request, PermissionRequest) or not request.is_well_formed():
            response = PermissionResponse(allowed=False, reason=REASON_INVALID_REQUEST)
            self._record(request, response)
            return response

        candidates = self.cache.lookup(request.role)
        if not candidates:
            response = PermissionResponse(allowed=False, reason=REASON_NO_POLICIES)
            self._record(request, response)
            return response

        deny_names: List[str] = []
        allow_names: List[str] = []
        for policy in candidates:
            for statement in policy.statements:
                if not self.statement_matches(statement, request):
                    continue
                names = deny_names if statement.effect == Effect.DENY else allow_names
                if policy.name not in names:
                    names.append(policy.name)

        if deny_names:
            response = PermissionResponse(allowed=False, reason=REASON_DENIED, policies=deny_names)
        elif allow_names:
            response = PermissionResponse(allowed=True, reason=REASON_ALLOWED, policies=allow_names)
        else:
            response = PermissionResponse(allowed=False, reason=REASON_NO_MATCH)

        self._record(request, response)
        return response

    def statement_matches(self, statement: PolicyStatement, request: PermissionRequest) -> bool:
        return (
            statement.principal.matches(request.role)
            and statement.action.matches(request.action)
            and statement.resource.matches(request.resource)
            and all(self.condition_matches(condition, request) for condition in statement.conditions)
        )

    def condition_matches(self, condition: Condition, request: PermissionRequest) -> bool:
        if isinstance(condition, ResourceOwnership):
            return self._owns_resource(request)
        if isinstance(condition, AttributeEquals):
            if condition.key not in request.context:
                return False
            value = request.context[condition.key]
            # True must not satisfy 1, nor 3.0 satisfy 3
            return type(value) is type(condition.value) and value == condition.value
        # Unknown condition kinds never match
        return False

    def _owns_resource(self, request: PermissionRequest) -> bool:
        # Only applies when a concrete resource instance is targeted
        if not request.resource_id:
            return True
        owner: Any = request.context.get(CTX_RESOURCE_OWNER_ID)
        if owner is None:
            return False
        return str(owner) == str(request.user_id)

    def _record(self, request: Optional[PermissionRequest], response: PermissionResponse) -> None:
        AUTHZ_DECISIONS.labels(
            outcome="allow" if response.allowed else "deny",
            reason=response.reason,
        ).inc()

        if not isinstance(request, PermissionRequest):
            logger.warning("policy_evaluation", allowed=False, reason=response.reason)
            return

        logger.info(
            "policy_evaluation",
            user_id=request.user_id,
            role=request.role,
            resource=request.resource,
            action=request.action,
            resource_id=request.resource_id,
            allowed=response.allowed,
            reason=response.reason,
            policies=response.policies,
        )

    # --- Policy lifecycle ---

    def load_policies(self) -> int:
        return self.cache.load()

    def add_policy(self, policy: PolicyDocument) -> PolicyDocument:
        """Validate and persist a new document, then reload the cache."""
        policy.validate()
        created = self.store.create(policy)
        self.cache.load()
        logger.info("policy_added", policy_id=created.id, name=created.name)
        return created

    def update_policy(self, policy: PolicyDocument) -> PolicyDocument:
        policy.validate()
        updated = self.store.update(policy)
        self.cache.load()
        logger.info("policy_updated", policy_id=updated.id, name=updated.name)
        return updated

    def remove_policy(self, policy_id: str) -> None:
        self.store.delete(policy_id)
        self.cache.load()
        logger.info("policy_removed", policy_id=policy_id)

    def get_policies_for_role(self, role: str) -> List[PolicyDocument]:
        """Direct store query; may include documents the cache has not loaded yet."""
        return self.store.get_by_role(role)
