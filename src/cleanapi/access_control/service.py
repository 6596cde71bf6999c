"""
Authorization Service.

Facade over the PolicyEngine used by HTTP dependencies and secured
repositories. The caller's identity always arrives as an explicit AuthContext.
"""

import json
import uuid
from typing import List, Optional

from cleanapi.access_control.constants import (
    CTX_RESOURCE_ID,
    CTX_RESOURCE_OWNER_ID,
    CTX_USER_EMAIL,
    CTX_USER_ID,
    CTX_USER_ROLE,
    KNOWN_ROLES,
)
from cleanapi.access_control.engine import PolicyEngine
from cleanapi.access_control.models import (
    AuthContext,
    Effect,
    Permission,
    PermissionRequest,
    PermissionResponse,
)
from cleanapi.platform.errors import (
    AppError,
    InvalidRequestError,
    PermissionDeniedError,
    PolicyEvaluationError,
    RoleMissingError,
    RoleNotFoundError,
)
from cleanapi.platform.logging import get_logger

logger = get_logger(__name__)


class AuthorizationService:
    KNOWN_ROLES = KNOWN_ROLES

    def __init__(self, engine: PolicyEngine):
        self.engine = engine

    # --- Checks ---

    def check_permission(self, ctx: AuthContext, user_id: str, resource: str, action: str) -> None:
        """Raise unless the caller's role may perform ``action`` on ``resource``."""
        role = self._require_role(ctx)
        request = PermissionRequest(
            user_id=user_id,
            role=role,
            resource=resource,
            action=action,
            context=ctx.as_context(),
        )
        self._enforce(request)

    def check_resource_permission(
        self,
        ctx: AuthContext,
        user_id: str,
        resource: str,
        action: str,
        resource_id: str,
        resource_owner_id: Optional[str] = None,
    ) -> None:
        """Like check_permission, scoped to one resource instance.

        ``resource_owner_id``, when known, feeds the ownership condition.
        """
        role = self._require_role(ctx)
        context = ctx.as_context()
        if resource_id:
            context[CTX_RESOURCE_ID] = resource_id
        if resource_owner_id is not None:
            context[CTX_RESOURCE_OWNER_ID] = resource_owner_id

        request = PermissionRequest(
            user_id=user_id,
            role=role,
            resource=resource,
            action=action,
            resource_id=resource_id or "",
            context=context,
        )
        self._enforce(request)

    def quick_check(self, role: str, resource: str, action: str) -> bool:
        """Out-of-request check for ``role``; uses a throwaway identity."""
        user_id = str(uuid.uuid4())
        ctx = AuthContext(user_id=user_id, role=role)
        try:
            self.check_permission(ctx, user_id, resource, action)
        except AppError:
            return False
        return True

    # --- Permission listings ---

    def get_user_permissions(self, ctx: AuthContext, user_id: str) -> List[Permission]:
        """Flatten the allow statements of every policy the caller's role can see.

        Reads the store directly, so documents added since the last cache
        reload are listed before evaluation honours them.
        Statements in a shared document that name a different principal are
        left out, so only grants that apply to this role are listed.
        """
        role = self._require_role(ctx)
        policies = self.engine.get_policies_for_role(role)

        permissions: List[Permission] = []
        for policy in policies:
            for statement in policy.statements:
                if statement.effect != Effect.ALLOW or not statement.principal.matches(role):
                    continue
                permissions.append(
                    Permission(
                        resource=str(statement.resource),
                        action=str(statement.action),
                        role=role,
                    )
                )
        return permissions

    def get_effective_permissions(self, ctx: AuthContext, user_id: str) -> List[Permission]:
        """The listed permissions that still evaluate to allowed for this context."""
        role = self._require_role(ctx)
        effective: List[Permission] = []
        for permission in self.get_user_permissions(ctx, user_id):
            request = PermissionRequest(
                user_id=user_id,
                role=role,
                resource=permission.resource,
                action=permission.action,
                resource_id=permission.resource_id,
                context=ctx.as_context(),
            )
            if self._evaluate(request).allowed:
                effective.append(permission)
        return effective

    def get_allowed_actions_for_role(self, role: str, resource: str) -> List[str]:
        ctx = AuthContext(user_id=str(uuid.uuid4()), role=role)
        return [
            permission.action
            for permission in self.get_user_permissions(ctx, ctx.user_id)
            if permission.resource == resource
        ]

    def validate_role(self, role: str) -> None:
        if role not in self.KNOWN_ROLES:
            raise RoleNotFoundError(role)

    # --- Context helpers ---

    def create_enriched_context(
        self, base: AuthContext, user_id: str, role: str, email: str = ""
    ) -> AuthContext:
        """Derive a context carrying ``user_id`` and ``role``; ``email`` only when non-empty."""
        return AuthContext(
            user_id=user_id,
            role=role,
            email=email or base.email,
            client_ip=base.client_ip,
            attributes=dict(base.attributes),
        )

    def serialize_context_for_microservice(self, ctx: AuthContext) -> str:
        data = {}
        if ctx.user_id:
            data[CTX_USER_ID] = ctx.user_id
        if ctx.role:
            data[CTX_USER_ROLE] = ctx.role
        if ctx.email:
            data[CTX_USER_EMAIL] = ctx.email
        return json.dumps(data)

    def create_context_from_microservice_data(self, base: AuthContext, data: str) -> AuthContext:
        """Rebuild a context from serialized identity data.

        Missing or non-string keys are skipped. Only data that is not a JSON
        object is rejected.
        """
        try:
            payload = json.loads(data)
        except (TypeError, ValueError) as e:
            raise InvalidRequestError("failed to deserialize context data", cause=e) from e
        if not isinstance(payload, dict):
            raise InvalidRequestError("context data must be a JSON object")

        def pick(key: str, fallback: str) -> str:
            value = payload.get(key)
            return value if isinstance(value, str) else fallback

        return AuthContext(
            user_id=pick(CTX_USER_ID, base.user_id),
            role=pick(CTX_USER_ROLE, base.role),
            email=pick(CTX_USER_EMAIL, base.email),
            client_ip=base.client_ip,
            attributes=dict(base.attributes),
        )

    # --- Internals ---

    def _require_role(self, ctx: Optional[AuthContext]) -> str:
        if ctx is None or not ctx.role:
            raise RoleMissingError()
        return ctx.role

    def _evaluate(self, request: PermissionRequest) -> PermissionResponse:
        try:
            return self.engine.evaluate(request)
        except AppError:
            raise
        except Exception as e:
            logger.exception("policy_evaluation_failed", role=request.role, resource=request.resource)
            raise PolicyEvaluationError(cause=e) from e

    def _enforce(self, request: PermissionRequest) -> None:
        response = self._evaluate(request)
        if response.allowed:
            return

        logger.warning(
            "permission_denied",
            user_id=request.user_id,
            role=request.role,
            resource=request.resource,
            action=request.action,
            resource_id=request.resource_id,
            reason=response.reason,
        )
        raise PermissionDeniedError(
            role=request.role,
            resource=request.resource,
            action=request.action,
            reason=response.reason,
            user_id=request.user_id or None,
        )
