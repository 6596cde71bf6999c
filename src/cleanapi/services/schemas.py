from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from cleanapi.access_control.models import Permission, PolicyDocument, PolicyStatement

# --- Auth ---

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)

# --- Users ---

class UserResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: Optional[str] = None
    is_active: Optional[bool] = None

class UserListResponse(BaseModel):
    items: List[UserResponse]
    total: int
    limit: int
    offset: int

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: Optional[UserResponse] = None

# --- Products ---

class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    stock: int = Field(0, ge=0)
    category: Optional[str] = Field(None, max_length=100)

class ProductCreate(ProductBase):
    pass

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    stock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = Field(None, max_length=100)

class ProductResponse(ProductBase):
    id: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ProductListResponse(BaseModel):
    items: List[ProductResponse]
    total: int
    limit: int
    offset: int

# --- Policies ---

class PolicyStatementSchema(BaseModel):
    effect: Literal["allow", "deny"]
    principal: str = Field(..., description="'*' or 'role:<name>'")
    action: str = Field(..., min_length=1, description="'*' or an action e.g. 'create'")
    resource: str = Field(..., min_length=1, description="'*' or a resource token e.g. 'product:create'")
    conditions: Dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> PolicyStatement:
        return PolicyStatement.build(
            effect=self.effect,
            principal=self.principal,
            action=self.action,
            resource=self.resource,
            conditions=self.conditions,
        )

class PolicyDocumentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    version: str = "1.0"
    is_active: bool = True
    statements: List[PolicyStatementSchema] = Field(default_factory=list)

    def to_domain(self, policy_id: Optional[str] = None) -> PolicyDocument:
        policy = PolicyDocument(
            name=self.name,
            version=self.version,
            is_active=self.is_active,
            statements=[statement.to_domain() for statement in self.statements],
        )
        if policy_id:
            policy.id = policy_id
        return policy

class PolicyStatementResponse(PolicyStatementSchema):
    id: str

    @classmethod
    def from_domain(cls, statement: PolicyStatement) -> "PolicyStatementResponse":
        return cls(
            id=statement.id,
            effect=statement.effect.value,
            principal=str(statement.principal),
            action=str(statement.action),
            resource=str(statement.resource),
            conditions=statement.condition_map(),
        )

class PolicyDocumentResponse(BaseModel):
    id: str
    name: str
    version: str
    is_active: bool
    statements: List[PolicyStatementResponse]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, policy: PolicyDocument) -> "PolicyDocumentResponse":
        return cls(
            id=policy.id,
            name=policy.name,
            version=policy.version,
            is_active=policy.is_active,
            statements=[PolicyStatementResponse.from_domain(s) for s in policy.statements],
            created_at=policy.created_at,
            updated_at=policy.updated_at,
        )

class PolicyReloadResponse(BaseModel):
    documents: int
    roles: List[str]

# --- Permissions ---

class PermissionSchema(BaseModel):
    resource: str
    action: str
    role: str
    resource_id: str = ""

    @classmethod
    def from_domain(cls, permission: Permission) -> "PermissionSchema":
        return cls(
            resource=permission.resource,
            action=permission.action,
            role=permission.role,
            resource_id=permission.resource_id,
        )

class PermissionListResponse(BaseModel):
    user_id: str
    role: str
    permissions: List[PermissionSchema]

class RoleActionsResponse(BaseModel):
    role: str
    resource: str
    actions: List[str]
