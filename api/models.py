"""
API request and response models for Storefront REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from catalog.models import Product

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SelectableRole(str, Enum):
    """Roles a user may pick. unset is deliberately absent."""

    merchant = "merchant"
    client = "client"


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    uptime_seconds: float
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class OAuthProviderInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    login_url: str


class UserResponse(BaseModel):
    """Public view of a user record. external_id is never exposed."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: Optional[str]
    display_name: str
    role: str
    needs_role: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=user.role.value,
            needs_role=user.role.value == "unset",
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class RoleSelect(BaseModel):
    """Request body for POST /api/v1/auth/role."""

    role: SelectableRole


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class ProductCreate(BaseModel):
    """Request body for POST /api/v1/products."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    price_cents: int = Field(ge=0, le=100_000_000)


class ProductResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    merchant_id: int
    name: str
    description: Optional[str]
    price_cents: int
    created_at: str

    @classmethod
    def from_product(cls, product: Product) -> "ProductResponse":
        """Factory Method -- the mapping lives next to the output model."""
        return cls(
            id=product.id,
            merchant_id=product.merchant_id,
            name=product.name,
            description=product.description,
            price_cents=product.price_cents,
            created_at=product.created_at,
        )
