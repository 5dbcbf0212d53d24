"""
API request and response models for the storefront REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
shop/models.py, which own the internal domain representation. Route handlers
map between the two.

Separation of concerns: auth/ and shop/ models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Permission, User
from shop.models import CartItem, Item

# Loose shape check only -- deliverability is proven by the reset mail, not a regex.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# bcrypt truncates/rejects input past 72 bytes.
_PASSWORD_MAX = 72


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
    components: dict[str, str] = Field(default_factory=dict)


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)


class SigninRequest(BaseModel):
    """Request body for POST /api/v1/auth/signin."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)


class RequestResetRequest(BaseModel):
    """Request body for POST /api/v1/auth/request-reset."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/reset-password.

    Field names follow the link format the reset mail uses (?resetToken=...).
    """

    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)
    confirm_password: str = Field(min_length=1, max_length=_PASSWORD_MAX, alias="confirmPassword")
    reset_token: str = Field(min_length=1, max_length=64, alias="resetToken")

    model_config = ConfigDict(populate_by_name=True)


class RequestResetResponse(BaseModel):
    """Response for POST /api/v1/auth/request-reset.

    delivered=False means the token was stored but the mail could not be sent;
    the caller may retry the request.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    delivered: bool


class PermissionsUpdate(BaseModel):
    """Request body for PUT /api/v1/users/{user_id}/permissions."""

    permissions: list[Permission] = Field(max_length=len(Permission))


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. Never includes the password hash or reset token."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    name: str
    permissions: list[str]

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email, name=user.name, permissions=list(user.permissions))


# ---------------------------------------------------------------------------
# Shop -- items
# ---------------------------------------------------------------------------


class ItemCreate(BaseModel):
    """Request body for POST /api/v1/items."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=5000)
    price: int = Field(ge=0, description="Price in cents.")
    image: Optional[str] = Field(default=None, max_length=2048)
    large_image: Optional[str] = Field(default=None, max_length=2048)


class ItemUpdate(BaseModel):
    """Request body for PATCH /api/v1/items/{item_id}. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1, max_length=5000)
    price: Optional[int] = Field(default=None, ge=0)
    image: Optional[str] = Field(default=None, max_length=2048)
    large_image: Optional[str] = Field(default=None, max_length=2048)


class ItemResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    price: int
    image: Optional[str]
    large_image: Optional[str]
    user_id: int
    created_at: str

    @classmethod
    def from_item(cls, item: Item) -> "ItemResponse":
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            price=item.price,
            image=item.image,
            large_image=item.large_image,
            user_id=item.user_id,
            created_at=item.created_at,
        )


class ItemCountResponse(BaseModel):
    """Response for GET /api/v1/items/count (pagination support)."""

    model_config = ConfigDict(frozen=True)

    count: int


# ---------------------------------------------------------------------------
# Shop -- cart
# ---------------------------------------------------------------------------


class CartItemResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    quantity: int
    item_id: int
    user_id: int

    @classmethod
    def from_cart_item(cls, line: CartItem) -> "CartItemResponse":
        return cls(id=line.id, quantity=line.quantity, item_id=line.item_id, user_id=line.user_id)
