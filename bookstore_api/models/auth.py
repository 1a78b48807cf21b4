"""
Authentication and user models.

Provides Pydantic schemas for:
- User documents (users collection) and their API representation
- Sign-up and sign-in requests and responses
- JWT token payloads
- Role management

User documents keep camelCase field names in MongoDB; the models here are
snake_case and convert with ``from_document``.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


# ============================================================================
# Role Enum
# ============================================================================


class Role(str, Enum):
    """
    User roles.

    - USER: Customer account, sees only books it vends (usually none)
    - VENDOR: Manages its own catalog and sees its own sales
    - ADMIN: Sees and manages every book and every order
    """
    USER = "user"
    VENDOR = "vendor"
    ADMIN = "admin"


# Roles a caller may request for themselves at sign-up.
SELF_ASSIGNABLE_ROLES = {Role.USER.value, Role.VENDOR.value}


# ============================================================================
# Embedded Documents
# ============================================================================


class Address(BaseModel):
    """Postal address stored on a user."""
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> "Address":
        doc = doc or {}
        return cls(
            street=doc.get("street") or "",
            city=doc.get("city") or "",
            state=doc.get("state") or "",
            zip_code=doc.get("zipCode") or "",
            country=doc.get("country") or "",
        )

    def to_document(self) -> Dict[str, str]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }


class Social(BaseModel):
    """Social network handles stored on a user."""
    twitter: str = ""
    facebook: str = ""
    instagram: str = ""

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> "Social":
        doc = doc or {}
        return cls(
            twitter=doc.get("twitter") or "",
            facebook=doc.get("facebook") or "",
            instagram=doc.get("instagram") or "",
        )


# ============================================================================
# Database Models
# ============================================================================


class UserDB(BaseModel):
    """
    User as stored in the users collection.

    Carries the password hash, so it is never returned from an endpoint.
    """
    id: str = Field(..., description="User ID (ObjectId hex)")
    first_name: str
    last_name: str
    email: str
    password_hash: str
    role: str = Role.USER.value
    phone: str = ""
    bio: str = ""
    company: str = ""
    location: str = ""
    address: Address = Field(default_factory=Address)
    social: Social = Field(default_factory=Social)
    avatar: Optional[str] = None
    is_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserDB":
        """
        Build a user from a raw MongoDB document.

        Args:
            doc: Document from the users collection

        Returns:
            UserDB instance
        """
        return cls(
            id=str(doc["_id"]),
            first_name=doc.get("firstName", ""),
            last_name=doc.get("lastName", ""),
            email=doc["email"],
            password_hash=doc.get("password", ""),
            role=doc.get("role") or Role.USER.value,
            phone=doc.get("phone") or "",
            bio=doc.get("bio") or "",
            company=doc.get("company") or "",
            location=doc.get("location") or "",
            address=Address.from_document(doc.get("address")),
            social=Social.from_document(doc.get("social")),
            avatar=doc.get("avatar"),
            is_verified=bool(doc.get("isVerified", False)),
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )


# ============================================================================
# Pydantic Request Models
# ============================================================================


class SignupRequest(BaseModel):
    """
    Sign-up request schema.

    Name, email and password are checked for presence by the endpoint so a
    missing field is reported as a 400 rather than a schema error. Accepts
    camelCase (``firstName``) as well as snake_case keys.
    """
    first_name: Optional[str] = Field(None, max_length=100, description="First name")
    last_name: Optional[str] = Field(None, max_length=100, description="Last name")
    email: Optional[EmailStr] = Field(None, description="Email address")
    password: Optional[str] = Field(None, max_length=128, description="Password (minimum 8 characters)")
    role: Optional[str] = Field(None, description="Requested role: user or vendor")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "firstName": "Jane",
                "lastName": "Reader",
                "email": "jane@example.com",
                "password": "SecurePass123",
                "role": "vendor"
            }
        },
    )

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        """Emails are stored lowercased."""
        return v.lower() if v else v

    def missing_fields(self) -> List[str]:
        """Names of required fields that are absent or blank."""
        required = {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "password": self.password,
        }
        return [name for name, value in required.items() if not value]

    def effective_role(self) -> str:
        """Requested role when self-assignable, otherwise ``user``."""
        if self.role and self.role.lower() in SELF_ASSIGNABLE_ROLES:
            return self.role.lower()
        return Role.USER.value


class LoginRequest(BaseModel):
    """Sign-in request schema."""
    email: str = Field(
        ...,
        min_length=3,
        max_length=255,
        description="Email address"
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Password"
    )

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "email": "admin@kitabi-keeda.com",
                "password": "Admin@123"
            }
        },
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


# ============================================================================
# Pydantic Response Models
# ============================================================================


class UserSummary(BaseModel):
    """Public user fields returned after sign-up."""
    id: str
    first_name: str
    last_name: str
    email: str
    role: str


class SignupResponse(BaseModel):
    """Sign-up response schema."""
    success: bool = True
    message: str = "User registered successfully"
    data: UserSummary


class TokenResponse(BaseModel):
    """Sign-in response schema. The same token is also set as a cookie."""
    success: bool = True
    message: str = "Login successful"
    access_token: str = Field(
        ...,
        min_length=10,
        description="JWT access token"
    )
    token_type: str = Field(
        default="bearer",
        description="Token type"
    )
    expires_in: int = Field(
        ...,
        gt=0,
        description="Token expiration time in seconds"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Login successful",
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 604800
            }
        }
    )


class MessageResponse(BaseModel):
    """Generic success message."""
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Error response schema."""
    detail: str = Field(
        ...,
        min_length=1,
        description="Error message"
    )
    error_code: Optional[str] = Field(
        None,
        description="Error code"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "detail": "Invalid credentials",
                "error_code": None
            }
        }
    )


# ============================================================================
# Token Models
# ============================================================================


class TokenPayload(BaseModel):
    """
    JWT token payload/claims.

    Contains the user identity and role embedded in the token.
    """
    sub: str = Field(..., description="Subject (user ID)")
    email: str = Field(..., description="Email address")
    role: str = Field(..., description="User role")
    exp: int = Field(..., description="Expiration timestamp (Unix epoch)")
    iat: int = Field(..., description="Issued at timestamp (Unix epoch)")


class CurrentUser(BaseModel):
    """
    Current authenticated user model.

    Used in request handlers to represent the authenticated user
    making the request. Injected via dependency injection.
    """
    id: str = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    role: str = Field(..., description="User role")
    first_name: str = ""
    last_name: str = ""

    def has_role(self, role: Role) -> bool:
        """
        Check if user has a specific role.

        Args:
            role: Role to check

        Returns:
            True if user has the role, False otherwise
        """
        return self.role == role.value

    def has_any_role(self, roles: List[Role]) -> bool:
        """
        Check if user has any of the specified roles.

        Args:
            roles: List of roles to check

        Returns:
            True if user has any of the roles, False otherwise
        """
        return any(self.has_role(role) for role in roles)

    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)

    def vendor_scope(self) -> Optional[str]:
        """
        Vendor filter for catalog and analytics queries.

        Returns:
            None for admins (no restriction), otherwise the user's own ID
        """
        return None if self.is_admin() else self.id
